"""
Cadence CRM - Revenue Radar neighborhood clustering

Groups nearby residential leads into neighborhoods (grid cells of
~0.007 deg). Each cluster carries aggregate stats: property count,
average score / home age / income / ownership, storm and permit
exposure, plus a short list of reasons for the cluster card.

Also computes the "nearby leads" count shown on each lead card.
"""

import math
import re
from typing import Dict, List, Optional, Tuple

from services.geo import distance_between

CELL_SIZE_DEG = 0.007
MERGE_RADIUS_M = 1500
NEARBY_RADIUS_M = 483  # ~0.3 mi
POLYGON_PADDING = 0.3  # fraction of a cell

_DIGITS = re.compile(r"[^0-9]")


def compute_nearby_counts(leads: List[Dict], radius_m: float = NEARBY_RADIUS_M) -> List[Dict]:
    """Sets lead["nearbyCount"]: number of OTHER leads within radius_m."""
    for i, lead in enumerate(leads):
        count = 0
        for j, other in enumerate(leads):
            if i == j:
                continue
            if distance_between(lead["lat"], lead["lng"], other["lat"], other["lng"]) < radius_m:
                count += 1
        lead["nearbyCount"] = count
    return leads


def _cell_key(lat: float, lng: float, cell: float) -> Tuple[int, int]:
    return math.floor(lat / cell), math.floor(lng / cell)


def _centroid(members: List[Dict]) -> Tuple[float, float]:
    n = len(members)
    return sum(m["lat"] for m in members) / n, sum(m["lng"] for m in members) / n


def _bounds(members: List[Dict]) -> Dict:
    return {
        "minLat": min(m["lat"] for m in members),
        "maxLat": max(m["lat"] for m in members),
        "minLng": min(m["lng"] for m in members),
        "maxLng": max(m["lng"] for m in members),
    }


def _label_number(value) -> Optional[int]:
    """"~34 years" -> 34, "$72k" -> 72, "81%" -> 81, "Unknown" -> None"""
    if value is None:
        return None
    digits = _DIGITS.sub("", str(value))
    if not digits:
        return None
    n = int(digits)
    return n if n > 0 else None


def _avg(values: List[int]) -> int:
    return round(sum(values) / len(values)) if values else 0


def _build_cluster(idx: int, members: List[Dict]) -> Dict:
    lat, lng = _centroid(members)
    count = len(members)

    ages = [a for a in (_label_number(m.get("propertyAge")) for m in members) if a]
    incomes = [i for i in (_label_number(m.get("medianIncome")) for m in members) if i]
    owners = [o for o in (_label_number(m.get("ownerOccupied")) for m in members) if o]
    storm_count = sum(1 for m in members if m.get("hasStorm"))
    permit_count = sum(1 for m in members if m.get("hasPermit"))

    avg_age = _avg(ages)
    avg_income = _avg(incomes)
    avg_owner = _avg(owners)

    reasons = []
    if avg_age > 0:
        reasons.append(f"Avg home age in area: ~{avg_age} years")
    if avg_income > 0:
        reasons.append(f"Median income: ~{avg_income}k")
    if avg_owner > 0:
        reasons.append(f"Owner-occupied: ~{avg_owner}%")
    if storm_count > 0:
        reasons.append(f"{storm_count} of {count} properties near recent storm activity")
    if permit_count > 0:
        reasons.append(f"{permit_count} properties with permit signals")
    reasons.append(f"{count} properties in this neighborhood")

    named = next((m for m in members if m.get("city")), None)

    return {
        "id": f"cluster-{idx}",
        "lat": lat,
        "lng": lng,
        "name": f"{named['city']} area" if named else f"Cluster {idx + 1}",
        "propertyCount": count,
        "avgScore": round(sum(m["score"] for m in members) / count, 1),
        "avgPropertyAge": avg_age,
        "avgMedianIncome": avg_income,
        "avgOwnerOccupiedPct": avg_owner,
        "stormExposurePct": round(storm_count / count * 100),
        "permitActivityPct": round(permit_count / count * 100),
        "topReasons": reasons,
        "leads": sorted(members, key=lambda m: m["score"], reverse=True),
        "bounds": _bounds(members),
    }


def cluster_leads(
    leads: List[Dict],
    min_cluster_size: int = 3,
    cell_size: float = CELL_SIZE_DEG,
    merge_radius_m: float = MERGE_RADIUS_M,
) -> Dict:
    """
    Returns {"clusters": [...], "singles": [...]}.
    Every lead lands in exactly one cluster or in singles.
    Clusters ordered by average score, best first.
    """
    # insertion-ordered: same input order -> same clusters
    cells: Dict[Tuple[int, int], List[Dict]] = {}
    for lead in leads:
        cells.setdefault(_cell_key(lead["lat"], lead["lng"], cell_size), []).append(lead)

    groups: List[List[Dict]] = []
    leftovers: List[Dict] = []
    for members in cells.values():
        if len(members) >= min_cluster_size:
            groups.append(list(members))
        else:
            leftovers.extend(members)

    centroids = [_centroid(g) for g in groups]
    singles: List[Dict] = []
    for lead in leftovers:
        best_idx = None
        best_d = float("inf")
        for idx, (clat, clng) in enumerate(centroids):
            d = distance_between(lead["lat"], lead["lng"], clat, clng)
            if d < merge_radius_m and d < best_d:
                best_d = d
                best_idx = idx
        if best_idx is None:
            singles.append(lead)
        else:
            groups[best_idx].append(lead)

    clusters = [_build_cluster(idx, members) for idx, members in enumerate(groups)]
    clusters.sort(key=lambda c: c["avgScore"], reverse=True)
    return {"clusters": clusters, "singles": singles}


# ---- GeoJSON ----

def clusters_to_geojson(clusters: List[Dict], cell_size: float = CELL_SIZE_DEG) -> Dict:
    """Padded bounding box per neighborhood (map shading)."""
    pad = cell_size * POLYGON_PADDING
    features = []
    for c in clusters:
        b = c["bounds"]
        ring = [
            [b["minLng"] - pad, b["minLat"] - pad],
            [b["maxLng"] + pad, b["minLat"] - pad],
            [b["maxLng"] + pad, b["maxLat"] + pad],
            [b["minLng"] - pad, b["maxLat"] + pad],
            [b["minLng"] - pad, b["minLat"] - pad],
        ]
        features.append({
            "type": "Feature",
            "geometry": {"type": "Polygon", "coordinates": [ring]},
            "properties": {
                "id": c["id"],
                "name": c["name"],
                "propertyCount": c["propertyCount"],
                "avgScore": c["avgScore"],
                "avgPropertyAge": c["avgPropertyAge"],
                "stormExposurePct": c["stormExposurePct"],
                "permitActivityPct": c["permitActivityPct"],
                "label": f"{c['name']} • {c['propertyCount']} properties • avg {c['avgPropertyAge']}yr",
                "medianIncome": f"{c['avgMedianIncome']}k" if c["avgMedianIncome"] > 0 else None,
                "ownerOccupiedPct": c["avgOwnerOccupiedPct"] or None,
                "type": "neighborhood",
            },
        })
    return {"type": "FeatureCollection", "features": features}


def _point(lng: float, lat: float, properties: Dict) -> Dict:
    return {
        "type": "Feature",
        "geometry": {"type": "Point", "coordinates": [lng, lat]},
        "properties": properties,
    }


def cluster_leads_to_geojson(clusters: List[Dict], singles: List[Dict]) -> Dict:
    """Centroid marker per cluster, then its members tagged clusterId/clusterName, then singles."""
    features = []
    for c in clusters:
        features.append(_point(c["lng"], c["lat"], {
            "id": c["id"],
            "name": c["name"],
            "score": c["avgScore"],
            "type": "Neighborhood",
            "trigger": f"{c['propertyCount']} properties",
            "distance": 0,
            "isCluster": True,
            "propertyCount": c["propertyCount"],
            "avgPropertyAge": c["avgPropertyAge"],
            "stormExposurePct": c["stormExposurePct"],
            "permitActivityPct": c["permitActivityPct"],
            "reasons": c["topReasons"],
            "industry": "residential_service",
        }))
        for lead in c["leads"]:
            features.append(_point(lead["lng"], lead["lat"], {
                **lead, "clusterId": c["id"], "clusterName": c["name"],
            }))

    for lead in singles:
        features.append(_point(lead["lng"], lead["lat"], lead))

    return {"type": "FeatureCollection", "features": features}
