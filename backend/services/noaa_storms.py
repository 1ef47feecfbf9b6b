"""
Cadence CRM - NOAA storm provider

Severe weather events from:
1. NWS Alerts API  - active warnings/watches (with polygons)
2. SPC storm reports - past 7 days of hail / wind / tornado reports (CSV)

Free, no API key. Events are a proximity signal only, never stored.
"""

import asyncio
import logging
from datetime import datetime, timezone, timedelta
from typing import Dict, List, Optional

import httpx

from config import RADAR_USER_AGENT, RADAR_UPSTREAM_CONCURRENCY
from services.geo import circle_polygon, distance_between, miles_to_meters
from services.radar_http import fetch_json, fetch_text, bounded_gather

logger = logging.getLogger("noaa_storms")

NWS_POINTS_URL = "https://api.weather.gov/points"
NWS_ALERTS_URL = "https://api.weather.gov/alerts/active"
SPC_BASE = "https://www.spc.noaa.gov/climo/reports"

NWS_HEADERS = {
    "User-Agent": RADAR_USER_AGENT,
    "Accept": "application/geo+json",
}
SPC_HEADERS = {"User-Agent": RADAR_USER_AGENT}

SPC_REPORT_TYPES = [("hail", "hail"), ("wind", "wind"), ("torn", "tornado")]
SPC_LOOKBACK_DAYS = 7

STORM_EVENT_KEYWORDS = ("hail", "tornado", "thunder", "wind", "severe")


def when_label(days_ago: int) -> str:
    if days_ago <= 0:
        return "today"
    if days_ago == 1:
        return "yesterday"
    return f"{days_ago}d ago"


def map_nws_severity(severity: str) -> str:
    if severity in ("Extreme", "Severe"):
        return "severe"
    if severity == "Moderate":
        return "moderate"
    return "minor"


def map_event_type(event: str) -> str:
    e = (event or "").lower()
    if "hail" in e:
        return "hail"
    if "tornado" in e:
        return "tornado"
    if "wind" in e:
        return "wind"
    return "thunderstorm"


def _parse_float(val) -> Optional[float]:
    try:
        return float(val)
    except (TypeError, ValueError):
        return None


def _days_since(iso_date: str, now: Optional[datetime] = None) -> int:
    now = now or datetime.now(timezone.utc)
    try:
        effective = datetime.fromisoformat(iso_date.replace("Z", "+00:00"))
    except (AttributeError, ValueError):
        return 0
    if effective.tzinfo is None:
        effective = effective.replace(tzinfo=timezone.utc)
    return max(0, (now - effective).days)


# ---- NWS ----

async def fetch_nws_alerts(client: httpx.AsyncClient, lat: float, lng: float) -> List[Dict]:
    """Active alerts for the state containing the point."""
    point = await fetch_json(
        client, f"{NWS_POINTS_URL}/{lat:.4f},{lng:.4f}", headers=NWS_HEADERS, tag="STORMS",
    )
    if not isinstance(point, dict):
        return []

    relative = (point.get("properties") or {}).get("relativeLocation") or {}
    state = (relative.get("properties") or {}).get("state")
    if not state:
        return []

    alerts = await fetch_json(
        client, NWS_ALERTS_URL, params={"area": state, "limit": 50}, headers=NWS_HEADERS, tag="STORMS",
    )
    if not isinstance(alerts, dict):
        return []
    return alerts.get("features") or []


def alert_to_polygon(alert: Dict, now: Optional[datetime] = None) -> Optional[Dict]:
    geometry = alert.get("geometry") or {}
    if not geometry.get("coordinates"):
        return None
    props = alert.get("properties") or {}
    days_ago = _days_since(props.get("effective", ""), now)
    return {
        "type": "Feature",
        "geometry": {"type": "Polygon", "coordinates": geometry["coordinates"]},
        "properties": {
            "id": alert.get("id"),
            "label": f"{props.get('event', 'Alert')} • {when_label(days_ago)}",
            "severity": map_nws_severity(props.get("severity", "")),
            "type": map_event_type(props.get("event", "")),
            "date": props.get("effective"),
            "daysAgo": days_ago,
        },
    }


# ---- SPC ----

def parse_spc_csv(text: str, report_type: str, days_ago: int, date_str: str) -> List[Dict]:
    """Time,Size|Speed|F_Scale,Location,County,State,Lat,Lon,Comments"""
    reports = []
    for line in (text or "").splitlines()[1:]:
        parts = line.split(",")
        if len(parts) < 7:
            continue
        lat = _parse_float(parts[5])
        lng = _parse_float(parts[6])
        if lat is None or lng is None:
            continue
        reports.append({
            "time": parts[0].strip(),
            "magnitude": parts[1].strip() or "UNK",
            "location": parts[2].strip(),
            "county": parts[3].strip(),
            "state": parts[4].strip(),
            "lat": lat,
            # SPC longitudes are positive-west
            "lng": -abs(lng),
            "type": report_type,
            "daysAgo": days_ago,
            "dateStr": date_str,
        })
    return reports


def _spc_sources(today: datetime) -> List[Dict]:
    sources = []
    for suffix, report_type in SPC_REPORT_TYPES:
        for label, days_ago in (("today", 0), ("yesterday", 1)):
            sources.append({
                "url": f"{SPC_BASE}/{label}_{suffix}.csv",
                "type": report_type, "days_ago": days_ago, "date_str": label,
            })
    for days_ago in range(2, SPC_LOOKBACK_DAYS + 1):
        d = today - timedelta(days=days_ago)
        for suffix, report_type in SPC_REPORT_TYPES:
            sources.append({
                "url": f"{SPC_BASE}/{d.strftime('%y%m%d')}_rpts_filtered_{suffix}.csv",
                "type": report_type, "days_ago": days_ago, "date_str": d.strftime("%m/%d"),
            })
    return sources


async def fetch_spc_reports(client: httpx.AsyncClient, concurrency: int = RADAR_UPSTREAM_CONCURRENCY) -> List[Dict]:
    sources = _spc_sources(datetime.now(timezone.utc))

    async def _one(src):
        text = await fetch_text(client, src["url"], headers=SPC_HEADERS, tag="STORMS")
        if not text:
            return []
        return parse_spc_csv(text, src["type"], src["days_ago"], src["date_str"])

    batches = await bounded_gather(sources, _one, concurrency)
    return [r for batch in batches for r in batch]


def spc_severity(report: Dict) -> str:
    mag = _parse_float(report.get("magnitude")) or 0
    if report["type"] == "tornado":
        return "severe"
    if report["type"] == "hail" and mag >= 2.0:
        return "severe"
    return "moderate" if mag >= 1.0 else "minor"


def spc_type_label(report: Dict) -> str:
    mag = _parse_float(report.get("magnitude")) or 1.0
    if report["type"] == "hail":
        return f"{report['magnitude']}in hail"
    if report["type"] == "tornado":
        return f"EF{min(5, int(mag // 20))} tornado"
    return f"{report['magnitude']}mph wind"


def spc_impact_radius_m(report: Dict) -> float:
    mag = _parse_float(report.get("magnitude")) or 1.0
    if report["type"] == "hail":
        return min(8000, 2000 + mag * 3000)
    if report["type"] == "tornado":
        return min(12000, 3000 + mag * 2000)
    if report["type"] == "wind":
        return min(6000, 2000 + mag * 30)
    return 3000


def spc_to_polygon(report: Dict, idx: int, now: Optional[datetime] = None) -> Dict:
    now = now or datetime.now(timezone.utc)
    return {
        "type": "Feature",
        "geometry": {
            "type": "Polygon",
            "coordinates": [circle_polygon(report["lng"], report["lat"], spc_impact_radius_m(report))],
        },
        "properties": {
            "id": f"spc-{report['type']}-{idx}",
            "label": f"{spc_type_label(report)} • {report['location']}, {report['state']} • {when_label(report['daysAgo'])}",
            "severity": spc_severity(report),
            "type": report["type"],
            "date": (now - timedelta(days=report["daysAgo"])).isoformat(),
            "daysAgo": report["daysAgo"],
        },
    }


# ---- Main ----

async def get_storm_data(client: httpx.AsyncClient, lat: float, lng: float, radius_miles: float) -> Dict:
    """
    Returns {"storms": FeatureCollection of impact polygons,
             "storm_events": [StormEvent, ...]}
    """
    radius_m = miles_to_meters(radius_miles)
    now = datetime.now(timezone.utc)
    polygons: List[Dict] = []
    events: List[Dict] = []

    alerts, reports = await asyncio.gather(
        fetch_nws_alerts(client, lat, lng),
        fetch_spc_reports(client),
    )

    # 1. NWS active alerts
    for alert in alerts:
        props = alert.get("properties") or {}
        event = (props.get("event") or "").lower()
        if not any(k in event for k in STORM_EVENT_KEYWORDS):
            continue

        poly = alert_to_polygon(alert, now)
        if poly:
            polygons.append(poly)

        events.append({
            "id": alert.get("id"),
            "type": map_event_type(props.get("event", "")),
            # alert zones have no single point: anchor at the search center
            "lat": lat,
            "lng": lng,
            "radiusMeters": radius_m * 0.3,
            "severity": map_nws_severity(props.get("severity", "")),
            "label": props.get("headline") or props.get("event"),
            "date": props.get("effective"),
            "daysAgo": _days_since(props.get("effective", ""), now),
            "source": "NWS",
        })

    # 2. SPC reports inside the search radius
    for i, r in enumerate(reports):
        if distance_between(lat, lng, r["lat"], r["lng"]) > radius_m:
            continue

        polygons.append(spc_to_polygon(r, i, now))
        events.append({
            "id": f"spc-{r['type']}-{i}",
            "type": r["type"],
            "lat": r["lat"],
            "lng": r["lng"],
            "radiusMeters": 3000,
            "severity": "severe" if spc_severity(r) == "severe" else "moderate",
            "label": f"{'Tornado' if r['type'] == 'tornado' else spc_type_label(r)} • {r['location']}, {r['state']}",
            "date": (now - timedelta(days=r["daysAgo"])).isoformat(),
            "daysAgo": r["daysAgo"],
            "magnitude": r["magnitude"],
            "source": "SPC",
        })

    logger.info(f"[STORMS] {len(events)} events ({len(alerts)} NWS alerts, {len(reports)} SPC reports scanned)")
    return {
        "storms": {"type": "FeatureCollection", "features": polygons},
        "storm_events": events,
    }
