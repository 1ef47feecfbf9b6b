"""
Cadence CRM - Revenue Radar search orchestrator

Flow for one search:
    validate -> cache lookup -> {hit: cached payload, meta.cached=true}
                             -> {miss: rate limit -> builder -> cache write -> +1 search}

- A cache hit bypasses the rate limit.
- A builder failure returns empty collections (200) and is neither
  cached nor counted.
- nocache=1 skips the cache read only.

Builders (dispatch by industry):
- residential : census + storms -> seeded candidate points -> geocode + tracts
                -> trade-weighted scoring -> nearby counts -> neighborhoods
- photographer: niche keyword places search -> niche scoring
- places      : industry keyword places search -> distressed-business scoring
"""

import asyncio
import json
import logging
import math
from contextlib import asynccontextmanager
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Tuple

import httpx

from config import (
    RADAR_DEFAULT_LAT,
    RADAR_DEFAULT_LNG,
    RADAR_DEFAULT_RADIUS,
    RADAR_GEOCODE_MAX_CALLS,
    RADAR_TRACT_MAX_CALLS,
    now_iso,
)
from services.census import batch_get_tracts, get_census_data
from services.clustering import (
    cluster_leads,
    cluster_leads_to_geojson,
    clusters_to_geojson,
    compute_nearby_counts,
)
from services.geo import (
    distance_between,
    meters_to_miles,
    miles_to_meters,
    random_point_in_radius,
    seed_from_coords,
    seeded_random,
)
from services.geocoding import batch_reverse_geocode
from services.google_places import search_places, search_places_with_keywords
from services.noaa_storms import get_storm_data
from services.photo_niches import get_photo_niche_profile
from services.radar_cache import (
    RadarStore,
    check_rate_limit,
    get_cached_result,
    increment_search_count,
    make_cache_key,
    set_cached_result,
)
from services.radar_config import get_default_filters, get_radar_config
from services.radar_http import new_radar_client
from services.scoring_engine import (
    empty_feature_collection,
    leads_to_geojson,
    score_photographer_lead,
    score_places_result,
    score_residential_lead,
    sort_leads,
)
from services.trade_profiles import get_trade_profile

logger = logging.getLogger("radar_search")

DEFAULT_INDUSTRY = "residential_service"
DEFAULT_TRADE = "general"
MIN_RADIUS_MILES = 0.1

# Residential candidate lattice
CANDIDATE_BASE = 80
CANDIDATE_PER_MILE = 3
STORM_NEARBY_MILES = 15
PERMIT_PROBABILITY = 0.12
MAX_PERMIT_FEATURES = 50
MIN_CLUSTER_SIZE = 3


# ==================== PARAMS ====================

def _parse_float(raw: Any, default: float) -> float:
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return default
    if not math.isfinite(value):
        return default
    return value


def parse_filters(raw: Optional[str]) -> Dict[str, bool]:
    """Malformed JSON -> {}, non-boolean values dropped."""
    if not raw:
        return {}
    try:
        parsed = json.loads(raw)
    except (TypeError, ValueError):
        logger.warning(f"[RADAR] Ignoring malformed filters: {raw[:100]}")
        return {}
    if not isinstance(parsed, dict):
        return {}
    return {str(k): v for k, v in parsed.items() if isinstance(v, bool)}


def parse_search_params(query: Mapping[str, Any]) -> Dict:
    """Normalize raw query params. Never raises: bad input falls back to defaults."""
    lat = _parse_float(query.get("lat"), RADAR_DEFAULT_LAT)
    if not -90 <= lat <= 90:
        lat = RADAR_DEFAULT_LAT
    lng = _parse_float(query.get("lng"), RADAR_DEFAULT_LNG)
    if not -180 <= lng <= 180:
        lng = RADAR_DEFAULT_LNG

    industry = (query.get("industry") or DEFAULT_INDUSTRY).strip()
    trade = (query.get("trade") or DEFAULT_TRADE).strip()
    config = get_radar_config(industry)

    radius = _parse_float(query.get("radius"), RADAR_DEFAULT_RADIUS)
    if radius <= 0:
        radius = RADAR_DEFAULT_RADIUS
    radius = max(MIN_RADIUS_MILES, min(radius, config["max_radius_miles"]))

    return {
        "lat": lat,
        "lng": lng,
        "radius": radius,
        "industry": industry,
        "trade": trade,
        # chips the caller did not send keep their default state
        "filters": {**get_default_filters(industry), **parse_filters(query.get("filters"))},
        "nocache": query.get("nocache") == "1",
        "max_results": config["max_results"],
    }


# ==================== BUILDERS ====================

def _empty_results() -> Dict:
    return {
        "leads": empty_feature_collection(),
        "storms": empty_feature_collection(),
        "permits": empty_feature_collection(),
    }


def candidate_count(max_results: int, radius_miles: float) -> int:
    return min(max_results * 2, math.floor(CANDIDATE_BASE + radius_miles * CANDIDATE_PER_MILE))


def generate_candidate_points(
    lat: float, lng: float, radius_miles: float, max_results: int, rand: Callable[[], float],
) -> List[Dict]:
    """Same center + radius + max_results -> same lattice."""
    radius_m = miles_to_meters(radius_miles)
    points = []
    for _ in range(candidate_count(max_results, radius_miles)):
        p_lng, p_lat = random_point_in_radius(lng, lat, radius_m, rand)
        points.append({"lat": p_lat, "lng": p_lng})
    return points


async def build_residential_results(
    client: httpx.AsyncClient,
    industry: str,
    lat: float,
    lng: float,
    radius_miles: float,
    filters: Dict[str, bool],
    max_results: int,
    trade: str,
) -> Dict:
    radius_m = miles_to_meters(radius_miles)
    profile = get_trade_profile(trade)

    # 1. Census + storms in parallel
    census_data, storm_data = await asyncio.gather(
        get_census_data(client, lat, lng, radius_miles),
        get_storm_data(client, lat, lng, radius_miles),
    )
    tract_map = {t["tractId"]: t for t in census_data["tracts"]}
    storm_events = storm_data["storm_events"]

    # 2. Candidate points
    rand = seeded_random(seed_from_coords(lat, lng))
    points = generate_candidate_points(lat, lng, radius_miles, max_results, rand)

    # 3. Geocode + tract lookup in parallel
    geocoded, tract_assignments = await asyncio.gather(
        batch_reverse_geocode(client, points, min(len(points), RADAR_GEOCODE_MAX_CALLS)),
        batch_get_tracts(client, points, RADAR_TRACT_MAX_CALLS),
    )

    # 4. Score only points with a real street address
    leads = []
    for i, p in enumerate(points):
        addr = geocoded.get(i)
        if not addr:
            continue

        tract_id = tract_assignments.get(i)
        tract = tract_map.get(tract_id) if tract_id else None

        closest_miles = None
        nearby_storms = []
        for s in storm_events:
            d = meters_to_miles(distance_between(p["lat"], p["lng"], s["lat"], s["lng"]))
            if closest_miles is None or d < closest_miles:
                closest_miles = d
            if d < STORM_NEARBY_MILES:
                nearby_storms.append(s)

        # TODO: replace with a real permit feed once one covers the service area
        has_permit = rand() < PERMIT_PROBABILITY

        signals = {
            "tract": tract,
            "nearby_storms": nearby_storms,
            "storm_proximity_miles": closest_miles,
            "has_permit_activity": has_permit,
            "permit_info": "Estimated permit activity in area" if has_permit else None,
        }
        lead = score_residential_lead(
            f"res-{i}", p["lat"], p["lng"], addr["street"],
            signals, profile, lat, lng, radius_m, filters,
        )
        lead["city"] = addr.get("city", "")
        lead["state"] = addr.get("state", "")
        leads.append(lead)

    # 5. Canvassing counts, ranking, neighborhoods
    compute_nearby_counts(leads)
    leads = sort_leads(leads)
    grouped = cluster_leads(leads, MIN_CLUSTER_SIZE)

    permit_features = []
    for idx, lead in enumerate([l for l in leads if l["hasPermit"]][:MAX_PERMIT_FEATURES]):
        permit_features.append({
            "type": "Feature",
            "geometry": {"type": "Point", "coordinates": [lead["lng"], lead["lat"]]},
            "properties": {
                "id": f"permit-{idx}",
                "permitType": "Building" if rand() < 0.5 else "Mechanical",
                "date": f"{1 + math.floor(rand() * 14)} days ago",
                "address": lead["address"],
            },
        })

    logger.info(
        f"[RADAR] residential trade={profile['id']} points={len(points)} "
        f"geocoded={len(geocoded)} leads={len(leads)} clusters={len(grouped['clusters'])}"
    )

    return {
        "leads": cluster_leads_to_geojson(grouped["clusters"], grouped["singles"]),
        "storms": storm_data["storms"],
        "permits": {"type": "FeatureCollection", "features": permit_features},
        "neighborhoods": clusters_to_geojson(grouped["clusters"]),
        "censusStats": {
            "areaMedianYearBuilt": census_data["areaMedianYearBuilt"],
            "areaMedianIncome": census_data["areaMedianIncome"],
            "areaOwnerOccupiedPct": census_data["areaOwnerOccupiedPct"],
            "areaTotalUnits": census_data["areaTotalUnits"],
            "tractsLoaded": len(census_data["tracts"]),
        },
        "trade": profile["id"],
    }


async def build_photographer_results(
    client: httpx.AsyncClient,
    industry: str,
    lat: float,
    lng: float,
    radius_miles: float,
    filters: Dict[str, bool],
    max_results: int,
    trade: str,
) -> Dict:
    radius_m = miles_to_meters(radius_miles)
    profile = get_photo_niche_profile(trade)

    places = await search_places_with_keywords(
        client, profile["search_keywords"], lat, lng, radius_m, max_results,
    )
    leads = sort_leads([
        score_photographer_lead(place, profile, lat, lng, radius_m, filters) for place in places
    ])
    logger.info(f"[RADAR] photographer niche={profile['id']} places={len(places)}")

    return {**_empty_results(), "leads": leads_to_geojson(leads), "niche": profile["id"]}


async def build_places_results(
    client: httpx.AsyncClient,
    industry: str,
    lat: float,
    lng: float,
    radius_miles: float,
    filters: Dict[str, bool],
    max_results: int,
    trade: str,
) -> Dict:
    radius_m = miles_to_meters(radius_miles)
    places = await search_places(client, industry, lat, lng, radius_m, max_results)

    leads = []
    for place in places:
        scored = score_places_result(place, industry, lat, lng, radius_m, filters)
        if scored:
            leads.append(scored)
    leads = sort_leads(leads)
    logger.info(f"[RADAR] {industry} places={len(places)} leads={len(leads)}")

    return {**_empty_results(), "leads": leads_to_geojson(leads)}


Builder = Callable[..., Awaitable[Dict]]

BUILDERS: Dict[str, Builder] = {
    "b2b_service": build_places_results,
    "commercial_service": build_places_results,
    "retail": build_places_results,
    "default": build_places_results,
    "photographer": build_photographer_results,
    "residential_service": build_residential_results,
    "roofing": build_residential_results,
    "solar": build_residential_results,
    "hvac": build_residential_results,
}


def get_builder(industry: str) -> Builder:
    """Unknown industries are treated as residential."""
    return BUILDERS.get(industry, build_residential_results)


# ==================== ORCHESTRATOR ====================

@asynccontextmanager
async def _radar_client(client: Optional[httpx.AsyncClient]):
    if client is not None:
        yield client
        return
    async with new_radar_client() as owned:
        yield owned


def rate_limit_body(rate_limit: Dict) -> Dict:
    return {
        "error": "rate_limit_exceeded",
        "message": f"Daily limit reached ({rate_limit['limit']}/day).",
        "remaining": 0,
        "limit": rate_limit["limit"],
        "resetAt": rate_limit["resetAt"],
    }


async def run_search(
    params: Dict,
    store: RadarStore,
    org_id: Optional[str] = None,
    client: Optional[httpx.AsyncClient] = None,
) -> Tuple[int, Dict]:
    """
    Returns (status_code, body).
    org_id None = anonymous/demo: no rate limit, no counter.
    """
    lat, lng, radius = params["lat"], params["lng"], params["radius"]
    industry, trade = params["industry"], params["trade"]
    industry_tag = f"{industry}:{trade}"
    cache_key = make_cache_key(lat, lng, industry_tag, radius)

    # 1. Cache
    if not params.get("nocache"):
        cached = await get_cached_result(store, cache_key)
        if cached:
            logger.info(f"[RADAR] Cache hit {cache_key}")
            return 200, {**cached, "meta": {**cached.get("meta", {}), "cached": True, "timestamp": now_iso()}}

    # 2. Quota (fresh searches only)
    if org_id:
        rate_limit = await check_rate_limit(store, org_id)
        if not rate_limit["allowed"]:
            logger.info(f"[RATE_LIMIT] org={org_id} blocked, limit={rate_limit['limit']}")
            return 429, rate_limit_body(rate_limit)

    # 3. Build
    failed = False
    builder = get_builder(industry)
    try:
        async with _radar_client(client) as c:
            data = await builder(
                c, industry, lat, lng, radius, params["filters"], params["max_results"], trade,
            )
    except Exception:
        logger.exception(f"[RADAR] Search failed industry={industry} trade={trade} at {lat},{lng}")
        data = _empty_results()
        failed = True

    meta = {
        "industry": industry,
        "trade": trade,
        "center": {"lat": lat, "lng": lng},
        "radius": radius,
        "maxResults": params["max_results"],
        "resultCount": len(data["leads"]["features"]),
        "cached": False,
        "timestamp": now_iso(),
        "censusStats": data.get("censusStats"),
    }
    body = {**data, "meta": meta}

    # 4. Persist + count (successful searches only)
    if not failed:
        await set_cached_result(store, cache_key, lat, lng, industry_tag, radius, body)
        if org_id:
            await increment_search_count(store, org_id)

    return 200, body
