"""
Cadence CRM - Google Geocoding provider

Reverse geocodes sampled points to real street addresses.
Only points that resolve to a street are returned: no fake
addresses, no extrapolation.
"""

import logging
import re
from typing import Dict, List, Optional

import httpx

from config import GOOGLE_PLACES_API_KEY, RADAR_GEOCODE_MAX_CALLS, RADAR_UPSTREAM_CONCURRENCY
from services.radar_http import fetch_json, bounded_gather, evenly_spaced_indices

logger = logging.getLogger("geocoding")

GEOCODE_URL = "https://maps.googleapis.com/maps/api/geocode/json"

_UNIT_SUFFIX = re.compile(r"[A-Za-z]+$")


def _component(components: List[Dict], kind: str, short: bool = False) -> str:
    for c in components:
        if kind in (c.get("types") or []):
            return c.get("short_name" if short else "long_name") or ""
    return ""


def parse_geocode_result(result: Dict) -> Optional[Dict]:
    components = result.get("address_components") or []

    # "38C" -> "38"
    street_num = _UNIT_SUFFIX.sub("", _component(components, "street_number")).strip()
    route = _component(components, "route")
    if not route:
        return None
    street = f"{street_num} {route}" if street_num else route

    return {
        "formatted": result.get("formatted_address", ""),
        "street": street,
        "city": (
            _component(components, "locality")
            or _component(components, "sublocality")
            or _component(components, "administrative_area_level_2")
        ),
        "state": _component(components, "administrative_area_level_1", short=True),
        "zip": _component(components, "postal_code"),
        "county": _component(components, "administrative_area_level_2"),
    }


async def reverse_geocode(client: httpx.AsyncClient, lat: float, lng: float) -> Optional[Dict]:
    params = {
        "latlng": f"{lat},{lng}",
        "key": GOOGLE_PLACES_API_KEY,
        "result_type": "street_address|route|premise",
    }
    data = await fetch_json(client, GEOCODE_URL, params=params, tag="GEOCODE")
    if not isinstance(data, dict):
        return None

    status = data.get("status")
    if status == "REQUEST_DENIED":
        logger.error(f"[GEOCODE] API denied: {data.get('error_message')}")
        return None
    if status != "OK" or not data.get("results"):
        return None

    return parse_geocode_result(data["results"][0])


async def batch_reverse_geocode(
    client: httpx.AsyncClient,
    points: List[Dict],
    max_calls: int = RADAR_GEOCODE_MAX_CALLS,
    concurrency: int = RADAR_UPSTREAM_CONCURRENCY,
) -> Dict[int, Dict]:
    """
    Geocode up to max_calls evenly spread points.
    Returns {point index: address} for points that resolved.
    """
    indices = evenly_spaced_indices(len(points), max_calls)
    if not indices:
        return {}

    async def _one(idx):
        return idx, await reverse_geocode(client, points[idx]["lat"], points[idx]["lng"])

    results = {}
    for idx, addr in await bounded_gather(indices, _one, concurrency):
        if addr:
            results[idx] = addr

    logger.info(f"[GEOCODE] {len(results)}/{len(indices)} points resolved")
    return results
