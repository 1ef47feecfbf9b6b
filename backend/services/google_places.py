"""
Cadence CRM - Google Places provider

Nearby Search for B2B / Commercial / Retail / Photographer industries,
Place Details (on click only, never in bulk), Street View availability.
Server-side only: the API key never leaves the backend.
"""

import asyncio
import logging
from typing import Dict, List, Optional, Tuple
from urllib.parse import urlencode

import httpx

from config import GOOGLE_PLACES_API_KEY
from services.radar_http import fetch_json

logger = logging.getLogger("google_places")

PLACES_NEARBY_URL = "https://maps.googleapis.com/maps/api/place/nearbysearch/json"
PLACES_DETAILS_URL = "https://maps.googleapis.com/maps/api/place/details/json"
STREET_VIEW_URL = "https://maps.googleapis.com/maps/api/streetview"
STREET_VIEW_META_URL = "https://maps.googleapis.com/maps/api/streetview/metadata"

# Google caps nearby search radius at 50km
MAX_NEARBY_RADIUS_M = 50000
# Pause between keyword queries
KEYWORD_DELAY_S = 0.1

DETAILS_FIELDS = (
    "place_id,name,formatted_address,formatted_phone_number,website,url,"
    "rating,user_ratings_total,types,business_status"
)


# ---- Industry -> search config ----

INDUSTRY_SEARCH_CONFIGS: Dict[str, Dict] = {
    "b2b_service": {
        "type": "establishment",
        "keywords": [
            "business services", "marketing agency", "consulting firm", "IT services",
            "accounting firm", "law office", "insurance agency", "real estate office",
        ],
        "place_types": [
            "accounting", "lawyer", "insurance_agency", "real_estate_agency",
            "finance", "travel_agency", "moving_company", "storage", "electrician",
            "dentist", "doctor", "veterinary_care", "car_repair", "beauty_salon",
            "gym", "restaurant",
        ],
    },
    "commercial_service": {
        "type": "establishment",
        "keywords": [
            "office building", "commercial property", "shopping center",
            "medical office", "industrial park", "warehouse",
        ],
        "place_types": [
            "shopping_mall", "storage", "hospital", "doctor", "dentist",
            "real_estate_agency", "lodging", "school", "university", "church",
        ],
    },
    "retail": {
        "type": "establishment",
        "keywords": ["retail store", "shopping center", "franchise", "restaurant", "fast food"],
        "place_types": [
            "store", "clothing_store", "convenience_store", "department_store",
            "electronics_store", "furniture_store", "hardware_store", "home_goods_store",
            "shoe_store", "shopping_mall", "supermarket", "restaurant", "meal_takeaway",
            "cafe", "bakery",
        ],
    },
    "photographer": {
        "type": "establishment",
        "keywords": [
            "wedding venue", "event space", "banquet hall", "conference center",
            "hotel ballroom", "winery venue", "garden venue",
        ],
        "place_types": ["lodging", "event_venue", "wedding_venue", "banquet_hall", "restaurant", "park"],
    },
}
# "default" prospects like b2b
INDUSTRY_SEARCH_CONFIGS["default"] = INDUSTRY_SEARCH_CONFIGS["b2b_service"]


def get_industry_search_config(industry: str) -> Optional[Dict]:
    return INDUSTRY_SEARCH_CONFIGS.get(industry)


# ---- Nearby Search ----

async def nearby_search(
    client: httpx.AsyncClient,
    lat: float,
    lng: float,
    radius_m: float,
    keyword: str,
    place_type: Optional[str] = None,
    page_token: Optional[str] = None,
) -> Tuple[List[Dict], Optional[str]]:
    params = {
        "location": f"{lat},{lng}",
        "radius": str(int(min(radius_m, MAX_NEARBY_RADIUS_M))),
        "keyword": keyword,
        "key": GOOGLE_PLACES_API_KEY,
    }
    if place_type:
        params["type"] = place_type
    if page_token:
        params["pagetoken"] = page_token

    data = await fetch_json(client, PLACES_NEARBY_URL, params=params, tag="PLACES")
    if not isinstance(data, dict):
        return [], None

    status = data.get("status")
    if status == "REQUEST_DENIED":
        logger.error(f"[PLACES] API denied: {data.get('error_message')}")
        return [], None
    if status not in ("OK", "ZERO_RESULTS"):
        logger.warning(f"[PLACES] status={status} {data.get('error_message', '')}")

    return data.get("results") or [], data.get("next_page_token")


async def search_places_with_keywords(
    client: httpx.AsyncClient,
    keywords: List[str],
    lat: float,
    lng: float,
    radius_m: float,
    max_results: int = 150,
    place_type: Optional[str] = "establishment",
) -> List[Dict]:
    """
    One nearby search per keyword, dedup by place_id,
    skip permanently closed businesses, stop at max_results.
    """
    seen = set()
    all_results: List[Dict] = []

    for idx, keyword in enumerate(keywords):
        if len(all_results) >= max_results:
            break

        results, _ = await nearby_search(client, lat, lng, radius_m, keyword, place_type)
        for place in results:
            place_id = place.get("place_id")
            if not place_id or place_id in seen:
                continue
            if place.get("business_status") == "CLOSED_PERMANENTLY":
                continue
            if not (place.get("geometry") or {}).get("location"):
                continue

            seen.add(place_id)
            all_results.append(place)
            if len(all_results) >= max_results:
                break

        if idx < len(keywords) - 1 and KEYWORD_DELAY_S:
            await asyncio.sleep(KEYWORD_DELAY_S)

    return all_results


async def search_places(
    client: httpx.AsyncClient,
    industry: str,
    lat: float,
    lng: float,
    radius_m: float,
    max_results: int = 100,
) -> List[Dict]:
    config = get_industry_search_config(industry)
    if not config:
        logger.warning(f"[PLACES] No search config for industry: {industry}")
        return []

    return await search_places_with_keywords(
        client, config["keywords"], lat, lng, radius_m, max_results, config["type"],
    )


# ---- Place Details ----

async def get_place_details(client: httpx.AsyncClient, place_id: str) -> Optional[Dict]:
    params = {
        "place_id": place_id,
        "fields": DETAILS_FIELDS,
        "key": GOOGLE_PLACES_API_KEY,
    }
    data = await fetch_json(client, PLACES_DETAILS_URL, params=params, tag="PLACES")
    if not isinstance(data, dict) or data.get("status") != "OK":
        return None
    return data.get("result")


# ---- Street View ----

async def has_street_view(client: httpx.AsyncClient, lat: float, lng: float) -> bool:
    params = {"location": f"{lat},{lng}", "key": GOOGLE_PLACES_API_KEY}
    data = await fetch_json(client, STREET_VIEW_META_URL, params=params, tag="STREETVIEW")
    return isinstance(data, dict) and data.get("status") == "OK"


def get_street_view_urls(lat: float, lng: float, size: str = "400x250") -> List[str]:
    """3 headings around the point."""
    urls = []
    for heading in (0, 120, 240):
        params = {
            "location": f"{lat},{lng}",
            "size": size,
            "heading": str(heading),
            "pitch": "5",
            "fov": "90",
            "key": GOOGLE_PLACES_API_KEY,
        }
        urls.append(f"{STREET_VIEW_URL}?{urlencode(params)}")
    return urls


def get_maps_url(lat: Optional[float] = None, lng: Optional[float] = None,
                 place_id: Optional[str] = None, details_url: Optional[str] = None) -> Optional[str]:
    if lat is not None and lng is not None:
        return f"https://www.google.com/maps/@{lat},{lng},18z"
    if details_url:
        return details_url
    if place_id:
        return f"https://www.google.com/maps/place/?q=place_id:{place_id}"
    return None
