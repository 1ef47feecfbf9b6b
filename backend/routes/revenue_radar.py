"""
Cadence CRM - Routes Revenue Radar

- GET  /revenue-radar/search              map search (cached, rate limited per org)
- GET  /revenue-radar/place-details       details + street view for one place (on click)
- GET  /revenue-radar/street-view         street view only (residential leads)
- GET  /revenue-radar/config              radar config for an industry
- POST /revenue-radar/create-opportunity  lead -> company + deal
"""

import asyncio
import logging
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Request
from fastapi.responses import JSONResponse

from config import db
from models.radar import CreateOpportunityRequest
from routes.auth import get_current_user, get_optional_user, resolve_org_id
from services.google_places import get_maps_url, get_place_details, get_street_view_urls, has_street_view
from services.opportunity import OpportunityError, create_opportunity
from services.radar_cache import MongoRadarStore, RadarStore, clean_expired_cache
from services.radar_config import get_default_filters, get_radar_config, list_industries, serialize_config
from services.radar_http import new_radar_client
from services.radar_search import parse_search_params, run_search

logger = logging.getLogger("revenue_radar")

router = APIRouter(prefix="/revenue-radar", tags=["Revenue Radar"])


# ==================== DEPENDENCIES ====================

def get_radar_store() -> RadarStore:
    return MongoRadarStore(db)


def get_crm_db():
    return db


async def get_radar_client():
    async with new_radar_client() as client:
        yield client


def _parse_coord(raw: Optional[str]) -> Optional[float]:
    if raw is None or raw == "":
        return None
    try:
        return float(raw)
    except ValueError:
        return None


async def _street_view(client, lat: float, lng: float) -> dict:
    available = await has_street_view(client, lat, lng)
    return {
        "available": available,
        "urls": get_street_view_urls(lat, lng, "400x250") if available else [],
    }


# ==================== SEARCH ====================

@router.get("/search")
async def search(
    request: Request,
    background_tasks: BackgroundTasks,
    user: Optional[dict] = Depends(get_optional_user),
    store: RadarStore = Depends(get_radar_store),
    client=Depends(get_radar_client),
):
    """Leads + storms + permits (+ neighborhoods) around a point."""
    params = parse_search_params(request.query_params)
    status, body = await run_search(params, store, resolve_org_id(user), client)

    if status == 200 and not body["meta"]["cached"]:
        background_tasks.add_task(clean_expired_cache, store)

    return JSONResponse(status_code=status, content=body)


# ==================== PLACE DETAILS / STREET VIEW ====================

@router.get("/place-details")
async def place_details(
    place_id: Optional[str] = None,
    lat: Optional[str] = None,
    lng: Optional[str] = None,
    client=Depends(get_radar_client),
):
    """Details d'un lieu, appele au clic uniquement (jamais en masse)."""
    if not place_id:
        raise HTTPException(status_code=400, detail="place_id requis")

    p_lat, p_lng = _parse_coord(lat), _parse_coord(lng)
    with_street_view = p_lat is not None and p_lng is not None

    if with_street_view:
        details, street_view = await asyncio.gather(
            get_place_details(client, place_id),
            _street_view(client, p_lat, p_lng),
        )
    else:
        details = await get_place_details(client, place_id)
        street_view = {"available": False, "urls": []}

    if not details:
        raise HTTPException(status_code=404, detail="Lieu non trouvé")

    return {
        "details": details,
        "streetView": street_view,
        "mapsUrl": get_maps_url(
            lat=p_lat if with_street_view else None,
            lng=p_lng if with_street_view else None,
            place_id=place_id,
            details_url=details.get("url"),
        ),
    }


@router.get("/street-view")
async def street_view(
    lat: Optional[str] = None,
    lng: Optional[str] = None,
    client=Depends(get_radar_client),
):
    """Street View seul, pour les leads residentiels sans place_id."""
    p_lat, p_lng = _parse_coord(lat), _parse_coord(lng)
    if p_lat is None or p_lng is None:
        raise HTTPException(status_code=400, detail="lat et lng requis")

    return {
        "streetView": await _street_view(client, p_lat, p_lng),
        "mapsUrl": get_maps_url(lat=p_lat, lng=p_lng),
    }


# ==================== CONFIG ====================

@router.get("/config")
async def radar_config(industry: Optional[str] = None):
    """Config radar resolue (signaux, rayon max, nombre max de resultats)."""
    config = get_radar_config(industry)
    return {
        "industry": config["id"],
        "config": serialize_config(config),
        "defaultFilters": get_default_filters(industry),
        "industries": list_industries(),
    }


# ==================== CREATE OPPORTUNITY ====================

@router.post("/create-opportunity")
async def create_opportunity_from_lead(
    data: CreateOpportunityRequest,
    user: dict = Depends(get_current_user),
    database=Depends(get_crm_db),
):
    """Lead radar -> deal (+ company pour les leads business)."""
    try:
        return await create_opportunity(user, data.lead, data.industry, data.trade, database=database)
    except OpportunityError as e:
        raise HTTPException(status_code=e.status_code, detail=e.detail)
