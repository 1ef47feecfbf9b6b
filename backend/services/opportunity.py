"""
Cadence CRM - Revenue Radar -> CRM opportunity

Quick-create a deal from a radar lead:
- residential leads: no company, deal named after the address
- business / photographer leads: company (reused by name if it exists) + deal

Deal goes into the org's default pipeline (else any pipeline), first stage,
source "revenue_radar", with the lead's score and signal breakdown in the notes.

Free plan: FREE_PLAN_DEAL_LIMIT deals max.
"""

import logging
import re
import uuid
from typing import Dict, List, Optional, Tuple

from config import APP_URL, FREE_PLAN_DEAL_LIMIT, db, now_iso
from services.activity_logger import log_activity

logger = logging.getLogger("opportunity")

RESIDENTIAL_INDUSTRIES = ("residential_service", "roofing", "solar", "hvac")
DEAL_SOURCE = "revenue_radar"


class OpportunityError(Exception):
    """Conversion refused: carries the HTTP status the route should answer with."""

    def __init__(self, status_code: int, detail: str):
        super().__init__(detail)
        self.status_code = status_code
        self.detail = detail


# ---- Deal content ----

def trade_label(trade: Optional[str]) -> str:
    """"plumbing_electrical" -> "Plumbing electrical" """
    if not trade:
        return "Service"
    return trade[0].upper() + trade[1:].replace("_", " ")


def _known(value) -> bool:
    return bool(value) and value not in ("Unknown", "None nearby")


def _signal_breakdown(reasons: List[str]) -> List[str]:
    if not reasons:
        return []
    return ["", "Signal Breakdown:"] + [f"  • {r}" for r in reasons]


def build_residential_deal(lead: Dict, trade: Optional[str]) -> Tuple[str, str]:
    addr = lead.get("address") or lead.get("name") or "Residential Lead"
    city = lead.get("city") or ""
    state = lead.get("state") or ""
    name = f"{addr}, {city}" if city else addr

    notes = [
        f"Revenue Radar - {trade_label(trade)} Opportunity",
        f"Address: {name}{' ' + state if state else ''}",
        f"Score: {lead.get('score')}/10 ({lead.get('trigger') or 'Opportunity'})",
        f"Distance: {lead.get('distance')} mi from search center",
    ]
    if _known(lead.get("propertyAge")):
        notes.append(f"Area Home Age: {lead['propertyAge']}")
    if _known(lead.get("medianYearBuilt")):
        notes.append(f"Median Year Built: {lead['medianYearBuilt']}")
    if _known(lead.get("medianIncome")):
        notes.append(f"Median Income: {lead['medianIncome']}")
    if _known(lead.get("ownerOccupied")):
        notes.append(f"Owner Occupied: {lead['ownerOccupied']}")
    if _known(lead.get("stormProximity")):
        notes.append(f"Storm: {lead['stormProximity']}")
    if _known(lead.get("permitHistory")):
        notes.append(f"Permits: {lead['permitHistory']}")
    if (lead.get("nearbyCount") or 0) > 0:
        notes.append(f"{lead['nearbyCount']} similar properties within 0.3 mi")
    notes += _signal_breakdown(lead.get("reasons") or [])
    return name, "\n".join(notes)


def business_name(lead: Dict) -> str:
    return lead.get("businessName") or lead.get("venueName") or lead.get("name") or "Business Lead"


def build_business_deal(lead: Dict, industry: str) -> Tuple[str, str]:
    name = business_name(lead)
    notes = [
        "Revenue Radar - Prospected Lead",
        f"Address: {lead.get('address') or 'Address unknown'}",
        f"Score: {lead.get('score')}/10 ({lead.get('trigger') or 'Opportunity'})",
    ]
    if lead.get("rating"):
        notes.append(f"Rating: {lead['rating']}/5 ({lead.get('reviewCount') or 0} reviews)")
    if lead.get("category"):
        notes.append(f"Category: {lead['category']}")
    if lead.get("distance"):
        notes.append(f"Distance: {lead['distance']} mi")
    notes += _signal_breakdown(lead.get("reasons") or [])
    if industry == "photographer" and lead.get("venueType"):
        notes.append(f"Venue Type: {lead['venueType']}")
    return name, "\n".join(notes)


# ---- CRM lookups ----

async def check_deal_limit(database, org_id: str) -> None:
    """Free plan quota. FAIL-OPEN: lookup errors never block the conversion."""
    try:
        sub = await database.subscriptions.find_one({"org_id": org_id}, {"_id": 0, "plan_id": 1})
        is_free = not sub or sub.get("plan_id") == "free"
        if not is_free:
            return
        count = await database.deals.count_documents({"org_id": org_id})
    except Exception as e:
        logger.warning(f"[OPPORTUNITY] Deal limit check failed for org {org_id}: {e}")
        return

    if count >= FREE_PLAN_DEAL_LIMIT:
        raise OpportunityError(
            403,
            f"Deal limit reached on free plan ({FREE_PLAN_DEAL_LIMIT} active deals). Upgrade to create more.",
        )


async def resolve_first_stage(database, org_id: str) -> Tuple[Dict, Dict]:
    pipeline = await database.pipelines.find_one({"org_id": org_id, "is_default": True}, {"_id": 0})
    if not pipeline:
        pipeline = await database.pipelines.find_one({"org_id": org_id}, {"_id": 0})
    if not pipeline:
        raise OpportunityError(400, "No pipeline found. Please create a pipeline first.")

    stages = await database.pipeline_stages.find(
        {"pipeline_id": pipeline["id"]}, {"_id": 0}
    ).sort("position", 1).to_list(1)
    if not stages:
        raise OpportunityError(400, "No stages in pipeline.")
    return pipeline, stages[0]


async def find_or_create_company(database, org_id: str, lead: Dict) -> str:
    name = business_name(lead)
    existing = await database.companies.find_one(
        {"org_id": org_id, "name": {"$regex": f"^{re.escape(name)}$", "$options": "i"}},
        {"_id": 0, "id": 1},
    )
    if existing:
        return existing["id"]

    company = {
        "id": str(uuid.uuid4()),
        "org_id": org_id,
        "name": name,
        "address": lead.get("address"),
        "city": lead.get("city"),
        "state": lead.get("state"),
        "website": lead.get("website"),
        "phone": lead.get("phone"),
        "industry": lead.get("category"),
        "source": DEAL_SOURCE,
        "created_at": now_iso(),
    }
    await database.companies.insert_one(company)
    return company["id"]


# ---- Main ----

async def create_opportunity(
    user: Dict,
    lead: Dict,
    industry: str,
    trade: Optional[str] = None,
    database=None,
) -> Dict:
    database = database if database is not None else db
    org_id = user.get("org_id")
    if not org_id:
        raise OpportunityError(400, "No organization found")
    if not lead:
        raise OpportunityError(400, "No lead data provided")

    await check_deal_limit(database, org_id)
    pipeline, stage = await resolve_first_stage(database, org_id)

    company_id = None
    if industry in RESIDENTIAL_INDUSTRIES:
        deal_name, notes = build_residential_deal(lead, trade)
    else:
        deal_name, notes = build_business_deal(lead, industry)
        company_id = await find_or_create_company(database, org_id, lead)

    now = now_iso()
    deal = {
        "id": str(uuid.uuid4()),
        "org_id": org_id,
        "name": deal_name,
        "amount": 0,
        "pipeline_id": pipeline["id"],
        "stage_id": stage["id"],
        "company_id": company_id,
        "contact_id": None,
        "owner_id": user.get("id"),
        "description": notes,
        "source": DEAL_SOURCE,
        "radar_score": lead.get("score"),
        "radar_reasons": lead.get("reasons") or [],
        "radar_lead_id": lead.get("id"),
        "created_at": now,
        "updated_at": now,
    }
    await database.deals.insert_one(deal)

    try:
        await log_activity(
            user, "create", "deal",
            entity_id=deal["id"], entity_name=deal_name,
            details={"source": DEAL_SOURCE, "stage": stage.get("name"), "company_id": company_id},
            database=database,
        )
    except Exception as e:
        logger.warning(f"[OPPORTUNITY] Activity log failed for deal {deal['id']}: {e}")

    logger.info(f"[OPPORTUNITY] org={org_id} deal={deal['id']} industry={industry} company={company_id}")

    return {
        "success": True,
        "dealId": deal["id"],
        "companyId": company_id,
        "dealName": deal_name,
        "stageName": stage.get("name"),
        "dealUrl": f"{APP_URL}/deals/{deal['id']}",
    }
