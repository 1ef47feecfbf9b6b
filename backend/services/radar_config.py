"""
Cadence CRM - Revenue Radar industry configuration

Per-industry radar settings: data sources, radius/result caps,
toggleable scoring signals (filter chips) and lead nouns.

Industries:
- residential_service (+ roofing / solar / hvac aliases)
- b2b_service, commercial_service, retail, default  -> Google Places
- photographer                                      -> Google Places by niche
"""

from copy import deepcopy
from typing import Dict, List, Optional

RADAR_INDUSTRIES = [
    "roofing",
    "solar",
    "hvac",
    "residential_service",
    "b2b_service",
    "commercial_service",
    "retail",
    "photographer",
    "default",
]


def _signal(id: str, label: str, description: str, color: str, default_on: bool = True) -> Dict:
    return {
        "id": id,
        "label": label,
        "description": description,
        "color": color,
        "default_on": default_on,
    }


# ---- Signals ----

RESIDENTIAL_SIGNALS = [
    _signal("age", "Home Age", "Homes in service window for your trade", "#35FF7A"),
    _signal("income", "Income Tier", "Median household income in area", "#F59E0B"),
    _signal("owner", "Owner Occupied", "High homeownership areas", "#8B5CF6"),
    _signal("storm", "Storm", "Recent severe weather events", "#FF3B3B"),
    _signal("permit", "Permits", "Active building permits nearby", "#3B82F6", default_on=False),
]

BUSINESS_SIGNALS = [
    _signal("low_rating", "Low Rating", "Businesses rated under 3.8", "#F59E0B"),
    _signal("no_website", "No Website", "No web presence detected", "#EF4444"),
    _signal("low_reviews", "Few Reviews", "Low review count", "#8B5CF6", default_on=False),
    _signal("industry_match", "Industry Match", "Matches your target industry", "#10B981"),
]

PHOTOGRAPHER_SIGNALS = [
    _signal("venue_match", "Niche Match", "Location matches your photography niche", "#E91E8C"),
    _signal("popular", "Popular", "Highly rated & reviewed locations", "#F59E0B"),
    _signal("scenic", "Scenic", "Outdoor, natural, or visually interesting", "#10B981"),
]


# ---- Configurations ----

RESIDENTIAL_SERVICE_CONFIG = {
    "id": "residential_service",
    "label": "Residential Service",
    "description": "Home lifecycle intelligence — all trades",
    "data_sources": ["US Census", "NOAA Storm Data", "Permit Datasets", "Google Geocoding"],
    "max_radius_miles": 50,
    "max_results": 200,
    "signals": RESIDENTIAL_SIGNALS,
    "scoring_factors": ["Home age", "Income tier", "Owner occupancy", "Storm proximity", "Permit activity", "Distance"],
    "lead_noun": "property",
    "lead_noun_plural": "properties",
}

B2B_SERVICE_CONFIG = {
    "id": "b2b_service",
    "label": "B2B Service",
    "description": "Marketing, IT, Consulting — business prospecting",
    "data_sources": ["Google Places API", "Business Directories", "Website Signals"],
    "max_radius_miles": 25,
    "max_results": 200,
    "signals": BUSINESS_SIGNALS,
    "scoring_factors": ["Rating under threshold", "Low review count", "No website", "Industry match", "Distance"],
    "lead_noun": "business",
    "lead_noun_plural": "businesses",
}

COMMERCIAL_SERVICE_CONFIG = {
    "id": "commercial_service",
    "label": "Commercial Service",
    "description": "Cleaning, Landscaping, Security — commercial property prospecting",
    "data_sources": ["Google Places", "Building Footprints", "Office Clusters"],
    "max_radius_miles": 30,
    "max_results": 300,
    "signals": BUSINESS_SIGNALS,
    "scoring_factors": ["Rating", "Review count", "Web presence", "Industry match", "Distance"],
    "lead_noun": "business",
    "lead_noun_plural": "businesses",
}

RETAIL_CONFIG = {
    "id": "retail",
    "label": "Retail / Franchise",
    "description": "Expansion strategy — gap analysis & competitor mapping",
    "data_sources": ["Google Places", "Population Density", "Competitor Data", "Zoning"],
    "max_radius_miles": 50,
    "max_results": 300,
    "signals": BUSINESS_SIGNALS,
    "scoring_factors": ["Rating", "Review count", "Web presence", "Industry match", "Distance"],
    "lead_noun": "business",
    "lead_noun_plural": "businesses",
}

PHOTOGRAPHER_CONFIG = {
    "id": "photographer",
    "label": "Photographer",
    "description": "Location intelligence — scout shoots by niche",
    "data_sources": ["Google Places", "Street View", "Location Intelligence"],
    "max_radius_miles": 30,
    "max_results": 150,
    "signals": PHOTOGRAPHER_SIGNALS,
    "scoring_factors": ["Niche match", "Rating & reviews", "Photo-friendly environment", "Public access", "Distance"],
    "lead_noun": "location",
    "lead_noun_plural": "locations",
}

DEFAULT_CONFIG = {
    **B2B_SERVICE_CONFIG,
    "id": "default",
    "label": "General Prospecting",
    "description": "General-purpose lead prospecting",
}


RADAR_CONFIGS: Dict[str, Dict] = {
    "roofing": {**RESIDENTIAL_SERVICE_CONFIG, "id": "roofing", "label": "Roofing"},
    "solar": {**RESIDENTIAL_SERVICE_CONFIG, "id": "solar", "label": "Solar"},
    "hvac": {**RESIDENTIAL_SERVICE_CONFIG, "id": "hvac", "label": "HVAC"},
    "residential_service": RESIDENTIAL_SERVICE_CONFIG,
    "b2b_service": B2B_SERVICE_CONFIG,
    "commercial_service": COMMERCIAL_SERVICE_CONFIG,
    "retail": RETAIL_CONFIG,
    "photographer": PHOTOGRAPHER_CONFIG,
    "default": DEFAULT_CONFIG,
}

# CRM industry types -> radar industry
CRM_INDUSTRY_MAPPING = {
    "service_professional": "b2b_service",
}


def get_radar_config(industry: Optional[str]) -> Dict:
    """
    Resolve the radar config for an industry.
    Direct match, then CRM mapping, then default. Never raises.
    """
    if not industry:
        return RADAR_CONFIGS["default"]

    if industry in RADAR_CONFIGS:
        return RADAR_CONFIGS[industry]

    mapped = CRM_INDUSTRY_MAPPING.get(industry)
    if mapped:
        return RADAR_CONFIGS[mapped]

    return RADAR_CONFIGS["default"]


def get_default_filters(industry: Optional[str]) -> Dict[str, bool]:
    """Filter map with every signal at its default_on state."""
    return {s["id"]: s["default_on"] for s in get_radar_config(industry)["signals"]}


def serialize_config(config: Dict) -> Dict:
    """Copie safe pour la reponse API"""
    return deepcopy(config)


# ---- Score helpers (map marker colors) ----

def get_score_color(score: float) -> str:
    if score >= 8.5:
        return "#35FF7A"
    if score >= 7.0:
        return "#FFD84D"
    return "#FF2D8A"


def get_score_label(score: float) -> str:
    if score >= 8.5:
        return "High"
    if score >= 7.0:
        return "Medium"
    return "Low"


def list_industries() -> List[Dict]:
    return [{"id": k, "label": v["label"]} for k, v in RADAR_CONFIGS.items()]
