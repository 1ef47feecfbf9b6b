"""
Cadence CRM - Revenue Radar residential trade profiles

Same data sources, different weights per trade.
Each profile defines which signals dominate and which
home-age windows trigger an opportunity.

Weights sum to 1.0 so the weighted total stays on the 0-10 scale.
"""

from typing import Dict

ROOFING = {
    "id": "roofing",
    "label": "Roofing",
    "description": "Storm damage, aging roofs, replacement cycles",
    "weights": {
        "property_age": 0.28,
        "storm_proximity": 0.25,
        "permit_activity": 0.12,
        "income_tier": 0.12,
        "owner_occupied": 0.10,
        "distance": 0.13,
    },
    "age_signals": {
        "prime_min": 15, "prime_max": 25,
        "extended_min": 12, "extended_max": 30,
        "label": "Roof replacement window",
    },
    "income_min_for_high_potential": 65000,
    "reason_templates": {
        "age_in_prime": "Roof age in replacement window ({age}yr)",
        "age_in_extended": "Roof approaching service age ({age}yr)",
        "high_income": "Higher income area — premium roof potential",
        "high_ownership": "High homeownership ({pct}%) — decision-makers present",
        "storm_impact": "Recent storm activity within {dist} mi ({when})",
        "permit_cluster": "Roofing/building permits active in area",
    },
}

HVAC = {
    "id": "hvac",
    "label": "HVAC",
    "description": "System replacements, efficiency upgrades, seasonal",
    "weights": {
        "property_age": 0.30,
        "storm_proximity": 0.08,
        "permit_activity": 0.15,
        "income_tier": 0.18,
        "owner_occupied": 0.12,
        "distance": 0.17,
    },
    "age_signals": {
        "prime_min": 10, "prime_max": 18,
        "extended_min": 8, "extended_max": 25,
        "label": "HVAC replacement cycle",
    },
    "income_min_for_high_potential": 60000,
    "reason_templates": {
        "age_in_prime": "HVAC system likely at replacement age ({age}yr)",
        "age_in_extended": "HVAC system aging — maintenance opportunity ({age}yr)",
        "high_income": "Higher income area — efficiency upgrade potential",
        "high_ownership": "High homeownership ({pct}%) — HVAC investment likely",
        "storm_impact": "Storm may have impacted exterior HVAC units ({when})",
        "permit_cluster": "HVAC/mechanical permits active in area",
    },
}

REMODELING = {
    "id": "remodeling",
    "label": "Remodeling",
    "description": "Kitchen, bath, whole-home renovations",
    "weights": {
        "property_age": 0.25,
        "storm_proximity": 0.05,
        "permit_activity": 0.20,
        "income_tier": 0.25,
        "owner_occupied": 0.12,
        "distance": 0.13,
    },
    "age_signals": {
        "prime_min": 25, "prime_max": 50,
        "extended_min": 15, "extended_max": 60,
        "label": "Renovation-ready age",
    },
    "income_min_for_high_potential": 80000,
    "reason_templates": {
        "age_in_prime": "Home age ideal for renovation ({age}yr)",
        "age_in_extended": "Home nearing renovation age ({age}yr)",
        "high_income": "High income area — remodel budget available",
        "high_ownership": "High homeownership ({pct}%) — renovation investment likely",
        "storm_impact": "Storm damage may trigger renovation decisions ({when})",
        "permit_cluster": "Remodel/renovation permits active nearby",
    },
}

SOLAR = {
    "id": "solar",
    "label": "Solar",
    "description": "Panel installation, energy savings",
    "weights": {
        "property_age": 0.15,
        "storm_proximity": 0.03,
        "permit_activity": 0.10,
        "income_tier": 0.32,
        "owner_occupied": 0.22,
        "distance": 0.18,
    },
    "age_signals": {
        "prime_min": 5, "prime_max": 25,
        "extended_min": 3, "extended_max": 35,
        "label": "Solar-compatible roof age",
    },
    "income_min_for_high_potential": 75000,
    "reason_templates": {
        "age_in_prime": "Roof age ideal for solar install ({age}yr)",
        "age_in_extended": "Roof age acceptable for solar ({age}yr)",
        "high_income": "High income — solar ROI attractive",
        "high_ownership": "High homeownership ({pct}%) — solar investment decision-makers",
        "storm_impact": "Recent storm — potential roof+solar bundle ({when})",
        "permit_cluster": "Solar/electrical permits trending in area",
    },
}

SIDING_WINDOWS = {
    "id": "siding_windows",
    "label": "Siding & Windows",
    "description": "Exterior upgrades, energy efficiency",
    "weights": {
        "property_age": 0.30,
        "storm_proximity": 0.18,
        "permit_activity": 0.10,
        "income_tier": 0.16,
        "owner_occupied": 0.12,
        "distance": 0.14,
    },
    "age_signals": {
        "prime_min": 20, "prime_max": 40,
        "extended_min": 15, "extended_max": 50,
        "label": "Siding/window replacement window",
    },
    "income_min_for_high_potential": 65000,
    "reason_templates": {
        "age_in_prime": "Siding/windows likely due for replacement ({age}yr)",
        "age_in_extended": "Exterior aging — upgrade opportunity ({age}yr)",
        "high_income": "Income supports exterior upgrade investment",
        "high_ownership": "High homeownership ({pct}%) — curb appeal matters",
        "storm_impact": "Storm may have damaged exterior surfaces ({when})",
        "permit_cluster": "Exterior/siding permits active in area",
    },
}

PLUMBING_ELECTRICAL = {
    "id": "plumbing_electrical",
    "label": "Plumbing & Electrical",
    "description": "Aging infrastructure, code upgrades, panel replacements",
    "weights": {
        "property_age": 0.35,
        "storm_proximity": 0.05,
        "permit_activity": 0.18,
        "income_tier": 0.15,
        "owner_occupied": 0.12,
        "distance": 0.15,
    },
    "age_signals": {
        "prime_min": 35, "prime_max": 60,
        "extended_min": 25, "extended_max": 70,
        "label": "Infrastructure upgrade needed",
    },
    "income_min_for_high_potential": 55000,
    "reason_templates": {
        "age_in_prime": "Plumbing/electrical likely outdated ({age}yr)",
        "age_in_extended": "Infrastructure aging — proactive maintenance ({age}yr)",
        "high_income": "Income supports infrastructure investment",
        "high_ownership": "High homeownership ({pct}%) — maintenance-motivated",
        "storm_impact": "Storm may have stressed aging systems ({when})",
        "permit_cluster": "Plumbing/electrical permits active in area",
    },
}

GENERAL = {
    "id": "general",
    "label": "General Contractor",
    "description": "Balanced scoring across all home service needs",
    "weights": {
        "property_age": 0.25,
        "storm_proximity": 0.12,
        "permit_activity": 0.15,
        "income_tier": 0.18,
        "owner_occupied": 0.13,
        "distance": 0.17,
    },
    "age_signals": {
        "prime_min": 15, "prime_max": 40,
        "extended_min": 10, "extended_max": 50,
        "label": "General service opportunity",
    },
    "income_min_for_high_potential": 60000,
    "reason_templates": {
        "age_in_prime": "Home age in prime service range ({age}yr)",
        "age_in_extended": "Home aging — multiple service needs likely ({age}yr)",
        "high_income": "Higher income area — larger project budgets",
        "high_ownership": "High homeownership ({pct}%) — invested in property",
        "storm_impact": "Recent storm activity nearby ({when})",
        "permit_cluster": "Building permits active in area",
    },
}


TRADE_PROFILES: Dict[str, Dict] = {
    "roofing": ROOFING,
    "hvac": HVAC,
    "remodeling": REMODELING,
    "solar": SOLAR,
    "siding_windows": SIDING_WINDOWS,
    "plumbing_electrical": PLUMBING_ELECTRICAL,
    "general": GENERAL,
}


def get_trade_profile(trade: str) -> Dict:
    """Unknown or empty trade -> general."""
    return TRADE_PROFILES.get((trade or "").strip().lower(), GENERAL)
