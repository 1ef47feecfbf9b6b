"""
Cadence CRM - Revenue Radar scoring engine

Three variants, one contract: candidate + signals -> lead dict with
score in [0, 10] (one decimal), ordered reasons and a trigger label.

- Places (B2B / commercial / retail): distressed-business signals
- Residential: census + storm + permit, weighted by trade profile
- Photographer: niche venue match, popularity, photo-friendly keywords

Filters: {signal_id: bool}. A signal is active unless filters[id] is False.
A disabled signal, or a signal with no data, contributes nothing and
adds no reason. Scores are absolute (no post-hoc normalization).
"""

import re
from functools import lru_cache
from typing import Dict, List, Optional

from services.geo import distance_between, meters_to_miles
from services.google_places import get_industry_search_config

MAX_SCORE = 10.0

LOW_RATING_THRESHOLD = 3.8
WEAK_PRESENCE_REVIEWS = 5
LOW_REVIEWS_THRESHOLD = 20

STORM_NEAR_MILES = 5
STORM_MAX_MILES = 15

PLACE_CATEGORY_MAP = {
    "restaurant": "Restaurant",
    "dentist": "Dental Office",
    "doctor": "Medical Clinic",
    "lawyer": "Law Firm",
    "accounting": "Accounting",
    "real_estate_agency": "Real Estate",
    "insurance_agency": "Insurance",
    "car_repair": "Auto Repair",
    "beauty_salon": "Salon",
    "gym": "Gym/Fitness",
    "veterinary_care": "Veterinary",
    "store": "Retail Store",
    "lodging": "Hotel/Lodging",
    "church": "Church",
}

LOCATION_TYPE_MAP = {
    "park": "Park",
    "museum": "Museum",
    "art_gallery": "Gallery",
    "church": "Church",
    "lodging": "Hotel",
    "restaurant": "Restaurant",
    "tourist_attraction": "Attraction",
    "campground": "Campground",
    "library": "Library",
    "stadium": "Stadium",
}

# name keyword -> location type, first match wins
LOCATION_NAME_OVERRIDES = [
    (("venue", "banquet"), "Event Venue"),
    (("garden", "botanical"), "Garden"),
    (("winery", "vineyard"), "Winery"),
    (("warehouse",), "Warehouse"),
    (("marina", "dock"), "Marina"),
    (("gallery",), "Gallery"),
    (("cafe", "coffee"), "Cafe"),
]

OUTDOOR_KEYWORDS = [
    "park", "garden", "outdoor", "field", "lake", "waterfront", "pier", "beach", "trail",
    "nature", "scenic", "overlook", "terrace", "rooftop", "patio", "courtyard", "meadow",
    "forest", "river", "pond", "bridge",
]
INDUSTRIAL_KEYWORDS = [
    "warehouse", "industrial", "dock", "garage", "parking", "factory", "rail", "terminal",
    "yard", "hangar", "port", "overpass",
]
URBAN_KEYWORDS = [
    "gallery", "museum", "mural", "art", "monument", "historic", "architecture", "tower",
    "library", "theater", "station", "cultural",
]
PUBLIC_PLACE_TYPES = {"park", "museum", "church", "library", "tourist_attraction"}


# ---- Helpers ----

def is_enabled(filters: Optional[Dict], signal_id: str) -> bool:
    return (filters or {}).get(signal_id) is not False


def clamp_score(value: float) -> float:
    return round(max(0.0, min(MAX_SCORE, value)), 1)


@lru_cache(maxsize=512)
def _keyword_pattern(keyword: str):
    return re.compile(r"\b" + re.escape(keyword.lower()))


def has_keyword(text: str, keyword: str) -> bool:
    """Word-prefix match: "garden" hits "gardens", "art" does not hit "party"."""
    return bool(_keyword_pattern(keyword).search(text))


def _place_position(place: Dict):
    loc = (place.get("geometry") or {}).get("location") or {}
    return float(loc["lat"]), float(loc["lng"])


def _place_text(place: Dict) -> str:
    name = (place.get("name") or "").lower()
    types = " ".join(t.lower().replace("_", " ") for t in (place.get("types") or []))
    return f"{name} {types}"


def _distance_score(dist_m: float, radius_m: float) -> float:
    """10 at the center -> 2 at the edge, never below 1."""
    ratio = dist_m / radius_m if radius_m > 0 else 1.0
    return max(1.0, 10 - ratio * 8)


def place_category(place: Dict) -> str:
    for t in place.get("types") or []:
        if t in PLACE_CATEGORY_MAP:
            return PLACE_CATEGORY_MAP[t]
    return "Business"


def industry_keyword_tokens(industry: str) -> List[str]:
    config = get_industry_search_config(industry)
    if not config:
        return []
    tokens = set()
    for keyword in config["keywords"]:
        for word in keyword.lower().split():
            if len(word) >= 4:
                tokens.add(word)
    return sorted(tokens)


def matches_industry(place: Dict, industry: str) -> bool:
    """Place type in the vertical's type list, or a search keyword in its name/types."""
    config = get_industry_search_config(industry)
    if not config:
        return False
    types = set(place.get("types") or [])
    if types & set(config["place_types"]):
        return True
    text = _place_text(place)
    return any(has_keyword(text, token) for token in industry_keyword_tokens(industry))


# ═══════════════════════════════════════════════════════════════
# PLACES (B2B / COMMERCIAL / RETAIL)
# ═══════════════════════════════════════════════════════════════

def score_places_result(
    place: Dict,
    industry: str,
    search_lat: float,
    search_lng: float,
    radius_m: float,
    filters: Optional[Dict[str, bool]] = None,
) -> Optional[Dict]:
    """None when the place does not belong to the requested vertical."""
    if not matches_industry(place, industry):
        return None

    plat, plng = _place_position(place)
    dist_m = distance_between(search_lat, search_lng, plat, plng)

    rating = place.get("rating")
    has_rating = rating is not None
    rating = float(rating) if has_rating else 0.0
    reviews = int(place.get("user_ratings_total") or 0)
    category = place_category(place)
    reasons: List[str] = []

    score = 3.0

    low_rating = has_rating and rating < LOW_RATING_THRESHOLD
    if is_enabled(filters, "low_rating") and low_rating:
        score += 2.5
        reasons.append(f"Low rating: {rating:g}/5")

    # Nearby Search has no website field: fall back on weak presence
    website_known = "website" in place
    website = place.get("website") or None
    if website_known:
        no_website = not website
    else:
        no_website = not has_rating or reviews < WEAK_PRESENCE_REVIEWS
    if is_enabled(filters, "no_website") and no_website:
        score += 1.5
        reasons.append("No website detected" if website_known else "Weak online presence detected")

    low_reviews = reviews < LOW_REVIEWS_THRESHOLD
    if is_enabled(filters, "low_reviews") and low_reviews:
        score += 1.5
        reasons.append(f"Only {reviews} reviews")

    if is_enabled(filters, "industry_match"):
        score += 0.8
        reasons.append(f"Industry match: {category}")

    if radius_m > 0:
        score += max(0.0, 1.2 - (dist_m / radius_m) * 1.2)

    if not reasons:
        reasons.append("General opportunity signal")

    trigger = "Opportunity"
    if low_rating:
        trigger = "Low Rating"
    elif no_website:
        trigger = "Weak Presence"
    elif low_reviews:
        trigger = "Few Reviews"

    return {
        "id": place["place_id"],
        "lat": plat,
        "lng": plng,
        "name": place.get("name", ""),
        "businessName": place.get("name", ""),
        "address": place.get("vicinity") or place.get("formatted_address", ""),
        "score": clamp_score(score),
        "type": category,
        "trigger": trigger,
        "distance": round(meters_to_miles(dist_m), 2),
        "rating": rating,
        "reviewCount": reviews,
        "category": category,
        "website": website,
        "phone": place.get("formatted_phone_number"),
        "reasons": reasons,
        "lowRating": low_rating,
        "noWebsite": no_website,
        "lowReviews": low_reviews,
        "industry": industry,
        "place_id": place["place_id"],
    }


# ═══════════════════════════════════════════════════════════════
# RESIDENTIAL (CENSUS + TRADE-WEIGHTED)
# ═══════════════════════════════════════════════════════════════

def _age_subscore(median_age, age_signals) -> float:
    if median_age >= age_signals["prime_min"] and median_age <= age_signals["prime_max"]:
        return 10
    if median_age >= age_signals["extended_min"] and median_age <= age_signals["extended_max"]:
        return 8
    if median_age > age_signals["extended_max"]:
        return 6
    if median_age > 0:
        return 3
    return 0


def _income_subscore(income, threshold) -> float:
    if income >= threshold * 1.5:
        return 10
    if income >= threshold:
        return 8
    if income >= threshold * 0.7:
        return 6
    if income >= threshold * 0.5:
        return 4
    return 2


def _owner_subscore(owner_pct) -> float:
    if owner_pct >= 80:
        return 10
    if owner_pct >= 65:
        return 8
    if owner_pct >= 50:
        return 6
    if owner_pct >= 30:
        return 3
    return 1


def score_residential_lead(
    lead_id: str,
    lat: float,
    lng: float,
    address: str,
    signals: Dict,
    profile: Dict,
    search_lat: float,
    search_lng: float,
    radius_m: float,
    filters: Optional[Dict[str, bool]] = None,
) -> Dict:
    """
    signals = {
        "tract": CensusTractData | None,
        "nearby_storms": [StormEvent within 15 mi],
        "storm_proximity_miles": float | None,
        "has_permit_activity": bool,
        "permit_info": str | None,
    }
    """
    dist_m = distance_between(search_lat, search_lng, lat, lng)
    w = profile["weights"]
    templates = profile["reason_templates"]
    age_signals = profile["age_signals"]
    income_threshold = profile["income_min_for_high_potential"]
    tract = signals.get("tract") or {}
    nearby_storms = signals.get("nearby_storms") or []
    storm_miles = signals.get("storm_proximity_miles")
    reasons: List[str] = []

    age_score = storm_score = permit_score = income_score = owner_score = 0.0

    # Property age
    median_age = tract.get("estimatedMedianAge")
    if is_enabled(filters, "age") and median_age is not None:
        age_score = _age_subscore(median_age, age_signals)
        if age_score == 10:
            reasons.append(templates["age_in_prime"].format(age=median_age))
        elif age_score == 8:
            reasons.append(templates["age_in_extended"].format(age=median_age))
        elif age_score == 6:
            reasons.append(f"Home age: ~{median_age}yr — older infrastructure")

    # Storm proximity
    if is_enabled(filters, "storm") and nearby_storms and storm_miles is not None:
        if storm_miles < STORM_MAX_MILES:
            storm_score = 10 if storm_miles < STORM_NEAR_MILES else 8
            most_recent = min(s.get("daysAgo", 7) for s in nearby_storms)
            when = "today" if most_recent == 0 else "yesterday" if most_recent == 1 else f"{most_recent}d ago"
            reasons.append(templates["storm_impact"].format(dist=f"{storm_miles:.1f}", when=when))

    # Permit activity
    has_permit = bool(signals.get("has_permit_activity"))
    if is_enabled(filters, "permit") and has_permit:
        permit_score = 9
        reasons.append(templates["permit_cluster"])

    # Income tier
    income = tract.get("medianIncome")
    if is_enabled(filters, "income") and income is not None:
        income_score = _income_subscore(income, income_threshold)
        if income_score >= 8:
            reasons.append(templates["high_income"])

    # Owner-occupied %
    owner_pct = tract.get("ownerOccupiedPct")
    if is_enabled(filters, "owner") and owner_pct is not None:
        owner_score = _owner_subscore(owner_pct)
        if owner_score >= 8:
            reasons.append(templates["high_ownership"].format(pct=owner_pct))

    dist_score = _distance_score(dist_m, radius_m)

    weighted = [
        ("Storm", storm_score * w["storm_proximity"]),
        ("Age", age_score * w["property_age"]),
        ("Permit", permit_score * w["permit_activity"]),
        ("Income", income_score * w["income_tier"]),
        ("Ownership", owner_score * w["owner_occupied"]),
    ]
    raw = sum(v for _, v in weighted) + dist_score * w["distance"]
    score = clamp_score(raw)

    if not reasons:
        reasons.append("Area opportunity signal")

    trigger = "Opportunity"
    top = max(v for _, v in weighted)
    if top > 0:
        trigger = next(label for label, v in weighted if v == top)

    year_built = tract.get("medianYearBuilt")

    return {
        "id": lead_id,
        "lat": lat,
        "lng": lng,
        "name": address,
        "address": address,
        "score": score,
        "type": "Residential",
        "trigger": trigger,
        "distance": round(meters_to_miles(dist_m), 2),
        "medianYearBuilt": str(year_built) if year_built else "Unknown",
        "propertyAge": f"~{median_age} years" if median_age is not None else "Unknown",
        "medianIncome": f"${round(income / 1000)}k" if income else "Unknown",
        "ownerOccupied": f"{owner_pct}%" if owner_pct is not None else "Unknown",
        "hasStorm": len(nearby_storms) > 0,
        "hasPermit": has_permit,
        "hasAge": median_age is not None and median_age >= age_signals["extended_min"],
        "hasIncome": income is not None and income >= income_threshold,
        "hasOwnership": owner_pct is not None and owner_pct >= 55,
        "stormProximity": f"{storm_miles:.1f} mi" if storm_miles is not None and nearby_storms else "None nearby",
        "permitHistory": (signals.get("permit_info") or "Active permits nearby") if has_permit else "None nearby",
        "nearbyCount": 0,
        "reasons": reasons,
        "industry": "residential_service",
        "trade": profile["id"],
    }


# ═══════════════════════════════════════════════════════════════
# PHOTOGRAPHER (NICHE-WEIGHTED)
# ═══════════════════════════════════════════════════════════════

def location_type_for(place: Dict) -> str:
    name = (place.get("name") or "").lower()
    for keywords, label in LOCATION_NAME_OVERRIDES:
        if any(k in name for k in keywords):
            return label
    for t in place.get("types") or []:
        if t in LOCATION_TYPE_MAP:
            return LOCATION_TYPE_MAP[t]
    return "Location"


def score_photographer_lead(
    place: Dict,
    profile: Dict,
    search_lat: float,
    search_lng: float,
    radius_m: float,
    filters: Optional[Dict[str, bool]] = None,
) -> Dict:
    plat, plng = _place_position(place)
    dist_m = distance_between(search_lat, search_lng, plat, plng)
    w = profile["weights"]
    templates = profile["reason_templates"]
    reasons: List[str] = []

    rating = float(place.get("rating") or 0)
    reviews = int(place.get("user_ratings_total") or 0)
    types_lc = [t.lower() for t in (place.get("types") or [])]
    text = _place_text(place)

    venue_score = rating_score = photo_score = 0.0

    # Venue match
    matched = [v for v in profile["prime_venue_types"] if has_keyword(text, v)]
    if is_enabled(filters, "venue_match"):
        if len(matched) >= 3:
            venue_score = 10
        elif matched:
            venue_score = 8
        else:
            venue_score = 4
        if matched:
            reasons.append(templates["venue_match"])

    # Popularity
    if is_enabled(filters, "popular") and rating > 0:
        if rating >= 4.5 and reviews >= 50:
            rating_score = 10
        elif rating >= 4.0 and reviews >= 20:
            rating_score = 8
        elif rating >= 3.5:
            rating_score = 6
        else:
            rating_score = 3
        if rating_score >= 8:
            reasons.append(templates["high_rating"].format(rating=f"{rating:.1f}", reviews=reviews))

    # Photo-friendly environment
    has_outdoor = any(has_keyword(text, k) for k in OUTDOOR_KEYWORDS)
    has_industrial = any(has_keyword(text, k) for k in INDUSTRIAL_KEYWORDS)
    has_urban = any(has_keyword(text, k) for k in URBAN_KEYWORDS)
    if is_enabled(filters, "scenic"):
        photo_score = 5.0
        if has_outdoor:
            photo_score += 2
        if has_industrial:
            photo_score += 1.5
        if has_urban:
            photo_score += 1.5
        photo_score = min(10.0, photo_score)
        if has_outdoor:
            reasons.append(templates["photo_friendly"])
        elif has_industrial or has_urban:
            reasons.append(templates["scenic"])

    # Accessibility
    is_public = any(t in PUBLIC_PLACE_TYPES for t in types_lc)
    access_score = 8 if is_public else 5
    if (place.get("opening_hours") or {}).get("open_now") is True:
        access_score = min(10, access_score + 1)

    dist_score = _distance_score(dist_m, radius_m)

    raw = (
        venue_score * w["venue_match"]
        + rating_score * w["high_rating"]
        + photo_score * w["photo_friendly"]
        + access_score * w["accessibility"]
        + dist_score * w["distance"]
    )
    score = clamp_score(raw)

    if not reasons:
        reasons.append("Location with visual potential")

    trigger = "Location"
    candidates = [
        ("Venue Match", venue_score * w["venue_match"], venue_score),
        ("Popular", rating_score * w["high_rating"], rating_score),
        ("Scenic", photo_score * w["photo_friendly"], photo_score),
    ]
    top = max(c[1] for c in candidates)
    for label, weighted, raw_sub in candidates:
        if weighted == top and raw_sub > 5:
            trigger = label
            break

    location_type = location_type_for(place)

    return {
        "id": place["place_id"],
        "lat": plat,
        "lng": plng,
        "name": place.get("name", ""),
        "venueName": place.get("name", ""),
        "venueType": location_type,
        "locationType": location_type,
        "address": place.get("vicinity") or place.get("formatted_address", ""),
        "score": score,
        "type": location_type,
        "trigger": trigger,
        "distance": round(meters_to_miles(dist_m), 2),
        "rating": rating,
        "reviewCount": reviews,
        "website": place.get("website"),
        "phone": place.get("formatted_phone_number"),
        "hasOutdoorSpace": has_outdoor,
        "hasIndustrialBackdrop": has_industrial,
        "hasUrbanAesthetic": has_urban,
        "isPublicAccess": is_public,
        "nicheMatch": len(matched) > 0,
        "niche": profile["id"],
        "reasons": reasons,
        "industry": "photographer",
        "place_id": place["place_id"],
    }


# ---- Sorting / GeoJSON ----

def sort_leads(leads: List[Dict]) -> List[Dict]:
    """Descending score, stable on ties."""
    return sorted(leads, key=lambda l: l["score"], reverse=True)


def empty_feature_collection() -> Dict:
    return {"type": "FeatureCollection", "features": []}


def lead_to_feature(lead: Dict, **extra) -> Dict:
    return {
        "type": "Feature",
        "geometry": {"type": "Point", "coordinates": [lead["lng"], lead["lat"]]},
        "properties": {**lead, **extra},
    }


def leads_to_geojson(leads: List[Dict]) -> Dict:
    return {"type": "FeatureCollection", "features": [lead_to_feature(l) for l in leads]}
