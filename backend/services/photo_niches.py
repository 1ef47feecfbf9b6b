"""
Cadence CRM - Revenue Radar photographer niche profiles

Each niche searches different Google Places keywords and
weights scoring differently (venue match, rating, photo-friendly
environment, accessibility, distance).
"""

from typing import Dict

EVENT_WEDDING = {
    "id": "event_wedding",
    "label": "Event & Wedding",
    "description": "Venues, banquet halls, ceremony locations",
    "search_keywords": [
        "wedding venue", "event space", "banquet hall", "garden venue", "winery venue",
        "rooftop venue", "church wedding", "country club", "hotel ballroom", "barn venue",
    ],
    "weights": {
        "venue_match": 0.35,
        "high_rating": 0.25,
        "photo_friendly": 0.15,
        "accessibility": 0.10,
        "distance": 0.15,
    },
    "prime_venue_types": [
        "wedding", "venue", "banquet", "ballroom", "winery", "vineyard",
        "garden", "estate", "manor", "country club", "barn", "chapel",
        "rooftop", "event space", "reception",
    ],
    "reason_templates": {
        "venue_match": "Event/wedding venue — high booking potential",
        "high_rating": "Well-reviewed venue ({rating}/5 • {reviews} reviews)",
        "photo_friendly": "Garden/outdoor elements — great natural light",
        "scenic": "Scenic location with visual appeal",
    },
}

PORTRAIT_LIFESTYLE = {
    "id": "portrait_lifestyle",
    "label": "Portrait & Lifestyle",
    "description": "Parks, gardens, waterfronts, scenic spots",
    "search_keywords": [
        "park", "botanical garden", "waterfront", "scenic overlook", "nature preserve",
        "historic district", "garden", "arboretum", "lake", "pier",
    ],
    "weights": {
        "venue_match": 0.20,
        "high_rating": 0.20,
        "photo_friendly": 0.30,
        "accessibility": 0.10,
        "distance": 0.20,
    },
    "prime_venue_types": [
        "park", "garden", "botanical", "waterfront", "lake", "pier",
        "overlook", "trail", "nature", "preserve", "arboretum",
        "fountain", "bridge", "historic",
    ],
    "reason_templates": {
        "venue_match": "Natural setting — ideal for portraits",
        "high_rating": "Popular spot ({rating}/5 • {reviews} reviews)",
        "photo_friendly": "Open space with natural backdrops",
        "scenic": "Scenic environment — water/greenery nearby",
    },
}

CAR_AUTOMOTIVE = {
    "id": "car_automotive",
    "label": "Car & Automotive",
    "description": "Industrial zones, open lots, scenic roads, urban backdrops",
    "search_keywords": [
        "parking garage", "industrial park", "marina", "warehouse district", "waterfront",
        "scenic highway", "empty lot", "dock", "airport viewing area", "race track",
    ],
    "weights": {
        "venue_match": 0.25,
        "high_rating": 0.10,
        "photo_friendly": 0.35,
        "accessibility": 0.15,
        "distance": 0.15,
    },
    "prime_venue_types": [
        "parking", "garage", "industrial", "warehouse", "dock", "marina",
        "pier", "airport", "track", "stadium", "overpass", "bridge",
        "waterfront", "scenic",
    ],
    "reason_templates": {
        "venue_match": "Industrial/urban backdrop — great for automotive shoots",
        "high_rating": "Accessible location ({rating}/5)",
        "photo_friendly": "Open space for positioning vehicles",
        "scenic": "Visual contrast — concrete/metal/water elements",
    },
}

STREET_URBAN = {
    "id": "street_urban",
    "label": "Street & Urban",
    "description": "Architecture, murals, downtown, modern buildings",
    "search_keywords": [
        "art gallery", "mural", "downtown", "modern architecture", "museum",
        "city hall", "historic building", "graffiti art", "cultural center", "public art",
    ],
    "weights": {
        "venue_match": 0.25,
        "high_rating": 0.15,
        "photo_friendly": 0.30,
        "accessibility": 0.10,
        "distance": 0.20,
    },
    "prime_venue_types": [
        "gallery", "museum", "art", "mural", "cultural", "historic",
        "architecture", "monument", "landmark", "theater", "library",
        "city hall", "courthouse", "station",
    ],
    "reason_templates": {
        "venue_match": "Urban/architectural interest — street photography potential",
        "high_rating": "Popular cultural spot ({rating}/5 • {reviews} reviews)",
        "photo_friendly": "Interesting textures, lines, and visual depth",
        "scenic": "Architectural detail and urban character",
    },
}

CONTENT_CREATOR = {
    "id": "content_creator",
    "label": "Content Creator",
    "description": "Instagrammable spots, trendy cafes, unique spaces",
    "search_keywords": [
        "cafe aesthetic", "rooftop bar", "mural wall", "boutique hotel", "trendy restaurant",
        "co-working space", "neon sign", "skyline viewpoint", "instagram spot", "unique store",
    ],
    "weights": {
        "venue_match": 0.20,
        "high_rating": 0.30,
        "photo_friendly": 0.25,
        "accessibility": 0.05,
        "distance": 0.20,
    },
    "prime_venue_types": [
        "cafe", "coffee", "rooftop", "boutique", "hotel", "bar",
        "mural", "neon", "aesthetic", "trendy", "brunch", "skyline",
        "viewpoint", "instagrammable",
    ],
    "reason_templates": {
        "venue_match": "Trendy/aesthetic location — content-friendly",
        "high_rating": "Popular & highly rated ({rating}/5 • {reviews} reviews)",
        "photo_friendly": "Instagrammable aesthetic — great for content",
        "scenic": "Unique visual environment for standout content",
    },
}

REAL_ESTATE = {
    "id": "real_estate",
    "label": "Real Estate",
    "description": "Luxury homes, model homes, staging companies",
    "search_keywords": [
        "luxury homes", "model home", "real estate office", "home staging",
        "interior design showroom", "new construction homes", "open house", "real estate developer",
    ],
    "weights": {
        "venue_match": 0.30,
        "high_rating": 0.20,
        "photo_friendly": 0.15,
        "accessibility": 0.15,
        "distance": 0.20,
    },
    "prime_venue_types": [
        "real estate", "luxury", "home", "staging", "interior",
        "developer", "construction", "model",
    ],
    "reason_templates": {
        "venue_match": "Real estate related — potential client",
        "high_rating": "Established business ({rating}/5 • {reviews} reviews)",
        "photo_friendly": "Property photography opportunity",
        "scenic": "Upscale area — premium listing potential",
    },
}

GENERAL_PHOTO = {
    "id": "general_photo",
    "label": "General",
    "description": "Balanced mix of all location types",
    "search_keywords": [
        "park", "event venue", "waterfront", "art gallery",
        "scenic viewpoint", "garden", "historic building", "cafe",
    ],
    "weights": {
        "venue_match": 0.20,
        "high_rating": 0.25,
        "photo_friendly": 0.25,
        "accessibility": 0.10,
        "distance": 0.20,
    },
    "prime_venue_types": [
        "park", "garden", "venue", "gallery", "waterfront", "scenic",
        "historic", "cafe", "museum",
    ],
    "reason_templates": {
        "venue_match": "Visually interesting location",
        "high_rating": "Popular spot ({rating}/5 • {reviews} reviews)",
        "photo_friendly": "Good shooting environment",
        "scenic": "Scenic location with visual variety",
    },
}


PHOTO_NICHE_PROFILES: Dict[str, Dict] = {
    "event_wedding": EVENT_WEDDING,
    "portrait_lifestyle": PORTRAIT_LIFESTYLE,
    "car_automotive": CAR_AUTOMOTIVE,
    "street_urban": STREET_URBAN,
    "content_creator": CONTENT_CREATOR,
    "real_estate": REAL_ESTATE,
    "general_photo": GENERAL_PHOTO,
}


def get_photo_niche_profile(niche: str) -> Dict:
    """Unknown niche (including the generic "general" trade) -> general_photo."""
    return PHOTO_NICHE_PROFILES.get((niche or "").strip().lower(), GENERAL_PHOTO)
