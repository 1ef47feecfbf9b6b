"""
Cadence CRM - US Census Bureau provider (ACS 5-year)

Neighborhood-level demographics by census tract:
- B25035_001E  median year structure built
- B19013_001E  median household income
- B25003_001E  total occupied housing units
- B25003_002E  owner-occupied housing units
- B25001_001E  total housing units

FIPS lookups go through the FCC block API. Both APIs are free, no key.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import httpx

from config import RADAR_TRACT_MAX_CALLS, RADAR_UPSTREAM_CONCURRENCY
from services.radar_http import fetch_json, bounded_gather, evenly_spaced_indices

logger = logging.getLogger("census")

CENSUS_BASE = "https://api.census.gov/data"
ACS_YEAR = "2022"
ACS_DATASET = "acs/acs5"
FCC_BLOCK_URL = "https://geo.fcc.gov/api/census/block/find"

ACS_VARIABLES = [
    "B25035_001E",
    "B19013_001E",
    "B25003_001E",
    "B25003_002E",
    "B25001_001E",
]

# rough, only used to probe neighbouring counties
DEGREES_PER_MILE = 1 / 69


def empty_area_data() -> Dict:
    return {
        "tracts": [],
        "areaMedianYearBuilt": None,
        "areaMedianIncome": None,
        "areaOwnerOccupiedPct": None,
        "areaTotalUnits": 0,
    }


def parse_num(val: Any) -> Optional[float]:
    """ACS uses negative sentinels (-666666666) and "-" for missing values."""
    if val is None or val == "" or val == "-":
        return None
    try:
        n = float(val)
    except (TypeError, ValueError):
        return None
    if n != n or n < 0:
        return None
    return int(n) if n.is_integer() else n


# ---- FIPS ----

async def _fcc_block_fips(client: httpx.AsyncClient, lat: float, lng: float) -> Optional[Dict]:
    params = {"latitude": lat, "longitude": lng, "format": "json", "showall": "false"}
    data = await fetch_json(client, FCC_BLOCK_URL, params=params, tag="CENSUS")
    if not isinstance(data, dict):
        return None
    fips = (data.get("Block") or {}).get("FIPS")
    if not fips or len(fips) < 11:
        return None
    return {"fips": fips, "data": data}


async def get_fips(client: httpx.AsyncClient, lat: float, lng: float) -> Optional[Dict]:
    block = await _fcc_block_fips(client, lat, lng)
    if not block:
        return None
    fips, data = block["fips"], block["data"]
    return {
        "state_fips": fips[0:2],
        "county_fips": fips[2:5],
        "state_name": (data.get("State") or {}).get("name", ""),
        "county_name": (data.get("County") or {}).get("name", ""),
    }


async def get_counties_in_radius(
    client: httpx.AsyncClient, lat: float, lng: float, radius_miles: float,
) -> List[Dict]:
    """Center + 4 cardinal points at radius distance, deduplicated by county."""
    d = radius_miles * DEGREES_PER_MILE
    offsets = [(0, 0), (d, 0), (-d, 0), (0, d), (0, -d)]

    found = await asyncio.gather(*[get_fips(client, lat + d_lat, lng + d_lng) for d_lat, d_lng in offsets])

    seen = set()
    counties = []
    for fips in found:
        if not fips:
            continue
        key = f"{fips['state_fips']}{fips['county_fips']}"
        if key in seen:
            continue
        seen.add(key)
        counties.append(fips)
    return counties


# ---- ACS tracts ----

def parse_acs_rows(rows: List[List[Any]], current_year: Optional[int] = None) -> List[Dict]:
    """First row is the header, the rest are tracts."""
    if not isinstance(rows, list) or len(rows) < 2:
        return []

    headers = rows[0]
    year = current_year or datetime.now(timezone.utc).year

    def col(row, name):
        try:
            return row[headers.index(name)]
        except (ValueError, IndexError):
            return None

    tracts = []
    for row in rows[1:]:
        med_year_built = parse_num(col(row, "B25035_001E"))
        med_income = parse_num(col(row, "B19013_001E"))
        total_occupied = parse_num(col(row, "B25003_001E"))
        owner_occupied = parse_num(col(row, "B25003_002E"))
        total_units = parse_num(col(row, "B25001_001E"))
        state = col(row, "state") or ""
        county = col(row, "county") or ""
        tract = col(row, "tract") or ""

        tracts.append({
            "tractId": f"{state}{county}{tract}",
            "state": state,
            "county": county,
            "tract": tract,
            "medianYearBuilt": med_year_built,
            "medianIncome": med_income,
            "ownerOccupiedPct": (
                round(owner_occupied / total_occupied * 100)
                if total_occupied and owner_occupied is not None
                else None
            ),
            "totalHousingUnits": total_units,
            "estimatedMedianAge": (year - med_year_built) if med_year_built else None,
        })
    return tracts


async def fetch_county_tracts(client: httpx.AsyncClient, state_fips: str, county_fips: str) -> List[Dict]:
    url = f"{CENSUS_BASE}/{ACS_YEAR}/{ACS_DATASET}"
    params = {
        "get": ",".join(ACS_VARIABLES),
        "for": "tract:*",
        "in": f"state:{state_fips} county:{county_fips}",
    }
    rows = await fetch_json(client, url, params=params, tag="CENSUS")
    if rows is None:
        logger.error(f"[CENSUS] No tract data for {state_fips}/{county_fips}")
        return []
    return parse_acs_rows(rows)


def aggregate_area(tracts: List[Dict]) -> Dict:
    """Area-wide figures weighted by housing units."""
    total_units = 0
    weighted_year = 0
    weighted_income = 0
    owner_units = 0.0
    occupied_units = 0

    for t in tracts:
        units = t.get("totalHousingUnits") or 0
        total_units += units
        if units <= 0:
            continue
        if t.get("medianYearBuilt"):
            weighted_year += t["medianYearBuilt"] * units
        if t.get("medianIncome"):
            weighted_income += t["medianIncome"] * units
        if t.get("ownerOccupiedPct") is not None:
            owner_units += (t["ownerOccupiedPct"] / 100) * units
            occupied_units += units

    return {
        "tracts": tracts,
        "areaMedianYearBuilt": round(weighted_year / total_units) if total_units > 0 else None,
        "areaMedianIncome": round(weighted_income / total_units) if total_units > 0 else None,
        "areaOwnerOccupiedPct": round(owner_units / occupied_units * 100) if occupied_units > 0 else None,
        "areaTotalUnits": total_units,
    }


async def get_census_data(client: httpx.AsyncClient, lat: float, lng: float, radius_miles: float) -> Dict:
    counties = await get_counties_in_radius(client, lat, lng, radius_miles)
    if not counties:
        logger.warning(f"[CENSUS] No counties found for {lat},{lng}")
        return empty_area_data()

    per_county = await asyncio.gather(*[
        fetch_county_tracts(client, c["state_fips"], c["county_fips"]) for c in counties
    ])
    tracts = [t for county_tracts in per_county for t in county_tracts]
    logger.info(f"[CENSUS] {len(tracts)} tracts loaded from {len(counties)} counties")
    return aggregate_area(tracts)


# ---- Point -> tract ----

async def get_tract_for_point(client: httpx.AsyncClient, lat: float, lng: float) -> Optional[str]:
    """state(2) + county(3) + tract(6)"""
    block = await _fcc_block_fips(client, lat, lng)
    if not block:
        return None
    return block["fips"][0:11]


async def batch_get_tracts(
    client: httpx.AsyncClient,
    points: List[Dict],
    max_calls: int = RADAR_TRACT_MAX_CALLS,
    concurrency: int = RADAR_UPSTREAM_CONCURRENCY,
) -> Dict[int, str]:
    """
    Resolve tracts for up to max_calls evenly spread points, then assign
    every other point to the tract of its nearest resolved neighbour.
    """
    indices = evenly_spaced_indices(len(points), max_calls)

    async def _one(idx):
        return idx, await get_tract_for_point(client, points[idx]["lat"], points[idx]["lng"])

    results: Dict[int, str] = {}
    for idx, tract_id in await bounded_gather(indices, _one, concurrency):
        if tract_id:
            results[idx] = tract_id

    resolved = list(results.items())
    if not resolved:
        return results

    for i, p in enumerate(points):
        if i in results:
            continue
        nearest_tract = None
        min_d = float("inf")
        for idx, tract_id in resolved:
            d = (p["lat"] - points[idx]["lat"]) ** 2 + (p["lng"] - points[idx]["lng"]) ** 2
            if d < min_d:
                min_d = d
                nearest_tract = tract_id
        results[i] = nearest_tract

    return results
