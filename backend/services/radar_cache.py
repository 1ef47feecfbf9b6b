"""
Cadence CRM - Revenue Radar cache & rate limiting

Cache: one entry per bucketed search (lat/lng at 2 decimals ~1.1km grid,
radius to the nearest 5 mi), TTL RADAR_CACHE_TTL_HOURS.
Rate limit: RADAR_DAILY_SEARCH_LIMIT fresh searches per org per UTC day.

Persistence goes through a RadarStore:
- MongoRadarStore   -> db.radar_cache / db.radar_rate_limits (motor)
- InMemoryRadarStore -> process-local dicts (tests, demo)

FAIL-OPEN: a failing store means cache miss / search allowed,
never a failed request.
"""

import logging
import math
from datetime import datetime, timezone, timedelta
from typing import Dict, Optional

from config import (
    RADAR_CACHE_TTL_HOURS,
    RADAR_DAILY_SEARCH_LIMIT,
    next_utc_midnight_iso,
    now_iso,
    today_utc,
)

logger = logging.getLogger("radar_cache")

CACHE_KEY_VERSION = "v5"


# ---- Cache key ----

def _round_half_up(x: float) -> int:
    """Math.round semantics (half toward +inf), stable across platforms."""
    return math.floor(x + 0.5)


def _bucket_str(x: float) -> str:
    return str(int(x)) if float(x).is_integer() else str(x)


def lat_lng_bucket(value: float) -> float:
    return _round_half_up(value * 100) / 100


def radius_bucket(radius_miles: float) -> int:
    return _round_half_up(radius_miles / 5) * 5


def make_cache_key(lat: float, lng: float, industry_tag: str, radius_miles: float) -> str:
    """v5:{lat 2dp}:{lng 2dp}:{industry:trade}:{radius rounded to 5}"""
    return ":".join([
        CACHE_KEY_VERSION,
        _bucket_str(lat_lng_bucket(lat)),
        _bucket_str(lat_lng_bucket(lng)),
        industry_tag,
        str(radius_bucket(radius_miles)),
    ])


# ==================== STORES ====================

class RadarStore:
    """Persistence contract for radar cache entries and daily counters."""

    async def get_cache(self, cache_key: str, now: str) -> Optional[Dict]:
        """Entry whose expires_at > now, else None."""
        raise NotImplementedError

    async def set_cache(self, cache_key: str, entry: Dict) -> None:
        """Upsert: one entry per key, last write wins."""
        raise NotImplementedError

    async def delete_expired(self, now: str) -> int:
        raise NotImplementedError

    async def get_search_count(self, org_id: str, search_date: str) -> int:
        raise NotImplementedError

    async def increment_search_count(self, org_id: str, search_date: str) -> int:
        """Atomic +1 on the (org_id, search_date) counter, returns the new count."""
        raise NotImplementedError


class MongoRadarStore(RadarStore):
    def __init__(self, database):
        self.db = database

    async def get_cache(self, cache_key, now):
        return await self.db.radar_cache.find_one(
            {"cache_key": cache_key, "expires_at": {"$gt": now}},
            {"_id": 0},
        )

    async def set_cache(self, cache_key, entry):
        await self.db.radar_cache.update_one(
            {"cache_key": cache_key},
            {"$set": {**entry, "cache_key": cache_key}},
            upsert=True,
        )

    async def delete_expired(self, now):
        result = await self.db.radar_cache.delete_many({"expires_at": {"$lt": now}})
        return result.deleted_count

    async def get_search_count(self, org_id, search_date):
        doc = await self.db.radar_rate_limits.find_one(
            {"org_id": org_id, "search_date": search_date},
            {"_id": 0, "search_count": 1},
        )
        return (doc or {}).get("search_count", 0)

    async def increment_search_count(self, org_id, search_date):
        doc = await self.db.radar_rate_limits.find_one_and_update(
            {"org_id": org_id, "search_date": search_date},
            {"$inc": {"search_count": 1}, "$set": {"last_search_at": now_iso()}},
            upsert=True,
            return_document=True,
            projection={"_id": 0, "search_count": 1},
        )
        return (doc or {}).get("search_count", 1)


class InMemoryRadarStore(RadarStore):
    def __init__(self):
        self.cache: Dict[str, Dict] = {}
        self.counters: Dict[tuple, int] = {}

    async def get_cache(self, cache_key, now):
        entry = self.cache.get(cache_key)
        if entry and entry["expires_at"] > now:
            return entry
        return None

    async def set_cache(self, cache_key, entry):
        self.cache[cache_key] = {**entry, "cache_key": cache_key}

    async def delete_expired(self, now):
        expired = [k for k, v in self.cache.items() if v["expires_at"] < now]
        for k in expired:
            del self.cache[k]
        return len(expired)

    async def get_search_count(self, org_id, search_date):
        return self.counters.get((org_id, search_date), 0)

    async def increment_search_count(self, org_id, search_date):
        key = (org_id, search_date)
        self.counters[key] = self.counters.get(key, 0) + 1
        return self.counters[key]


# ==================== CACHE ====================

async def get_cached_result(store: RadarStore, cache_key: str) -> Optional[Dict]:
    """Cached payload {leads, storms, permits, meta, ...} or None (miss / expired / store error)."""
    try:
        entry = await store.get_cache(cache_key, now_iso())
    except Exception as e:
        logger.warning(f"[CACHE] Read failed for {cache_key}: {e}")
        return None
    if not entry:
        return None
    return entry.get("payload")


async def set_cached_result(
    store: RadarStore,
    cache_key: str,
    lat: float,
    lng: float,
    industry_tag: str,
    radius_miles: float,
    payload: Dict,
    ttl_hours: float = RADAR_CACHE_TTL_HOURS,
) -> None:
    now = datetime.now(timezone.utc)
    entry = {
        "industry": industry_tag,
        "lat_bucket": lat_lng_bucket(lat),
        "lng_bucket": lat_lng_bucket(lng),
        "radius_miles": round(radius_miles),
        "payload": payload,
        "result_count": len(((payload.get("leads") or {}).get("features")) or []),
        "created_at": now.isoformat(),
        "expires_at": (now + timedelta(hours=ttl_hours)).isoformat(),
    }
    try:
        await store.set_cache(cache_key, entry)
    except Exception as e:
        logger.error(f"[CACHE] Write failed for {cache_key}: {e}")


async def clean_expired_cache(store: RadarStore) -> None:
    """Best effort, meant for a background task."""
    try:
        deleted = await store.delete_expired(now_iso())
        if deleted:
            logger.info(f"[CACHE] {deleted} expired entries removed")
    except Exception as e:
        logger.warning(f"[CACHE] Cleanup failed: {e}")


# ==================== RATE LIMIT ====================

async def check_rate_limit(
    store: RadarStore, org_id: str, limit: int = RADAR_DAILY_SEARCH_LIMIT,
) -> Dict:
    """
    {allowed, remaining, limit, resetAt}
    resetAt = next UTC midnight. Store errors -> allowed.
    """
    reset_at = next_utc_midnight_iso()
    try:
        count = await store.get_search_count(org_id, today_utc())
    except Exception as e:
        logger.warning(f"[RATE_LIMIT] Check failed for org {org_id}, allowing: {e}")
        return {"allowed": True, "remaining": limit, "limit": limit, "resetAt": reset_at}

    return {
        "allowed": count < limit,
        "remaining": max(0, limit - count),
        "limit": limit,
        "resetAt": reset_at,
    }


async def increment_search_count(store: RadarStore, org_id: str) -> None:
    try:
        count = await store.increment_search_count(org_id, today_utc())
        logger.info(f"[RATE_LIMIT] org={org_id} searches today={count}")
    except Exception as e:
        logger.error(f"[RATE_LIMIT] Increment failed for org {org_id}: {e}")
