"""
Cadence CRM — Revenue Radar Cache & Rate Limit Tests
Tests: cache key buckets, TTL expiry, upsert, cleanup, daily quota, fail-open store.
Run: cd backend && pytest tests/test_radar_cache.py -v
"""

import asyncio
from datetime import datetime, timezone, timedelta


def _run(coro):
    loop = asyncio.new_event_loop()
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


class BrokenStore:
    """Every call raises: the radar must behave as miss / allowed."""

    async def get_cache(self, cache_key, now):
        raise RuntimeError("store down")

    async def set_cache(self, cache_key, entry):
        raise RuntimeError("store down")

    async def delete_expired(self, now):
        raise RuntimeError("store down")

    async def get_search_count(self, org_id, search_date):
        raise RuntimeError("store down")

    async def increment_search_count(self, org_id, search_date):
        raise RuntimeError("store down")


PAYLOAD = {
    "leads": {"type": "FeatureCollection", "features": [{"type": "Feature"}]},
    "storms": {"type": "FeatureCollection", "features": []},
    "permits": {"type": "FeatureCollection", "features": []},
    "meta": {"cached": False},
}


# ═══════════════════════════════════════════════════════════════
# 1. CACHE KEY
# ═══════════════════════════════════════════════════════════════

class TestCacheKey:
    def test_reference_key(self):
        from services.radar_cache import make_cache_key
        key = make_cache_key(39.4143, -77.4105, "residential_service:roofing", 10)
        assert key == "v5:39.41:-77.41:residential_service:roofing:10"

    def test_nearby_points_share_bucket(self):
        from services.radar_cache import make_cache_key
        a = make_cache_key(39.4143, -77.4105, "b2b_service:general", 10)
        b = make_cache_key(39.4121, -77.4078, "b2b_service:general", 11)
        assert a == b

    def test_radius_rounds_to_nearest_five(self):
        from services.radar_cache import radius_bucket
        assert radius_bucket(12) == 10
        assert radius_bucket(13) == 15
        assert radius_bucket(50) == 50

    def test_half_rounds_up(self):
        from services.radar_cache import lat_lng_bucket
        assert lat_lng_bucket(0.125) == 0.13
        assert lat_lng_bucket(-0.125) == -0.12
        assert lat_lng_bucket(39.0) == 39.0

    def test_integer_buckets_have_no_decimal(self):
        from services.radar_cache import make_cache_key
        assert make_cache_key(40.0, -75.0, "retail:general", 25) == "v5:40:-75:retail:general:25"

    def test_trade_part_of_key(self):
        from services.radar_cache import make_cache_key
        a = make_cache_key(39.4, -77.4, "residential_service:roofing", 10)
        b = make_cache_key(39.4, -77.4, "residential_service:hvac", 10)
        assert a != b


# ═══════════════════════════════════════════════════════════════
# 2. CACHE READ / WRITE
# ═══════════════════════════════════════════════════════════════

class TestCache:
    def test_miss_then_hit(self, store):
        from services.radar_cache import get_cached_result, set_cached_result
        key = "v5:39.41:-77.41:b2b_service:general:10"
        assert _run(get_cached_result(store, key)) is None
        _run(set_cached_result(store, key, 39.4143, -77.4105, "b2b_service:general", 10, PAYLOAD))
        assert _run(get_cached_result(store, key)) == PAYLOAD

    def test_entry_metadata(self, store):
        from services.radar_cache import set_cached_result
        key = "v5:39.41:-77.41:b2b_service:general:10"
        _run(set_cached_result(store, key, 39.4143, -77.4105, "b2b_service:general", 10.4, PAYLOAD, ttl_hours=6))
        entry = store.cache[key]
        assert entry["lat_bucket"] == 39.41
        assert entry["radius_miles"] == 10
        assert entry["result_count"] == 1
        created = datetime.fromisoformat(entry["created_at"])
        expires = datetime.fromisoformat(entry["expires_at"])
        assert expires - created == timedelta(hours=6)

    def test_last_write_wins(self, store):
        from services.radar_cache import get_cached_result, set_cached_result
        key = "k"
        _run(set_cached_result(store, key, 0, 0, "retail:general", 5, PAYLOAD))
        newer = {**PAYLOAD, "meta": {"version": 2}}
        _run(set_cached_result(store, key, 0, 0, "retail:general", 5, newer))
        assert len(store.cache) == 1
        assert _run(get_cached_result(store, key))["meta"] == {"version": 2}

    def test_expired_entry_is_miss(self, store):
        from services.radar_cache import get_cached_result, set_cached_result
        _run(set_cached_result(store, "k", 0, 0, "retail:general", 5, PAYLOAD, ttl_hours=-1))
        assert _run(get_cached_result(store, "k")) is None

    def test_clean_expired_removes_only_expired(self, store):
        from services.radar_cache import clean_expired_cache, set_cached_result
        _run(set_cached_result(store, "old", 0, 0, "retail:general", 5, PAYLOAD, ttl_hours=-1))
        _run(set_cached_result(store, "fresh", 0, 0, "retail:general", 5, PAYLOAD))
        _run(clean_expired_cache(store))
        assert list(store.cache) == ["fresh"]

    def test_broken_store_is_miss(self):
        from services.radar_cache import get_cached_result, set_cached_result, clean_expired_cache
        store = BrokenStore()
        assert _run(get_cached_result(store, "k")) is None
        # write and cleanup errors are logged, not raised
        _run(set_cached_result(store, "k", 0, 0, "retail:general", 5, PAYLOAD))
        _run(clean_expired_cache(store))


# ═══════════════════════════════════════════════════════════════
# 3. RATE LIMIT
# ═══════════════════════════════════════════════════════════════

class TestRateLimit:
    def test_allowed_under_limit(self, store):
        from services.radar_cache import check_rate_limit
        rl = _run(check_rate_limit(store, "org-1", 3))
        assert rl["allowed"] is True
        assert rl["remaining"] == 3
        assert rl["limit"] == 3

    def test_blocked_at_limit(self, store):
        from services.radar_cache import check_rate_limit, increment_search_count
        for _ in range(3):
            _run(increment_search_count(store, "org-1"))
        rl = _run(check_rate_limit(store, "org-1", 3))
        assert rl["allowed"] is False
        assert rl["remaining"] == 0

    def test_counters_are_per_org(self, store):
        from services.radar_cache import check_rate_limit, increment_search_count
        for _ in range(3):
            _run(increment_search_count(store, "org-1"))
        assert _run(check_rate_limit(store, "org-2", 3))["allowed"] is True

    def test_reset_at_next_utc_midnight(self, store):
        from services.radar_cache import check_rate_limit
        reset = datetime.fromisoformat(_run(check_rate_limit(store, "org-1", 3))["resetAt"])
        now = datetime.now(timezone.utc)
        assert reset > now
        assert (reset.hour, reset.minute, reset.second) == (0, 0, 0)
        assert reset - now <= timedelta(days=1)

    def test_counter_keyed_by_utc_day(self, store):
        from config import today_utc
        from services.radar_cache import increment_search_count
        _run(increment_search_count(store, "org-1"))
        assert store.counters == {("org-1", today_utc()): 1}

    def test_broken_store_allows(self):
        from services.radar_cache import check_rate_limit, increment_search_count
        rl = _run(check_rate_limit(BrokenStore(), "org-1", 3))
        assert rl["allowed"] is True
        assert rl["remaining"] == 3
        _run(increment_search_count(BrokenStore(), "org-1"))
