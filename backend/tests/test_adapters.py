"""
Cadence CRM — Revenue Radar Upstream Adapter Tests
Tests: fail-open HTTP helpers, reverse geocoding, ACS parsing, tract assignment,
SPC storm reports, Google Places search / details / street view.
Run: cd backend && pytest tests/test_adapters.py -v
"""

import asyncio

import httpx

from tests.fakes import TEST_TRACT_ID, acs_rows, make_place, mock_client, upstream

LAT, LNG = 39.4143, -77.4105


def _run(coro):
    loop = asyncio.new_event_loop()
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


# ═══════════════════════════════════════════════════════════════
# 1. HTTP HELPERS
# ═══════════════════════════════════════════════════════════════

class TestRadarHttp:
    def test_non_2xx_is_none(self):
        from services.radar_http import fetch_json
        client = mock_client(lambda r: httpx.Response(500, json={"x": 1}))
        assert _run(fetch_json(client, "https://example.test/a")) is None

    def test_invalid_json_is_none(self):
        from services.radar_http import fetch_json
        client = mock_client(lambda r: httpx.Response(200, text="<html>"))
        assert _run(fetch_json(client, "https://example.test/a")) is None

    def test_timeout_is_none(self):
        from services.radar_http import fetch_json

        def handler(request):
            raise httpx.ReadTimeout("slow", request=request)

        assert _run(fetch_json(mock_client(handler), "https://example.test/a")) is None

    def test_transport_error_is_none(self):
        from services.radar_http import fetch_json, fetch_text

        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        assert _run(fetch_json(mock_client(handler), "https://example.test/a")) is None
        assert _run(fetch_text(mock_client(handler), "https://example.test/a")) is None

    def test_evenly_spaced_indices(self):
        from services.radar_http import evenly_spaced_indices
        assert evenly_spaced_indices(10, 20) == list(range(10))
        assert evenly_spaced_indices(110, 30) == list(range(0, 90, 3))
        assert evenly_spaced_indices(0, 5) == []

    def test_bounded_gather_limits_concurrency(self):
        from services.radar_http import bounded_gather
        state = {"active": 0, "peak": 0}

        async def worker(i):
            state["active"] += 1
            state["peak"] = max(state["peak"], state["active"])
            await asyncio.sleep(0)
            state["active"] -= 1
            return i * 2

        result = _run(bounded_gather(range(20), worker, 5))
        assert result == [i * 2 for i in range(20)]
        assert state["peak"] <= 5


# ═══════════════════════════════════════════════════════════════
# 2. GEOCODING
# ═══════════════════════════════════════════════════════════════

class TestGeocoding:
    def test_parse_street_address(self):
        from services.geocoding import parse_geocode_result
        result = {
            "formatted_address": "38C Elm St, Frederick, MD 21701, USA",
            "address_components": [
                {"long_name": "38C", "types": ["street_number"]},
                {"long_name": "Elm St", "types": ["route"]},
                {"long_name": "Frederick", "types": ["locality"]},
                {"long_name": "Maryland", "short_name": "MD", "types": ["administrative_area_level_1"]},
                {"long_name": "21701", "types": ["postal_code"]},
            ],
        }
        addr = parse_geocode_result(result)
        assert addr["street"] == "38 Elm St"
        assert addr["city"] == "Frederick"
        assert addr["state"] == "MD"
        assert addr["zip"] == "21701"

    def test_no_route_is_none(self):
        from services.geocoding import parse_geocode_result
        assert parse_geocode_result({"address_components": [{"long_name": "Frederick", "types": ["locality"]}]}) is None

    def test_zero_results_is_none(self):
        from services.geocoding import reverse_geocode
        client = mock_client(lambda r: httpx.Response(200, json={"status": "ZERO_RESULTS", "results": []}))
        assert _run(reverse_geocode(client, LAT, LNG)) is None

    def test_batch_capped(self):
        from services.geocoding import batch_reverse_geocode
        calls = []
        points = [{"lat": LAT + i * 0.001, "lng": LNG} for i in range(100)]
        resolved = _run(batch_reverse_geocode(mock_client(upstream(calls=calls)), points, 25))
        assert len(calls) == 25
        assert len(resolved) == 25
        assert all(a["street"].endswith("Main St") for a in resolved.values())


# ═══════════════════════════════════════════════════════════════
# 3. CENSUS
# ═══════════════════════════════════════════════════════════════

class TestCensus:
    def test_parse_num_sentinels(self):
        from services.census import parse_num
        assert parse_num("-666666666") is None
        assert parse_num("-") is None
        assert parse_num("") is None
        assert parse_num("92000") == 92000

    def test_parse_acs_rows(self):
        from services.census import parse_acs_rows
        tracts = parse_acs_rows(acs_rows(), current_year=2026)
        assert len(tracts) == 1
        t = tracts[0]
        assert t["tractId"] == TEST_TRACT_ID
        assert t["medianYearBuilt"] == 2004
        assert t["estimatedMedianAge"] == 22
        assert t["ownerOccupiedPct"] == 85
        assert t["totalHousingUnits"] == 1100

    def test_missing_values_stay_missing(self):
        from services.census import parse_acs_rows
        t = parse_acs_rows(acs_rows(year_built="-666666666", income="-"), current_year=2026)[0]
        assert t["medianYearBuilt"] is None
        assert t["estimatedMedianAge"] is None
        assert t["medianIncome"] is None

    def test_header_only_is_empty(self):
        from services.census import parse_acs_rows
        assert parse_acs_rows(acs_rows()[:1]) == []

    def test_get_census_data(self):
        from services.census import get_census_data
        data = _run(get_census_data(mock_client(upstream(census=acs_rows())), LAT, LNG, 10))
        assert len(data["tracts"]) == 1
        assert data["areaMedianIncome"] == 92000
        assert data["areaOwnerOccupiedPct"] == 85

    def test_census_down_is_empty(self):
        from services.census import get_census_data
        data = _run(get_census_data(mock_client(upstream()), LAT, LNG, 10))
        assert data["tracts"] == []
        assert data["areaMedianYearBuilt"] is None

    def test_unresolved_points_take_nearest_tract(self):
        from services.census import batch_get_tracts
        calls = []
        points = [{"lat": LAT + i * 0.001, "lng": LNG} for i in range(40)]
        tracts = _run(batch_get_tracts(mock_client(upstream(calls=calls)), points, 10))
        assert sum(1 for c in calls if "geo.fcc.gov" in c) == 10
        assert len(tracts) == 40
        assert set(tracts.values()) == {TEST_TRACT_ID}


# ═══════════════════════════════════════════════════════════════
# 4. NOAA STORMS
# ═══════════════════════════════════════════════════════════════

SPC_HAIL_CSV = (
    "Time,Size,Location,County,State,Lat,Lon,Comments\n"
    "1830,175,2 N Frederick,Frederick,MD,39.44,77.41,(LWX)\n"
    "1900,100,Bad Row,X,MD,abc,77.0,\n"
    "short,line\n"
)


class TestStorms:
    def test_parse_spc_csv(self):
        from services.noaa_storms import parse_spc_csv
        reports = parse_spc_csv(SPC_HAIL_CSV, "hail", 1, "yesterday")
        assert len(reports) == 1
        r = reports[0]
        assert (r["lat"], r["lng"]) == (39.44, -77.41)
        assert r["magnitude"] == "175"
        assert r["daysAgo"] == 1

    def test_when_label(self):
        from services.noaa_storms import when_label
        assert when_label(0) == "today"
        assert when_label(1) == "yesterday"
        assert when_label(4) == "4d ago"

    def test_storm_data_keeps_reports_in_radius(self):
        from services.noaa_storms import get_storm_data

        def handler(request):
            if request.url.host == "www.spc.noaa.gov" and request.url.path.endswith("yesterday_hail.csv"):
                return httpx.Response(200, text=SPC_HAIL_CSV)
            return httpx.Response(404)

        data = _run(get_storm_data(mock_client(handler), LAT, LNG, 10))
        assert len(data["storm_events"]) == 1
        event = data["storm_events"][0]
        assert event["type"] == "hail"
        assert event["daysAgo"] == 1
        assert event["source"] == "SPC"
        assert len(data["storms"]["features"]) == 1

    def test_storm_data_outside_radius_dropped(self):
        from services.noaa_storms import get_storm_data

        def handler(request):
            if request.url.host == "www.spc.noaa.gov" and request.url.path.endswith("yesterday_hail.csv"):
                return httpx.Response(200, text=SPC_HAIL_CSV)
            return httpx.Response(404)

        data = _run(get_storm_data(mock_client(handler), 35.0, -90.0, 10))
        assert data["storm_events"] == []

    def test_nws_alerts(self):
        from services.noaa_storms import get_storm_data

        def handler(request):
            if request.url.host == "api.weather.gov" and request.url.path.startswith("/points/"):
                return httpx.Response(200, json={"properties": {"relativeLocation": {"properties": {"state": "MD"}}}})
            if request.url.host == "api.weather.gov" and request.url.path == "/alerts/active":
                return httpx.Response(200, json={"features": [
                    {"id": "a1", "geometry": None, "properties": {
                        "event": "Severe Thunderstorm Warning", "severity": "Severe",
                        "headline": "Severe Thunderstorm Warning for Frederick",
                        "effective": "2026-01-01T00:00:00Z"}},
                    {"id": "a2", "geometry": None, "properties": {"event": "Flood Watch", "severity": "Moderate"}},
                ]})
            return httpx.Response(404)

        data = _run(get_storm_data(mock_client(handler), LAT, LNG, 10))
        assert [e["id"] for e in data["storm_events"]] == ["a1"]
        event = data["storm_events"][0]
        assert event["severity"] == "severe"
        assert (event["lat"], event["lng"]) == (LAT, LNG)
        # no geometry -> event kept, no polygon
        assert data["storms"]["features"] == []


# ═══════════════════════════════════════════════════════════════
# 5. GOOGLE PLACES
# ═══════════════════════════════════════════════════════════════

class TestGooglePlaces:
    def test_keyword_search_dedups_and_caps(self):
        from services.google_places import search_places_with_keywords
        places = [make_place(f"p{i}", f"Firm {i}", LAT, LNG) for i in range(5)]
        calls = []
        client = mock_client(upstream(places=places, calls=calls))
        found = _run(search_places_with_keywords(client, ["a", "b", "c"], LAT, LNG, 5000, max_results=7))
        assert [p["place_id"] for p in found] == [f"p{i}" for i in range(5)]
        assert len(calls) == 3

        capped = _run(search_places_with_keywords(client, ["a", "b"], LAT, LNG, 5000, max_results=3))
        assert len(capped) == 3

    def test_radius_capped_at_50km(self):
        from services.google_places import nearby_search
        calls = []
        _run(nearby_search(mock_client(upstream(calls=calls)), LAT, LNG, 80000, "accounting firm"))
        assert "radius=50000" in calls[0]

    def test_unknown_industry_has_no_search(self):
        from services.google_places import search_places
        assert _run(search_places(mock_client(upstream()), "plumbing", LAT, LNG, 5000)) == []

    def test_details(self):
        from services.google_places import get_place_details
        client = mock_client(upstream(details={"place_id": "p1", "name": "Firm"}))
        assert _run(get_place_details(client, "p1"))["name"] == "Firm"
        assert _run(get_place_details(mock_client(upstream()), "p1")) is None

    def test_street_view(self):
        from services.google_places import has_street_view, get_street_view_urls
        assert _run(has_street_view(mock_client(upstream()), LAT, LNG)) is True
        assert _run(has_street_view(mock_client(upstream(street_view=False)), LAT, LNG)) is False
        urls = get_street_view_urls(LAT, LNG)
        assert len(urls) == 3
        assert "heading=120" in urls[1]

    def test_maps_url(self):
        from services.google_places import get_maps_url
        assert get_maps_url(lat=1.5, lng=2.5) == "https://www.google.com/maps/@1.5,2.5,18z"
        assert get_maps_url(place_id="abc") == "https://www.google.com/maps/place/?q=place_id:abc"
        assert get_maps_url() is None
