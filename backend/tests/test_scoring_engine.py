"""
Cadence CRM — Revenue Radar Scoring Engine Tests
Tests: places (B2B) scoring, residential trade scoring, photographer niche
scoring, score bounds, filter monotonicity, missing data, GeoJSON output.
Run: cd backend && pytest tests/test_scoring_engine.py -v
"""

import itertools

from tests.fakes import make_place

LAT, LNG = 39.4143, -77.4105
RADIUS_M = 16093.44


def _residential_signals(**overrides):
    signals = {
        "tract": {
            "tractId": "24021752100",
            "medianYearBuilt": 2006,
            "estimatedMedianAge": 20,
            "medianIncome": 100000,
            "ownerOccupiedPct": 85,
        },
        "nearby_storms": [{"id": "spc-hail-1", "daysAgo": 2, "lat": LAT, "lng": LNG}],
        "storm_proximity_miles": 3.0,
        "has_permit_activity": True,
        "permit_info": "Estimated permit activity in area",
    }
    signals.update(overrides)
    return signals


# ═══════════════════════════════════════════════════════════════
# 1. PLACES (B2B)
# ═══════════════════════════════════════════════════════════════

class TestPlacesScoring:
    def test_low_rating_no_website_beats_healthy_business(self):
        """Rating 3.2 without website outranks an otherwise identical 4.5 with website."""
        from services.scoring_engine import score_places_result
        from services.radar_config import get_default_filters
        filters = get_default_filters("b2b_service")

        weak = make_place("p1", "Smith Accounting", LAT, LNG, rating=3.2, reviews=50, website="")
        strong = make_place("p2", "Smith Accounting", LAT, LNG, rating=4.5, reviews=50, website="https://smith.example")

        a = score_places_result(weak, "b2b_service", LAT, LNG, RADIUS_M, filters)
        b = score_places_result(strong, "b2b_service", LAT, LNG, RADIUS_M, filters)

        assert any("Low rating" in r for r in a["reasons"])
        assert "No website detected" in a["reasons"]
        assert a["score"] > b["score"]
        assert a["score"] == 9.0
        assert b["score"] == 5.0
        assert a["trigger"] == "Low Rating"
        assert b["trigger"] == "Opportunity"

    def test_weak_presence_when_website_unknown(self):
        """Nearby Search has no website field: few reviews stands in for it."""
        from services.scoring_engine import score_places_result
        place = make_place("p3", "Quick Tax Office", LAT, LNG, rating=4.6, reviews=3)
        lead = score_places_result(place, "b2b_service", LAT, LNG, RADIUS_M, {})
        assert "Weak online presence detected" in lead["reasons"]
        assert lead["noWebsite"] is True
        assert lead["trigger"] == "Weak Presence"

    def test_few_reviews_trigger(self):
        from services.scoring_engine import score_places_result
        place = make_place("p4", "Main Street Law", LAT, LNG, rating=4.4, reviews=12,
                           types=["lawyer"], website="https://law.example")
        lead = score_places_result(place, "b2b_service", LAT, LNG, RADIUS_M, {})
        assert lead["trigger"] == "Few Reviews"
        assert "Only 12 reviews" in lead["reasons"]
        assert lead["category"] == "Law Firm"

    def test_rejects_other_vertical(self):
        """A pizzeria is not a B2B prospect."""
        from services.scoring_engine import score_places_result
        place = make_place("p5", "Joe's Pizza", LAT, LNG, rating=3.0, reviews=5,
                           types=["point_of_interest", "establishment"])
        assert score_places_result(place, "b2b_service", LAT, LNG, RADIUS_M, {}) is None

    def test_keyword_match_without_place_type(self):
        from services.scoring_engine import score_places_result
        place = make_place("p6", "Blue Ridge Marketing Agency", LAT, LNG, rating=4.0, reviews=40,
                           types=["point_of_interest", "establishment"])
        assert score_places_result(place, "b2b_service", LAT, LNG, RADIUS_M, {}) is not None

    def test_distance_factor(self):
        """Same business further out scores lower, never below the signal sum."""
        from services.scoring_engine import score_places_result
        near = make_place("p7", "Acme Insurance Agency", LAT, LNG, rating=4.5, reviews=50, website="x",
                          types=["insurance_agency"])
        far = make_place("p8", "Acme Insurance Agency", LAT + 0.14, LNG, rating=4.5, reviews=50, website="x",
                         types=["insurance_agency"])
        a = score_places_result(near, "b2b_service", LAT, LNG, RADIUS_M, {})
        b = score_places_result(far, "b2b_service", LAT, LNG, RADIUS_M, {})
        assert a["score"] > b["score"] >= 3.8

    def test_reasons_never_empty(self):
        from services.scoring_engine import score_places_result
        place = make_place("p9", "Solid Accounting", LAT, LNG, rating=4.9, reviews=500, website="x")
        off = {"low_rating": False, "no_website": False, "low_reviews": False, "industry_match": False}
        lead = score_places_result(place, "b2b_service", LAT, LNG, RADIUS_M, off)
        assert lead["reasons"] == ["General opportunity signal"]


# ═══════════════════════════════════════════════════════════════
# 2. RESIDENTIAL
# ═══════════════════════════════════════════════════════════════

class TestResidentialScoring:
    def test_all_signals_roofing(self):
        from services.scoring_engine import score_residential_lead
        from services.trade_profiles import get_trade_profile
        lead = score_residential_lead(
            "res-1", LAT, LNG, "12 Main St", _residential_signals(),
            get_trade_profile("roofing"), LAT, LNG, RADIUS_M, {},
        )
        # 10*.28 + 10*.25 + 9*.12 + 10*.12 + 10*.10 + 10*.13
        assert lead["score"] == 9.9
        assert lead["trigger"] == "Age"
        assert lead["reasons"][0] == "Roof age in replacement window (20yr)"
        assert "Recent storm activity within 3.0 mi (2d ago)" in lead["reasons"]
        assert lead["propertyAge"] == "~20 years"
        assert lead["medianIncome"] == "$100k"
        assert lead["ownerOccupied"] == "85%"
        assert lead["stormProximity"] == "3.0 mi"
        assert lead["permitHistory"] == "Estimated permit activity in area"
        assert lead["hasStorm"] and lead["hasPermit"] and lead["hasOwnership"]
        assert lead["industry"] == "residential_service"
        assert lead["trade"] == "roofing"

    def test_missing_data_contributes_nothing(self):
        """No tract, no storm, no permit: distance alone, labels 'Unknown'."""
        from services.scoring_engine import score_residential_lead
        from services.trade_profiles import get_trade_profile
        lead = score_residential_lead(
            "res-2", LAT, LNG, "14 Main St",
            {"tract": None, "nearby_storms": [], "storm_proximity_miles": None, "has_permit_activity": False},
            get_trade_profile("roofing"), LAT, LNG, RADIUS_M, {},
        )
        assert lead["score"] == 1.3
        assert lead["reasons"] == ["Area opportunity signal"]
        assert lead["trigger"] == "Opportunity"
        assert lead["propertyAge"] == "Unknown"
        assert lead["medianIncome"] == "Unknown"
        assert lead["ownerOccupied"] == "Unknown"
        assert lead["stormProximity"] == "None nearby"
        assert lead["permitHistory"] == "None nearby"

    def test_storm_trigger_for_storm_heavy_trade(self):
        from services.scoring_engine import score_residential_lead
        from services.trade_profiles import get_trade_profile
        signals = _residential_signals(tract=None, has_permit_activity=False)
        lead = score_residential_lead("res-3", LAT, LNG, "1 Oak St", signals,
                                      get_trade_profile("roofing"), LAT, LNG, RADIUS_M, {})
        assert lead["trigger"] == "Storm"

    def test_storm_beyond_15_miles_ignored(self):
        from services.scoring_engine import score_residential_lead
        from services.trade_profiles import get_trade_profile
        signals = _residential_signals(nearby_storms=[], storm_proximity_miles=22.0)
        lead = score_residential_lead("res-4", LAT, LNG, "1 Oak St", signals,
                                      get_trade_profile("roofing"), LAT, LNG, RADIUS_M, {})
        assert not any("storm" in r.lower() for r in lead["reasons"])
        assert lead["stormProximity"] == "None nearby"

    def test_disabled_signal_adds_no_reason(self):
        from services.scoring_engine import score_residential_lead
        from services.trade_profiles import get_trade_profile
        lead = score_residential_lead("res-5", LAT, LNG, "1 Oak St", _residential_signals(),
                                      get_trade_profile("roofing"), LAT, LNG, RADIUS_M, {"storm": False})
        assert not any("storm" in r.lower() for r in lead["reasons"])
        assert lead["trigger"] != "Storm"

    def test_unknown_trade_uses_general(self):
        from services.trade_profiles import get_trade_profile
        assert get_trade_profile("underwater_basket_weaving")["id"] == "general"
        assert get_trade_profile("")["id"] == "general"


# ═══════════════════════════════════════════════════════════════
# 3. PHOTOGRAPHER
# ═══════════════════════════════════════════════════════════════

class TestPhotographerScoring:
    def _venue(self, **extra):
        return make_place(
            "v1", "Riverside Garden Venue", LAT, LNG, rating=4.7, reviews=120,
            types=["park", "establishment"], opening_hours={"open_now": True}, **extra,
        )

    def test_wedding_venue(self):
        from services.scoring_engine import score_photographer_lead
        from services.photo_niches import get_photo_niche_profile
        lead = score_photographer_lead(self._venue(), get_photo_niche_profile("event_wedding"),
                                       LAT, LNG, RADIUS_M, {})
        assert 8.5 <= lead["score"] <= 8.8
        assert lead["trigger"] == "Venue Match"
        assert lead["nicheMatch"] is True
        assert lead["hasOutdoorSpace"] is True
        assert lead["isPublicAccess"] is True
        assert lead["locationType"] == "Event Venue"
        assert "Well-reviewed venue (4.7/5 • 120 reviews)" in lead["reasons"]
        assert lead["niche"] == "event_wedding"

    def test_word_prefix_keywords(self):
        """'art' must not match 'party', 'garden' matches 'gardens'."""
        from services.scoring_engine import has_keyword
        assert not has_keyword("party rentals", "art")
        assert has_keyword("botanical gardens", "garden")
        assert has_keyword("the country club", "country club")

    def test_unknown_niche_falls_back(self):
        from services.photo_niches import get_photo_niche_profile
        assert get_photo_niche_profile("general")["id"] == "general_photo"


# ═══════════════════════════════════════════════════════════════
# 4. BOUNDS + MONOTONICITY (all variants)
# ═══════════════════════════════════════════════════════════════

class TestScoreProperties:
    PLACES = [
        make_place("b1", "Budget Accounting", LAT, LNG, rating=1.0, reviews=0),
        make_place("b2", "Premier Accounting", LAT + 0.05, LNG - 0.05, rating=5.0, reviews=900, website="x"),
        make_place("b3", "Tax Office", LAT - 0.2, LNG, reviews=0),
        make_place("b4", "Rooftop Gallery Warehouse Park", LAT, LNG + 0.01, rating=4.9, reviews=60,
                   types=["park", "art_gallery", "tourist_attraction"], opening_hours={"open_now": True}),
    ]

    def test_bounds_places(self):
        from services.scoring_engine import score_places_result
        for place in self.PLACES:
            for flags in itertools.product([True, False], repeat=4):
                filters = dict(zip(["low_rating", "no_website", "low_reviews", "industry_match"], flags))
                lead = score_places_result(place, "b2b_service", LAT, LNG, RADIUS_M, filters)
                if lead:
                    assert 0 <= lead["score"] <= 10
                    assert lead["reasons"]

    def test_bounds_photographer(self):
        from services.scoring_engine import score_photographer_lead
        from services.photo_niches import PHOTO_NICHE_PROFILES
        for profile in PHOTO_NICHE_PROFILES.values():
            for place in self.PLACES:
                lead = score_photographer_lead(place, profile, LAT, LNG, RADIUS_M, {})
                assert 0 <= lead["score"] <= 10
                assert lead["reasons"]

    def test_bounds_residential(self):
        from services.scoring_engine import score_residential_lead
        from services.trade_profiles import TRADE_PROFILES
        for profile in TRADE_PROFILES.values():
            for age in (1, 12, 20, 35, 80):
                signals = _residential_signals(tract={"estimatedMedianAge": age, "medianIncome": 20000 * age,
                                                      "ownerOccupiedPct": age, "medianYearBuilt": 2026 - age})
                lead = score_residential_lead("r", LAT + 0.1, LNG, "1 Elm St", signals, profile,
                                              LAT, LNG, RADIUS_M, {})
                assert 0 <= lead["score"] <= 10
                assert lead["reasons"]

    def test_disabling_a_signal_never_raises_score_places(self):
        from services.scoring_engine import score_places_result
        signal_ids = ["low_rating", "no_website", "low_reviews", "industry_match"]
        for place in self.PLACES:
            base = score_places_result(place, "b2b_service", LAT, LNG, RADIUS_M, {})
            if not base:
                continue
            for sid in signal_ids:
                off = score_places_result(place, "b2b_service", LAT, LNG, RADIUS_M, {sid: False})
                assert off["score"] <= base["score"]

    def test_disabling_a_signal_never_raises_score_residential(self):
        from services.scoring_engine import score_residential_lead
        from services.trade_profiles import TRADE_PROFILES
        for profile in TRADE_PROFILES.values():
            base = score_residential_lead("r", LAT, LNG, "x", _residential_signals(), profile,
                                          LAT, LNG, RADIUS_M, {})
            for sid in ["age", "income", "owner", "storm", "permit"]:
                off = score_residential_lead("r", LAT, LNG, "x", _residential_signals(), profile,
                                             LAT, LNG, RADIUS_M, {sid: False})
                assert off["score"] <= base["score"]

    def test_disabling_a_signal_never_raises_score_photographer(self):
        from services.scoring_engine import score_photographer_lead
        from services.photo_niches import PHOTO_NICHE_PROFILES
        for profile in PHOTO_NICHE_PROFILES.values():
            for place in self.PLACES:
                base = score_photographer_lead(place, profile, LAT, LNG, RADIUS_M, {})
                for sid in ["venue_match", "popular", "scenic"]:
                    off = score_photographer_lead(place, profile, LAT, LNG, RADIUS_M, {sid: False})
                    assert off["score"] <= base["score"]

    def test_sort_is_descending_and_stable(self):
        from services.scoring_engine import sort_leads
        leads = [{"id": "a", "score": 5.0}, {"id": "b", "score": 7.5}, {"id": "c", "score": 5.0}]
        assert [l["id"] for l in sort_leads(leads)] == ["b", "a", "c"]


# ═══════════════════════════════════════════════════════════════
# 5. GEOJSON
# ═══════════════════════════════════════════════════════════════

class TestGeoJSON:
    def test_leads_to_geojson(self):
        from services.scoring_engine import leads_to_geojson
        fc = leads_to_geojson([{"id": "a", "lat": 39.1, "lng": -77.2, "score": 6.1}])
        assert fc["type"] == "FeatureCollection"
        feature = fc["features"][0]
        assert feature["geometry"] == {"type": "Point", "coordinates": [-77.2, 39.1]}
        assert feature["properties"]["score"] == 6.1

    def test_empty(self):
        from services.scoring_engine import leads_to_geojson
        assert leads_to_geojson([]) == {"type": "FeatureCollection", "features": []}
