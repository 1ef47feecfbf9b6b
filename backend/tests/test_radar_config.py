"""
Cadence CRM — Revenue Radar Config Tests
Tests: industry resolution, default filters, score colors, trade / niche fallbacks.
Run: cd backend && pytest tests/test_radar_config.py -v
"""


class TestIndustryConfig:
    def test_direct_match(self):
        from services.radar_config import get_radar_config
        assert get_radar_config("photographer")["max_results"] == 150
        assert get_radar_config("b2b_service")["max_radius_miles"] == 25

    def test_crm_mapping(self):
        from services.radar_config import get_radar_config
        assert get_radar_config("service_professional")["id"] == "b2b_service"

    def test_fallback_to_default(self):
        from services.radar_config import get_radar_config
        assert get_radar_config(None)["id"] == "default"
        assert get_radar_config("bakery")["id"] == "default"

    def test_residential_aliases_share_signals(self):
        from services.radar_config import get_radar_config
        ids = [s["id"] for s in get_radar_config("roofing")["signals"]]
        assert ids == ["age", "income", "owner", "storm", "permit"]

    def test_default_filters(self):
        from services.radar_config import get_default_filters
        assert get_default_filters("photographer") == {"venue_match": True, "popular": True, "scenic": True}
        assert get_default_filters("retail")["low_reviews"] is False

    def test_serialized_config_is_a_copy(self):
        from services.radar_config import get_radar_config, serialize_config
        config = get_radar_config("retail")
        copy = serialize_config(config)
        copy["signals"].clear()
        assert config["signals"]

    def test_industries_list(self):
        from services.radar_config import list_industries, RADAR_INDUSTRIES
        assert [i["id"] for i in list_industries()] == RADAR_INDUSTRIES


class TestScoreLabels:
    def test_thresholds(self):
        from services.radar_config import get_score_color, get_score_label
        assert (get_score_label(8.5), get_score_color(8.5)) == ("High", "#35FF7A")
        assert (get_score_label(7.0), get_score_color(7.0)) == ("Medium", "#FFD84D")
        assert (get_score_label(6.9), get_score_color(6.9)) == ("Low", "#FF2D8A")


class TestProfiles:
    def test_unknown_trade_is_general(self):
        from services.trade_profiles import get_trade_profile
        assert get_trade_profile("pool_cleaning")["id"] == "general"
        assert get_trade_profile(" Roofing ")["id"] == "roofing"

    def test_unknown_niche_is_general(self):
        from services.photo_niches import get_photo_niche_profile
        assert get_photo_niche_profile("general")["id"] == "general_photo"
        assert get_photo_niche_profile("car_automotive")["id"] == "car_automotive"

    def test_trade_weights_sum_to_one(self):
        from services.trade_profiles import TRADE_PROFILES
        for profile in TRADE_PROFILES.values():
            assert abs(sum(profile["weights"].values()) - 1.0) < 1e-9
