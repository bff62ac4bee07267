"""
Tests for config module - environment parsing and numeric fallbacks.
"""
from config import PricingConfig, load_settings


class TestLoadSettings:
    """Test load_settings."""

    def test_defaults(self):
        """Should use documented defaults for an empty environment"""
        settings = load_settings({})
        assert settings.access_token == ""
        assert settings.raindrop_token == ""
        assert settings.pricing == PricingConfig()
        assert settings.pricing.fx_rate == 3.5
        assert settings.pricing.min_price == 249
        assert settings.user_agent == "Mozilla/5.0"

    def test_reads_environment_names(self):
        """Should map environment variable names onto settings"""
        settings = load_settings(
            {
                "ACCESS_TOKEN": " s3cret ",
                "RAINDROP_TOKEN": "rd",
                "FX_RATE_CNY": "3.2",
                "PRICE_CAP": "1500",
                "UNRELATED": "x",
            }
        )
        assert settings.access_token == "s3cret"
        assert settings.raindrop_token == "rd"
        assert settings.pricing.fx_rate == 3.2
        assert settings.pricing.price_cap == 1500

    def test_bad_numbers_fall_back(self):
        """Unparseable or non-finite numbers fall back to defaults"""
        settings = load_settings(
            {"MULTIPLIER": "lots", "SHIPPING_FEE": "", "ROUND_TO": "inf", "MIN_PRICE": "nan"}
        )
        assert settings.multiplier == 1.8
        assert settings.shipping_fee == 89
        assert settings.round_to == 10
        assert settings.min_price == 249

    def test_allowed_origins(self):
        """Should split CORS origins on commas"""
        settings = load_settings({"CORS_ORIGINS": "https://a.cz, https://b.cz,"})
        assert settings.allowed_origins == ["https://a.cz", "https://b.cz"]

    def test_leading_number_is_used(self):
        """Should read the leading number of a value and ignore the rest"""
        settings = load_settings(
            {"SHIPPING_FEE": "12abc", "FX_RATE_CNY": " 3.5 CZK", "MULTIPLIER": "abc", "MIN_PRICE": "1e400"}
        )
        assert settings.shipping_fee == 12
        assert settings.fx_rate == 3.5
        assert settings.multiplier == 1.8
        assert settings.min_price == 249
