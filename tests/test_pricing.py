"""
Tests for pricing module - wholesale price detection and CZK conversion.
"""
import pytest

from config import PricingConfig
from pricing import convert_price, extract_price_cny, find_price_candidates


DEFAULT = PricingConfig()


class TestExtractPriceCny:
    """Test extract_price_cny."""

    def test_picks_minimum_of_yuan_and_json_prices(self):
        """Should return the lowest of all price-like numbers"""
        html = '<span>¥199</span><script>var d = {"price": "149"};</script>'
        assert extract_price_cny(html) == 149

    def test_fullwidth_yuan_sign(self):
        """Should read prices marked with the full-width yuan sign"""
        assert extract_price_cny("<b>￥ 58.50</b>") == 58.5

    def test_unquoted_json_price(self):
        """Should read unquoted JSON numbers"""
        assert extract_price_cny('{"PRICE":88.8,"stock":3}') == 88.8

    def test_no_price_returns_none(self):
        """Should return None when nothing looks like a price"""
        assert extract_price_cny("<html><body>no numbers</body></html>") is None

    def test_collects_every_match(self):
        """Should keep every candidate, including repeats"""
        html = '¥10 ¥20 "price": 10'
        assert find_price_candidates(html) == [10.0, 20.0, 10.0]

    def test_skips_overflowing_digit_runs(self):
        """Should ignore numbers too long to be a finite float"""
        huge = "¥" + "9" * 400
        assert find_price_candidates(huge + " ¥12") == [12.0]
        assert extract_price_cny(huge) is None
        assert convert_price(extract_price_cny(huge + ' "price": 20'), DEFAULT) == 250


class TestConvertPrice:
    """Test convert_price."""

    def test_default_formula(self):
        """100 CNY -> 100*3.5*1.8+89 = 719 -> 720"""
        assert convert_price(100, DEFAULT) == 720

    def test_floor_applies_to_cheap_items(self):
        """Should never go below the minimum price"""
        assert convert_price(1, DEFAULT) == 250  # 249 rounded up to the step

    def test_floor_without_rounding(self):
        """Should return the minimum exactly when rounding is disabled"""
        config = PricingConfig(round_to=0)
        assert convert_price(1, config) == 249

    def test_cap_applied_before_floor(self):
        """Cap lowers the price, then the floor lifts it back"""
        config = PricingConfig(price_cap=200, round_to=0)
        assert convert_price(1000, config) == 249

    def test_cap_limits_expensive_items(self):
        """Should not exceed the cap"""
        config = PricingConfig(price_cap=300)
        assert convert_price(1000, config) == 300

    def test_fees_are_added(self):
        """Handling fee is added on top of shipping"""
        config = PricingConfig(handling_fee=50, round_to=0)
        assert convert_price(100, config) == 769

    def test_output_is_multiple_of_step(self):
        """With no cap, output is always a multiple of the rounding step"""
        for cny in (0, 0.5, 7, 33.3, 99.99, 150, 1234.56):
            assert convert_price(cny, DEFAULT) % 10 == 0

    def test_never_below_minimum(self):
        """Output is at least the minimum price for any input"""
        for cny in (0, 0.01, 10, 1000):
            assert convert_price(cny, DEFAULT) >= DEFAULT.min_price

    def test_non_decreasing(self):
        """Higher wholesale price never yields a lower retail price"""
        prices = [convert_price(cny / 4, DEFAULT) for cny in range(0, 2000)]
        assert prices == sorted(prices)

    def test_deterministic(self):
        """Same input and config give the same output"""
        assert convert_price(77.7, DEFAULT) == convert_price(77.7, DEFAULT)

    @pytest.mark.parametrize("value,expected", [(250.5, 251), (250.4, 250)])
    def test_rounds_half_up_without_step(self, value, expected):
        """Final integer rounding goes half up"""
        config = PricingConfig(fx_rate=1, multiplier=1, shipping_fee=0, min_price=0, round_to=0)
        assert convert_price(value, config) == expected
