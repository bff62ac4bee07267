"""
Wholesale price detection and retail price conversion.

The wholesale (CNY) price is guessed from raw page markup; the retail (CZK)
price is a deterministic function of that price and a ``PricingConfig``.
"""

import math
import re

from config import PricingConfig

# "¥199", "￥ 12.5"
_YUAN_PRICE_RE = re.compile(r"[¥￥]\s?([0-9]+(?:\.[0-9]+)?)")
# "price": 149 / "price":"149.00"
_JSON_PRICE_RE = re.compile(r'"price"\s*:\s*"?([0-9]+(?:\.[0-9]+)?)"?', re.IGNORECASE)


def find_price_candidates(html: str) -> list[float]:
    """Return every finite price-like number in the markup, yuan-marked ones first."""
    candidates = [float(m.group(1)) for m in _YUAN_PRICE_RE.finditer(html)]
    candidates.extend(float(m.group(1)) for m in _JSON_PRICE_RE.finditer(html))
    # Digit runs past the float range come back as inf
    return [c for c in candidates if math.isfinite(c)]


def extract_price_cny(html: str) -> float | None:
    """Pick the lowest price on the page as the "starting from" wholesale price.

    Marketplace pages usually show a price range or per-SKU prices, so the
    minimum approximates what a buyer sees first. Unrelated small numbers
    formatted like prices can win; that risk is accepted.
    """
    candidates = find_price_candidates(html)
    if not candidates:
        return None
    return min(candidates)


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def convert_price(cny: float, config: PricingConfig) -> int:
    """Convert a wholesale CNY price into a retail CZK price.

    Order is fixed: multiply and add fees, cap, floor, round up to the
    rounding step, then round to an integer.
    """
    czk = cny * config.fx_rate * config.multiplier + config.shipping_fee + config.handling_fee
    if config.price_cap > 0:
        czk = min(czk, config.price_cap)
    if czk < config.min_price:
        czk = config.min_price
    if config.round_to > 0:
        czk = math.ceil(czk / config.round_to) * config.round_to
    return _round_half_up(czk)
