"""
Product page scrape pipeline.

Three stages:
  A) Fetch the page markup (single attempt, spoofed User-Agent)
  B) Run the pattern scanners: title/images, variants/sizes, size chart, CNY price
  C) Convert the wholesale CNY price into a retail CZK price
"""

import asyncio
import logging
import time
from dataclasses import dataclass

import httpx

from config import PricingConfig
from errors import UpstreamError
from models import ScrapeResult
from parser import parse_html
from pricing import convert_price, extract_price_cny

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = "Mozilla/5.0"

RESULT_FIELDS = [
    "title",
    "images",
    "variants",
    "sizes",
    "size_chart_image",
    "buy_price_cny",
    "price_czk",
]


# ===== Metrics =====


@dataclass
class ScrapeMetrics:
    """Per-URL metrics collected during a scrape."""

    url: str = ""
    # Stage timing (seconds)
    fetch_time: float = 0.0
    parse_time: float = 0.0
    total_time: float = 0.0
    html_chars: int = 0
    # Output richness
    num_images: int = 0
    num_variants: int = 0
    num_sizes: int = 0
    has_size_chart: bool = False
    price_found: bool = False


# ===== Main Entry Point =====


async def scrape_product(
    client: httpx.AsyncClient,
    url: str,
    pricing: PricingConfig,
    user_agent: str = DEFAULT_USER_AGENT,
) -> tuple[ScrapeResult, ScrapeMetrics]:
    """Full pipeline: fetch -> scan -> price. Returns the result and its metrics."""
    metrics = ScrapeMetrics(url=url)
    t_start = time.monotonic()

    # Stage A: fetch
    t0 = time.monotonic()
    html = await fetch_html(client, url, user_agent)
    metrics.fetch_time = time.monotonic() - t0
    metrics.html_chars = len(html)

    # Stages B + C: scan and price (CPU only, kept off the event loop)
    t0 = time.monotonic()
    result = await asyncio.to_thread(build_result, html, url, pricing)
    metrics.parse_time = time.monotonic() - t0

    metrics.total_time = time.monotonic() - t_start
    metrics.num_images = len(result.images)
    metrics.num_variants = len(result.variants)
    metrics.num_sizes = len(result.sizes)
    metrics.has_size_chart = result.size_chart_image is not None
    metrics.price_found = result.buy_price_cny is not None

    logger.info(
        f"Scraped {url}: {metrics.num_images} images, {metrics.num_variants} variants, "
        f"{metrics.num_sizes} sizes, CNY {result.buy_price_cny} -> CZK {result.price_czk} "
        f"({metrics.total_time:.2f}s)"
    )
    return result, metrics


async def fetch_html(client: httpx.AsyncClient, url: str, user_agent: str = DEFAULT_USER_AGENT) -> str:
    """GET the product page. Non-success statuses raise UpstreamError."""
    resp = await client.get(url, headers={"User-Agent": user_agent}, follow_redirects=True)
    if not resp.is_success:
        logger.warning("Fetching %s returned %d", url, resp.status_code)
        raise UpstreamError(f"Fetch failed {resp.status_code}")
    return resp.text


def build_result(html: str, url: str, pricing: PricingConfig) -> ScrapeResult:
    """Scan already-fetched markup and price it."""
    parsed = parse_html(html, url)
    buy_cny = extract_price_cny(html)
    # A zero price is treated like no price
    price_czk = convert_price(buy_cny, pricing) if buy_cny else None

    return ScrapeResult(
        title=parsed.title,
        images=parsed.image_urls,
        variants=parsed.variants,
        sizes=parsed.sizes,
        size_chart_image=parsed.size_chart_image,
        buy_price_cny=buy_cny,
        price_czk=price_czk,
    )
