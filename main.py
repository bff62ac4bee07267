"""
Batch scrape orchestrator.

Scrapes every product URL given on the command line in parallel using
asyncio.gather, running each through: fetch -> scan -> price, then prints
a summary per product and a run report, and writes the results to JSON.
"""

import argparse
import asyncio
import logging
import time
from pathlib import Path

import httpx
import orjson

from config import Settings, get_settings
from extractor import ScrapeMetrics, scrape_product
from models import ScrapeResult

logger = logging.getLogger(__name__)

OUTPUT_FILE = Path(__file__).parent / "products.json"


async def process_all(
    urls: list[str], settings: Settings, transport: httpx.AsyncBaseTransport | None = None
) -> tuple[list[tuple[str, ScrapeResult]], list[ScrapeMetrics], int]:
    """Scrape all URLs concurrently.

    Returns ((url, result) pairs, metrics_list, failure_count).
    """
    logger.info(f"Scraping {len(urls)} product page(s)")

    async with httpx.AsyncClient(timeout=settings.http_timeout, transport=transport) as client:
        results = await asyncio.gather(
            *[scrape_product(client, url, settings.pricing, settings.user_agent) for url in urls],
            return_exceptions=True,
        )

    # Separate successes from failures
    scraped: list[tuple[str, ScrapeResult]] = []
    all_metrics: list[ScrapeMetrics] = []
    failures = 0

    for url, result in zip(urls, results):
        if isinstance(result, Exception):
            logger.error(f"Failed to scrape {url}: {result}", exc_info=result)
            failures += 1
        else:
            product, metrics = result
            scraped.append((url, product))
            all_metrics.append(metrics)

    return scraped, all_metrics, failures


def print_report(all_metrics: list[ScrapeMetrics], failures: int, wall_clock: float) -> None:
    """Print a compact run report."""
    total = len(all_metrics) + failures
    n = len(all_metrics)

    print(f"\n{'='*70}")
    print("SCRAPE REPORT")
    print(f"{'='*70}")

    print("\n── Reliability ──")
    print(f"  URLs attempted:   {total}")
    print(f"  Succeeded:        {n}")
    print(f"  Failed:           {failures}")
    print(f"  Success rate:     {n/total*100:.0f}%" if total else "  N/A")

    if not all_metrics:
        print("\n  No successful scrapes to report on.")
        return

    # ── Output Richness ─────────────────────────────────────────────
    print("\n── Output Richness ──")
    print(f"  {'URL':<40} {'Images':>7} {'Variants':>9} {'Sizes':>6} {'Chart':>6} {'Price':>6}")
    print(f"  {'-'*78}")
    for m in all_metrics:
        print(f"  {m.url[-40:]:<40} {m.num_images:>7} {m.num_variants:>9} {m.num_sizes:>6} "
              f"{'yes' if m.has_size_chart else '-':>6} "
              f"{'yes' if m.price_found else '-':>6}")

    # ── Timing ──────────────────────────────────────────────────────
    print("\n── Timing ──")
    print(f"  Wall clock (total):  {wall_clock:.2f}s")
    print(f"  {'URL':<40} {'Fetch':>8} {'Parse':>8} {'Total':>8}")
    print(f"  {'-'*66}")
    for m in all_metrics:
        print(f"  {m.url[-40:]:<40} {m.fetch_time:>7.3f}s {m.parse_time:>7.3f}s {m.total_time:>7.3f}s")

    sum_fetch = sum(m.fetch_time for m in all_metrics)
    sum_total = sum(m.total_time for m in all_metrics)
    if sum_total > 0:
        print(f"\n  Time spent fetching: {sum_fetch / sum_total * 100:.1f}%")

    print(f"\n{'='*70}")


async def main(urls: list[str], output: Path) -> None:
    settings = get_settings()

    t_wall_start = time.monotonic()
    scraped, all_metrics, failures = await process_all(urls, settings)
    wall_clock = time.monotonic() - t_wall_start

    print(f"\n{'='*60}")
    print(f"Scraped {len(scraped)} product(s):")
    print(f"{'='*60}")

    for url, p in scraped:
        print(f"\n  {p.title or url}")
        print(f"    URL:      {url}")
        print(f"    Price:    {p.buy_price_cny} CNY -> {p.price_czk} CZK")
        print(f"    Images:   {len(p.images)} URLs")
        print(f"    Variants: {[v.name for v in p.variants]}")
        print(f"    Sizes:    {p.sizes}")
        if p.size_chart_image:
            print(f"    Chart:    {p.size_chart_image}")

    payload = [{"url": url, **p.model_dump(by_alias=True)} for url, p in scraped]
    output.write_bytes(orjson.dumps(payload, option=orjson.OPT_INDENT_2))
    logger.info(f"Wrote {len(scraped)} products to {output}")

    print_report(all_metrics, failures, wall_clock)


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    ap = argparse.ArgumentParser(description="Scrape product pages and price them in CZK.")
    ap.add_argument("urls", nargs="+", help="product page URLs (1688 / Weidian)")
    ap.add_argument("--output", type=Path, default=OUTPUT_FILE, help="JSON output file")
    return ap.parse_args(argv)


if __name__ == "__main__":
    args = _parse_args()
    logging.basicConfig(
        level=get_settings().log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    asyncio.run(main(args.urls, args.output))
