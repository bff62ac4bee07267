"""
Raindrop.io collection lister.

Fetches the bookmarks of one or more Raindrop collections and normalizes
them into ProductRecord rows for the storefront catalog. Prices stay empty
here; they are resolved later by scraping each product page.
"""

import asyncio
import logging
from typing import Any

import httpx

from errors import InvalidRequest, UpstreamError
from models import ProductRecord

logger = logging.getLogger(__name__)

RAINDROP_API = "https://api.raindrop.io/rest/v1"
PER_PAGE = 200

# Order matters: the first brand found in the title wins
BRANDS = [
    "Calvin Klein",
    "CK",
    "Guess",
    "Armani",
    "Emporio Armani",
    "EA",
    "Michael Kors",
    "MK",
    "Versace",
    "Nike",
    "Adidas",
    "Puma",
    "Levi's",
]


def parse_collection_ids(raw: str) -> list[str]:
    """Split a comma-separated ``collections`` parameter into trimmed ids."""
    ids = [part.strip() for part in str(raw or "").split(",")]
    ids = [i for i in ids if i]
    if not ids:
        raise InvalidRequest("Provide ?collections=<id>[,<id>...]")
    return ids


def guess_brand(title: str, tags: list[str] | None = None) -> str:
    """Guess a brand from the title (case-insensitive substring), then from exact tag matches."""
    lowered = str(title).lower()
    for brand in BRANDS:
        if brand.lower() in lowered:
            return brand
    for tag in tags or []:
        if tag in BRANDS:
            return tag
    return ""


def _cover_image(item: dict) -> str:
    if item.get("cover"):
        return item["cover"]
    media = item.get("media")
    if isinstance(media, list) and media and isinstance(media[0], dict):
        return media[0].get("link") or ""
    return ""


def _collection_number(collection_id: str) -> int | None:
    try:
        return int(collection_id)
    except ValueError:
        return None


def to_product_record(item: dict, collection_id: str) -> ProductRecord:
    """Normalize one Raindrop bookmark into a ProductRecord."""
    title = item.get("title") or ""
    tags = [str(t) for t in item.get("tags") or []]
    return ProductRecord(
        id=f"rd-{item.get('_id')}",
        name=title or "Produkt",
        brand=guess_brand(title, tags),
        price_czk=None,
        image=_cover_image(item),
        tags=tags,
        url=item.get("link"),
        collection=_collection_number(collection_id),
    )


async def fetch_collection(client: httpx.AsyncClient, token: str, collection_id: str) -> list[dict[str, Any]]:
    """Fetch the raw bookmark items of one collection (single page, no retries)."""
    url = f"{RAINDROP_API}/raindrops/{collection_id}"
    resp = await client.get(
        url,
        params={"perpage": PER_PAGE},
        headers={"Authorization": f"Bearer {token}"},
    )
    if not resp.is_success:
        logger.warning("Raindrop collection %s returned %d", collection_id, resp.status_code)
        raise UpstreamError(f"Raindrop fetch {collection_id} failed: {resp.status_code}")
    data = resp.json()
    items = data.get("items") if isinstance(data, dict) else None
    return [it for it in items or [] if isinstance(it, dict)]


async def list_collection_products(
    client: httpx.AsyncClient, token: str, collection_ids: list[str]
) -> list[ProductRecord]:
    """Fetch all collections concurrently and flatten them into ProductRecords.

    Output keeps the order of ``collection_ids``. Any failed fetch fails the
    whole call and cancels the fetches still in flight.
    """
    tasks = [asyncio.ensure_future(fetch_collection(client, token, cid)) for cid in collection_ids]
    try:
        batches = await asyncio.gather(*tasks)
    except BaseException:
        for task in tasks:
            task.cancel()
        # Collect the cancelled siblings so none outlives the client
        await asyncio.gather(*tasks, return_exceptions=True)
        raise

    products: list[ProductRecord] = []
    for collection_id, items in zip(collection_ids, batches):
        products.extend(to_product_record(item, collection_id) for item in items)

    logger.info("Listed %d products from %d collection(s)", len(products), len(collection_ids))
    return products
