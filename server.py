"""
FastAPI server for the resale storefront.

Two read-only endpoints:
- GET /api/raindrop → bookmarked products from Raindrop collections
- GET /api/scrape   → images, variants, sizes and prices of one product page
"""

import logging
from collections.abc import AsyncIterator

import httpx
from fastapi import Depends, FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import ORJSONResponse

from config import Settings, get_settings
from errors import CatalogError, ConfigurationError, InternalError, InvalidRequest, Unauthorized
from extractor import scrape_product
from models import ErrorBody, ProductList, ScrapeResult
from raindrop import list_collection_products, parse_collection_ids

logger = logging.getLogger("server")

RAINDROP_CACHE_CONTROL = "s-maxage=900, stale-while-revalidate"
SCRAPE_CACHE_CONTROL = "s-maxage=86400, stale-while-revalidate"

_ERROR_RESPONSES = {
    400: {"model": ErrorBody},
    401: {"model": ErrorBody},
    500: {"model": ErrorBody},
}


# ---------------------------------------------------------------------------
# Dependencies
# ---------------------------------------------------------------------------


async def get_http_client(settings: Settings = Depends(get_settings)) -> AsyncIterator[httpx.AsyncClient]:
    """One upstream client per request; closed when the response is done."""
    async with httpx.AsyncClient(timeout=settings.http_timeout) as client:
        yield client


def _check_token(settings: Settings, token: str) -> None:
    if settings.access_token and token != settings.access_token:
        raise Unauthorized()


# ---------------------------------------------------------------------------
# App setup
# ---------------------------------------------------------------------------

app = FastAPI(
    title="Storefront Product API",
    default_response_class=ORJSONResponse,
)

app.add_middleware(GZipMiddleware, minimum_size=500)
app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().allowed_origins,
    allow_methods=["GET"],
    allow_headers=["*"],
    max_age=86400,
)


@app.exception_handler(CatalogError)
async def catalog_error_handler(request: Request, exc: CatalogError) -> ORJSONResponse:
    return ORJSONResponse(status_code=exc.status_code, content={"error": exc.message})


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@app.get("/health")
async def health():
    return {"status": "ok"}


@app.get("/api/raindrop", response_model=ProductList, responses=_ERROR_RESPONSES)
async def list_bookmarks(
    response: Response,
    collections: str = "",
    token: str = "",
    settings: Settings = Depends(get_settings),
    client: httpx.AsyncClient = Depends(get_http_client),
):
    """Return bookmarked products from the given Raindrop collections."""
    _check_token(settings, token)
    if not settings.raindrop_token:
        raise ConfigurationError("Missing RAINDROP_TOKEN")
    ids = parse_collection_ids(collections)

    try:
        products = await list_collection_products(client, settings.raindrop_token, ids)
    except CatalogError:
        raise
    except Exception as exc:
        logger.exception("Listing collections %s failed", ids)
        raise InternalError(str(exc) or "Unknown error") from exc

    response.headers["Cache-Control"] = RAINDROP_CACHE_CONTROL
    return ProductList(products=products)


@app.get("/api/scrape", response_model=ScrapeResult, responses=_ERROR_RESPONSES)
async def scrape(
    response: Response,
    url: str = "",
    token: str = "",
    settings: Settings = Depends(get_settings),
    client: httpx.AsyncClient = Depends(get_http_client),
):
    """Scrape one product page and price it in CZK."""
    if not url:
        raise InvalidRequest("Missing url")
    _check_token(settings, token)

    try:
        result, _ = await scrape_product(client, url, settings.pricing, settings.user_agent)
    except CatalogError:
        raise
    except Exception as exc:
        logger.exception("Scraping %s failed", url)
        raise InternalError(str(exc) or "Unknown error") from exc

    response.headers["Cache-Control"] = SCRAPE_CACHE_CONTROL
    return result
