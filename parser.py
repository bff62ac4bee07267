"""
Pattern-based HTML scanner for marketplace product pages (1688, Weidian).

Extracts the page title, image URLs, SKU variants, size labels and a size
chart image by scanning raw markup text. No DOM is built: the pages are
large, inconsistent and the useful data sits in inline script blocks, so
every extractor is a best-effort pass over the text that degrades to
empty results instead of raising.
"""

import html as html_lib
import logging
import re
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import urljoin

import orjson

from models import VariantOption

logger = logging.getLogger(__name__)

MAX_IMAGES = 12
# Brace-delimited candidates tried per script block before giving up
MAX_JSON_CANDIDATES = 64


@dataclass
class ParsedPage:
    """Everything the scanners pulled out of one page."""

    title: str = ""
    image_urls: list[str] = field(default_factory=list)
    variants: list[VariantOption] = field(default_factory=list)
    sizes: list[str] = field(default_factory=list)
    size_chart_image: str | None = None


def parse_html(html: str, base_url: str) -> ParsedPage:
    """Run every scanner over the markup of the page at ``base_url``."""
    title, image_urls = extract_basic(html, base_url)
    variants, sizes = extract_variants(html)
    size_chart_image = extract_size_chart(html)

    return ParsedPage(
        title=title,
        image_urls=image_urls,
        variants=variants,
        sizes=sizes,
        size_chart_image=size_chart_image,
    )


# ---------------------------------------------------------------------------
# Title and images
# ---------------------------------------------------------------------------

_OG_TITLE_RE = re.compile(
    r"""<meta[^>]+property=["']og:title["'][^>]*content=["']([^"']+)["']""", re.IGNORECASE
)
_OG_IMAGE_RE = re.compile(
    r"""<meta[^>]+property=["']og:image["'][^>]*content=["']([^"']+)["']""", re.IGNORECASE
)
_TITLE_TAG_RE = re.compile(r"<title[^>]*>([^<]+)</title>", re.IGNORECASE)
_IMG_TAG_RE = re.compile(r"<img\b[^>]*>", re.IGNORECASE)
# Lazy-loaded galleries keep the real URL in data-src and a placeholder in src
_IMG_SRC_ATTRS = (
    re.compile(r"""\sdata-src=["']([^"']+)["']""", re.IGNORECASE),
    re.compile(r"""\ssrc=["']([^"']+)["']""", re.IGNORECASE),
)


def _absolute_url(base_url: str, url: str) -> str:
    """Resolve ``url`` against the page URL; leave it untouched if that fails."""
    try:
        return urljoin(base_url, url)
    except ValueError:
        return url


def extract_basic(html: str, base_url: str) -> tuple[str, list[str]]:
    """Return the page title and up to MAX_IMAGES unique absolute image URLs."""
    og_title = _OG_TITLE_RE.search(html)
    title_tag = _TITLE_TAG_RE.search(html)
    raw_title = (og_title and og_title.group(1)) or (title_tag and title_tag.group(1)) or ""
    title = html_lib.unescape(raw_title).strip()

    # dict preserves first-seen order
    images: dict[str, None] = {}
    og_image = _OG_IMAGE_RE.search(html)
    if og_image:
        images[_absolute_url(base_url, html_lib.unescape(og_image.group(1)))] = None

    for tag in _IMG_TAG_RE.finditer(html):
        if len(images) >= MAX_IMAGES:
            break
        src = _img_src(tag.group(0))
        if not src or src.startswith("data:"):
            continue
        images[_absolute_url(base_url, html_lib.unescape(src))] = None

    return title, list(images)


def _img_src(tag: str) -> str | None:
    for attr_re in _IMG_SRC_ATTRS:
        match = attr_re.search(tag)
        if match:
            return match.group(1).strip()
    return None


# ---------------------------------------------------------------------------
# Size chart
# ---------------------------------------------------------------------------

_IMAGE_URL_RE = re.compile(r"""https?:[^"'<>]+?\.(?:png|jpe?g|webp)""", re.IGNORECASE)
_SIZE_CHART_HINT_RE = re.compile(r"size.?chart|size-?table|velikost", re.IGNORECASE)


def extract_size_chart(html: str) -> str | None:
    """Return the first image URL whose name suggests a size chart."""
    for match in _IMAGE_URL_RE.finditer(html):
        url = match.group(0)
        if _SIZE_CHART_HINT_RE.search(url):
            return url
    return None


# ---------------------------------------------------------------------------
# Embedded JSON
# ---------------------------------------------------------------------------

_SCRIPT_RE = re.compile(r"<script[^>]*>(.*?)</script>", re.IGNORECASE | re.DOTALL)


def _script_blocks(html: str) -> list[str]:
    return [m.group(1) or "" for m in _SCRIPT_RE.finditer(html)]


def _loads_object(text: str) -> dict | None:
    try:
        data = orjson.loads(text)
    except orjson.JSONDecodeError:
        return None
    return data if isinstance(data, dict) else None


def first_json(text: str) -> dict[str, Any]:
    """Find the first JSON object in a script block.

    Tries the whole block, then everything between the first ``{`` and the
    last ``}``, then each balanced non-empty ``{...}`` candidate in source
    order, starting at the first ``{``. Returns an empty dict when nothing
    parses.
    """
    stripped = text.strip()
    if not stripped:
        return {}

    data = _loads_object(stripped)
    if data is not None:
        return data

    start, end = stripped.find("{"), stripped.rfind("}")
    if start == -1 or end <= start:
        return {}
    data = _loads_object(stripped[start : end + 1])
    if data is not None:
        return data

    # Empty objects ("function() {}") carry nothing; keep looking past them.
    # The scan stops at the first unterminated candidate and after
    # MAX_JSON_CANDIDATES tries, keeping the cost linear in the block size.
    pos = start
    for _ in range(MAX_JSON_CANDIDATES):
        candidate = _brace_match(stripped, pos)
        if candidate is None:
            break
        data = _loads_object(candidate)
        if data:
            return data
        pos = stripped.find("{", pos + 1)
        if pos == -1:
            break
    return {}


def _brace_match(text: str, start: int) -> str | None:
    """Extract a balanced JSON object from text starting at position start.

    Handles nested braces/brackets and string literals with escaped quotes.
    Returns None when the object never closes.
    """
    if start >= len(text) or text[start] != "{":
        return None

    depth = 0
    in_string = False
    escape_next = False

    for i in range(start, len(text)):
        c = text[i]

        if escape_next:
            escape_next = False
            continue
        if c == "\\" and in_string:
            escape_next = True
            continue
        if c == '"':
            in_string = not in_string
            continue
        if in_string:
            continue

        if c in ("{", "["):
            depth += 1
        elif c in ("}", "]"):
            depth -= 1
            if depth == 0:
                return text[start : i + 1]

    return None


# ---------------------------------------------------------------------------
# Variants and sizes
# ---------------------------------------------------------------------------

_SKU_BLOCK_RE = re.compile(r"skuProps|skuMap|skuList|skuModel", re.IGNORECASE)
_VARIANTS_BLOCK_RE = re.compile(r"variants", re.IGNORECASE)
_SIZES_BLOCK_RE = re.compile(r"sizes?", re.IGNORECASE)

# Substrings of a skuList entry key that mark it as a size field (matched
# against the lowercased key)
SIZE_KEY_TOKENS = ("size", "尺码", "サイズ")
# skuMap keys look like ";1627207:28341;20509:28383;" or ";红色;XL;"
_SKU_MAP_SIZE_RE = re.compile(r"S|M|L|XL|XXL|尺|码|碼", re.IGNORECASE)
_SKU_MAP_STRIP_RE = re.compile(r"""[{}"']""")


def extract_variants(html: str) -> tuple[list[VariantOption], list[str]]:
    """Scan inline scripts for SKU properties, variant lists and size lists.

    Each block is tried against three pattern families. A field filled from
    an earlier block is never overwritten by a later one.
    """
    variants: list[VariantOption] = []
    sizes: list[str] = []

    for block in _script_blocks(html):
        if _SKU_BLOCK_RE.search(block):
            try:
                data = first_json(block)
                if not variants:
                    variants = _variants_from_sku_props(data.get("skuProps"))
                if not sizes:
                    sizes = _sizes_from_sku_list(data.get("skuList"))
                if not sizes:
                    sizes = _sizes_from_sku_map(data.get("skuMap"))
            except Exception:
                logger.debug("Skipping unreadable SKU block", exc_info=True)

        if not variants and _VARIANTS_BLOCK_RE.search(block):
            try:
                variants = _variants_from_list(first_json(block).get("variants"))
            except Exception:
                logger.debug("Skipping unreadable variants block", exc_info=True)

        if not sizes and _SIZES_BLOCK_RE.search(block):
            try:
                sizes = _sizes_from_list(first_json(block).get("sizes"))
            except Exception:
                logger.debug("Skipping unreadable sizes block", exc_info=True)

    return dedup_variants(variants), sizes


def _variants_from_sku_props(sku_props: Any) -> list[VariantOption]:
    """Flatten every property's value list (colour, style, ...) into variants."""
    if not isinstance(sku_props, list):
        return []
    variants: list[VariantOption] = []
    for prop in sku_props:
        if not isinstance(prop, dict):
            continue
        values = prop.get("value") or prop.get("values") or []
        if not isinstance(values, list):
            continue
        for value in values:
            if not isinstance(value, dict):
                continue
            label = value.get("valueName") or value.get("name")
            identifier = value.get("skuId") or value.get("valueId") or value.get("id")
            variants.append(
                VariantOption(
                    id=str(identifier or label or "Variant"),
                    name=str(label or "Variant"),
                    available=True,
                )
            )
    return variants


def _variants_from_list(raw_variants: Any) -> list[VariantOption]:
    if not isinstance(raw_variants, list):
        return []
    variants: list[VariantOption] = []
    for item in raw_variants:
        if not isinstance(item, dict):
            continue
        identifier = item.get("id") or item.get("value") or item.get("name")
        label = item.get("name") or item.get("value")
        variants.append(
            VariantOption(
                id=_as_text(identifier),
                name=_as_text(label),
                available=_in_stock(item),
            )
        )
    return variants


def _in_stock(item: dict) -> bool:
    """A positive stock count wins; otherwise only an explicit ``available: false`` marks it sold out."""
    stock = item.get("stock")
    if not isinstance(stock, bool) and isinstance(stock, (int, float, str)):
        try:
            if float(stock) > 0:
                return True
        except ValueError:
            pass
    return item.get("available") is not False


def _sizes_from_sku_list(sku_list: Any) -> list[str]:
    if not isinstance(sku_list, list):
        return []
    found: list[str] = []
    for entry in sku_list:
        if not isinstance(entry, dict):
            continue
        for key, value in entry.items():
            if any(token in key.lower() for token in SIZE_KEY_TOKENS):
                found.append(_as_text(value))
    return dedup(found)


def _sizes_from_sku_map(sku_map: Any) -> list[str]:
    if not isinstance(sku_map, dict):
        return []
    fragments = [part for key in sku_map for part in key.split(";")]
    return dedup(
        _SKU_MAP_STRIP_RE.sub("", part).strip() for part in fragments if _SKU_MAP_SIZE_RE.search(part)
    )


def _sizes_from_list(raw_sizes: Any) -> list[str]:
    if not isinstance(raw_sizes, list):
        return []
    return dedup(_as_text(size) for size in raw_sizes)


def _as_text(value: Any) -> str:
    if value is None or isinstance(value, (dict, list)):
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def dedup(values) -> list[str]:
    """Drop empty strings and repeats, keeping first-seen order."""
    return list(dict.fromkeys(v for v in values if v))


def dedup_variants(variants: list[VariantOption]) -> list[VariantOption]:
    """Keep the first variant for each case-insensitive name."""
    seen: set[str] = set()
    result: list[VariantOption] = []
    for variant in variants:
        key = variant.name.lower()
        if key in seen:
            continue
        seen.add(key)
        result.append(variant)
    return result
