"""
Tests for raindrop module - collection id parsing, brand guessing and listing.
"""
import asyncio

import httpx
import pytest

from errors import InvalidRequest, UpstreamError
from raindrop import guess_brand, list_collection_products, parse_collection_ids, to_product_record


def _client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def _run_listing(handler, ids, token="rd-secret"):
    async def go():
        async with _client(handler) as client:
            return await list_collection_products(client, token, ids)

    return asyncio.run(go())


class TestParseCollectionIds:
    """Test parse_collection_ids."""

    def test_trims_and_drops_empties(self):
        """Should split on commas, trim and drop blanks"""
        assert parse_collection_ids(" 12, ,34,") == ["12", "34"]

    @pytest.mark.parametrize("raw", ["", " , ,", None])
    def test_empty_raises(self, raw):
        """Should reject an empty list"""
        with pytest.raises(InvalidRequest) as exc:
            parse_collection_ids(raw)
        assert exc.value.message == "Provide ?collections=<id>[,<id>...]"


class TestGuessBrand:
    """Test guess_brand."""

    def test_title_substring(self):
        """Should match a brand inside the title, case-insensitively"""
        assert guess_brand("Calvin Klein slim shirt", []) == "Calvin Klein"
        assert guess_brand("new NIKE air", []) == "Nike"

    def test_falls_back_to_tags(self):
        """Should use an exact tag match when the title has no brand"""
        assert guess_brand("plain shirt", ["summer", "Nike"]) == "Nike"

    def test_tags_are_exact(self):
        """Tag matching is case-sensitive"""
        assert guess_brand("plain shirt", ["nike"]) == ""

    def test_no_match(self):
        """Should return an empty string"""
        assert guess_brand("plain shirt", []) == ""
        assert guess_brand("", None) == ""


class TestToProductRecord:
    """Test to_product_record."""

    def test_full_item(self):
        """Should map every Raindrop field"""
        item = {
            "_id": 987,
            "title": "Guess logo tee",
            "cover": "https://img.example.com/cover.jpg",
            "tags": ["tee", 2024],
            "link": "https://detail.1688.com/offer/1.html",
        }
        record = to_product_record(item, "55")
        assert record.model_dump(by_alias=True) == {
            "id": "rd-987",
            "name": "Guess logo tee",
            "brand": "Guess",
            "priceCZK": None,
            "image": "https://img.example.com/cover.jpg",
            "tags": ["tee", "2024"],
            "url": "https://detail.1688.com/offer/1.html",
            "_collection": 55,
        }

    def test_media_fallback_and_defaults(self):
        """Should fall back to the first media link and a default name"""
        item = {"_id": 1, "media": [{"link": "https://img.example.com/m.jpg"}]}
        record = to_product_record(item, "-1")
        assert record.image == "https://img.example.com/m.jpg"
        assert record.name == "Produkt"
        assert record.tags == []
        assert record.collection == -1

    def test_no_image(self):
        """Should leave the image empty when neither cover nor media exist"""
        assert to_product_record({"_id": 2, "media": []}, "3").image == ""


class TestListCollectionProducts:
    """Test list_collection_products."""

    def test_fetches_each_collection_in_order(self):
        """Should query every collection and keep the id order"""
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            cid = request.url.path.rsplit("/", 1)[-1]
            return httpx.Response(200, json={"items": [{"_id": f"{cid}-a", "title": f"Item {cid}"}]})

        products = _run_listing(handler, ["10", "20"])

        assert [p.id for p in products] == ["rd-10-a", "rd-20-a"]
        assert [p.collection for p in products] == [10, 20]
        for request in seen:
            assert request.headers["Authorization"] == "Bearer rd-secret"
            assert request.url.params["perpage"] == "200"
            assert request.url.host == "api.raindrop.io"

    def test_missing_items_yields_nothing(self):
        """Should treat a response without items as empty"""
        products = _run_listing(lambda request: httpx.Response(200, json={}), ["1"])
        assert products == []

    def test_single_failure_fails_all(self):
        """Should raise UpstreamError naming the collection and status"""

        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path.endswith("/20"):
                return httpx.Response(404, json={"result": False})
            return httpx.Response(200, json={"items": []})

        with pytest.raises(UpstreamError) as exc:
            _run_listing(handler, ["10", "20"])
        assert exc.value.message == "Raindrop fetch 20 failed: 404"

    def test_failure_cancels_pending_fetches(self):
        """Should cancel the slower fetches before the error reaches the caller"""
        cancelled = []

        async def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path.endswith("/slow"):
                try:
                    await asyncio.sleep(30)
                except asyncio.CancelledError:
                    cancelled.append(request.url.path)
                    raise
                return httpx.Response(200, json={"items": []})
            return httpx.Response(404, json={"result": False})

        async def go():
            async with _client(handler) as client:
                with pytest.raises(UpstreamError):
                    await list_collection_products(client, "rd-secret", ["slow", "20"])
                return list(cancelled)

        assert asyncio.run(go()) == ["/rest/v1/raindrops/slow"]
