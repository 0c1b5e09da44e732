"""Tests for paginated fetching (cursor and next-link styles)."""

import json
from datetime import datetime, timezone

import httpx
import pytest

from shopmirror.services.pagination import PageWalker, build_graphql_query, format_timestamp
from shopmirror.services.rate_limiter import RateLimiter
from shopmirror.services.shopify import (
    PaginationError,
    ShopifyClient,
    ShopifyResponseError,
    ShopifyTransportError,
)


def _client(handler) -> ShopifyClient:
    return ShopifyClient(
        "test-shop.myshopify.com",
        "key",
        "secret",
        limiter=RateLimiter(0),
        transport=httpx.MockTransport(handler),
    )


async def _collect(walker: PageWalker, resource: str, **kwargs) -> list[dict]:
    return [record async for record in walker.walk(resource, **kwargs)]


class TestFormatTimestamp:

    def test_utc_with_z_suffix(self):
        ts = datetime(2025, 6, 1, 10, 0, 0, 123456, tzinfo=timezone.utc)
        assert format_timestamp(ts) == "2025-06-01T10:00:00Z"

    def test_naive_treated_as_utc(self):
        assert format_timestamp(datetime(2025, 6, 1, 10, 0)) == "2025-06-01T10:00:00Z"


class TestBuildGraphqlQuery:

    def test_selects_connection_fields(self):
        query = build_graphql_query("orders")
        assert "orders(first: $first, after: $after, query: $query)" in query
        assert "pageInfo { hasNextPage }" in query
        assert "totalPriceSet" in query


class TestCursorPagination:

    @pytest.mark.asyncio
    async def test_yields_all_pages_in_order(self, fake_shopify, order_nodes):
        shop = fake_shopify({"orders": order_nodes(260)})
        walker = PageWalker(shop.client(), page_size=100)

        records = await _collect(walker, "orders")

        assert [r["id"] for r in records] == [f"gid://shopify/Order/{i}" for i in range(1, 261)]
        assert len(shop.calls_for("orders")) == 3
        assert [c["after"] for c in shop.calls] == [None, "99", "199"]

    @pytest.mark.asyncio
    async def test_empty_collection_single_call(self, fake_shopify):
        shop = fake_shopify()
        walker = PageWalker(shop.client(), page_size=100)

        assert await _collect(walker, "products") == []
        assert len(shop.calls) == 1

    @pytest.mark.asyncio
    async def test_exact_multiple_of_page_size(self, fake_shopify):
        shop = fake_shopify({"customers": [
            {"id": f"gid://shopify/Customer/{i}", "email": f"c{i}@example.com"} for i in range(20)
        ]})
        walker = PageWalker(shop.client(), page_size=10)

        records = await _collect(walker, "customers")

        assert len(records) == 20
        assert len(shop.calls) == 2

    @pytest.mark.asyncio
    async def test_updated_since_sent_as_search_query(self, fake_shopify, order_nodes):
        shop = fake_shopify({"orders": order_nodes(3)})
        walker = PageWalker(shop.client(), page_size=100)
        since = datetime(2025, 6, 1, 6, 0, tzinfo=timezone.utc)

        await _collect(walker, "orders", updated_since=since)

        assert shop.calls[0]["query"] == "updated_at:>=2025-06-01T06:00:00Z"

    @pytest.mark.asyncio
    async def test_missing_page_info_terminates(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(200, json={"data": {"orders": {
                "edges": [{"cursor": "a", "node": {"id": "gid://shopify/Order/1"}}],
            }}})

        walker = PageWalker(_client(handler))
        records = await _collect(walker, "orders")

        assert len(records) == 1
        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_has_next_without_cursor_raises(self):
        def handler(request):
            return httpx.Response(200, json={"data": {"orders": {
                "edges": [],
                "pageInfo": {"hasNextPage": True},
            }}})

        walker = PageWalker(_client(handler))
        with pytest.raises(PaginationError):
            await _collect(walker, "orders")

    @pytest.mark.asyncio
    async def test_cursor_that_does_not_advance_raises(self):
        def handler(request):
            return httpx.Response(200, json={"data": {"orders": {
                "edges": [{"cursor": "same", "node": {"id": "gid://shopify/Order/1"}}],
                "pageInfo": {"hasNextPage": True},
            }}})

        walker = PageWalker(_client(handler))
        records = []
        with pytest.raises(PaginationError):
            async for record in walker.walk("orders"):
                records.append(record)

        # first page yielded, second page repeats the cursor
        assert len(records) == 2

    @pytest.mark.asyncio
    async def test_failure_mid_walk_keeps_earlier_records(self, fake_shopify, order_nodes):
        shop = fake_shopify({"orders": order_nodes(50)}, fail_pages={"orders": {3}})
        walker = PageWalker(shop.client(), page_size=10)

        records = []
        with pytest.raises(ShopifyResponseError) as exc_info:
            async for record in walker.walk("orders"):
                records.append(record)

        assert exc_info.value.status_code == 500
        assert len(records) == 20
        assert len(shop.calls) == 3

    @pytest.mark.asyncio
    async def test_graphql_errors_raise(self):
        def handler(request):
            return httpx.Response(200, json={"errors": [{"message": "Throttled"}]})

        walker = PageWalker(_client(handler))
        with pytest.raises(ShopifyResponseError, match="Throttled"):
            await _collect(walker, "orders")

    @pytest.mark.asyncio
    async def test_malformed_body_raises(self):
        def handler(request):
            return httpx.Response(200, text="<html>oops</html>")

        walker = PageWalker(_client(handler))
        with pytest.raises(ShopifyResponseError):
            await _collect(walker, "orders")

    @pytest.mark.asyncio
    async def test_missing_connection_raises(self):
        def handler(request):
            return httpx.Response(200, json={"data": {}})

        walker = PageWalker(_client(handler))
        with pytest.raises(ShopifyResponseError):
            await _collect(walker, "orders")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("connection", [
        {"edges": [None], "pageInfo": {"hasNextPage": False}},
        {"edges": "broken", "pageInfo": {"hasNextPage": False}},
        {"edges": [{"cursor": "a", "node": "gid://shopify/Order/1"}], "pageInfo": {"hasNextPage": False}},
        {"edges": [{"cursor": "a", "node": {"id": "gid://shopify/Order/1"}}], "pageInfo": "broken"},
    ])
    async def test_malformed_connection_raises(self, connection):
        def handler(request):
            return httpx.Response(200, json={"data": {"orders": connection}})

        walker = PageWalker(_client(handler))
        records = []
        with pytest.raises(ShopifyResponseError):
            async for record in walker.walk("orders"):
                records.append(record)

        # a malformed page yields nothing
        assert records == []

    @pytest.mark.asyncio
    async def test_transport_error_wrapped(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        walker = PageWalker(_client(handler))
        with pytest.raises(ShopifyTransportError):
            await _collect(walker, "orders")

    @pytest.mark.asyncio
    async def test_sends_basic_auth(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json={"data": {"orders": {"edges": [], "pageInfo": {"hasNextPage": False}}}})

        await _collect(PageWalker(_client(handler)), "orders")

        assert seen[0].url.path == "/admin/api/2023-07/graphql.json"
        assert seen[0].headers["authorization"].startswith("Basic ")
        assert json.loads(seen[0].content)["variables"]["first"] == 100


class TestLinkPagination:

    @staticmethod
    def _paged_handler(pages: list[list[dict]], calls: list):
        base = "https://test-shop.myshopify.com/admin/api/2023-07/orders.json"

        def handler(request):
            calls.append(request)
            page_info = request.url.params.get("page_info")
            index = int(page_info) if page_info else 0
            headers = {}
            if index + 1 < len(pages):
                headers["Link"] = f'<{base}?limit=2&page_info={index + 1}>; rel="next"'
            return httpx.Response(200, json={"orders": pages[index]}, headers=headers)

        return handler

    @pytest.mark.asyncio
    async def test_follows_next_links_until_absent(self):
        pages = [[{"id": 1}, {"id": 2}], [{"id": 3}, {"id": 4}], [{"id": 5}]]
        calls = []
        walker = PageWalker(_client(self._paged_handler(pages, calls)), page_size=2, style="link")

        records = await _collect(walker, "orders")

        assert [r["id"] for r in records] == [1, 2, 3, 4, 5]
        assert len(calls) == 3
        assert calls[0].url.params["limit"] == "2"
        assert calls[1].url.params["page_info"] == "1"

    @pytest.mark.asyncio
    async def test_updated_since_sent_on_first_request_only(self):
        pages = [[{"id": 1}], [{"id": 2}]]
        calls = []
        walker = PageWalker(_client(self._paged_handler(pages, calls)), page_size=2, style="link")
        since = datetime(2025, 6, 1, 10, 0, tzinfo=timezone.utc)

        await _collect(walker, "orders", updated_since=since)

        assert calls[0].url.params["updated_at_min"] == "2025-06-01T10:00:00Z"
        assert "updated_at_min" not in calls[1].url.params

    @pytest.mark.asyncio
    async def test_repeated_next_link_raises(self):
        url = "https://test-shop.myshopify.com/admin/api/2023-07/orders.json?page_info=x"

        def handler(request):
            return httpx.Response(200, json={"orders": [{"id": 1}]}, headers={"Link": f'<{url}>; rel="next"'})

        walker = PageWalker(_client(handler), style="link")
        with pytest.raises(PaginationError):
            await _collect(walker, "orders")

    @pytest.mark.asyncio
    async def test_missing_collection_raises(self):
        def handler(request):
            return httpx.Response(200, json={"products": []})

        walker = PageWalker(_client(handler), style="link")
        with pytest.raises(ShopifyResponseError):
            await _collect(walker, "orders")

    @pytest.mark.asyncio
    async def test_non_object_record_raises(self):
        def handler(request):
            return httpx.Response(200, json={"orders": [{"id": 1}, None]})

        walker = PageWalker(_client(handler), style="link")
        records = []
        with pytest.raises(ShopifyResponseError):
            async for record in walker.walk("orders"):
                records.append(record)

        assert records == []


class TestPageWalkerValidation:

    def test_unknown_style(self):
        with pytest.raises(ValueError):
            PageWalker(_client(lambda r: httpx.Response(200)), style="offset")

    def test_unknown_resource(self):
        walker = PageWalker(_client(lambda r: httpx.Response(200)))
        with pytest.raises(ValueError):
            walker.walk("invoices")

    def test_page_size_capped(self):
        walker = PageWalker(_client(lambda r: httpx.Response(200)), page_size=1000)
        assert walker.page_size == 250
