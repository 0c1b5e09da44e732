"""Shared test fixtures for the shopmirror test suite."""

import json
import os
from datetime import datetime

import httpx
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession

# Required settings, so get_settings() works wherever it is called
os.environ.setdefault("SHOPIFY_API_KEY", "test-key")
os.environ.setdefault("SHOPIFY_API_PASSWORD", "test-password")
os.environ.setdefault("SHOPIFY_STORE_DOMAIN", "test-shop.myshopify.com")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

from shopmirror.core.database import Base
# Import all models so their metadata is registered on Base
import shopmirror.models.database  # noqa: F401
import shopmirror.models.sync_log  # noqa: F401
from shopmirror.services.rate_limiter import RateLimiter
from shopmirror.services.shopify import ShopifyClient


@pytest_asyncio.fixture
async def async_session():
    """
    Provide an in-memory SQLite async session for tests.

    Creates all tables before the test, drops them after. Each test gets
    a clean database.
    """
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_factory = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with session_factory() as session:
        yield session

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


def _parse_ts(value: str) -> datetime:
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


class FakeShopify:
    """
    In-memory Shopify GraphQL endpoint served through httpx.MockTransport.

    Records are served in pages of the requested size; the cursor of each
    edge is its index. `fail_pages` maps resource -> page numbers (1-based)
    that answer with HTTP 500.
    """

    def __init__(self, records: dict[str, list[dict]] | None = None, fail_pages: dict[str, set[int]] | None = None):
        self.records = {"orders": [], "products": [], "customers": []}
        self.records.update(records or {})
        self.fail_pages = fail_pages or {}
        self.calls: list[dict] = []

    def calls_for(self, resource: str) -> list[dict]:
        return [c for c in self.calls if c["resource"] == resource]

    def _resource_of(self, query: str) -> str:
        for name in self.records:
            if f"{name}(first:" in query:
                return name
        raise AssertionError(f"Unexpected query: {query}")

    def handler(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        variables = body.get("variables") or {}
        resource = self._resource_of(body["query"])

        first = variables["first"]
        after = variables.get("after")
        search = variables.get("query")
        start = int(after) + 1 if after is not None else 0
        page = start // first + 1
        self.calls.append({"resource": resource, "after": after, "query": search, "page": page})

        if page in self.fail_pages.get(resource, set()):
            return httpx.Response(500, text="Internal Server Error")

        nodes = list(enumerate(self.records[resource]))
        if search:
            since = _parse_ts(search.split(">=", 1)[1])
            nodes = [(i, n) for i, n in nodes if _parse_ts(n["updatedAt"]) >= since]
            # cursors index into the filtered list
            nodes = list(enumerate(n for _, n in nodes))

        chunk = nodes[start:start + first]
        return httpx.Response(200, json={
            "data": {
                resource: {
                    "edges": [{"cursor": str(i), "node": n} for i, n in chunk],
                    "pageInfo": {"hasNextPage": start + first < len(nodes)},
                }
            }
        })

    def client(self) -> ShopifyClient:
        return ShopifyClient(
            "test-shop.myshopify.com",
            "key",
            "secret",
            limiter=RateLimiter(0),
            transport=httpx.MockTransport(self.handler),
        )


def make_orders(count: int, updated_at: str = "2025-06-01T08:00:00Z") -> list[dict]:
    """GraphQL order nodes with ids 1..count."""
    return [
        {
            "id": f"gid://shopify/Order/{i}",
            "name": f"#{1000 + i}",
            "orderNumber": 1000 + i,
            "createdAt": "2025-05-01T10:00:00Z",
            "updatedAt": updated_at,
            "totalPriceSet": {"shopMoney": {"amount": f"{i}.50"}},
            "customer": {"id": f"gid://shopify/Customer/{500 + i}"},
        }
        for i in range(1, count + 1)
    ]


@pytest.fixture
def fake_shopify():
    return FakeShopify


@pytest.fixture
def order_nodes():
    return make_orders
