"""Paginated retrieval of Shopify resource collections."""

import logging
from datetime import datetime, timezone
from typing import AsyncIterator, Optional

from shopmirror.services.shopify import PaginationError, ShopifyClient, ShopifyResponseError

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 250

# GraphQL node selections per resource kind
NODE_FIELDS = {
    "orders": "id name orderNumber createdAt updatedAt totalPriceSet { shopMoney { amount } } customer { id }",
    "products": "id title createdAt updatedAt",
    "customers": "id email createdAt updatedAt",
}


def format_timestamp(value: datetime) -> str:
    """ISO-8601 in UTC with a trailing Z, as Shopify search syntax expects."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc).replace(microsecond=0)
    return value.isoformat().replace("+00:00", "Z")


def build_graphql_query(resource: str) -> str:
    """Build the connection query for a resource kind."""
    return (
        f"query($first: Int!, $after: String, $query: String) {{\n"
        f"  {resource}(first: $first, after: $after, query: $query) {{\n"
        f"    edges {{ cursor node {{ {NODE_FIELDS[resource]} }} }}\n"
        f"    pageInfo {{ hasNextPage }}\n"
        f"  }}\n"
        f"}}"
    )


class PageWalker:
    """
    Walks every page of a resource collection and yields raw records.

    Two pagination styles are supported:
    - "cursor": GraphQL connections, following the last edge's cursor while
      pageInfo.hasNextPage is true.
    - "link": REST endpoints, following the rel="next" URL of the Link header.

    Pages are requested one at a time and only when the caller asks for more
    records. A failed request ends the walk with an exception; records already
    yielded are not affected.
    """

    def __init__(self, client: ShopifyClient, page_size: int = 100, style: str = "cursor"):
        if style not in ("cursor", "link"):
            raise ValueError(f"Unknown pagination style: {style}")
        self.client = client
        self.page_size = max(1, min(page_size, MAX_PAGE_SIZE))
        self.style = style

    def walk(
        self,
        resource: str,
        *,
        updated_since: Optional[datetime] = None,
        after: Optional[str] = None,
    ) -> AsyncIterator[dict]:
        """Yield raw records of `resource`, optionally filtered by updated-at."""
        if resource not in NODE_FIELDS:
            raise ValueError(f"Unknown resource: {resource}")
        if self.style == "cursor":
            return self._walk_cursor(resource, updated_since, after)
        return self._walk_link(resource, updated_since, after)

    async def _walk_cursor(
        self,
        resource: str,
        updated_since: Optional[datetime],
        after: Optional[str],
    ) -> AsyncIterator[dict]:
        query = build_graphql_query(resource)
        search = f"updated_at:>={format_timestamp(updated_since)}" if updated_since else None
        page = 0

        while True:
            page += 1
            data = await self.client.graphql(
                query,
                {"first": self.page_size, "after": after, "query": search},
            )
            connection = data.get(resource)
            if not isinstance(connection, dict):
                raise ShopifyResponseError(f"Response for {resource} page {page} has no '{resource}' connection")

            edges = connection.get("edges")
            if edges is None:
                edges = []
            if not isinstance(edges, list) or not all(isinstance(edge, dict) for edge in edges):
                raise ShopifyResponseError(f"Response for {resource} page {page} has malformed edges")
            nodes = [edge.get("node") for edge in edges]
            if not all(node is None or isinstance(node, dict) for node in nodes):
                raise ShopifyResponseError(f"Response for {resource} page {page} has a non-object node")
            page_info = connection.get("pageInfo")
            if page_info is None:
                page_info = {}
            if not isinstance(page_info, dict):
                raise ShopifyResponseError(f"Response for {resource} page {page} has malformed pageInfo")
            logger.debug(f"Fetched {resource} page {page}: {len(edges)} records")

            last_cursor = None
            for edge, node in zip(edges, nodes):
                if node is not None:
                    yield node
                last_cursor = edge.get("cursor")

            if page_info.get("hasNextPage") is not True:
                return

            if not last_cursor:
                raise PaginationError(f"{resource} page {page} reports more pages but carries no cursor")
            if last_cursor == after:
                raise PaginationError(f"{resource} cursor did not advance after page {page}")
            after = last_cursor

    async def _walk_link(
        self,
        resource: str,
        updated_since: Optional[datetime],
        after: Optional[str],
    ) -> AsyncIterator[dict]:
        # `after` is a next-page URL when resuming a REST walk
        url: Optional[str] = after or f"/{resource}.json"
        params: Optional[dict] = None
        if after is None:
            params = {"limit": self.page_size}
            if updated_since:
                params["updated_at_min"] = format_timestamp(updated_since)

        seen_urls: set[str] = set()
        page = 0

        while url:
            page += 1
            seen_urls.add(url)
            payload, next_url = await self.client.get_page(url, params)

            records = payload.get(resource)
            if not isinstance(records, list):
                raise ShopifyResponseError(f"Response for {resource} page {page} has no '{resource}' list")
            if not all(isinstance(record, dict) for record in records):
                raise ShopifyResponseError(f"Response for {resource} page {page} has a non-object record")
            logger.debug(f"Fetched {resource} page {page}: {len(records)} records")

            for record in records:
                yield record

            if next_url and next_url in seen_urls:
                raise PaginationError(f"{resource} next link repeats an earlier page: {next_url}")
            # page_info URLs already carry limit and filters
            url, params = next_url, None
