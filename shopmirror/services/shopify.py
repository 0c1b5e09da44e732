"""Shopify Admin API client."""

import logging
from typing import Any, Optional

import httpx

from shopmirror.services.rate_limiter import RateLimiter

logger = logging.getLogger(__name__)


class ShopifyError(Exception):
    """Base class for errors talking to the Shopify API."""
    pass


class ShopifyTransportError(ShopifyError):
    """Network failure or timeout before a response was received."""
    pass


class ShopifyResponseError(ShopifyError):
    """Non-success status, GraphQL errors or an unusable response body."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class PaginationError(ShopifyError):
    """Missing or inconsistent continuation signal."""
    pass


class ShopifyClient:
    """Async client for the Shopify Admin API (GraphQL and REST)."""

    def __init__(
        self,
        store_domain: str,
        api_key: str,
        password: str,
        api_version: str = "2023-07",
        limiter: Optional[RateLimiter] = None,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = f"https://{store_domain.strip('/')}/admin/api/{api_version}"
        self.api_key = api_key
        self.password = password
        self.limiter = limiter or RateLimiter(0.25)
        self.timeout = timeout
        self.transport = transport
        self.client: Optional[httpx.AsyncClient] = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create async HTTP client."""
        if self.client is None:
            self.client = httpx.AsyncClient(
                auth=(self.api_key, self.password),
                headers={"Content-Type": "application/json"},
                timeout=self.timeout,
                transport=self.transport,
            )
        return self.client

    async def close(self):
        """Close the HTTP client."""
        if self.client:
            await self.client.aclose()
            self.client = None

    async def _send(self, method: str, url: str, **kwargs) -> httpx.Response:
        """Issue one rate-limited request and check its status."""
        client = await self._get_client()
        await self.limiter.wait()
        try:
            response = await client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            raise ShopifyTransportError(f"{method} {url} failed: {e}") from e

        if response.status_code >= 400:
            raise ShopifyResponseError(
                f"Shopify returned HTTP {response.status_code}: {response.text[:200]}",
                status_code=response.status_code,
            )
        return response

    def _parse_json_response(self, response: httpx.Response, context: str) -> dict:
        """Parse a JSON object body or raise ShopifyResponseError."""
        try:
            payload = response.json()
        except ValueError as e:
            raise ShopifyResponseError(
                f"{context}: invalid JSON body: {response.text[:200]}",
                status_code=response.status_code,
            ) from e
        if not isinstance(payload, dict):
            raise ShopifyResponseError(
                f"{context}: expected a JSON object, got {type(payload).__name__}",
                status_code=response.status_code,
            )
        return payload

    async def graphql(self, query: str, variables: Optional[dict[str, Any]] = None) -> dict:
        """
        Run a GraphQL query and return its `data` object.

        GraphQL-level `errors` are raised even when the HTTP status is 200.
        """
        response = await self._send(
            "POST",
            f"{self.base_url}/graphql.json",
            json={"query": query, "variables": variables or {}},
        )
        payload = self._parse_json_response(response, "graphql")

        errors = payload.get("errors")
        if errors:
            if isinstance(errors, list):
                message = "; ".join(str(e.get("message", e)) if isinstance(e, dict) else str(e) for e in errors)
            else:
                message = str(errors)
            raise ShopifyResponseError(f"GraphQL errors: {message}", status_code=response.status_code)

        data = payload.get("data")
        if not isinstance(data, dict):
            raise ShopifyResponseError("GraphQL response has no data", status_code=response.status_code)
        return data

    async def get_page(self, url: str, params: Optional[dict[str, Any]] = None) -> tuple[dict, Optional[str]]:
        """
        GET one REST page.

        Args:
            url: Absolute URL, or a path relative to the API base (e.g. "/orders.json")
            params: Query parameters (ignored by Shopify on page_info follow-ups)

        Returns:
            The JSON body and the `rel="next"` URL from the Link header, if any.
        """
        if url.startswith("/"):
            url = f"{self.base_url}{url}"
        response = await self._send("GET", url, params=params)
        payload = self._parse_json_response(response, f"GET {url}")
        next_url = response.links.get("next", {}).get("url")
        return payload, next_url
