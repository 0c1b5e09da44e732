"""Transformers to convert raw Shopify records into ORM rows."""

import json
import logging
import re
from datetime import datetime
from typing import Any, Optional

from shopmirror.models.database import ShopifyCustomer, ShopifyOrder, ShopifyProduct

logger = logging.getLogger(__name__)

_TRAILING_ID = re.compile(r"(\d+)$")


def extract_id(value: Any) -> Optional[int]:
    """
    Unwrap a Shopify identifier to its integer id.

    Accepts global ids ("gid://shopify/Order/123"), numeric strings and ints.
    Returns None when no trailing number is present.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    match = _TRAILING_ID.search(str(value).strip())
    return int(match.group(1)) if match else None


def _parse_datetime(value: Any) -> Optional[datetime]:
    """Parse an upstream ISO 8601 timestamp, None when absent or unparseable."""
    if not value or not isinstance(value, str):
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        logger.debug(f"Unparseable timestamp: {value!r}")
        return None


def _first(raw: dict, *keys: str) -> Any:
    """First non-None value among camelCase / snake_case spellings."""
    for key in keys:
        value = raw.get(key)
        if value is not None:
            return value
    return None


def _dump(raw: dict) -> str:
    return json.dumps(raw, default=str)


def _total_price(raw: dict) -> Optional[str]:
    price_set = raw.get("totalPriceSet")
    if isinstance(price_set, dict):
        amount = (price_set.get("shopMoney") or {}).get("amount")
        if amount is not None:
            return str(amount)
    price = raw.get("total_price")
    return str(price) if price is not None else None


def transform_order(raw: dict) -> ShopifyOrder:
    """Map a raw order (GraphQL node or REST object) to a ShopifyOrder."""
    customer = raw.get("customer")
    customer_id = extract_id(customer.get("id")) if isinstance(customer, dict) else None
    order_number = _first(raw, "orderNumber", "order_number", "name")

    return ShopifyOrder(
        id=extract_id(raw.get("id")),
        order_number=str(order_number) if order_number is not None else None,
        customer_id=customer_id,
        created_at=_parse_datetime(_first(raw, "createdAt", "created_at")),
        updated_at=_parse_datetime(_first(raw, "updatedAt", "updated_at")),
        total_price=_total_price(raw),
        raw_json=_dump(raw),
    )


def transform_product(raw: dict) -> ShopifyProduct:
    """Map a raw product to a ShopifyProduct."""
    return ShopifyProduct(
        id=extract_id(raw.get("id")),
        title=raw.get("title"),
        created_at=_parse_datetime(_first(raw, "createdAt", "created_at")),
        updated_at=_parse_datetime(_first(raw, "updatedAt", "updated_at")),
        raw_json=_dump(raw),
    )


def transform_customer(raw: dict) -> ShopifyCustomer:
    """Map a raw customer to a ShopifyCustomer."""
    return ShopifyCustomer(
        id=extract_id(raw.get("id")),
        email=raw.get("email"),
        created_at=_parse_datetime(_first(raw, "createdAt", "created_at")),
        updated_at=_parse_datetime(_first(raw, "updatedAt", "updated_at")),
        raw_json=_dump(raw),
    )


TRANSFORMERS = {
    "orders": transform_order,
    "products": transform_product,
    "customers": transform_customer,
}


def transform_record(resource: str, raw: dict):
    """Transform a raw record of the given resource kind."""
    try:
        transformer = TRANSFORMERS[resource]
    except KeyError:
        raise ValueError(f"Unknown resource: {resource}") from None
    return transformer(raw)
