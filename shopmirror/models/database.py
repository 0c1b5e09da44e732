from datetime import datetime, timezone
from sqlalchemy import (
    BigInteger,
    Column,
    DateTime,
    String,
    Text,
)
from shopmirror.core.database import Base


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


class ShopifyOrder(Base):
    """Mirrored Shopify order."""

    __tablename__ = "shopify_orders"

    id = Column(BigInteger, primary_key=True, autoincrement=False)
    order_number = Column(String, nullable=True)
    customer_id = Column(BigInteger, nullable=True, index=True)
    created_at = Column(DateTime(timezone=True), nullable=True)
    updated_at = Column(DateTime(timezone=True), nullable=True, index=True)
    total_price = Column(String, nullable=True)  # decimal string as sent upstream
    raw_json = Column(Text, nullable=False)
    synced_at = Column(DateTime(timezone=True), default=utc_now)


class ShopifyProduct(Base):
    """Mirrored Shopify product."""

    __tablename__ = "shopify_products"

    id = Column(BigInteger, primary_key=True, autoincrement=False)
    title = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=True)
    updated_at = Column(DateTime(timezone=True), nullable=True, index=True)
    raw_json = Column(Text, nullable=False)
    synced_at = Column(DateTime(timezone=True), default=utc_now)


class ShopifyCustomer(Base):
    """Mirrored Shopify customer."""

    __tablename__ = "shopify_customers"

    id = Column(BigInteger, primary_key=True, autoincrement=False)
    email = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=True)
    updated_at = Column(DateTime(timezone=True), nullable=True, index=True)
    raw_json = Column(Text, nullable=False)
    synced_at = Column(DateTime(timezone=True), default=utc_now)


# Resource kind -> mirrored model, in default sync order
RESOURCE_MODELS = {
    "orders": ShopifyOrder,
    "products": ShopifyProduct,
    "customers": ShopifyCustomer,
}
