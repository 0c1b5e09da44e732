"""Pydantic response models for API endpoints."""

from datetime import datetime
from pydantic import BaseModel, ConfigDict
from typing import Any


class OrderResponse(BaseModel):
    """Mirrored order."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    order_number: str | None
    customer_id: int | None
    created_at: datetime | None
    updated_at: datetime | None
    total_price: str | None
    raw_json: str
    synced_at: datetime | None


class ProductResponse(BaseModel):
    """Mirrored product."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str | None
    created_at: datetime | None
    updated_at: datetime | None
    raw_json: str
    synced_at: datetime | None


class CustomerResponse(BaseModel):
    """Mirrored customer."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    email: str | None
    created_at: datetime | None
    updated_at: datetime | None
    raw_json: str
    synced_at: datetime | None


class SyncLogResponse(BaseModel):
    """One sync log entry."""
    model_config = ConfigDict(from_attributes=True)

    id: str
    resource: str
    message: str
    status: str
    details: dict[str, Any] | None
    created_at: datetime
