"""Sync log model for tracking sync operations."""

import uuid
from sqlalchemy import Column, String, DateTime, Text, JSON

from shopmirror.core.database import Base
from shopmirror.models.database import utc_now


def new_log_id() -> str:
    """Unique entry id; safe for entries written within the same millisecond."""
    return uuid.uuid4().hex


class SyncLog(Base):
    """Append-only log of sync outcomes."""

    __tablename__ = "sync_log"

    id = Column(String(32), primary_key=True, default=new_log_id)
    resource = Column(String, nullable=False)  # "orders", "products", "customers", "all"
    message = Column(Text, nullable=False)
    status = Column(String, nullable=False, default="success")  # "success", "partial", "failed"
    details = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now, index=True)
