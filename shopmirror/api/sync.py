"""Sync API endpoints."""

import logging
from datetime import datetime
from typing import Literal
from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, desc

from shopmirror.core.database import get_db
from shopmirror.models.sync_log import SyncLog
from shopmirror.schemas.responses import SyncLogResponse
from shopmirror.services.sync import RESOURCES, run_guard, run_sync

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/sync", tags=["sync"])


class SyncRequest(BaseModel):
    resource: Literal["orders", "products", "customers"] | None = None
    hours: int | None = Field(default=None, ge=1)


class SyncResponse(BaseModel):
    message: str
    resource: str
    hours: int | None


class SyncStatusResponse(BaseModel):
    running: dict[str, bool]
    last_completed_at: datetime | None
    last_completed_scope: str | None
    last_completed_status: str | None


async def _run_sync_in_background(resource: str | None, hours: int | None):
    """Background task to run sync."""
    try:
        result = await run_sync(resource=resource, hours=hours)
    except Exception as e:
        logger.error(f"Background sync for {resource or 'all'} failed to start: {e}")
        return
    logger.info(f"Background sync for {result['scope']} finished: success={result['success']}")


@router.post("", response_model=SyncResponse)
async def trigger_sync(request: SyncRequest, background_tasks: BackgroundTasks):
    """Trigger a sync of one resource kind, or all of them."""
    resources = [request.resource] if request.resource else list(RESOURCES)
    if any(run_guard.is_running(name) for name in resources):
        raise HTTPException(
            status_code=409,
            detail="A sync for these resources is already running. Check /api/sync/status.",
        )

    background_tasks.add_task(_run_sync_in_background, request.resource, request.hours)

    return SyncResponse(
        message="Sync started",
        resource=request.resource or "all",
        hours=request.hours,
    )


@router.get("/status", response_model=SyncStatusResponse)
async def sync_status(db: AsyncSession = Depends(get_db)):
    """Which resources are syncing now, and how the last run ended."""
    result = await db.execute(
        select(SyncLog)
        .where(SyncLog.message == "Sync completed")
        .order_by(desc(SyncLog.created_at))
        .limit(1)
    )
    last_log = result.scalar_one_or_none()

    return SyncStatusResponse(
        running={name: run_guard.is_running(name) for name in RESOURCES},
        last_completed_at=last_log.created_at if last_log else None,
        last_completed_scope=last_log.resource if last_log else None,
        last_completed_status=last_log.status if last_log else None,
    )


@router.get("/logs", response_model=list[SyncLogResponse])
async def sync_logs(
    resource: str | None = None,
    limit: int = Query(50, ge=1, le=500),
    db: AsyncSession = Depends(get_db),
):
    """Latest sync log entries, newest first."""
    query = select(SyncLog).order_by(desc(SyncLog.created_at)).limit(limit)
    if resource:
        query = query.where(SyncLog.resource == resource)
    result = await db.execute(query)
    return result.scalars().all()
