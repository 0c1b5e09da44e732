"""Sync orchestration - coordinates fetching, transforming and storing."""

import asyncio
import logging
from datetime import datetime, timedelta
from typing import Any, Callable, Iterable, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from shopmirror.core.config import Settings, get_settings
from shopmirror.core.database import get_session_maker
from shopmirror.models.database import RESOURCE_MODELS, utc_now
from shopmirror.services.pagination import PageWalker
from shopmirror.services.rate_limiter import RateLimiter
from shopmirror.services.shopify import ShopifyClient, ShopifyError
from shopmirror.services.sync_log import save_log
from shopmirror.services.transform import extract_id, transform_record
from shopmirror.services.upsert import upsert_row

logger = logging.getLogger(__name__)

RESOURCES = tuple(RESOURCE_MODELS)

# Per-item error messages kept in a resource status
MAX_REPORTED_ERRORS = 50


class RunGuard:
    """Tracks which resource kinds have a sync in progress."""

    def __init__(self, resources: Iterable[str] = RESOURCES):
        self._locks = {name: asyncio.Lock() for name in resources}

    def is_running(self, resource: str) -> bool:
        return self._locks[resource].locked()

    async def try_acquire(self, resources: list[str]) -> bool:
        """Take every lock in `resources`, or none if any is already held."""
        if any(self._locks[name].locked() for name in resources):
            return False
        for name in resources:
            await self._locks[name].acquire()
        return True

    def release(self, resources: list[str]) -> None:
        for name in resources:
            if self._locks[name].locked():
                self._locks[name].release()


# Shared by the scheduler, the CLI and the HTTP trigger
run_guard = RunGuard()


class SyncService:
    """Orchestrates syncing Shopify resources into the local mirror."""

    def __init__(
        self,
        walker: PageWalker,
        guard: Optional[RunGuard] = None,
        now: Callable[[], datetime] = utc_now,
    ):
        self.walker = walker
        self.guard = guard or run_guard
        self.now = now

    async def sync_resource(
        self,
        resource: str,
        session: AsyncSession,
        hours: Optional[int] = None,
    ) -> dict[str, Any]:
        """
        Fetch one resource kind and upsert every record as it arrives.

        A failing record is counted and skipped. A failing fetch stops this
        resource; records written before it stay committed.

        Returns:
            Status dict with fetched/written/failed counts.
        """
        model = RESOURCE_MODELS[resource]
        status = {
            "resource": resource,
            "success": True,
            "errors": [],
            "counts": {"fetched": 0, "written": 0, "failed": 0},
        }
        counts = status["counts"]

        updated_since = None
        if resource == "orders" and hours:
            updated_since = self.now() - timedelta(hours=hours)
            logger.info(f"Syncing {resource} updated since {updated_since.isoformat()}")
        else:
            logger.info(f"Syncing all {resource}")

        try:
            async for raw in self.walker.walk(resource, updated_since=updated_since):
                counts["fetched"] += 1
                try:
                    row = transform_record(resource, raw)
                    row.synced_at = self.now()
                    await upsert_row(session, model, row)
                    counts["written"] += 1
                except Exception as e:
                    counts["failed"] += 1
                    record_id = extract_id(raw.get("id"))
                    logger.error(f"Failed to sync {resource} record {record_id}: {e}")
                    if len(status["errors"]) < MAX_REPORTED_ERRORS:
                        status["errors"].append(f"{record_id}: {e}")
        except ShopifyError as e:
            logger.error(f"Fetching {resource} failed after {counts['fetched']} records: {e}")
            status["success"] = False
            status["errors"].append(str(e))
            await save_log(session, str(e), resource, status="failed", details=dict(counts))
            return status

        if counts["failed"]:
            status["success"] = False
            await save_log(
                session,
                f"{counts['failed']} of {counts['fetched']} {resource} failed to sync",
                resource,
                status="partial",
                details=dict(counts),
            )

        logger.info(f"{resource} sync finished: {counts}")
        return status

    async def run(
        self,
        session: AsyncSession,
        resource: Optional[str] = None,
        hours: Optional[int] = None,
    ) -> dict[str, Any]:
        """
        Sync one resource kind, or orders, products and customers in turn.

        `hours` limits orders to those updated within the last N hours.
        Products and customers are always fetched in full.

        Returns:
            Run summary. Sync failures are reported here and in the sync log,
            never raised.
        """
        if resource is not None and resource not in RESOURCES:
            raise ValueError(f"Unknown resource '{resource}', expected one of {', '.join(RESOURCES)}")

        scope = resource or "all"
        resources = [resource] if resource else list(RESOURCES)
        summary = {
            "scope": scope,
            "success": True,
            "skipped": False,
            "resources": {},
            "errors": [],
        }

        if not await self.guard.try_acquire(resources):
            logger.warning(f"Sync for {scope} skipped: a sync touching these resources is already running")
            summary["success"] = False
            summary["skipped"] = True
            return summary

        try:
            for name in resources:
                result = await self.sync_resource(name, session, hours=hours if name == "orders" else None)
                summary["resources"][name] = result
                if not result["success"]:
                    summary["success"] = False
                    summary["errors"].extend(f"{name}: {err}" for err in result["errors"])

            await save_log(
                session,
                "Sync completed",
                scope,
                status="success" if summary["success"] else "partial",
                details={name: r["counts"] for name, r in summary["resources"].items()},
            )
            logger.info(f"Sync completed for {scope}")

        except Exception as e:
            logger.error(f"Sync failed for {scope}: {e}")
            summary["success"] = False
            summary["errors"].append(str(e))
            await session.rollback()
            await save_log(session, str(e), scope, status="failed")

        finally:
            self.guard.release(resources)

        return summary


def create_sync_service(settings: Optional[Settings] = None) -> SyncService:
    """Build a sync service from settings."""
    settings = settings or get_settings()
    client = ShopifyClient(
        settings.shopify_store_domain,
        settings.shopify_api_key,
        settings.shopify_api_password,
        api_version=settings.shopify_api_version,
        limiter=RateLimiter(settings.shopify_min_request_interval),
        timeout=settings.shopify_timeout,
    )
    walker = PageWalker(client, page_size=settings.shopify_page_size, style=settings.shopify_pagination)
    return SyncService(walker)


async def run_sync(resource: Optional[str] = None, hours: Optional[int] = None) -> dict[str, Any]:
    """Run one sync with a fresh client and session."""
    sync_service = create_sync_service()
    try:
        async with get_session_maker()() as session:
            return await sync_service.run(session, resource=resource, hours=hours)
    finally:
        await sync_service.walker.client.close()
