"""Best-effort writer for the append-only sync log."""

import logging
from typing import Any, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from shopmirror.models.database import utc_now
from shopmirror.models.sync_log import SyncLog, new_log_id
from shopmirror.services.upsert import UpsertError, upsert_row

logger = logging.getLogger(__name__)


async def save_log(
    session: AsyncSession,
    message: str,
    resource: str,
    status: str = "success",
    details: Optional[dict[str, Any]] = None,
) -> bool:
    """
    Append one entry to the sync log.

    A failed write is logged and reported through the return value; it never
    raises into the sync run.
    """
    entry = {
        "id": new_log_id(),
        "resource": resource,
        "message": message,
        "status": status,
        "details": details,
        "created_at": utc_now(),
    }
    try:
        await upsert_row(session, SyncLog, entry, key="id")
    except (UpsertError, SQLAlchemyError) as e:
        logger.error(f"Could not write sync log entry for {resource} ({message!r}): {e}")
        return False
    return True
