"""
Call Maintenance - background cleanup of stale rows.

Purely an optimization for request expiry: read paths already filter on
expires_at, so nothing depends on this running. Stale active sessions, which
no read path can resolve, are reconciled here to 'cancelled' without billing.
"""
import asyncio
import logging
from datetime import timedelta
from typing import Tuple

from sqlalchemy import update, and_
from sqlalchemy.ext.asyncio import AsyncSession

from app.config.constants import MAX_ACTIVE_SESSION_MINUTES, REQUEST_SWEEP_INTERVAL_SEC
from app.models.call_request import CallRequest, CallRequestStatus
from app.models.call_session import CallSession, CallSessionStatus
from app.models.database import Database, utcnow
from app.services.metrics import call_requests

from .storage import commit_or_raise

logger = logging.getLogger(__name__)


async def expire_stale_requests(db: AsyncSession) -> int:
    """Mark pending requests past their TTL as expired. Returns rows changed."""
    now = utcnow()
    result = await db.execute(
        update(CallRequest)
        .where(
            and_(
                CallRequest.status == CallRequestStatus.PENDING.value,
                CallRequest.expires_at <= now,
            )
        )
        .values(status=CallRequestStatus.EXPIRED.value, rejected_at=now)
        .execution_options(synchronize_session=False)
    )
    await commit_or_raise(db, "expire stale call requests")
    if result.rowcount:
        call_requests.labels(outcome="expired").inc(result.rowcount)
        logger.info(f"[Maintenance] Expired {result.rowcount} stale call request(s)")
    return result.rowcount


async def reconcile_stale_sessions(
    db: AsyncSession,
    max_minutes: int = MAX_ACTIVE_SESSION_MINUTES
) -> int:
    """
    Cancel active sessions that started more than max_minutes ago.

    Their duration was never reported, so they are closed unbilled; the
    status guard keeps a late end() from racing this into a double outcome.
    """
    now = utcnow()
    cutoff = now - timedelta(minutes=max_minutes)
    result = await db.execute(
        update(CallSession)
        .where(
            and_(
                CallSession.status == CallSessionStatus.ACTIVE.value,
                CallSession.start_time <= cutoff,
            )
        )
        .values(status=CallSessionStatus.CANCELLED.value, end_time=now)
        .execution_options(synchronize_session=False)
    )
    await commit_or_raise(db, "reconcile stale call sessions")
    if result.rowcount:
        logger.warning(f"[Maintenance] Cancelled {result.rowcount} session(s) active for over {max_minutes} min")
    return result.rowcount


async def run_maintenance_once(database: Database) -> Tuple[int, int]:
    async with database.session() as db:
        expired = await expire_stale_requests(db)
        cancelled = await reconcile_stale_sessions(db)
    return expired, cancelled


async def run_maintenance_loop(database: Database, interval: int = REQUEST_SWEEP_INTERVAL_SEC):
    """
    Background task: sweep stale requests and sessions forever.

    Errors are logged and the loop keeps going; the next tick retries.
    """
    logger.info("[Maintenance] Starting call maintenance background task")

    while True:
        try:
            await run_maintenance_once(database)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"[Maintenance] Sweep error: {e}")

        await asyncio.sleep(interval)
