"""
Call Session Lifecycle & Settlement

A session is started from an accepted request (or directly by legacy
callers) and settled exactly once by end_session(): the status-guarded
active → completed UPDATE, the ledger entry and the host counter increments
commit together, so a second end can never credit the host again.
"""
import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from sqlalchemy import select, update, and_
from sqlalchemy.dialects.postgresql import insert as postgresql_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.config.constants import CALL_TRANSACTION_TYPE
from app.models.call_request import CallRequest, CallRequestStatus
from app.models.call_session import CallSession, CallSessionStatus
from app.models.database import utcnow
from app.models.host_earnings import HostEarnings
from app.models.transaction import Transaction
from app.services.metrics import sessions_settled, settlement_amount

from .exceptions import (
    InvalidRequestError,
    InvalidStateError,
    NotFoundOrAlreadyProcessedError,
    StorageUnavailableError,
)
from .storage import commit_or_raise
from .validators import (
    CENTS,
    validate_call_type,
    validate_duration,
    validate_price,
    validate_principals,
    validate_rating,
    validate_total,
)

logger = logging.getLogger(__name__)

ACTIVE = CallSessionStatus.ACTIVE.value
COMPLETED = CallSessionStatus.COMPLETED.value

# Both dialects support INSERT ... ON CONFLICT DO UPDATE
UPSERT_INSERTS = {
    "postgresql": postgresql_insert,
    "sqlite": sqlite_insert,
}


@dataclass
class SettlementResult:
    session: CallSession
    already_settled: bool = False

    @property
    def total_cost(self) -> Optional[Decimal]:
        return self.session.total_amount


def compute_total(duration_minutes: int, price_per_minute) -> Decimal:
    """duration × rate, rounded to cents once."""
    return (Decimal(duration_minutes) * Decimal(str(price_per_minute))).quantize(CENTS)


async def get_session_by_request(db: AsyncSession, request_id: str) -> Optional[CallSession]:
    result = await db.execute(select(CallSession).where(CallSession.request_id == request_id))
    return result.scalar_one_or_none()


async def _reload(db: AsyncSession, session_id: str) -> Optional[CallSession]:
    result = await db.execute(
        select(CallSession)
        .where(CallSession.id == session_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def start_from_request(db: AsyncSession, request_id: str) -> CallSession:
    """
    Start the session for an accepted request.

    Channel, call type, price and principals are copied from the request.
    A request spawns at most one session; repeating the call returns it.

    Raises:
        NotFoundOrAlreadyProcessedError if the request does not exist
        InvalidStateError if the request is not accepted
    """
    request = (await db.execute(
        select(CallRequest).where(CallRequest.id == request_id).execution_options(populate_existing=True)
    )).scalar_one_or_none()
    if not request:
        raise NotFoundOrAlreadyProcessedError("Call request not found")
    if request.status != CallRequestStatus.ACCEPTED.value:
        raise InvalidStateError(f"Call request {request_id} is {request.status}, not accepted")

    existing = await get_session_by_request(db, request_id)
    if existing:
        logger.info(f"[CallSessions] Session {existing.id} already started for request {request_id}")
        return existing

    session = CallSession(
        request_id=request.id,
        host_id=request.host_id,
        customer_id=request.customer_id,
        channel_name=request.channel_name,
        call_type=request.call_type,
        price_per_minute=request.price_per_minute,
        start_time=utcnow(),
        status=ACTIVE,
    )
    db.add(session)
    try:
        await db.commit()
    except IntegrityError:
        # Another instance started it between our check and insert
        await db.rollback()
        existing = await get_session_by_request(db, request_id)
        if existing is None:
            raise StorageUnavailableError("Failed to start call session")
        return existing
    except SQLAlchemyError as e:
        await db.rollback()
        raise StorageUnavailableError("Failed to start call session") from e

    logger.info(f"[CallSessions] Started {session.id} for request {request_id} on {session.channel_name}")
    return session


async def start_direct(
    db: AsyncSession,
    host_id: str,
    customer_id: str,
    channel_name: str,
    call_type: str,
    price_per_minute
) -> CallSession:
    """
    Start a session without a request (legacy callers).

    Raises:
        InvalidRequestError on bad fields
    """
    validate_principals(customer_id, host_id)
    if not channel_name:
        raise InvalidRequestError("channel_name is required")
    session = CallSession(
        request_id=None,
        host_id=str(host_id),
        customer_id=str(customer_id),
        channel_name=channel_name,
        call_type=validate_call_type(call_type),
        price_per_minute=validate_price(price_per_minute),
        start_time=utcnow(),
        status=ACTIVE,
    )
    db.add(session)
    await commit_or_raise(db, "start call session")
    logger.info(f"[CallSessions] Started direct session {session.id} on {channel_name}")
    return session


async def _credit_host(db: AsyncSession, host_id: str, amount: Decimal, minutes: int) -> None:
    """Increment the host's counters inside the caller's transaction (atomic upsert)."""
    insert = UPSERT_INSERTS.get(db.bind.dialect.name)
    if insert is None:
        raise StorageUnavailableError(f"Unsupported database dialect: {db.bind.dialect.name}")
    stmt = insert(HostEarnings).values(
        host_id=host_id,
        total_earnings=amount,
        total_calls=1,
        total_minutes=minutes,
        updated_at=utcnow(),
    )
    await db.execute(stmt.on_conflict_do_update(
        index_elements=[HostEarnings.host_id],
        set_={
            "total_earnings": HostEarnings.total_earnings + stmt.excluded.total_earnings,
            "total_calls": HostEarnings.total_calls + 1,
            "total_minutes": HostEarnings.total_minutes + stmt.excluded.total_minutes,
            "updated_at": stmt.excluded.updated_at,
        },
    ))


async def end_session(
    db: AsyncSession,
    session_id: str,
    duration,
    rating: Optional[int] = None
) -> SettlementResult:
    """
    End and settle an active session.

    Ending a session that is already completed is a no-op returning the
    settled session with already_settled=True.

    Args:
        duration: Whole minutes, the unit prices are quoted in
        rating: Optional 1-5 rating

    Raises:
        InvalidRequestError on bad duration / rating, or a total too large to record
        NotFoundOrAlreadyProcessedError if the session does not exist
        InvalidStateError if the session was cancelled
        StorageUnavailableError if the settlement could not be written
    """
    duration = validate_duration(duration)
    rating = validate_rating(rating)

    session = await _reload(db, session_id)
    if not session:
        raise NotFoundOrAlreadyProcessedError("Call session not found")
    if session.status == COMPLETED:
        logger.info(f"[CallSessions] End of {session_id} ignored: already settled")
        return SettlementResult(session=session, already_settled=True)
    if session.status != ACTIVE:
        raise InvalidStateError(f"Call session {session_id} is {session.status}")

    host_id, customer_id, call_type = session.host_id, session.customer_id, session.call_type
    total = validate_total(compute_total(duration, session.price_per_minute))
    now = utcnow()

    try:
        result = await db.execute(
            update(CallSession)
            .where(and_(CallSession.id == session_id, CallSession.status == ACTIVE))
            .values(
                end_time=now,
                duration_minutes=duration,
                total_amount=total,
                status=COMPLETED,
                rating=rating,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            await db.rollback()
            current = await _reload(db, session_id)
            if current is not None and current.status == COMPLETED:
                logger.info(f"[CallSessions] End of {session_id} lost the race: already settled")
                return SettlementResult(session=current, already_settled=True)
            raise NotFoundOrAlreadyProcessedError("Call session not found or already ended")

        db.add(Transaction(
            host_id=host_id,
            customer_id=customer_id,
            transaction_type=CALL_TRANSACTION_TYPE,
            reference_id=session_id,
            amount=total,
            description=f"{call_type.capitalize()} call, {duration} min",
            status='completed',
        ))
        await _credit_host(db, host_id, total, duration)
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"[CallSessions] Settlement of {session_id} failed: {e}")
        raise StorageUnavailableError("Failed to settle call session") from e

    await commit_or_raise(db, "settle call session")

    sessions_settled.labels(call_type=call_type).inc()
    settlement_amount.labels(call_type=call_type).inc(float(total))
    logger.info(f"[CallSessions] Settled {session_id}: {duration} min, {total} credited to host {host_id}")

    return SettlementResult(session=await _reload(db, session_id))
