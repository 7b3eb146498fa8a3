"""
Call History & Earnings

Read-only queries over settled calls:
- Call history for a customer or host
- Host session list and earnings summary
- Transaction ledger listing through a TransactionFilter parameter object
"""
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Dict, List, Optional

from sqlalchemy import select, func, or_, and_
from sqlalchemy.ext.asyncio import AsyncSession

from app.config.constants import DEFAULT_CALL_HISTORY_LIMIT, DEFAULT_TRANSACTION_LIMIT, MAX_PAGE_LIMIT
from app.models.call_session import CallSession, CallSessionStatus
from app.models.database import utcnow
from app.models.host_earnings import HostEarnings
from app.models.transaction import Transaction

CENTS = Decimal("0.01")


def _clamp(limit: int) -> int:
    return max(1, min(limit, MAX_PAGE_LIMIT))


def _money(value) -> Decimal:
    return Decimal(str(value or 0)).quantize(CENTS)


@dataclass
class TransactionFilter:
    """
    Recognized options for listing ledger entries.

    Each option that is set narrows the query; None means "any".
    """
    host_id: str
    transaction_type: Optional[str] = None
    date_from: Optional[datetime] = None
    date_to: Optional[datetime] = None
    limit: int = DEFAULT_TRANSACTION_LIMIT
    offset: int = 0

    def conditions(self) -> list:
        clauses = [Transaction.host_id == self.host_id]
        if self.transaction_type:
            clauses.append(Transaction.transaction_type == self.transaction_type)
        if self.date_from:
            clauses.append(Transaction.created_at >= self.date_from)
        if self.date_to:
            clauses.append(Transaction.created_at < self.date_to)
        return clauses


async def list_transactions(db: AsyncSession, filters: TransactionFilter) -> List[Transaction]:
    result = await db.execute(
        select(Transaction)
        .where(and_(*filters.conditions()))
        .order_by(Transaction.created_at.desc())
        .limit(_clamp(filters.limit))
        .offset(max(filters.offset, 0))
    )
    return list(result.scalars().all())


async def get_user_call_history(
    db: AsyncSession,
    user_id: str,
    limit: int = DEFAULT_CALL_HISTORY_LIMIT
) -> List[CallSession]:
    """
    Get sessions where the user was the customer or the host, newest first.

    Args:
        db: Database session
        user_id: Principal id
        limit: Maximum number of sessions to return
    """
    result = await db.execute(
        select(CallSession)
        .where(or_(CallSession.customer_id == user_id, CallSession.host_id == user_id))
        .order_by(CallSession.start_time.desc())
        .limit(_clamp(limit))
    )
    return list(result.scalars().all())


async def get_host_sessions(
    db: AsyncSession,
    host_id: str,
    limit: int = DEFAULT_TRANSACTION_LIMIT,
    offset: int = 0
) -> List[CallSession]:
    result = await db.execute(
        select(CallSession)
        .where(CallSession.host_id == host_id)
        .order_by(CallSession.start_time.desc())
        .limit(_clamp(limit))
        .offset(max(offset, 0))
    )
    return list(result.scalars().all())


async def get_earnings_summary(db: AsyncSession, host_id: str) -> Dict:
    """
    Get the host's earnings summary.

    Totals come from the settlement counters. today_earnings (since midnight
    UTC) and week_earnings (since Monday 00:00 UTC) are summed from the
    ledger; average_rating is taken over completed, rated sessions.
    """
    earnings = (await db.execute(
        select(HostEarnings)
        .where(HostEarnings.host_id == host_id)
        .execution_options(populate_existing=True)
    )).scalar_one_or_none()

    now = utcnow()
    start_of_day = now.replace(hour=0, minute=0, second=0, microsecond=0)
    start_of_week = start_of_day - timedelta(days=start_of_day.weekday())

    today = await db.execute(
        select(func.coalesce(func.sum(Transaction.amount), 0)).where(
            and_(Transaction.host_id == host_id, Transaction.created_at >= start_of_day)
        )
    )
    week = await db.execute(
        select(func.coalesce(func.sum(Transaction.amount), 0)).where(
            and_(Transaction.host_id == host_id, Transaction.created_at >= start_of_week)
        )
    )
    rating = await db.execute(
        select(func.avg(CallSession.rating)).where(
            and_(
                CallSession.host_id == host_id,
                CallSession.status == CallSessionStatus.COMPLETED.value,
                CallSession.rating.is_not(None),
            )
        )
    )
    average_rating = rating.scalar()

    return {
        "host_id": host_id,
        "total_earnings": _money(earnings.total_earnings if earnings else 0),
        "total_calls": earnings.total_calls if earnings else 0,
        "total_minutes": earnings.total_minutes if earnings else 0,
        "today_earnings": _money(today.scalar()),
        "week_earnings": _money(week.scalar()),
        "average_rating": round(float(average_rating), 2) if average_rating is not None else None,
    }
