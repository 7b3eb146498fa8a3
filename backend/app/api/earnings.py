"""
Earnings API - host earnings, ledger and call history

Every endpoint is scoped to the authenticated user: only host accounts see
earnings, and only their own; users only see their own call history.
"""
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.auth import get_current_user, get_current_host
from app.config.constants import DEFAULT_CALL_HISTORY_LIMIT, DEFAULT_TRANSACTION_LIMIT, MAX_PAGE_LIMIT
from app.models.database import get_db
from app.models.user import User
from app.services.call import call_service, TransactionFilter

router = APIRouter()


def _require_self(current_user: User, user_id: str, what: str) -> None:
    if current_user.id != user_id:
        raise HTTPException(status_code=403, detail=f"Not allowed to view another user's {what}")


@router.get("/hosts/{host_id}/earnings")
async def get_host_earnings(
    host_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_host)
):
    _require_self(current_user, host_id, "earnings")
    summary = await call_service.get_earnings_summary(db, host_id)
    return {
        "success": True,
        "earnings": {
            **summary,
            "total_earnings": str(summary["total_earnings"]),
            "today_earnings": str(summary["today_earnings"]),
            "week_earnings": str(summary["week_earnings"]),
        },
    }


@router.get("/hosts/{host_id}/transactions")
async def get_host_transactions(
    host_id: str,
    transaction_type: Optional[str] = Query(None, alias="type"),
    date_from: Optional[datetime] = Query(None),
    date_to: Optional[datetime] = Query(None),
    limit: int = Query(DEFAULT_TRANSACTION_LIMIT, ge=1, le=MAX_PAGE_LIMIT),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_host)
):
    _require_self(current_user, host_id, "transactions")
    filters = TransactionFilter(
        host_id=host_id,
        transaction_type=transaction_type,
        date_from=date_from,
        date_to=date_to,
        limit=limit,
        offset=offset,
    )
    transactions = await call_service.list_transactions(db, filters)
    return {
        "success": True,
        "transactions": [t.to_dict() for t in transactions],
        "count": len(transactions),
    }


@router.get("/hosts/{host_id}/call-sessions")
async def get_host_call_sessions(
    host_id: str,
    limit: int = Query(DEFAULT_TRANSACTION_LIMIT, ge=1, le=MAX_PAGE_LIMIT),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_host)
):
    _require_self(current_user, host_id, "call sessions")
    sessions = await call_service.get_host_sessions(db, host_id, limit=limit, offset=offset)
    return {
        "success": True,
        "sessions": [s.to_dict() for s in sessions],
        "count": len(sessions),
    }


@router.get("/users/{user_id}/call-history")
async def get_call_history(
    user_id: str,
    limit: int = Query(DEFAULT_CALL_HISTORY_LIMIT, ge=1, le=MAX_PAGE_LIMIT),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    _require_self(current_user, user_id, "call history")
    sessions = await call_service.get_user_call_history(db, user_id, limit=limit)
    return {
        "success": True,
        "calls": [s.to_dict() for s in sessions],
        "count": len(sessions),
    }
