"""
Call Service - Signaling Core

Main service class for the call request / call session flow:
- Request creation, host queue, accept / reject, status polling
- Session start and settlement
- History and earnings reads

Each method delegates to the module that owns that part of the lifecycle.
"""
from typing import List, Optional
import logging

from sqlalchemy.ext.asyncio import AsyncSession

from app.config.constants import DEFAULT_CALL_HISTORY_LIMIT, DEFAULT_TRANSACTION_LIMIT
from app.models.call_request import CallRequest
from app.models.call_session import CallSession
from app.models.transaction import Transaction
from app.services.protocols import CredentialIssuerProtocol

from .requests import (
    AcceptResult,
    RequestStatusView,
    create_request,
    list_pending_for_host,
    accept_request,
    reject_request,
    get_request_status,
)
from .sessions import SettlementResult, start_from_request, start_direct, end_session
from .history import (
    TransactionFilter,
    get_user_call_history,
    get_host_sessions,
    get_earnings_summary,
    list_transactions,
)

logger = logging.getLogger(__name__)


class CallService:
    """Service for managing call requests and call sessions."""

    # === Call request lifecycle (delegates to requests module) ===

    @staticmethod
    async def create_request(
        db: AsyncSession,
        customer_id: str,
        host_id: str,
        call_type: str,
        price_per_minute,
        message: Optional[str] = None
    ) -> CallRequest:
        return await create_request(db, customer_id, host_id, call_type, price_per_minute, message)

    @staticmethod
    async def list_pending(db: AsyncSession, host_id: str) -> List[CallRequest]:
        return await list_pending_for_host(db, host_id)

    @staticmethod
    async def accept(
        db: AsyncSession,
        issuer: CredentialIssuerProtocol,
        request_id: str,
        host_id: str,
        channel_name: Optional[str] = None
    ) -> AcceptResult:
        return await accept_request(db, issuer, request_id, host_id, channel_name)

    @staticmethod
    async def reject(db: AsyncSession, request_id: str, host_id: str, reason: Optional[str] = None) -> CallRequest:
        return await reject_request(db, request_id, host_id, reason)

    @staticmethod
    async def get_status(
        db: AsyncSession,
        issuer: CredentialIssuerProtocol,
        request_id: str,
        requesting_uid=None
    ) -> RequestStatusView:
        return await get_request_status(db, issuer, request_id, requesting_uid)

    # === Call session lifecycle (delegates to sessions module) ===

    @staticmethod
    async def start_session(
        db: AsyncSession,
        request_id: Optional[str] = None,
        host_id: Optional[str] = None,
        customer_id: Optional[str] = None,
        channel_name: Optional[str] = None,
        call_type: Optional[str] = None,
        price_per_minute=None
    ) -> CallSession:
        """
        Start a session from an accepted request, or from explicit
        parameters when no request_id is given.
        """
        if request_id:
            return await start_from_request(db, request_id)
        return await start_direct(db, host_id, customer_id, channel_name, call_type, price_per_minute)

    @staticmethod
    async def end_session(
        db: AsyncSession,
        session_id: str,
        duration,
        rating: Optional[int] = None
    ) -> SettlementResult:
        return await end_session(db, session_id, duration, rating)

    # === History methods (delegates to history module) ===

    @staticmethod
    async def get_user_call_history(db: AsyncSession, user_id: str, limit: int = DEFAULT_CALL_HISTORY_LIMIT):
        return await get_user_call_history(db, user_id, limit)

    @staticmethod
    async def get_host_sessions(db: AsyncSession, host_id: str, limit: int = DEFAULT_TRANSACTION_LIMIT, offset: int = 0):
        return await get_host_sessions(db, host_id, limit, offset)

    @staticmethod
    async def get_earnings_summary(db: AsyncSession, host_id: str):
        return await get_earnings_summary(db, host_id)

    @staticmethod
    async def list_transactions(db: AsyncSession, filters: TransactionFilter) -> List[Transaction]:
        return await list_transactions(db, filters)
