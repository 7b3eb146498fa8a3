"""
Call Service Module

Re-exports CallService, lifecycle results and exceptions.
"""
from .service import CallService
from .requests import AcceptResult, RequestStatusView
from .sessions import SettlementResult
from .history import TransactionFilter
from .exceptions import (
    CallServiceError,
    InvalidRequestError,
    NotFoundOrAlreadyProcessedError,
    PrincipalMismatchError,
    InvalidStateError,
    StorageUnavailableError,
)

# Singleton instance
call_service = CallService()

__all__ = [
    "CallService",
    "call_service",
    "AcceptResult",
    "RequestStatusView",
    "SettlementResult",
    "TransactionFilter",
    "CallServiceError",
    "InvalidRequestError",
    "NotFoundOrAlreadyProcessedError",
    "PrincipalMismatchError",
    "InvalidStateError",
    "StorageUnavailableError",
]
