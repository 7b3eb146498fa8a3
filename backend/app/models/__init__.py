"""
Database Models Package

This module exports all SQLAlchemy models for the host call signaling service.

Tables:
1. users - Customers and hosts
2. call_requests - Customer → host call solicitations
3. call_sessions - Billable calls spawned from accepted requests
4. transactions - Append-only host ledger
5. host_earnings - Aggregate host counters
"""

from .database import (
    Base,
    Database,
    get_db,
    utcnow,
)

from .user import User
from .call_request import CallRequest, CallRequestStatus, CallType
from .call_session import CallSession, CallSessionStatus
from .transaction import Transaction
from .host_earnings import HostEarnings

__all__ = [
    # Database utilities
    "Base",
    "Database",
    "get_db",
    "utcnow",

    # Models
    "User",
    "CallRequest",
    "CallRequestStatus",
    "CallType",
    "CallSession",
    "CallSessionStatus",
    "Transaction",
    "HostEarnings",
]
