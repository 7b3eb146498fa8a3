"""
Application-wide constants for configuration and tuning.

This file centralizes all magic numbers and configuration values
to enable easy tuning and maintain consistency across the backend.

Note: Environment-dependent settings (DB, Redis, RTC keys) belong in settings.py.
This file is for operational parameters that rarely change between environments.
"""

from decimal import Decimal

# ==============================================================================
# CALL REQUESTS
# ==============================================================================

# Seconds a pending call request stays answerable by the host
CALL_REQUEST_TTL_SEC: int = 300

# Supported call types
CALL_TYPES: tuple[str, ...] = ("voice", "video")

# Default text stored when the customer sends no message
DEFAULT_CALL_REQUEST_MESSAGE: str = "Call request"

# Default reason stored when the host rejects without one
DEFAULT_REJECTION_REASON: str = "Host declined the call"

# Attempts to insert a request when a concurrent create wins the pending slot
CALL_REQUEST_CREATE_ATTEMPTS: int = 3

# Largest per-minute price a request can carry (fits Numeric(8, 2))
MAX_PRICE_PER_MINUTE: Decimal = Decimal("999999.99")

# ==============================================================================
# CALL SESSIONS & SETTLEMENT
# ==============================================================================

# Minimum and maximum post-call rating
MIN_CALL_RATING: int = 1
MAX_CALL_RATING: int = 5

# Longest duration an end call may report (one day)
MAX_CALL_DURATION_MINUTES: int = 24 * 60

# Largest settled amount for one session (fits Numeric(10, 2))
MAX_SESSION_TOTAL: Decimal = Decimal("99999999.99")

# Active sessions older than this are reconciled to 'cancelled' (unbilled)
MAX_ACTIVE_SESSION_MINUTES: int = 240

# Ledger entry type written by settlement
CALL_TRANSACTION_TYPE: str = "call"

# ==============================================================================
# REALTIME TRANSPORT CREDENTIALS
# ==============================================================================

# Lifetime of credentials issued on accept / status poll (24h)
RTC_TOKEN_TTL_SEC: int = 24 * 60 * 60

# Lifetime of credentials issued through the standalone token endpoint
RTC_TOKEN_DEFAULT_TTL_SEC: int = 300

# Fixed transport uid used for the host side of a call
HOST_RTC_UID: int = 1

# Transport uid used for the customer when the poll does not supply one
DEFAULT_CUSTOMER_RTC_UID: int = 2

# Signing algorithm for transport credentials
RTC_TOKEN_ALGORITHM: str = "HS256"

# ==============================================================================
# BACKGROUND MAINTENANCE
# ==============================================================================

# How often the stale request / session sweep runs (seconds)
REQUEST_SWEEP_INTERVAL_SEC: int = 60

# ==============================================================================
# REALTIME RELAY
# ==============================================================================

# Redis pub/sub channel prefix for per-user signaling events
RELAY_CHANNEL_PREFIX: str = "channel:signal:"

# ==============================================================================
# DATABASE CONNECTION POOL
# ==============================================================================

# SQLAlchemy connection pool size
DB_POOL_SIZE: int = 10

# SQLAlchemy max overflow connections
DB_POOL_MAX_OVERFLOW: int = 20

# ==============================================================================
# API PAGINATION & LIMITS
# ==============================================================================

# Default call history pagination limit
DEFAULT_CALL_HISTORY_LIMIT: int = 50

# Default transaction list page size
DEFAULT_TRANSACTION_LIMIT: int = 20

# Hard upper bound for any list endpoint
MAX_PAGE_LIMIT: int = 100

# ==============================================================================
# VALIDATION CONSTRAINTS
# ==============================================================================

# Phone number validation
PHONE_MIN_LENGTH: int = 6
PHONE_MAX_LENGTH: int = 20

# Full name validation
FULLNAME_MIN_LENGTH: int = 1
FULLNAME_MAX_LENGTH: int = 255

# User roles
CUSTOMER_ROLE: str = "customer"
HOST_ROLE: str = "host"
USER_ROLES: tuple[str, ...] = (CUSTOMER_ROLE, HOST_ROLE)
