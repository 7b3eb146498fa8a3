"""
Call Validators

Validation methods for call operations:
- Call request fields (principals, call type, price)
- Session end fields (duration, rating, settled total)
- Principal ownership checks
"""
from decimal import Decimal, InvalidOperation
from typing import Optional

from app.config.constants import (
    CALL_TYPES,
    MIN_CALL_RATING,
    MAX_CALL_RATING,
    MAX_CALL_DURATION_MINUTES,
    MAX_PRICE_PER_MINUTE,
    MAX_SESSION_TOTAL,
)
from .exceptions import InvalidRequestError, PrincipalMismatchError

CENTS = Decimal("0.01")


def validate_principals(customer_id: Optional[str], host_id: Optional[str]) -> None:
    """
    Validate that both principals are present and distinct.

    Raises:
        InvalidRequestError if either is missing or they are the same
    """
    if not customer_id or not str(customer_id).strip():
        raise InvalidRequestError("customer_id is required")
    if not host_id or not str(host_id).strip():
        raise InvalidRequestError("host_id is required")
    if str(customer_id) == str(host_id):
        raise InvalidRequestError("customer_id and host_id must be different")


def validate_call_type(call_type: Optional[str]) -> str:
    if call_type not in CALL_TYPES:
        raise InvalidRequestError(f"call_type must be one of {', '.join(CALL_TYPES)}")
    return call_type


def validate_price(price_per_minute) -> Decimal:
    """
    Validate and normalize a per-minute price to two decimals.

    Returns:
        Decimal price in (0, MAX_PRICE_PER_MINUTE]

    Raises:
        InvalidRequestError if missing, not numeric, not positive, or too large
    """
    if price_per_minute is None:
        raise InvalidRequestError("price_per_minute is required")
    try:
        # str() first so floats like 10.1 do not carry binary noise
        price = Decimal(str(price_per_minute))
        if not price.is_finite() or price <= 0:
            raise InvalidRequestError("price_per_minute must be greater than 0")
        if price > MAX_PRICE_PER_MINUTE:
            raise InvalidRequestError(f"price_per_minute must not exceed {MAX_PRICE_PER_MINUTE}")
        return price.quantize(CENTS)
    except (InvalidOperation, ValueError):
        raise InvalidRequestError("price_per_minute must be a number")


def validate_duration(duration) -> int:
    """Duration is whole minutes, zero allowed for calls that never connected."""
    if isinstance(duration, bool) or not isinstance(duration, int):
        raise InvalidRequestError("duration must be a whole number of minutes")
    if duration < 0:
        raise InvalidRequestError("duration must not be negative")
    if duration > MAX_CALL_DURATION_MINUTES:
        raise InvalidRequestError(f"duration must not exceed {MAX_CALL_DURATION_MINUTES} minutes")
    return duration


def validate_total(total: Decimal) -> Decimal:
    """The settled amount must fit the ledger's amount column."""
    if total > MAX_SESSION_TOTAL:
        raise InvalidRequestError(f"Call total {total} exceeds the maximum of {MAX_SESSION_TOTAL}")
    return total


def validate_rating(rating: Optional[int]) -> Optional[int]:
    if rating is None:
        return None
    if isinstance(rating, bool) or not isinstance(rating, int):
        raise InvalidRequestError("rating must be an integer")
    if not MIN_CALL_RATING <= rating <= MAX_CALL_RATING:
        raise InvalidRequestError(f"rating must be between {MIN_CALL_RATING} and {MAX_CALL_RATING}")
    return rating


def validate_owner(expected_id: str, acting_id: Optional[str], what: str = "call request") -> None:
    """
    Validate that the acting principal owns the record.

    Raises:
        PrincipalMismatchError if the ids differ
    """
    if acting_id is None or str(acting_id) != str(expected_id):
        raise PrincipalMismatchError(f"Principal {acting_id} does not own this {what}")
