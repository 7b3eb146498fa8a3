from decimal import Decimal
from typing import Optional, Union

from pydantic import BaseModel, Field

from app.config.constants import RTC_TOKEN_DEFAULT_TTL_SEC

# Principals arrive as strings or bare numeric ids
PrincipalId = Union[str, int]


class CreateCallRequestBody(BaseModel):
    customer_id: Optional[PrincipalId] = None
    host_id: Optional[PrincipalId] = None
    call_type: Optional[str] = None
    price_per_minute: Optional[Decimal] = None
    message: Optional[str] = None


class AcceptCallRequestBody(BaseModel):
    host_id: Optional[PrincipalId] = None
    channel_name: Optional[str] = Field(None, max_length=255)


class RejectCallRequestBody(BaseModel):
    host_id: Optional[PrincipalId] = None
    reason: Optional[str] = None


class StartSessionBody(BaseModel):
    """Start from an accepted request, or directly when request_id is omitted."""
    request_id: Optional[str] = None
    host_id: Optional[PrincipalId] = None
    customer_id: Optional[PrincipalId] = None
    channel_name: Optional[str] = None
    call_type: Optional[str] = None
    price_per_minute: Optional[Decimal] = None


class EndSessionBody(BaseModel):
    duration: int
    rating: Optional[int] = None


class RtcTokenBody(BaseModel):
    channel_name: str = Field(..., min_length=1, max_length=255)
    uid: PrincipalId = 0
    role: str = "publisher"
    ttl_seconds: int = Field(RTC_TOKEN_DEFAULT_TTL_SEC, gt=0, le=86400)
