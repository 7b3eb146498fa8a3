"""
CallRequest Model - Customer → Host Call Solicitation

A request rings the host until it is accepted, rejected, or expires.

Key Fields:
- `status`: pending → accepted | rejected | expired (no transitions afterwards)
- `channel_name`: realtime transport channel, set only once accepted
- `expires_at`: created_at + CALL_REQUEST_TTL_SEC; read paths filter on it,
  so correctness never depends on the background sweep
"""
import enum
import uuid
from datetime import timedelta

from sqlalchemy import Column, String, DateTime, Numeric, Text, Index, text

from app.config.constants import CALL_REQUEST_TTL_SEC
from .database import Base, utcnow


class CallRequestStatus(str, enum.Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    EXPIRED = "expired"


class CallType(str, enum.Enum):
    VOICE = "voice"
    VIDEO = "video"


def default_expires_at():
    return utcnow() + timedelta(seconds=CALL_REQUEST_TTL_SEC)


class CallRequest(Base):
    """Call request from a customer to a host"""
    __tablename__ = "call_requests"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    # Principals
    customer_id = Column(String(64), nullable=False, index=True)
    host_id = Column(String(64), nullable=False, index=True)

    # Offer
    call_type = Column(String(10), nullable=False)
    price_per_minute = Column(Numeric(8, 2), nullable=False)
    message = Column(Text, nullable=True)

    # Lifecycle
    status = Column(String(20), nullable=False, default=CallRequestStatus.PENDING.value)
    channel_name = Column(String(255), nullable=True)
    rejection_reason = Column(Text, nullable=True)

    # Timing
    created_at = Column(DateTime, default=utcnow, nullable=False)
    accepted_at = Column(DateTime, nullable=True)
    rejected_at = Column(DateTime, nullable=True)
    expires_at = Column(DateTime, default=default_expires_at, nullable=False)

    __table_args__ = (
        Index("idx_call_requests_host_status", "host_id", "status"),
        # At most one live pending request per customer/host pair
        Index(
            "uq_call_requests_pending_pair",
            "customer_id",
            "host_id",
            unique=True,
            sqlite_where=text("status = 'pending'"),
            postgresql_where=text("status = 'pending'"),
        ),
    )

    def is_live(self, now=None) -> bool:
        """Pending and not yet past its TTL."""
        now = now or utcnow()
        return self.status == CallRequestStatus.PENDING.value and self.expires_at > now

    def to_dict(self):
        return {
            "id": self.id,
            "customer_id": self.customer_id,
            "host_id": self.host_id,
            "call_type": self.call_type,
            "price_per_minute": str(self.price_per_minute) if self.price_per_minute is not None else None,
            "message": self.message,
            "status": self.status,
            "channel_name": self.channel_name,
            "rejection_reason": self.rejection_reason,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "accepted_at": self.accepted_at.isoformat() if self.accepted_at else None,
            "rejected_at": self.rejected_at.isoformat() if self.rejected_at else None,
            "expires_at": self.expires_at.isoformat() if self.expires_at else None,
        }

    def __repr__(self):
        return f"<CallRequest {self.id[:8]} {self.customer_id}->{self.host_id} {self.status}>"
