"""
CallSession Model - Billable Call Bookkeeping

Tracks one call between a customer and a host, usually spawned from an
accepted CallRequest. Settled exactly once by the end operation.
"""
import enum
import uuid

from sqlalchemy import Column, String, DateTime, Integer, Numeric, ForeignKey, CheckConstraint

from .database import Base, utcnow


class CallSessionStatus(str, enum.Enum):
    PENDING = "pending"
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class CallSession(Base):
    """Call session model"""
    __tablename__ = "call_sessions"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    # Originating request (NULL for sessions started directly by legacy callers)
    request_id = Column(
        String(36),
        ForeignKey('call_requests.id', ondelete='SET NULL'),
        nullable=True,
        unique=True,
    )

    # Principals (copied from the request)
    host_id = Column(String(64), nullable=False, index=True)
    customer_id = Column(String(64), nullable=False, index=True)

    # Copied at session start, immutable afterwards
    channel_name = Column(String(255), nullable=False)
    call_type = Column(String(10), nullable=False)
    price_per_minute = Column(Numeric(8, 2), nullable=False)

    # Timing
    start_time = Column(DateTime, default=utcnow, nullable=False)
    end_time = Column(DateTime, nullable=True)
    duration_minutes = Column(Integer, nullable=True)

    # Settlement
    total_amount = Column(Numeric(10, 2), nullable=True)
    status = Column(String(20), nullable=False, default=CallSessionStatus.ACTIVE.value, index=True)
    rating = Column(Integer, nullable=True)

    created_at = Column(DateTime, default=utcnow, nullable=False)

    __table_args__ = (
        CheckConstraint("rating IS NULL OR (rating BETWEEN 1 AND 5)", name='ck_call_session_rating'),
    )

    @property
    def total_cost(self):
        return self.total_amount

    def to_dict(self):
        return {
            "id": self.id,
            "request_id": self.request_id,
            "host_id": self.host_id,
            "customer_id": self.customer_id,
            "channel_name": self.channel_name,
            "call_type": self.call_type,
            "price_per_minute": str(self.price_per_minute) if self.price_per_minute is not None else None,
            "start_time": self.start_time.isoformat() if self.start_time else None,
            "end_time": self.end_time.isoformat() if self.end_time else None,
            "duration_minutes": self.duration_minutes,
            "total_amount": str(self.total_amount) if self.total_amount is not None else None,
            "status": self.status,
            "rating": self.rating,
        }

    def __repr__(self):
        return f"<CallSession {self.id[:8]} {self.channel_name} {self.status}>"
