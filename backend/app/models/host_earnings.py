"""
HostEarnings Model - Aggregate Host Counters

One row per host, incremented in the same transaction that settles a call
session. Never written anywhere else.
"""
from decimal import Decimal

from sqlalchemy import Column, String, DateTime, Integer, Numeric

from .database import Base, utcnow


class HostEarnings(Base):
    __tablename__ = "host_earnings"

    host_id = Column(String(64), primary_key=True)

    total_earnings = Column(Numeric(12, 2), nullable=False, default=Decimal("0.00"))
    total_calls = Column(Integer, nullable=False, default=0)
    total_minutes = Column(Integer, nullable=False, default=0)

    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    def to_dict(self):
        return {
            "host_id": self.host_id,
            "total_earnings": str(self.total_earnings),
            "total_calls": self.total_calls,
            "total_minutes": self.total_minutes,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
