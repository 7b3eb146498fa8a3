"""
Transaction Model - Host Ledger Entry

Append-only. Settlement writes exactly one row per completed call session;
the (transaction_type, reference_id) unique constraint backs that up.
"""
import uuid

from sqlalchemy import Column, String, DateTime, Numeric, Text, UniqueConstraint

from .database import Base, utcnow


class Transaction(Base):
    """Ledger entry crediting a host"""
    __tablename__ = "transactions"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    host_id = Column(String(64), nullable=False, index=True)
    customer_id = Column(String(64), nullable=True)

    transaction_type = Column(String(50), nullable=False)
    reference_id = Column(String(36), nullable=False)

    amount = Column(Numeric(10, 2), nullable=False)
    description = Column(Text, nullable=True)
    status = Column(String(20), nullable=False, default='completed')

    created_at = Column(DateTime, default=utcnow, nullable=False, index=True)

    __table_args__ = (
        UniqueConstraint('transaction_type', 'reference_id', name='uq_transaction_reference'),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "host_id": self.host_id,
            "customer_id": self.customer_id,
            "type": self.transaction_type,
            "reference_id": self.reference_id,
            "amount": str(self.amount),
            "description": self.description,
            "status": self.status,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
