"""
User Model - Customers and Hosts

Purpose: Store login identity and the principal role used for authorization.

Key Fields:
- `role`: 'customer' places call requests, 'host' answers them and earns
- `hashed_password`: passlib hash, never the plain password
"""
from sqlalchemy import Column, String, DateTime, Boolean, CheckConstraint
import uuid

from .database import Base, utcnow


class User(Base):
    """User model for authentication and profile"""
    __tablename__ = "users"

    # Primary key
    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))

    # Authentication / profile
    phone = Column(String(20), unique=True, nullable=False, index=True)
    full_name = Column(String(255), nullable=False)
    hashed_password = Column(String(255), nullable=True)
    avatar_url = Column(String(500), nullable=True)

    # Principal role
    role = Column(String(20), nullable=False, default='customer')

    # Account status
    is_active = Column(Boolean, default=True)

    # Timestamps
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    # Constraints
    __table_args__ = (
        CheckConstraint("role IN ('customer', 'host')", name='ck_user_role'),
    )

    @property
    def is_host(self) -> bool:
        return self.role == 'host'

    def to_dict(self):
        """Convert to dictionary for JSON response"""
        return {
            "id": self.id,
            "phone": self.phone,
            "full_name": self.full_name,
            "role": self.role,
            "avatar_url": self.avatar_url,
            "is_active": self.is_active,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f"<User {self.phone or self.id[:8]} ({self.role})>"
