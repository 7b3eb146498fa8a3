"""
User Service - account lookups shared by auth and the signaling socket.

Principals are either customers or hosts; host-only endpoints resolve the
caller through get_active(role=HOST_ROLE) so a customer token never passes.
"""
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config.constants import HOST_ROLE
from app.models.user import User


class UserService:
    """Read-only user queries."""

    @staticmethod
    async def get_by_phone(db: AsyncSession, phone: str) -> Optional[User]:
        """Login / registration lookup, inactive accounts included."""
        result = await db.execute(select(User).where(User.phone == phone))
        return result.scalar_one_or_none()

    @staticmethod
    async def get_active(db: AsyncSession, user_id: str, role: Optional[str] = None) -> Optional[User]:
        """
        Get an active user, optionally restricted to one role.

        Returns:
            The user, or None if missing, deactivated, or holding another role
        """
        stmt = select(User).where(User.id == user_id, User.is_active.is_(True))
        if role is not None:
            stmt = stmt.where(User.role == role)
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def get_host(db: AsyncSession, host_id: str) -> Optional[User]:
        return await UserService.get_active(db, host_id, role=HOST_ROLE)


user_service = UserService()
