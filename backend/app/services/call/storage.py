"""
Storage helpers shared by the call request and call session managers.
"""
import logging
from datetime import datetime, UTC

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from .exceptions import StorageUnavailableError

logger = logging.getLogger(__name__)


async def commit_or_raise(db: AsyncSession, action: str) -> None:
    """
    Commit the unit of work, rolling back and raising StorageUnavailableError
    if the database refuses it.
    """
    try:
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"[Storage] Commit failed while trying to {action}: {e}")
        raise StorageUnavailableError(f"Failed to {action}") from e


def epoch_ms(moment: datetime) -> int:
    """Milliseconds since the epoch for a naive UTC timestamp."""
    return int(moment.replace(tzinfo=UTC).timestamp() * 1000)
