"""Database configuration and session management.

This module provides:
- The Database handle: async SQLAlchemy engine + session factory with an
  explicit lifecycle (constructed at startup, disposed at shutdown)
- FastAPI dependency for request-scoped sessions
- Table initialization and reset utilities
"""

import logging
from datetime import datetime, UTC
from typing import AsyncGenerator

from fastapi.requests import HTTPConnection
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession
from sqlalchemy.orm import sessionmaker, declarative_base

from app.config.constants import DB_POOL_SIZE, DB_POOL_MAX_OVERFLOW

logger = logging.getLogger(__name__)

# Base class for models
Base = declarative_base()


def utcnow() -> datetime:
    """Naive UTC timestamp, the form every DateTime column stores."""
    return datetime.now(UTC).replace(tzinfo=None)


class Database:
    """
    Owns the async engine and session factory for one process.

    Passed down explicitly (app.state.database) instead of living in a
    module-level global, so tests and scripts can build their own.
    """

    def __init__(self, url: str, echo: bool = False):
        self.url = url
        engine_kwargs = {"echo": echo, "future": True}
        if url.startswith("sqlite"):
            # Writers wait on SQLite's file lock instead of failing immediately
            engine_kwargs["connect_args"] = {"timeout": 15}
        else:
            engine_kwargs.update(
                pool_pre_ping=True,
                pool_size=DB_POOL_SIZE,
                max_overflow=DB_POOL_MAX_OVERFLOW,
            )
        self.engine = create_async_engine(url, **engine_kwargs)
        self.session_factory = sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False
        )

    def session(self) -> AsyncSession:
        return self.session_factory()

    async def init_db(self):
        """Initialize database by creating all tables.

        Creates tables defined in SQLAlchemy models if they don't exist.
        Safe to call multiple times (idempotent operation).
        """
        # Import models so every table is registered on Base.metadata
        import app.models  # noqa: F401

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database tables initialized successfully")

    async def reset_db(self):
        """Drop all database tables.

        WARNING: This permanently deletes all data. Use only in development
        or when intentionally resetting the database schema.
        """
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)
        logger.warning("Database tables dropped - all data removed")

    async def dispose(self):
        await self.engine.dispose()
        logger.info("Database engine disposed")


# Dependency for FastAPI
async def get_db(connection: HTTPConnection) -> AsyncGenerator[AsyncSession, None]:
    """Database dependency for FastAPI endpoints and WebSockets"""
    database: Database = connection.app.state.database
    async with database.session() as session:
        yield session
