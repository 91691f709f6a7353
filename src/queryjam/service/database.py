"""
Database utilities for QueryJam.

Provides:
- Base model class
- Database: owns the async engine and session factory
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""
    pass


class Database:
    """
    Async engine + session factory for one application instance.

    Usage:
        db = Database("sqlite+aiosqlite:///./queryjam.db")
        await db.init()

        async with db.session() as session:
            ...

        await db.close()
    """

    def __init__(self, url: str, *, echo: bool = False):
        self.url = url
        self.engine: AsyncEngine = create_async_engine(url, echo=echo)
        self._session_maker = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        """Open a session that is always closed on exit."""
        async with self._session_maker() as session:
            try:
                yield session
            finally:
                await session.close()

    async def init(self):
        """Initialize database (create tables)."""
        # Register models on Base.metadata
        from . import models  # noqa: F401

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def close(self):
        """Close database connections."""
        await self.engine.dispose()
