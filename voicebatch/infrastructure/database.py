"""Database connection and session management.

Async SQLAlchemy 2.0 engine and session factory, created lazily from
``DatabaseConfig``.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

import structlog
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from voicebatch.infrastructure.config import DatabaseConfig
from voicebatch.infrastructure.persistence.models import Base

logger = structlog.get_logger(__name__)


class DatabaseManager:
    """Owns the async engine and session factory for one database URL."""

    def __init__(self, config: Optional[DatabaseConfig] = None):
        self.config = config or DatabaseConfig()
        self._async_engine: Optional[AsyncEngine] = None
        self._async_sessionmaker: Optional[async_sessionmaker] = None

    @property
    def is_sqlite(self) -> bool:
        return self.config.url.startswith("sqlite")

    @property
    def async_engine(self) -> AsyncEngine:
        """Get or create async database engine."""
        if self._async_engine is None:
            kwargs = {"echo": self.config.echo}
            if self.is_sqlite and ":memory:" in self.config.url:
                # One shared connection, or every session sees an empty database
                kwargs.update(
                    poolclass=StaticPool,
                    connect_args={"check_same_thread": False},
                )
            elif not self.is_sqlite:
                kwargs.update(pool_pre_ping=True, pool_recycle=3600)
            self._async_engine = create_async_engine(self.config.url, **kwargs)
        return self._async_engine

    @property
    def async_sessionmaker(self) -> async_sessionmaker:
        """Get or create async session factory."""
        if self._async_sessionmaker is None:
            self._async_sessionmaker = async_sessionmaker(
                self.async_engine,
                class_=AsyncSession,
                expire_on_commit=False,
                autoflush=False,
            )
        return self._async_sessionmaker

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """Session that commits on success and rolls back on error."""
        async with self.async_sessionmaker() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def create_all(self) -> None:
        """Create every table registered on ``Base.metadata``."""
        async with self.async_engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database tables created", url=self._safe_url)

    async def drop_all(self) -> None:
        async with self.async_engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)

    async def dispose(self) -> None:
        if self._async_engine is not None:
            await self._async_engine.dispose()
            self._async_engine = None
            self._async_sessionmaker = None

    @property
    def _safe_url(self) -> str:
        return self.async_engine.url.render_as_string(hide_password=True)
