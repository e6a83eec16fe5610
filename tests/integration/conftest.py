"""Fixtures for database-backed tests."""

import pytest

from voicebatch.infrastructure.config import DatabaseConfig
from voicebatch.infrastructure.database import DatabaseManager


@pytest.fixture
async def database():
    """In-memory SQLite database with every table created."""
    manager = DatabaseManager(DatabaseConfig(url="sqlite+aiosqlite:///:memory:"))
    await manager.create_all()
    yield manager
    await manager.drop_all()
    await manager.dispose()


@pytest.fixture
def session_factory(database):
    return database.async_sessionmaker
