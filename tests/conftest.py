"""
Pytest configuration and fixtures.

This file is automatically discovered by pytest and provides
shared fixtures for all test modules.

Every test gets its own SQLite file under tmp_path, so tests never share
rows and can commit freely. Production targets PostgreSQL (asyncpg); the
store code only relies on what both backends provide (UNIQUE, FK
cascades, transactions).

References:
-----------
- Pytest Fixtures: https://docs.pytest.org/en/stable/fixture.html
- Pytest Async: https://pytest-asyncio.readthedocs.io/
"""

import os

# Settings are read at import time, so the environment must be set first
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./drivelink-test.db")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-that-is-at-least-32-characters")
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["LOG_FORMAT"] = "text"
os.environ["LOG_LEVEL"] = "WARNING"

from typing import AsyncGenerator

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession

from drivelink.core.logging import setup_logging
from drivelink.db.session import Database
from drivelink.schemas.user import UserRecord
from drivelink.services.account_service import AccountService
from drivelink.services.accounts import AccountStore
from drivelink.services.relationships import RelationshipStore


@pytest.fixture(scope="session", autouse=True)
def configure_logging() -> None:
    setup_logging()


# ================================
# Database Fixtures
# ================================

@pytest_asyncio.fixture
async def database(tmp_path) -> AsyncGenerator[Database, None]:
    """
    A fresh database with all tables created.

    The engine is disposed when the test finishes.
    """
    url = f"sqlite+aiosqlite:///{tmp_path / 'drivelink.db'}"
    async with Database(url) as db:
        await db.create_tables()
        yield db


@pytest_asyncio.fixture
async def db_session(database: Database) -> AsyncGenerator[AsyncSession, None]:
    """A session on the per-test database."""
    async with database.session() as session:
        yield session


@pytest.fixture
def account_store(db_session: AsyncSession) -> AccountStore:
    return AccountStore(db_session)


@pytest.fixture
def relationship_store(db_session: AsyncSession) -> RelationshipStore:
    return RelationshipStore(db_session)


@pytest.fixture
def account_service(db_session: AsyncSession) -> AccountService:
    return AccountService(db_session)


# ================================
# Sample Data
# ================================

@pytest.fixture
def owner_data() -> dict:
    """Registration payload for a car owner."""
    return {
        "email": "alice@x.com",
        "name": "Alice",
        "password": "alice-password",
        "role": "car_owner",
        "car_name": "Tesla",
        "car_img": "https://img.example.com/tesla.png",
    }


@pytest.fixture
def relative_data() -> dict:
    """Registration payload for a relative."""
    return {
        "email": "bob@x.com",
        "name": "Bob",
        "password": "bob-password",
        "role": "relative",
    }


@pytest_asyncio.fixture
async def owner(account_store: AccountStore, owner_data: dict) -> UserRecord:
    """A registered car owner."""
    return await account_store.create_user(owner_data)


@pytest_asyncio.fixture
async def relative(account_store: AccountStore, relative_data: dict) -> UserRecord:
    """A registered relative."""
    return await account_store.create_user(relative_data)
