"""Shared fixtures: in-memory credential store and fakes."""

from __future__ import annotations

import pytest
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import SQLModel

from keyward.config import DatabaseConfig
from keyward.db import create_engine, create_session_factory
from keyward.services.store import CredentialStore
from tests.fakes import FakeVerifier, RecordingEmailSender


@pytest.fixture
async def engine():
    """In-memory SQLite engine with all tables created."""
    engine = create_engine(DatabaseConfig(url="sqlite+aiosqlite:///:memory:"))

    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
async def db_session(engine):
    session_factory = create_session_factory(engine)
    async with session_factory() as session:
        yield session


@pytest.fixture
def store(db_session: AsyncSession) -> CredentialStore:
    return CredentialStore(db_session)


@pytest.fixture
def fake_verifier() -> FakeVerifier:
    return FakeVerifier()


@pytest.fixture
def email_sender() -> RecordingEmailSender:
    return RecordingEmailSender()
