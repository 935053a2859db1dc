"""Fixtures for exercising the identity endpoints in-process."""

from __future__ import annotations

import httpx
import pytest

from keyward.config import Settings
from keyward.db import create_session_factory, get_session_dependency
from keyward.main import create_app
from tests.fakes import RecordingEmailSender


def build_app(engine, *, email_sender=None, rate_limit: dict | None = None):
    settings = Settings(rate_limit=rate_limit or {"enabled": False})
    app = create_app(settings)
    app.state.email_sender = email_sender
    session_factory = create_session_factory(engine)

    async def override_session():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_session_dependency] = override_session
    return app


@pytest.fixture
def app(engine, email_sender: RecordingEmailSender):
    return build_app(engine, email_sender=email_sender)


@pytest.fixture
async def client(app):
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
