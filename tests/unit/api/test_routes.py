"""Endpoint tests for /validate, /activate and /register."""

from __future__ import annotations

import httpx

from keyward.db import create_session_factory
from keyward.services.admin import AdminService
from keyward.services.registration import GENERIC_MESSAGE
from keyward.services.store import CredentialStore
from tests.fakes import RecordingEmailSender
from tests.unit.api.conftest import build_app


async def _issue_key(engine, email: str = "alice@x.com", role: str = "customer"):
    async with create_session_factory(engine)() as session:
        admin = AdminService(CredentialStore(session))
        user = await admin.create_user(email, role)
        return user, await admin.create_key(user.id)


class TestValidateEndpoint:
    async def test_valid_key(self, client: httpx.AsyncClient, engine):
        user, issued = await _issue_key(engine)

        response = await client.post("/validate", json={"api_key": issued.secret.full_secret})

        assert response.status_code == 200
        assert response.json() == {
            "valid": True,
            "user": {
                "id": user.id,
                "email": "alice@x.com",
                "role": "customer",
                "subscription_status": "active",
            },
        }

    async def test_unknown_and_revoked_look_identical(self, client: httpx.AsyncClient, engine):
        _, issued = await _issue_key(engine)
        async with create_session_factory(engine)() as session:
            await AdminService(CredentialStore(session)).revoke_key(issued.secret.prefix)

        revoked = await client.post("/validate", json={"api_key": issued.secret.full_secret})
        unknown = await client.post("/validate", json={"api_key": "sk_whatever"})

        assert revoked.status_code == unknown.status_code == 200
        assert revoked.json() == unknown.json() == {
            "valid": False,
            "error": "Invalid or revoked API key",
        }

    async def test_missing_field_is_rejected(self, client: httpx.AsyncClient):
        response = await client.post("/validate", json={})

        assert response.status_code == 422


class TestActivateEndpoint:
    async def test_register_then_activate_twice(
        self, client: httpx.AsyncClient, email_sender: RecordingEmailSender
    ):
        await client.post("/register", json={"email": "bob@x.com"})
        code = email_sender.last_code

        first = await client.post("/activate", json={"activation_code": code})
        second = await client.post("/activate", json={"activation_code": code})

        assert first.status_code == 200
        body = first.json()
        assert body["success"] is True
        assert body["api_key"].startswith("sk_")
        assert "error" not in body

        assert second.status_code == 200
        assert second.json() == {
            "success": False,
            "error": "Invalid or already used activation code",
        }

        validated = await client.post("/validate", json={"api_key": body["api_key"]})
        assert validated.json()["user"]["subscription_status"] == "trial"

    async def test_unknown_code(self, client: httpx.AsyncClient):
        response = await client.post("/activate", json={"activation_code": "ac_nope-nope-nope"})

        assert response.status_code == 200
        assert response.json()["success"] is False


class TestRegisterEndpoint:
    async def test_responses_are_identical(
        self, client: httpx.AsyncClient, engine, email_sender: RecordingEmailSender
    ):
        await _issue_key(engine, email="existing@user.tld")

        responses = [
            await client.post("/register", json={"email": email})
            for email in ("bad-email", "existing@user.tld", "new@user.tld")
        ]

        assert {r.status_code for r in responses} == {200}
        bodies = [r.json() for r in responses]
        assert bodies == [{"success": True, "message": GENERIC_MESSAGE}] * 3
        assert [m.to for m in email_sender.sent] == ["existing@user.tld", "new@user.tld"]

    async def test_delivery_failure_is_invisible(self, engine):
        sender = RecordingEmailSender(fail_with=RuntimeError("smtp exploded"))
        app = build_app(engine, email_sender=sender)
        transport = httpx.ASGITransport(app=app)

        async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
            response = await client.post("/register", json={"email": "bob@x.com"})

        assert response.status_code == 200
        assert response.json() == {"success": True, "message": GENERIC_MESSAGE}

    async def test_unconfigured_email_is_503(self, engine):
        app = build_app(engine, email_sender=None)
        transport = httpx.ASGITransport(app=app)

        async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
            response = await client.post("/register", json={"email": "bob@x.com"})

        assert response.status_code == 503
        assert response.json()["error"]["code"] == "backend_unavailable"


class TestRateLimit:
    async def test_burst_then_throttle(self, engine, email_sender: RecordingEmailSender):
        app = build_app(
            engine,
            email_sender=email_sender,
            rate_limit={"enabled": True, "burst": 5, "per_second": 1.0},
        )
        transport = httpx.ASGITransport(app=app)

        async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
            statuses = [
                (await client.post("/register", json={"email": "bad-email"})).status_code
                for _ in range(6)
            ]
            throttled = await client.post("/register", json={"email": "bad-email"})

        assert statuses[:5] == [200] * 5
        assert statuses[5] == 429
        assert throttled.json()["error"]["code"] == "rate_limited"
        assert int(throttled.headers["Retry-After"]) >= 1


class TestHealth:
    async def test_health_has_request_id(self, client: httpx.AsyncClient):
        response = await client.get("/health", headers={"X-Request-Id": "req-1"})

        assert response.json() == {"status": "ok"}
        assert response.headers["X-Request-Id"] == "req-1"
