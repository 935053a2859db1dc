"""Unit tests for IdentityClient against a mocked /validate endpoint."""

from __future__ import annotations

import json

import httpx
import pytest
from pytest_httpx import HTTPXMock

from keyward.client.identity import IdentityClient, VerifiedUser, parse_verified_user
from keyward.config import IdentityConfig
from keyward.errors import BackendUnavailableError
from keyward.models import Role, SubscriptionStatus

BASE_URL = "http://identity.test"
VALIDATE_URL = f"{BASE_URL}/validate"

VALID_BODY = {
    "valid": True,
    "user": {
        "id": 7,
        "email": "alice@x.com",
        "role": "support",
        "subscription_status": "active",
    },
}


class TestParseVerifiedUser:
    def test_valid_payload(self):
        assert parse_verified_user(VALID_BODY) == VerifiedUser(
            id=7,
            email="alice@x.com",
            role=Role.SUPPORT,
            subscription_status=SubscriptionStatus.ACTIVE,
        )

    def test_negative_verdict(self):
        assert parse_verified_user({"valid": False, "error": "nope"}) is None

    def test_unknown_role_is_negative(self):
        body = {"valid": True, "user": {**VALID_BODY["user"], "role": "superuser"}}

        assert parse_verified_user(body) is None

    def test_missing_user_is_negative(self):
        assert parse_verified_user({"valid": True}) is None


class TestIdentityClient:
    async def test_valid_key(self, httpx_mock: HTTPXMock):
        httpx_mock.add_response(url=VALIDATE_URL, method="POST", json=VALID_BODY)

        async with IdentityClient(BASE_URL) as identity:
            user = await identity.verify("sk_abc")

        assert user is not None
        assert user.role == Role.SUPPORT
        request = httpx_mock.get_request()
        assert request is not None
        assert json.loads(request.read()) == {"api_key": "sk_abc"}

    async def test_invalid_key(self, httpx_mock: HTTPXMock):
        httpx_mock.add_response(
            url=VALIDATE_URL,
            method="POST",
            json={"valid": False, "error": "Invalid or revoked API key"},
        )

        async with IdentityClient(BASE_URL) as identity:
            assert await identity.verify("sk_nope") is None

    async def test_server_error_is_unavailable(self, httpx_mock: HTTPXMock):
        httpx_mock.add_response(url=VALIDATE_URL, method="POST", status_code=500)

        async with IdentityClient(BASE_URL) as identity:
            with pytest.raises(BackendUnavailableError) as exc_info:
                await identity.verify("sk_abc")

        assert exc_info.value.details == {"status_code": 500}

    async def test_non_json_is_unavailable(self, httpx_mock: HTTPXMock):
        httpx_mock.add_response(url=VALIDATE_URL, method="POST", text="<html>gateway</html>")

        async with IdentityClient(BASE_URL) as identity:
            with pytest.raises(BackendUnavailableError):
                await identity.verify("sk_abc")

    async def test_transport_failure_is_retried(self, httpx_mock: HTTPXMock):
        httpx_mock.add_exception(httpx.ConnectError("refused"), url=VALIDATE_URL)
        httpx_mock.add_response(url=VALIDATE_URL, method="POST", json=VALID_BODY)

        async with IdentityClient(BASE_URL, max_retries=1) as identity:
            user = await identity.verify("sk_abc")

        assert user is not None
        assert len(httpx_mock.get_requests()) == 2

    async def test_timeout_after_retries_is_unavailable(self, httpx_mock: HTTPXMock):
        httpx_mock.add_exception(httpx.ReadTimeout("slow"), url=VALIDATE_URL)
        httpx_mock.add_exception(httpx.ReadTimeout("slow"), url=VALIDATE_URL)

        async with IdentityClient(BASE_URL, max_retries=1) as identity:
            with pytest.raises(BackendUnavailableError) as exc_info:
                await identity.verify("sk_abc")

        assert exc_info.value.details == {"reason": "ReadTimeout"}

    async def test_shared_client_is_not_closed(self, httpx_mock: HTTPXMock):
        httpx_mock.add_response(url=VALIDATE_URL, method="POST", json=VALID_BODY)

        async with httpx.AsyncClient() as shared:
            async with IdentityClient(BASE_URL, client=shared) as identity:
                await identity.verify("sk_abc")
            assert not shared.is_closed

    def test_not_started(self):
        with pytest.raises(RuntimeError):
            IdentityClient(BASE_URL).client

    def test_from_config(self):
        identity = IdentityClient.from_config(
            IdentityConfig(base_url="http://other:9000/", timeout=2.0, max_retries=3)
        )

        assert identity._base_url == "http://other:9000"
        assert identity._timeout == 2.0
        assert identity._max_retries == 3
