"""IdentityClient - delegates trust decisions to a remote Keyward server.

Two outcomes are kept apart all the way to the end client:
- the server answered and said no -> ``None`` (caller turns it into 401)
- the server could not answer -> ``BackendUnavailableError`` (503)
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from types import TracebackType
from typing import Any, Protocol

import httpx
import structlog

from keyward.config import IdentityConfig
from keyward.errors import BackendUnavailableError
from keyward.models.user import Role, SubscriptionStatus

logger = structlog.get_logger()


@dataclass(frozen=True)
class VerifiedUser:
    """Identity returned for a valid key, with the role already parsed."""

    id: int
    email: str
    role: Role
    subscription_status: SubscriptionStatus


class Verifier(Protocol):
    """Anything that can turn a presented API key into a verdict."""

    async def verify(self, api_key: str) -> VerifiedUser | None:
        """Return the key's owner, or None if the key is not valid.

        Raises:
            BackendUnavailableError: If no verdict could be obtained
        """
        ...


def parse_verified_user(payload: dict[str, Any]) -> VerifiedUser | None:
    """Map a ``/validate`` response body to a verdict.

    Anything that is not a well-formed positive answer with a known role is
    a negative verdict; raw role strings never leave this function.
    """
    if payload.get("valid") is not True:
        return None

    user = payload.get("user")
    if not isinstance(user, dict):
        logger.warning("identity_client.malformed_user")
        return None

    try:
        return VerifiedUser(
            id=int(user["id"]),
            email=str(user["email"]),
            role=Role(user["role"]),
            subscription_status=SubscriptionStatus(user["subscription_status"]),
        )
    except (KeyError, TypeError, ValueError):
        logger.warning("identity_client.unrecognized_user", role=user.get("role"))
        return None


class IdentityClient:
    """HTTP Verifier backed by ``POST {base_url}/validate``.

    Usage:
        async with IdentityClient("http://identity:3001") as identity:
            user = await identity.verify(api_key)

    Validation is side-effect free, so transport failures are retried up to
    ``max_retries`` times before giving up.
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 5.0,
        max_retries: int = 1,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize identity client.

        Args:
            base_url: Keyward server URL (e.g., "http://localhost:3001")
            timeout: Per-attempt timeout in seconds
            max_retries: Extra attempts after a transport failure
            client: Optional pre-built httpx client; not closed by this object
        """
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._max_retries = max_retries
        self._client = client
        self._owns_client = client is None
        self._log = logger.bind(component="identity_client")

    @classmethod
    def from_config(cls, config: IdentityConfig) -> IdentityClient:
        return cls(config.base_url, timeout=config.timeout, max_retries=config.max_retries)

    async def __aenter__(self) -> IdentityClient:
        await self.start()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.close()

    async def start(self) -> None:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self._base_url,
                timeout=httpx.Timeout(self._timeout),
            )
            self._owns_client = True

    async def close(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            raise RuntimeError("IdentityClient not started. Use 'async with' or call start().")
        return self._client

    @staticmethod
    def _retry_delay_seconds(attempt: int) -> float:
        # attempt is zero-based retry attempt index
        return min(0.1 * (2**attempt), 1.0)

    async def verify(self, api_key: str) -> VerifiedUser | None:
        response = await self._post_validate(api_key)

        if response.status_code != 200:
            self._log.warning("identity_client.bad_status", status_code=response.status_code)
            raise BackendUnavailableError(
                f"Identity service returned HTTP {response.status_code}",
                details={"status_code": response.status_code},
            )

        try:
            payload = response.json()
        except ValueError as exc:
            self._log.warning("identity_client.non_json_response")
            raise BackendUnavailableError("Identity service returned a non-JSON response") from exc

        if not isinstance(payload, dict) or not isinstance(payload.get("valid"), bool):
            raise BackendUnavailableError("Identity service returned an unexpected response")

        return parse_verified_user(payload)

    async def _post_validate(self, api_key: str) -> httpx.Response:
        url = f"{self._base_url}/validate"
        max_attempts = self._max_retries + 1

        for attempt in range(max_attempts):
            try:
                return await self.client.post(
                    url,
                    json={"api_key": api_key},
                    timeout=self._timeout,
                )
            except (httpx.TimeoutException, httpx.TransportError) as exc:
                if attempt < max_attempts - 1:
                    await asyncio.sleep(self._retry_delay_seconds(attempt))
                    continue
                self._log.warning(
                    "identity_client.unreachable",
                    error=type(exc).__name__,
                    attempts=max_attempts,
                )
                raise BackendUnavailableError(
                    "Identity service unavailable",
                    details={"reason": type(exc).__name__},
                ) from exc

        # Defensive fallback, loop should always return/raise.
        raise RuntimeError("Identity request attempt loop exhausted unexpectedly")
