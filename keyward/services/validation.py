"""ValidationService - answers "who owns this secret?".

Read-only and idempotent. Unknown and revoked keys get the same negative
verdict so callers learn nothing about a key's lifecycle.
"""

from __future__ import annotations

from dataclasses import dataclass

import structlog

from keyward.models import Role, SubscriptionStatus
from keyward.services.secret_generator import hash_secret
from keyward.services.store import CredentialStore

logger = structlog.get_logger()

INVALID_KEY_MESSAGE = "Invalid or revoked API key"


@dataclass(frozen=True)
class Identity:
    """The user a valid key is bound to."""

    id: int
    email: str
    role: Role
    subscription_status: SubscriptionStatus


@dataclass(frozen=True)
class ValidationResult:
    valid: bool
    identity: Identity | None = None
    error: str | None = None


class ValidationService:
    """Resolves a presented API key to its owner."""

    def __init__(self, store: CredentialStore) -> None:
        self._store = store
        self._log = logger.bind(service="validation")

    async def validate(self, presented_secret: str) -> ValidationResult:
        match = await self._store.find_active_key_by_hash(hash_secret(presented_secret))
        if match is None:
            self._log.debug("validation.rejected")
            return ValidationResult(valid=False, error=INVALID_KEY_MESSAGE)

        user, api_key = match
        self._log.debug("validation.accepted", key_prefix=api_key.key_prefix, user_id=user.id)
        return ValidationResult(
            valid=True,
            identity=Identity(
                id=user.id,
                email=user.email,
                role=Role(user.role),
                subscription_status=SubscriptionStatus(user.subscription_status),
            ),
        )
