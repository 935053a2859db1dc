"""RegistrationFlow - public onboarding.

The network contract never varies: whatever happens here, the caller gets
the same generic message. What actually happened is returned as a
``RegistrationOutcome`` for logging only.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

import structlog

from keyward.models import Role, SubscriptionStatus
from keyward.services.activation import ActivationExchange
from keyward.services.email import EmailSender
from keyward.services.store import CredentialStore

logger = structlog.get_logger()

GENERIC_MESSAGE = "If this email is valid, you will receive an activation code shortly"

_MAX_EMAIL_LEN = 254


class RegistrationStatus(str, Enum):
    INVALID_EMAIL = "invalid_email"
    CREATED = "created"  # new trial user + code
    REISSUED = "reissued"  # existing user, older codes superseded
    DELIVERY_FAILED = "delivery_failed"  # code stored, email not sent
    FAILED = "failed"  # nothing usable was stored


@dataclass(frozen=True)
class RegistrationOutcome:
    status: RegistrationStatus
    user_id: int | None = None
    code_prefix: str | None = None
    error: str | None = None


def normalize_email(email: str) -> str:
    return email.strip().lower()


def is_valid_email(email: str) -> bool:
    """Basic syntactic check: one ``@``, non-empty parts, dotted domain."""
    email = email.strip()
    if not email or len(email) > _MAX_EMAIL_LEN:
        return False
    parts = email.split("@")
    if len(parts) != 2:
        return False
    local, domain = parts
    return bool(local) and bool(domain) and "." in domain


class RegistrationFlow:
    """Provisions users and sends them activation codes."""

    def __init__(self, store: CredentialStore, sender: EmailSender) -> None:
        self._store = store
        self._sender = sender
        self._exchange = ActivationExchange(store)
        self._log = logger.bind(service="registration")

    async def register(self, email: str) -> RegistrationOutcome:
        email = normalize_email(email)
        if not is_valid_email(email):
            self._log.info("registration.invalid_email")
            return RegistrationOutcome(status=RegistrationStatus.INVALID_EMAIL)

        try:
            user = await self._store.find_user_by_email(email)
            if user is None:
                user = await self._store.create_user(
                    email,
                    Role.CUSTOMER,
                    subscription_status=SubscriptionStatus.TRIAL,
                )
                status = RegistrationStatus.CREATED
            else:
                status = RegistrationStatus.REISSUED

            # issue_code supersedes any older unused codes of this user
            code = await self._exchange.issue_code(user.id)
            await self._store.commit()
        except Exception as exc:
            await self._store.rollback()
            self._log.exception("registration.store.failed", email=email)
            return RegistrationOutcome(status=RegistrationStatus.FAILED, error=str(exc))

        try:
            await self._sender.send_activation_code(email, code.full_secret)
        except Exception as exc:
            self._log.error(
                "registration.email.failed",
                email=email,
                code_prefix=code.prefix,
                error=str(exc),
            )
            return RegistrationOutcome(
                status=RegistrationStatus.DELIVERY_FAILED,
                user_id=user.id,
                code_prefix=code.prefix,
                error=str(exc),
            )

        self._log.info(
            "registration.completed",
            status=status.value,
            user_id=user.id,
            code_prefix=code.prefix,
        )
        return RegistrationOutcome(status=status, user_id=user.id, code_prefix=code.prefix)
