"""AdminService - operator-facing credential management.

Unlike the public endpoints, every failure here is reported precisely.
Each method is one committed unit of work.
"""

from __future__ import annotations

from dataclasses import dataclass

import structlog

from keyward.errors import NotFoundError, ValidationError
from keyward.models import Role, User
from keyward.services.activation import ActivationExchange
from keyward.services.registration import is_valid_email
from keyward.services.secret_generator import GeneratedSecret, generate_api_key
from keyward.services.store import CodeListing, CredentialStore, KeyListing

logger = structlog.get_logger()

SEED_USERS = (
    ("admin@keyward.local", Role.ADMIN),
    ("support@keyward.local", Role.SUPPORT),
    ("customer@keyward.local", Role.CUSTOMER),
)


@dataclass(frozen=True)
class IssuedSecret:
    """A secret together with the user it was issued to."""

    secret: GeneratedSecret
    user: User


@dataclass(frozen=True)
class SeedResult:
    users: list[User]
    keys: list[IssuedSecret]
    activation_code: IssuedSecret


class AdminService:
    """Administrative operations over the credential store."""

    def __init__(self, store: CredentialStore) -> None:
        self._store = store
        self._exchange = ActivationExchange(store)
        self._log = logger.bind(service="admin")

    async def create_user(self, email: str, role: Role | str) -> User:
        """Create an active user.

        Raises:
            ValidationError: If the email is not a syntactically valid address
            ConflictError: If the email is taken
        """
        if not is_valid_email(email):
            raise ValidationError(f"Invalid email address: {email!r}", details={"email": email})
        user = await self._store.create_user(email, Role(role))
        await self._store.commit()
        self._log.info("admin.user.created", user_id=user.id, email=user.email, role=user.role.value)
        return user

    async def create_key(self, user_id: int) -> IssuedSecret:
        """Mint an API key for ``user_id``.

        Raises:
            NotFoundError: If the user does not exist
        """
        user = await self._store.get_user(user_id)
        key = generate_api_key()
        await self._store.insert_api_key(key.hash, key.prefix, user_id)
        await self._store.commit()
        self._log.info("admin.key.created", user_id=user_id, key_prefix=key.prefix)
        return IssuedSecret(secret=key, user=user)

    async def revoke_key(self, key_prefix: str) -> int:
        """Revoke active keys by prefix.

        Raises:
            NotFoundError: If no active key has this prefix
        """
        revoked = await self._store.revoke_key_by_prefix(key_prefix)
        if revoked == 0:
            await self._store.rollback()
            raise NotFoundError(
                f"No active key found with prefix {key_prefix}",
                details={"key_prefix": key_prefix},
            )
        await self._store.commit()
        self._log.info("admin.key.revoked", key_prefix=key_prefix, count=revoked)
        return revoked

    async def create_activation_code(self, user_id: int) -> IssuedSecret:
        """Issue an activation code, superseding the user's unused ones.

        Raises:
            NotFoundError: If the user does not exist
        """
        user = await self._store.get_user(user_id)
        code = await self._exchange.issue_code(user_id)
        await self._store.commit()
        return IssuedSecret(secret=code, user=user)

    async def list_users(self) -> list[User]:
        return await self._store.list_users()

    async def list_keys(self) -> list[KeyListing]:
        return await self._store.list_keys()

    async def list_activation_codes(self) -> list[CodeListing]:
        return await self._store.list_activation_codes()

    async def seed(self) -> SeedResult:
        """Create one user per role, a key for each, and a customer code."""
        users = [await self.create_user(email, role) for email, role in SEED_USERS]
        keys = [await self.create_key(user.id) for user in users]
        customer = next(user for user in users if user.role == Role.CUSTOMER)
        code = await self.create_activation_code(customer.id)
        return SeedResult(users=users, keys=keys, activation_code=code)
