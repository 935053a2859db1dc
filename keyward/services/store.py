"""CredentialStore - persistence for users, API keys and activation codes.

Every method works inside the session's current transaction. A service
operation is one logical unit: it calls any number of store methods and then
``commit()``; on failure the transaction is rolled back, so no observer ever
sees half of an operation.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

import structlog
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from keyward.errors import ConflictError, NotFoundError
from keyward.models import ActivationCode, ApiKey, Role, SubscriptionStatus, User
from keyward.utils.datetime import utcnow

logger = structlog.get_logger()


@dataclass(frozen=True)
class UnusedCode:
    """Lookup result for an activation code that can still be exchanged."""

    code_id: int
    user_id: int


@dataclass(frozen=True)
class KeyListing:
    """API key row joined with its owner's email. Never carries the hash."""

    id: int
    prefix: str
    email: str
    created_at: datetime
    revoked_at: datetime | None

    @property
    def status(self) -> str:
        return "revoked" if self.revoked_at is not None else "active"


@dataclass(frozen=True)
class CodeListing:
    """Activation code row joined with its owner's email."""

    id: int
    prefix: str
    email: str
    created_at: datetime
    used_at: datetime | None

    @property
    def status(self) -> str:
        return "used" if self.used_at is not None else "available"


class CredentialStore:
    """Repository over the users, api_keys and activation_codes tables."""

    def __init__(self, db_session: AsyncSession) -> None:
        self._db = db_session
        self._log = logger.bind(component="credential_store")

    async def commit(self) -> None:
        await self._db.commit()

    async def rollback(self) -> None:
        await self._db.rollback()

    async def _flush_or_conflict(self, what: str, **context) -> None:
        try:
            await self._db.flush()
        except IntegrityError as exc:
            await self._db.rollback()
            self._log.warning("credential.conflict", what=what, **context)
            raise ConflictError(f"{what} already exists", details=context) from exc

    # ---- Users ----

    async def create_user(
        self,
        email: str,
        role: Role,
        *,
        subscription_status: SubscriptionStatus = SubscriptionStatus.ACTIVE,
    ) -> User:
        """Insert a user.

        Raises:
            ConflictError: If the email is already registered
        """
        email = email.strip().lower()
        if await self.find_user_by_email(email) is not None:
            raise ConflictError(
                f"User already exists: {email}", details={"email": email}
            )

        user = User(
            email=email,
            role=Role(role),
            subscription_status=SubscriptionStatus(subscription_status),
        )
        self._db.add(user)
        await self._flush_or_conflict("User", email=email)
        return user

    async def find_user_by_email(self, email: str) -> User | None:
        result = await self._db.execute(
            select(User).where(User.email == email.strip().lower())
        )
        return result.scalars().first()

    async def get_user(self, user_id: int) -> User:
        """Get user by ID.

        Raises:
            NotFoundError: If no such user
        """
        user = await self._db.get(User, user_id)
        if user is None:
            raise NotFoundError(f"User {user_id} not found", details={"user_id": user_id})
        return user

    async def list_users(self) -> list[User]:
        result = await self._db.execute(select(User).order_by(User.id))
        return list(result.scalars().all())

    # ---- API keys ----

    async def insert_api_key(self, key_hash: str, key_prefix: str, user_id: int) -> ApiKey:
        """Persist a key hash for an existing user.

        Raises:
            NotFoundError: If the user does not exist
            ConflictError: On hash collision
        """
        await self.get_user(user_id)

        api_key = ApiKey(key_hash=key_hash, key_prefix=key_prefix, user_id=user_id)
        self._db.add(api_key)
        await self._flush_or_conflict("API key", key_prefix=key_prefix)
        return api_key

    async def find_active_key_by_hash(self, key_hash: str) -> tuple[User, ApiKey] | None:
        """Find a non-revoked key and its owner.

        The owner join is always part of the query.
        """
        result = await self._db.execute(
            select(User, ApiKey)
            .join(ApiKey, ApiKey.user_id == User.id)
            .where(
                ApiKey.key_hash == key_hash,
                ApiKey.revoked_at.is_(None),
            )
        )
        row = result.first()
        if row is None:
            return None
        user, api_key = row
        return user, api_key

    async def revoke_key_by_prefix(self, key_prefix: str, now: datetime | None = None) -> int:
        """Revoke every active key with ``key_prefix``.

        Returns:
            Number of keys revoked; 0 means no active key matched
        """
        result = await self._db.execute(
            update(ApiKey)
            .where(
                ApiKey.key_prefix == key_prefix,
                ApiKey.revoked_at.is_(None),
            )
            .values(revoked_at=now or utcnow())
        )
        return result.rowcount

    async def list_keys(self) -> list[KeyListing]:
        result = await self._db.execute(
            select(ApiKey, User.email)
            .join(User, ApiKey.user_id == User.id)
            .order_by(ApiKey.id)
        )
        return [
            KeyListing(
                id=key.id,
                prefix=key.key_prefix,
                email=email,
                created_at=key.created_at,
                revoked_at=key.revoked_at,
            )
            for key, email in result.all()
        ]

    # ---- Activation codes ----

    async def insert_activation_code(
        self, code_hash: str, code_prefix: str, user_id: int
    ) -> ActivationCode:
        """Persist a code hash for an existing user.

        Raises:
            NotFoundError: If the user does not exist
            ConflictError: On hash collision
        """
        await self.get_user(user_id)

        code = ActivationCode(code_hash=code_hash, code_prefix=code_prefix, user_id=user_id)
        self._db.add(code)
        await self._flush_or_conflict("Activation code", code_prefix=code_prefix)
        return code

    async def invalidate_unused_codes(self, user_id: int, now: datetime | None = None) -> int:
        """Stamp ``used_at`` on every unused code of ``user_id``.

        Returns:
            Number of codes invalidated
        """
        result = await self._db.execute(
            update(ActivationCode)
            .where(
                ActivationCode.user_id == user_id,
                ActivationCode.used_at.is_(None),
            )
            .values(used_at=now or utcnow())
        )
        return result.rowcount

    async def find_unused_code_by_hash(self, code_hash: str) -> UnusedCode | None:
        result = await self._db.execute(
            select(ActivationCode.id, ActivationCode.user_id).where(
                ActivationCode.code_hash == code_hash,
                ActivationCode.used_at.is_(None),
            )
        )
        row = result.first()
        if row is None:
            return None
        return UnusedCode(code_id=row[0], user_id=row[1])

    async def mark_code_used(self, code_id: int, now: datetime | None = None) -> bool:
        """Consume a code if nobody else has.

        The ``used_at IS NULL`` predicate makes this the exclusive gate: of
        any number of concurrent callers, only one sees a row updated.

        Returns:
            True if this call consumed the code
        """
        result = await self._db.execute(
            update(ActivationCode)
            .where(
                ActivationCode.id == code_id,
                ActivationCode.used_at.is_(None),
            )
            .values(used_at=now or utcnow())
        )
        return result.rowcount == 1

    async def list_activation_codes(self) -> list[CodeListing]:
        result = await self._db.execute(
            select(ActivationCode, User.email)
            .join(User, ActivationCode.user_id == User.id)
            .order_by(ActivationCode.id)
        )
        return [
            CodeListing(
                id=code.id,
                prefix=code.code_prefix,
                email=email,
                created_at=code.created_at,
                used_at=code.used_at,
            )
            for code, email in result.all()
        ]
