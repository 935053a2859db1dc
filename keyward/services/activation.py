"""ActivationExchange - trades a one-time activation code for an API key.

Code states: Issued -> Used, or Issued -> Superseded (a newer code was
issued to the same user). Both are terminal and both are stored as a set
``used_at``.
"""

from __future__ import annotations

import structlog

from keyward.concurrency import get_code_lock, release_code_lock
from keyward.errors import ConflictError, InternalError, InvalidOrUsedCodeError
from keyward.services.secret_generator import (
    GeneratedSecret,
    generate_activation_code,
    generate_api_key,
    hash_secret,
)
from keyward.services.store import CredentialStore
from keyward.utils.datetime import utcnow

logger = structlog.get_logger()


class ActivationExchange:
    """Issues activation codes and exchanges them for API keys."""

    def __init__(self, store: CredentialStore) -> None:
        self._store = store
        self._log = logger.bind(service="activation")

    async def issue_code(self, user_id: int) -> GeneratedSecret:
        """Issue a fresh code for ``user_id``, superseding older unused ones.

        Does not commit; the caller owns the transaction.

        Raises:
            NotFoundError: If the user does not exist
        """
        superseded = await self._store.invalidate_unused_codes(user_id, utcnow())
        code = generate_activation_code()
        await self._store.insert_activation_code(code.hash, code.prefix, user_id)

        self._log.info(
            "activation.code.issued",
            user_id=user_id,
            code_prefix=code.prefix,
            superseded=superseded,
        )
        return code

    async def exchange(self, presented_code: str) -> str:
        """Consume ``presented_code`` and mint a new API key.

        Marking the code used and inserting the key commit together; if
        either step fails, neither is visible.

        Returns:
            The new API key's full secret (shown once)

        Raises:
            InvalidOrUsedCodeError: Code never existed, was used, or was
                superseded
            InternalError: The minted key collided with an existing hash
        """
        code_hash = hash_secret(presented_code)
        lock = await get_code_lock(code_hash)
        try:
            async with lock:
                return await self._exchange_locked(code_hash)
        finally:
            await release_code_lock(code_hash)

    async def _exchange_locked(self, code_hash: str) -> str:
        found = await self._store.find_unused_code_by_hash(code_hash)
        if found is None:
            self._log.info("activation.exchange.rejected")
            raise InvalidOrUsedCodeError()

        try:
            if not await self._store.mark_code_used(found.code_id, utcnow()):
                # Another process consumed it between lookup and update
                await self._store.rollback()
                self._log.info("activation.exchange.lost_race", code_id=found.code_id)
                raise InvalidOrUsedCodeError()

            key = generate_api_key()
            await self._store.insert_api_key(key.hash, key.prefix, found.user_id)
            await self._store.commit()
        except ConflictError as exc:
            self._log.error("activation.exchange.key_collision", code_id=found.code_id)
            raise InternalError("Failed to mint API key") from exc
        except InvalidOrUsedCodeError:
            raise
        except Exception:
            await self._store.rollback()
            raise

        self._log.info(
            "activation.exchange.succeeded",
            user_id=found.user_id,
            key_prefix=key.prefix,
        )
        return key.full_secret
