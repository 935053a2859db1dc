"""Activation-code-level in-memory locks.

Used by ActivationExchange so that concurrent exchanges of the same code in
one process queue up instead of racing into the database.

Every ``get_code_lock`` must be paired with one ``release_code_lock``. A
lock stays registered while any caller holds or waits on it.

Note: These locks only work within a single process. Across processes the
conditional ``UPDATE ... WHERE used_at IS NULL`` in the store is what keeps
a code from being exchanged twice.
"""

from __future__ import annotations

import asyncio

# Key: activation code hash, Value: asyncio.Lock
_code_locks: dict[str, asyncio.Lock] = {}
# Key: activation code hash, Value: callers between get and release
_code_lock_users: dict[str, int] = {}
_code_locks_lock = asyncio.Lock()


async def get_code_lock(code_hash: str) -> asyncio.Lock:
    """Get or create the lock for one activation code.

    Args:
        code_hash: SHA-256 hash of the presented code

    Returns:
        asyncio.Lock for that code
    """
    async with _code_locks_lock:
        if code_hash not in _code_locks:
            _code_locks[code_hash] = asyncio.Lock()
            _code_lock_users[code_hash] = 0
        _code_lock_users[code_hash] += 1
        return _code_locks[code_hash]


async def release_code_lock(code_hash: str) -> None:
    """Drop one reference; forget the lock once nobody uses it."""
    async with _code_locks_lock:
        users = _code_lock_users.get(code_hash)
        if users is None:
            return
        if users <= 1:
            _code_lock_users.pop(code_hash, None)
            _code_locks.pop(code_hash, None)
        else:
            _code_lock_users[code_hash] = users - 1


def get_lock_count() -> int:
    """Get current number of locks (for testing/metrics)."""
    return len(_code_locks)
