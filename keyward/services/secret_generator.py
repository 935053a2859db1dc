"""Secret generation and hashing.

API keys look like ``sk_<8>_<32>`` and activation codes like
``ac_<4>-<4>-<4>``, drawn from a 62-symbol alphabet. Only the SHA-256 hash
and a short display prefix are ever persisted; the full secret is handed to
the caller once.
"""

from __future__ import annotations

import hashlib
import secrets
import string
from dataclasses import dataclass

ALPHABET = string.ascii_letters + string.digits

API_KEY_MARKER = "sk_"
ACTIVATION_CODE_MARKER = "ac_"

_KEY_PREFIX_LEN = 8
_KEY_BODY_LEN = 32
_CODE_GROUP_LEN = 4
_CODE_GROUPS = 3


@dataclass(frozen=True)
class GeneratedSecret:
    """A freshly minted secret.

    ``full_secret`` must be shown to the user once and then dropped.
    """

    full_secret: str
    prefix: str
    hash: str

    def __repr__(self) -> str:
        return f"GeneratedSecret(prefix={self.prefix!r})"


def _random_chars(length: int) -> str:
    return "".join(secrets.choice(ALPHABET) for _ in range(length))


def hash_secret(plaintext: str) -> str:
    """Hash a plaintext secret using SHA-256.

    Returns:
        Lowercase hex digest
    """
    return hashlib.sha256(plaintext.encode()).hexdigest()


def generate_api_key() -> GeneratedSecret:
    """Generate a new API key.

    Returns:
        GeneratedSecret with full key ``sk_XXXXXXXX_<32 chars>`` and
        prefix ``sk_XXXXXXXX``
    """
    prefix_chars = _random_chars(_KEY_PREFIX_LEN)
    body = _random_chars(_KEY_BODY_LEN)

    full_key = f"{API_KEY_MARKER}{prefix_chars}_{body}"
    prefix = f"{API_KEY_MARKER}{prefix_chars}"
    return GeneratedSecret(full_secret=full_key, prefix=prefix, hash=hash_secret(full_key))


def generate_activation_code() -> GeneratedSecret:
    """Generate a new activation code.

    Returns:
        GeneratedSecret with full code ``ac_XXXX-XXXX-XXXX`` and prefix
        ``ac_XXXX``
    """
    groups = [_random_chars(_CODE_GROUP_LEN) for _ in range(_CODE_GROUPS)]

    full_code = ACTIVATION_CODE_MARKER + "-".join(groups)
    prefix = f"{ACTIVATION_CODE_MARKER}{groups[0]}"
    return GeneratedSecret(full_secret=full_code, prefix=prefix, hash=hash_secret(full_code))
