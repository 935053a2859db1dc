"""API Key data model.

Stores hashed API keys for authentication.
Plaintext keys are never stored, only SHA-256 hashes.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime
from sqlmodel import Field, SQLModel

from keyward.utils.datetime import utcnow


class ApiKey(SQLModel, table=True):
    """Bearer credential bound to a user.

    The key_prefix (``sk_`` + 8 chars) identifies a key in logs and listings
    but never authenticates. ``revoked_at`` is set once and never cleared.
    """

    __tablename__ = "api_keys"

    id: Optional[int] = Field(default=None, primary_key=True)
    key_hash: str = Field(unique=True, index=True)  # SHA-256 hex digest
    key_prefix: str = Field(index=True)  # e.g. "sk_a1B2c3D4"
    user_id: int = Field(foreign_key="users.id", index=True)
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))
    revoked_at: Optional[datetime] = Field(default=None, sa_type=DateTime(timezone=True))
