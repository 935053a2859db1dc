"""Activation code data model.

A code authorizes at most one exchange for an API key. Issuing a new code
for a user stamps ``used_at`` on every older unused code of that user, so
superseded codes look exactly like consumed ones.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime
from sqlmodel import Field, SQLModel

from keyward.utils.datetime import utcnow


class ActivationCode(SQLModel, table=True):
    """One-time exchange token, stored as a SHA-256 hash."""

    __tablename__ = "activation_codes"

    id: Optional[int] = Field(default=None, primary_key=True)
    code_hash: str = Field(unique=True, index=True)
    code_prefix: str = Field(index=True)  # e.g. "ac_Xy7Q"
    user_id: int = Field(foreign_key="users.id", index=True)
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))
    used_at: Optional[datetime] = Field(default=None, sa_type=DateTime(timezone=True))
