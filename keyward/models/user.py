"""User data model.

A user is the identity anchor every credential is bound to.
Users are never deleted; role and status change only through admin tooling.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import Column, DateTime
from sqlalchemy import Enum as SAEnum
from sqlmodel import Field, SQLModel

from keyward.utils.datetime import utcnow


class Role(str, Enum):
    """Closed set of user roles."""

    ADMIN = "admin"
    SUPPORT = "support"
    CUSTOMER = "customer"


class SubscriptionStatus(str, Enum):
    """Subscription state reported alongside a validated identity."""

    ACTIVE = "active"
    INACTIVE = "inactive"
    TRIAL = "trial"


def _values(enum_cls: type[Enum]) -> list[str]:
    return [member.value for member in enum_cls]


class User(SQLModel, table=True):
    """Identity record. Email is stored lowercased and is unique."""

    __tablename__ = "users"

    id: Optional[int] = Field(default=None, primary_key=True)
    email: str = Field(unique=True, index=True)
    role: Role = Field(
        sa_column=Column(
            SAEnum(Role, values_callable=_values, native_enum=False, length=16),
            nullable=False,
        )
    )
    subscription_status: SubscriptionStatus = Field(
        default=SubscriptionStatus.ACTIVE,
        sa_column=Column(
            SAEnum(
                SubscriptionStatus,
                values_callable=_values,
                native_enum=False,
                length=16,
            ),
            nullable=False,
        ),
    )
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))
