"""SQLModel data models."""

from keyward.models.activation_code import ActivationCode
from keyward.models.api_key import ApiKey
from keyward.models.user import Role, SubscriptionStatus, User

__all__ = [
    "ActivationCode",
    "ApiKey",
    "Role",
    "SubscriptionStatus",
    "User",
]
