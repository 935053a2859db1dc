"""Client side of Keyward, for services that delegate authentication to it."""

from keyward.client.gate import (
    AdminContext,
    AdminContextDep,
    UserContext,
    UserContextDep,
    get_user_context,
    require_admin,
)
from keyward.client.identity import IdentityClient, Verifier, VerifiedUser

__all__ = [
    "AdminContext",
    "AdminContextDep",
    "IdentityClient",
    "UserContext",
    "UserContextDep",
    "VerifiedUser",
    "Verifier",
    "get_user_context",
    "require_admin",
]
