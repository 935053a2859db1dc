"""AccessControlGate - FastAPI dependencies for protected routes.

Authentication and authorization are two separate preconditions:

    @router.get("/tickets")
    async def list_tickets(user: UserContextDep): ...      # 401 / 503

    @router.get("/admin/tickets")
    async def list_all(admin: AdminContextDep): ...        # 401 / 503 / 403

The app must expose a ``Verifier`` as ``app.state.verifier`` and install
``keyward.handlers.install_error_handler`` so the errors below become
their HTTP statuses.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Annotated

import structlog
from fastapi import Depends, Request

from keyward.client.identity import Verifier
from keyward.errors import ForbiddenError, UnauthorizedError
from keyward.models.user import Role, SubscriptionStatus

logger = structlog.get_logger()

API_KEY_HEADER = "x-api-key"


@dataclass(frozen=True)
class UserContext:
    """Authenticated caller."""

    user_id: int
    email: str
    role: Role
    subscription_status: SubscriptionStatus

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN


@dataclass(frozen=True)
class AdminContext:
    """Authenticated caller holding the admin role."""

    user_id: int
    email: str


def get_verifier(request: Request) -> Verifier:
    verifier: Verifier | None = getattr(request.app.state, "verifier", None)
    if verifier is None:
        raise RuntimeError("app.state.verifier is not set")
    return verifier


async def get_user_context(
    request: Request,
    verifier: Annotated[Verifier, Depends(get_verifier)],
) -> UserContext:
    """Authenticate the request by its ``x-api-key`` header.

    Raises:
        UnauthorizedError: Header missing, or the key is not valid
        BackendUnavailableError: The verifier could not be reached
    """
    api_key = request.headers.get(API_KEY_HEADER)
    if not api_key:
        raise UnauthorizedError("Missing X-API-Key header")

    user = await verifier.verify(api_key)
    if user is None:
        logger.info("gate.unauthorized", path=request.url.path)
        raise UnauthorizedError("Invalid API key")

    return UserContext(
        user_id=user.id,
        email=user.email,
        role=user.role,
        subscription_status=user.subscription_status,
    )


UserContextDep = Annotated[UserContext, Depends(get_user_context)]


async def require_admin(user: UserContextDep) -> AdminContext:
    """Authorize an authenticated caller as admin.

    Raises:
        ForbiddenError: The caller authenticated but is not an admin
    """
    if not user.is_admin:
        logger.info("gate.forbidden", user_id=user.user_id, role=user.role.value)
        raise ForbiddenError("Admin access required")
    return AdminContext(user_id=user.user_id, email=user.email)


AdminContextDep = Annotated[AdminContext, Depends(require_admin)]
