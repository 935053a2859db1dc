"""Identity API endpoints.

``/validate`` and ``/activate`` always answer 200 once the check completed;
their bodies never reveal why a secret was rejected. ``/register`` returns
the same body for every input.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from keyward.api.dependencies import (
    ActivationExchangeDep,
    RegistrationFlowDep,
    ValidationServiceDep,
)
from keyward.errors import InvalidOrUsedCodeError
from keyward.middleware import enforce_rate_limit
from keyward.services.registration import GENERIC_MESSAGE

router = APIRouter(dependencies=[Depends(enforce_rate_limit)])


# ---- Request/Response Models ----


class ValidateRequest(BaseModel):
    api_key: str


class UserInfo(BaseModel):
    id: int
    email: str
    role: str
    subscription_status: str


class ValidateResponse(BaseModel):
    valid: bool
    user: UserInfo | None = None
    error: str | None = None


class ActivateRequest(BaseModel):
    activation_code: str


class ActivateResponse(BaseModel):
    success: bool
    api_key: str | None = None
    error: str | None = None


class RegisterRequest(BaseModel):
    # Plain str: malformed addresses must still get the generic answer
    email: str


class RegisterResponse(BaseModel):
    success: bool
    message: str


# ---- Endpoints ----


@router.post("/validate", response_model=ValidateResponse, response_model_exclude_none=True)
async def validate(
    request: ValidateRequest,
    validation_svc: ValidationServiceDep,
) -> ValidateResponse:
    """Resolve an API key to the user it belongs to."""
    result = await validation_svc.validate(request.api_key)
    if not result.valid or result.identity is None:
        return ValidateResponse(valid=False, error=result.error)

    identity = result.identity
    return ValidateResponse(
        valid=True,
        user=UserInfo(
            id=identity.id,
            email=identity.email,
            role=identity.role.value,
            subscription_status=identity.subscription_status.value,
        ),
    )


@router.post("/activate", response_model=ActivateResponse, response_model_exclude_none=True)
async def activate(
    request: ActivateRequest,
    exchange: ActivationExchangeDep,
) -> ActivateResponse:
    """Exchange an activation code for a new API key, shown only here."""
    try:
        api_key = await exchange.exchange(request.activation_code)
    except InvalidOrUsedCodeError as exc:
        return ActivateResponse(success=False, error=exc.message)
    return ActivateResponse(success=True, api_key=api_key)


@router.post("/register", response_model=RegisterResponse)
async def register(
    request: RegisterRequest,
    flow: RegistrationFlowDep,
) -> RegisterResponse:
    """Register an email or resend its activation code.

    **Status Codes**:
    - 200: Always, whatever the outcome
    - 503: Email delivery is not configured on this server
    """
    await flow.register(request.email)
    return RegisterResponse(success=True, message=GENERIC_MESSAGE)
