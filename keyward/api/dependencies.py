"""FastAPI dependencies for the Keyward API.

Provides dependency injection for:
- Database sessions
- Credential services
- The email collaborator
"""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from keyward.db import get_session_dependency
from keyward.errors import BackendUnavailableError
from keyward.services.activation import ActivationExchange
from keyward.services.email import EmailSender
from keyward.services.registration import RegistrationFlow
from keyward.services.store import CredentialStore
from keyward.services.validation import ValidationService

SessionDep = Annotated[AsyncSession, Depends(get_session_dependency)]


async def get_credential_store(session: SessionDep) -> CredentialStore:
    return CredentialStore(session)


CredentialStoreDep = Annotated[CredentialStore, Depends(get_credential_store)]


async def get_validation_service(store: CredentialStoreDep) -> ValidationService:
    return ValidationService(store)


async def get_activation_exchange(store: CredentialStoreDep) -> ActivationExchange:
    return ActivationExchange(store)


def get_email_sender(request: Request) -> EmailSender:
    """Get the configured email sender.

    Raises:
        BackendUnavailableError: If no email provider is configured
    """
    sender: EmailSender | None = getattr(request.app.state, "email_sender", None)
    if sender is None:
        raise BackendUnavailableError("Email service not configured")
    return sender


async def get_registration_flow(
    store: CredentialStoreDep,
    sender: Annotated[EmailSender, Depends(get_email_sender)],
) -> RegistrationFlow:
    return RegistrationFlow(store, sender)


# Type aliases for cleaner dependency injection
ValidationServiceDep = Annotated[ValidationService, Depends(get_validation_service)]
ActivationExchangeDep = Annotated[ActivationExchange, Depends(get_activation_exchange)]
RegistrationFlowDep = Annotated[RegistrationFlow, Depends(get_registration_flow)]
