"""Keyward services layer."""

from keyward.services.activation import ActivationExchange
from keyward.services.admin import AdminService
from keyward.services.registration import RegistrationFlow
from keyward.services.store import CredentialStore
from keyward.services.validation import ValidationService

__all__ = [
    "ActivationExchange",
    "AdminService",
    "CredentialStore",
    "RegistrationFlow",
    "ValidationService",
]
