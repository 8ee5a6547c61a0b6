"""Credential scoping and URL validation for httpsend."""

from .credentials import (
    DEFAULT_SCOPE,
    Challenger,
    CredentialScope,
    Credentials,
    ScopedPasswordManager,
    current_caller,
)
from .url_validator import UrlValidationResult, UrlValidator

__all__ = [
    "DEFAULT_SCOPE",
    "Challenger",
    "CredentialScope",
    "Credentials",
    "ScopedPasswordManager",
    "UrlValidationResult",
    "UrlValidator",
    "current_caller",
]
