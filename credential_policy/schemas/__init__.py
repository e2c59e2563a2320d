"""Pydantic schemas for the credential policy engine."""

from .credential_history_schema import CredentialHistoryRead
from .principal_schema import CredentialDates, PrincipalCredentialStatus

__all__ = [
    "CredentialDates",
    "CredentialHistoryRead",
    "PrincipalCredentialStatus",
]
