from .base_service import SessionManagedService
from .credential_policy_service import CredentialPolicyService

__all__ = ["CredentialPolicyService", "SessionManagedService"]
