from .base_repository import BaseRepository
from .credential_history_repository import CredentialHistoryRepository
from .principal_repository import PrincipalRepository

__all__ = ["BaseRepository", "CredentialHistoryRepository", "PrincipalRepository"]
