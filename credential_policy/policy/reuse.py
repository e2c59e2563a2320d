"""
Reuse checker.

Compares a candidate against the most recent retained hashes of a principal
using the secure verifier. Plaintext never touches the history store.
"""

from typing import Optional

from ..config import get_config
from ..repositories.credential_history_repository import CredentialHistoryRepository
from ..utils.hashing import CredentialHasher
from ..utils.logger import get_logger


class ReuseChecker:
    """Detects candidates that match one of the last N credentials."""

    def __init__(
        self,
        history_repository: CredentialHistoryRepository,
        hasher: CredentialHasher,
        history_limit: Optional[int] = None,
    ):
        self.history_repository = history_repository
        self.hasher = hasher
        self.history_limit = (
            get_config().policy.history_limit if history_limit is None else history_limit
        )
        self.logger = get_logger()

    def was_used_recently(
        self, principal_id: str, candidate: str, history_limit: Optional[int] = None
    ) -> bool:
        """
        Check the candidate against the principal's recent history.

        Args:
            principal_id: Principal whose history is checked
            candidate: Plaintext candidate credential
            history_limit: Number of most recent entries to consider; defaults
                to the configured limit; 0 or less checks nothing

        Returns:
            True on the first matching entry, False for no history or no match
        """
        limit = self.history_limit if history_limit is None else history_limit
        entries = self.history_repository.recent_entries(principal_id, limit)

        for entry in entries:
            if self.hasher.matches(candidate, entry.credential_hash):
                self.logger.debug(
                    "Candidate matches a retained credential",
                    extra={"principal_id": principal_id, "entry_id": entry.id},
                )
                return True

        return False
