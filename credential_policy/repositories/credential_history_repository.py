"""
History store adapter.

A narrow persistence port over the ``credential_history`` table. No policy
decisions live here: callers decide how many entries matter and what a match
means.
"""

from datetime import datetime
from typing import List, Optional

from sqlalchemy import delete, func, select
from sqlalchemy.orm import Session

from ..config import get_config
from ..db.db_base import ensure_utc
from ..db.db_credential_history_models import CredentialHistory
from ..db.db_principal_models import Principal
from ..exceptions import ErrorCode, ValidationError, not_found
from ..schemas.credential_history_schema import CredentialHistoryRead
from .base_repository import BaseRepository


class CredentialHistoryRepository(BaseRepository[CredentialHistory]):
    """Repository for credential history entries."""

    def __init__(self, session: Session, hash_length: Optional[int] = None):
        super().__init__(session, CredentialHistory)
        self.hash_length = hash_length or get_config().security.hash_length

    def recent_entries(self, principal_id: str, limit: int) -> List[CredentialHistoryRead]:
        """
        Get the most recent history entries for a principal, newest first.

        Args:
            principal_id: Principal whose history to read
            limit: Maximum number of entries to return

        Returns:
            Up to ``limit`` entries ordered by ``created_at`` descending
        """
        if limit <= 0:
            return []

        with self._session_operation("recent_entries", principal_id, is_read_only=True):
            rows = (
                self.session.execute(
                    self._tenant_scoped(select(CredentialHistory))
                    .where(CredentialHistory.principal_id == principal_id)
                    .order_by(CredentialHistory.created_at.desc())
                    .limit(limit)
                )
                .scalars()
                .all()
            )

        return [CredentialHistoryRead.model_validate(row) for row in rows]

    def entries_since(self, principal_id: str, since: datetime) -> List[CredentialHistoryRead]:
        """
        Get the history entries created strictly after ``since``, newest first.
        """
        since_utc = ensure_utc(since)

        with self._session_operation("entries_since", principal_id, is_read_only=True):
            rows = (
                self.session.execute(
                    self._tenant_scoped(select(CredentialHistory))
                    .where(
                        CredentialHistory.principal_id == principal_id,
                        CredentialHistory.created_at > since_utc,
                    )
                    .order_by(CredentialHistory.created_at.desc())
                )
                .scalars()
                .all()
            )

        # SQLite compares the stored text form, so re-check against the aware value
        entries = [CredentialHistoryRead.model_validate(row) for row in rows]
        return [entry for entry in entries if entry.created_at > since_utc]

    def count(self, principal_id: str) -> int:
        """Count the history entries retained for a principal."""
        with self._session_operation("count", principal_id, is_read_only=True):
            return self.session.execute(
                self._tenant_scoped(select(func.count()).select_from(CredentialHistory))
                .where(CredentialHistory.principal_id == principal_id)
            ).scalar_one()

    def append(
        self,
        principal_id: str,
        credential_hash: str,
        created_at: datetime,
        tenant_id: Optional[str] = None,
    ) -> CredentialHistoryRead:
        """
        Insert a new history entry.

        Args:
            principal_id: Owner of the entry
            credential_hash: Hash of the accepted credential
            created_at: Time the change was accepted
            tenant_id: Tenant of the principal; looked up when omitted

        Returns:
            The stored entry

        Raises:
            ValidationError: If the hash does not have the fixed length
            RepositoryError: If the principal does not exist or the insert fails
        """
        if not credential_hash or len(credential_hash) != self.hash_length:
            raise ValidationError(
                f"Credential hash must be exactly {self.hash_length} characters",
                field="credential_hash",
                error_code=ErrorCode.INVALID_FORMAT,
                principal_id=principal_id,
            )

        with self._session_operation("append", principal_id):
            if tenant_id is None:
                tenant_id = self.session.execute(
                    select(Principal.tenant_id).where(Principal.id == principal_id)
                ).scalar_one_or_none()
                if tenant_id is None:
                    raise not_found("Principal", principal_id=principal_id)

            entry = CredentialHistory(
                tenant_id=tenant_id,
                principal_id=principal_id,
                credential_hash=credential_hash,
                created_at=ensure_utc(created_at),
            )
            self.session.add(entry)

        self.logger.debug(
            "Credential history entry appended",
            extra={"principal_id": principal_id, "entry_id": entry.id, "tenant_id": tenant_id},
        )
        return CredentialHistoryRead.model_validate(entry)

    def delete_all(self, principal_id: str) -> int:
        """
        Delete every history entry for a principal.

        Returns:
            Number of entries removed; 0 when there were none
        """
        with self._session_operation("delete_all", principal_id):
            result = self.session.execute(
                self._tenant_scoped(delete(CredentialHistory))
                .where(CredentialHistory.principal_id == principal_id)
                .execution_options(synchronize_session="evaluate")
            )

        deleted = result.rowcount or 0
        self.logger.debug(
            "Credential history purged",
            extra={"principal_id": principal_id, "deleted_count": deleted},
        )
        return deleted
