"""Repository for principals whose credentials the policy engine governs."""

from typing import Optional

from sqlalchemy.orm import Session

from ..db.db_principal_models import Principal
from .base_repository import BaseRepository


class PrincipalRepository(BaseRepository[Principal]):
    """Repository for principal entities."""

    def __init__(self, session: Session):
        super().__init__(session, Principal)

    def find_by_id(self, principal_id: str, for_update: bool = False) -> Optional[Principal]:
        """
        Get a principal by ID.

        Args:
            principal_id: ID of the principal
            for_update: Lock the row until the surrounding transaction ends

        Returns:
            The managed principal, or None if it does not exist in the
            current tenant
        """
        with self._session_operation("find_by_id", principal_id, is_read_only=True):
            return self._get_by_id(principal_id, for_update=for_update)

    def save(self, principal: Principal) -> Principal:
        """
        Add a principal to the session and flush it.

        The principal receives its ID on flush. Nothing is committed.
        """
        with self._session_operation("save", principal.id):
            self.session.add(principal)

        self.logger.debug(
            "Principal saved",
            extra={"principal_id": principal.id, "tenant_id": principal.tenant_id},
        )
        return principal
