"""
Unit-of-work base for services.

A service built without a session opens one from the process-wide
DatabaseManager and commits it. A service handed a session only flushes it,
leaving the commit to whoever supplied it.
"""

from contextlib import contextmanager
from typing import Iterator, Optional

from sqlalchemy.orm import Session

from ..context.tenant_context import TenantContext
from ..db.db_config import get_db_manager
from ..utils.logger import ContextAwareLogger, get_logger


class SessionManagedService:
    """Base for services that write through a single session."""

    def __init__(
        self,
        session: Optional[Session] = None,
        logger: Optional[ContextAwareLogger] = None,
    ):
        """
        Args:
            session: Caller-owned session; None opens a session this service owns
            logger: Optional logger instance

        Raises:
            ServiceError: If no session is given and initialize_db() has not run
        """
        self._owns_session = session is None
        self.session = get_db_manager().session_factory() if session is None else session
        self.logger = logger or get_logger()

    def _get_current_tenant_id(self) -> Optional[str]:
        return TenantContext.get_current_tenant_id()

    @contextmanager
    def transaction(self) -> Iterator[Session]:
        """
        Run a block as one unit of work.

        On success an owned session is committed and an injected one flushed.
        On any exception the session is rolled back and the exception re-raised,
        so no partial change survives in either case.
        """
        try:
            yield self.session
            if self._owns_session:
                self.session.commit()
            else:
                self.session.flush()
        except Exception:
            self.logger.debug(
                "Unit of work rolled back", extra={"owns_session": self._owns_session}
            )
            self.session.rollback()
            raise

    def commit(self) -> None:
        """Commit, if this service owns its session."""
        if self._owns_session:
            self.session.commit()

    def rollback(self) -> None:
        if self._owns_session:
            self.session.rollback()

    def close(self) -> None:
        if self._owns_session:
            self.session.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        try:
            if exc_type is None:
                self.commit()
            else:
                self.rollback()
        finally:
            self.close()
