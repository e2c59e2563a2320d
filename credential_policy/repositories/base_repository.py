"""
Shared plumbing for the principal and history stores.

Repositories work on the session they are given and never commit or roll
back; the service that owns the unit of work does. Every SQLAlchemy failure
leaves a repository as a RepositoryError.
"""

from contextlib import contextmanager
from typing import Any, Generic, NoReturn, Optional, Type, TypeVar

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..config import get_config
from ..context.tenant_context import TenantContext
from ..exceptions import ErrorCode, RepositoryError, duplicate
from ..utils.logger import ContextAwareLogger, get_logger

T = TypeVar("T")


class BaseRepository(Generic[T]):
    """Session-bound access to one mapped entity."""

    def __init__(
        self,
        session: Session,
        entity_class: Type[T],
        logger: Optional[ContextAwareLogger] = None,
    ):
        self.session = session
        self.entity_class = entity_class
        self.entity_name = entity_class.__name__
        self.logger = logger or get_logger()

    def _handle_db_error(
        self,
        e: Exception,
        operation_name: str,
        entity_id: Optional[str] = None,
        **context: Any,
    ) -> NoReturn:
        """
        Re-raise ``e`` as a RepositoryError.

        Unique-key hits become DUPLICATE, other integrity failures
        CONSTRAINT_VIOLATION, the rest of SQLAlchemy DATABASE_ERROR.
        """
        if isinstance(e, RepositoryError):
            raise e

        context.update(
            operation_name=operation_name,
            entity_type=self.entity_name,
            tenant_id=TenantContext.get_current_tenant_id(),
        )
        if entity_id:
            context["entity_id"] = entity_id

        if isinstance(e, IntegrityError):
            detail = str(getattr(e, "orig", e)).lower()
            if "unique" in detail or "duplicate" in detail:
                raise duplicate(self.entity_name, cause=e, **context) from e
            code = ErrorCode.CONSTRAINT_VIOLATION
        elif isinstance(e, SQLAlchemyError):
            code = ErrorCode.DATABASE_ERROR
        else:
            code = ErrorCode.INTERNAL_ERROR

        raise RepositoryError(
            f"{operation_name} failed for {self.entity_name}: {e}",
            error_code=code,
            cause=e,
            **context,
        ) from e

    @contextmanager
    def _session_operation(
        self, operation_name: str, entity_id: Optional[str] = None, is_read_only: bool = False
    ):
        """
        Run a block against the session, translating any failure.

        Writes are flushed before leaving the block so constraint violations
        surface inside the caller's unit of work.
        """
        try:
            yield self.session
            if not is_read_only:
                self.session.flush()
        except Exception as e:
            self._handle_db_error(e, operation_name, entity_id)

    def _get_by_id(self, entity_id: str, for_update: bool = False) -> Optional[T]:
        """Load one entity by primary key, optionally taking a row lock."""
        query = self._tenant_scoped(
            select(self.entity_class).where(self.entity_class.id == entity_id)
        )
        if for_update:
            # A locked read must not hand back stale in-session state
            query = query.with_for_update().execution_options(populate_existing=True)

        return self.session.execute(query).scalar_one_or_none()

    def _tenant_scoped(self, statement):
        """
        Limit a select, count or bulk delete to the active tenant.

        Applies only while tenant isolation is enabled and a tenant is active;
        otherwise the statement is returned unchanged.
        """
        if not get_config().features.enable_tenant_isolation:
            return statement

        tenant_id = TenantContext.get_current_tenant_id()
        if tenant_id is None or not hasattr(self.entity_class, "tenant_id"):
            return statement
        return statement.where(self.entity_class.tenant_id == tenant_id)
