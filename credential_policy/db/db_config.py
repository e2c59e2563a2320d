"""
Engine and session wiring.

One ``DatabaseManager`` per process, built from ``AppConfig.database``. It
hands out plain sessions; services decide when they commit.
"""

from typing import Any, Optional

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.exc import ArgumentError
from sqlalchemy.orm import declarative_base, sessionmaker

from ..config import DatabaseConfig, get_config
from ..exceptions import ErrorCode, ServiceError, ValidationError
from ..utils.logger import get_logger

Base: Any = declarative_base()

SUPPORTED_BACKENDS = ("sqlite", "postgresql")


def _sqlite_enforce_foreign_keys(dbapi_connection, connection_record):
    # Deleting a principal relies on ON DELETE CASCADE for its history
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def build_engine(config: DatabaseConfig) -> Engine:
    """
    Create the engine for a configured connection string.

    Raises:
        ValidationError: If the URL cannot be parsed or names an unsupported backend
    """
    try:
        url = make_url(config.connection_string)
    except ArgumentError as e:
        raise ValidationError(
            "Malformed database connection string",
            field="connection_string",
            error_code=ErrorCode.INVALID_FORMAT,
            cause=e,
        ) from e

    backend = url.get_backend_name()
    if backend not in SUPPORTED_BACKENDS:
        raise ValidationError(
            f"Unsupported database backend: {backend}",
            field="connection_string",
            error_code=ErrorCode.INVALID_FORMAT,
            backend=backend,
        )

    if backend == "sqlite":
        engine = create_engine(
            url, echo=config.echo, connect_args={"check_same_thread": False}
        )
        event.listen(engine, "connect", _sqlite_enforce_foreign_keys)
        return engine

    return create_engine(
        url,
        echo=config.echo,
        pool_size=config.pool_size,
        max_overflow=config.max_overflow,
        pool_timeout=config.pool_timeout,
    )


class DatabaseManager:
    """Owns the engine and session factory for the principal and history tables."""

    def __init__(self, config: Optional[DatabaseConfig] = None):
        self.config = config or get_config().database
        self.engine = build_engine(self.config)
        self.session_factory = sessionmaker(bind=self.engine)

    @property
    def safe_url(self) -> str:
        """Connection URL with the password masked, for logs."""
        return self.engine.url.render_as_string(hide_password=True)

    def create_tables(self) -> None:
        Base.metadata.create_all(self.engine)

    def drop_tables(self) -> None:
        """
        Drop every table.

        Raises:
            ServiceError: Unless the configuration is in development mode
        """
        if not self.config.development_mode:
            raise ServiceError(
                "Refusing to drop tables outside development mode",
                error_code=ErrorCode.CONFIGURATION_ERROR,
                operation="drop_tables",
            )
        Base.metadata.drop_all(self.engine)

    def dispose(self) -> None:
        self.engine.dispose()

    def __repr__(self) -> str:
        return f"DatabaseManager(url='{self.safe_url}')"


def import_all_models():
    """Register the principal and history models with ``Base.metadata``."""
    from sqlalchemy.orm import configure_mappers

    from .db_credential_history_models import CredentialHistory  # noqa
    from .db_principal_models import Principal  # noqa

    configure_mappers()


_db_manager: Optional[DatabaseManager] = None


def get_db_manager() -> DatabaseManager:
    """
    Return the process-wide manager used by services that own their session.

    Raises:
        ServiceError: If initialize_db() has not run
    """
    if _db_manager is None:
        raise ServiceError(
            "Database manager not initialized. Call initialize_db() first.",
            error_code=ErrorCode.CONFIGURATION_ERROR,
            operation="get_db_manager",
        )
    return _db_manager


def set_db_manager(manager: Optional[DatabaseManager]) -> None:
    global _db_manager
    _db_manager = manager


def initialize_db(config: Optional[DatabaseConfig] = None) -> DatabaseManager:
    """
    Build the process-wide manager and create the tables.

    Args:
        config: Database settings; defaults to ``get_config().database``
    """
    manager = DatabaseManager(config)
    get_logger().info("Initializing credential policy database", extra={"url": manager.safe_url})

    import_all_models()
    manager.create_tables()

    set_db_manager(manager)
    return manager


def close_db() -> None:
    """Dispose of the process-wide engine, if any."""
    global _db_manager
    if _db_manager is not None:
        _db_manager.dispose()
        _db_manager = None
