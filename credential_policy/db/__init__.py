"""
SQLAlchemy models and database wiring for the credential policy engine.
"""

from .db_base import TimestampMixin, UUIDMixin, ensure_utc, utc_now
from .db_config import (
    Base,
    DatabaseManager,
    build_engine,
    close_db,
    get_db_manager,
    import_all_models,
    initialize_db,
    set_db_manager,
)
from .db_credential_history_models import CredentialHistory
from .db_principal_models import Principal

__all__ = [
    # Base definitions
    "Base",
    "TimestampMixin",
    "UUIDMixin",
    "ensure_utc",
    "utc_now",
    # Wiring
    "DatabaseManager",
    "build_engine",
    "close_db",
    "get_db_manager",
    "import_all_models",
    "initialize_db",
    "set_db_manager",
    # Models
    "CredentialHistory",
    "Principal",
]
