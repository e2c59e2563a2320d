"""
Test fixtures for the credential policy engine.

This module provides shared test fixtures including database setup,
policy configuration, and principal helpers.
"""

from datetime import datetime, timezone

import pytest
from sqlalchemy.orm import Session

from credential_policy.config import DatabaseConfig, PolicyConfig, reset_config
from credential_policy.context.tenant_context import TenantContext
from credential_policy.db import DatabaseManager, Principal, import_all_models
from credential_policy.db.db_config import Base, initialize_db
from credential_policy.exceptions import clear_correlation_id
from credential_policy.utils.hashing import BcryptCredentialHasher


@pytest.fixture(scope="session")
def db_config() -> DatabaseConfig:
    """Create SQLite in-memory database configuration for testing."""
    return DatabaseConfig(connection_string="sqlite:///:memory:", development_mode=True)


@pytest.fixture(scope="session")
def db_manager(db_config: DatabaseConfig) -> DatabaseManager:
    """Create and initialize database manager with all models."""
    import_all_models()

    # Also registers the manager globally for services that own their session
    manager = initialize_db(db_config)

    return manager


@pytest.fixture(scope="function")
def db_session(db_manager: DatabaseManager) -> Session:
    """
    Create a database session for each test.

    Tables are created before and dropped after every test so each test
    starts from an empty database.
    """
    Base.metadata.create_all(db_manager.engine)

    session = db_manager.session_factory()

    yield session

    session.rollback()
    session.close()

    Base.metadata.drop_all(db_manager.engine)


@pytest.fixture(autouse=True)
def clean_global_state():
    """Reset process-global configuration and thread-local context around each test."""
    reset_config()
    TenantContext.clear_current_tenant()
    clear_correlation_id()

    yield

    reset_config()
    TenantContext.clear_current_tenant()
    clear_correlation_id()


@pytest.fixture(scope="session")
def hasher() -> BcryptCredentialHasher:
    """bcrypt hasher at the minimum work factor to keep tests fast."""
    return BcryptCredentialHasher(rounds=4)


@pytest.fixture
def policy_config() -> PolicyConfig:
    """Policy with the standard limits."""
    return PolicyConfig(history_limit=5, expiration_days=90)


@pytest.fixture
def sample_tenant_id() -> str:
    """Standard tenant ID for testing."""
    return "test-tenant-123"


@pytest.fixture
def fixed_now() -> datetime:
    """A fixed, timezone-aware point in time."""
    return datetime(2024, 3, 1, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def make_principal(db_session, sample_tenant_id):
    """
    Factory for committed principals.

    Usage:
        principal = make_principal("alice", password_hash=hasher.hash("old"))
    """

    def _make(login: str = "alice", tenant_id: str = None, **fields) -> Principal:
        principal = Principal(tenant_id=tenant_id or sample_tenant_id, login=login, **fields)
        db_session.add(principal)
        db_session.commit()
        return principal

    return _make
