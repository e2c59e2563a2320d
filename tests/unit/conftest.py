"""
Unit test conftest.py - Component-specific fixtures.

Repositories and services run against the per-test session; only external
services are mocked.
"""

import pytest

from credential_policy.repositories import CredentialHistoryRepository, PrincipalRepository
from credential_policy.services import CredentialPolicyService


@pytest.fixture(scope="function")
def history_repository(db_session):
    """Credential history repository with test session."""
    return CredentialHistoryRepository(db_session)


@pytest.fixture(scope="function")
def principal_repository(db_session):
    """Principal repository with test session."""
    return PrincipalRepository(db_session)


@pytest.fixture(scope="function")
def policy_service(db_session, hasher, policy_config):
    """Policy engine sharing the test session."""
    return CredentialPolicyService(session=db_session, hasher=hasher, policy=policy_config)
