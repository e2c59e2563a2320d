"""
Enums used across the credential_policy package.

This module contains enum definitions that are used by multiple modules
to avoid circular import issues.
"""

import enum


class PolicyViolationReason(str, enum.Enum):
    """Reasons a credential change can be rejected."""

    WEAK_CREDENTIAL = "WEAK_CREDENTIAL"
    CURRENT_MISMATCH = "CURRENT_MISMATCH"
    RECENTLY_USED = "RECENTLY_USED"


class CredentialState(str, enum.Enum):
    """Lifecycle state of a principal's credential."""

    NO_CREDENTIAL = "NO_CREDENTIAL"
    ACTIVE = "ACTIVE"
    EXPIRED = "EXPIRED"
