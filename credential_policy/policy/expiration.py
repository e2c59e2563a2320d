"""
Expiration tracker.

Computes credential age windows. All functions are pure; callers persist
the dates they receive.
"""

from datetime import datetime
from typing import Optional

from ..config import PolicyConfig, get_config
from ..db.db_base import ensure_utc, utc_now
from ..db.db_principal_models import Principal
from ..enums import CredentialState
from ..schemas.principal_schema import CredentialDates


class ExpirationTracker:
    """Expiration window arithmetic over a principal's credential dates."""

    def __init__(self, policy: Optional[PolicyConfig] = None):
        self.policy = policy or get_config().policy

    def is_expired(self, principal: Principal, now: Optional[datetime] = None) -> bool:
        """
        Return True when ``now`` is strictly after the principal's expiry.

        A principal without an expiry date never expires.
        """
        expires_at = ensure_utc(principal.password_expires_at)
        if expires_at is None:
            return False
        return ensure_utc(now or utc_now()) > expires_at

    def refresh_dates(self, principal: Principal, now: datetime) -> CredentialDates:
        """Compute the dates for a credential accepted at ``now``."""
        changed_at = ensure_utc(now)
        return CredentialDates(
            changed_at=changed_at,
            expires_at=changed_at + self.policy.expiration_window,
        )

    def days_until_expiry(
        self, principal: Principal, now: Optional[datetime] = None
    ) -> Optional[int]:
        """Whole days left before expiry, 0 once expired, None without an expiry."""
        expires_at = ensure_utc(principal.password_expires_at)
        if expires_at is None:
            return None
        remaining = expires_at - ensure_utc(now or utc_now())
        return max(remaining.days, 0)

    def state(self, principal: Principal, now: Optional[datetime] = None) -> CredentialState:
        if principal.password_changed_at is None and not principal.password_hash:
            return CredentialState.NO_CREDENTIAL
        if self.is_expired(principal, now):
            return CredentialState.EXPIRED
        return CredentialState.ACTIVE
