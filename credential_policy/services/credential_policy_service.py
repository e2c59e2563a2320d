"""
Credential policy engine.

Orchestrates the strength validator, reuse checker and expiration tracker
into the credential change workflow:

- validate_change: read-only policy decision for a candidate credential
- commit_change: append to history and refresh the expiration dates as one
  unit of work
- purge_history: remove a principal's retained history

Decisions are logged with the principal ID and violation reason only;
plaintext candidates and hashes never reach the logs.
"""

from datetime import datetime
from typing import List, Optional

from sqlalchemy.orm import Session

from ..config import PolicyConfig, get_config
from ..context.operation_context import operation
from ..db.db_base import ensure_utc, utc_now
from ..db.db_principal_models import Principal
from ..enums import PolicyViolationReason
from ..exceptions import (
    CredentialExpiredError,
    PolicyViolation,
    TenantIsolationViolationError,
    not_found,
)
from ..policy.expiration import ExpirationTracker
from ..policy.reuse import ReuseChecker
from ..policy.strength import StrengthValidator
from ..repositories.credential_history_repository import CredentialHistoryRepository
from ..repositories.principal_repository import PrincipalRepository
from ..schemas.credential_history_schema import CredentialHistoryRead
from ..schemas.principal_schema import PrincipalCredentialStatus
from ..utils.hashing import BcryptCredentialHasher, CredentialHasher
from ..utils.logger import ContextAwareLogger
from .base_service import SessionManagedService


class CredentialPolicyService(SessionManagedService):
    """Policy engine for credential changes."""

    def __init__(
        self,
        session: Optional[Session] = None,
        hasher: Optional[CredentialHasher] = None,
        policy: Optional[PolicyConfig] = None,
        logger: Optional[ContextAwareLogger] = None,
    ):
        """
        Initialize the policy engine.

        Args:
            session: Optional existing session; commit then stays with the caller
            hasher: Secure verifier; defaults to bcrypt
            policy: Policy parameters; defaults to the global configuration
            logger: Optional logger instance
        """
        super().__init__(session=session, logger=logger)

        self.policy = policy or get_config().policy
        self.hasher = hasher or BcryptCredentialHasher()

        self.principal_repository = PrincipalRepository(self.session)
        self.history_repository = CredentialHistoryRepository(self.session)

        self.strength_validator = StrengthValidator(self.policy)
        self.reuse_checker = ReuseChecker(
            self.history_repository, self.hasher, self.policy.history_limit
        )
        self.expiration_tracker = ExpirationTracker(self.policy)

    # ==================== POLICY DECISIONS ====================

    @operation()
    def validate_change(
        self,
        principal: Optional[Principal],
        current_credential: Optional[str],
        new_credential: Optional[str],
    ) -> None:
        """
        Decide whether a credential change is allowed.

        Checks run in order: strength, current credential, reuse. The first
        failing check decides the reason. Nothing is written.

        Args:
            principal: Principal changing its credential; None or unsaved
                principals only get the strength check
            current_credential: Credential the caller claims is current;
                None skips the current credential check
            new_credential: Candidate credential

        Raises:
            PolicyViolation: Subclass matching the violated rule
        """
        reason = self._evaluate(principal, current_credential, new_credential)
        principal_id = principal.id if principal is not None else None

        if reason is not None:
            self.logger.info(
                "Credential change rejected",
                extra={"principal_id": principal_id, "reason": reason.value},
            )
            raise PolicyViolation.for_reason(reason, principal_id=principal_id)

        self.logger.info("Credential change accepted", extra={"principal_id": principal_id})

    @operation()
    def check_change(
        self,
        principal: Optional[Principal],
        current_credential: Optional[str],
        new_credential: Optional[str],
    ) -> Optional[PolicyViolationReason]:
        """
        Non-raising form of validate_change.

        Returns:
            The violated rule, or None when the change is allowed
        """
        return self._evaluate(principal, current_credential, new_credential)

    def _evaluate(
        self,
        principal: Optional[Principal],
        current_credential: Optional[str],
        new_credential: Optional[str],
    ) -> Optional[PolicyViolationReason]:
        if not self.strength_validator.is_acceptable(new_credential):
            return PolicyViolationReason.WEAK_CREDENTIAL

        if principal is None or principal.id is None:
            return None

        self._check_tenant(principal)

        if current_credential is not None and not self.hasher.matches(
            current_credential, principal.password_hash
        ):
            return PolicyViolationReason.CURRENT_MISMATCH

        if new_credential is not None and self.reuse_checker.was_used_recently(
            principal.id, new_credential
        ):
            return PolicyViolationReason.RECENTLY_USED

        return None

    # ==================== STATE CHANGES ====================

    @operation()
    def commit_change(
        self,
        principal: Principal,
        new_credential_hash: str,
        now: Optional[datetime] = None,
    ) -> Principal:
        """
        Record an accepted credential change.

        Appends the hash to the principal's history and refreshes the
        credential dates in one unit of work. A retry after a failure that
        happened past the append may record the hash twice.

        Args:
            principal: Principal whose credential changed; saved first if new
            new_credential_hash: Hash of the new credential
            now: Time of the change; defaults to the current UTC time

        Returns:
            The managed principal carrying the new dates
        """
        now = ensure_utc(now) or utc_now()
        self._check_tenant(principal)

        with self.transaction():
            managed = self._apply_change(principal, new_credential_hash, now)

        self.logger.info(
            "Credential change committed",
            extra={"principal_id": managed.id, "tenant_id": managed.tenant_id},
        )
        return managed

    @operation()
    def change_credential(
        self,
        principal: Principal,
        current_credential: Optional[str],
        new_credential: str,
        now: Optional[datetime] = None,
    ) -> Principal:
        """
        Validate, hash and commit a new credential for a principal.

        The new hash becomes the principal's current credential in the same
        unit of work that records it in history.

        Raises:
            PolicyViolation: If the change is not allowed
            ValidationError: If the credential cannot be hashed
        """
        self.validate_change(principal, current_credential, new_credential)

        new_hash = self.hasher.hash(new_credential)
        now = ensure_utc(now) or utc_now()

        with self.transaction():
            managed = self._apply_change(principal, new_hash, now, set_current=True)

        self.logger.info(
            "Credential changed",
            extra={"principal_id": managed.id, "tenant_id": managed.tenant_id},
        )
        return managed

    @operation()
    def purge_history(self, principal_id: str) -> int:
        """
        Delete every retained history entry for a principal.

        Idempotent; purging an empty history returns 0.
        """
        with self.transaction():
            deleted = self.history_repository.delete_all(principal_id)

        self.logger.info(
            "Credential history purged",
            extra={"principal_id": principal_id, "deleted_count": deleted},
        )
        return deleted

    def _apply_change(
        self,
        principal: Principal,
        credential_hash: str,
        now: datetime,
        set_current: bool = False,
    ) -> Principal:
        managed = self._resolve_principal(principal)

        self.history_repository.append(
            managed.id, credential_hash, now, tenant_id=managed.tenant_id
        )

        dates = self.expiration_tracker.refresh_dates(managed, now)
        managed.password_changed_at = dates.changed_at
        managed.password_expires_at = dates.expires_at
        if set_current:
            managed.password_hash = credential_hash

        return self.principal_repository.save(managed)

    def _resolve_principal(self, principal: Principal) -> Principal:
        """
        Return the managed, row-locked principal for a change.

        Unsaved principals are saved first. A principal carrying an ID must
        still be stored (and visible in the active tenant); its fields are
        then taken from the locked row, not from the copy passed in.

        Raises:
            RepositoryError: NOT_FOUND if the ID has no stored row
        """
        if principal.id is None:
            return self.principal_repository.save(principal)

        managed = self.principal_repository.find_by_id(principal.id, for_update=True)
        if managed is None:
            raise not_found("Principal", principal_id=principal.id)
        return managed

    def _check_tenant(self, principal: Principal) -> None:
        if not get_config().features.enable_tenant_isolation:
            return

        tenant_id = self._get_current_tenant_id()
        if tenant_id and principal.tenant_id and principal.tenant_id != tenant_id:
            raise TenantIsolationViolationError(
                principal_id=principal.id,
                tenant_id=tenant_id,
                principal_tenant_id=principal.tenant_id,
            )

    # ==================== READ HELPERS ====================

    def is_expired(self, principal: Principal, now: Optional[datetime] = None) -> bool:
        return self.expiration_tracker.is_expired(principal, now)

    def ensure_not_expired(self, principal: Principal, now: Optional[datetime] = None) -> None:
        """
        Raises:
            CredentialExpiredError: If the principal's credential has expired
        """
        if self.expiration_tracker.is_expired(principal, now):
            raise CredentialExpiredError(
                principal_id=principal.id,
                expired_at=ensure_utc(principal.password_expires_at).isoformat(),
            )

    def credential_status(
        self, principal: Principal, now: Optional[datetime] = None
    ) -> PrincipalCredentialStatus:
        """Snapshot of the principal's credential lifecycle at ``now``."""
        now = ensure_utc(now) or utc_now()
        return PrincipalCredentialStatus(
            principal_id=principal.id,
            state=self.expiration_tracker.state(principal, now),
            changed_at=principal.password_changed_at,
            expires_at=principal.password_expires_at,
            days_until_expiry=self.expiration_tracker.days_until_expiry(principal, now),
        )

    def history_since(self, principal_id: str, since: datetime) -> List[CredentialHistoryRead]:
        """History entries recorded strictly after ``since``, newest first."""
        return self.history_repository.entries_since(principal_id, since)
