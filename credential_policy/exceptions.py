"""
Error hierarchy for the credential policy engine.

Every error carries a stable code, an HTTP-style status and a context mapping,
and records itself in the package log when it is built. Policy violations are
user-correctable input errors; repository errors are the infrastructure
category and the engine never retries them.
"""

import threading
import traceback
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

from .enums import PolicyViolationReason

_correlation = threading.local()


class ErrorCode(str, Enum):
    """Codes shared by every error the engine raises."""

    # Infrastructure
    INTERNAL_ERROR = "1000"
    DATABASE_ERROR = "1001"
    CONFIGURATION_ERROR = "1003"

    # Input
    VALIDATION_FAILED = "2000"
    INVALID_FORMAT = "2001"
    MISSING_REQUIRED = "2002"
    CONSTRAINT_VIOLATION = "2004"

    # Stored state
    NOT_FOUND = "3000"
    DUPLICATE = "3001"
    EXPIRED = "3004"

    # Credential rules
    POLICY_VIOLATION = "4000"
    PERMISSION_DENIED = "4003"


def set_correlation_id(correlation_id: str) -> None:
    """Bind a correlation ID to the calling thread."""
    _correlation.value = correlation_id


def get_correlation_id() -> Optional[str]:
    return getattr(_correlation, "value", None)


def clear_correlation_id() -> None:
    _correlation.__dict__.pop("value", None)


def _describe_cause(cause: BaseException) -> Dict[str, Any]:
    return {
        "type": type(cause).__name__,
        "message": str(cause),
        "traceback": traceback.format_exception(type(cause), cause, cause.__traceback__),
    }


class BaseError(Exception):
    """
    Root of the engine's errors.

    Subclasses pick their defaults through ``default_code`` and
    ``default_status``; any keyword not consumed by the constructor lands in
    ``context``.
    """

    default_code = ErrorCode.INTERNAL_ERROR
    default_status = 500

    def __init__(
        self,
        message: str,
        error_code: Optional[ErrorCode] = None,
        status_code: Optional[int] = None,
        cause: Optional[Exception] = None,
        **context: Any,
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.default_code
        self.status_code = status_code or self.default_status
        self.cause = cause
        self.error_id = str(uuid.uuid4())
        self.timestamp = datetime.now(timezone.utc).isoformat()

        self.context: Dict[str, Any] = dict(context, error_id=self.error_id)
        correlation_id = get_correlation_id()
        if correlation_id:
            self.context["correlation_id"] = correlation_id
        if cause is not None:
            self.context["cause"] = _describe_cause(cause)

        self._record()

    def _record(self) -> None:
        # Imported here: the logger reads config, and config must stay import-free of errors
        from .utils.logger import get_logger

        details = {key: value for key, value in self.context.items() if key != "cause"}
        extra = {
            "error_code": self.error_code.value,
            "status_code": self.status_code,
            "error_class": type(self).__name__,
            "details": details,
        }
        line = f"[{self.error_code.value}] {self.message}"

        if self.status_code >= 500:
            get_logger().error(line, extra=extra, exc_info=self.cause)
        else:
            get_logger().warning(line, extra=extra)

    def add_context(self, **kwargs: Any) -> "BaseError":
        """Attach more context after construction; returns the error itself."""
        self.context.update(kwargs)
        return self

    def to_dict(self, include_cause: bool = False) -> Dict[str, Any]:
        """
        Render the error for a caller-facing payload.

        Internal bookkeeping (error id, correlation id, cause) is lifted out of
        ``context``; the cause is only included on request and never with its
        traceback.
        """
        lifted = ("cause", "error_id", "correlation_id")
        body: Dict[str, Any] = {
            "id": self.error_id,
            "code": self.error_code.value,
            "message": self.message,
            "timestamp": self.timestamp,
            "context": {k: v for k, v in self.context.items() if k not in lifted},
        }
        if "correlation_id" in self.context:
            body["correlation_id"] = self.context["correlation_id"]
        if include_cause and "cause" in self.context:
            cause = self.context["cause"]
            body["cause"] = {"type": cause["type"], "message": cause["message"]}
        return {"error": body}


class RepositoryError(BaseError):
    """Persistence failure raised by the history and principal stores."""

    default_code = ErrorCode.DATABASE_ERROR


class ServiceError(BaseError):
    """Failure inside a service operation that is not a policy decision."""


class ValidationError(BaseError):
    """Malformed input, such as a hash of the wrong length or an empty tenant."""

    default_code = ErrorCode.VALIDATION_FAILED
    default_status = 400


def _resource_error(
    code: ErrorCode, status: int, summary: str, resource_type: str, cause, identifiers
) -> RepositoryError:
    if identifiers:
        summary += ": " + ", ".join(f"{key}={value}" for key, value in identifiers.items())
    return RepositoryError(
        summary,
        error_code=code,
        status_code=status,
        cause=cause,
        resource_type=resource_type,
        **identifiers,
    )


def not_found(
    resource_type: str, cause: Optional[Exception] = None, **identifiers
) -> RepositoryError:
    """Error for a principal or entry that does not exist, e.g. ``not_found("Principal", principal_id=pid)``."""
    return _resource_error(
        ErrorCode.NOT_FOUND, 404, f"{resource_type} not found", resource_type, cause, identifiers
    )


def duplicate(
    resource_type: str, cause: Optional[Exception] = None, **identifiers
) -> RepositoryError:
    """Error for a unique constraint hit, such as a second principal with the same login."""
    return _resource_error(
        ErrorCode.DUPLICATE, 409, f"Duplicate {resource_type}", resource_type, cause, identifiers
    )


# ==================== CREDENTIAL POLICY EXCEPTIONS ====================

POLICY_VIOLATION_MESSAGE = "Credential change rejected"


class PolicyViolation(ValidationError):
    """
    Raised when a credential change is rejected by the policy.

    Every reason carries the same message; the ``reason`` tag is the only
    thing that distinguishes them, so callers choose how much to expose.
    """

    default_code = ErrorCode.POLICY_VIOLATION
    reason: PolicyViolationReason

    def __init__(self, reason: PolicyViolationReason, **context):
        self.reason = reason
        super().__init__(POLICY_VIOLATION_MESSAGE, reason=reason.value, **context)

    @classmethod
    def for_reason(cls, reason: PolicyViolationReason, **context) -> "PolicyViolation":
        """Build the reason-specific subclass."""
        subclass = _VIOLATIONS_BY_REASON.get(reason)
        if subclass is None:
            return cls(reason, **context)
        return subclass(**context)


class WeakCredentialError(PolicyViolation):
    """Candidate fails the strength predicate."""

    def __init__(self, **context):
        super().__init__(PolicyViolationReason.WEAK_CREDENTIAL, **context)


class CurrentMismatchError(PolicyViolation):
    """Supplied current credential does not verify against the stored hash."""

    def __init__(self, **context):
        super().__init__(PolicyViolationReason.CURRENT_MISMATCH, **context)


class RecentlyUsedError(PolicyViolation):
    """Candidate matches a retained history entry."""

    def __init__(self, **context):
        super().__init__(PolicyViolationReason.RECENTLY_USED, **context)


_VIOLATIONS_BY_REASON = {
    PolicyViolationReason.WEAK_CREDENTIAL: WeakCredentialError,
    PolicyViolationReason.CURRENT_MISMATCH: CurrentMismatchError,
    PolicyViolationReason.RECENTLY_USED: RecentlyUsedError,
}


class CredentialExpiredError(BaseError):
    """The principal's credential is past its expiry date."""

    default_code = ErrorCode.EXPIRED
    default_status = 401

    def __init__(self, message: str = "Credential has expired", **context):
        super().__init__(message, **context)


class TenantIsolationViolationError(BaseError):
    """A principal from another tenant was handed to the engine."""

    default_code = ErrorCode.PERMISSION_DENIED
    default_status = 403

    def __init__(self, message: str = "Tenant isolation violation detected", **context):
        super().__init__(message, **context)
