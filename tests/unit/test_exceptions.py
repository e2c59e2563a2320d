"""Tests for the exception hierarchy and policy violation types."""

from unittest.mock import patch

import pytest

from credential_policy.enums import PolicyViolationReason
from credential_policy.exceptions import (
    POLICY_VIOLATION_MESSAGE,
    BaseError,
    CredentialExpiredError,
    CurrentMismatchError,
    ErrorCode,
    PolicyViolation,
    RecentlyUsedError,
    RepositoryError,
    ServiceError,
    TenantIsolationViolationError,
    ValidationError,
    WeakCredentialError,
    clear_correlation_id,
    duplicate,
    get_correlation_id,
    not_found,
    set_correlation_id,
)


class TestBaseError:
    """Test BaseError behavior."""

    def test_basic_attributes(self):
        error = BaseError("Something broke", principal_id="p-1")

        assert error.message == "Something broke"
        assert error.error_code == ErrorCode.INTERNAL_ERROR
        assert error.status_code == 500
        assert error.context["principal_id"] == "p-1"
        assert error.context["error_id"] == error.error_id
        assert str(error) == "Something broke"

    def test_cause_is_recorded(self):
        cause = ValueError("bad value")
        error = BaseError("Wrapped", cause=cause)

        assert error.cause is cause
        assert error.context["cause"]["type"] == "ValueError"

    def test_to_dict(self):
        error = BaseError("Broken", error_code=ErrorCode.DATABASE_ERROR, table="principals")
        result = error.to_dict()

        assert result["error"]["code"] == ErrorCode.DATABASE_ERROR.value
        assert result["error"]["message"] == "Broken"
        assert result["error"]["context"] == {"table": "principals"}

    def test_to_dict_with_cause(self):
        error = BaseError("Broken", cause=RuntimeError("boom"))
        result = error.to_dict(include_cause=True)

        assert result["error"]["cause"] == {"type": "RuntimeError", "message": "boom"}
        assert "traceback" not in result["error"]["cause"]

    def test_cause_hidden_by_default(self):
        result = BaseError("Broken", cause=RuntimeError("boom")).to_dict()
        assert "cause" not in result["error"]
        assert "cause" not in result["error"]["context"]

    def test_add_context_is_fluent(self):
        error = BaseError("Broken")
        assert error.add_context(step="append") is error
        assert error.context["step"] == "append"


class TestCorrelationId:
    def test_correlation_id_lifecycle(self):
        assert get_correlation_id() is None

        set_correlation_id("corr-1")
        assert get_correlation_id() == "corr-1"

        error = BaseError("Broken")
        assert error.context["correlation_id"] == "corr-1"
        assert error.to_dict()["error"]["correlation_id"] == "corr-1"

        clear_correlation_id()
        assert get_correlation_id() is None


class TestLayerErrors:
    def test_repository_error_defaults(self):
        error = RepositoryError("Database down")
        assert error.error_code == ErrorCode.DATABASE_ERROR
        assert error.status_code == 500

    def test_service_error_records_operation(self):
        error = ServiceError("Failed", operation="commit_change")
        assert error.context["operation"] == "commit_change"
        assert error.status_code == 500

    def test_validation_error_records_field(self):
        error = ValidationError("Bad hash", field="credential_hash")
        assert error.context["field"] == "credential_hash"
        assert error.status_code == 400
        assert error.error_code == ErrorCode.VALIDATION_FAILED

    def test_not_found_factory(self):
        error = not_found("Principal", principal_id="p-1")
        assert error.error_code == ErrorCode.NOT_FOUND
        assert error.status_code == 404
        assert error.message == "Principal not found: principal_id=p-1"

    def test_duplicate_factory(self):
        error = duplicate("Principal", login="alice")
        assert error.error_code == ErrorCode.DUPLICATE
        assert error.status_code == 409

    def test_error_is_logged_on_construction(self):
        with patch("credential_policy.utils.logger.get_logger") as get_logger:
            ValidationError("Bad hash", field="credential_hash")

        message = get_logger.return_value.warning.call_args.args[0]
        extra = get_logger.return_value.warning.call_args.kwargs["extra"]
        assert message == f"[{ErrorCode.VALIDATION_FAILED.value}] Bad hash"
        assert extra["details"]["field"] == "credential_hash"


class TestPolicyViolation:
    """Test the credential policy violation types."""

    @pytest.mark.parametrize(
        "reason,expected_class",
        [
            (PolicyViolationReason.WEAK_CREDENTIAL, WeakCredentialError),
            (PolicyViolationReason.CURRENT_MISMATCH, CurrentMismatchError),
            (PolicyViolationReason.RECENTLY_USED, RecentlyUsedError),
        ],
    )
    def test_for_reason_builds_matching_subclass(self, reason, expected_class):
        error = PolicyViolation.for_reason(reason, principal_id="p-1")

        assert isinstance(error, expected_class)
        assert isinstance(error, ValidationError)
        assert error.reason == reason
        assert error.context["reason"] == reason.value
        assert error.context["principal_id"] == "p-1"

    @pytest.mark.parametrize("reason", list(PolicyViolationReason))
    def test_message_is_uniform(self, reason):
        error = PolicyViolation.for_reason(reason)

        assert error.message == POLICY_VIOLATION_MESSAGE
        assert error.error_code == ErrorCode.POLICY_VIOLATION
        assert error.status_code == 400

    def test_subclasses_can_be_caught_by_reason(self):
        with pytest.raises(RecentlyUsedError):
            raise PolicyViolation.for_reason(PolicyViolationReason.RECENTLY_USED)


class TestCredentialErrors:
    def test_credential_expired_error(self):
        error = CredentialExpiredError(principal_id="p-1")
        assert error.error_code == ErrorCode.EXPIRED
        assert error.status_code == 401
        assert error.message == "Credential has expired"

    def test_tenant_isolation_violation_error(self):
        error = TenantIsolationViolationError(tenant_id="t-1")
        assert error.error_code == ErrorCode.PERMISSION_DENIED
        assert error.status_code == 403
