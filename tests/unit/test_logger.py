"""
Unit tests for logger utilities.

Tests the logging infrastructure including ContextAwareLogger and AzureQueueHandler.
Azure Storage clients are mocked; nothing leaves the process.
"""

import json
import logging
import sys
from unittest.mock import Mock, patch

import pytest
from azure.core.exceptions import ResourceExistsError

from credential_policy.config import reset_config
from credential_policy.context.tenant_context import tenant_context
from credential_policy.utils import logger as logger_module
from credential_policy.utils.logger import (
    AzureQueueHandler,
    ContextAwareLogger,
    TenantContextFilter,
    build_queue_entry,
    configure_logging,
    get_logger,
)


@pytest.fixture(autouse=True)
def reset_function_logger():
    """configure_logging installs a process-wide logger; undo it after each test."""
    logger_module._function_logger = None
    yield
    logger_module._function_logger = None

    for name in ("credential_policy.policy", "credential_policy.audit"):
        configured = logging.getLogger(name)
        for handler in configured.handlers[:]:
            if isinstance(handler, AzureQueueHandler):
                handler.pending.clear()
            configured.removeHandler(handler)


def _record(msg="Test message", level=logging.INFO, **attrs) -> logging.LogRecord:
    record = logging.LogRecord(
        name="credential_policy.test",
        level=level,
        pathname=__file__,
        lineno=10,
        msg=msg,
        args=(),
        exc_info=None,
    )
    for key, value in attrs.items():
        setattr(record, key, value)
    return record


class TestContextAwareLogger:
    """Test ContextAwareLogger functionality."""

    def setup_method(self):
        """Set up test fixtures."""
        self.mock_logger = Mock(spec=logging.Logger)
        self.context_logger = ContextAwareLogger(self.mock_logger)

    def test_set_level(self):
        self.context_logger.set_level(logging.DEBUG)
        self.mock_logger.setLevel.assert_called_once_with(logging.DEBUG)

    def test_log_without_extras(self):
        self.context_logger._log_with_formatted_extra("info", "Test message")
        self.mock_logger.info.assert_called_once_with("Test message", extra={})

    def test_log_with_extras(self):
        """Extras are folded into the message and still passed through."""
        extra_data = {"principal_id": "p-1", "reason": "RECENTLY_USED"}
        self.context_logger.warning("Credential change rejected", extra=extra_data)

        expected_message = "Credential change rejected | principal_id=p-1 | reason=RECENTLY_USED"
        self.mock_logger.warning.assert_called_once_with(expected_message, extra=extra_data)

    @pytest.mark.parametrize("level", ["info", "error", "warning", "debug", "exception"])
    def test_level_methods_delegate(self, level):
        getattr(self.context_logger, level)("msg", extra={"k": "v"})
        getattr(self.mock_logger, level).assert_called_once_with("msg | k=v", extra={"k": "v"})

    def test_exc_info_is_forwarded(self):
        error = RuntimeError("boom")
        self.context_logger.error("Failed", exc_info=error)
        self.mock_logger.error.assert_called_once_with("Failed", extra={}, exc_info=error)


class TestTenantContextFilter:
    def test_adds_tenant_id_when_in_context(self):
        record = _record()
        with tenant_context("tenant-a"):
            assert TenantContextFilter().filter(record) is True
        assert record.tenant_id == "tenant-a"

    def test_leaves_record_untouched_without_tenant(self):
        record = _record()
        assert TenantContextFilter().filter(record) is True
        assert not hasattr(record, "tenant_id")


class TestBuildQueueEntry:
    def test_promotes_tenant_and_principal(self):
        entry = build_queue_entry(
            _record("Credential change committed", tenant_id="t-1", principal_id="p-1", deleted_count=2)
        )

        assert entry["level"] == "INFO"
        assert entry["message"] == "Credential change committed"
        assert entry["tenant_id"] == "t-1"
        assert entry["principal_id"] == "p-1"
        assert entry["context"] == {"deleted_count": 2}

    def test_plain_record_has_no_context(self):
        assert "context" not in build_queue_entry(_record())

    def test_includes_exception(self):
        try:
            raise ValueError("bad hash")
        except ValueError:
            record = _record(level=logging.ERROR)
            record.exc_info = sys.exc_info()

        entry = build_queue_entry(record)
        assert entry["exception"]["type"] == "ValueError"
        assert entry["exception"]["message"] == "bad hash"


class TestAzureQueueHandler:
    """Test AzureQueueHandler with a mocked queue client."""

    @pytest.fixture
    def queue_client(self):
        with patch.object(logger_module, "QueueClient") as mock_queue_client:
            yield mock_queue_client.from_connection_string.return_value

    def test_without_connection_string_does_not_touch_azure(self, monkeypatch):
        monkeypatch.delenv("AzureWebJobsStorage", raising=False)
        reset_config()
        with patch.object(logger_module, "QueueClient") as mock_queue_client:
            handler = AzureQueueHandler()

        assert handler.connection_string is None
        mock_queue_client.from_connection_string.assert_not_called()

        # Nothing to send without a connection
        handler.emit(_record())
        handler.flush()
        assert len(handler.pending) == 1

    def test_creates_queue(self, queue_client):
        AzureQueueHandler(queue_name="audit-logs", connection_string="UseDevelopmentStorage=true")

        logger_module.QueueClient.from_connection_string.assert_called_once_with(
            conn_str="UseDevelopmentStorage=true", queue_name="audit-logs"
        )
        queue_client.create_queue.assert_called_once_with()

    def test_existing_queue_is_accepted(self, queue_client, capsys):
        queue_client.create_queue.side_effect = ResourceExistsError("exists")

        handler = AzureQueueHandler(connection_string="UseDevelopmentStorage=true")

        assert handler.queue_client is queue_client
        assert capsys.readouterr().err == ""

    def test_flushes_when_batch_is_full(self, queue_client):
        handler = AzureQueueHandler(connection_string="UseDevelopmentStorage=true", batch_size=2)

        handler.emit(_record("first"))
        queue_client.send_message.assert_not_called()

        handler.emit(_record("second"))

        assert queue_client.send_message.call_count == 2
        sent = json.loads(queue_client.send_message.call_args_list[0].args[0])
        assert sent["message"] == "first"
        assert handler.pending == []

    def test_close_flushes_remaining_entries(self, queue_client):
        handler = AzureQueueHandler(connection_string="UseDevelopmentStorage=true")

        handler.emit(_record())
        handler.close()

        queue_client.send_message.assert_called_once()

    def test_send_failure_is_reported_not_raised(self, queue_client, capsys):
        queue_client.send_message.side_effect = RuntimeError("network down")
        handler = AzureQueueHandler(connection_string="UseDevelopmentStorage=true")

        handler.emit(_record())
        handler.flush()

        assert "Dropped log entry" in capsys.readouterr().err
        assert handler.pending == []


class TestConfigureLogging:
    """Test configure_logging and get_logger."""

    def test_console_only(self):
        wrapped = configure_logging("policy", log_level="DEBUG", enable_queue=False)

        assert isinstance(wrapped, ContextAwareLogger)
        assert wrapped.logger.name == "credential_policy.policy"
        assert wrapped.logger.level == logging.DEBUG
        assert not any(isinstance(h, AzureQueueHandler) for h in wrapped.logger.handlers)
        assert get_logger() is wrapped

    def test_with_queue_handler(self):
        with patch.object(logger_module, "QueueClient"):
            wrapped = configure_logging(
                "audit",
                log_level=logging.INFO,
                enable_queue=True,
                queue_name="audit-logs",
                connection_string="UseDevelopmentStorage=true",
            )

        queue_handlers = [h for h in wrapped.logger.handlers if isinstance(h, AzureQueueHandler)]
        assert len(queue_handlers) == 1
        assert queue_handlers[0].queue_name == "audit-logs"

    def test_reconfiguring_replaces_handlers(self):
        configure_logging("policy", enable_queue=False)
        wrapped = configure_logging("policy", enable_queue=False)
        assert len(wrapped.logger.handlers) == 1

    def test_get_logger_falls_back_to_package_logger(self):
        wrapped = get_logger(log_level="WARNING")
        assert wrapped.logger.name == "credential_policy"
        assert wrapped.logger.level == logging.WARNING
