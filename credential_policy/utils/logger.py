"""
Logging for the credential policy engine.

ContextAwareLogger folds the ``extra`` mapping into the console line as
``key=value`` pairs separated by pipes, so decisions read well in plain
output. When ``FeatureFlags.enable_logs_queue`` is on, a structured copy of
every record is shipped to an Azure Storage queue.
"""

import logging
import sys
import traceback
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union

from azure.core.exceptions import ResourceExistsError
from azure.storage.queue import QueueClient
from pydantic_core import to_json

from ..config import get_config
from ..constants import EnvironmentVariable, QueueName

PACKAGE_LOGGER = "credential_policy"

_function_logger: Optional["ContextAwareLogger"] = None

# Attributes every LogRecord has; anything else on a record came in through ``extra``
_RECORD_ATTRIBUTES = frozenset(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {
    "message",
    "asctime",
    "taskName",
}
_PROMOTED_FIELDS = ("tenant_id", "principal_id")


class ContextAwareLogger:
    """Wraps a stdlib logger and appends ``extra`` to the message text."""

    def __init__(self, logger: logging.Logger):
        self.logger = logger

    def _log_with_formatted_extra(self, level: str, msg: str, **kwargs):
        extra = kwargs.pop("extra", {})
        if extra:
            msg = " | ".join([msg] + [f"{key}={value}" for key, value in extra.items()])
        getattr(self.logger, level)(msg, extra=extra, **kwargs)

    def set_level(self, level):
        self.logger.setLevel(level)

    def debug(self, msg, **kwargs):
        self._log_with_formatted_extra("debug", msg, **kwargs)

    def info(self, msg, **kwargs):
        self._log_with_formatted_extra("info", msg, **kwargs)

    def warning(self, msg, **kwargs):
        self._log_with_formatted_extra("warning", msg, **kwargs)

    def error(self, msg, **kwargs):
        self._log_with_formatted_extra("error", msg, **kwargs)

    def exception(self, msg, **kwargs):
        self._log_with_formatted_extra("exception", msg, **kwargs)


class TenantContextFilter(logging.Filter):
    """Stamps the active tenant onto records that pass through."""

    def filter(self, record):
        from ..context.tenant_context import TenantContext

        tenant_id = TenantContext.get_current_tenant_id()
        if tenant_id:
            record.tenant_id = tenant_id
        return True


def build_queue_entry(record: logging.LogRecord) -> Dict[str, Any]:
    """
    Structured form of a record as shipped to the logs queue.

    ``tenant_id`` and ``principal_id`` are promoted to the top level; other
    ``extra`` values go under ``context``.
    """
    entry: Dict[str, Any] = {
        "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
        "level": record.levelname,
        "logger": record.name,
        "message": record.getMessage(),
        "location": f"{record.module}.{record.funcName}:{record.lineno}",
    }
    entry.update({f: getattr(record, f) for f in _PROMOTED_FIELDS if hasattr(record, f)})

    context = {
        key: value
        for key, value in vars(record).items()
        if key not in _RECORD_ATTRIBUTES and key not in _PROMOTED_FIELDS
    }
    if context:
        entry["context"] = context

    if record.exc_info and record.exc_info[0] is not None:
        exc_type, exc_value, exc_tb = record.exc_info
        entry["exception"] = {
            "type": exc_type.__name__,
            "message": str(exc_value),
            "traceback": traceback.format_exception(exc_type, exc_value, exc_tb),
        }

    return entry


class AzureQueueHandler(logging.Handler):
    """
    Buffers structured entries and sends one queue message per entry.

    The buffer is sent once ``batch_size`` entries are pending, and on flush
    or close. Delivery problems are reported on stderr and never raised into
    the code that logged.
    """

    def __init__(
        self,
        queue_name: str = QueueName.LOGS.value,
        connection_string: Optional[str] = None,
        batch_size: int = 10,
    ):
        super().__init__()
        self.queue_name = queue_name
        self.connection_string = connection_string or get_config().queue.connection_string or None
        self.batch_size = batch_size
        self.pending: List[Dict[str, Any]] = []
        self.queue_client: Optional[QueueClient] = None

        if self.connection_string:
            self.queue_client = QueueClient.from_connection_string(
                conn_str=self.connection_string, queue_name=self.queue_name
            )
            self._create_queue()
        else:
            sys.stderr.write(
                f"{EnvironmentVariable.AZURE_STORAGE_CONNECTION.value} is not set; "
                "log entries stay buffered\n"
            )

    def _create_queue(self) -> None:
        try:
            self.queue_client.create_queue()
        except ResourceExistsError:
            pass
        except Exception as e:
            sys.stderr.write(f"Could not create log queue '{self.queue_name}': {e}\n")

    def emit(self, record: logging.LogRecord) -> None:
        try:
            self.pending.append(build_queue_entry(record))
        except Exception:
            self.handleError(record)
            return

        if len(self.pending) >= self.batch_size:
            self.flush()

    def flush(self) -> None:
        if self.queue_client is None or not self.pending:
            return

        batch, self.pending = self.pending, []
        for entry in batch:
            try:
                self.queue_client.send_message(to_json(entry, fallback=str).decode("utf-8"))
            except Exception as e:
                sys.stderr.write(f"Dropped log entry for queue '{self.queue_name}': {e}\n")

    def close(self) -> None:
        self.flush()
        super().close()


def _as_level(level: Union[int, str]) -> int:
    if isinstance(level, str):
        return getattr(logging, level.upper(), logging.INFO)
    return level


def configure_logging(
    component_name: str,
    log_level: Optional[Union[int, str]] = None,
    enable_queue: Optional[bool] = None,
    queue_name: Optional[str] = None,
    queue_batch_size: int = 10,
    connection_string: Optional[str] = None,
) -> ContextAwareLogger:
    """
    Set up ``credential_policy.<component_name>`` and make it the package logger.

    Unset arguments fall back to ``AppConfig``: the level to ``logging.level``,
    queue shipping to ``features.enable_logs_queue`` and the queue settings to
    ``queue``. Handlers from an earlier call are replaced.
    """
    global _function_logger

    settings = get_config()
    level = _as_level(log_level if log_level is not None else settings.logging.level)
    if enable_queue is None:
        enable_queue = settings.features.enable_logs_queue

    logger = logging.getLogger(f"{PACKAGE_LOGGER}.{component_name}")
    logger.setLevel(level)
    for stale in list(logger.handlers):
        logger.removeHandler(stale)

    tenant_filter = TenantContextFilter()
    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(logging.Formatter("%(message)s"))
    handlers: List[logging.Handler] = [console]

    if enable_queue:
        queue_name = queue_name or settings.queue.logs_queue_name
        handlers.append(
            AzureQueueHandler(
                queue_name=queue_name,
                connection_string=connection_string or settings.queue.connection_string,
                batch_size=queue_batch_size,
            )
        )

    for handler in handlers:
        handler.setLevel(level)
        handler.addFilter(tenant_filter)
        logger.addHandler(handler)

    _function_logger = ContextAwareLogger(logger)
    _function_logger.info(
        "Logger configured",
        extra={"component_name": component_name, "queue_name": queue_name if enable_queue else None},
    )
    return _function_logger


def get_logger(log_level: Optional[Union[int, str]] = None) -> ContextAwareLogger:
    """
    Return the logger installed by configure_logging, or the package logger.

    The package logger's level comes from ``log_level`` or ``AppConfig.logging``.
    """
    if _function_logger is not None:
        return _function_logger

    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(_as_level(log_level if log_level is not None else get_config().logging.level))
    return ContextAwareLogger(logger)
