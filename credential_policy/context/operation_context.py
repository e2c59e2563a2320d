"""
ENTER/EXIT/ERROR tracing for engine calls.

Each public engine call runs inside an operation: it gets an operation ID,
joins the thread's correlation ID (starting one if none is set) and is timed.
Call arguments are never logged because they carry plaintext credentials.
"""

import time
import uuid
from contextlib import contextmanager
from functools import wraps
from typing import Any, Callable, Dict, Iterator, Optional, TypeVar, Union, cast

from ..exceptions import BaseError, clear_correlation_id, get_correlation_id, set_correlation_id
from ..utils.logger import ContextAwareLogger, get_logger
from .tenant_context import TenantContext


class OperationContext:
    """Identity and timing of one traced call."""

    def __init__(self, name: str, correlation_id: Optional[str] = None, **context: Any):
        self.name = name
        self.operation_id = str(uuid.uuid4())

        inherited = correlation_id or get_correlation_id()
        self.starts_correlation = inherited is None
        self.correlation_id = inherited or str(uuid.uuid4())
        set_correlation_id(self.correlation_id)

        self.context = context
        self._started = time.perf_counter()

    @property
    def duration_ms(self) -> float:
        return (time.perf_counter() - self._started) * 1000

    def add_context(self, **kwargs: Any) -> None:
        self.context.update(kwargs)

    def fields(self, **more: Any) -> Dict[str, Any]:
        """Log fields for this operation, optionally extended."""
        return {
            **self.context,
            "operation_id": self.operation_id,
            "correlation_id": self.correlation_id,
            **more,
        }


class OperationHandler:
    """Logs the lifecycle of operations and tags errors raised inside them."""

    def __init__(self, logger: Optional[ContextAwareLogger] = None):
        self.logger = logger if logger is not None else get_logger()

    @contextmanager
    def operation(self, name: str, **context: Any) -> Iterator[OperationContext]:
        tenant_id = TenantContext.get_current_tenant_id()
        if tenant_id:
            context.setdefault("tenant_id", tenant_id)

        op = OperationContext(name, **context)
        self.logger.debug(f"ENTER: {name}", extra=op.fields())

        try:
            yield op
        except BaseError as e:
            e.add_context(operation_name=name, operation_id=op.operation_id)
            # The error already logged its details when it was built
            self.logger.info(
                f"ERROR: {name} -> {e.error_code.value}",
                extra=op.fields(
                    status="error",
                    duration_ms=op.duration_ms,
                    error_id=e.error_id,
                    error_code=e.error_code.value,
                ),
            )
            raise
        except Exception as e:
            self.logger.exception(
                f"ERROR: {name} -> {type(e).__name__}",
                extra=op.fields(
                    status="error", duration_ms=op.duration_ms, error_type=type(e).__name__
                ),
            )
            raise
        else:
            self.logger.debug(
                f"EXIT: {name}", extra=op.fields(status="success", duration_ms=op.duration_ms)
            )
        finally:
            if op.starts_correlation:
                clear_correlation_id()


F = TypeVar("F", bound=Callable[..., Any])


def operation(name: Union[Optional[str], Callable] = None):
    """
    Trace a function as an operation.

    Usable bare (``@operation``) or with a name (``@operation("credential.change")``).
    The default name is ``<module>.<qualname>``.
    """

    def decorator(func: F) -> F:
        label = name or f"{func.__module__.rsplit('.', 1)[-1]}.{func.__qualname__}"

        @wraps(func)
        def wrapper(*args, **kwargs):
            with OperationHandler().operation(label, source_module=func.__module__):
                return func(*args, **kwargs)

        return cast(F, wrapper)

    if callable(name):
        func, name = name, None
        return decorator(func)

    return decorator
