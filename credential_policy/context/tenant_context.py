"""
Active tenant for the calling thread.

Principals and history entries belong to a tenant. While a tenant is active,
store reads are limited to it and the engine refuses principals from other
tenants (see ``FeatureFlags.enable_tenant_isolation``).
"""

import threading
from contextlib import contextmanager
from typing import Iterator, Optional

from ..exceptions import ErrorCode, ValidationError
from ..utils.logger import get_logger


class TenantContext:
    """Thread-local holder of the active tenant ID."""

    _local = threading.local()

    @classmethod
    def set_current_tenant(cls, tenant_id: str) -> None:
        """
        Make ``tenant_id`` the active tenant of this thread.

        Raises:
            ValidationError: If tenant_id is not a non-blank string
        """
        cleaned = tenant_id.strip() if isinstance(tenant_id, str) else ""
        if not cleaned:
            raise ValidationError(
                "tenant_id must be a non-empty string",
                field="tenant_id",
                error_code=ErrorCode.MISSING_REQUIRED,
                value=repr(tenant_id),
            )

        cls._local.tenant_id = cleaned
        get_logger().debug("Tenant activated", extra={"active_tenant": cleaned})

    @classmethod
    def get_current_tenant_id(cls) -> Optional[str]:
        return getattr(cls._local, "tenant_id", None)

    @classmethod
    def clear_current_tenant(cls) -> None:
        cls._local.__dict__.pop("tenant_id", None)


@contextmanager
def tenant_context(tenant_id: str) -> Iterator[str]:
    """
    Run a block with ``tenant_id`` active, then put back whatever was active before.

    Usage:
        with tenant_context("acme"):
            service.commit_change(principal, new_hash)
    """
    outer = TenantContext.get_current_tenant_id()
    TenantContext.set_current_tenant(tenant_id)
    try:
        yield TenantContext.get_current_tenant_id()
    finally:
        if outer is None:
            TenantContext.clear_current_tenant()
        else:
            TenantContext.set_current_tenant(outer)
