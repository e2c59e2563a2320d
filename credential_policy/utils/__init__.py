"""Utility modules for the credential policy engine."""

from .hashing import BcryptCredentialHasher, CredentialHasher
from .logger import (
    AzureQueueHandler,
    ContextAwareLogger,
    TenantContextFilter,
    build_queue_entry,
    configure_logging,
    get_logger,
)

__all__ = [
    # Hashing
    "CredentialHasher",
    "BcryptCredentialHasher",
    # Logging
    "AzureQueueHandler",
    "ContextAwareLogger",
    "TenantContextFilter",
    "build_queue_entry",
    "configure_logging",
    "get_logger",
]
