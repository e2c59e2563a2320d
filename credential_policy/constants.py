"""
Constants and enums for the credential policy engine.

This module centralizes magic strings and policy defaults used throughout
the package to ensure consistency and maintainability.
"""

from enum import Enum


class LogLevel(str, Enum):
    """Standard logging levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class EnvironmentVariable(str, Enum):
    """Standard environment variable names."""

    AZURE_STORAGE_CONNECTION = "AzureWebJobsStorage"
    DATABASE_URL = "DATABASE_URL"
    LOG_LEVEL = "LOG_LEVEL"
    CREDENTIAL_HISTORY_LIMIT = "CREDENTIAL_HISTORY_LIMIT"
    CREDENTIAL_EXPIRATION_DAYS = "CREDENTIAL_EXPIRATION_DAYS"
    BCRYPT_ROUNDS = "BCRYPT_ROUNDS"


class QueueName(str, Enum):
    """Queue names used by the optional log shipping handler."""

    LOGS = "logs-queue"


# Policy defaults
class PolicyDefaults:
    """Default policy parameters."""

    HISTORY_LIMIT = 5
    EXPIRATION_DAYS = 90
    MIN_LENGTH = 5
    SPECIAL_CHARACTERS = "!@#$%^&*()_+-=[]{};':\"\\|,.<>/?"


class HashDefaults:
    """Secure hash parameters."""

    BCRYPT_ROUNDS = 12
    MIN_BCRYPT_ROUNDS = 4
    MAX_BCRYPT_ROUNDS = 31
    HASH_LENGTH = 60
