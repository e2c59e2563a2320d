"""
Configuration for the credential policy engine.

Every section is a Pydantic model whose defaults come from the environment,
grouped under ``AppConfig``. Policy parameters are handed to the engine when
it is built, so separate engines can run with separate limits.
"""

import os
from datetime import timedelta
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from .constants import EnvironmentVariable, HashDefaults, LogLevel, PolicyDefaults, QueueName


def _env(name: EnvironmentVariable, default: str) -> str:
    return os.getenv(name.value, default)


def _env_int(name: EnvironmentVariable, default: int) -> int:
    return int(_env(name, str(default)))


class DatabaseConfig(BaseModel):
    """Where the principal and history tables live."""

    connection_string: str = Field(
        default_factory=lambda: _env(
            EnvironmentVariable.DATABASE_URL, "sqlite:///./credential_policy.db"
        ),
        description="SQLAlchemy URL, e.g. postgresql://user:pw@host/db or sqlite:///:memory:",
    )
    pool_size: int = Field(default=5, ge=1, description="Connection pool size (server databases)")
    max_overflow: int = Field(default=10, ge=0, description="Connections allowed past pool_size")
    pool_timeout: int = Field(default=30, ge=1, description="Seconds to wait for a pooled connection")
    echo: bool = Field(default=False, description="Echo SQL statements")
    development_mode: bool = Field(
        default=False, description="Allow DatabaseManager.drop_tables()"
    )


class QueueConfig(BaseModel):
    """Azure Storage queue used when log shipping is switched on."""

    connection_string: str = Field(
        default_factory=lambda: _env(EnvironmentVariable.AZURE_STORAGE_CONNECTION, ""),
        description="Azure Storage connection string",
    )
    logs_queue_name: str = Field(default=QueueName.LOGS.value, description="Log queue name")


class LoggingConfig(BaseModel):
    level: str = Field(
        default_factory=lambda: _env(EnvironmentVariable.LOG_LEVEL, LogLevel.INFO.value),
        description="Level for the credential_policy loggers",
    )

    @field_validator("level")
    def normalise_level(cls, v: str) -> str:
        known = [level.value for level in LogLevel]
        if v.upper() not in known:
            raise ValueError(f"Invalid log level: {v}. Expected one of {', '.join(known)}")
        return v.upper()


class FeatureFlags(BaseModel):
    enable_logs_queue: bool = Field(
        default=False, description="Ship structured log entries to the logs queue"
    )
    enable_tenant_isolation: bool = Field(
        default=True,
        description="Reject principals outside the active tenant and scope store reads to it",
    )


class PolicyConfig(BaseModel):
    """Limits applied by the credential policy engine."""

    history_limit: int = Field(
        default_factory=lambda: _env_int(
            EnvironmentVariable.CREDENTIAL_HISTORY_LIMIT, PolicyDefaults.HISTORY_LIMIT
        ),
        ge=1,
        description="Number of previous credentials checked for reuse",
    )
    expiration_days: int = Field(
        default_factory=lambda: _env_int(
            EnvironmentVariable.CREDENTIAL_EXPIRATION_DAYS, PolicyDefaults.EXPIRATION_DAYS
        ),
        ge=1,
        description="Days a credential stays valid after it is changed",
    )
    min_length: int = Field(
        default=PolicyDefaults.MIN_LENGTH,
        ge=0,
        description="Candidates shorter than this bypass the composition rules",
    )
    special_characters: str = Field(
        default=PolicyDefaults.SPECIAL_CHARACTERS,
        min_length=1,
        description="Characters counted as specials by the strength predicate",
    )

    @property
    def expiration_window(self) -> timedelta:
        return timedelta(days=self.expiration_days)


class SecurityConfig(BaseModel):
    """Parameters of the secure verifier."""

    bcrypt_rounds: int = Field(
        default_factory=lambda: _env_int(
            EnvironmentVariable.BCRYPT_ROUNDS, HashDefaults.BCRYPT_ROUNDS
        ),
        ge=HashDefaults.MIN_BCRYPT_ROUNDS,
        le=HashDefaults.MAX_BCRYPT_ROUNDS,
        description="bcrypt work factor",
    )
    hash_length: int = Field(
        default=HashDefaults.HASH_LENGTH, description="Fixed length of stored credential hashes"
    )


class AppConfig(BaseModel):
    """All configuration sections of the engine."""

    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    queue: QueueConfig = Field(default_factory=QueueConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    features: FeatureFlags = Field(default_factory=FeatureFlags)
    policy: PolicyConfig = Field(default_factory=PolicyConfig)
    security: SecurityConfig = Field(default_factory=SecurityConfig)

    @classmethod
    def from_env(cls) -> "AppConfig":
        """Build every section from the current environment."""
        return cls()


_config: Optional[AppConfig] = None


def get_config() -> AppConfig:
    """Return the process-wide configuration, loading it on first use."""
    global _config
    if _config is None:
        _config = AppConfig.from_env()
    return _config


def set_config(config: AppConfig) -> None:
    global _config
    _config = config


def reset_config() -> None:
    """Forget the process-wide configuration so the next read reloads it."""
    global _config
    _config = None
