"""
Pydantic schemas for credential history entries.

History entries are immutable once written, so the read schema is frozen.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..db.db_base import ensure_utc


class CredentialHistoryRead(BaseModel):
    """A previously accepted credential hash for a principal."""

    id: str
    tenant_id: str
    principal_id: str
    credential_hash: str = Field(repr=False)
    created_at: datetime

    model_config = ConfigDict(from_attributes=True, frozen=True)

    @field_validator("created_at")
    @classmethod
    def normalize_created_at(cls, v: datetime) -> datetime:
        """Timestamps are always reported in UTC."""
        return ensure_utc(v)
