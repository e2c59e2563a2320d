"""
Pydantic schemas describing the credential side of a principal.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, field_validator

from ..db.db_base import ensure_utc
from ..enums import CredentialState


class CredentialDates(BaseModel):
    """Timestamps computed when a credential change is accepted."""

    changed_at: datetime
    expires_at: datetime

    model_config = ConfigDict(frozen=True)


class PrincipalCredentialStatus(BaseModel):
    """
    Snapshot of a principal's credential lifecycle.
    """

    principal_id: Optional[str] = None
    state: CredentialState
    changed_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None
    days_until_expiry: Optional[int] = None

    model_config = ConfigDict(frozen=True)

    @field_validator("changed_at", "expires_at")
    @classmethod
    def normalize_timestamps(cls, v: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(v)
