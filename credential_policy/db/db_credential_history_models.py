"""
Credential history model.

One row per accepted credential change. Rows are inserted once and only ever
removed in bulk, never updated.
"""

from sqlalchemy import Column, DateTime, ForeignKey, Index, String
from sqlalchemy.orm import relationship

from ..constants import HashDefaults
from .db_base import UUIDMixin, utc_now
from .db_config import Base


class CredentialHistory(Base, UUIDMixin):
    """Simple credential history model - just data, no logic."""

    __tablename__ = "credential_history"

    tenant_id = Column(String(100), nullable=False, index=True)
    principal_id = Column(
        String(36), ForeignKey("principals.id", ondelete="CASCADE"), nullable=False
    )
    credential_hash = Column(String(HashDefaults.HASH_LENGTH), nullable=False)
    created_at = Column(DateTime(timezone=True), default=utc_now, nullable=False)

    principal = relationship("Principal", back_populates="credential_history")

    # Recency lookups are always per principal, newest first
    __table_args__ = (Index("ix_credential_history_recency", "principal_id", "created_at"),)

    def __repr__(self):
        return f"<CredentialHistory principal_id={self.principal_id} created_at={self.created_at}>"
