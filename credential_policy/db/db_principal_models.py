"""
Principal model.

The account whose credential is governed. Identity and authorization fields
belong to the surrounding user administration; the policy engine only writes
the two credential date columns.
"""

from sqlalchemy import Column, DateTime, Index, String
from sqlalchemy.orm import relationship

from .db_base import TimestampMixin, UUIDMixin
from .db_config import Base


class Principal(Base, UUIDMixin, TimestampMixin):
    """Simple principal model - just data, no logic."""

    __tablename__ = "principals"

    tenant_id = Column(String(100), nullable=False, index=True)
    login = Column(String(100), nullable=False)

    # Current credential, NULL until one is first committed
    password_hash = Column(String(60), nullable=True)
    password_changed_at = Column(DateTime(timezone=True), nullable=True)
    password_expires_at = Column(DateTime(timezone=True), nullable=True)

    credential_history = relationship(
        "CredentialHistory",
        back_populates="principal",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (Index("ix_principal_login", "tenant_id", "login", unique=True),)

    def __repr__(self):
        return f"<Principal id={self.id} tenant_id={self.tenant_id} login={self.login}>"
