from datetime import datetime
from typing import Optional

from sqlalchemy import Column, ForeignKey, String, TIMESTAMP
from sqlalchemy.orm import relationship
from rbac_api.core.db import Base, as_utc, utcnow


class UserRole(Base):
    """Assignment of a role to a user, with its audit trail."""

    __tablename__ = "user_roles"

    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True, index=True)
    role_id = Column(String(36), ForeignKey("roles.id", ondelete="CASCADE"), primary_key=True, index=True)
    granted_at = Column(TIMESTAMP(timezone=True), default=utcnow, nullable=False)
    granted_by = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    expires_at = Column(TIMESTAMP(timezone=True), nullable=True)

    user = relationship("User", foreign_keys=[user_id], back_populates="role_assignments")
    role = relationship("Role", back_populates="assignments", lazy="selectin")

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        if self.expires_at is None:
            return False
        return as_utc(self.expires_at) <= (now or utcnow())

    def is_active(self, now: Optional[datetime] = None) -> bool:
        return not self.is_expired(now)
