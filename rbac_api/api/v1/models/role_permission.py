from sqlalchemy import Column, ForeignKey, String, TIMESTAMP
from rbac_api.core.db import Base, utcnow


class RolePermission(Base):
    __tablename__ = "role_permissions"

    role_id = Column(String(36), ForeignKey("roles.id", ondelete="CASCADE"), primary_key=True, index=True)
    permission_id = Column(String(36), ForeignKey("permissions.id", ondelete="CASCADE"), primary_key=True, index=True)
    created_at = Column(TIMESTAMP(timezone=True), default=utcnow, nullable=False)
