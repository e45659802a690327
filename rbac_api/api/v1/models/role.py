from sqlalchemy import Column, String, Text, TIMESTAMP
from sqlalchemy.orm import relationship
from rbac_api.core.db import Base, new_id, utcnow

# Roles that the application itself depends on
SYSTEM_ROLES = ("admin", "user")
ADMIN_ROLE = "admin"
DEFAULT_ROLE = "user"


class Role(Base):
    __tablename__ = "roles"

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String(50), nullable=False, unique=True, index=True)
    description = Column(Text, nullable=True)
    created_at = Column(TIMESTAMP(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(TIMESTAMP(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    # Read side of role_permissions; writes go through RolePermission rows
    permissions = relationship(
        "Permission",
        secondary="role_permissions",
        lazy="selectin",
        order_by="Permission.name",
        viewonly=True,
    )
    assignments = relationship(
        "UserRole",
        back_populates="role",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
