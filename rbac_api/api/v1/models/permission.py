from sqlalchemy import Column, Index, String, Text, TIMESTAMP
from rbac_api.core.db import Base, new_id, utcnow

# Permission every admin role must keep
ADMIN_ACCESS_PERMISSION = "admin.access"


class Permission(Base):
    __tablename__ = "permissions"
    __table_args__ = (Index("idx_permissions_resource_action", "resource", "action"),)

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String(100), nullable=False, unique=True, index=True)
    resource = Column(String(100), nullable=False)
    action = Column(String(50), nullable=False)
    description = Column(Text, nullable=True)
    created_at = Column(TIMESTAMP(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(TIMESTAMP(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)
