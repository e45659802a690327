from sqlalchemy import Boolean, Column, JSON, String, Text, TIMESTAMP
from rbac_api.core.db import Base, new_id, utcnow


class EmailTemplate(Base):
    __tablename__ = "email_templates"

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String(100), nullable=False, unique=True, index=True)
    subject = Column(String(500), nullable=False)
    html_template = Column(Text, nullable=False)
    text_template = Column(Text, nullable=False)
    variables = Column(JSON, nullable=False, default=list)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(TIMESTAMP(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(TIMESTAMP(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    def get_available_variables(self) -> list[str]:
        return [variable["name"] for variable in self.variables or []]

    def has_variable(self, name: str) -> bool:
        return name in self.get_available_variables()
