from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, EmailStr, Field


class TemplateVariable(BaseModel):
    name: str = Field(..., min_length=1)
    description: str = ""


class EmailTemplateCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    subject: str = Field(..., min_length=1, max_length=500)
    html_template: str = Field(..., min_length=1)
    text_template: str = Field(..., min_length=1)
    variables: List[TemplateVariable] = []
    is_active: bool = True


class EmailTemplateUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    subject: Optional[str] = Field(None, min_length=1, max_length=500)
    html_template: Optional[str] = Field(None, min_length=1)
    text_template: Optional[str] = Field(None, min_length=1)
    variables: Optional[List[TemplateVariable]] = None
    is_active: Optional[bool] = None


class EmailTemplateSummary(BaseModel):
    id: str
    name: str
    subject: str
    variables: List[TemplateVariable] = []
    is_active: bool
    created_at: datetime
    updated_at: datetime

    model_config = {
        "from_attributes": True
    }


class EmailTemplate(EmailTemplateSummary):
    html_template: str
    text_template: str


class PreviewRequest(BaseModel):
    variables: Dict[str, str] = {}


class PreviewResponse(BaseModel):
    subject: str
    html_content: str
    text_content: str


class SendTestEmailRequest(BaseModel):
    email: EmailStr
    variables: Dict[str, str] = {}


class TemplateVariables(BaseModel):
    variables: List[TemplateVariable]


class EmailTemplateList(BaseModel):
    templates: List[EmailTemplateSummary]
