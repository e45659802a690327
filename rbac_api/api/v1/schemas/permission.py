from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class PermissionCreate(BaseModel):
    name: str = Field(..., min_length=3, max_length=100)
    resource: str = Field(..., min_length=2, max_length=100)
    action: str = Field(..., min_length=2, max_length=50)
    description: Optional[str] = None


class PermissionUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=3, max_length=100)
    resource: Optional[str] = Field(None, min_length=2, max_length=100)
    action: Optional[str] = Field(None, min_length=2, max_length=50)
    description: Optional[str] = None


class Permission(BaseModel):
    id: str
    name: str
    resource: str
    action: str
    description: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = {
        "from_attributes": True
    }


class PermissionList(BaseModel):
    permissions: List[Permission]
