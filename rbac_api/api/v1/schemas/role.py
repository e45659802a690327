from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from rbac_api.api.v1.schemas.permission import Permission


class RoleCreate(BaseModel):
    name: str = Field(..., min_length=2, max_length=50)
    description: Optional[str] = None


class RoleUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=2, max_length=50)
    description: Optional[str] = None


class Role(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    permissions: List[Permission] = []
    created_at: datetime
    updated_at: datetime

    model_config = {
        "from_attributes": True
    }


class RolePermissionsUpdate(BaseModel):
    permission_ids: List[str] = Field(..., min_length=1)


class RoleList(BaseModel):
    roles: List[Role]
