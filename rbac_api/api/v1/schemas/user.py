from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from rbac_api.api.v1.schemas.common import NormalizedEmail
from rbac_api.api.v1.schemas.permission import Permission


class UserBase(BaseModel):
    email: NormalizedEmail
    name: str = Field(..., min_length=2, max_length=255)
    phone: Optional[str] = None
    company: Optional[str] = Field(None, max_length=255)


class UserCreate(UserBase):
    password: str = Field(..., min_length=6)
    roles: Optional[List[str]] = None


class UserUpdate(BaseModel):
    email: Optional[NormalizedEmail] = None
    name: Optional[str] = Field(None, min_length=2, max_length=255)
    phone: Optional[str] = None
    company: Optional[str] = Field(None, max_length=255)


class ProfileUpdate(BaseModel):
    """Fields a user may change on their own profile. Anything else is ignored."""

    name: Optional[str] = Field(None, min_length=2, max_length=255)
    phone: Optional[str] = None
    company: Optional[str] = Field(None, max_length=255)

    model_config = {"extra": "ignore"}


class User(BaseModel):
    id: str
    email: str
    name: str
    phone: Optional[str] = None
    company: Optional[str] = None
    roles: List[str] = []
    created_at: datetime
    updated_at: datetime

    model_config = {
        "from_attributes": True
    }


class UserList(BaseModel):
    users: List[User]
    total: int
    page: int
    limit: int
    total_pages: int


class UpdateRolesRequest(BaseModel):
    roles: List[str] = Field(..., min_length=1)


class AssignRoleRequest(BaseModel):
    role: str = Field(..., min_length=1)
    expires_at: Optional[datetime] = None


class RoleAssignment(BaseModel):
    role: str
    granted_at: datetime
    granted_by: Optional[str] = None
    expires_at: Optional[datetime] = None


class UserPermissions(BaseModel):
    user_id: str
    roles: List[str]
    permissions: List[Permission]


class PermissionCheck(BaseModel):
    user_id: str
    permission: str
    has_permission: bool
