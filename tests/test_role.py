import pytest
from fastapi import HTTPException, status
from unittest.mock import MagicMock
from sqlalchemy import select
import logging

from rbac_api.api.v1.models.role import Role as RoleModel
from rbac_api.api.v1.models.permission import Permission as PermissionModel
from rbac_api.api.v1.models.role_permission import RolePermission
from rbac_api.api.v1.schemas.role import RoleCreate, RoleUpdate
from rbac_api.api.v1.services.rbac import RBACService
from rbac_api.api.v1.services.role import RoleService

logging.basicConfig(level=logging.DEBUG)
logger = logging.getLogger(__name__)

ROLES_URL = "/api/v1/admin/roles"


async def role_id(db, name: str) -> str:
    return (await db.execute(select(RoleModel.id).where(RoleModel.name == name))).scalar_one()


async def permission_ids(db, *names: str) -> list:
    result = await db.execute(select(PermissionModel).where(PermissionModel.name.in_(names)))
    by_name = {p.name: p.id for p in result.scalars().all()}
    return [by_name[name] for name in names]


# --- Service-level tests with a mocked session ---

async def test_service_create_role_duplicate(mock_db):
    mock_result = MagicMock()
    mock_result.scalar_one_or_none.return_value = "existing-id"
    mock_db.execute.return_value = mock_result

    with pytest.raises(HTTPException) as exc_info:
        await RoleService.create_role(mock_db, RoleCreate(name="editor"))

    assert exc_info.value.status_code == status.HTTP_409_CONFLICT
    mock_db.add.assert_not_called()


async def test_service_delete_system_role(mock_db):
    mock_result = MagicMock()
    mock_result.scalar_one_or_none.return_value = RoleModel(id="r1", name="admin")
    mock_db.execute.return_value = mock_result

    with pytest.raises(HTTPException) as exc_info:
        await RoleService.delete_role(mock_db, "r1")

    assert exc_info.value.status_code == status.HTTP_400_BAD_REQUEST
    assert exc_info.value.detail == "Cannot delete system role: admin"
    mock_db.delete.assert_not_awaited()


async def test_service_rename_system_role(mock_db):
    mock_result = MagicMock()
    mock_result.scalar_one_or_none.return_value = RoleModel(id="r1", name="user")
    mock_db.execute.return_value = mock_result

    with pytest.raises(HTTPException) as exc_info:
        await RoleService.update_role(mock_db, "r1", RoleUpdate(name="member"))
    assert exc_info.value.detail == "Cannot rename system role: user"


# --- Admin API ---

async def test_list_roles(async_client, admin_user, auth_headers):
    response = await async_client.get(ROLES_URL, headers=auth_headers(admin_user))
    assert response.status_code == 200
    roles = {role["name"]: role for role in response.json()["roles"]}
    assert sorted(roles) == ["admin", "moderator", "premium", "user"]
    assert [p["name"] for p in roles["user"]["permissions"]] == ["profile.read", "profile.write"]
    assert len(roles["admin"]["permissions"]) == 11


async def test_roles_require_admin(async_client, regular_user, auth_headers):
    response = await async_client.get(ROLES_URL, headers=auth_headers(regular_user))
    assert response.status_code == 403
    assert response.json() == {"error": "Access denied: insufficient permissions"}


async def test_create_update_and_delete_role(async_client, admin_user, auth_headers):
    headers = auth_headers(admin_user)
    created = await async_client.post(ROLES_URL, json={"name": "editor", "description": "Edits"}, headers=headers)
    assert created.status_code == 201
    body = created.json()
    assert body["name"] == "editor"
    assert body["permissions"] == []

    updated = await async_client.put(
        f"{ROLES_URL}/{body['id']}", json={"description": "Edits content"}, headers=headers
    )
    assert updated.status_code == 200
    assert updated.json()["description"] == "Edits content"

    deleted = await async_client.delete(f"{ROLES_URL}/{body['id']}", headers=headers)
    assert deleted.status_code == 200
    assert deleted.json() == {"message": "Role deleted successfully"}

    missing = await async_client.get(f"{ROLES_URL}/{body['id']}", headers=headers)
    assert missing.status_code == 404
    assert missing.json() == {"error": "Role not found"}


async def test_create_duplicate_role(async_client, admin_user, auth_headers):
    response = await async_client.post(ROLES_URL, json={"name": "moderator"}, headers=auth_headers(admin_user))
    assert response.status_code == 409
    assert response.json() == {"error": "Role name already exists"}


async def test_create_role_name_too_short(async_client, admin_user, auth_headers):
    response = await async_client.post(ROLES_URL, json={"name": "x"}, headers=auth_headers(admin_user))
    assert response.status_code == 400


async def test_update_role_without_fields(async_client, admin_user, auth_headers, seeded_db):
    rid = await role_id(seeded_db, "premium")
    response = await async_client.put(f"{ROLES_URL}/{rid}", json={}, headers=auth_headers(admin_user))
    assert response.status_code == 400
    assert response.json() == {"error": "No fields to update"}


async def test_cannot_delete_system_role(async_client, admin_user, auth_headers, seeded_db):
    rid = await role_id(seeded_db, "user")
    response = await async_client.delete(f"{ROLES_URL}/{rid}", headers=auth_headers(admin_user))
    assert response.status_code == 400
    assert response.json() == {"error": "Cannot delete system role: user"}


async def test_deleting_role_revokes_it_from_users(async_client, admin_user, make_user, auth_headers, seeded_db):
    member = await make_user(email="member@example.com", roles=["user", "premium"])
    assert await RBACService.get_active_role_names(seeded_db, member.id) == ["premium", "user"]

    rid = await role_id(seeded_db, "premium")
    response = await async_client.delete(f"{ROLES_URL}/{rid}", headers=auth_headers(admin_user))
    assert response.status_code == 200

    assert await RBACService.get_active_role_names(seeded_db, member.id) == ["user"]
    assert "premium.access" not in await RBACService.get_user_permission_names(seeded_db, member.id)
    leftovers = (await seeded_db.execute(select(RolePermission).where(RolePermission.role_id == rid))).all()
    assert leftovers == []


async def test_get_role_permissions(async_client, admin_user, auth_headers, seeded_db):
    rid = await role_id(seeded_db, "premium")
    response = await async_client.get(f"{ROLES_URL}/{rid}/permissions", headers=auth_headers(admin_user))
    assert response.status_code == 200
    assert [p["name"] for p in response.json()["permissions"]] == [
        "premium.access", "profile.read", "profile.write",
    ]


async def test_replace_role_permissions(async_client, admin_user, make_user, auth_headers, seeded_db):
    member = await make_user(email="member@example.com", roles=["premium"])
    rid = await role_id(seeded_db, "premium")
    ids = await permission_ids(seeded_db, "premium.access", "users.read")

    response = await async_client.put(
        f"{ROLES_URL}/{rid}/permissions", json={"permission_ids": ids}, headers=auth_headers(admin_user)
    )
    assert response.status_code == 200
    assert [p["name"] for p in response.json()["permissions"]] == ["premium.access", "users.read"]
    assert await RBACService.get_user_permission_names(seeded_db, member.id) == ["premium.access", "users.read"]


async def test_replace_role_permissions_unknown_id(async_client, admin_user, auth_headers, seeded_db):
    rid = await role_id(seeded_db, "premium")
    response = await async_client.put(
        f"{ROLES_URL}/{rid}/permissions", json={"permission_ids": ["nope"]}, headers=auth_headers(admin_user)
    )
    assert response.status_code == 400
    assert response.json() == {"error": "permission not found: nope"}


async def test_admin_role_keeps_admin_access(async_client, admin_user, auth_headers, seeded_db):
    rid = await role_id(seeded_db, "admin")
    ids = await permission_ids(seeded_db, "users.read")
    response = await async_client.put(
        f"{ROLES_URL}/{rid}/permissions", json={"permission_ids": ids}, headers=auth_headers(admin_user)
    )
    assert response.status_code == 400
    assert response.json() == {"error": "Cannot remove admin.access permission from admin role"}
