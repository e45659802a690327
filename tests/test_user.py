import pytest
from fastapi import HTTPException, status
from unittest.mock import MagicMock
from sqlalchemy import select
import logging

from rbac_api.api.v1.models.user import User as UserModel
from rbac_api.api.v1.models.user_role import UserRole
from rbac_api.api.v1.schemas.user import UserCreate, UserUpdate
from rbac_api.api.v1.services.user import UserService

logging.basicConfig(level=logging.DEBUG)
logger = logging.getLogger(__name__)

USERS_URL = "/api/v1/admin/users"


def mock_execute_result_factory(scalar_one_or_none_value=None, scalars_all_value=None):
    """
    Returns a MagicMock object that mimics the result of await db.execute().
    """
    mock_result_obj = MagicMock()
    mock_scalars_obj = MagicMock()
    mock_scalars_obj.all.return_value = scalars_all_value if scalars_all_value is not None else []
    mock_result_obj.scalars.return_value = mock_scalars_obj
    mock_result_obj.scalar_one_or_none.return_value = scalar_one_or_none_value
    return mock_result_obj


# --- Service-level tests with a mocked session ---

async def test_service_create_user_duplicate_email(mock_db):
    mock_db.execute.side_effect = [mock_execute_result_factory(scalar_one_or_none_value="existing-id")]
    user_in = UserCreate(email="taken@example.com", password="secret123", name="Taken")

    with pytest.raises(HTTPException) as exc_info:
        await UserService.create_user(mock_db, user_in)

    assert exc_info.value.status_code == status.HTTP_409_CONFLICT
    assert exc_info.value.detail == "Email already exists"
    mock_db.add.assert_not_called()
    mock_db.commit.assert_not_awaited()


async def test_service_create_user_unknown_role(mock_db):
    mock_db.execute.side_effect = [
        mock_execute_result_factory(scalar_one_or_none_value=None),  # email is free
        mock_execute_result_factory(scalars_all_value=[]),  # no matching roles
    ]
    user_in = UserCreate(email="new@example.com", password="secret123", name="New", roles=["ghost"])

    with pytest.raises(HTTPException) as exc_info:
        await UserService.create_user(mock_db, user_in)

    assert exc_info.value.status_code == status.HTTP_400_BAD_REQUEST
    assert exc_info.value.detail == "role not found: ghost"


async def test_service_update_user_not_found(mock_db):
    mock_db.execute.return_value = mock_execute_result_factory(scalar_one_or_none_value=None)

    with pytest.raises(HTTPException) as exc_info:
        await UserService.update_user(mock_db, "missing", UserUpdate(name="Someone"))
    assert exc_info.value.status_code == status.HTTP_404_NOT_FOUND


async def test_service_update_user_requires_fields(mock_db):
    mock_db.execute.return_value = mock_execute_result_factory(
        scalar_one_or_none_value=UserModel(id="u1", email="a@example.com", name="A user", password="x")
    )
    with pytest.raises(HTTPException) as exc_info:
        await UserService.update_user(mock_db, "u1", UserUpdate())
    assert exc_info.value.status_code == status.HTTP_400_BAD_REQUEST
    assert exc_info.value.detail == "No fields to update"


async def test_service_delete_self_rejected(mock_db):
    with pytest.raises(HTTPException) as exc_info:
        await UserService.delete_user(mock_db, "me", acting_user_id="me")
    assert exc_info.value.detail == "Cannot delete yourself"
    mock_db.execute.assert_not_awaited()


def test_total_pages():
    assert UserService.total_pages(0, 20) == 0
    assert UserService.total_pages(20, 20) == 1
    assert UserService.total_pages(21, 20) == 2


# --- Admin API ---

async def test_admin_endpoints_require_admin(async_client, regular_user, auth_headers):
    response = await async_client.get(USERS_URL, headers=auth_headers(regular_user))
    assert response.status_code == 403

    response = await async_client.get(USERS_URL)
    assert response.status_code == 401


async def test_list_users_paginated(async_client, admin_user, make_user, auth_headers):
    for i in range(5):
        await make_user(email=f"member{i}@example.com", name=f"Member {i}")

    response = await async_client.get(
        USERS_URL, params={"page": 2, "limit": 2, "sort_by": "email", "sort_desc": "false"},
        headers=auth_headers(admin_user),
    )
    assert response.status_code == 200
    body = response.json()
    logger.debug(f"Page body: {body}")
    assert body["total"] == 6
    assert body["page"] == 2
    assert body["limit"] == 2
    assert body["total_pages"] == 3
    assert [u["email"] for u in body["users"]] == ["member1@example.com", "member2@example.com"]
    assert body["users"][0]["roles"] == ["user"]
    assert "password" not in body["users"][0]


async def test_list_users_search_and_limit_cap(async_client, admin_user, make_user, auth_headers):
    await make_user(email="alice@example.com", name="Alice Smith")
    await make_user(email="bob@example.com", name="Bob Jones")

    response = await async_client.get(
        USERS_URL, params={"search": "SMITH", "limit": 500}, headers=auth_headers(admin_user)
    )
    body = response.json()
    assert body["limit"] == 100
    assert [u["email"] for u in body["users"]] == ["alice@example.com"]


async def test_list_users_invalid_page(async_client, admin_user, auth_headers):
    response = await async_client.get(USERS_URL, params={"page": 0}, headers=auth_headers(admin_user))
    assert response.status_code == 400
    assert response.json() == {"error": "Invalid pagination parameters"}


async def test_create_and_get_user(async_client, admin_user, auth_headers):
    response = await async_client.post(
        USERS_URL,
        json={
            "email": "Staff@Example.com",
            "password": "secret123",
            "name": "Staff Member",
            "company": "Acme",
            "roles": ["user", "moderator"],
        },
        headers=auth_headers(admin_user),
    )
    assert response.status_code == 201
    created = response.json()
    assert created["email"] == "staff@example.com"
    assert created["roles"] == ["moderator", "user"]
    assert created["company"] == "Acme"

    fetched = await async_client.get(f"{USERS_URL}/{created['id']}", headers=auth_headers(admin_user))
    assert fetched.status_code == 200
    assert fetched.json()["roles"] == ["moderator", "user"]


async def test_get_missing_user(async_client, admin_user, auth_headers):
    response = await async_client.get(f"{USERS_URL}/missing", headers=auth_headers(admin_user))
    assert response.status_code == 404
    assert response.json() == {"error": "User not found"}


async def test_update_user(async_client, admin_user, regular_user, auth_headers):
    response = await async_client.put(
        f"{USERS_URL}/{regular_user.id}",
        json={"name": "Renamed User", "phone": "", "company": "Initech"},
        headers=auth_headers(admin_user),
    )
    assert response.status_code == 200
    body = response.json()
    assert body["name"] == "Renamed User"
    assert body["phone"] is None
    assert body["company"] == "Initech"


async def test_update_user_email_conflict(async_client, admin_user, regular_user, auth_headers):
    response = await async_client.put(
        f"{USERS_URL}/{regular_user.id}",
        json={"email": admin_user.email},
        headers=auth_headers(admin_user),
    )
    assert response.status_code == 409


async def test_delete_user(async_client, admin_user, regular_user, auth_headers, seeded_db):
    user_id = regular_user.id
    response = await async_client.delete(f"{USERS_URL}/{user_id}", headers=auth_headers(admin_user))
    assert response.status_code == 200
    assert response.json() == {"message": "User deleted successfully"}

    assignments = (await seeded_db.execute(select(UserRole).where(UserRole.user_id == user_id))).scalars().all()
    assert assignments == []
    missing = await async_client.get(f"{USERS_URL}/{user_id}", headers=auth_headers(admin_user))
    assert missing.status_code == 404


async def test_admin_cannot_delete_self(async_client, admin_user, auth_headers):
    response = await async_client.delete(f"{USERS_URL}/{admin_user.id}", headers=auth_headers(admin_user))
    assert response.status_code == 400
    assert response.json() == {"error": "Cannot delete yourself"}


async def test_replace_user_roles(async_client, admin_user, regular_user, auth_headers):
    response = await async_client.put(
        f"{USERS_URL}/{regular_user.id}/roles",
        json={"roles": ["premium", "moderator"]},
        headers=auth_headers(admin_user),
    )
    assert response.status_code == 200
    assert response.json()["roles"] == ["moderator", "premium"]

    unknown = await async_client.put(
        f"{USERS_URL}/{regular_user.id}/roles",
        json={"roles": ["ghost"]},
        headers=auth_headers(admin_user),
    )
    assert unknown.status_code == 400
    assert unknown.json() == {"error": "role not found: ghost"}


async def test_admin_cannot_drop_own_admin_role(async_client, admin_user, auth_headers):
    response = await async_client.put(
        f"{USERS_URL}/{admin_user.id}/roles",
        json={"roles": ["user"]},
        headers=auth_headers(admin_user),
    )
    assert response.status_code == 400
    assert response.json() == {"error": "Cannot remove admin role from yourself"}

    response = await async_client.delete(f"{USERS_URL}/{admin_user.id}/roles/admin", headers=auth_headers(admin_user))
    assert response.status_code == 400


async def test_grant_and_revoke_single_role(async_client, admin_user, regular_user, auth_headers):
    headers = auth_headers(admin_user)
    granted = await async_client.post(
        f"{USERS_URL}/{regular_user.id}/roles",
        json={"role": "premium", "expires_at": "2099-01-01T00:00:00Z"},
        headers=headers,
    )
    assert granted.status_code == 201
    body = granted.json()
    assert body["role"] == "premium"
    assert body["granted_by"] == admin_user.id
    assert body["expires_at"].startswith("2099-01-01")

    history = await async_client.get(f"{USERS_URL}/{regular_user.id}/roles", headers=headers)
    assert sorted(a["role"] for a in history.json()) == ["premium", "user"]

    check = await async_client.get(f"{USERS_URL}/{regular_user.id}/permissions/premium.access", headers=headers)
    assert check.json() == {"user_id": regular_user.id, "permission": "premium.access", "has_permission": True}

    revoked = await async_client.delete(f"{USERS_URL}/{regular_user.id}/roles/premium", headers=headers)
    assert revoked.status_code == 200

    check = await async_client.get(f"{USERS_URL}/{regular_user.id}/permissions/premium.access", headers=headers)
    assert check.json()["has_permission"] is False


async def test_user_permissions_listing(async_client, admin_user, make_user, auth_headers):
    moderator = await make_user(email="mod@example.com", roles=["moderator"])
    response = await async_client.get(f"{USERS_URL}/{moderator.id}/permissions", headers=auth_headers(admin_user))
    assert response.status_code == 200
    body = response.json()
    assert body["roles"] == ["moderator"]
    assert [p["name"] for p in body["permissions"]] == [
        "content.delete", "content.moderate", "profile.read", "profile.write", "users.read",
    ]
