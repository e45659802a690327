import pytest
from fastapi import FastAPI
from httpx import AsyncClient
from httpx._transports.asgi import ASGITransport
from pydantic import BaseModel
from sqlalchemy.exc import IntegrityError

from rbac_api.core.errors import register_exception_handlers


class Item(BaseModel):
    name: str


def build_app() -> FastAPI:
    failing = FastAPI()
    register_exception_handlers(failing)

    @failing.post("/duplicate")
    async def duplicate():
        raise IntegrityError("INSERT INTO roles", {}, Exception("UNIQUE constraint failed: roles.name"))

    @failing.post("/items")
    async def create_item(item: Item):
        return item

    @failing.get("/boom")
    async def boom():
        raise RuntimeError("unexpected")

    return failing


@pytest.fixture
async def error_client():
    transport = ASGITransport(app=build_app(), raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


async def test_integrity_error_is_conflict(error_client):
    response = await error_client.post("/duplicate")
    assert response.status_code == 409
    assert response.json() == {"error": "Resource already exists"}


async def test_validation_error_is_bad_request(error_client):
    response = await error_client.post("/items", json={})
    assert response.status_code == 400
    assert response.json()["error"].startswith("name:")


async def test_unexpected_error_hides_details(error_client):
    response = await error_client.get("/boom")
    assert response.status_code == 500
    assert response.json() == {"error": "Internal server error"}
