import pytest
import click
from click.testing import CliRunner
from unittest.mock import AsyncMock, MagicMock, patch
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import sessionmaker

from rbac_api import cli
from rbac_api.api.v1.services.rbac import RBACService
from rbac_api.core.config import PROJECT_NAME, VERSION


@pytest.fixture
def runner():
    return CliRunner()


def test_version(runner):
    result = runner.invoke(cli.main, ["version"])
    assert result.exit_code == 0
    assert result.output.strip() == f"{PROJECT_NAME} {VERSION}"


def test_migrate_up_seeds_by_default(runner):
    with patch.object(cli.command, "upgrade") as upgrade:
        result = runner.invoke(cli.main, ["migrate", "up"])
    assert result.exit_code == 0
    alembic_cfg, revision = upgrade.call_args.args
    assert revision == "head"
    assert alembic_cfg.attributes["run_seeders"] is True
    assert alembic_cfg.get_main_option("script_location").endswith("migrations")


def test_migrate_up_without_seed(runner):
    with patch.object(cli.command, "upgrade") as upgrade:
        result = runner.invoke(cli.main, ["migrate", "up", "--no-seed", "--revision", "0001"])
    assert result.exit_code == 0
    alembic_cfg, revision = upgrade.call_args.args
    assert revision == "0001"
    assert alembic_cfg.attributes["run_seeders"] is False


def test_migrate_down(runner):
    with patch.object(cli.command, "downgrade") as downgrade:
        result = runner.invoke(cli.main, ["migrate", "down", "--steps", "2"])
    assert result.exit_code == 0
    assert downgrade.call_args.args[1] == "-2"


def test_migrate_down_rejects_zero_steps(runner):
    with patch.object(cli.command, "downgrade") as downgrade:
        result = runner.invoke(cli.main, ["migrate", "down", "--steps", "0"])
    assert result.exit_code == 2
    assert "must be at least 1" in result.output
    downgrade.assert_not_called()


def test_migrate_create(runner):
    with patch.object(cli.command, "revision") as revision:
        result = runner.invoke(cli.main, ["migrate", "create", "add_teams", "--autogenerate"])
    assert result.exit_code == 0
    assert revision.call_args.kwargs == {"message": "add_teams", "autogenerate": True}


def test_serve_runs_uvicorn(runner):
    with patch.object(cli.uvicorn, "run") as run:
        result = runner.invoke(cli.main, ["serve", "--host", "127.0.0.1", "--port", "9000"])
    assert result.exit_code == 0
    run.assert_called_once_with("rbac_api.main:app", host="127.0.0.1", port=9000, reload=False)


def test_promote_command(runner, monkeypatch):
    monkeypatch.setattr(cli, "promote_user", AsyncMock(return_value="user-1"))
    result = runner.invoke(cli.main, ["promote", "someone@example.com"])
    assert result.exit_code == 0
    assert "Granted admin to someone@example.com (user-1)" in result.output


@pytest.fixture
def cli_session(db_engine, monkeypatch):
    """Points the CLI at the test database without disposing the test engine."""
    from rbac_api.core.db import session as session_module

    monkeypatch.setattr(
        session_module, "AsyncSessionLocal", sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)
    )
    monkeypatch.setattr(session_module, "engine", MagicMock(dispose=AsyncMock()))


async def test_promote_user_grants_admin(cli_session, regular_user, seeded_db):
    user_id = await cli.promote_user("user@example.com")
    assert user_id == regular_user.id
    assert await RBACService.get_active_role_names(seeded_db, regular_user.id) == ["admin", "user"]


async def test_promote_unknown_user(cli_session, seeded_db):
    with pytest.raises(click.ClickException, match="user not found"):
        await cli.promote_user("ghost@example.com")
