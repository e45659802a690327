"""
Command line entry point: ``rbac-api serve | migrate | version | promote``.
"""
import asyncio
from pathlib import Path

import click
import uvicorn
from alembic import command
from alembic.config import Config as AlembicConfig
from fastapi import HTTPException
from loguru import logger

from rbac_api.core import config

PACKAGE_DIR = Path(__file__).resolve().parent


def get_alembic_config() -> AlembicConfig:
    alembic_cfg = AlembicConfig()
    alembic_cfg.set_main_option("script_location", config.MIGRATIONS_LOCATION or str(PACKAGE_DIR / "migrations"))
    alembic_cfg.set_main_option("sqlalchemy.url", config.DATABASE_URL.replace("%", "%%"))
    return alembic_cfg


@click.group()
def main():
    """RBAC admin API."""


@main.command()
@click.option("--host", default=config.HOST, show_default=True)
@click.option("--port", default=config.PORT, type=int, show_default=True)
@click.option("--reload/--no-reload", default=config.RELOAD, show_default=True)
def serve(host: str, port: int, reload: bool):
    """Run the HTTP server."""
    logger.info(f"Serving {config.PROJECT_NAME} on {host}:{port}")
    uvicorn.run("rbac_api.main:app", host=host, port=port, reload=reload)


@main.group()
def migrate():
    """Manage database migrations."""


@migrate.command("up")
@click.option("--revision", default="head", show_default=True)
@click.option("--seed/--no-seed", default=True, show_default=True, help="Seed default roles and permissions.")
def migrate_up(revision: str, seed: bool):
    """Apply migrations."""
    alembic_cfg = get_alembic_config()
    alembic_cfg.attributes["run_seeders"] = seed
    command.upgrade(alembic_cfg, revision)
    click.echo(f"Migrated up to {revision}")


@migrate.command("down")
@click.option("--steps", default=1, type=int, show_default=True)
def migrate_down(steps: int):
    """Roll back migrations."""
    if steps < 1:
        raise click.BadParameter("must be at least 1", param_hint="--steps")
    command.downgrade(get_alembic_config(), f"-{steps}")
    click.echo(f"Rolled back {steps} migration(s)")


@migrate.command("status")
def migrate_status():
    """Show the current revision."""
    alembic_cfg = get_alembic_config()
    command.current(alembic_cfg, verbose=True)
    command.heads(alembic_cfg)


@migrate.command("create")
@click.argument("name")
@click.option("--autogenerate", is_flag=True, help="Diff the models against the database.")
def migrate_create(name: str, autogenerate: bool):
    """Create a new migration revision."""
    command.revision(get_alembic_config(), message=name, autogenerate=autogenerate)


@main.command()
def version():
    """Print the version."""
    click.echo(f"{config.PROJECT_NAME} {config.VERSION}")


async def promote_user(email: str) -> str:
    from rbac_api.api.v1.models.role import ADMIN_ROLE
    from rbac_api.api.v1.services.rbac import RBACService
    from rbac_api.api.v1.services.user import UserService
    from rbac_api.core.db.session import AsyncSessionLocal, engine

    try:
        async with AsyncSessionLocal() as db:
            user = await UserService.get_user_by_email(db, email)
            if user is None:
                raise click.ClickException(f"user not found: {email}")
            try:
                await RBACService.assign_role(db, user.id, ADMIN_ROLE)
            except HTTPException as e:
                raise click.ClickException(e.detail)
            return user.id
    finally:
        await engine.dispose()


@main.command()
@click.argument("email")
def promote(email: str):
    """Grant the admin role to an existing user."""
    user_id = asyncio.run(promote_user(email))
    click.echo(f"Granted admin to {email} ({user_id})")


if __name__ == "__main__":
    main()
