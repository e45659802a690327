from contextlib import asynccontextmanager

from fastapi import FastAPI
from loguru import logger

from rbac_api.core.config import DEFAULT_SECRET_KEY, PROJECT_NAME, SECRET_KEY, VERSION
from rbac_api.core.db.session import engine


@asynccontextmanager
async def lifespan(app: FastAPI):
    if str(SECRET_KEY) == DEFAULT_SECRET_KEY:
        logger.warning("SECRET_KEY is not set, using the built-in development key")
    logger.info(f"Starting {PROJECT_NAME} {VERSION}")
    yield
    logger.info(f"Shutting down {PROJECT_NAME}")
    await engine.dispose()
