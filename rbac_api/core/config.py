import logging
import sys

from rbac_api.core.logging import InterceptHandler
from loguru import logger
from starlette.config import Config
from starlette.datastructures import Secret

# Load .env
config = Config(".env")

# Core App Settings
API_PREFIX = "/api/v1"
VERSION = "1.0.0"

# JWT / Auth
DEFAULT_SECRET_KEY = "testsecretkey1234567890"
# Load SECRET_KEY as Starlette Secret, fallback default included
try:
    SECRET_KEY: Secret = config("SECRET_KEY", cast=Secret)
except Exception:
    SECRET_KEY = Secret(DEFAULT_SECRET_KEY)

ALGORITHM: str = config("ALGORITHM", default="HS256")

ACCESS_TOKEN_EXPIRE_MINUTES: int = config("ACCESS_TOKEN_EXPIRE_MINUTES", cast=int, default=60 * 24)
RESET_TOKEN_EXPIRE_MINUTES: int = config("RESET_TOKEN_EXPIRE_MINUTES", cast=int, default=15)
DEBUG: bool = config("DEBUG", cast=bool, default=False)
DESCRIPTION: str = config("DESCRIPTION", default="Role-based access control admin API")
DOCS_URL: str = config("DOCS_URL", default="/api/v1/docs")
PROJECT_NAME: str = config("PROJECT_NAME", default="rbac-api")

# DB Connection Pieces
POSTGRES_HOST: str = config("POSTGRES_HOST", default="127.0.0.1")
POSTGRES_PORT: str = config("POSTGRES_PORT", default="5432")
POSTGRES_USER: str = config("POSTGRES_USER", default="postgres")
POSTGRES_PASSWORD: str = config("POSTGRES_PASSWORD", default="password")
POSTGRES_DB: str = config("POSTGRES_DB", default="rbac")

# Full URL for SQLAlchemy; DATABASE_URL wins over the assembled Postgres URL
DATABASE_URL: str = config(
    "DATABASE_URL",
    default=(
        f"postgresql+asyncpg://{POSTGRES_USER}:{POSTGRES_PASSWORD}"
        f"@{POSTGRES_HOST}:{POSTGRES_PORT}/{POSTGRES_DB}"
    ),
)
DB_ECHO: bool = config("DB_ECHO", cast=bool, default=False)

# Connection Pooling; MIN is the pool size, MAX caps pool size plus overflow
MAX_CONNECTIONS_COUNT: int = config("MAX_CONNECTIONS_COUNT", cast=int, default=10)
MIN_CONNECTIONS_COUNT: int = config("MIN_CONNECTIONS_COUNT", cast=int, default=10)

# Uvicorn settings
HOST: str = config("HOST", default="0.0.0.0")
PORT: int = config("PORT", cast=int, default=8080)
RELOAD: bool = config("RELOAD", cast=bool, default=False)

# CORS
CORS_ALLOWED_ORIGINS: str = config("CORS_ALLOWED_ORIGINS", default="*")

# Email
FRONTEND_URL: str = config("FRONTEND_URL", default="http://localhost:5173")
COMPANY_NAME: str = config("COMPANY_NAME", default="RBAC Admin")
EMAIL_PROVIDER: str = config("EMAIL_PROVIDER", default="console")
SMTP_HOST: str = config("SMTP_HOST", default="")
SMTP_PORT: int = config("SMTP_PORT", cast=int, default=587)
SMTP_USERNAME: str = config("SMTP_USERNAME", default="")
SMTP_PASSWORD: Secret = config("SMTP_PASSWORD", cast=Secret, default="")
SMTP_FROM_EMAIL: str = config("SMTP_FROM_EMAIL", default="")
SMTP_FROM_NAME: str = config("SMTP_FROM_NAME", default=COMPANY_NAME)
SMTP_USE_TLS: bool = config("SMTP_USE_TLS", cast=bool, default=True)

# Phone numbers without a country code are read as local to this region
PHONE_DEFAULT_REGION: str = config("PHONE_DEFAULT_REGION", default="ID")

# Alembic
# Empty means the migrations directory shipped inside the package
MIGRATIONS_LOCATION: str = config("MIGRATIONS_LOCATION", default="")

# Logging
LOGGING_LEVEL = logging.DEBUG if DEBUG else logging.INFO
logging.basicConfig(
    handlers=[InterceptHandler(level=LOGGING_LEVEL)],
    level=LOGGING_LEVEL,
)
logger.configure(handlers=[{"sink": sys.stderr, "level": LOGGING_LEVEL}])
