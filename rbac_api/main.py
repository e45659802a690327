from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.openapi.utils import get_openapi

from rbac_api.api.v1.routes.api import router as api_router
from rbac_api.api.v1.routes.auth import router as auth_router
from rbac_api.api.v1.routes.profile import router as profile_router
from rbac_api.api.v1.routes.user import router as user_router
from rbac_api.api.v1.routes.role import router as role_router
from rbac_api.api.v1.routes.permission import router as permission_router
from rbac_api.api.v1.routes.email_template import router as email_template_router

from rbac_api.core.config import (
    PROJECT_NAME,
    VERSION,
    DESCRIPTION,
    DEBUG,
    DOCS_URL,
    API_PREFIX,
    CORS_ALLOWED_ORIGINS,
)
from rbac_api.core.errors import register_exception_handlers
from rbac_api.core.events import lifespan
from rbac_api.core.middleware.logging_middleware import debug_middleware, logging_middleware

PUBLIC_PATHS = ("/health", f"{API_PREFIX}/health", f"{API_PREFIX}/auth/")


def custom_openapi(app: FastAPI):
    if app.openapi_schema:
        return app.openapi_schema

    openapi_schema = get_openapi(
        title=app.title,
        version=app.version,
        description=app.description,
        routes=app.routes,
    )

    openapi_schema.setdefault("components", {})["securitySchemes"] = {
        "BearerAuth": {
            "type": "http",
            "scheme": "bearer",
            "bearerFormat": "JWT"
        }
    }

    # Everything except health and auth needs a bearer token
    for path, operations in openapi_schema["paths"].items():
        if path.startswith(PUBLIC_PATHS):
            continue
        for operation in operations.values():
            operation["security"] = [{"BearerAuth": []}]

    app.openapi_schema = openapi_schema
    return app.openapi_schema


def get_application() -> FastAPI:
    app = FastAPI(
        title=PROJECT_NAME,
        debug=DEBUG,
        version=VERSION,
        description=DESCRIPTION,
        docs_url=DOCS_URL,
        lifespan=lifespan,
        swagger_ui_init_oauth={"persistAuthorization": True},
    )

    origins = [origin.strip() for origin in CORS_ALLOWED_ORIGINS.split(",") if origin.strip()]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials="*" not in origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.middleware("http")(logging_middleware)
    if DEBUG:
        app.middleware("http")(debug_middleware)

    register_exception_handlers(app)

    # Public health endpoints
    app.include_router(api_router)
    app.include_router(api_router, prefix=API_PREFIX)

    # Authentication endpoints
    app.include_router(auth_router, prefix=f"{API_PREFIX}/auth")

    # Endpoints for the signed-in user
    app.include_router(profile_router, prefix=f"{API_PREFIX}/protected")

    # Admin endpoints
    app.include_router(user_router, prefix=f"{API_PREFIX}/admin/users")
    app.include_router(role_router, prefix=f"{API_PREFIX}/admin/roles")
    app.include_router(permission_router, prefix=f"{API_PREFIX}/admin/permissions")
    app.include_router(email_template_router, prefix=f"{API_PREFIX}/admin/email-templates")

    # Override OpenAPI schema generation with bearer auth
    app.openapi = lambda: custom_openapi(app)

    return app


app = get_application()
