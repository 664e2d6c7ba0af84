"""Blog API application factory and process entry point."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any

import uvicorn
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException

from blogapi.auth.router import router as auth_router
from blogapi.auth.security import get_token_signer
from blogapi.auth.service import AuthService
from blogapi.categories.router import router as categories_router
from blogapi.categories.service import CategoryService
from blogapi.config import Settings, get_settings
from blogapi.core.context import get_request_id
from blogapi.core.database import init_async_cassandra, shutdown_async_cassandra
from blogapi.core.logging import configure_structlog, get_logger
from blogapi.core.middleware import RequestContextMiddleware
from blogapi.health import router as health_router
from blogapi.posts.router import router as posts_router
from blogapi.posts.service import PostService


settings = get_settings()
configure_structlog(
    settings, log_dir=Path(settings.log_dir), write_files=not settings.is_testing
)

logger = get_logger(__name__)

# pydantic prefixes messages raised from field validators with this
VALUE_ERROR_PREFIX = "Value error, "
REQUEST_LOCATIONS = frozenset({"body", "query", "path", "header", "cookie"})
GENERIC_ERROR = "An unexpected error occurred. Please try again later."


def init_services(app: FastAPI, session: Any, keyspace: str) -> None:
    """Build the database-backed services on ``app.state``.

    Routes resolve them through dependencies that answer 503 while a service
    is missing, so the app still boots when Cassandra is unreachable.
    """
    users = AuthService(session=session, keyspace=keyspace, signer=get_token_signer())
    categories = CategoryService(session=session, keyspace=keyspace)

    app.state.cassandra_session = session
    app.state.auth_service = users
    app.state.category_service = categories
    app.state.post_service = PostService(
        session=session, keyspace=keyspace, users=users, categories=categories
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    logger.info(
        "starting_application",
        app_name=settings.app_name,
        version=settings.app_version,
        environment=settings.environment,
    )

    try:
        session = await init_async_cassandra()
    except Exception as e:
        logger.warning("database_unavailable", error=str(e), error_type=type(e).__name__)
    else:
        init_services(app, session, settings.cassandra_keyspace)
        logger.info("services_initialized", keyspace=settings.cassandra_keyspace)

    yield

    logger.info("shutting_down_application")
    await shutdown_async_cassandra()


# ==============================================================================
# Error envelopes
# ==============================================================================


def _request_id(request: Request) -> str | None:
    return getattr(request.state, "request_id", None) or get_request_id()


def _field_name(loc: tuple[Any, ...] | list[Any]) -> str:
    parts = [str(p) for p in loc]
    if parts and parts[0] in REQUEST_LOCATIONS:
        parts = parts[1:]
    return ".".join(parts)


async def http_error_handler(
    request: Request, exc: StarletteHTTPException
) -> ORJSONResponse:
    """``{error, status_code, request_id}``; 5xx details never leave the process."""
    logger.warning(
        "http_error",
        status_code=exc.status_code,
        detail=str(exc.detail),
        path=request.url.path,
    )
    server_error = exc.status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR
    return ORJSONResponse(
        status_code=exc.status_code,
        content={
            "error": "Internal server error" if server_error else str(exc.detail),
            "status_code": exc.status_code,
            "request_id": _request_id(request),
        },
        headers=getattr(exc, "headers", None),
    )


async def validation_error_handler(
    request: Request, exc: RequestValidationError
) -> ORJSONResponse:
    """Field problems are a 400 carrying one ``{field, message}`` per problem."""
    errors = [
        {
            "field": _field_name(err.get("loc", ())),
            "message": err.get("msg", "Invalid value").removeprefix(
                VALUE_ERROR_PREFIX
            ),
        }
        for err in exc.errors()
    ]
    logger.warning("request_rejected", path=request.url.path, errors=errors)
    return ORJSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "errors": errors,
            "status_code": status.HTTP_400_BAD_REQUEST,
            "request_id": _request_id(request),
        },
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> ORJSONResponse:
    logger.exception(
        "unhandled_exception",
        error_type=type(exc).__name__,
        path=request.url.path,
        method=request.method,
    )
    return ORJSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": GENERIC_ERROR,
            "status_code": status.HTTP_500_INTERNAL_SERVER_ERROR,
            "request_id": _request_id(request),
        },
    )


# ==============================================================================
# Application
# ==============================================================================


def create_app(config: Settings | None = None) -> FastAPI:
    config = config or get_settings()
    docs = config.is_development

    # debug stays off so Starlette never renders tracebacks into responses
    app = FastAPI(
        title=config.app_name,
        version=config.app_version,
        description="Posts, categories, users and nested comments",
        debug=False,
        lifespan=lifespan,
        default_response_class=ORJSONResponse,
        docs_url="/docs" if docs else None,
        redoc_url=None,
        openapi_url="/openapi.json" if docs else None,
    )

    # Starlette wraps in reverse order: CORS runs inside the request context.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins,
        allow_credentials=config.cors_allow_credentials,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(
        RequestContextMiddleware,
        log_requests=config.log_requests,
        exclude_paths=config.log_exclude_paths,
    )

    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    app.include_router(health_router)
    app.include_router(auth_router)
    app.include_router(categories_router)
    app.include_router(posts_router)

    upload_dir = Path(config.upload_dir)
    upload_dir.mkdir(parents=True, exist_ok=True)
    app.mount(
        config.upload_url_prefix, StaticFiles(directory=upload_dir), name="uploads"
    )

    @app.get("/", include_in_schema=False)
    async def root() -> dict[str, str]:
        return {"message": "Blog API is running", "version": config.app_version}

    return app


app = create_app()


def run() -> None:
    """Console entry point: serve ``app`` with uvicorn."""
    uvicorn.run(
        "blogapi.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.is_development,
        log_level=settings.log_level.lower(),
    )
