"""Law Comments API - Main Application."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from datetime import timedelta
from pathlib import Path
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from lawcomments.comments.abuse import AbuseDetector
from lawcomments.comments.rate_limiter import FixedWindowRateLimiter
from lawcomments.comments.revalidation import RedisViewRevalidator, ViewRevalidator
from lawcomments.comments.router import admin_router as comments_admin_router
from lawcomments.comments.router import router as comments_router
from lawcomments.comments.service import ModerationService
from lawcomments.comments.store import ModerationStore
from lawcomments.comments.validation import CommentSubmissionValidator
from lawcomments.config import Settings, get_settings
from lawcomments.core.context import get_request_id
from lawcomments.core.database import init_async_cassandra, shutdown_async_cassandra
from lawcomments.core.logging import configure_structlog, get_logger
from lawcomments.core.middleware import RequestContextMiddleware
from lawcomments.core.redis import init_redis, shutdown_redis
from lawcomments.documents.router import router as documents_router
from lawcomments.documents.service import DocumentService
from lawcomments.health import router as health_router


# Configure logging early (before creating logger)
settings = get_settings()
configure_structlog(settings, log_dir=Path(settings.log_dir))

logger = get_logger(__name__)


# Application state for dependency injection
class AppState:
    """Application state container."""

    cassandra_session: Any = None
    redis: Any = None
    rate_limiter: FixedWindowRateLimiter | None = None
    document_service: DocumentService | None = None
    moderation_service: ModerationService | None = None


app_state = AppState()


def build_rate_limiter(settings: Settings) -> FixedWindowRateLimiter:
    return FixedWindowRateLimiter(
        max_per_window=settings.rate_limit_max_per_window,
        window_ms=settings.rate_limit_window_ms,
        cleanup_interval_ms=settings.rate_limit_cleanup_interval_ms,
    )


def build_moderation_service(
    session: Any,
    settings: Settings,
    rate_limiter: FixedWindowRateLimiter,
    redis_client: Any = None,
) -> ModerationService:
    """Wire the submission pipeline and moderation store together."""
    lookback = timedelta(milliseconds=settings.duplicate_lookback_window_ms)
    documents = DocumentService(session=session, keyspace=settings.cassandra_keyspace)
    store = ModerationStore(
        session=session,
        keyspace=settings.cassandra_keyspace,
        history_ttl_seconds=int(lookback.total_seconds()),
    )
    revalidator = (
        RedisViewRevalidator(redis_client, settings.revalidation_channel)
        if redis_client
        else ViewRevalidator()
    )
    return ModerationService(
        store=store,
        documents=documents,
        rate_limiter=rate_limiter,
        detector=AbuseDetector(
            spam_score_threshold=settings.spam_score_threshold,
            lookback=lookback,
            similarity_threshold=settings.duplicate_similarity_threshold,
        ),
        validator=CommentSubmissionValidator.from_settings(settings),
        revalidator=revalidator,
        redis=redis_client,
        settings=settings,
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    settings = get_settings()
    logger.info(
        "starting_application",
        app_name=settings.app_name,
        version=settings.app_version,
        environment=settings.environment,
    )

    # Initialize Redis (non-critical - app works without it)
    redis_client = None
    try:
        redis_client = await init_redis()
        logger.info("redis_initialized")
    except Exception as e:
        logger.warning(
            "redis_init_skipped",
            error=str(e),
            message="Running without Redis - view caching and revalidation disabled",
        )
    app_state.redis = redis_client
    app.state.redis = redis_client

    # In-process rate limiter with background reclamation
    app_state.rate_limiter = build_rate_limiter(settings)
    await app_state.rate_limiter.start()

    # Initialize Cassandra (async)
    try:
        app_state.cassandra_session = await init_async_cassandra()
        logger.info("cassandra_initialized")

        app_state.moderation_service = build_moderation_service(
            app_state.cassandra_session,
            settings,
            app_state.rate_limiter,
            redis_client,
        )
        app_state.document_service = app_state.moderation_service.documents
        app.state.moderation_service = app_state.moderation_service
        logger.info("moderation_service_initialized")

    except Exception as e:
        logger.warning(
            "database_init_skipped",
            error=str(e),
            message="Running without database connection",
        )

    yield

    # Shutdown
    logger.info("shutting_down_application")
    await app_state.rate_limiter.stop()
    await shutdown_redis()
    await shutdown_async_cassandra()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    # debug=False keeps Starlette's ServerErrorMiddleware from rendering
    # tracebacks; the handlers below log details and return safe messages.
    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="הערות הציבור על סעיפי הצעת החוק - API",
        debug=False,
        lifespan=lifespan,
        default_response_class=ORJSONResponse,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
        openapi_url="/openapi.json" if settings.is_development else None,
    )

    # Request context middleware (must be added first - outermost)
    app.add_middleware(
        RequestContextMiddleware,
        log_requests=settings.log_requests,
        exclude_paths=settings.log_exclude_paths,
        trusted_hosts=settings.trusted_hosts,
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=settings.cors_allow_methods,
        allow_headers=settings.cors_allow_headers,
        max_age=settings.cors_max_age,
    )

    def _get_request_id_safe(request: Request) -> str | None:
        """Get request_id from request state or context."""
        if hasattr(request.state, "request_id"):
            return request.state.request_id
        return get_request_id()

    # Global exception handlers (never expose stack traces)
    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> ORJSONResponse:
        """Handle HTTP exceptions with safe error messages."""
        request_id = _get_request_id_safe(request)

        logger.warning(
            "http_exception",
            status_code=exc.status_code,
            detail=str(exc.detail),
            path=request.url.path,
            method=request.method,
        )

        content: dict[str, Any] = {
            "error": True,
            "message": "Internal server error",
            "status_code": exc.status_code,
            "request_id": request_id,
        }
        if exc.status_code < status.HTTP_500_INTERNAL_SERVER_ERROR:
            if isinstance(exc.detail, dict):
                content["message"] = exc.detail.get("message")
                content["errors"] = exc.detail.get("errors")
            else:
                content["message"] = str(exc.detail)

        return ORJSONResponse(
            status_code=exc.status_code,
            content=content,
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> ORJSONResponse:
        """Handle validation errors with safe error messages."""
        request_id = _get_request_id_safe(request)

        logger.warning(
            "validation_error",
            errors=exc.errors(),
            path=request.url.path,
            method=request.method,
        )

        return ORJSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={
                "error": True,
                "message": "Validation error",
                "status_code": 422,
                "request_id": request_id,
                "details": [
                    {
                        "field": ".".join(str(loc) for loc in err.get("loc", [])),
                        "message": err.get("msg", "Invalid value"),
                    }
                    for err in exc.errors()
                ],
            },
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(
        request: Request, exc: Exception
    ) -> ORJSONResponse:
        """Catch-all handler for unhandled exceptions.

        Details are logged internally; the response carries a generic message.
        """
        request_id = _get_request_id_safe(request)

        logger.exception(
            "unhandled_exception",
            error_type=type(exc).__name__,
            error_message=str(exc),
            path=request.url.path,
            method=request.method,
        )

        return ORJSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "error": True,
                "message": "An unexpected error occurred. Please try again later.",
                "status_code": 500,
                "request_id": request_id,
            },
        )

    # Include routers
    app.include_router(health_router)
    app.include_router(documents_router)
    app.include_router(comments_router)
    app.include_router(comments_admin_router)

    @app.get("/", include_in_schema=False)
    async def root(request: Request) -> dict[str, str]:
        """Root endpoint."""
        return {
            "message": "Law Comments API",
            "version": settings.app_version,
            "docs": f"{request.url}docs",
        }

    return app


app = create_app()
