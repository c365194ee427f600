"""EduMarket API - Main Application."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from edumarket.config import Settings, get_settings
from edumarket.core.context import get_request_id
from edumarket.core.database import init_async_cassandra, shutdown_async_cassandra
from edumarket.core.exceptions import LedgerError
from edumarket.core.logging import configure_structlog, get_logger
from edumarket.core.middleware import RequestContextMiddleware
from edumarket.core.redis import init_redis, shutdown_redis
from edumarket.courses.router import educator_router as educator_courses_router
from edumarket.courses.router import router as courses_router
from edumarket.courses.service import CourseService
from edumarket.dashboard.router import router as dashboard_router
from edumarket.dashboard.service import DashboardService
from edumarket.enrollments.service import EnrollmentService
from edumarket.health.router import router as health_router
from edumarket.identity.client import IdentityProviderClient
from edumarket.progress.router import router as progress_router
from edumarket.progress.service import ProgressService
from edumarket.purchases.gateway import StripeGateway
from edumarket.purchases.router import router as purchases_router
from edumarket.purchases.router import webhooks_router
from edumarket.purchases.service import PurchaseService
from edumarket.ratings.router import router as ratings_router
from edumarket.ratings.service import RatingService
from edumarket.users.router import identity_webhooks_router, role_router
from edumarket.users.router import router as users_router
from edumarket.users.service import UserService


# Configure logging early (before creating logger)
settings = get_settings()
configure_structlog(settings, log_dir=Path(settings.log_dir))

logger = get_logger(__name__)


def init_services(app: FastAPI, session, settings: Settings, redis_client=None) -> None:
    """Build the ledger services on ``app.state``.

    Services share one Cassandra session; each prepares its own statements.
    """
    keyspace = settings.cassandra_keyspace

    identity_client = IdentityProviderClient(settings)
    gateway = StripeGateway(settings)

    course_service = CourseService(session=session, keyspace=keyspace)
    user_service = UserService(
        session=session, keyspace=keyspace, identity_client=identity_client
    )
    enrollment_service = EnrollmentService(
        session=session,
        keyspace=keyspace,
        redis=redis_client,
        cache_ttl_seconds=settings.enrollment_cache_ttl_seconds,
    )
    purchase_service = PurchaseService(
        session=session,
        keyspace=keyspace,
        course_service=course_service,
        user_service=user_service,
        enrollment_service=enrollment_service,
        gateway=gateway,
        currency=settings.currency,
        minor_unit=settings.currency_minor_unit,
    )

    app.state.identity_client = identity_client
    app.state.payment_gateway = gateway
    app.state.course_service = course_service
    app.state.user_service = user_service
    app.state.enrollment_service = enrollment_service
    app.state.purchase_service = purchase_service
    app.state.progress_service = ProgressService(
        session=session,
        keyspace=keyspace,
        enrollment_service=enrollment_service,
        course_service=course_service,
    )
    app.state.rating_service = RatingService(
        session=session,
        keyspace=keyspace,
        enrollment_service=enrollment_service,
        course_service=course_service,
    )
    app.state.dashboard_service = DashboardService(
        course_service=course_service,
        enrollment_service=enrollment_service,
        purchase_service=purchase_service,
        user_service=user_service,
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
            message="Running without Redis - enrollment cache disabled",
        )

    # Initialize Cassandra (async)
    try:
        session = await init_async_cassandra()
        logger.info("cassandra_initialized")

        init_services(app, session, settings, redis_client)
        logger.info(
            "ledger_services_initialized",
            redis_enabled=redis_client is not None,
            stripe_configured=settings.stripe_configured,
            identity_configured=settings.identity_configured,
        )
    except Exception as e:
        logger.warning(
            "database_init_skipped",
            error=str(e),
            message="Running without database connection",
        )

    yield

    # Shutdown
    logger.info("shutting_down_application")
    await shutdown_redis()
    await shutdown_async_cassandra()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    # debug=False keeps Starlette from rendering stack traces; handlers below
    # log full details and return safe messages.
    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Course marketplace enrollment and progress ledger - API",
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
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=settings.cors_allow_methods,
        allow_headers=settings.cors_allow_headers,
    )

    # Helper to get request_id from request state or context
    def _get_request_id_safe(request: Request) -> str | None:
        """Get request_id from request state or context."""
        if hasattr(request.state, "request_id"):
            return request.state.request_id
        return get_request_id()

    @app.exception_handler(LedgerError)
    async def ledger_error_handler(request: Request, exc: LedgerError) -> ORJSONResponse:
        """Map ledger error kinds to their HTTP status."""
        logger.warning(
            "ledger_error",
            code=exc.code,
            status_code=exc.status_code,
            detail=exc.message,
            path=request.url.path,
            method=request.method,
        )
        return ORJSONResponse(
            status_code=exc.status_code,
            content={
                "error": True,
                "message": exc.message,
                "code": exc.code,
                "status_code": exc.status_code,
                "request_id": _get_request_id_safe(request),
            },
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> ORJSONResponse:
        """Handle HTTP exceptions with safe error messages."""
        logger.warning(
            "http_exception",
            status_code=exc.status_code,
            detail=str(exc.detail),
            path=request.url.path,
            method=request.method,
        )
        return ORJSONResponse(
            status_code=exc.status_code,
            content={
                "error": True,
                "message": str(exc.detail)
                if exc.status_code < status.HTTP_500_INTERNAL_SERVER_ERROR
                else "Internal server error",
                "code": "http_error",
                "status_code": exc.status_code,
                "request_id": _get_request_id_safe(request),
            },
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> ORJSONResponse:
        """Handle validation errors with safe error messages."""
        logger.warning(
            "validation_error",
            errors=exc.errors(),
            path=request.url.path,
            method=request.method,
        )
        return ORJSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_CONTENT,
            content={
                "error": True,
                "message": "Validation error",
                "code": "invalid_argument",
                "status_code": 422,
                "request_id": _get_request_id_safe(request),
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
        """Catch-all handler; details are logged, never returned."""
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
                "code": "internal_error",
                "status_code": 500,
                "request_id": _get_request_id_safe(request),
            },
        )

    # Include routers
    app.include_router(health_router)
    app.include_router(users_router)
    app.include_router(role_router)
    app.include_router(courses_router)
    app.include_router(educator_courses_router)
    app.include_router(dashboard_router)
    app.include_router(purchases_router)
    app.include_router(progress_router)
    app.include_router(ratings_router)
    app.include_router(webhooks_router)
    app.include_router(identity_webhooks_router)

    @app.get("/", include_in_schema=False)
    async def root(request: Request) -> dict[str, str]:
        """Root endpoint."""
        return {
            "message": "EduMarket API",
            "version": settings.app_version,
            "docs": f"{request.url}docs",
        }

    return app


app = create_app()
