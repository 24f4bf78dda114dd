"""SkillWise API - Main Application."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from skillwise.admin.router import router as admin_router
from skillwise.admin.service import AdminService
from skillwise.auth.router import router as auth_router
from skillwise.auth.service import UserService
from skillwise.childlock.router import router as childlock_router
from skillwise.childlock.service import ChildLockService
from skillwise.community.router import router as community_router
from skillwise.community.service import CommunityService
from skillwise.config import get_settings
from skillwise.core.context import get_request_id
from skillwise.core.database import init_async_cassandra, shutdown_async_cassandra
from skillwise.core.logging import configure_structlog, get_logger
from skillwise.core.middleware import RequestContextMiddleware
from skillwise.core.redis import init_redis, shutdown_redis
from skillwise.courses.router import router as courses_router
from skillwise.courses.service import CourseService
from skillwise.friends.router import router as friends_router
from skillwise.friends.service import FriendService
from skillwise.guardians.router import router as guardians_router
from skillwise.guardians.service import GuardianService
from skillwise.health import router as health_router
from skillwise.learning.router import router as learning_router
from skillwise.learning.service import LearningService
from skillwise.notifications.router import router as notifications_router
from skillwise.notifications.service import NotificationService
from skillwise.skills.router import router as skills_router
from skillwise.skills.service import SkillsService


# structlog must be configured before any module-level logger is bound
settings = get_settings()
configure_structlog(settings, log_dir=Path(settings.log_dir))

logger = get_logger(__name__)


def init_services(app: FastAPI, session, keyspace: str, redis_client=None) -> None:
    """Build the domain services on ``app.state``.

    Request dependencies read them back through ``request.app.state``.
    """
    state = app.state
    state.cassandra_session = session
    state.redis = redis_client

    state.user_service = UserService(session=session, keyspace=keyspace)
    state.course_service = CourseService(session=session, keyspace=keyspace)
    state.notification_service = NotificationService(
        session=session, keyspace=keyspace, redis=redis_client
    )
    state.learning_service = LearningService(
        session=session, keyspace=keyspace, course_service=state.course_service
    )
    state.child_lock_service = ChildLockService(user_service=state.user_service)
    state.friend_service = FriendService(
        user_service=state.user_service,
        notification_service=state.notification_service,
    )
    state.guardian_service = GuardianService(
        session=session,
        keyspace=keyspace,
        user_service=state.user_service,
        notification_service=state.notification_service,
        learning_service=state.learning_service,
    )
    state.community_service = CommunityService(
        session=session,
        keyspace=keyspace,
        user_service=state.user_service,
        course_service=state.course_service,
        notification_service=state.notification_service,
    )
    state.skills_service = SkillsService(
        session=session,
        keyspace=keyspace,
        user_service=state.user_service,
        learning_service=state.learning_service,
        course_service=state.course_service,
    )
    state.admin_service = AdminService(
        user_service=state.user_service,
        course_service=state.course_service,
        learning_service=state.learning_service,
        notification_service=state.notification_service,
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Open Cassandra and Redis, build the services, close them on shutdown."""
    settings = get_settings()
    logger.info(
        "starting_application",
        app_name=settings.app_name,
        version=settings.app_version,
        environment=settings.environment,
    )

    # Redis is optional: notifications fall back to Cassandra only
    redis_client = None
    try:
        redis_client = await init_redis()
        logger.info("redis_initialized")
    except Exception as e:
        logger.warning(
            "redis_init_skipped",
            error=str(e),
            message="Running without Redis - notification push and caching disabled",
        )

    try:
        session = await init_async_cassandra()
        init_services(app, session, settings.cassandra_keyspace, redis_client)
        logger.info("services_initialized", redis_enabled=redis_client is not None)
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


def _error_content(
    request: Request, status_code: int, message: str
) -> dict[str, object]:
    request_id = getattr(request.state, "request_id", None) or get_request_id()
    return {
        "success": False,
        "error": True,
        "message": message,
        "status_code": status_code,
        "request_id": request_id,
    }


def create_app() -> FastAPI:
    """Build the SkillWise app with middleware, error envelopes and routers."""
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="SkillWise learning platform - API",
        debug=False,
        lifespan=lifespan,
        default_response_class=ORJSONResponse,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
        openapi_url="/openapi.json" if settings.is_development else None,
    )

    # outermost: binds request_id before CORS and the routers run
    app.add_middleware(
        RequestContextMiddleware,
        log_requests=settings.log_requests,
        exclude_paths=settings.log_exclude_paths,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=settings.cors_allow_methods,
        allow_headers=settings.cors_allow_headers,
        max_age=settings.cors_max_age,
    )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> ORJSONResponse:
        """Wrap HTTP errors in the standard failure envelope."""
        logger.warning(
            "http_exception",
            status_code=exc.status_code,
            detail=str(exc.detail),
            path=request.url.path,
            method=request.method,
        )
        message = (
            str(exc.detail)
            if exc.status_code < status.HTTP_500_INTERNAL_SERVER_ERROR
            else "Internal server error"
        )
        return ORJSONResponse(
            status_code=exc.status_code,
            content=_error_content(request, exc.status_code, message),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> ORJSONResponse:
        """Report request validation failures as 400 with field messages."""
        logger.warning(
            "validation_error",
            errors=exc.errors(),
            path=request.url.path,
            method=request.method,
        )
        content = _error_content(
            request, status.HTTP_400_BAD_REQUEST, "Validation error"
        )
        content["details"] = [
            {
                "field": ".".join(str(loc) for loc in err.get("loc", [])),
                "message": err.get("msg", "Invalid value"),
            }
            for err in exc.errors()
        ]
        return ORJSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=content)

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
            content=_error_content(
                request,
                status.HTTP_500_INTERNAL_SERVER_ERROR,
                "An unexpected error occurred. Please try again later.",
            ),
        )

    # Include routers
    app.include_router(health_router)
    app.include_router(auth_router)
    app.include_router(courses_router)
    app.include_router(learning_router)
    app.include_router(community_router)
    app.include_router(friends_router)
    app.include_router(guardians_router)
    app.include_router(childlock_router)
    app.include_router(admin_router)
    app.include_router(notifications_router)
    app.include_router(skills_router)

    @app.get("/", include_in_schema=False)
    async def root(request: Request) -> dict[str, str]:
        """Root endpoint."""
        return {
            "message": "SkillWise API",
            "version": settings.app_version,
            "docs": f"{request.url}docs",
        }

    return app


app = create_app()
