"""
FastAPI application setup and configuration
"""

from datetime import datetime, timezone
from typing import Optional, Callable

import structlog
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from progress_engine.core.config import settings
from progress_engine.core.exceptions import SnapshotStoreError
from progress_engine.api.deps import IDENTITY_HEADER, check_database_health, check_redis_health
from progress_engine.api.schemas import ErrorDetail, ErrorResponse, HealthResponse, StatusResponse
from progress_engine.api.v1.router import api_router
from progress_engine.domain.leagues import LEAGUES

logger = structlog.get_logger(__name__)


def _error_response(request: Request, status_code: int, error: str, **fields) -> JSONResponse:
    body = ErrorResponse(error=error, request_id=request.headers.get("X-Request-ID"), **fields)
    return JSONResponse(status_code=status_code, content=body.model_dump())


def _validation_details(exc: RequestValidationError) -> list:
    return [
        ErrorDetail(
            type=error["type"],
            message=error["msg"],
            field=".".join(str(part) for part in error["loc"])
        )
        for error in exc.errors()
    ]


def create_app(lifespan: Optional[Callable] = None) -> FastAPI:
    """
    Create and configure the FastAPI application

    Args:
        lifespan: Optional lifespan context manager

    Returns:
        Configured FastAPI application
    """
    app = FastAPI(
        title=settings.PROJECT_NAME,
        version=settings.API_VERSION,
        description=settings.API_DESCRIPTION,
        debug=settings.DEBUG,
        lifespan=lifespan
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(api_router, prefix=settings.API_V1_PREFIX)

    # Error handlers: every failure leaves as an ErrorResponse body
    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        logger.warning("HTTP exception occurred",
                       status_code=exc.status_code,
                       detail=str(exc.detail),
                       path=request.url.path)
        return _error_response(request, exc.status_code, str(exc.detail))

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """Reject malformed events before they reach the engine"""
        details = _validation_details(exc)
        logger.warning("Validation error occurred",
                       fields=[detail.field for detail in details],
                       path=request.url.path)
        return _error_response(
            request, status.HTTP_422_UNPROCESSABLE_ENTITY, "Validation error", details=details
        )

    @app.exception_handler(SnapshotStoreError)
    async def snapshot_store_exception_handler(request: Request, exc: SnapshotStoreError):
        """The local store is unreachable; no snapshot was read or written"""
        logger.error("Snapshot store unavailable",
                     exception=str(exc),
                     path=request.url.path)
        return _error_response(
            request,
            status.HTTP_503_SERVICE_UNAVAILABLE,
            "Snapshot store unavailable",
            detail=str(exc),
            error_code="snapshot_store_unavailable"
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        logger.error("Unexpected exception occurred",
                     exception=str(exc),
                     exception_type=type(exc).__name__,
                     path=request.url.path)
        return _error_response(request, status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error")

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        """Log each request with the identity it acts for"""
        request_log = logger.bind(
            method=request.method,
            path=request.url.path,
            identity=request.headers.get(IDENTITY_HEADER) or "guest"
        )
        request_log.info("Request started",
                         query_params=dict(request.query_params),
                         client_ip=request.client.host if request.client else None)

        response = await call_next(request)

        request_log.info("Request completed", status_code=response.status_code)
        return response

    @app.get("/health", response_model=HealthResponse, tags=["health"])
    async def health_check():
        """
        Health check endpoint

        Checks the local snapshot store (Redis) and the remote snapshot
        service (Supabase). The engine keeps working offline, so only an
        unhealthy Redis makes the service unhealthy; an unreachable
        Supabase is reported as degraded.
        """
        services = {}
        overall_status = "healthy"

        try:
            await check_redis_health()
            services["redis"] = "healthy"
        except Exception as e:
            services["redis"] = f"unhealthy: {str(e)}"
            overall_status = "unhealthy"

        try:
            await check_database_health()
            services["database"] = "healthy"
        except Exception as e:
            services["database"] = f"unhealthy: {str(e)}"
            if overall_status == "healthy":
                overall_status = "degraded"

        response_data = HealthResponse(
            status=overall_status,
            timestamp=datetime.now(timezone.utc),
            services=services,
            version=settings.API_VERSION
        )

        status_code = status.HTTP_503_SERVICE_UNAVAILABLE if overall_status == "unhealthy" else status.HTTP_200_OK

        return JSONResponse(
            status_code=status_code,
            content=response_data.model_dump(mode="json")
        )

    @app.get("/status", response_model=StatusResponse, tags=["health"])
    async def status_endpoint():
        """Application status endpoint"""
        return StatusResponse(
            service=settings.PROJECT_NAME,
            status="running",
            version=settings.API_VERSION,
            features=[
                "XP curve and level titles",
                "Problem, drill, multiplayer and mastery rewards",
                "Weekly leagues with promotion and demotion",
                "Daily streaks and activity stats",
                "Local-first progress sync"
            ],
            timezone=settings.TIMEZONE,
            leagues=[league.id.value for league in LEAGUES],
            remote_sync=bool(settings.SUPABASE_URL and settings.SUPABASE_SERVICE_ROLE_KEY)
        )

    @app.get("/", tags=["root"])
    async def root():
        return {
            "message": settings.PROJECT_NAME,
            "version": settings.API_VERSION,
            "docs": "/docs",
            "health": "/health"
        }

    return app
