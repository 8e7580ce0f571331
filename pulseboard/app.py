"""
Pulseboard - FastAPI Application Entrypoint

This module initializes the FastAPI application with:
- CORS and security middleware
- Per-IP rate limiting
- Authentication, metrics, admin, AI model and export routes
- The real-time broadcast hub on /ws
- Database and background task lifecycle management

Background tasks (all started and cancelled by the lifespan):
- hub metrics broadcast
- synthetic metrics generator
- expired session sweeper
"""

import logging
from contextlib import asynccontextmanager
from datetime import timedelta
from typing import Optional

from fastapi import Depends, FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from pulseboard.admin.routes import router as admin_router
from pulseboard.auth.routes import router as auth_router
from pulseboard.auth.sweeper import SessionSweeper
from pulseboard.auth.tokens import TokenService
from pulseboard.auth.users import ensure_bootstrap_admin
from pulseboard.config import Settings, settings as default_settings
from pulseboard.database import get_engine, get_session_factory, init_db
from pulseboard.export.routes import router as export_router
from pulseboard.gateway.middleware import SecurityMiddleware
from pulseboard.gateway.rate_limit import SCOPE_API, build_rate_limiters, rate_limited
from pulseboard.metrics.generator import MetricsGenerator
from pulseboard.metrics.routes import router as metrics_router
from pulseboard.realtime.hub import BroadcastHub
from pulseboard.realtime.routes import router as realtime_router
from pulseboard.registry.routes import router as registry_router


logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Startup:
        - Create tables and the session factory
        - Build the token service (fails without SECRET_KEY)
        - Provision the bootstrap superadmin, if configured
        - Start hub broadcast, metrics generator and session sweeper

    Shutdown:
        - Stop every background task, close live connections
        - Dispose the engine
    """
    settings: Settings = app.state.settings
    if not settings.SECRET_KEY:
        raise RuntimeError("SECRET_KEY must be set")

    engine = get_engine(settings.DATABASE_URL, echo=settings.DATABASE_ECHO)
    await init_db(engine)
    session_factory = get_session_factory(engine)
    app.state.db_engine = engine
    app.state.db_session_factory = session_factory

    tokens = TokenService(
        settings.SECRET_KEY,
        algorithm=settings.JWT_ALGORITHM,
        lifetime=timedelta(hours=settings.SESSION_EXPIRE_HOURS),
    )
    app.state.tokens = tokens
    app.state.rate_limiters = build_rate_limiters(settings)

    async with session_factory() as db:
        await ensure_bootstrap_admin(
            db,
            settings.BOOTSTRAP_ADMIN_EMAIL,
            settings.BOOTSTRAP_ADMIN_PASSWORD,
            rounds=settings.BCRYPT_ROUNDS,
        )

    hub = BroadcastHub(
        session_factory,
        tokens,
        broadcast_interval=settings.REALTIME_BROADCAST_INTERVAL_SECONDS,
        recent_metrics=settings.REALTIME_RECENT_METRICS,
    )
    generator = MetricsGenerator(
        session_factory,
        base_interval=settings.METRICS_BASE_INTERVAL_SECONDS,
        jitter=settings.METRICS_JITTER_SECONDS,
        audit_probability=settings.METRICS_AUDIT_PROBABILITY,
    )
    sweeper = SessionSweeper(session_factory, settings.SESSION_SWEEP_INTERVAL_SECONDS)
    app.state.hub = hub
    app.state.metrics_generator = generator
    app.state.session_sweeper = sweeper

    hub.start()
    if settings.METRICS_GENERATOR_ENABLED:
        generator.start()
    sweeper.start()
    logger.info("%s %s started", settings.APP_NAME, settings.VERSION)

    yield

    # Shutdown
    await generator.stop()
    await sweeper.stop()
    await hub.shutdown()
    await engine.dispose()
    logger.info("%s stopped", settings.APP_NAME)


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Report body/query validation failures as 400 with the first message."""
    errors = exc.errors()
    message = "Invalid request"
    if errors:
        first = errors[0]
        location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"{location}: {first.get('msg')}" if location else str(first.get("msg"))
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": message},
    )


async def storage_exception_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.exception("Storage failure on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"detail": "Storage unavailable"},
    )


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Build the application.

    Args:
        settings: Override for the module-level settings (tests)
    """
    settings = settings or default_settings

    app = FastAPI(
        title=settings.APP_NAME,
        description="Real-time admin dashboard backend",
        version=settings.VERSION,
        lifespan=lifespan,
    )
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "DELETE", "PUT"],
        allow_headers=["Authorization", "Content-Type"],
        expose_headers=["Content-Disposition", "Retry-After", "X-Request-ID"],
    )

    # Security middleware for request IDs, headers and access logging
    app.add_middleware(SecurityMiddleware)

    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(SQLAlchemyError, storage_exception_handler)

    api_dependencies = [Depends(rate_limited(SCOPE_API))]
    for router in (auth_router, metrics_router, admin_router, registry_router, export_router):
        app.include_router(router, prefix="/api", dependencies=api_dependencies)
    app.include_router(realtime_router)

    @app.get("/api/health", tags=["health"])
    async def health_check(request: Request):
        """Liveness probe with database and hub status."""
        database_ok = True
        try:
            async with request.app.state.db_engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
        except SQLAlchemyError:
            database_ok = False

        hub = request.app.state.hub
        return {
            "status": "healthy" if database_ok else "degraded",
            "version": settings.VERSION,
            "services": {
                "database": database_ok,
                "realtime_connections": hub.connection_count,
                "metrics_generator": request.app.state.metrics_generator.running,
            },
        }

    @app.get("/")
    async def root():
        """Root endpoint with API information."""
        return {
            "name": settings.APP_NAME,
            "version": settings.VERSION,
            "docs": "/docs",
            "health": "/api/health",
            "realtime": "/ws",
        }

    return app


app = create_app()
