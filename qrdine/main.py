"""
FastAPI Application Entry Point

QR Dine - table-side QR ordering for restaurants.

Endpoints:
    - POST /api/auth/signup: Register a restaurant
    - /api/restaurant/*: Settings and menu publishing
    - /api/menu/*: Menu management, Excel template and import
    - /api/tables/*: Tables and QR scan URLs
    - /api/public/*: Customer menu and table lookups
    - /api/orders/*: Ordering, status workflow, added batches
    - GET /api/kitchen/orders: Kitchen display feed
    - GET /api/analytics/dashboard, GET /api/reports: Analytics
    - GET /health: System health check

Staff endpoints identify the restaurant with the X-Restaurant-Id header.

Version: 1.0.0
"""

import asyncio
import logging
import sys
from contextlib import asynccontextmanager
from datetime import datetime, timezone

import redis
from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

# Windows-specific event loop policy
if sys.platform == "win32":
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

from qrdine.api import analytics, kitchen, menu, orders, public, restaurants, tables
from qrdine.core.config import get_settings, setup_logging
from qrdine.database import engine, get_db, init_db
from qrdine.schemas import HealthResponse
from qrdine.services.order_workflow import InvalidTransition

# Initialize configuration and logging
settings = get_settings()
setup_logging()
logger = logging.getLogger(__name__)


# =============================================================================
# APPLICATION LIFECYCLE
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage application startup and shutdown events.
    """
    logger.info("=" * 60)
    logger.info(f"🚀 Starting {settings.app_name}")
    logger.info(f"   Version: {settings.app_version}")
    logger.info(f"   Environment: {settings.env_mode.value}")
    logger.info(f"   Debug: {settings.debug}")
    logger.info("=" * 60)

    await init_db()
    logger.info("✅ Database initialized")

    if settings.is_production:
        missing = settings.validate_production_config()
        if missing:
            logger.warning(f"⚠️ Missing production config: {missing}")

    logger.info("✅ Application ready!")
    logger.info("=" * 60)

    yield

    logger.info("Shutting down...")
    await engine.dispose()
    logger.info("✅ Cleanup complete")


# =============================================================================
# APPLICATION INSTANCE
# =============================================================================

app = FastAPI(
    title=settings.app_name,
    description=(
        "Restaurant QR ordering: customers order from their table, staff manage "
        "the menu, tables, live orders, the kitchen display and reports."
    ),
    version=settings.app_version,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

for module in (restaurants, menu, tables, public, orders, kitchen, analytics):
    app.include_router(module.router)


# =============================================================================
# ROOT & HEALTH ENDPOINTS
# =============================================================================

@app.get("/", tags=["Root"])
async def root() -> dict[str, str]:
    """API root with navigation links."""
    return {
        "message": f"🍽️ Welcome to {settings.app_name}",
        "version": settings.app_version,
        "environment": settings.env_mode.value,
        "documentation": "/docs",
        "health": "/health",
    }


def check_redis() -> str:
    try:
        r = redis.Redis.from_url(settings.redis_url, socket_timeout=2)
        r.ping()
        r.close()
        return "healthy"
    except redis.RedisError as e:
        logger.error(f"Redis health check failed: {e}")
        return f"unhealthy: {str(e)}"


@app.get(
    "/health",
    response_model=HealthResponse,
    tags=["Health"],
    summary="System Health Check",
)
async def health_check(
    db: AsyncSession = Depends(get_db)
) -> HealthResponse:
    """Verify the database and Redis are reachable."""

    db_status = "healthy"
    try:
        await db.execute(select(1))
    except Exception as e:
        db_status = f"unhealthy: {str(e)}"
        logger.error(f"Database health check failed: {e}")

    redis_status = await asyncio.to_thread(check_redis)

    overall = "operational" if all(
        s == "healthy" for s in [db_status, redis_status]
    ) else "degraded"

    return HealthResponse(
        status=overall,
        database=db_status,
        redis=redis_status,
        timestamp=datetime.now(timezone.utc),
    )


# =============================================================================
# ERROR HANDLERS
# =============================================================================

@app.exception_handler(InvalidTransition)
async def invalid_transition_handler(request: Request, exc: InvalidTransition) -> JSONResponse:
    """Workflow rule violations are conflicts with the current state."""
    logger.info(f"Rejected transition on {request.url.path}: {exc.message}")

    return JSONResponse(
        status_code=409,
        content={
            "success": False,
            "error": exc.message,
            "detail": {"current": exc.current, "target": exc.target},
        },
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all exception handler."""
    logger.exception(f"Unhandled exception: {exc}")

    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "error": "Internal Server Error",
            "detail": str(exc) if settings.debug else "An unexpected error occurred",
        },
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "qrdine.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.debug,
    )
