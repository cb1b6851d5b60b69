"""
FastAPI Application Entry Point

RestoHub - Multi-tenant Restaurant Ordering API

Endpoints:
    - /api/cart, /api/orders, /api/payments: Customer ordering flow
    - /api/menus, /api/admin/*: Catalogue reads and staff management
    - /api/settings, /api/tenant/config: Tenant settings
    - /public/tenant/*: Unauthenticated tenant config and menu
    - /platform/tenants: Platform administration
    - /health, /healthz, /readyz: Health checks

Run:
    uvicorn restohub.main:app --host 0.0.0.0 --port 3000

Version: 1.0.0
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from http import HTTPStatus

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.exceptions import HTTPException as StarletteHTTPException

from restohub.core.config import get_settings, setup_logging
from restohub.database import engine, get_db, init_db
from restohub.errors import AppError, problem_body
from restohub.routes import (
    admin_router,
    cart_router,
    menus_router,
    orders_router,
    payments_router,
    platform_router,
    public_router,
    settings_router,
)
from restohub.schemas import HealthResponse
from restohub.services.payment import get_payment_service
from restohub.services.rate_limit import BaseRateLimitStore, get_rate_limit_store

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
    # Startup
    logger.info("=" * 60)
    logger.info(f"🚀 Starting {settings.app_name}")
    logger.info(f"   Version: {settings.app_version}")
    logger.info(f"   Environment: {settings.env_mode.value}")
    logger.info(f"   Debug: {settings.debug}")
    logger.info("=" * 60)

    await init_db()
    logger.info("✅ Database initialized")

    logger.info(f"✅ Rate Limit Store: {get_rate_limit_store().backend_name}")
    logger.info(f"✅ Payment Service: {get_payment_service().provider_name}")

    missing = settings.validate_production_config()
    if missing:
        logger.warning(f"⚠️ Missing production config: {missing}")

    logger.info("=" * 60)
    logger.info("✅ Application ready!")
    logger.info("=" * 60)

    yield

    # Shutdown
    logger.info("Shutting down...")
    await get_rate_limit_store().close()
    await engine.dispose()
    logger.info("✅ Cleanup complete")


# =============================================================================
# APPLICATION INSTANCE
# =============================================================================

app = FastAPI(
    title=settings.app_name,
    description=(
        "Multi-tenant restaurant ordering API: menus, carts, checkout, "
        "order status workflow and stub payments."
    ),
    version=settings.app_version,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["ETag", "X-RateLimit-Limit", "X-RateLimit-Remaining", "X-RateLimit-Reset"],
)

app.include_router(cart_router)
app.include_router(orders_router)
app.include_router(payments_router)
app.include_router(menus_router)
app.include_router(admin_router)
app.include_router(settings_router)
app.include_router(public_router)
app.include_router(platform_router)


# =============================================================================
# ROOT & HEALTH ENDPOINTS
# =============================================================================

@app.get("/", tags=["Root"])
async def root() -> dict[str, str]:
    """API root with navigation links."""
    return {
        "message": f"Welcome to {settings.app_name}",
        "version": settings.app_version,
        "environment": settings.env_mode.value,
        "documentation": "/docs",
        "health": "/health",
    }


@app.get("/health", response_model=HealthResponse, tags=["Health"], summary="System Health Check")
async def health_check(
    db: AsyncSession = Depends(get_db),
    store: BaseRateLimitStore = Depends(get_rate_limit_store),
) -> HealthResponse:
    """Verify the database is reachable and report the limiter backend."""
    db_status = "healthy"
    try:
        await db.execute(text("SELECT 1"))
    except Exception as e:
        db_status = "unhealthy"
        logger.error(f"Database health check failed: {e}")

    return HealthResponse(
        status="operational" if db_status == "healthy" else "degraded",
        database=db_status,
        rate_limit_backend=store.backend_name,
        timestamp=datetime.now(timezone.utc),
    )


@app.get("/healthz", tags=["Health"])
async def healthz() -> dict[str, str]:
    """Liveness: the process is up."""
    return {"status": "ok"}


@app.get("/readyz", tags=["Health"])
async def readyz(db: AsyncSession = Depends(get_db)):
    """Readiness: the database answers SELECT 1."""
    try:
        await db.execute(text("SELECT 1"))
    except Exception as e:
        logger.error(f"Readiness check failed: {e}")
        return JSONResponse(status_code=503, content={"status": "unavailable"})
    return {"status": "ready"}


# =============================================================================
# ERROR HANDLERS
# =============================================================================

def _rate_limit_headers(request: Request) -> dict[str, str]:
    """X-RateLimit-* headers recorded by the RateLimit dependency, if it ran."""
    return dict(getattr(request.state, "rate_limit_headers", None) or {})


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path}: {exc.detail}")
    return JSONResponse(
        status_code=exc.status_code,
        content=problem_body(exc.status_code, exc.title, exc.detail),
        headers=_rate_limit_headers(request),
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    title = _status_title(exc.status_code)
    detail = exc.detail if isinstance(exc.detail, str) else title
    headers = _rate_limit_headers(request)
    headers.update(getattr(exc, "headers", None) or {})
    return JSONResponse(
        status_code=exc.status_code,
        content=problem_body(exc.status_code, title, detail),
        headers=headers,
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = [
        {
            "path": ".".join(str(part) for part in err.get("loc", ())[1:]),
            "message": err.get("msg", "Invalid value"),
        }
        for err in exc.errors()
    ]
    body = problem_body(400, "Bad Request", "Validation failed")
    body["errors"] = errors
    return JSONResponse(status_code=400, content=body, headers=_rate_limit_headers(request))


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all exception handler."""
    logger.exception(f"Unhandled exception: {exc}")

    return JSONResponse(
        status_code=500,
        content=problem_body(
            500,
            "Internal Server Error",
            str(exc) if settings.debug else "An unexpected error occurred",
        ),
        headers=_rate_limit_headers(request),
    )


def _status_title(status_code: int) -> str:
    try:
        return HTTPStatus(status_code).phrase
    except ValueError:
        return "Error"
