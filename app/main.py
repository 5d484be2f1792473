# app/main.py
"""
FastAPI application entry point.
Includes security middleware, global error handlers, and all routers.
"""

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from app.routers import check_expiries, health, reports
from app.database import create_tables
from app.config import settings
from app.utils.logger import get_logger
import time

logger = get_logger(__name__)

app = FastAPI(
    title="DeadlineMind Notifier API",
    description="Vehicle tax & insurance expiry notifications — email and WhatsApp.",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
)


# ── API Key Middleware ───────────────────────────────────────────────────────
class APIKeyMiddleware(BaseHTTPMiddleware):
    """
    Optional lightweight API key auth for non-scheduler endpoints.
    The cron trigger is excluded — it authenticates with its own bearer secret.
    Set API_KEY in .env. Leave empty to disable auth.
    """
    open_paths = {"/api/v1/cron/check-expiries", "/api/v1/health", "/docs", "/redoc", "/openapi.json"}

    async def dispatch(self, request: Request, call_next):
        if request.url.path in self.open_paths or not settings.API_KEY:
            return await call_next(request)

        api_key = request.headers.get("X-API-Key") or request.query_params.get("api_key")
        if api_key != settings.API_KEY:
            return JSONResponse(
                status_code=status.HTTP_401_UNAUTHORIZED,
                content={"detail": "Invalid or missing API key"},
            )
        return await call_next(request)


app.add_middleware(APIKeyMiddleware)


# ── Request Timing Middleware ────────────────────────────────────────────────
@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.time()
    response = await call_next(request)
    duration = round((time.time() - start) * 1000, 2)
    logger.debug(f"{request.method} {request.url.path} → {response.status_code} ({duration}ms)")
    return response


# ── Global Exception Handler ─────────────────────────────────────────────────
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled exception on {request.url.path}: {exc}", exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"},
    )


# ── Routers ──────────────────────────────────────────────────────────────────
app.include_router(check_expiries.router, prefix="/api/v1", tags=["⏰ Expiry Check"])
app.include_router(reports.router,        prefix="/api/v1", tags=["📧 Reports"])
app.include_router(health.router,         prefix="/api/v1", tags=["💚 Health"])


# ── Startup ───────────────────────────────────────────────────────────────────
@app.on_event("startup")
async def startup():
    logger.info("🚀 DeadlineMind notifier starting up...")

    missing = settings.missing_required()
    if missing:
        # The expiry check refuses to run until these are set
        logger.critical(f"Required settings missing: {', '.join(missing)}")

    create_tables()
    logger.info("✅ Database tables ready")

    if settings.email_configured:
        logger.info("📧 Email channel configured")
    else:
        logger.error(f"📧 Email channel disabled. Missing: {', '.join(settings.email_missing)}")
    if settings.whatsapp_configured:
        logger.info("💬 WhatsApp channel configured")
    else:
        logger.error(f"💬 WhatsApp channel disabled. Missing: {', '.join(settings.whatsapp_missing)}")
    logger.info(f"🔔 Notify window: {settings.NOTIFY_WINDOW_DAYS} days | "
                f"cooldown: {settings.RESEND_COOLDOWN_DAYS} days | "
                f"expired documents: {'on' if settings.NOTIFY_EXPIRED_DOCUMENTS else 'off'}")
    logger.info("📖 API docs at /docs")


@app.on_event("shutdown")
async def shutdown():
    logger.info("🛑 DeadlineMind notifier shutting down...")
