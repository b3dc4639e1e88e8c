import time
import uuid
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from config import settings
from database import init_db, close_db
from routers import (
    status_router,
    site_router,
    assigned_router,
    ipcheck_router,
)
from services.inventory import InventoryError, RecordNotFoundError
from services.sweep import InvalidTargetError
from utils.logging_utils import setup_logging, get_logger
from utils.audit import audit

# Configure logging from LOG_LEVEL
setup_logging(level=settings.LOG_LEVEL)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Handle startup and shutdown events."""
    # Startup
    logger.info("=" * 60)
    logger.info("IP CHECK STARTING UP")
    logger.info(f"App: {settings.APP_NAME} v{settings.APP_VERSION}")

    start = time.perf_counter()
    await init_db()
    logger.info(
        f"Database initialized in {(time.perf_counter() - start) * 1000:.1f}ms"
    )
    logger.info(
        f"Probe settings: count={settings.PING_COUNT} "
        f"timeout={settings.PING_TIMEOUT_SECONDS}s"
    )

    # Run startup health checks
    from services.health import run_health_checks
    health = await run_health_checks()
    for check in health.checks:
        status_icon = "+" if check.status == "ok" else "!"
        detail = ""
        if check.message:
            detail += f" ({check.message})"
        if check.response_time_ms is not None:
            detail += f" [{check.response_time_ms:.1f}ms]"
        logger.info(f"  {status_icon} {check.name}: {check.status}{detail}")
    if health.status != "healthy":
        logger.warning(f"STARTUP HEALTH: {health.status.upper()} - some checks failed")

    logger.info("STARTUP COMPLETE - Ready to accept requests")
    logger.info("=" * 60)

    yield

    # Shutdown
    logger.info("IP CHECK SHUTTING DOWN")
    await close_db()
    logger.info("Shutdown complete")


# Create FastAPI app
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    lifespan=lifespan,
)


# ── Error handlers ────────────────────────────────────────────────────

@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request, exc: RequestValidationError
):
    """
    Return user-friendly error messages when request validation fails.

    The body carries a one-line ``details`` summary for clients that only
    show a single message, plus per-field entries in ``errors``.
    """
    errors = []
    for error in exc.errors():
        # Build a dotted field path (skip the top-level "body"/"query" prefix)
        loc_parts = [str(x) for x in error.get("loc", [])]
        if loc_parts and loc_parts[0] in ("body", "query", "path"):
            loc_parts = loc_parts[1:]
        field = ".".join(loc_parts) if loc_parts else "unknown"

        msg = error.get("msg", "Validation error")
        # Pydantic wraps custom ValueError messages in "Value error, ..."
        if msg.startswith("Value error, "):
            msg = msg[len("Value error, "):]

        errors.append({
            "field": field,
            "message": msg,
            "type": error.get("type", "unknown"),
        })

    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "error": "Validation failed",
            "details": "; ".join(f"{e['field']}: {e['message']}" for e in errors),
            "errors": errors,
        },
    )


@app.exception_handler(InvalidTargetError)
async def invalid_target_handler(request: Request, exc: InvalidTargetError):
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": "Invalid ipRange", "details": str(exc)},
    )


@app.exception_handler(RecordNotFoundError)
async def not_found_handler(request: Request, exc: RecordNotFoundError):
    return JSONResponse(
        status_code=status.HTTP_404_NOT_FOUND,
        content={"message": exc.message},
    )


@app.exception_handler(InventoryError)
async def inventory_error_handler(request: Request, exc: InventoryError):
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": exc.error, "details": exc.details},
    )


# ── Request ID + request logging middleware ───────────────────────────

@app.middleware("http")
async def request_lifecycle(request: Request, call_next):
    """Assign a request ID, log timing, and add the ID to response headers."""
    request_id = str(uuid.uuid4())
    audit.set_request_id(request_id)

    start_time = time.perf_counter()
    logger.debug(f"→ {request.method} {request.url.path}")

    response = await call_next(request)

    duration_ms = (time.perf_counter() - start_time) * 1000
    status_indicator = "+" if response.status_code < 400 else "!"
    logger.info(
        f"{status_indicator} {request.method} {request.url.path} "
        f"[{response.status_code}] {duration_ms:.1f}ms rid={request_id[:8]}"
    )

    response.headers["X-Request-ID"] = request_id
    return response


# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=settings.CORS_ALLOW_CREDENTIALS,
    allow_methods=settings.CORS_ALLOW_METHODS,
    allow_headers=settings.CORS_ALLOW_HEADERS,
)

# Include routers
app.include_router(status_router)
app.include_router(site_router)
app.include_router(assigned_router)
app.include_router(ipcheck_router)


@app.get("/health", tags=["health"])
async def health_check():
    """Health check endpoint with component status breakdown."""
    from services.health import run_health_checks
    health = await run_health_checks()
    status_code = 200 if health.status in ("healthy", "degraded") else 503
    return JSONResponse(content=health.model_dump(), status_code=status_code)


@app.get("/api", tags=["root"])
async def api_root():
    """API root endpoint."""
    return {
        "name": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "docs": "/docs",
        "openapi": "/openapi.json",
        "endpoints": {
            "status": "/api/status",
            "site": "/api/site",
            "assigned": "/api/assigned",
            "ipcheck": "/api/ipcheck",
        }
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8070,
        reload=settings.DEBUG,
    )
