import asyncio
import logging
import uuid
from contextlib import asynccontextmanager
from contextvars import ContextVar
from datetime import datetime, UTC
from typing import Any, Dict

import sentry_sdk
from fastapi import Depends, FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from config import ENABLE_RATE_LIMITING, ERROR_TRACKING_DSN, LOG_LEVEL
from limiter import limiter
from servicedesk import __version__
from servicedesk.api.v1 import get_db, register_routes
from servicedesk.core.repositories.models import Base
from servicedesk.infrastructure.database import engine
from servicedesk.shared.exceptions import AppError, DatabaseError, ErrorResponse, ValidationError

# Configure logger for this module
logger = logging.getLogger(__name__)

# Application constants
APP_VERSION = __version__
REQUEST_TIMEOUT = 30.0
MAX_REQUEST_SIZE = 1_000_000  # 1MB

# Correlation ID context variable for log records
_correlation_id_var: ContextVar[str] = ContextVar("correlation_id", default="-")

# Record startup time to report uptime
START_TIME = datetime.now(UTC)


class CorrelationIdFilter(logging.Filter):
    """Add correlation ID to log records."""

    def filter(self, record: logging.LogRecord) -> bool:  # type: ignore[override]
        record.correlation_id = _correlation_id_var.get()
        return True


def configure_logging(level: str = LOG_LEVEL) -> None:
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s - %(levelname)s - %(correlation_id)s - %(name)s - %(message)s",
    )
    root = logging.getLogger()
    if not any(isinstance(f, CorrelationIdFilter) for f in root.filters):
        root.addFilter(CorrelationIdFilter())
    for handler in root.handlers:
        if not any(isinstance(f, CorrelationIdFilter) for f in handler.filters):
            handler.addFilter(CorrelationIdFilter())


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Configure logging and initialize application components."""
    configure_logging()

    # Initialize Sentry if configured
    if ERROR_TRACKING_DSN:
        sentry_sdk.init(dsn=ERROR_TRACKING_DSN)
        logger.info("Sentry error tracking enabled")

    # Set up rate limiter
    app.state.limiter = limiter

    # Record actual startup time
    global START_TIME
    START_TIME = datetime.now(UTC)

    # Initialize database
    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database initialized successfully")
    except Exception as e:
        logger.error("Failed to initialize database: %s", e)
        raise

    yield

    # Cleanup
    try:
        await engine.dispose()
        logger.info("Database connections closed")
    except Exception as e:
        logger.warning("Error during database cleanup: %s", e)


# Create FastAPI application
app = FastAPI(
    title="Service Desk API",
    version=APP_VERSION,
    lifespan=lifespan,
)

# Add middleware (order matters!)
if ENABLE_RATE_LIMITING:
    app.add_middleware(SlowAPIMiddleware)


@app.middleware("http")
async def add_correlation_id(request: Request, call_next):
    """Add correlation ID to each request for tracing."""
    correlation_id = (
        request.headers.get("X-Request-ID")
        or request.headers.get("X-Correlation-ID")
        or uuid.uuid4().hex
    )
    request.state.correlation_id = correlation_id
    token = _correlation_id_var.set(correlation_id)
    try:
        response = await call_next(request)
        response.headers["X-Request-ID"] = correlation_id
        response.headers["X-Correlation-ID"] = correlation_id
        return response
    finally:
        _correlation_id_var.reset(token)


@app.middleware("http")
async def limit_request_size(request: Request, call_next):
    """Reject request bodies larger than MAX_REQUEST_SIZE."""
    content_length = request.headers.get("content-length")
    if content_length and content_length.isdigit() and int(content_length) > MAX_REQUEST_SIZE:
        return JSONResponse(
            status_code=413,
            content={
                "error": "Request too large",
                "message": f"Request size exceeds {MAX_REQUEST_SIZE} bytes limit",
            },
        )
    return await call_next(request)


@app.middleware("http")
async def timeout_middleware(request: Request, call_next):
    """Add request timeout to prevent hanging requests."""
    try:
        return await asyncio.wait_for(call_next(request), timeout=REQUEST_TIMEOUT)
    except asyncio.TimeoutError:
        logger.warning("Request timeout for %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=504,
            content={
                "error": "Request timeout",
                "message": f"Request took longer than {REQUEST_TIMEOUT} seconds",
            },
        )


# Exception handlers
def _error_response(status_code: int, error_code: str, message: str, details: str | None = None):
    resp = ErrorResponse(
        error_code=error_code,
        message=message,
        details=details,
        timestamp=datetime.now(UTC),
    )
    return JSONResponse(status_code=status_code, content=jsonable_encoder(resp))


@app.exception_handler(RateLimitExceeded)
async def handle_rate_limit(request: Request, exc: RateLimitExceeded):
    """Handle rate limit exceeded errors."""
    return JSONResponse(
        status_code=429,
        content={"detail": "Rate limit exceeded. Please try again later."},
    )


@app.exception_handler(ValidationError)
async def handle_validation(request: Request, exc: ValidationError):
    """Malformed ids, scopes and field values."""
    return _error_response(400, exc.error_code, exc.message, exc.details)


@app.exception_handler(RequestValidationError)
async def handle_request_validation(request: Request, exc: RequestValidationError):
    """Report request-shape problems with the same envelope as ValidationError."""
    return _error_response(
        400, ValidationError.error_code, "Invalid request", str(jsonable_encoder(exc.errors()))
    )


@app.exception_handler(DatabaseError)
async def handle_database(request: Request, exc: DatabaseError):
    """The store is unavailable; the caller may retry."""
    return _error_response(503, exc.error_code, exc.message, exc.details)


@app.exception_handler(AppError)
async def handle_app_error(request: Request, exc: AppError):
    return _error_response(500, exc.error_code, exc.message, exc.details)


@app.exception_handler(Exception)
async def handle_unexpected(request: Request, exc: Exception):
    """Convert unexpected errors to JSON with traceback logging."""
    logger.exception(
        "Unhandled exception during request to %s %s",
        request.method,
        request.url.path,
    )
    return _error_response(500, "UNEXPECTED_ERROR", str(exc) or "Internal server error")


# Standard API routes
register_routes(app)


@app.get("/health", tags=["system"])
async def health(db: AsyncSession = Depends(get_db)) -> Dict[str, Any]:
    """Health check including a database ping."""
    health_status: Dict[str, Any] = {
        "status": "healthy",
        "timestamp": datetime.now(UTC).isoformat(),
        "version": APP_VERSION,
        "uptime": (datetime.now(UTC) - START_TIME).total_seconds(),
        "checks": {},
    }

    try:
        await asyncio.wait_for(db.execute(text("SELECT 1")), timeout=5.0)
        health_status["checks"]["database"] = {"status": "healthy"}
    except asyncio.TimeoutError:
        health_status["checks"]["database"] = {"status": "timeout"}
        health_status["status"] = "degraded"
        logger.warning("Database health check timed out")
    except Exception as e:
        health_status["checks"]["database"] = {"status": "unhealthy", "error": str(e)}
        health_status["status"] = "unhealthy"
        logger.error("Database health check failed: %s", e)

    return health_status


@app.get("/", tags=["system"])
async def root() -> Dict[str, Any]:
    """API root endpoint with basic information."""
    return {
        "name": app.title,
        "version": APP_VERSION,
        "status": "running",
        "docs_url": "/docs",
        "health_url": "/health",
    }
