"""HTTP middleware for request tracing, logging, security headers and shutdown."""

from fastapi import Request
from fastapi.responses import JSONResponse
import time
import uuid
from .config import settings
from .logger import logger

# Set by main.py to avoid a circular import
shutdown_manager = None


def set_shutdown_manager(manager):
    """Set the shutdown manager instance (called from main.py)."""
    global shutdown_manager
    shutdown_manager = manager


# ==================== Graceful Shutdown Middleware ====================

async def graceful_shutdown_middleware(request: Request, call_next):
    """Track in-flight requests and refuse new ones once shutdown starts."""
    if shutdown_manager and shutdown_manager.is_shutting_down:
        logger.warning(
            f"Rejecting request {request.method} {request.url.path} - service is shutting down"
        )
        return JSONResponse(
            status_code=503,
            content={"error": "Service is shutting down"},
            headers={"Retry-After": "10"}
        )

    if shutdown_manager:
        shutdown_manager.request_started()

    try:
        return await call_next(request)
    finally:
        if shutdown_manager:
            shutdown_manager.request_finished()


# ==================== Request ID Middleware ====================

async def add_request_id_middleware(request: Request, call_next):
    """Tag each request with an X-Request-ID, reusing the client's if sent."""
    request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
    request.state.request_id = request_id

    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id

    return response


# ==================== Request Logging Middleware ====================

async def request_logging_middleware(request: Request, call_next):
    """Log method, path, status and duration. Bodies are never logged (they carry passwords)."""
    start_time = time.perf_counter()
    request_id = getattr(request.state, "request_id", "unknown")

    try:
        response = await call_next(request)
    except Exception as e:
        duration = time.perf_counter() - start_time
        logger.error(
            f"[{request_id}] {request.method} {request.url.path} - "
            f"Error: {str(e)} - Duration: {duration:.3f}s",
            exc_info=True
        )
        raise

    duration = time.perf_counter() - start_time
    logger.info(
        f"[{request_id}] {request.method} {request.url.path} - "
        f"Status: {response.status_code} - Duration: {duration:.3f}s"
    )
    return response


# ==================== Security Headers Middleware ====================

async def security_headers_middleware(request: Request, call_next):
    """Add security headers to all responses."""
    response = await call_next(request)

    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"

    if settings.APP_ENV in ("prod", "production"):
        response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"

    # Swagger UI at /docs loads its assets from jsdelivr
    response.headers["Content-Security-Policy"] = (
        "default-src 'self'; "
        "script-src 'self' 'unsafe-inline' https://cdn.jsdelivr.net; "
        "style-src 'self' 'unsafe-inline' https://cdn.jsdelivr.net; "
        "img-src 'self' data: https://fastapi.tiangolo.com"
    )

    return response
