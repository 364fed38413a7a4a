"""FastAPI application entry point with lifecycle management."""

import asyncio
import os
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException

from .config import settings
from .routes import router, limiter
from .db import init_db, dispose_engine
from .errors import ApiError
from .logger import logger
from .middleware import (
    graceful_shutdown_middleware,
    add_request_id_middleware,
    request_logging_middleware,
    security_headers_middleware,
    set_shutdown_manager,
)
from .monitoring import setup_monitoring

# ==================== Graceful Shutdown ====================


class GracefulShutdownManager:
    """Tracks in-flight requests so shutdown can let them finish first."""

    def __init__(self):
        self.is_shutting_down = False
        self.active_requests = 0
        self.shutdown_timeout = settings.GRACEFUL_SHUTDOWN_TIMEOUT

    def request_started(self):
        if not self.is_shutting_down:
            self.active_requests += 1

    def request_finished(self):
        self.active_requests = max(0, self.active_requests - 1)

    async def initiate_shutdown(self):
        """Stop accepting requests and wait up to shutdown_timeout for active ones."""
        if self.is_shutting_down:
            return

        logger.info("Graceful shutdown initiated")
        self.is_shutting_down = True

        loop = asyncio.get_running_loop()
        start_time = loop.time()
        while self.active_requests > 0:
            if loop.time() - start_time >= self.shutdown_timeout:
                logger.warning(
                    f"Shutdown timeout ({self.shutdown_timeout}s) reached with "
                    f"{self.active_requests} request(s) still active - forcing shutdown"
                )
                return
            await asyncio.sleep(0.1)

        logger.info("No active requests remaining")


shutdown_manager = GracefulShutdownManager()
set_shutdown_manager(shutdown_manager)

# ==================== Application Lifecycle ====================


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize the schema on startup; drain requests and close the pool on shutdown."""
    logger.info(f"Starting {settings.APP_NAME} in {settings.APP_ENV} mode")

    # A store that cannot be initialized is fatal: let the exception abort startup
    await init_db()

    logger.info(f"{settings.APP_NAME} started successfully - ready to accept requests")

    yield

    logger.info(f"Shutting down {settings.APP_NAME}...")
    await shutdown_manager.initiate_shutdown()
    await dispose_engine()
    logger.info(f"{settings.APP_NAME} shutdown complete")

# ==================== Error Handlers ====================


async def api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message}, headers=headers)


async def request_validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.debug(f"Request validation failed on {request.url.path}: {exc.errors()}")
    return JSONResponse(status_code=400, content={"error": "Invalid request body"})


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(f"Unhandled error on {request.method} {request.url.path}", exc_info=exc)
    return JSONResponse(status_code=500, content={"error": "Internal server error"})

# ==================== Application Setup ====================


app = FastAPI(title=settings.APP_NAME, lifespan=lifespan)

# Middleware registration (last registered = outermost layer)
app.middleware("http")(security_headers_middleware)
app.middleware("http")(request_logging_middleware)
app.middleware("http")(add_request_id_middleware)
app.middleware("http")(graceful_shutdown_middleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_cors_origins(),
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_exception_handler(ApiError, api_error_handler)
app.add_exception_handler(RequestValidationError, request_validation_error_handler)
app.add_exception_handler(StarletteHTTPException, http_exception_handler)
app.add_exception_handler(Exception, unhandled_exception_handler)

# Rate limiting
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

app.include_router(router)

setup_monitoring(app)

# Static frontend last so API routes take precedence
if os.path.isdir(settings.STATIC_DIR):
    app.mount("/", StaticFiles(directory=settings.STATIC_DIR, html=True), name="static")
    logger.info(f"Serving static files from {settings.STATIC_DIR}")


def run() -> None:
    """Console entry point: serve the API on the configured host and port."""
    uvicorn.run("app.main:app", host=settings.HOST, port=settings.PORT)


if __name__ == "__main__":
    run()
