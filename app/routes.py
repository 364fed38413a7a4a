# API route definitions (HTTP layer)
# Defines ENDPOINTS; business rules live in services

import os
from fastapi import APIRouter, Request, Depends
from fastapi.responses import JSONResponse, Response
from sqlalchemy.ext.asyncio import AsyncSession
from .schemas import (
    AuthResponse,
    Credentials,
    CurrentUser,
    ErrorResponse,
    IdeaIn,
    IdeaOut,
    SuccessResponse,
)
from .db import get_session, check_db_connection
from .dependencies import get_current_user
from . import services
from .config import settings
from slowapi import Limiter
from slowapi.util import get_remote_address

limiter = Limiter(key_func=get_remote_address)

# Helper to conditionally apply rate limiting (skip in tests)
def conditional_limit(limit_string):
    """Apply rate limit only if not in test mode."""
    if os.getenv('TEST_MODE'):
        def decorator(func):
            return func
        return decorator
    return limiter.limit(limit_string)


AUTH_ERRORS = {
    401: {"model": ErrorResponse, "description": "Missing token"},
    403: {"model": ErrorResponse, "description": "Invalid token"},
    500: {"model": ErrorResponse, "description": "Database error"},
}

router = APIRouter()
api = APIRouter(prefix="/api")


@router.get("/health")
async def health_check(session: AsyncSession = Depends(get_session)):
    """Health check endpoint for load balancers and monitoring.

    Returns:
        - 200 OK if the database answers
        - 503 Service Unavailable otherwise
    """
    health_status = {
        "status": "healthy",
        "service": settings.APP_NAME,
        "environment": settings.APP_ENV,
        "database": "connected",
    }

    if not await check_db_connection(session):
        health_status["status"] = "unhealthy"
        health_status["database"] = "disconnected"
        return JSONResponse(status_code=503, content=health_status)

    return health_status


@router.get("/favicon.ico", include_in_schema=False)
async def favicon():
    return Response(status_code=204)


# ============================================================================
# Authentication Endpoints
# ============================================================================

@api.post(
    "/register",
    response_model=AuthResponse,
    responses={400: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
@conditional_limit(settings.RATE_LIMIT_AUTH)
async def register(
    credentials: Credentials,
    request: Request,
    session: AsyncSession = Depends(get_session),
):
    """Register a new user and return a session token.

    Raises:
        400: Username or password missing
        409: Username already exists
    """
    return await services.register_user(session, credentials)


@api.post(
    "/login",
    response_model=AuthResponse,
    responses={400: {"model": ErrorResponse}, 401: {"model": ErrorResponse}},
)
@conditional_limit(settings.RATE_LIMIT_AUTH)
async def login(
    credentials: Credentials,
    request: Request,
    session: AsyncSession = Depends(get_session),
):
    """Authenticate a user and return a session token.

    Raises:
        400: Username or password missing
        401: Invalid credentials
    """
    return await services.login_user(session, credentials)


# ============================================================================
# Idea Endpoints (bearer token required)
# ============================================================================

@api.get("/ideas", response_model=list[IdeaOut], responses=AUTH_ERRORS)
@conditional_limit(settings.RATE_LIMIT_READ)
async def list_ideas(
    request: Request,
    current_user: CurrentUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    return await services.list_ideas(session, current_user)


@api.post(
    "/ideas",
    response_model=IdeaOut,
    responses={400: {"model": ErrorResponse}, **AUTH_ERRORS},
)
@conditional_limit(settings.RATE_LIMIT_WRITE)
async def create_idea(
    idea: IdeaIn,
    request: Request,
    current_user: CurrentUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    return await services.create_idea(session, current_user, idea)


@api.put(
    "/ideas/{idea_id}",
    response_model=SuccessResponse,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}, **AUTH_ERRORS},
)
@conditional_limit(settings.RATE_LIMIT_WRITE)
async def update_idea(
    idea_id: int,
    idea: IdeaIn,
    request: Request,
    current_user: CurrentUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    return await services.update_idea(session, current_user, idea_id, idea)


@api.delete(
    "/ideas/{idea_id}",
    response_model=SuccessResponse,
    responses={404: {"model": ErrorResponse}, **AUTH_ERRORS},
)
@conditional_limit(settings.RATE_LIMIT_WRITE)
async def delete_idea(
    idea_id: int,
    request: Request,
    current_user: CurrentUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    return await services.delete_idea(session, current_user, idea_id)


router.include_router(api)
