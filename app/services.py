"""Business logic layer for authentication and idea operations.

Validates input the way the HTTP API promises (400s before touching the
store), maps store outcomes onto the error taxonomy and logs every mutation.
"""

from contextlib import asynccontextmanager

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from .schemas import (
    AuthResponse,
    Credentials,
    CurrentUser,
    IdeaIn,
    IdeaOut,
    SuccessResponse,
)
from .crud import (
    insert_user,
    select_user_by_username,
    list_ideas as crud_list_ideas,
    insert_idea as crud_insert_idea,
    update_idea as crud_update_idea,
    delete_idea as crud_delete_idea,
)
from .auth import hash_password, verify_password, create_access_token
from .errors import AuthError, Conflict, NotFound, StorageError, ValidationError
from .models import Idea, User
from .utils import join_categories, split_categories
from .config import settings
from .logger import logger

# ==================== Helper Functions ====================


def _convert_to_idea_out(idea: Idea) -> IdeaOut:
    """Convert ORM Idea model to IdeaOut schema, splitting the categories column."""
    return IdeaOut(
        id=idea.id,
        user_id=idea.user_id,
        title=idea.title,
        notes=idea.notes or "",
        categories=split_categories(idea.categories),
        excitement=idea.excitement if idea.excitement is not None else settings.EXCITEMENT_DEFAULT,
        created_at=idea.created_at,
    )


def _issue_auth_response(user: User) -> AuthResponse:
    token = create_access_token(user.id, user.username)
    return AuthResponse(token=token, user_id=user.id, username=user.username)


def _require_credentials(data: Credentials) -> tuple[str, str]:
    if not data.username or not data.password:
        raise ValidationError("Username and password required")
    return data.username, data.password


def _validate_excitement(excitement: int | None) -> int:
    """Return the rating to store: the supplied value, or the default when absent."""
    if excitement is None:
        return settings.EXCITEMENT_DEFAULT
    if not settings.EXCITEMENT_MIN <= excitement <= settings.EXCITEMENT_MAX:
        raise ValidationError(
            f"Excitement must be {settings.EXCITEMENT_MIN}-{settings.EXCITEMENT_MAX}"
        )
    return excitement


# Row ids are signed 64-bit integers in every supported database
_MAX_ROW_ID = 2**63 - 1


def _require_storable_id(idea_id: int) -> None:
    """An id the database cannot represent names no idea; report it as missing."""
    if not -_MAX_ROW_ID - 1 <= idea_id <= _MAX_ROW_ID:
        raise NotFound("Idea not found")


@asynccontextmanager
async def _storage_errors(action: str):
    """Translate driver failures into a generic StorageError."""
    try:
        yield
    except SQLAlchemyError as e:
        logger.error(f"Storage failure while {action}: {str(e)}", exc_info=True)
        raise StorageError() from e


# ==================== Authentication ====================


async def register_user(session: AsyncSession, data: Credentials) -> AuthResponse:
    """Create an account and issue its first token."""
    username, password = _require_credentials(data)
    logger.info(f"Registering new user: {username}")

    password_hash = hash_password(password)

    try:
        async with _storage_errors("registering user"):
            user = await insert_user(session, username, password_hash)
    except ValueError as e:
        logger.warning(f"Registration failed - username already exists: {username}")
        raise Conflict("Username already exists") from e

    logger.info(f"User registered successfully: id={user.id} username={user.username}")
    return _issue_auth_response(user)


async def verify_credentials(session: AsyncSession, username: str, password: str) -> User:
    """Return the user if the password matches.

    Unknown usernames and wrong passwords raise the same AuthError so the
    response never reveals which usernames exist.
    """
    async with _storage_errors("looking up user"):
        user = await select_user_by_username(session, username)

    if user is None:
        logger.warning(f"Authentication failed - user not found: {username}")
        raise AuthError("Invalid credentials")

    if not verify_password(password, user.password_hash):
        logger.warning(f"Authentication failed - invalid password for user: {username}")
        raise AuthError("Invalid credentials")

    return user


async def login_user(session: AsyncSession, data: Credentials) -> AuthResponse:
    """Authenticate a user and return a fresh token."""
    username, password = _require_credentials(data)
    logger.info(f"Authentication attempt for user: {username}")

    user = await verify_credentials(session, username, password)

    logger.info(f"Authentication successful for user: {username} (id={user.id})")
    return _issue_auth_response(user)


# ==================== Idea Operations ====================


async def list_ideas(session: AsyncSession, current_user: CurrentUser) -> list[IdeaOut]:
    """List the caller's ideas, newest first."""
    async with _storage_errors("listing ideas"):
        ideas = await crud_list_ideas(session, current_user.id)
    return [_convert_to_idea_out(idea) for idea in ideas]


async def create_idea(session: AsyncSession, current_user: CurrentUser, data: IdeaIn) -> IdeaOut:
    """Create an idea owned by the caller and return the stored record."""
    if not data.title:
        raise ValidationError("Title required")
    excitement = _validate_excitement(data.excitement)

    async with _storage_errors("creating idea"):
        idea = await crud_insert_idea(
            session,
            user_id=current_user.id,
            title=data.title,
            notes=data.notes or "",
            categories=join_categories(data.categories),
            excitement=excitement,
        )

    logger.info(f"Idea created: id={idea.id} user_id={current_user.id}")
    return _convert_to_idea_out(idea)


async def update_idea(
    session: AsyncSession,
    current_user: CurrentUser,
    idea_id: int,
    data: IdeaIn,
) -> SuccessResponse:
    """Overwrite every editable field of an idea the caller owns.

    The title is written as provided; omitted optional fields reset to
    their defaults.
    """
    excitement = _validate_excitement(data.excitement)
    _require_storable_id(idea_id)
    values = {
        "title": data.title,
        "notes": data.notes or "",
        "categories": join_categories(data.categories),
        "excitement": excitement,
    }

    async with _storage_errors("updating idea"):
        changed = await crud_update_idea(session, idea_id, current_user.id, values)

    if changed == 0:
        logger.warning(f"Cannot update - idea not found: id={idea_id} user_id={current_user.id}")
        raise NotFound("Idea not found")

    logger.info(f"Idea updated: id={idea_id} user_id={current_user.id}")
    return SuccessResponse()


async def delete_idea(session: AsyncSession, current_user: CurrentUser, idea_id: int) -> SuccessResponse:
    """Delete an idea the caller owns."""
    _require_storable_id(idea_id)
    async with _storage_errors("deleting idea"):
        deleted = await crud_delete_idea(session, idea_id, current_user.id)

    if deleted == 0:
        logger.warning(f"Cannot delete - idea not found: id={idea_id} user_id={current_user.id}")
        raise NotFound("Idea not found")

    logger.info(f"Idea deleted: id={idea_id} user_id={current_user.id}")
    return SuccessResponse()
