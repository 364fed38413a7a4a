"""Database CRUD operations for users and ideas.

Every idea statement is predicated on the owning user's id, so one user's
session can never touch another user's rows.
"""

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from .models import Idea, User
from .logger import logger


# ==================== User Operations ====================


async def insert_user(session: AsyncSession, username: str, password_hash: str) -> User:
    """Insert a new user. Raises ValueError on duplicate username."""
    user = User(username=username, password_hash=password_hash)
    session.add(user)
    try:
        await session.commit()
    except IntegrityError as e:
        await session.rollback()
        logger.debug(f"Duplicate username rejected: {username}")
        raise ValueError("duplicate username") from e
    await session.refresh(user)
    return user


async def select_user_by_username(session: AsyncSession, username: str) -> User | None:
    """Retrieve a user by username."""
    result = await session.execute(select(User).where(User.username == username))
    return result.scalars().first()


async def delete_user(session: AsyncSession, user_id: int) -> bool:
    """Delete a user; the database cascades the delete to their ideas."""
    try:
        result = await session.execute(delete(User).where(User.id == user_id))
        await session.commit()
    except Exception:
        await session.rollback()
        logger.error(f"Failed to delete user id={user_id}", exc_info=True)
        raise
    return result.rowcount > 0


# ==================== Idea Operations ====================


async def list_ideas(session: AsyncSession, user_id: int) -> list[Idea]:
    """All ideas owned by user_id, newest first."""
    stmt = (
        select(Idea)
        .where(Idea.user_id == user_id)
        .order_by(Idea.created_at.desc(), Idea.id.desc())
    )
    result = await session.execute(stmt)
    ideas = list(result.scalars().all())
    logger.debug(f"Query executed: returned {len(ideas)} ideas for user id={user_id}")
    return ideas


async def insert_idea(
    session: AsyncSession,
    user_id: int,
    title: str,
    notes: str,
    categories: str,
    excitement: int,
) -> Idea:
    """Insert an idea and reload it so the generated id and timestamp are populated."""
    idea = Idea(
        user_id=user_id,
        title=title,
        notes=notes,
        categories=categories,
        excitement=excitement,
    )
    session.add(idea)
    try:
        await session.commit()
    except Exception:
        await session.rollback()
        logger.error(f"Failed to insert idea for user id={user_id}", exc_info=True)
        raise
    await session.refresh(idea)
    return idea


async def update_idea(
    session: AsyncSession,
    idea_id: int,
    user_id: int,
    values: dict,
) -> int:
    """Overwrite an owned idea's editable fields. Returns the number of rows changed."""
    stmt = (
        update(Idea)
        .where(Idea.id == idea_id, Idea.user_id == user_id)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    try:
        result = await session.execute(stmt)
        await session.commit()
    except Exception:
        await session.rollback()
        logger.error(f"Failed to update idea id={idea_id} for user id={user_id}", exc_info=True)
        raise
    return result.rowcount


async def delete_idea(session: AsyncSession, idea_id: int, user_id: int) -> int:
    """Delete an owned idea. Returns the number of rows removed."""
    stmt = (
        delete(Idea)
        .where(Idea.id == idea_id, Idea.user_id == user_id)
        .execution_options(synchronize_session=False)
    )
    try:
        result = await session.execute(stmt)
        await session.commit()
    except Exception:
        await session.rollback()
        logger.error(f"Failed to delete idea id={idea_id} for user id={user_id}", exc_info=True)
        raise
    return result.rowcount
