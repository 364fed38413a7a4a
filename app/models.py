"""SQLAlchemy ORM models for the users and ideas tables."""

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from .db import Base
from .config import settings


class User(Base):
    """Account owning a set of ideas. Never updated after registration."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    username = Column(String(255), nullable=False, unique=True)
    password_hash = Column(String(255), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    # Deletion of ideas is left to the database's ON DELETE CASCADE
    ideas = relationship("Idea", back_populates="owner", passive_deletes=True)


class Idea(Base):
    """Idea record; categories are stored as one delimiter-joined text field."""

    __tablename__ = "ideas"
    __table_args__ = (
        CheckConstraint(
            f"excitement >= {settings.EXCITEMENT_MIN} AND excitement <= {settings.EXCITEMENT_MAX}",
            name="ck_ideas_excitement_range",
        ),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    title = Column(Text, nullable=False)
    notes = Column(Text, default="")
    categories = Column(Text, default="")
    excitement = Column(Integer, default=settings.EXCITEMENT_DEFAULT)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    owner = relationship("User", back_populates="ideas")
