"""Pydantic schemas for request/response validation and serialization."""

from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime


# ==================== Error Schemas ====================

class ErrorResponse(BaseModel):
    """Body of every failed request."""
    error: str


class SuccessResponse(BaseModel):
    success: bool = True


# ==================== Authentication Schemas ====================

class Credentials(BaseModel):
    """Username/password body for register and login.

    Both fields are optional here so a missing field is reported as a
    400 by the service layer instead of a schema error.
    """
    username: str | None = Field(None, description="Unique username")
    password: str | None = Field(None, description="Plain text password")


class AuthResponse(BaseModel):
    """Token issued on successful register or login."""
    model_config = ConfigDict(populate_by_name=True)

    token: str
    user_id: int = Field(..., alias="userId")
    username: str


class CurrentUser(BaseModel):
    """Identity decoded from a verified bearer token."""
    id: int
    username: str


# ==================== Idea Schemas ====================

class IdeaIn(BaseModel):
    """Body for creating or updating an idea."""
    title: str | None = None
    notes: str | None = None
    categories: list[str] | str | None = Field(
        None, description="Labels as an array, or a pre-joined comma-delimited string"
    )
    excitement: int | None = Field(None, description="Rating from 1 to 10, defaults to 5")


class IdeaOut(BaseModel):
    id: int
    user_id: int
    title: str
    notes: str
    categories: list[str]
    excitement: int
    created_at: datetime
