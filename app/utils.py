"""Utility functions for common operations across the application."""

from .config import settings


def join_categories(categories: list[str] | str | None) -> str:
    """Flatten category labels into the single delimited column value.

    A string is stored as-is so clients that already send "a,b" keep working.
    """
    if categories is None:
        return ""
    if isinstance(categories, str):
        return categories
    return settings.CATEGORY_DELIMITER.join(categories)


def split_categories(stored: str | None) -> list[str]:
    """Rebuild the ordered label list from the stored column value."""
    if not stored:
        return []
    return stored.split(settings.CATEGORY_DELIMITER)
