"""Reusable Pydantic validators."""

from hearinghope.auth.permissions import invalid_permissions


def validate_permission_list(value: list[str] | None) -> list[str] | None:
    """Reject unknown `resource:action` strings and drop duplicates.

    Order of first occurrence is kept.
    """
    if value is None:
        return None
    bad = invalid_permissions(value)
    if bad:
        raise ValueError(f"Invalid permission format: {', '.join(bad)}")
    return list(dict.fromkeys(value))


def normalize_email(value: str) -> str:
    return value.strip().lower()
