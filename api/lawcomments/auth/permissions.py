"""Roles recognised in access tokens.

Only administrators may moderate comments; every other role, and any role
this service does not know, is treated as an anonymous visitor.
"""

from enum import Enum


class UserRole(str, Enum):
    """Roles carried in the token's ``role`` claim."""

    USER = "user"
    ADMIN = "admin"


def is_admin(role: UserRole | str | None) -> bool:
    """Check if role is ADMIN."""
    if isinstance(role, str):
        return role == UserRole.ADMIN.value
    return role == UserRole.ADMIN
