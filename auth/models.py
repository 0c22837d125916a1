"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic). Mirrors the approach
in tasks/models.py -- dataclasses own domain shape; stores and routes do the
work.

Layer rule: no imports from api/, tasks/, or cache/.
"""

from __future__ import annotations

from dataclasses import dataclass

ROLE_USER = "user"
ROLE_ADMIN = "admin"
ROLES: frozenset[str] = frozenset({ROLE_USER, ROLE_ADMIN})


@dataclass
class User:
    """A registered account.

    email is the login identifier and is unique across all users (stored
    lower-cased). username is a display name the user may change.
    """

    username: str
    email: str
    role: str = ROLE_USER  # "user" | "admin"
    id: int | None = None
    hashed_password: str | None = None
    created_at: str | None = None


@dataclass(frozen=True)
class Identity:
    """The verified claims of a bearer token, attached to each request.

    role is the role at the time the token was issued. A role change takes
    effect when the user next logs in.
    """

    user_id: int
    role: str
