"""
auth/tokens.py -- JWT issue/verify and password hashing.

Security design decisions:
  JWT: python-jose with HS256. Tokens are signed with SECRET_KEY and carry
       user_id, role, issued-at and expiry. Verification is a pure function of
       the token and the key: there is no server-side session store, so a
       token stays valid until it expires.

  Passwords: bcrypt used directly. The _DUMMY_HASH constant enables timing
       equalization in authenticate_user() so response time does not reveal
       whether an email is registered.

Layer rule: no imports from api/, tasks/, or cache/. Import from core/ is
allowed -- core/ is the kernel and has no reverse dependencies.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING

import bcrypt
from jose import ExpiredSignatureError, JWTError, jwt

from auth.models import Identity
from core.config import get_settings

if TYPE_CHECKING:
    from auth.models import User
    from auth.store import UserStore

logger = logging.getLogger("taskboard.auth")

_settings = get_settings()

_ALGORITHM = "HS256"


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class TokenError(Exception):
    """Base class for every reason a token is rejected."""


class MalformedToken(TokenError):
    pass


class ExpiredToken(TokenError):
    pass


class InvalidToken(TokenError):
    pass


# ---------------------------------------------------------------------------
# Password hashing
# ---------------------------------------------------------------------------


def hash_password(plain: str) -> str:
    """Return a bcrypt hash of the given plaintext password.

    bcrypt truncates input beyond 72 bytes; the API layer caps password
    length well below that.
    """
    return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """Return True if the plaintext password matches the bcrypt hash."""
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        return False


# Computed once at module load. Always run bcrypt, even for unknown emails,
# so the response time is the same either way.
_DUMMY_HASH: str = hash_password("taskboard_timing_dummy")


# ---------------------------------------------------------------------------
# JWT encode / decode
# ---------------------------------------------------------------------------


def create_access_token(user_id: int, role: str, expires_in: timedelta | None = None) -> str:
    """Encode a signed JWT with the user's identity.

    Args:
        user_id:    Numeric user ID stored in the DB.
        role:       User role ("user" or "admin") at issue time.
        expires_in: Token lifetime. Defaults to Settings.token_expire_seconds
                    (one hour).
    """
    issued_at = datetime.now(timezone.utc)
    lifetime = expires_in if expires_in is not None else timedelta(seconds=_settings.token_expire_seconds)
    payload = {
        "sub": str(user_id),
        "user_id": user_id,
        "role": role,
        "iat": issued_at,
        "exp": issued_at + lifetime,
    }
    return jwt.encode(payload, _settings.secret_key, algorithm=_ALGORITHM)


def verify_access_token(token: str) -> Identity:
    """Verify signature and expiry and return the token's Identity.

    Raises:
        MalformedToken: the token cannot be parsed, or lacks identity claims.
        ExpiredToken:   the exp claim is in the past.
        InvalidToken:   the signature does not match SECRET_KEY.
    """
    try:
        jwt.get_unverified_claims(token)
    except JWTError as exc:
        raise MalformedToken("Token is not a parseable JWT.") from exc

    try:
        payload = jwt.decode(token, _settings.secret_key, algorithms=[_ALGORITHM])
    except ExpiredSignatureError as exc:
        raise ExpiredToken("Token has expired.") from exc
    except JWTError as exc:
        raise InvalidToken("Token signature is invalid.") from exc

    user_id = payload.get("user_id")
    role = payload.get("role")
    # bool is an int subclass; a `true` claim must not read as user 1.
    if type(user_id) is not int or not isinstance(role, str):
        raise MalformedToken("Token is missing identity claims.")
    return Identity(user_id=user_id, role=role)


# ---------------------------------------------------------------------------
# User authentication (constant-time)
# ---------------------------------------------------------------------------


def authenticate_user(store: UserStore, email: str, password: str) -> User | None:
    """Authenticate an email/password login with timing equalization.

    - Unknown email: bcrypt runs against _DUMMY_HASH (same cost as real check)
    - Wrong password: bcrypt runs against the real hash (same cost)

    Returns the User on success, None on any failure.
    """
    user = store.get_by_email(email)
    if user is None or user.hashed_password is None:
        verify_password(password, _DUMMY_HASH)
        return None
    if not verify_password(password, user.hashed_password):
        return None
    return user
