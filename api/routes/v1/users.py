"""
api/routes/v1/users.py -- Registration, login, profile, and user administration.

Routes:
  POST  /api/v1/users/register             -- create an account (public)
  POST  /api/v1/users/login                -- email/password login, returns bearer token (public)
  GET   /api/v1/users/me                   -- current user's record (requires auth)
  PUT   /api/v1/users/me                   -- change own username (requires auth)
  GET   /api/v1/users/admin/all            -- list every user (admin only)
  PATCH /api/v1/users/admin/{user_id}/role -- change a user's role (admin only)

Security:
  POST /login is rate-limited per client IP (LOGIN_RATE_LIMIT).
  authenticate_user() provides timing equalization -- use it, never inline.
  Unknown email and wrong password return the same bad_credentials error.
  Cache-Control: no-store on login responses.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from api.limiter import limiter
from api.models import (
    LoginRequest,
    LoginResponse,
    ProfileUpdate,
    RegisterRequest,
    RoleUpdate,
    RowId,
    UserMessageResponse,
    UserResponse,
)
from auth.dependencies import get_current_identity, require_role
from auth.models import ROLE_ADMIN, Identity, User
from auth.store import UserStore
from auth.tokens import authenticate_user, create_access_token, hash_password
from core.config import get_settings
from core.errors import NotFoundError

logger = logging.getLogger("taskboard.api")

_settings = get_settings()

router = APIRouter(prefix="/users")


def _login_rate_limit() -> str:
    # slowapi calls this on every request to /login.
    return get_settings().login_rate_limit


# ---------------------------------------------------------------------------
# Public endpoints
# ---------------------------------------------------------------------------


@router.post("/register", response_model=UserMessageResponse, status_code=201)
def register(request: Request, body: RegisterRequest) -> UserMessageResponse:
    """Create a new account with the default "user" role.

    The email UNIQUE constraint is the single source of truth for duplicates;
    the store turns the violation into ConflictError.
    """
    user_store: UserStore = request.app.state.user_store
    user_id = user_store.create_user(
        User(
            username=body.username,
            email=body.email,
            hashed_password=hash_password(body.password),
        )
    )
    logger.info("Registered user %s", user_id)
    created = _require_user(user_store, user_id)
    return UserMessageResponse(message="User registered successfully", user=UserResponse.from_user(created))


@router.post("/login", response_model=LoginResponse)
@limiter.limit(_login_rate_limit)
def login(request: Request, body: LoginRequest) -> JSONResponse:
    """Authenticate with email and password and return a bearer token."""
    user_store: UserStore = request.app.state.user_store
    user = authenticate_user(user_store, body.email, body.password)
    if user is None:
        resp = JSONResponse(
            status_code=400,
            content={"error": {"code": "bad_credentials", "message": "Invalid email or password."}},
        )
        resp.headers["Cache-Control"] = "no-store"
        return resp

    token = create_access_token(user.id, user.role)
    resp = JSONResponse(
        status_code=200,
        content=LoginResponse(
            token=token,
            expires_in=_settings.token_expire_seconds,
            user=UserResponse.from_user(user),
        ).model_dump(),
    )
    resp.headers["Cache-Control"] = "no-store"
    return resp


# ---------------------------------------------------------------------------
# Authenticated endpoints
# ---------------------------------------------------------------------------


@router.get("/me", response_model=UserResponse)
def get_me(request: Request, identity: Identity = Depends(get_current_identity)) -> UserResponse:
    """Return the current user's record. 404 if the account no longer exists."""
    user_store: UserStore = request.app.state.user_store
    return UserResponse.from_user(_require_user(user_store, identity.user_id))


@router.put("/me", response_model=UserResponse)
def update_me(
    request: Request,
    body: ProfileUpdate,
    identity: Identity = Depends(get_current_identity),
) -> UserResponse:
    """Change the current user's username."""
    user_store: UserStore = request.app.state.user_store
    updated = user_store.update_username(identity.user_id, body.username)
    return UserResponse.from_user(updated)


# ---------------------------------------------------------------------------
# User management (admin only)
# ---------------------------------------------------------------------------


@router.get("/admin/all", response_model=list[UserResponse])
def list_users(request: Request, identity: Identity = Depends(require_role(ROLE_ADMIN))) -> list[UserResponse]:
    """List all user accounts. Admin only, never cached."""
    user_store: UserStore = request.app.state.user_store
    return [UserResponse.from_user(u) for u in user_store.list_users()]


@router.patch("/admin/{user_id}/role", response_model=UserMessageResponse)
def change_role(
    request: Request,
    user_id: RowId,
    body: RoleUpdate,
    identity: Identity = Depends(require_role(ROLE_ADMIN)),
) -> UserMessageResponse:
    """Change a user's role. Takes effect at that user's next login."""
    user_store: UserStore = request.app.state.user_store
    updated = user_store.change_role(user_id, body.role.value)
    logger.info("User %s role set to %s by admin %s", user_id, updated.role, identity.user_id)
    return UserMessageResponse(message="User role updated", user=UserResponse.from_user(updated))


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _require_user(user_store: UserStore, user_id: int) -> User:
    user = user_store.get_by_id(user_id)
    if user is None:
        raise NotFoundError("User not found.")
    return user
