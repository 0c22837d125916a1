"""
auth/dependencies.py -- FastAPI Depends() helpers for authentication.

get_current_identity() is the auth gate: it reads the
`Authorization: Bearer <token>` header, verifies the token, and attaches the
resulting Identity to request.state.identity. Any failure is a 401 and the
route handler never runs.

require_role(*roles) builds a role gate on top of it. Ordering matters: the
role gate reads the identity produced by the auth gate, so it must run after
it. Here that ordering is structural -- the gate declares
Depends(get_current_identity) as its own sub-dependency, and FastAPI resolves
sub-dependencies first (and only once per request, even when a router also
lists get_current_identity). Code that reads request.state.identity outside
this chain is misconfigured.

No database lookup happens here: the token alone is the proof of identity.

Layer rule: no imports from tasks/ or cache/. This module may import from
fastapi because it is part of the FastAPI dependency injection system.
"""

from __future__ import annotations

from collections.abc import Callable

from fastapi import Depends, Request

from auth.models import Identity
from auth.tokens import TokenError, verify_access_token
from core.errors import AuthError, ForbiddenError


def get_current_identity(request: Request) -> Identity:
    """Require a valid bearer token. Raises AuthError (401) otherwise.

    Use as a FastAPI dependency:
        @router.get("/protected")
        def route(identity: Identity = Depends(get_current_identity)): ...
    """
    auth_header = request.headers.get("Authorization", "")
    scheme, _, token = auth_header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise AuthError("Authentication required.")

    try:
        identity = verify_access_token(token.strip())
    except TokenError as exc:
        raise AuthError("Invalid or expired token.") from exc

    request.state.identity = identity
    return identity


def require_role(*roles: str) -> Callable[..., Identity]:
    """Build a dependency that allows only identities whose role is in roles.

    Raises AuthError (401) if unauthenticated, ForbiddenError (403) if the
    role is not allowed.

        @router.get("/admin/all")
        def route(identity: Identity = Depends(require_role("admin"))): ...
    """
    allowed = frozenset(roles)

    def role_gate(identity: Identity = Depends(get_current_identity)) -> Identity:
        if identity.role not in allowed:
            raise ForbiddenError("Insufficient permissions.")
        return identity

    return role_gate
