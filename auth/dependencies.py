"""
auth/dependencies.py -- FastAPI Depends() helpers for authentication.

The only credential carrier is the HttpOnly "token" cookie set by
POST /api/v1/login. Each helper builds a RequestContext from the cookie and
the route's path parameters, runs the access pipeline from auth/access.py,
stores the verified claims on request.state.user, and returns them.

  get_current_user       -- any valid token (401 without one, 403 if invalid).
  require_admin          -- valid token + "admin" role.
  require_admin_or_self  -- valid token + ("admin" role or {user_id} == own id).

Identity comes from the token alone; the store is not queried here.

auth/dependencies.py may import from fastapi (for Request) because this module
is part of the FastAPI dependency injection system.
"""

from __future__ import annotations

from collections.abc import Callable

from fastapi import Request

from auth.access import RequestContext, Stage, authenticate, authorize, run_pipeline
from auth.models import Role, TokenClaims
from auth.tokens import COOKIE_NAME


def require(*roles: Role, self_param: str | None = None) -> Callable[[Request], TokenClaims]:
    """Build a dependency enforcing authentication plus an optional role policy.

    With no roles and no self_param, only authentication is checked.

    Use as a FastAPI dependency:
        @router.get("/reports")
        async def route(claims: TokenClaims = Depends(require(Role.ADMIN, Role.CLIENT))): ...
    """

    def dependency(request: Request) -> TokenClaims:
        stages: list[Stage] = [authenticate(request.app.state.token_issuer)]
        if roles or self_param:
            stages.append(authorize(*roles, self_param=self_param))
        ctx = RequestContext(
            token=request.cookies.get(COOKIE_NAME),
            path_params=dict(request.path_params),
        )
        ctx = run_pipeline(stages, ctx)
        request.state.user = ctx.claims
        return ctx.claims

    return dependency


get_current_user = require()
require_admin = require(Role.ADMIN)
require_admin_or_self = require(Role.ADMIN, self_param="user_id")
