"""
auth/access.py -- Access control as an ordered pipeline of pure stages.

A stage takes a RequestContext and returns either a (possibly enriched)
RequestContext to continue with, or an AppError to stop with. Stages never
raise and never touch the request object; run_pipeline() is the only place
that turns a returned error into an exception. That keeps every stage
testable with plain values.

Protected request state machine:
    Start -(no token)-> 401 TOKEN_MISSING
    Start -(token)-> verify -(fail)-> 403 TOKEN_INVALID
                            -(ok)-> check roles -(fail)-> 403 AUTHORIZATION_ERROR
                                                -(ok)-> handler

Layer rule: no imports from api/. FastAPI wiring lives in auth/dependencies.py.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field, replace
from typing import Union

from auth.models import Role, TokenClaims
from auth.tokens import TokenIssuer
from core.errors import AppError, ErrorCode, ErrorKind


@dataclass(frozen=True)
class RequestContext:
    token: str | None
    path_params: Mapping[str, str] = field(default_factory=dict)
    claims: TokenClaims | None = None


StageResult = Union[RequestContext, AppError]
Stage = Callable[[RequestContext], StageResult]


def authenticate(issuer: TokenIssuer) -> Stage:
    """Stage 1: require a token that verifies, and attach its claims."""

    def stage(ctx: RequestContext) -> StageResult:
        if not ctx.token:
            return AppError.authentication("No token provided. Access denied.", ErrorCode.TOKEN_MISSING)
        claims = issuer.verify(ctx.token)
        if claims is None:
            return AppError(
                ErrorKind.AUTHENTICATION,
                "Invalid or expired token. Access forbidden.",
                ErrorCode.TOKEN_INVALID,
            )
        return replace(ctx, claims=claims)

    return stage


def authorize(*roles: Role | str, self_param: str | None = None) -> Stage:
    """Stage 2: allow if the caller holds any of roles.

    self_param names a path parameter; when its value equals the caller's own
    id the request is allowed regardless of role. This is a per-route policy,
    off unless the route asks for it.
    """
    required = frozenset(Role(r).value for r in roles)

    def stage(ctx: RequestContext) -> StageResult:
        if ctx.claims is None or not ctx.claims.roles:
            return AppError.authorization("User roles not found. Access forbidden.")
        if self_param is not None and ctx.path_params.get(self_param) == ctx.claims.id:
            return ctx
        if required.intersection(ctx.claims.roles):
            return ctx
        return AppError.authorization("Insufficient permissions. Access forbidden.")

    return stage


def run_pipeline(stages: Sequence[Stage], ctx: RequestContext) -> RequestContext:
    """Apply stages in order. Raises the first AppError a stage returns."""
    for stage in stages:
        result = stage(ctx)
        if isinstance(result, AppError):
            raise result
        ctx = result
    return ctx
