"""
auth/tokens.py -- JWT issuance/verification and the credential cookie.

Security design decisions:
  JWT: python-jose with HS256. Tokens are signed with JWT_SECRET and carry
       id, fullName, email, roles, iat and exp. Verification returns None on
       any failure -- bad signature, malformed structure, missing claims, or
       expiry all look the same to the caller, so a client cannot tell
       tampering apart from an expired session.

  Expiry: checked against the issuer's own clock (valid while
       iat <= now < exp) instead of jose's built-in check, which accepts a
       token during the second it expires. The clock is injectable so tests
       can pin time.

  Cookie: the token travels in an HttpOnly, SameSite=Strict cookie named
       "token". The route layer never touches cookie attributes directly --
       use set_auth_cookie() / clear_auth_cookie() so set and clear always
       match (a mismatched Path or SameSite leaves the cookie behind).

Layer rule: no imports from api/.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable

from jose import JWTError, jwt

from auth.models import Role, TokenClaims, User

logger = logging.getLogger("authgate.auth.tokens")

_ALGORITHM = "HS256"
_KNOWN_ROLES = frozenset(r.value for r in Role)

COOKIE_NAME = "token"
COOKIE_MAX_AGE = 24 * 60 * 60


# ---------------------------------------------------------------------------
# JWT encode / decode
# ---------------------------------------------------------------------------


class TokenIssuer:
    """Signs and verifies access tokens with one process-wide secret.

    Usage:
        issuer = TokenIssuer(settings.jwt_secret, settings.token_ttl_seconds)
        token = issuer.issue(user)
        claims = issuer.verify(token)  # TokenClaims or None
    """

    def __init__(self, secret: str, ttl_seconds: int = 7200, clock: Callable[[], float] = time.time) -> None:
        self._secret = secret
        self.ttl_seconds = ttl_seconds
        self._clock = clock

    def issue(self, user: User) -> str:
        """Encode a signed JWT for user, expiring ttl_seconds from now."""
        issued_at = int(self._clock())
        payload = {
            "id": user.id,
            "fullName": user.full_name,
            "email": user.email,
            "roles": list(user.roles),
            "iat": issued_at,
            "exp": issued_at + self.ttl_seconds,
        }
        return jwt.encode(payload, self._secret, algorithm=_ALGORITHM)

    def verify(self, token: str) -> TokenClaims | None:
        """Decode and verify a JWT. Returns the claims or None on any failure."""
        try:
            payload = jwt.decode(token, self._secret, algorithms=[_ALGORITHM], options={"verify_exp": False})
        except JWTError as exc:
            logger.debug("JWT verification failed: %s", exc)
            return None

        claims = _claims_from_payload(payload)
        if claims is None:
            logger.debug("JWT rejected: missing or ill-typed claims")
            return None
        if not claims.issued_at <= self._clock() < claims.expires_at:
            logger.debug("JWT rejected: outside its validity window")
            return None
        return claims


def _claims_from_payload(payload: dict) -> TokenClaims | None:
    roles = payload.get("roles")
    if not isinstance(roles, list) or not roles or not all(r in _KNOWN_ROLES for r in roles):
        return None
    fields = (payload.get("id"), payload.get("fullName"), payload.get("email"))
    if not all(isinstance(f, str) and f for f in fields):
        return None
    issued_at, expires_at = payload.get("iat"), payload.get("exp")
    if not isinstance(issued_at, int) or not isinstance(expires_at, int):
        return None
    return TokenClaims(
        id=payload["id"],
        full_name=payload["fullName"],
        email=payload["email"],
        roles=tuple(roles),
        issued_at=issued_at,
        expires_at=expires_at,
    )


# ---------------------------------------------------------------------------
# Cookie helpers
# ---------------------------------------------------------------------------


def set_auth_cookie(response, token: str, secure: bool) -> None:
    """Write the JWT as an HttpOnly cookie on the response.

    httponly=True: JS cannot read the cookie (XSS mitigation).
    samesite="strict": never sent on cross-site requests (CSRF mitigation).
    secure: only sent over HTTPS; callers pass Settings.secure_cookies.
    max_age: 24h. The JWT inside usually expires sooner; the cookie simply
        outlives it and the next request gets a 403.
    """
    response.set_cookie(
        COOKIE_NAME,
        value=token,
        httponly=True,
        samesite="strict",
        secure=secure,
        max_age=COOKIE_MAX_AGE,
        path="/",
    )


def clear_auth_cookie(response, secure: bool) -> None:
    """Delete the JWT cookie with the same attributes it was set with."""
    response.delete_cookie(
        COOKIE_NAME,
        path="/",
        secure=secure,
        httponly=True,
        samesite="strict",
    )
