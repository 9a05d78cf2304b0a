"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, near-zero logic). Dataclasses own
domain shape; the store, services, and routes do the work.

Layer rule: no imports from api/.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class Role(str, Enum):
    USER = "user"
    ADMIN = "admin"
    CLIENT = "client"


DEFAULT_ROLES: tuple[str, ...] = (Role.USER.value,)


@dataclass
class User:
    """A user record as held by the Directory (auth/store.py).

    email is always stored lowercased and stripped, so equality on it is
    case-insensitive by construction.

    password_hash is populated only on the login verification path
    (UserStore.find_by_email(..., include_password_hash=True)). Every other
    read leaves it None, which keeps the digest from drifting into responses.
    """

    full_name: str
    email: str
    roles: tuple[str, ...] = DEFAULT_ROLES
    id: str | None = None  # 24 hex chars, assigned by the store
    password_hash: str | None = None
    created_at: str | None = None
    updated_at: str | None = None


@dataclass(frozen=True)
class UserProfile:
    """Public projection of a User. Never carries the password hash."""

    id: str
    full_name: str
    email: str
    roles: tuple[str, ...]

    @classmethod
    def from_user(cls, user: User) -> UserProfile:
        return cls(id=user.id or "", full_name=user.full_name, email=user.email, roles=tuple(user.roles))


@dataclass(frozen=True)
class TokenClaims:
    """Identity carried inside a signed access token.

    issued_at / expires_at are POSIX seconds. The token is the only source of
    roles for a request -- role changes apply once a new token is issued.
    """

    id: str
    full_name: str
    email: str
    roles: tuple[str, ...]
    issued_at: int
    expires_at: int
