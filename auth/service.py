"""
auth/service.py -- Registration, login, password reset and user lookup.

Pure business logic with no HTTP dependencies. Raises AppError; the route
layer maps it to HTTP status codes.

Every operation validates its input first, so a rejected request never
leaves a partial write behind. Store calls and bcrypt work run in a worker
thread (run_in_threadpool) -- both block, and bcrypt is slow on purpose.

Duplicate emails are checked twice: an optimistic find_by_email() before
hashing, and the store's UNIQUE constraint on insert. Two concurrent
registrations can both pass the first check; the second insert then raises
IntegrityError, which is reported as the same conflict.

Layer rule: no imports from api/.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi.concurrency import run_in_threadpool
from sqlalchemy.exc import IntegrityError

from auth.models import DEFAULT_ROLES, TokenClaims, UserProfile
from auth.passwords import PasswordHasher
from auth.store import UserStore, normalize_email
from auth.tokens import TokenIssuer
from auth.validation import validate, validate_user_id
from core.errors import AppError, ErrorCode

logger = logging.getLogger("authgate.auth.service")

_INVALID_CREDENTIALS = "Invalid email or password."


def _email_taken() -> AppError:
    return AppError.conflict("User with this email already exists.", ErrorCode.EMAIL_ALREADY_REGISTERED)


def _user_not_found(user_id: str) -> AppError:
    return AppError.not_found(f"User with ID {user_id} not found.", ErrorCode.USER_NOT_FOUND)


class AuthService:
    def __init__(self, store: UserStore, hasher: PasswordHasher, issuer: TokenIssuer) -> None:
        self.store = store
        self.hasher = hasher
        self.issuer = issuer

    async def register(self, payload: Any) -> UserProfile:
        """Create a user from a registration payload and return its public profile.

        Raises:
            AppError(VALIDATION): payload fails the registration schema
            AppError(CONFLICT):   email already registered (pre-check or store constraint)
        """
        validate("registration", payload)
        full_name = payload["fullName"].strip()
        email = normalize_email(payload["email"])
        role = payload.get("role")
        roles = (role.lower(),) if role else DEFAULT_ROLES

        if await run_in_threadpool(self.store.find_by_email, email) is not None:
            raise _email_taken()

        password_hash = await run_in_threadpool(self.hasher.hash, payload["password"])
        try:
            user = await run_in_threadpool(self.store.create, full_name, email, password_hash, roles)
        except IntegrityError as exc:
            logger.info("Duplicate registration lost the insert race")
            raise _email_taken() from exc

        logger.info("User registered", extra={"userId": user.id, "roles": list(user.roles)})
        return UserProfile.from_user(user)

    async def login(self, payload: Any) -> str:
        """Check credentials and return a signed access token.

        Unknown email and wrong password raise the identical error, and both
        paths run one full bcrypt check, so neither the message nor the
        timing tells a caller which accounts exist.
        """
        validate("login", payload)
        user = await run_in_threadpool(self.store.find_by_email, payload["email"], True)
        digest = user.password_hash if user is not None else None
        matched = await run_in_threadpool(self.hasher.verify, payload["password"], digest)
        if user is None or not matched:
            raise AppError.authentication(_INVALID_CREDENTIALS, ErrorCode.INVALID_CREDENTIALS)

        logger.info("User logged in", extra={"userId": user.id})
        return self.issuer.issue(user)

    async def reset_password(self, user_id: str, payload: Any) -> bool:
        """Admin-initiated reset of another user's password."""
        validate("passwordReset", payload)
        validate_user_id(user_id)

        if await run_in_threadpool(self.store.find_by_id, user_id) is None:
            raise _user_not_found(user_id)

        password_hash = await run_in_threadpool(self.hasher.hash, payload["newPassword"])
        if not await run_in_threadpool(self.store.update_password_hash, user_id, password_hash):
            # Deleted between lookup and update
            raise _user_not_found(user_id)

        logger.info("Password reset", extra={"userId": user_id})
        return True

    async def delete_user(self, user_id: str) -> bool:
        validate_user_id(user_id)
        if not await run_in_threadpool(self.store.delete_by_id, user_id):
            raise _user_not_found(user_id)
        logger.info("User deleted", extra={"userId": user_id})
        return True

    @staticmethod
    def profile_from_claims(claims: TokenClaims) -> UserProfile:
        """Build the caller's profile from their token alone -- no store round-trip."""
        return UserProfile(id=claims.id, full_name=claims.full_name, email=claims.email, roles=claims.roles)


class UserService:
    """Read-side user operations for admin and self-service routes."""

    def __init__(self, store: UserStore) -> None:
        self.store = store

    async def get_profile(self, user_id: str) -> UserProfile:
        validate_user_id(user_id)
        user = await run_in_threadpool(self.store.find_by_id, user_id)
        if user is None:
            raise _user_not_found(user_id)
        return UserProfile.from_user(user)

    async def list_profiles(self) -> list[UserProfile]:
        users = await run_in_threadpool(self.store.list_all)
        return [UserProfile.from_user(u) for u in users]

    async def count_users(self) -> int:
        return await run_in_threadpool(self.store.count)
