"""Unit tests for auth/service.py -- AuthService and UserService.

Covers:
- register: public profile returned, default role, duplicate email in any case
- register: insert race (pre-check passes, UNIQUE constraint fires) -> same conflict
- register: two concurrent registrations for one email -> exactly one wins
- login: unknown email and wrong password are indistinguishable
- reset_password / delete_user: validation, not found, success
- UserService reads

Services are async; each test drives them with asyncio.run().
"""

from __future__ import annotations

import asyncio

import pytest
from sqlalchemy.exc import IntegrityError

from auth.models import TokenClaims
from auth.passwords import PasswordHasher
from auth.service import AuthService, UserService
from auth.store import UserStore
from auth.tokens import TokenIssuer
from core.errors import AppError, ErrorCode, ErrorKind

JANE = {"fullName": "Jane Doe", "email": "jane@x.com", "password": "Secret1!", "role": "user"}
MISSING_ID = "0" * 24


def _run(coro):
    return asyncio.run(coro)


class TestRegister:
    def test_returns_public_profile(self, auth_service: AuthService) -> None:
        profile = _run(auth_service.register(JANE))
        assert profile.full_name == "Jane Doe"
        assert profile.email == "jane@x.com"
        assert profile.roles == ("user",)
        assert len(profile.id) == 24
        assert not hasattr(profile, "password_hash")

    def test_stores_a_bcrypt_hash_not_the_password(self, auth_service: AuthService, store: UserStore) -> None:
        _run(auth_service.register(JANE))
        stored = store.find_by_email("jane@x.com", include_password_hash=True)
        assert stored is not None
        assert stored.password_hash != "Secret1!"
        assert stored.password_hash.startswith("$2b$")

    def test_full_name_is_trimmed(self, auth_service: AuthService, user_service: UserService) -> None:
        profile = _run(auth_service.register({**JANE, "fullName": "  Jane Doe  "}))
        assert profile.full_name == "Jane Doe"
        assert _run(user_service.get_profile(profile.id)).full_name == "Jane Doe"

    def test_blank_full_name_rejected(self, auth_service: AuthService, store: UserStore) -> None:
        with pytest.raises(AppError) as exc_info:
            _run(auth_service.register({**JANE, "fullName": "   "}))
        assert exc_info.value.message == "Full name is required."
        assert store.count() == 0

    def test_admin_role(self, auth_service: AuthService) -> None:
        profile = _run(auth_service.register({**JANE, "role": "admin"}))
        assert profile.roles == ("admin",)

    def test_duplicate_email_different_case(self, auth_service: AuthService) -> None:
        _run(auth_service.register(JANE))
        with pytest.raises(AppError) as exc_info:
            _run(auth_service.register({**JANE, "email": "JANE@X.com"}))
        assert exc_info.value.kind is ErrorKind.CONFLICT
        assert exc_info.value.code is ErrorCode.EMAIL_ALREADY_REGISTERED
        assert exc_info.value.message == "User with this email already exists."

    def test_invalid_payload_writes_nothing(self, auth_service: AuthService, store: UserStore) -> None:
        with pytest.raises(AppError) as exc_info:
            _run(auth_service.register({**JANE, "password": "nouppercase1"}))
        assert exc_info.value.kind is ErrorKind.VALIDATION
        assert store.count() == 0

    def test_insert_race_reports_conflict(self, hasher: PasswordHasher, issuer: TokenIssuer) -> None:
        class RacingStore:
            """The pre-check sees no user; the insert then hits the UNIQUE constraint."""

            def find_by_email(self, email, include_password_hash=False):
                return None

            def create(self, full_name, email, password_hash, roles):
                raise IntegrityError("INSERT INTO users", {}, Exception("UNIQUE constraint failed: users.email"))

        service = AuthService(RacingStore(), hasher, issuer)
        with pytest.raises(AppError) as exc_info:
            _run(service.register(JANE))
        assert exc_info.value.kind is ErrorKind.CONFLICT
        assert exc_info.value.code is ErrorCode.EMAIL_ALREADY_REGISTERED

    def test_concurrent_registrations_one_wins(self, auth_service: AuthService, store: UserStore) -> None:
        async def both():
            return await asyncio.gather(
                auth_service.register(JANE),
                auth_service.register({**JANE, "fullName": "Jane Twin"}),
                return_exceptions=True,
            )

        results = _run(both())
        conflicts = [r for r in results if isinstance(r, AppError)]
        assert len(conflicts) == 1
        assert conflicts[0].code is ErrorCode.EMAIL_ALREADY_REGISTERED
        assert store.count() == 1


class TestLogin:
    def test_success_returns_verifiable_token(self, auth_service: AuthService, issuer: TokenIssuer) -> None:
        profile = _run(auth_service.register(JANE))
        token = _run(auth_service.login({"email": "Jane@X.com", "password": "Secret1!"}))
        claims = issuer.verify(token)
        assert claims is not None
        assert claims.id == profile.id
        assert claims.roles == ("user",)

    def test_unknown_email_and_wrong_password_look_the_same(self, auth_service: AuthService) -> None:
        _run(auth_service.register(JANE))
        with pytest.raises(AppError) as wrong_password:
            _run(auth_service.login({"email": "jane@x.com", "password": "Wrong1!!"}))
        with pytest.raises(AppError) as unknown_email:
            _run(auth_service.login({"email": "nobody@x.com", "password": "Secret1!"}))

        for err in (wrong_password.value, unknown_email.value):
            assert err.kind is ErrorKind.AUTHENTICATION
            assert err.code is ErrorCode.INVALID_CREDENTIALS
        assert wrong_password.value.message == unknown_email.value.message == "Invalid email or password."

    def test_unknown_email_still_runs_bcrypt(self, auth_service: AuthService, monkeypatch) -> None:
        calls = []
        real_verify = auth_service.hasher.verify

        def spy(plain, hashed):
            calls.append(hashed)
            return real_verify(plain, hashed)

        monkeypatch.setattr(auth_service.hasher, "verify", spy)
        with pytest.raises(AppError):
            _run(auth_service.login({"email": "nobody@x.com", "password": "Secret1!"}))
        assert calls == [None]

    def test_invalid_payload(self, auth_service: AuthService) -> None:
        with pytest.raises(AppError) as exc_info:
            _run(auth_service.login({"email": "jane@x.com"}))
        assert exc_info.value.kind is ErrorKind.VALIDATION
        assert exc_info.value.message == "Password is required."


class TestResetPassword:
    def test_success_changes_login_password(self, auth_service: AuthService) -> None:
        profile = _run(auth_service.register(JANE))
        assert _run(auth_service.reset_password(profile.id, {"newPassword": "Brandnew1"})) is True

        _run(auth_service.login({"email": "jane@x.com", "password": "Brandnew1"}))
        with pytest.raises(AppError):
            _run(auth_service.login({"email": "jane@x.com", "password": "Secret1!"}))

    def test_short_password(self, auth_service: AuthService) -> None:
        profile = _run(auth_service.register(JANE))
        with pytest.raises(AppError) as exc_info:
            _run(auth_service.reset_password(profile.id, {"newPassword": "short"}))
        assert exc_info.value.kind is ErrorKind.VALIDATION
        assert "at least 8 characters" in exc_info.value.message

    def test_not_found(self, auth_service: AuthService) -> None:
        with pytest.raises(AppError) as exc_info:
            _run(auth_service.reset_password(MISSING_ID, {"newPassword": "Brandnew1"}))
        assert exc_info.value.kind is ErrorKind.NOT_FOUND
        assert exc_info.value.code is ErrorCode.USER_NOT_FOUND
        assert exc_info.value.message == f"User with ID {MISSING_ID} not found."

    def test_bad_id(self, auth_service: AuthService) -> None:
        with pytest.raises(AppError) as exc_info:
            _run(auth_service.reset_password("123", {"newPassword": "Brandnew1"}))
        assert exc_info.value.code is ErrorCode.INVALID_USER_ID_FORMAT


class TestDeleteUser:
    def test_success(self, auth_service: AuthService, user_service: UserService) -> None:
        profile = _run(auth_service.register(JANE))
        assert _run(auth_service.delete_user(profile.id)) is True
        with pytest.raises(AppError) as exc_info:
            _run(user_service.get_profile(profile.id))
        assert exc_info.value.kind is ErrorKind.NOT_FOUND

    def test_not_found(self, auth_service: AuthService) -> None:
        with pytest.raises(AppError) as exc_info:
            _run(auth_service.delete_user(MISSING_ID))
        assert exc_info.value.code is ErrorCode.USER_NOT_FOUND

    def test_bad_id(self, auth_service: AuthService) -> None:
        with pytest.raises(AppError) as exc_info:
            _run(auth_service.delete_user("not-an-id"))
        assert exc_info.value.kind is ErrorKind.VALIDATION
        assert exc_info.value.message == "Invalid user ID format."


class TestUserService:
    def test_get_profile(self, auth_service: AuthService, user_service: UserService) -> None:
        profile = _run(auth_service.register(JANE))
        assert _run(user_service.get_profile(profile.id)) == profile

    def test_list_and_count(self, auth_service: AuthService, user_service: UserService) -> None:
        _run(auth_service.register(JANE))
        _run(auth_service.register({**JANE, "email": "john@x.com", "fullName": "John Doe"}))
        profiles = _run(user_service.list_profiles())
        assert {p.email for p in profiles} == {"jane@x.com", "john@x.com"}
        assert _run(user_service.count_users()) == 2

    def test_profile_from_claims(self) -> None:
        claims = TokenClaims(
            id="a" * 24, full_name="Jane Doe", email="jane@x.com", roles=("user",), issued_at=0, expires_at=1
        )
        profile = AuthService.profile_from_claims(claims)
        assert (profile.id, profile.full_name, profile.email, profile.roles) == (
            "a" * 24,
            "Jane Doe",
            "jane@x.com",
            ("user",),
        )
