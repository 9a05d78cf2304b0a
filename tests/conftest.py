"""
tests/conftest.py -- Shared test fixtures for AuthGate tests.

This module provides:
  - settings:  a Settings object pointing at a fresh file-backed SQLite DB
  - store:     a UserStore on that DB
  - hasher / issuer / auth_service / user_service: wired like the lifespan does
  - api:       an ApiHarness (TestClient + helpers) for HTTP integration tests

Design: every test gets its own SQLite file under tmp_path. A file DB (rather
than a shared-cache :memory: URI) lets the concurrency tests run real
parallel inserts from worker threads, and per-test files mean no state leaks
between tests.

bcrypt cost is 4 (the minimum) so hashing does not dominate the suite.
"""

from __future__ import annotations

from collections.abc import Generator
from dataclasses import dataclass

import pytest
from fastapi.testclient import TestClient

from api.main import create_app
from auth.models import Role, User
from auth.passwords import PasswordHasher
from auth.service import AuthService, UserService
from auth.store import UserStore
from auth.tokens import COOKIE_NAME, TokenIssuer
from core.config import Settings

TEST_SECRET = "test-secret-0123456789abcdef0123456789abcdef"


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        jwt_secret=TEST_SECRET,
        database_url=f"sqlite:///{tmp_path / 'authgate_test.db'}",
        bcrypt_salt_rounds=4,
        rate_limit_max_requests=1000,
    )


@pytest.fixture
def store(settings: Settings) -> Generator[UserStore, None, None]:
    s = UserStore(settings.database_url)
    yield s
    s.close()


@pytest.fixture
def hasher(settings: Settings) -> PasswordHasher:
    return PasswordHasher(settings.bcrypt_salt_rounds)


@pytest.fixture
def issuer(settings: Settings) -> TokenIssuer:
    return TokenIssuer(settings.jwt_secret, settings.token_ttl_seconds)


@pytest.fixture
def auth_service(store: UserStore, hasher: PasswordHasher, issuer: TokenIssuer) -> AuthService:
    return AuthService(store, hasher, issuer)


@pytest.fixture
def user_service(store: UserStore) -> UserService:
    return UserService(store)


# ---------------------------------------------------------------------------
# HTTP harness
# ---------------------------------------------------------------------------


@dataclass
class ApiHarness:
    """A started TestClient plus shortcuts for seeding users and minting cookies."""

    client: TestClient

    @property
    def store(self) -> UserStore:
        return self.client.app.state.user_store

    @property
    def issuer(self) -> TokenIssuer:
        return self.client.app.state.token_issuer

    def seed_user(self, full_name: str, email: str, password: str, roles: tuple[str, ...]) -> User:
        hasher = PasswordHasher(4)
        return self.store.create(full_name, email, hasher.hash(password), roles)

    def act_as(self, user: User) -> str:
        """Put a freshly issued token for user in the client's cookie jar; return it."""
        token = self.issuer.issue(user)
        self.client.cookies.clear()
        self.client.cookies.set(COOKIE_NAME, token)
        return token

    def use_token(self, token: str) -> None:
        self.client.cookies.clear()
        self.client.cookies.set(COOKIE_NAME, token)


@pytest.fixture
def api(settings: Settings) -> Generator[ApiHarness, None, None]:
    """Yield an ApiHarness around the real app, with its lifespan running.

    raise_server_exceptions=False so the generic 500 handler's response is
    what the test sees, as a real client would.
    """
    app = create_app(settings)
    with TestClient(app, raise_server_exceptions=False) as client:
        yield ApiHarness(client=client)


@pytest.fixture
def admin(api: ApiHarness) -> User:
    return api.seed_user("Ada Admin", "admin@acme.io", "AdminPass1", (Role.ADMIN.value,))


@pytest.fixture
def member(api: ApiHarness) -> User:
    return api.seed_user("Max Member", "member@acme.io", "MemberPass1", (Role.USER.value,))
