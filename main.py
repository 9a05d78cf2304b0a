#!/usr/bin/env python3
"""
AuthGate -- JWT authentication and role-based user management service.

Usage:
  python main.py serve
  python main.py serve --host 0.0.0.0 --port 8080
  python main.py create-admin --full-name "Ada Admin" --email admin@acme.io
  python main.py create-admin --full-name "Ada Admin" --email admin@acme.io --password 'S3cretPass'

Environment variables (or .env):
  JWT_SECRET     Required. HS256 signing key, at least 32 characters.
  DATABASE_URL   Required. SQLAlchemy URL, e.g. sqlite:///authgate.db
  See core/config.py for the optional settings and their defaults.

create-admin exists because registration is an admin-only route: the first
admin account has to come from somewhere other than the API.
"""

import argparse
import asyncio
import getpass
import sys
from typing import Optional

from pydantic import ValidationError

from auth.models import UserProfile
from auth.passwords import PasswordHasher
from auth.service import AuthService
from auth.store import UserStore
from auth.tokens import TokenIssuer
from core.config import Settings, get_settings
from core.errors import AppError


def create_admin(settings: Settings, full_name: str, email: str, password: str) -> UserProfile:
    """Register an admin directly through AuthService, bypassing HTTP.

    Goes through the same validation, uniqueness check and hashing as
    POST /api/v1/register. Raises AppError on invalid input or a taken email.
    """
    store = UserStore(settings.database_url)
    try:
        service = AuthService(
            store,
            PasswordHasher(settings.bcrypt_salt_rounds),
            TokenIssuer(settings.jwt_secret, settings.token_ttl_seconds),
        )
        payload = {"fullName": full_name, "email": email, "password": password, "role": "admin"}
        return asyncio.run(service.register(payload))
    finally:
        store.close()


def _serve(settings: Settings, host: str, port: Optional[int]) -> int:
    import uvicorn

    from api.main import create_app

    uvicorn.run(create_app(settings), host=host, port=port or settings.port)
    return 0


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="authgate",
        description="AuthGate -- JWT authentication and user management service.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run the HTTP API with uvicorn.")
    serve.add_argument("--host", default="127.0.0.1", help="Bind address (default: 127.0.0.1).")
    serve.add_argument("--port", type=int, default=None, help="Bind port (default: PORT setting).")

    admin = sub.add_parser("create-admin", help="Provision an admin account.")
    admin.add_argument("--full-name", required=True)
    admin.add_argument("--email", required=True)
    admin.add_argument("--password", default=None, help="Prompted for when omitted.")
    return parser


def main(argv: Optional[list[str]] = None) -> int:
    args = _build_parser().parse_args(argv)

    try:
        settings = get_settings()
    except ValidationError as e:
        print(f"  [!] Invalid configuration: {e}", file=sys.stderr)
        return 1

    if args.command == "serve":
        return _serve(settings, args.host, args.port)

    password = args.password or getpass.getpass("Admin password: ")
    try:
        profile = create_admin(settings, args.full_name, args.email, password)
    except AppError as e:
        print(f"  [!] {e.message} ({e.code.value})", file=sys.stderr)
        return 1
    print(f"  [+] Admin created: {profile.email} (id {profile.id})")
    return 0


if __name__ == "__main__":
    sys.exit(main())
