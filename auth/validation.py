"""
auth/validation.py -- Shape checks for inbound auth payloads.

Every payload is checked here before any store lookup, hash, or write. Each
schema is an ordered list of field rules; checking stops at the first
violation and its message is what the client sees (not a list of every
problem).

Within one field the order is: required -> type -> empty -> length ->
pattern / choice. That order is what makes the first message deterministic.

Email syntax is delegated to email-validator (the same library behind
pydantic's EmailStr) with deliverability checks off -- no DNS lookups on the
request path.

Layer rule: no imports from api/.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any

from email_validator import EmailNotValidError, validate_email

from core.errors import AppError, ErrorCode

USER_ID_PATTERN = re.compile(r"[0-9a-fA-F]{24}")
_UPPERCASE = re.compile(r"[A-Z]")

# bcrypt only reads the first 72 bytes of its input; bcrypt 5 refuses longer.
_BCRYPT_MAX_BYTES = 72


@dataclass(frozen=True)
class FieldRule:
    name: str
    label: str
    min_length: int | None = None
    max_length: int | None = None
    max_bytes: int | None = None
    uppercase: bool = False
    email: bool = False
    choices: tuple[str, ...] | None = None
    strip: bool = False  # check the value with surrounding whitespace removed


def _password_rule(name: str, label: str) -> FieldRule:
    return FieldRule(name, label, min_length=8, max_bytes=_BCRYPT_MAX_BYTES, uppercase=True)


SCHEMAS: dict[str, tuple[FieldRule, ...]] = {
    "registration": (
        FieldRule("fullName", "Full name", min_length=3, max_length=80, strip=True),
        FieldRule("email", "Email", email=True),
        _password_rule("password", "Password"),
        FieldRule("role", "Role", choices=("user", "admin")),
    ),
    "login": (
        FieldRule("email", "Email", email=True),
        FieldRule("password", "Password"),
    ),
    "passwordReset": (_password_rule("newPassword", "New password"),),
}


def _check_field(rule: FieldRule, payload: dict) -> str | None:
    if rule.name not in payload or payload[rule.name] is None:
        return f"{rule.label} is required."
    value = payload[rule.name]
    if not isinstance(value, str):
        return f"{rule.label} must be a string."
    if rule.strip:
        value = value.strip()
    if value == "":
        return f"{rule.label} is required."
    if rule.min_length is not None and len(value) < rule.min_length:
        return f"{rule.label} must be at least {rule.min_length} characters long."
    if rule.max_length is not None and len(value) > rule.max_length:
        return f"{rule.label} cannot exceed {rule.max_length} characters."
    if rule.max_bytes is not None and len(value.encode("utf-8")) > rule.max_bytes:
        return f"{rule.label} cannot exceed {rule.max_bytes} bytes."
    if rule.uppercase and not _UPPERCASE.search(value):
        return f"{rule.label} must contain at least one uppercase letter."
    if rule.email and not is_valid_email(value):
        return "Invalid email format."
    if rule.choices is not None and value not in rule.choices:
        options = " or ".join(f'"{c}"' for c in rule.choices)
        return f"{rule.label} must be either {options}."
    return None


def is_valid_email(value: str) -> bool:
    """Syntax-only email check. Surrounding whitespace is ignored (the store trims it)."""
    try:
        validate_email(value.strip(), check_deliverability=False)
    except EmailNotValidError:
        return False
    return True


def check(schema: str, payload: Any) -> str | None:
    """Return the first violation message for payload under schema, or None if valid.

    Raises KeyError for an unknown schema name -- that is a programming error,
    not a client error.
    """
    rules = SCHEMAS[schema]
    if not isinstance(payload, dict):
        return "Request body must be a JSON object."
    for rule in rules:
        message = _check_field(rule, payload)
        if message is not None:
            return message
    return None


def validate(schema: str, payload: Any) -> None:
    """Raise AppError(VALIDATION) carrying the first violation, if any."""
    message = check(schema, payload)
    if message is not None:
        raise AppError.validation(message)


def validate_user_id(value: Any) -> None:
    """Check a path-supplied user id against the store's 24-hex key format."""
    if value is None:
        raise AppError.validation("User ID is required.", ErrorCode.INVALID_USER_ID_FORMAT)
    if not isinstance(value, str) or value == "":
        raise AppError.validation("User ID cannot be empty.", ErrorCode.INVALID_USER_ID_FORMAT)
    if not USER_ID_PATTERN.fullmatch(value):
        raise AppError.validation("Invalid user ID format.", ErrorCode.INVALID_USER_ID_FORMAT)
