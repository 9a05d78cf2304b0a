"""
core/errors.py -- The single domain error type shared by every layer.

Pattern: Tagged variant. Instead of a class per failure, there is one
AppError carrying an ErrorKind tag, a stable machine-readable ErrorCode, and
a human message. The service layer raises it; the HTTP boundary
(api/main.py) maps kind -> status exhaustively, so adding a kind without a
status mapping fails the boundary tests rather than leaking a 500.

Layer rule: core/ is the kernel. This module may not import from api/ or auth/.
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    VALIDATION = "validation"
    AUTHENTICATION = "authentication"
    AUTHORIZATION = "authorization"
    CONFLICT = "conflict"
    NOT_FOUND = "not_found"
    SERVER = "server"


class ErrorCode(str, Enum):
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVALID_USER_ID_FORMAT = "INVALID_USER_ID_FORMAT"
    AUTHENTICATION_ERROR = "AUTHENTICATION_ERROR"
    INVALID_CREDENTIALS = "INVALID_CREDENTIALS"
    TOKEN_MISSING = "TOKEN_MISSING"
    TOKEN_INVALID = "TOKEN_INVALID"
    AUTHORIZATION_ERROR = "AUTHORIZATION_ERROR"
    CONFLICT_ERROR = "CONFLICT_ERROR"
    EMAIL_ALREADY_REGISTERED = "EMAIL_ALREADY_REGISTERED"
    NOT_FOUND_ERROR = "NOT_FOUND_ERROR"
    USER_NOT_FOUND = "USER_NOT_FOUND"
    SERVER_ERROR = "SERVER_ERROR"
    # Boundary-only codes (raised by FastAPI/slowapi, never by services)
    RATE_LIMITED = "RATE_LIMITED"
    REQUEST_INVALID = "REQUEST_INVALID"


# Code used when the raiser does not pick a more specific one.
DEFAULT_CODES: dict[ErrorKind, ErrorCode] = {
    ErrorKind.VALIDATION: ErrorCode.VALIDATION_ERROR,
    ErrorKind.AUTHENTICATION: ErrorCode.AUTHENTICATION_ERROR,
    ErrorKind.AUTHORIZATION: ErrorCode.AUTHORIZATION_ERROR,
    ErrorKind.CONFLICT: ErrorCode.CONFLICT_ERROR,
    ErrorKind.NOT_FOUND: ErrorCode.NOT_FOUND_ERROR,
    ErrorKind.SERVER: ErrorCode.SERVER_ERROR,
}


class AppError(Exception):
    """A classified, expected failure.

    Attributes:
        kind:    Which branch of the taxonomy this failure belongs to.
        message: Safe to show to the client.
        code:    Stable identifier clients can switch on.
    """

    def __init__(self, kind: ErrorKind, message: str, code: ErrorCode | None = None) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.code = code or DEFAULT_CODES[kind]

    def __repr__(self) -> str:
        return f"AppError(kind={self.kind.value!r}, code={self.code.value!r}, message={self.message!r})"

    @classmethod
    def validation(cls, message: str, code: ErrorCode = ErrorCode.VALIDATION_ERROR) -> AppError:
        return cls(ErrorKind.VALIDATION, message, code)

    @classmethod
    def authentication(cls, message: str, code: ErrorCode = ErrorCode.AUTHENTICATION_ERROR) -> AppError:
        return cls(ErrorKind.AUTHENTICATION, message, code)

    @classmethod
    def authorization(cls, message: str, code: ErrorCode = ErrorCode.AUTHORIZATION_ERROR) -> AppError:
        return cls(ErrorKind.AUTHORIZATION, message, code)

    @classmethod
    def conflict(cls, message: str, code: ErrorCode = ErrorCode.CONFLICT_ERROR) -> AppError:
        return cls(ErrorKind.CONFLICT, message, code)

    @classmethod
    def not_found(cls, message: str, code: ErrorCode = ErrorCode.NOT_FOUND_ERROR) -> AppError:
        return cls(ErrorKind.NOT_FOUND, message, code)
