"""
API response models for AuthGate REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py, which
own the internal domain representation. Route handlers map between the two.

Field names are snake_case in Python and camelCase on the wire
(alias_generator=to_camel); FastAPI serializes response models by alias.

Request bodies are NOT modeled here: auth payloads are checked by
auth/validation.py so clients get one deterministic, human-readable message
instead of Pydantic's error list.

Separation of concerns: auth/ models = domain truth; api/ models = API contract.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from auth.models import UserProfile

_WIRE = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)


# ---------------------------------------------------------------------------
# User payloads
# ---------------------------------------------------------------------------


class UserProfileResponse(BaseModel):
    """Public view of a user. There is deliberately no password field."""

    model_config = _WIRE

    id: str
    full_name: str
    email: str
    roles: list[str]

    @classmethod
    def from_profile(cls, profile: UserProfile) -> "UserProfileResponse":
        return cls(id=profile.id, full_name=profile.full_name, email=profile.email, roles=list(profile.roles))


class MessageResponse(BaseModel):
    model_config = _WIRE

    message: str


class RegisterResponse(BaseModel):
    """Response for POST /api/v1/register."""

    model_config = _WIRE

    message: str
    user: UserProfileResponse


class ProfileResponse(BaseModel):
    """Response for GET /api/v1/profile."""

    model_config = _WIRE

    message: str
    user: UserProfileResponse


class UserDataResponse(BaseModel):
    """Response for GET /api/v1/user/{user_id}."""

    model_config = _WIRE

    message: str
    data: UserProfileResponse


class UserListResponse(BaseModel):
    """Response for GET /api/v1/users."""

    model_config = _WIRE

    message: str
    data: list[UserProfileResponse]
    count: int


class AdminStats(BaseModel):
    model_config = _WIRE

    total_users: int
    active_sessions: str = "N/A (stateless JWT)"
    server_status: str = "Operational"


class AdminDataResponse(BaseModel):
    """Response for GET /api/v1/admin/data."""

    model_config = _WIRE

    message: str
    data: AdminStats


# ---------------------------------------------------------------------------
# Errors and health
# ---------------------------------------------------------------------------


class ErrorDetail(BaseModel):
    """Machine-readable error payload."""

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    detail: Optional[str] = None


class ErrorResponse(BaseModel):
    """Top-level error envelope returned on 4xx/5xx responses."""

    model_config = ConfigDict(frozen=True)

    error: ErrorDetail


class HealthResponse(BaseModel):
    """Response for GET /api/v1/health."""

    model_config = ConfigDict(frozen=True)

    status: str = "healthy"
    version: str
    components: dict[str, str]
