"""
api/routes/v1/users.py -- Profile and user management endpoints.

Routes:
  GET    /api/v1/profile                          -- caller's own profile (requires auth)
  GET    /api/v1/admin/data                       -- admin dashboard numbers (admin only)
  GET    /api/v1/user/{user_id}                   -- one profile (admin, or the user themselves)
  GET    /api/v1/users                            -- all profiles (admin only)
  PUT    /api/v1/user/reset-password/{user_id}    -- set another user's password (admin only)
  DELETE /api/v1/user/delete/{user_id}            -- delete a user (admin only)

Identity and roles come from the verified token (request.state.user); the
profile route answers from the token without a store lookup.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, Depends, Request

from api.models import (
    AdminDataResponse,
    AdminStats,
    MessageResponse,
    ProfileResponse,
    UserDataResponse,
    UserListResponse,
    UserProfileResponse,
)
from auth.dependencies import get_current_user, require_admin, require_admin_or_self
from auth.models import TokenClaims
from auth.service import AuthService, UserService

# Auth policy:
# - GET    /api/v1/profile:                      requires auth (get_current_user)
# - GET    /api/v1/admin/data:                   requires admin (require_admin)
# - GET    /api/v1/user/{user_id}:               requires admin OR own id (require_admin_or_self)
# - GET    /api/v1/users:                        requires admin (require_admin)
# - PUT    /api/v1/user/reset-password/{id}:     requires admin (require_admin)
# - DELETE /api/v1/user/delete/{id}:             requires admin (require_admin)
router = APIRouter()


@router.get("/profile", response_model=ProfileResponse)
async def profile(current_user: TokenClaims = Depends(get_current_user)) -> ProfileResponse:
    """Return the caller's profile as recorded in their token."""
    return ProfileResponse(
        message="Welcome to your profile",
        user=UserProfileResponse.from_profile(AuthService.profile_from_claims(current_user)),
    )


@router.get("/admin/data", response_model=AdminDataResponse)
async def admin_data(request: Request, current_user: TokenClaims = Depends(require_admin)) -> AdminDataResponse:
    service: UserService = request.app.state.user_service
    return AdminDataResponse(
        message="This is sensitive admin data!",
        data=AdminStats(total_users=await service.count_users()),
    )


@router.get("/user/{user_id}", response_model=UserDataResponse)
async def get_user(
    request: Request,
    user_id: str,
    current_user: TokenClaims = Depends(require_admin_or_self),
) -> UserDataResponse:
    service: UserService = request.app.state.user_service
    profile = await service.get_profile(user_id)
    return UserDataResponse(
        message="User data retrieved successfully!",
        data=UserProfileResponse.from_profile(profile),
    )


@router.get("/users", response_model=UserListResponse)
async def list_users(request: Request, current_user: TokenClaims = Depends(require_admin)) -> UserListResponse:
    service: UserService = request.app.state.user_service
    profiles = await service.list_profiles()
    return UserListResponse(
        message="All users retrieved successfully!",
        data=[UserProfileResponse.from_profile(p) for p in profiles],
        count=len(profiles),
    )


@router.put("/user/reset-password/{user_id}", response_model=MessageResponse)
async def reset_password(
    request: Request,
    user_id: str,
    body: Any = Body(None),
    current_user: TokenClaims = Depends(require_admin),
) -> MessageResponse:
    service: AuthService = request.app.state.auth_service
    await service.reset_password(user_id, body)
    return MessageResponse(message=f"Password for user ID {user_id} reset successfully.")


@router.delete("/user/delete/{user_id}", response_model=MessageResponse)
async def delete_user(
    request: Request,
    user_id: str,
    current_user: TokenClaims = Depends(require_admin),
) -> MessageResponse:
    service: AuthService = request.app.state.auth_service
    await service.delete_user(user_id)
    return MessageResponse(message=f"User with ID {user_id} deleted successfully.")
