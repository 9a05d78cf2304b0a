"""
api/routes/v1/auth.py -- Registration, login and logout endpoints.

Routes:
  POST /api/v1/register  -- create a user (admin only)
  POST /api/v1/login     -- email/password login; sets the "token" cookie
  POST /api/v1/logout    -- clears the cookie (requires auth)

Security:
  AuthService.login() runs bcrypt on every attempt and returns one
    generic error for unknown email and wrong password. Do NOT inline a
    lookup + verify here -- that re-introduces user enumeration.
  Cache-Control: no-store on login responses.
  Registration is admin-only. The first admin is provisioned out of band
  with `python main.py create-admin`.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, Depends, Request
from fastapi.responses import JSONResponse

from api.models import MessageResponse, RegisterResponse, UserProfileResponse
from auth.dependencies import get_current_user, require_admin
from auth.models import TokenClaims
from auth.service import AuthService
from auth.tokens import clear_auth_cookie, set_auth_cookie

# Auth policy:
# - POST /api/v1/register:  requires admin (require_admin)
# - POST /api/v1/login:     public -- login endpoint must be unauthenticated
# - POST /api/v1/logout:    requires auth (get_current_user)
router = APIRouter()


@router.post("/register", response_model=RegisterResponse, status_code=201)
async def register(
    request: Request,
    body: Any = Body(None),
    current_user: TokenClaims = Depends(require_admin),
) -> RegisterResponse:
    """Create a user account. The response never includes the password hash."""
    service: AuthService = request.app.state.auth_service
    profile = await service.register(body)
    return RegisterResponse(
        message="User registered successfully!",
        user=UserProfileResponse.from_profile(profile),
    )


@router.post("/login", response_model=MessageResponse)
async def login(request: Request, body: Any = Body(None)) -> JSONResponse:
    """Authenticate with email and password; set the JWT cookie."""
    service: AuthService = request.app.state.auth_service
    token = await service.login(body)

    resp = JSONResponse(content=MessageResponse(message="Logged in successfully!").model_dump())
    set_auth_cookie(resp, token, secure=request.app.state.settings.secure_cookies)
    resp.headers["Cache-Control"] = "no-store"
    return resp


@router.post("/logout", response_model=MessageResponse)
async def logout(request: Request, current_user: TokenClaims = Depends(get_current_user)) -> JSONResponse:
    """Clear the JWT cookie. The token itself stays valid until it expires."""
    resp = JSONResponse(content=MessageResponse(message="Logged out successfully!").model_dump())
    clear_auth_cookie(resp, secure=request.app.state.settings.secure_cookies)
    return resp
