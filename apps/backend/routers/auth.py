"""
Auth Router
===========
Account endpoints backed by Supabase Auth.

Endpoints:
- POST /api/v1/auth/signup   - Register and create a profile
- POST /api/v1/auth/signin   - Password sign-in
- POST /api/v1/auth/signout  - Revoke the current session
- GET  /api/v1/auth/me       - Current user
"""

from typing import Optional

from fastapi import APIRouter, Depends

from logging_config import get_logger
from routers.deps import bearer_token, get_auth_service, get_current_user
from schemas import AuthSession, AuthUser, SignInRequest, SignUpRequest
from services.auth import AuthService

logger = get_logger(__name__)

router = APIRouter()


@router.post("/signup", response_model=AuthSession, status_code=201)
async def sign_up(request: SignUpRequest, auth: AuthService = Depends(get_auth_service)):
    """
    Create an account.

    Validation errors come back as 400 with the first failing rule's message.
    """
    return await auth.sign_up(
        email=request.email,
        password=request.password,
        confirm_password=request.confirm_password,
        username=request.username,
    )


@router.post("/signin", response_model=AuthSession)
async def sign_in(request: SignInRequest, auth: AuthService = Depends(get_auth_service)):
    """
    Sign in with email and password.

    Repeated failures lock the email out for a while (429 with Retry-After).
    """
    return await auth.sign_in(request.email, request.password)


@router.post("/signout", status_code=204)
async def sign_out(
    token: Optional[str] = Depends(bearer_token),
    auth: AuthService = Depends(get_auth_service),
):
    if token:
        await auth.sign_out(token)


@router.get("/me", response_model=AuthUser)
async def me(user: AuthUser = Depends(get_current_user)):
    return user
