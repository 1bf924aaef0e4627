# routers/auth.py
from fastapi import APIRouter, Depends, status

from crud.user import UserCRUD
from database import get_database
from dependencies import get_current_user
from schemas.user import (
    SignupRequest, LoginRequest, RefreshRequest, ForgotPasswordRequest, ResetPasswordRequest,
)
from services.auth_service import AuthService
from utils.errors import success_response
from utils.rate_limiter import auth_rate_limiter
from utils.tokens import TokenClaims

router = APIRouter(prefix="/api/auth", tags=["authentication"])


async def get_auth_service(db=Depends(get_database)) -> AuthService:
    return AuthService(UserCRUD(db))


@router.post("/signup", dependencies=[Depends(auth_rate_limiter)])
async def signup(payload: SignupRequest, service: AuthService = Depends(get_auth_service)):
    data = await service.signup(payload.name, payload.email, payload.password, payload.role)
    return success_response("User registered successfully", data, status.HTTP_201_CREATED)


@router.post("/login", dependencies=[Depends(auth_rate_limiter)])
async def login(payload: LoginRequest, service: AuthService = Depends(get_auth_service)):
    data = await service.login(payload.email, payload.password)
    return success_response("Login successful", data)


@router.post("/refresh", dependencies=[Depends(auth_rate_limiter)])
async def refresh_token(payload: RefreshRequest, service: AuthService = Depends(get_auth_service)):
    data = await service.refresh(payload.refresh_token)
    return success_response("Token refreshed successfully", data)


@router.post("/forgot-password", dependencies=[Depends(auth_rate_limiter)])
async def forgot_password(payload: ForgotPasswordRequest, service: AuthService = Depends(get_auth_service)):
    await service.forgot_password(payload.email)
    return success_response("If an account exists with that email, a password reset link has been sent")


@router.post("/reset-password", dependencies=[Depends(auth_rate_limiter)])
async def reset_password(payload: ResetPasswordRequest, service: AuthService = Depends(get_auth_service)):
    await service.reset_password(payload.token, payload.password)


@router.get("/me")
async def get_me(
    current_user: TokenClaims = Depends(get_current_user),
    service: AuthService = Depends(get_auth_service),
):
    data = await service.get_me(current_user.id)
    return success_response("User retrieved successfully", data)


@router.post("/logout")
async def logout(
    current_user: TokenClaims = Depends(get_current_user),
    service: AuthService = Depends(get_auth_service),
):
    await service.logout(current_user.id)
    return success_response("Logged out successfully")
