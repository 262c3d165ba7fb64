from fastapi import APIRouter, Depends
from typing import Optional

from app.core.dependencies import get_auth_service, get_current_user
from app.core.security import TokenPayload
from app.modules.auth.schemas import (
    RegisterRequest, RegisterResponse, LoginRequest, LoginResponse,
    RefreshTokenRequest, TokenPairResponse, MessageResponse, CurrentUserResponse,
    PasswordResetRequest, PasswordReset, VerifyEmailRequest, VerifyEmailResponse,
    ResendVerificationRequest, VerificationCallbackResponse,
)
from app.modules.auth.service import AuthService

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/register", response_model=RegisterResponse, status_code=201)
async def register(
    register_data: RegisterRequest,
    service: AuthService = Depends(get_auth_service)
):
    """Register a new user"""
    user_id = await service.register(register_data.email, register_data.password, register_data.name)
    return RegisterResponse(
        message="User registered successfully. Please check your email for verification.",
        user_id=user_id,
    )


@router.post("/login", response_model=LoginResponse)
async def login(
    login_data: LoginRequest,
    service: AuthService = Depends(get_auth_service)
):
    """Login and get access + refresh tokens"""
    token, refresh_token, user = await service.login(login_data.email, login_data.password)
    return LoginResponse(message="Login successful", token=token, refresh_token=refresh_token, user=user)


@router.post("/refresh-token", response_model=TokenPairResponse)
async def refresh_token(
    body: RefreshTokenRequest,
    service: AuthService = Depends(get_auth_service)
):
    """Exchange a refresh token for a new token pair"""
    token, new_refresh_token = service.refresh(body.refresh_token)
    return TokenPairResponse(token=token, refresh_token=new_refresh_token)


@router.post("/logout", response_model=MessageResponse)
async def logout(service: AuthService = Depends(get_auth_service)):
    await service.logout()
    return MessageResponse(message="Logged out successfully")


@router.get("/me", response_model=CurrentUserResponse)
async def get_current_user_profile(
    current_user: TokenPayload = Depends(get_current_user),
    service: AuthService = Depends(get_auth_service)
):
    """Get the profile of the token's user"""
    return CurrentUserResponse(user=await service.current_user(current_user.user_id))


@router.post("/password-reset/request", response_model=MessageResponse)
async def request_password_reset(
    body: PasswordResetRequest,
    service: AuthService = Depends(get_auth_service)
):
    await service.request_password_reset(body.email)
    return MessageResponse(message="Password reset email sent. Please check your email.")


@router.post("/password-reset", response_model=MessageResponse)
async def reset_password(
    body: PasswordReset,
    service: AuthService = Depends(get_auth_service)
):
    await service.reset_password(body.new_password, body.access_token, body.refresh_token)
    return MessageResponse(message="Password reset successful")


@router.post("/verify-email", response_model=VerifyEmailResponse)
async def verify_email(
    body: VerifyEmailRequest,
    service: AuthService = Depends(get_auth_service)
):
    """Verify an email address with the code from the verification email"""
    user = await service.verify_email(body.token, body.type)
    return VerifyEmailResponse(message="Email verified successfully", user=user)


@router.post("/resend-verification", response_model=MessageResponse)
async def resend_verification(
    body: ResendVerificationRequest,
    service: AuthService = Depends(get_auth_service)
):
    await service.resend_verification(body.email)
    return MessageResponse(message="Verification email sent successfully. Please check your email.")


@router.get("/verify-email/callback", response_model=VerificationCallbackResponse)
async def verify_email_callback(
    access_token: Optional[str] = None,
    refresh_token: Optional[str] = None,
    error: Optional[str] = None,
    error_description: Optional[str] = None,
    service: AuthService = Depends(get_auth_service)
):
    """Landing point of the link in the verification email"""
    token, user = await service.handle_verification_callback(
        access_token, refresh_token, error, error_description
    )
    return VerificationCallbackResponse(message="Email verified successfully", token=token, user=user)
