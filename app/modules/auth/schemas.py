from pydantic import BaseModel, ConfigDict, EmailStr, Field
from typing import Any, Dict, Literal, Optional

VerificationType = Literal["signup", "recovery", "email_change"]


class CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class RegisterRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=6)
    name: str = Field(min_length=2, max_length=100)


class RegisterResponse(CamelModel):
    message: str
    user_id: str = Field(alias="userId")


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1)


class PublicUser(BaseModel):
    id: str
    email: Optional[str] = None
    name: Optional[str] = None


class LoginResponse(CamelModel):
    message: str
    token: str
    refresh_token: str = Field(alias="refreshToken")
    user: PublicUser


class RefreshTokenRequest(CamelModel):
    refresh_token: str = Field(alias="refreshToken", min_length=1)


class TokenPairResponse(CamelModel):
    token: str
    refresh_token: str = Field(alias="refreshToken")


class MessageResponse(BaseModel):
    message: str


class CurrentUserResponse(BaseModel):
    user: Dict[str, Any]


class PasswordResetRequest(BaseModel):
    email: EmailStr


class PasswordReset(CamelModel):
    """New password plus the recovery session from the reset email link."""

    new_password: str = Field(alias="newPassword", min_length=6)
    access_token: str = Field(alias="accessToken", min_length=1)
    refresh_token: str = Field(alias="refreshToken", min_length=1)


class VerifyEmailRequest(BaseModel):
    token: str = Field(min_length=1)
    type: VerificationType = "signup"


class VerifyEmailResponse(BaseModel):
    message: str
    user: Optional[Dict[str, Any]] = None


class ResendVerificationRequest(BaseModel):
    email: EmailStr


class VerifiedUser(BaseModel):
    id: str
    email: Optional[str] = None
    email_verified: bool = True


class VerificationCallbackResponse(BaseModel):
    message: str
    token: str
    user: VerifiedUser
