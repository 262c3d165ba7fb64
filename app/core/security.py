"""
Access / refresh token issuance for the auth service.

These tokens are independent of Supabase's own session tokens. Access and
refresh tokens are signed with different secrets, so one can never be
verified as the other.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional, Tuple
import jwt
from pydantic import BaseModel, ConfigDict, Field

from app.core.exceptions import UnauthorizedError


class TokenPayload(BaseModel):
    user_id: str = Field(alias="userId")
    email: Optional[str] = None

    model_config = ConfigDict(populate_by_name=True)


class TokenService:
    def __init__(
        self,
        access_secret: str,
        refresh_secret: str,
        algorithm: str = "HS256",
        access_ttl: timedelta = timedelta(hours=1),
        refresh_ttl: timedelta = timedelta(days=3),
    ):
        if access_secret == refresh_secret:
            raise ValueError("Access and refresh tokens must use distinct secrets")
        self.access_secret = access_secret
        self.refresh_secret = refresh_secret
        self.algorithm = algorithm
        self.access_ttl = access_ttl
        self.refresh_ttl = refresh_ttl

    def _encode(self, payload: TokenPayload, secret: str, expires_delta: timedelta) -> str:
        now = datetime.now(timezone.utc)
        claims = {
            "userId": payload.user_id,
            "iat": int(now.timestamp()),
            "exp": int((now + expires_delta).timestamp()),
        }
        if payload.email is not None:
            claims["email"] = payload.email
        return jwt.encode(claims, secret, algorithm=self.algorithm)

    def _decode(self, token: str, secret: str) -> TokenPayload:
        try:
            claims = jwt.decode(
                token,
                secret,
                algorithms=[self.algorithm],
                options={"require": ["exp", "userId"]},
            )
        except jwt.PyJWTError:
            raise UnauthorizedError("Invalid or expired token")
        return TokenPayload(user_id=str(claims["userId"]), email=claims.get("email"))

    def issue_access(self, payload: TokenPayload, expires_delta: Optional[timedelta] = None) -> str:
        return self._encode(payload, self.access_secret, self.access_ttl if expires_delta is None else expires_delta)

    def issue_refresh(self, payload: TokenPayload, expires_delta: Optional[timedelta] = None) -> str:
        return self._encode(payload, self.refresh_secret, self.refresh_ttl if expires_delta is None else expires_delta)

    def issue_pair(self, payload: TokenPayload) -> Tuple[str, str]:
        """Return (access_token, refresh_token) for the same identity."""
        return self.issue_access(payload), self.issue_refresh(payload)

    def verify_access(self, token: str) -> TokenPayload:
        return self._decode(token, self.access_secret)

    def verify_refresh(self, token: str) -> TokenPayload:
        return self._decode(token, self.refresh_secret)
