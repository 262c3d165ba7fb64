import base64
import binascii
import logging
from datetime import datetime, timezone
from supabase import AsyncClient
from typing import Any, Dict, Optional, Tuple

from app.core.exceptions import (
    ConflictError, ErrorKind, NotFoundError, ServiceError, UnauthorizedError,
    ValidationFailed, translate_upstream_error,
)
from app.core.security import TokenPayload, TokenService
from app.database.supabase_client import SessionClientFactory
from app.modules.users.service import UserService, public_profile
from app.modules.users.storage import ProfileStorage

logger = logging.getLogger(__name__)


class AuthService:
    """Auth flows: Supabase Auth does the credential work, the users table holds the profile.

    Calls that bind a user session run on a fresh client from
    session_client_factory. auth_client is shared between requests and is
    only used for calls that carry no session.

    Multi-step flows (register, delete_account) are not compensated: if the
    second step fails the Supabase Auth record and the profile row disagree.
    """

    def __init__(
        self,
        auth_client: AsyncClient,
        admin_client: AsyncClient,
        users: UserService,
        tokens: TokenService,
        storage: ProfileStorage,
        session_client_factory: SessionClientFactory,
        callback_url: Optional[str] = None,
    ):
        self.auth_client = auth_client
        self.session_client_factory = session_client_factory
        self.admin_client = admin_client
        self.users = users
        self.tokens = tokens
        self.storage = storage
        self.callback_url = callback_url

    async def register(self, email: str, password: str, name: str) -> str:
        """Sign up with Supabase Auth, then create the profile row. Returns the new user id."""
        if await self.users.find_by_email(email):
            raise ConflictError("User already exists with this email")

        credentials: Dict[str, Any] = {"email": email, "password": password}
        if self.callback_url:
            credentials["options"] = {"email_redirect_to": self.callback_url}
        try:
            client = await self.session_client_factory()
            auth_response = await client.auth.sign_up(credentials)
        except Exception as e:
            raise translate_upstream_error(e) from e

        if not auth_response.user:
            raise ServiceError(ErrorKind.UPSTREAM_CONSTRAINT, "Failed to register user")

        user_id = auth_response.user.id
        await self.users.create({
            "id": user_id,
            "email": email,
            "name": name,
            "role": "user",
            "email_verified": False,
            "created_at": datetime.now(timezone.utc).isoformat(),
        })
        logger.info("Registered user %s", user_id)
        return user_id

    async def login(self, email: str, password: str) -> Tuple[str, str, Dict[str, Any]]:
        """Authenticate with Supabase Auth and issue this service's token pair"""
        try:
            client = await self.session_client_factory()
            auth_response = await client.auth.sign_in_with_password({
                "email": email,
                "password": password
            })
        except Exception as e:
            raise translate_upstream_error(e) from e

        if not auth_response.user:
            raise UnauthorizedError("Invalid email or password")

        profile = await self.users.find_by_id(auth_response.user.id)
        if not profile:
            raise NotFoundError("User profile not found")

        payload = TokenPayload(user_id=auth_response.user.id, email=auth_response.user.email or email)
        token, refresh_token = self.tokens.issue_pair(payload)
        user = {
            "id": profile["id"],
            "email": profile.get("email"),
            "name": profile.get("name"),
        }
        return token, refresh_token, user

    def refresh(self, refresh_token: str) -> Tuple[str, str]:
        """Rotate the pair. The old refresh token stays valid until it expires."""
        payload = self.tokens.verify_refresh(refresh_token)
        return self.tokens.issue_pair(payload)

    async def logout(self) -> None:
        """Sign out with Supabase Auth on a request-scoped client.

        Login drops its Supabase session with its client, so no other
        caller's session can be ended here. Tokens issued by this service are
        stateless and keep working until expiry.
        """
        try:
            client = await self.session_client_factory()
            await client.auth.sign_out()
        except Exception as e:
            raise translate_upstream_error(e) from e

    async def current_user(self, user_id: str) -> Dict[str, Any]:
        profile = await self.users.find_by_id(user_id)
        if not profile:
            raise NotFoundError("User not found")
        return public_profile(profile)

    async def request_password_reset(self, email: str) -> None:
        try:
            await self.auth_client.auth.reset_password_for_email(email)
        except Exception as e:
            raise translate_upstream_error(e) from e

    async def reset_password(self, new_password: str, access_token: str, refresh_token: str) -> None:
        """Set a new password for the user owning the recovery session from the reset link"""
        client = await self.session_client_factory()
        try:
            session = await client.auth.set_session(access_token, refresh_token)
        except Exception as e:
            raise translate_upstream_error(e) from e
        if not session.user:
            raise UnauthorizedError("Invalid or expired recovery session")

        try:
            await client.auth.update_user({"password": new_password})
        except Exception as e:
            raise translate_upstream_error(e) from e
        logger.info("Password reset for user %s", session.user.id)

    async def verify_email(self, token: str, verification_type: str = "signup") -> Optional[Dict[str, Any]]:
        try:
            client = await self.session_client_factory()
            response = await client.auth.verify_otp({
                "token_hash": token,
                "type": verification_type,
            })
        except Exception as e:
            message = str(getattr(e, "message", None) or e).lower()
            if "expired" in message or "invalid" in message:
                raise ServiceError(
                    ErrorKind.VALIDATION,
                    "Verification link has expired or is invalid",
                    code="OTP_EXPIRED",
                    extra={"message": "Please request a new verification email"},
                ) from e
            raise translate_upstream_error(e) from e

        if not response.user:
            return None
        await self.users.update(response.user.id, {"email_verified": True})
        return {"id": response.user.id, "email": response.user.email, "email_verified": True}

    async def handle_verification_callback(
        self,
        access_token: Optional[str],
        refresh_token: Optional[str],
        error: Optional[str] = None,
        error_description: Optional[str] = None,
    ) -> Tuple[str, Dict[str, Any]]:
        """Finish the email link redirect. Returns (access_token, user)."""
        if error:
            kind = ErrorKind.VALIDATION
            if error == "access_denied":
                if error_description and "expired" in error_description:
                    kind = ErrorKind.GONE
                    message = "Verification link has expired"
                else:
                    message = "Verification link is invalid or has been used"
            else:
                message = error_description or "Email verification failed"
            raise ServiceError(
                kind,
                message,
                code=error,
                extra={
                    "description": error_description,
                    "suggestion": "Please request a new verification email",
                },
            )

        if not access_token or not refresh_token:
            raise ServiceError(ErrorKind.VALIDATION, "Invalid verification parameters", code="MISSING_TOKENS")

        try:
            client = await self.session_client_factory()
            session = await client.auth.set_session(access_token, refresh_token)
        except Exception as e:
            raise translate_upstream_error(e) from e

        if not session.user:
            raise ServiceError(ErrorKind.VALIDATION, "Verification failed", code="VERIFICATION_FAILED")

        user = session.user
        await self.users.update(user.id, {"email_verified": True})
        token = self.tokens.issue_access(TokenPayload(user_id=user.id, email=user.email))
        return token, {"id": user.id, "email": user.email, "email_verified": True}

    async def is_email_verified(self, user_id: str) -> bool:
        try:
            response = await self.admin_client.auth.admin.get_user_by_id(user_id)
        except Exception as e:
            raise translate_upstream_error(e) from e
        return bool(response.user and response.user.email_confirmed_at)

    async def resend_verification(self, email: str) -> None:
        profile = await self.users.find_by_email(email)
        if not profile:
            raise NotFoundError("User not found with this email")

        if await self.is_email_verified(profile["id"]):
            raise ServiceError(ErrorKind.VALIDATION, "Email is already verified")

        try:
            await self.auth_client.auth.resend({"type": "signup", "email": email})
        except Exception as e:
            raise translate_upstream_error(e) from e

    async def delete_account(self, user_id: str) -> None:
        """Remove the Supabase Auth user, then the profile row"""
        try:
            await self.admin_client.auth.admin.delete_user(user_id)
        except Exception as e:
            raise translate_upstream_error(e) from e
        await self.users.delete(user_id)
        logger.info("Deleted user %s", user_id)

    async def upload_profile_picture(
        self,
        user_id: str,
        base64_string: str,
        filename: str,
        content_type: Optional[str] = None,
    ) -> str:
        """Store a base64 encoded image and point avatar_url at it. Returns the public URL."""
        try:
            file_content = base64.b64decode(base64_string, validate=True)
        except (binascii.Error, ValueError):
            raise ValidationFailed(["image.base64String must be valid base64"], message="Image data is invalid")

        avatar_url = await self.storage.upload_avatar(
            user_id, file_content, filename, content_type or "image/jpeg"
        )
        await self.users.update(user_id, {"avatar_url": avatar_url})
        return avatar_url
