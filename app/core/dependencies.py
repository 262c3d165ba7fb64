"""
Core dependencies: service wiring, bearer-token authentication, admin gate
and schema validation of raw request bodies.
"""

from fastapi import Depends, Request, Security
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from supabase import AsyncClient
from typing import Any, Dict, Optional
from datetime import timedelta
from json import JSONDecodeError
import logging

from app.config import settings
from app.core.exceptions import ForbiddenError, ServiceError, UnauthorizedError, ValidationFailed
from app.core.security import TokenPayload, TokenService
from app.database.supabase_client import (
    SessionClientFactory, get_session_client_factory, get_supabase, get_supabase_service,
)
from app.modules.auth.service import AuthService
from app.modules.users.models import UPDATABLE_FIELDS, validate_user
from app.modules.users.schemas import UserUpdate
from app.modules.users.service import UserService
from app.modules.users.storage import ProfileStorage

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)

_token_service: Optional[TokenService] = None


def get_token_service() -> TokenService:
    global _token_service
    if _token_service is None:
        _token_service = TokenService(
            access_secret=settings.jwt_secret,
            refresh_secret=settings.jwt_refresh_secret,
            algorithm=settings.jwt_algorithm,
            access_ttl=timedelta(minutes=settings.access_token_expire_minutes),
            refresh_ttl=timedelta(days=settings.refresh_token_expire_days),
        )
    return _token_service


def get_user_service(supabase: AsyncClient = Depends(get_supabase_service)) -> UserService:
    return UserService(supabase)


def get_profile_storage(supabase: AsyncClient = Depends(get_supabase_service)) -> ProfileStorage:
    return ProfileStorage(supabase)


def get_auth_service(
    auth_client: AsyncClient = Depends(get_supabase),
    admin_client: AsyncClient = Depends(get_supabase_service),
    users: UserService = Depends(get_user_service),
    tokens: TokenService = Depends(get_token_service),
    storage: ProfileStorage = Depends(get_profile_storage),
    session_client_factory: SessionClientFactory = Depends(get_session_client_factory),
) -> AuthService:
    return AuthService(
        auth_client=auth_client,
        admin_client=admin_client,
        users=users,
        tokens=tokens,
        storage=storage,
        session_client_factory=session_client_factory,
        callback_url=settings.email_verify_callback_url,
    )


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Security(security),
    tokens: TokenService = Depends(get_token_service),
) -> TokenPayload:
    """Decode this service's access token from the Authorization header"""
    if credentials is None or not credentials.credentials:
        raise UnauthorizedError("Authentication token is required")
    try:
        return tokens.verify_access(credentials.credentials)
    except ServiceError:
        raise ForbiddenError("Invalid or expired token")


async def require_admin(
    current_user: TokenPayload = Depends(get_current_user),
    users: UserService = Depends(get_user_service),
) -> TokenPayload:
    """Allow only users whose profile row has role 'admin'"""
    profile = await users.find_by_id(current_user.user_id)
    if not profile or profile.get("role") != "admin":
        logger.warning("Admin access denied for user %s", current_user.user_id)
        raise ForbiddenError("Access denied. Admin role required")
    return current_user


async def _read_json_object(request: Request) -> Dict[str, Any]:
    try:
        body = await request.json()
    except (JSONDecodeError, UnicodeDecodeError):
        raise ValidationFailed(["Request body must be valid JSON"])
    if not isinstance(body, dict):
        raise ValidationFailed(["Request body must be a JSON object"])
    return body


def validate_user_payload(partial: bool = False):
    """Factory for a dependency that checks the raw JSON body against USER_SCHEMA"""
    async def check_payload(request: Request) -> Dict[str, Any]:
        body = await _read_json_object(request)
        result = validate_user(body, partial=partial)
        if not result.valid:
            raise ValidationFailed(result.errors)
        return body
    return check_payload


async def get_profile_update(
    body: Dict[str, Any] = Depends(validate_user_payload(partial=True)),
) -> UserUpdate:
    if not body:
        raise ValidationFailed(["No data provided for update"])
    return UserUpdate(**{key: body[key] for key in UPDATABLE_FIELDS if key in body})
