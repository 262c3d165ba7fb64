from fastapi import APIRouter, Depends, Query

from app.core.dependencies import (
    get_auth_service, get_current_user, get_profile_update, get_user_service, require_admin,
)
from app.core.exceptions import NotFoundError
from app.core.security import TokenPayload
from app.modules.auth.schemas import MessageResponse
from app.modules.auth.service import AuthService
from app.modules.users.schemas import (
    ProfileResponse, ProfileUpdateResponse, UploadPictureRequest, UploadPictureResponse,
    UserListResponse, UserUpdate,
)
from app.modules.users.service import UserService, public_profile

router = APIRouter(prefix="/users", tags=["users"])


async def _load_profile(user_id: str, service: UserService) -> ProfileResponse:
    profile = await service.find_by_id(user_id)
    if not profile:
        raise NotFoundError("User profile not found")
    return ProfileResponse(profile=public_profile(profile))


@router.get("", response_model=UserListResponse)
async def list_users(
    limit: int = Query(10, ge=1, le=100),
    offset: int = Query(0, ge=0),
    current_user: TokenPayload = Depends(require_admin),
    service: UserService = Depends(get_user_service)
):
    """List profiles (admin only)"""
    users = await service.list_users(limit=limit, offset=offset)
    return UserListResponse(users=users, limit=limit, offset=offset)


@router.get("/profile", response_model=ProfileResponse)
async def get_own_profile(
    current_user: TokenPayload = Depends(get_current_user),
    service: UserService = Depends(get_user_service)
):
    return await _load_profile(current_user.user_id, service)


@router.get("/profile/{user_id}", response_model=ProfileResponse)
async def get_profile(
    user_id: str,
    current_user: TokenPayload = Depends(get_current_user),
    service: UserService = Depends(get_user_service)
):
    return await _load_profile(user_id, service)


@router.put("/profile", response_model=ProfileUpdateResponse)
async def update_profile(
    current_user: TokenPayload = Depends(get_current_user),
    update: UserUpdate = Depends(get_profile_update),
    service: UserService = Depends(get_user_service)
):
    """Update the caller's profile; only the fields sent are changed"""
    profile = await service.update(current_user.user_id, update.model_dump(exclude_unset=True))
    return ProfileUpdateResponse(message="Profile updated successfully", profile=public_profile(profile))


@router.delete("/profile", response_model=MessageResponse)
async def delete_profile(
    current_user: TokenPayload = Depends(get_current_user),
    service: AuthService = Depends(get_auth_service)
):
    """Delete the caller's Supabase Auth user and profile row"""
    await service.delete_account(current_user.user_id)
    return MessageResponse(message="User deleted successfully")


@router.post("/profile/upload-picture", response_model=UploadPictureResponse)
async def upload_profile_picture(
    body: UploadPictureRequest,
    current_user: TokenPayload = Depends(get_current_user),
    service: AuthService = Depends(get_auth_service)
):
    avatar_url = await service.upload_profile_picture(
        current_user.user_id,
        body.image.base64_string,
        body.image.filename,
        body.image.content_type,
    )
    return UploadPictureResponse(message="Profile picture uploaded successfully", avatar_url=avatar_url)
