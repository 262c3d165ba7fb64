from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Dict, List, Optional


class UserUpdate(BaseModel):
    name: Optional[str] = None
    bio: Optional[str] = None
    avatar_url: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None


class ProfileResponse(BaseModel):
    profile: Dict[str, Any]


class ProfileUpdateResponse(BaseModel):
    message: str
    profile: Dict[str, Any]


class ImageData(BaseModel):
    base64_string: str = Field(alias="base64String", min_length=1)
    filename: str = Field(min_length=1)
    content_type: Optional[str] = Field(default=None, alias="contentType")

    model_config = ConfigDict(populate_by_name=True)


class UploadPictureRequest(BaseModel):
    image: ImageData


class UploadPictureResponse(BaseModel):
    message: str
    avatar_url: str


class UserListResponse(BaseModel):
    users: List[Dict[str, Any]]
    limit: int
    offset: int
