"""Supabase Storage for profile pictures."""
import logging
import time
from pathlib import PurePosixPath
from typing import Optional

from supabase import AsyncClient

from app.config import settings
from app.core.exceptions import translate_upstream_error

logger = logging.getLogger(__name__)


class ProfileStorage:
    def __init__(self, supabase: AsyncClient, bucket_name: Optional[str] = None):
        self.supabase = supabase
        self.bucket_name = bucket_name or settings.storage_bucket

    @staticmethod
    def avatar_key(user_id: str, filename: str) -> str:
        # keys must stay under profile-pictures/<user_id>/
        name = PurePosixPath(filename).name
        if name in ("", ".", ".."):
            name = "upload"
        return f"profile-pictures/{user_id}/{int(time.time() * 1000)}-{name}"

    async def upload_avatar(
        self, user_id: str, file_content: bytes, filename: str, content_type: str = "image/jpeg"
    ) -> str:
        """Upload a profile picture and return its public URL."""
        key = self.avatar_key(user_id, filename)
        bucket = self.supabase.storage.from_(self.bucket_name)
        try:
            await bucket.upload(key, file_content, {"content-type": content_type})
            public_url = await bucket.get_public_url(key)
        except Exception as e:
            logger.error("Failed to upload %s to bucket %s: %s", key, self.bucket_name, e)
            raise translate_upstream_error(e) from e
        return public_url
