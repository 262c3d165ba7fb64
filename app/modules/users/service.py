from datetime import datetime, timezone
from supabase import AsyncClient
from app.core.exceptions import ErrorKind, NotFoundError, ServiceError, translate_upstream_error
from typing import Any, Dict, List, Optional

USERS_TABLE = "users"

# Never returned to clients, whatever the row holds
PRIVATE_FIELDS = ("password",)


def public_profile(row: Dict[str, Any]) -> Dict[str, Any]:
    return {key: value for key, value in row.items() if key not in PRIVATE_FIELDS}


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class UserService:
    """Profile rows in the `users` table, keyed by the Supabase Auth user id."""

    def __init__(self, supabase: AsyncClient):
        self.supabase = supabase

    async def find_by_id(self, user_id: str) -> Optional[Dict[str, Any]]:
        """Get a profile row by id, or None"""
        try:
            result = await self.supabase.table(USERS_TABLE)\
                .select("*")\
                .eq("id", user_id)\
                .limit(1)\
                .execute()
            return result.data[0] if result.data else None
        except Exception as e:
            raise translate_upstream_error(e) from e

    async def find_by_email(self, email: str) -> Optional[Dict[str, Any]]:
        """Get a profile row by email, or None"""
        try:
            result = await self.supabase.table(USERS_TABLE)\
                .select("*")\
                .eq("email", email)\
                .limit(1)\
                .execute()
            return result.data[0] if result.data else None
        except Exception as e:
            raise translate_upstream_error(e) from e

    async def create(self, row: Dict[str, Any]) -> Dict[str, Any]:
        try:
            result = await self.supabase.table(USERS_TABLE).insert(row).execute()
        except Exception as e:
            raise translate_upstream_error(e) from e
        if not result.data:
            raise ServiceError(ErrorKind.UNEXPECTED, "Failed to create user profile")
        return result.data[0]

    async def update(self, user_id: str, fields: Dict[str, Any]) -> Dict[str, Any]:
        """Merge the given fields into the row and stamp updated_at"""
        update_data = {**fields, "updated_at": _now()}
        try:
            result = await self.supabase.table(USERS_TABLE)\
                .update(update_data)\
                .eq("id", user_id)\
                .execute()
        except Exception as e:
            raise translate_upstream_error(e) from e
        if not result.data:
            raise NotFoundError("User profile not found")
        return result.data[0]

    async def delete(self, user_id: str) -> bool:
        try:
            result = await self.supabase.table(USERS_TABLE)\
                .delete()\
                .eq("id", user_id)\
                .execute()
        except Exception as e:
            raise translate_upstream_error(e) from e
        return bool(result.data)

    async def list_users(self, limit: int = 10, offset: int = 0) -> List[Dict[str, Any]]:
        try:
            result = await self.supabase.table(USERS_TABLE)\
                .select("*")\
                .order("created_at", desc=True)\
                .range(offset, offset + limit - 1)\
                .execute()
        except Exception as e:
            raise translate_upstream_error(e) from e
        return [public_profile(row) for row in result.data or []]
