from typing import Awaitable, Callable
from supabase import AsyncClient, AsyncClientOptions, acreate_client
from app.config import settings
import logging

logger = logging.getLogger(__name__)

SessionClientFactory = Callable[[], Awaitable[AsyncClient]]


class SupabaseClient:
    """Process-wide Supabase clients, created once at startup and read-only afterwards.

    Auth calls that leave a user session behind (sign up, sign in, OTP
    verification, set_session, update_user, sign out) must run on a client
    from create_session_client(), never on the shared public client.
    """

    _client: AsyncClient = None
    _service_client: AsyncClient = None

    @classmethod
    async def init(cls) -> None:
        if cls._client is None:
            cls._client = await acreate_client(settings.supabase_url, settings.supabase_key)
        if cls._service_client is None:
            cls._service_client = await acreate_client(
                settings.supabase_url, settings.supabase_service_role_key
            )
        logger.info("Supabase clients initialised for %s", settings.supabase_url)

    @classmethod
    def get_client(cls) -> AsyncClient:
        """Shared public client. Only for stateless auth calls (password reset email, resend)."""
        if cls._client is None:
            raise RuntimeError("Supabase client used before SupabaseClient.init()")
        return cls._client

    @classmethod
    def get_service_client(cls) -> AsyncClient:
        """Client with service_role key; bypasses RLS. Use for profile rows, storage and admin auth."""
        if cls._service_client is None:
            raise RuntimeError("Supabase service client used before SupabaseClient.init()")
        return cls._service_client

    @classmethod
    async def create_session_client(cls) -> AsyncClient:
        """Fresh public client that holds at most one caller's session and is dropped after the request."""
        return await acreate_client(
            settings.supabase_url,
            settings.supabase_key,
            options=AsyncClientOptions(persist_session=False, auto_refresh_token=False),
        )

    @classmethod
    def reset_client(cls):
        cls._client = None
        cls._service_client = None


def get_supabase() -> AsyncClient:
    return SupabaseClient.get_client()


def get_supabase_service() -> AsyncClient:
    return SupabaseClient.get_service_client()


def get_session_client_factory() -> SessionClientFactory:
    return SupabaseClient.create_session_client
