import os
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest
from httpx import ASGITransport, AsyncClient

os.environ.setdefault("SUPABASE_URL", "https://test-project.supabase.co")
os.environ.setdefault("SUPABASE_KEY", "test-anon-key")
os.environ.setdefault("SUPABASE_SERVICE_ROLE_KEY", "test-service-role-key")
os.environ.setdefault("JWT_SECRET", "test-access-secret-0123456789abcdef0123")
os.environ.setdefault("JWT_REFRESH_SECRET", "test-refresh-secret-0123456789abcdef01")

from app.main import app  # noqa: E402
from app.core.dependencies import get_auth_service, get_token_service, get_user_service  # noqa: E402
from app.core.security import TokenPayload  # noqa: E402
from app.modules.auth.service import AuthService  # noqa: E402
from app.modules.users.service import UserService  # noqa: E402
from app.modules.users.storage import ProfileStorage  # noqa: E402

SESSION_AUTH_METHODS = ("sign_up", "sign_in_with_password", "sign_out", "update_user", "verify_otp", "set_session")


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def auth_user():
    """Build the user object the Supabase auth API hands back."""
    def _auth_user(user_id="123", email="test@example.com", confirmed=None):
        return SimpleNamespace(id=user_id, email=email, email_confirmed_at=confirmed)
    return _auth_user


@pytest.fixture
def tokens():
    return get_token_service()


@pytest.fixture
def users():
    """Profile store with no rows unless a test says otherwise."""
    store = AsyncMock(spec=UserService)
    store.find_by_id.return_value = None
    store.find_by_email.return_value = None
    store.delete.return_value = True
    return store


@pytest.fixture
def storage():
    return AsyncMock(spec=ProfileStorage)


@pytest.fixture
def auth_client():
    """Shared public client. Also mocks the session methods so tests can check they stay unused."""
    client = MagicMock()
    for method in SESSION_AUTH_METHODS + ("reset_password_for_email", "resend"):
        setattr(client.auth, method, AsyncMock())
    return client


@pytest.fixture
def session_auth():
    """Auth API behind every request-scoped client; tests set its responses."""
    auth = MagicMock()
    for method in SESSION_AUTH_METHODS:
        setattr(auth, method, AsyncMock())
    return auth


@pytest.fixture
def session_clients():
    """Request-scoped clients in the order the service asked for them."""
    return []


@pytest.fixture
def session_client_factory(session_auth, session_clients):
    async def _create():
        client = MagicMock()
        client.auth = session_auth
        session_clients.append(client)
        return client
    return _create


@pytest.fixture
def admin_client():
    client = MagicMock()
    client.auth.admin.delete_user = AsyncMock()
    client.auth.admin.get_user_by_id = AsyncMock()
    return client


@pytest.fixture
def auth_service(auth_client, admin_client, users, tokens, storage, session_client_factory):
    return AuthService(
        auth_client=auth_client,
        admin_client=admin_client,
        users=users,
        tokens=tokens,
        storage=storage,
        session_client_factory=session_client_factory,
        callback_url="http://localhost:3000/api/auth/verify-email/callback",
    )


@pytest.fixture(autouse=True)
def override_service_dependencies(auth_service, users):
    """Keep routes away from Supabase: services get mocked clients."""
    app.dependency_overrides[get_auth_service] = lambda: auth_service
    app.dependency_overrides[get_user_service] = lambda: users
    yield
    app.dependency_overrides.clear()


@pytest.fixture
def bearer(tokens):
    def _bearer(user_id="123", email="test@example.com"):
        token = tokens.issue_access(TokenPayload(user_id=user_id, email=email))
        return {"Authorization": f"Bearer {token}"}
    return _bearer


@pytest.fixture
async def async_client():
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client
