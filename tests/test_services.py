import re
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest
from postgrest.exceptions import APIError

from app.config import settings
from app.core.exceptions import ErrorKind, NotFoundError, ServiceError
from app.core.security import TokenPayload
from app.database import supabase_client
from app.database.supabase_client import SupabaseClient
from app.modules.users.service import UserService, public_profile
from app.modules.users.storage import ProfileStorage

pytestmark = pytest.mark.anyio


def query_client(data=None, error=None):
    """Supabase client whose every query chain ends in an awaitable execute()."""
    query = MagicMock()
    for method in ("select", "eq", "limit", "insert", "update", "delete", "order", "range"):
        getattr(query, method).return_value = query
    if error is not None:
        query.execute = AsyncMock(side_effect=error)
    else:
        query.execute = AsyncMock(return_value=SimpleNamespace(data=data))
    client = MagicMock()
    client.table.return_value = query
    return client, query


async def test_find_by_id_returns_first_row():
    client, query = query_client(data=[{"id": "1", "email": "a@b.com"}])

    row = await UserService(client).find_by_id("1")

    assert row == {"id": "1", "email": "a@b.com"}
    client.table.assert_called_with("users")
    query.eq.assert_called_with("id", "1")


async def test_find_by_email_returns_none_when_no_rows():
    client, query = query_client(data=[])

    assert await UserService(client).find_by_email("x@y.com") is None
    query.eq.assert_called_with("email", "x@y.com")


async def test_create_returns_inserted_row():
    client, query = query_client(data=[{"id": "1"}])

    assert await UserService(client).create({"id": "1"}) == {"id": "1"}
    query.insert.assert_called_once_with({"id": "1"})


async def test_create_duplicate_email_is_conflict():
    error = APIError({"code": "23505", "message": "duplicate key", "details": None, "hint": None})
    client, _ = query_client(error=error)

    with pytest.raises(ServiceError) as exc_info:
        await UserService(client).create({"id": "1", "email": "a@b.com"})
    assert exc_info.value.kind is ErrorKind.CONFLICT


async def test_update_merges_fields_and_stamps_updated_at():
    client, query = query_client(data=[{"id": "1", "name": "New"}])

    row = await UserService(client).update("1", {"name": "New"})

    assert row == {"id": "1", "name": "New"}
    sent = query.update.call_args.args[0]
    assert sent["name"] == "New"
    assert re.match(r"\d{4}-\d{2}-\d{2}T", sent["updated_at"])
    query.eq.assert_called_with("id", "1")


async def test_update_missing_row_is_not_found():
    client, _ = query_client(data=[])

    with pytest.raises(NotFoundError):
        await UserService(client).update("nope", {"name": "New"})


async def test_delete_reports_whether_a_row_went_away():
    client, query = query_client(data=[{"id": "1"}])
    assert await UserService(client).delete("1") is True
    query.delete.assert_called_once_with()


async def test_list_users_pages_and_strips_private_fields():
    client, query = query_client(data=[{"id": "1", "password": "hash"}])

    rows = await UserService(client).list_users(limit=10, offset=20)

    assert rows == [{"id": "1"}]
    query.range.assert_called_once_with(20, 29)


async def test_unexpected_store_failure():
    client, _ = query_client(error=RuntimeError("connection reset"))

    with pytest.raises(ServiceError) as exc_info:
        await UserService(client).find_by_id("1")
    assert exc_info.value.kind is ErrorKind.UNEXPECTED


def test_public_profile_drops_password():
    assert public_profile({"id": "1", "password": "x", "name": "A"}) == {"id": "1", "name": "A"}


async def test_upload_avatar():
    bucket = MagicMock()
    bucket.upload = AsyncMock()
    bucket.get_public_url = AsyncMock(return_value="https://cdn.example.com/pic.png")
    client = MagicMock()
    client.storage.from_.return_value = bucket

    url = await ProfileStorage(client, bucket_name="user-uploads").upload_avatar(
        "123", b"data", "pic.png", "image/png"
    )

    assert url == "https://cdn.example.com/pic.png"
    client.storage.from_.assert_called_once_with("user-uploads")
    key, content, options = bucket.upload.call_args.args
    assert re.fullmatch(r"profile-pictures/123/\d+-pic\.png", key)
    assert content == b"data"
    assert options == {"content-type": "image/png"}
    bucket.get_public_url.assert_awaited_once_with(key)


async def test_upload_avatar_failure_is_translated():
    class StorageException(Exception):
        status = 403
        message = "new row violates row-level security policy"

    bucket = MagicMock()
    bucket.upload = AsyncMock(side_effect=StorageException())
    client = MagicMock()
    client.storage.from_.return_value = bucket

    with pytest.raises(ServiceError) as exc_info:
        await ProfileStorage(client).upload_avatar("123", b"data", "pic.png")
    assert exc_info.value.kind is ErrorKind.FORBIDDEN


async def test_register_does_not_create_row_when_sign_up_fails(auth_service, session_auth, users):
    class AuthApiError(Exception):
        status = 422
        message = "Password should be at least 6 characters"

    session_auth.sign_up.side_effect = AuthApiError()

    with pytest.raises(ServiceError):
        await auth_service.register("a@b.com", "pw", "Alice")
    users.create.assert_not_awaited()


async def test_refresh_keeps_identity(auth_service, tokens):
    payload = TokenPayload(user_id="9", email="n@m.io")
    access, refresh = auth_service.refresh(tokens.issue_refresh(payload))

    assert tokens.verify_access(access) == payload
    assert tokens.verify_refresh(refresh) == payload


async def test_session_clients_are_fresh_and_keep_no_session(monkeypatch):
    created = []

    async def fake_acreate_client(url, key, options=None):
        client = MagicMock()
        created.append((key, options))
        return client

    monkeypatch.setattr(supabase_client, "acreate_client", fake_acreate_client)

    first = await SupabaseClient.create_session_client()
    second = await SupabaseClient.create_session_client()

    assert first is not second
    key, options = created[0]
    assert key == settings.supabase_key
    assert options.persist_session is False
    assert options.auto_refresh_token is False


@pytest.mark.parametrize(
    "filename, expected_name",
    [("../../456/x.png", "x.png"), ("/etc/passwd", "passwd"), ("..", "upload"), ("me.png", "me.png")],
)
def test_avatar_key_stays_in_user_folder(filename, expected_name):
    key = ProfileStorage.avatar_key("123", filename)
    assert re.fullmatch(rf"profile-pictures/123/\d+-{re.escape(expected_name)}", key)
