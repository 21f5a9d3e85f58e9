"""Tests for session tracking and the auth gateway."""
from types import SimpleNamespace
from unittest.mock import AsyncMock, Mock

import httpx
import pytest
from supabase import AuthError as SupabaseAuthError

from bookshelf.auth import AuthGateway, SessionState, friendly_auth_message
from bookshelf.errors import AuthError, BackendNotConfigured
from bookshelf.models import Session


def raw_session(user_id="u1", email="reader@example.com", token="t1"):
    return SimpleNamespace(user=SimpleNamespace(id=user_id, email=email), access_token=token)


def backend_auth_error(message):
    error = SupabaseAuthError.__new__(SupabaseAuthError)
    Exception.__init__(error, message)
    return error


@pytest.fixture
def client():
    client = Mock()
    client.auth.get_session = AsyncMock(return_value=None)
    client.auth.sign_in_with_password = AsyncMock()
    client.auth.sign_up = AsyncMock()
    client.auth.sign_in_with_oauth = AsyncMock()
    client.auth.sign_out = AsyncMock()
    client.auth.on_auth_state_change = Mock(return_value=Mock())
    return client


def test_session_state_notifies_on_transitions_only():
    state = SessionState()
    seen = []
    state.subscribe(seen.append)

    first = Session("u1", "a@example.com", "t1")
    state.publish(first)
    state.publish(Session("u1", "a@example.com", "t1"))
    second = Session("u2", "b@example.com", "t2")
    state.publish(second)
    state.publish(None)
    state.publish(None)

    assert seen == [first, second, None]


def test_unsubscribe_stops_notifications():
    state = SessionState()
    seen = []
    subscription = state.subscribe(seen.append)

    subscription.unsubscribe()
    state.publish(Session("u1"))

    assert seen == []
    assert state.user_id == "u1"


@pytest.mark.asyncio
async def test_start_loads_session_and_follows_events(client):
    client.auth.get_session.return_value = raw_session()
    gateway = AuthGateway(client)

    await gateway.start()

    assert gateway.get_current_session() == Session("u1", "reader@example.com", "t1")
    callback = client.auth.on_auth_state_change.call_args[0][0]

    callback("SIGNED_OUT", None)
    assert gateway.get_current_session() is None

    gateway.close()
    client.auth.on_auth_state_change.return_value.unsubscribe.assert_called_once()


@pytest.mark.asyncio
async def test_disabled_gateway():
    gateway = AuthGateway(None)

    await gateway.start()

    assert gateway.enabled is False
    assert gateway.get_current_session() is None
    with pytest.raises(BackendNotConfigured):
        await gateway.sign_in_with_password("a@example.com", "secret1")
    with pytest.raises(BackendNotConfigured):
        await gateway.sign_in_with_redirect()


@pytest.mark.asyncio
async def test_sign_in_publishes_session(client):
    client.auth.sign_in_with_password.return_value = SimpleNamespace(session=raw_session(), user=None)
    gateway = AuthGateway(client)
    seen = []
    gateway.on_session_change(seen.append)

    session = await gateway.sign_in_with_password("reader@example.com", "secret1")

    assert session.user_id == "u1"
    assert seen == [session]
    client.auth.sign_in_with_password.assert_awaited_once_with(
        {"email": "reader@example.com", "password": "secret1"}
    )


@pytest.mark.asyncio
async def test_sign_in_error_message(client):
    client.auth.sign_in_with_password.side_effect = backend_auth_error("Invalid login credentials")
    gateway = AuthGateway(client)

    with pytest.raises(AuthError, match="Invalid credentials"):
        await gateway.sign_in_with_password("reader@example.com", "wrong")

    assert gateway.get_current_session() is None


@pytest.mark.asyncio
async def test_sign_in_network_error(client):
    client.auth.sign_in_with_password.side_effect = httpx.ConnectError("NetworkError when attempting to fetch")
    gateway = AuthGateway(client)

    with pytest.raises(AuthError, match="Connection error"):
        await gateway.sign_in_with_password("reader@example.com", "secret1")


@pytest.mark.asyncio
@pytest.mark.parametrize("email,password,message", [
    ("", "secret1", "fill in all fields"),
    ("reader@example.com", "", "fill in all fields"),
    ("reader@example.com", "12345", "at least 6"),
    ("not-an-email", "secret1", "valid email"),
])
async def test_sign_up_validation(client, email, password, message):
    gateway = AuthGateway(client)

    with pytest.raises(AuthError, match=message):
        await gateway.sign_up(email, password)

    client.auth.sign_up.assert_not_awaited()


@pytest.mark.asyncio
async def test_sign_up_pending_confirmation(client):
    client.auth.sign_up.return_value = SimpleNamespace(
        user=SimpleNamespace(id="u1", email="reader@example.com", identities=[{"id": "x"}]),
        session=None,
    )
    gateway = AuthGateway(client)

    assert await gateway.sign_up("reader@example.com", "secret1", redirect_to="https://app.example") is True
    credentials = client.auth.sign_up.call_args[0][0]
    assert credentials["options"] == {"email_redirect_to": "https://app.example"}


@pytest.mark.asyncio
async def test_sign_up_existing_address(client):
    client.auth.sign_up.return_value = SimpleNamespace(
        user=SimpleNamespace(id="u1", email="reader@example.com", identities=[]),
        session=None,
    )
    gateway = AuthGateway(client)

    with pytest.raises(AuthError, match="already registered"):
        await gateway.sign_up("reader@example.com", "secret1")


@pytest.mark.asyncio
async def test_redirect_sign_in_returns_url(client):
    client.auth.sign_in_with_oauth.return_value = SimpleNamespace(
        provider="google", url="https://project.supabase.co/auth/v1/authorize?provider=google"
    )
    gateway = AuthGateway(client)

    url = await gateway.sign_in_with_redirect("google", redirect_to="https://app.example/callback")

    assert url.startswith("https://project.supabase.co/")
    request = client.auth.sign_in_with_oauth.call_args[0][0]
    assert request["provider"] == "google"
    assert request["options"]["redirect_to"] == "https://app.example/callback"


@pytest.mark.asyncio
@pytest.mark.parametrize("url", ["", "javascript:alert(1)"])
async def test_redirect_sign_in_rejects_bad_url(client, url):
    client.auth.sign_in_with_oauth.return_value = SimpleNamespace(provider="google", url=url)
    gateway = AuthGateway(client)

    with pytest.raises(AuthError):
        await gateway.sign_in_with_redirect()


@pytest.mark.asyncio
async def test_sign_out_clears_session(client):
    client.auth.sign_in_with_password.return_value = SimpleNamespace(session=raw_session(), user=None)
    gateway = AuthGateway(client)
    await gateway.sign_in_with_password("reader@example.com", "secret1")

    await gateway.sign_out()

    assert gateway.get_current_session() is None
    client.auth.sign_out.assert_awaited_once()


def test_friendly_auth_message_default():
    assert friendly_auth_message(Exception("something odd"), "Try again") == "Try again"
    assert "expired" in friendly_auth_message(Exception("JWT expired"), "Try again")
