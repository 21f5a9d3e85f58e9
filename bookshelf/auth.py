"""Session tracking and sign-in flows against the Supabase auth API."""
import logging
import re
from typing import Callable, List, Optional
from urllib.parse import urlparse

import httpx
from supabase import AsyncClient, AuthError as SupabaseAuthError

from bookshelf.errors import AuthError, BackendNotConfigured
from bookshelf.models import Session

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
MIN_PASSWORD_LENGTH = 6

# Backend message fragment -> message shown to the user
AUTH_ERROR_MESSAGES = [
    ("Invalid login credentials", "Invalid credentials. Check your email and password."),
    ("Email not confirmed", "Please confirm your email address to activate your account."),
    ("Too many requests", "Too many attempts. Please wait a few minutes and try again."),
    ("User already registered", "This email is already registered. Please sign in."),
    ("duplicate key value violates unique constraint", "This email is already registered. Please sign in."),
    ("Password should be at least", "Password must be at least 6 characters long."),
    ("Invalid email", "Please enter a valid email address."),
    ("provider is not enabled", "This sign-in provider is not enabled for the project."),
    ("JWT expired", "Your session has expired. Please sign in again."),
    ("NetworkError", "Connection error. Please check your internet connection."),
]

SessionCallback = Callable[[Optional[Session]], None]


def friendly_auth_message(error: Exception, default: str) -> str:
    """Translate a backend auth error into a message for the user."""
    text = str(error)
    for fragment, message in AUTH_ERROR_MESSAGES:
        if fragment in text:
            return message
    return default


class Subscription:
    """Handle returned by SessionState.subscribe."""

    def __init__(self, state: "SessionState", callback: SessionCallback):
        self._state = state
        self._callback = callback

    def unsubscribe(self):
        self._state._remove(self._callback)


class SessionState:
    """
    Holds the current session and notifies subscribers when it changes.

    Only the auth gateway publishes; everything else reads ``current`` or
    subscribes. Subscribers run on transitions only: signed out to signed
    in, signed in to signed out, or one session replaced by another.
    """

    def __init__(self):
        self._session: Optional[Session] = None
        self._subscribers: List[SessionCallback] = []

    @property
    def current(self) -> Optional[Session]:
        return self._session

    @property
    def user_id(self) -> Optional[str]:
        return self._session.user_id if self._session else None

    def subscribe(self, callback: SessionCallback) -> Subscription:
        self._subscribers.append(callback)
        return Subscription(self, callback)

    def publish(self, session: Optional[Session]):
        if session == self._session:
            return
        self._session = session
        for callback in list(self._subscribers):
            callback(session)

    def _remove(self, callback: SessionCallback):
        if callback in self._subscribers:
            self._subscribers.remove(callback)


class AuthGateway:
    """
    Email/password and OAuth sign-in through Supabase.

    Without a backend client the gateway is disabled: ``enabled`` is False
    and every operation raises BackendNotConfigured.
    """

    def __init__(self, client: Optional[AsyncClient], state: Optional[SessionState] = None):
        self.client = client
        self.state = state or SessionState()
        self._backend_subscription = None

    @property
    def enabled(self) -> bool:
        return self.client is not None

    def _require_client(self) -> AsyncClient:
        if self.client is None:
            raise BackendNotConfigured()
        return self.client

    async def start(self):
        """Load any existing session and follow backend auth events."""
        if not self.enabled:
            logger.warning("Authentication is disabled: Supabase is not configured")
            return

        try:
            current = await self.client.auth.get_session()
        except (SupabaseAuthError, httpx.HTTPError) as e:
            logger.error(f"Failed to read the current session: {e}")
            current = None
        self.state.publish(Session.from_auth(current))

        self._backend_subscription = self.client.auth.on_auth_state_change(self._on_auth_event)

    def _on_auth_event(self, event, session):
        logger.info(f"Auth event: {event}")
        self.state.publish(Session.from_auth(session))

    def get_current_session(self) -> Optional[Session]:
        return self.state.current

    def on_session_change(self, callback: SessionCallback) -> Subscription:
        return self.state.subscribe(callback)

    async def sign_in_with_password(self, email: str, password: str) -> Session:
        """
        Sign in with email and password.

        Raises:
            AuthError: with a user-facing message when sign-in fails
        """
        client = self._require_client()
        try:
            response = await client.auth.sign_in_with_password(
                {"email": email, "password": password}
            )
        except (SupabaseAuthError, httpx.HTTPError) as e:
            logger.error(f"Sign-in failed for {email}: {e}")
            raise AuthError(friendly_auth_message(
                e, "Sign-in failed. Please try again."
            )) from e

        session = Session.from_auth(response.session)
        if session is None:
            raise AuthError("Could not sign in. Please try again.")
        self.state.publish(session)
        return session

    async def sign_up(self, email: str, password: str, redirect_to: Optional[str] = None) -> bool:
        """
        Register a new account.

        Returns:
            True when the backend is waiting for email confirmation

        Raises:
            AuthError: on invalid input or when registration fails
        """
        if not email or not password:
            raise AuthError("Please fill in all fields.")
        if len(password) < MIN_PASSWORD_LENGTH:
            raise AuthError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long.")
        if not EMAIL_PATTERN.match(email):
            raise AuthError("Please enter a valid email address.")

        client = self._require_client()
        credentials = {"email": email, "password": password}
        if redirect_to:
            credentials["options"] = {"email_redirect_to": redirect_to}

        try:
            response = await client.auth.sign_up(credentials)
        except (SupabaseAuthError, httpx.HTTPError) as e:
            logger.error(f"Sign-up failed for {email}: {e}")
            raise AuthError(friendly_auth_message(
                e, "Registration failed. Please try again."
            )) from e

        user = response.user
        if user is None:
            raise AuthError("Could not create the account. Please try again.")
        # An existing address comes back as a user without identities
        if user.identities is not None and len(user.identities) == 0:
            raise AuthError("This email is already registered. Please sign in.")

        session = Session.from_auth(response.session)
        if session is not None:
            self.state.publish(session)
        return session is None

    async def sign_in_with_redirect(self, provider: str = "google", redirect_to: Optional[str] = None) -> str:
        """
        Start an OAuth sign-in.

        Returns:
            The provider URL the user must open

        Raises:
            AuthError: if the backend refuses or returns an unusable URL
        """
        client = self._require_client()
        options = {
            "query_params": {"access_type": "offline", "prompt": "consent"},
        }
        if redirect_to:
            options["redirect_to"] = redirect_to

        try:
            response = await client.auth.sign_in_with_oauth({"provider": provider, "options": options})
        except (SupabaseAuthError, httpx.HTTPError) as e:
            logger.error(f"OAuth sign-in with {provider} failed: {e}")
            raise AuthError(friendly_auth_message(
                e, "Sign-in with the provider failed. Please try again."
            )) from e

        url = (getattr(response, "url", None) or "").strip()
        if not url:
            raise AuthError("No redirect URL was returned by the auth service.")
        if urlparse(url).scheme not in ("http", "https"):
            raise AuthError(f"Invalid redirect URL: {url}")
        return url

    async def sign_out(self):
        client = self._require_client()
        try:
            await client.auth.sign_out()
        except (SupabaseAuthError, httpx.HTTPError) as e:
            logger.error(f"Sign-out failed: {e}")
            raise AuthError("Could not sign out. Please try again.") from e
        self.state.publish(None)

    def close(self):
        """Stop following backend auth events."""
        if self._backend_subscription is not None:
            self._backend_subscription.unsubscribe()
            self._backend_subscription = None
