"""Session client wrapping the hosted auth service (Supabase)."""
import logging
from typing import Any, Callable, Optional

import httpx
from supabase import AuthError, AuthRetryableError, Client, ClientOptions, create_client

from app.core.config import settings
from app.core.errors import AuthServiceError, ConfigurationError, ConnectivityError
from app.schemas.auth import AuthUser

logger = logging.getLogger(__name__)

# (event, session) -> None; event is the auth service's name, e.g. "SIGNED_IN"
SessionChangeCallback = Callable[[str, Optional[Any]], None]


def create_supabase_client(url: str = None, key: str = None) -> Client:
    """Build a Supabase client, failing fast when configuration is missing."""
    url = url if url is not None else settings.SUPABASE_URL
    key = key if key is not None else settings.SUPABASE_ANON_KEY

    missing = [name for name, value in (("SUPABASE_URL", url), ("SUPABASE_ANON_KEY", key)) if not value]
    if missing:
        logger.error(f"Supabase configuration missing: {', '.join(missing)}")
        raise ConfigurationError(
            "Supabase configuration missing. Please set "
            f"{' and '.join(missing)} environment variable{'s' if len(missing) > 1 else ''}."
        )

    # Refresh happens lazily in get_session() so change events stay on the caller's thread
    options = ClientOptions(auto_refresh_token=False, persist_session=False)
    return create_client(url, key, options=options)


def user_from_session(session: Optional[Any]) -> Optional[AuthUser]:
    user = getattr(session, "user", None) if session is not None else None
    if user is None:
        return None
    return AuthUser(id=str(user.id), email=getattr(user, "email", None))


class SessionClient:
    """Sign-in, sign-out, session retrieval and change notification."""

    def __init__(self, client: Client = None, url: str = None, key: str = None):
        self.client = client or create_supabase_client(url, key)

    def _call(self, action: str, fn: Callable[[], Any]) -> Any:
        try:
            return fn()
        except AuthRetryableError as e:
            logger.error(f"Auth service unreachable during {action}: {e}")
            raise ConnectivityError("Unable to reach the authentication service") from e
        except AuthError as e:
            logger.info(f"Auth service rejected {action}: {e.message}")
            raise AuthServiceError(e.message) from e
        except httpx.HTTPError as e:
            logger.error(f"Auth service transport error during {action}: {e}")
            raise ConnectivityError("Unable to reach the authentication service") from e

    def sign_in(self, email: str, password: str) -> Any:
        response = self._call(
            "sign-in",
            lambda: self.client.auth.sign_in_with_password({"email": email, "password": password}),
        )
        return response.session

    def sign_out(self) -> None:
        self._call("sign-out", self.client.auth.sign_out)

    def get_session(self) -> Optional[Any]:
        return self._call("session lookup", self.client.auth.get_session)

    def set_session(self, access_token: str, refresh_token: str) -> Any:
        """Adopt the recovery session carried by an emailed reset link."""
        response = self._call(
            "recovery session",
            lambda: self.client.auth.set_session(access_token, refresh_token),
        )
        return response.session

    def send_password_reset(self, email: str, redirect_to: str) -> None:
        self._call(
            "password reset",
            lambda: self.client.auth.reset_password_for_email(email, {"redirect_to": redirect_to}),
        )

    def update_password(self, password: str) -> None:
        self._call("password update", lambda: self.client.auth.update_user({"password": password}))

    def on_change(self, callback: SessionChangeCallback) -> Any:
        """Register for session changes; the returned subscription has ``unsubscribe()``."""
        return self.client.auth.on_auth_state_change(callback)
