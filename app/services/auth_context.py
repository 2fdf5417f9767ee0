"""
Auth context: session, profile and "view as" state for one browser session.

State moves uninitialized -> loading -> authenticated | anonymous. Every change
is published as a complete, immutable ``AuthState`` snapshot, so listeners never
observe a half-applied transition (for instance a profile without a user).
"""
import logging
from dataclasses import dataclass, replace
from typing import Any, Callable, List, Optional

from app.core.errors import ConnectivityError, DashboardError, PermissionDeniedError, ProfileFetchError
from app.schemas.auth import AuthStateResponse, AuthStatus, AuthUser, Profile
from app.services.profile_store import ProfileStore
from app.services.session_client import SessionClient, user_from_session

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuthState:
    status: AuthStatus = AuthStatus.uninitialized
    user: Optional[AuthUser] = None
    profile: Optional[Profile] = None
    impersonated_client_id: Optional[str] = None

    @property
    def effective_client_id(self) -> Optional[str]:
        if self.impersonated_client_id:
            return self.impersonated_client_id
        return self.profile.client_id if self.profile else None

    @property
    def degraded(self) -> bool:
        return self.status == AuthStatus.authenticated and self.user is not None and self.profile is None

    def to_response(self) -> AuthStateResponse:
        return AuthStateResponse(
            status=self.status,
            user=self.user,
            profile=self.profile,
            impersonated_client_id=self.impersonated_client_id,
            effective_client_id=self.effective_client_id,
            degraded=self.degraded,
        )


AuthListener = Callable[[AuthState, AuthState], None]


class AuthContext:
    """Single owner of auth state; everything else reads snapshots or subscribes."""

    def __init__(self, session_client: SessionClient, profile_store: ProfileStore):
        self.session_client = session_client
        self.profile_store = profile_store
        self._state = AuthState()
        self._listeners: List[AuthListener] = []
        self._subscription: Optional[Any] = None

    @property
    def state(self) -> AuthState:
        return self._state

    def subscribe(self, listener: AuthListener) -> Callable[[], None]:
        """Register ``listener(old, new)``; returns a callable that unregisters it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def initialize(self) -> AuthState:
        """Load the current session and start following session changes."""
        if self._subscription is None:
            self._subscription = self.session_client.on_change(self._on_session_change)

        try:
            session = self.session_client.get_session()
        except DashboardError as e:
            logger.warning(f"Could not read current session, treating as signed out: {e.message}")
            session = None

        self._derive(session)
        return self._state

    def _on_session_change(self, event: str, session: Optional[Any]) -> None:
        logger.info(f"Session change event: {event}")
        self._derive(session)

    def _derive(self, session: Optional[Any]) -> None:
        user = user_from_session(session)
        if user is None:
            self._publish(AuthState(status=AuthStatus.anonymous))
            return

        previous = self._state
        same_user = previous.user is not None and previous.user.id == user.id
        # "view as" survives a token refresh, never a change of user
        override = previous.impersonated_client_id if same_user else None

        self._publish(
            AuthState(
                status=AuthStatus.loading,
                user=user,
                profile=previous.profile if same_user else None,
                impersonated_client_id=override,
            )
        )

        profile: Optional[Profile] = None
        try:
            profile = self.profile_store.get_profile(user.id)
        except ProfileFetchError as e:
            logger.warning(f"User {user.id} is signed in without a profile: {e.message}")

        self._publish(replace(self._state, status=AuthStatus.authenticated, profile=profile))

    def revalidate(self) -> AuthState:
        """Confirm the signed-in session is still live.

        An expired or revoked session moves the context to anonymous. A token
        refresh performed by the lookup arrives as a session-change event.
        """
        if self._state.user is None:
            return self._state

        try:
            session = self.session_client.get_session()
        except ConnectivityError as e:
            logger.warning(f"Could not revalidate session, keeping current state: {e.message}")
            return self._state
        except DashboardError as e:
            logger.info(f"Session for user {self._state.user.id} is no longer valid: {e.message}")
            session = None

        user = user_from_session(session)
        if user is None or user.id != self._state.user.id:
            self._derive(session)
        return self._state

    def sign_out(self) -> None:
        """Sign out and drop user, profile and any "view as" override together."""
        try:
            self.session_client.sign_out()
        finally:
            self._publish(AuthState(status=AuthStatus.anonymous))

    def impersonate_client(self, client_id: Optional[str]) -> AuthState:
        """Set (or clear, with None) the "view as" tenant. Does not re-authenticate."""
        if self._state.user is None:
            raise PermissionDeniedError("Sign in before viewing another client's dashboard")
        self._publish(replace(self._state, impersonated_client_id=client_id or None))
        if client_id:
            logger.info(f"User {self._state.user.id} viewing dashboard as client {client_id}")
        return self._state

    def close(self) -> None:
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None
        self._listeners.clear()

    def _publish(self, new_state: AuthState) -> None:
        old_state = self._state
        if new_state == old_state:
            return
        self._state = new_state
        for listener in list(self._listeners):
            try:
                listener(old_state, new_state)
            except Exception:
                logger.exception("Auth state listener failed")
