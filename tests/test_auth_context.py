"""
Unit tests for the auth context state machine.
"""
import pytest
import httpx
from supabase import AuthError

from app.core.errors import PermissionDeniedError
from app.schemas.auth import AuthStatus
from app.services.auth_context import AuthContext, AuthState
from app.services.profile_store import ProfileStore
from app.services.session_client import SessionClient
from tests.conftest import ADMIN_PROFILE, make_auth_session, make_supabase, session_change_callback


def _context(supabase):
    return AuthContext(SessionClient(client=supabase), ProfileStore(supabase))


def _record(context):
    transitions = []
    context.subscribe(lambda old, new: transitions.append(new))
    return transitions


class TestInitialize:
    @pytest.mark.unit
    def test_starts_uninitialized(self, auth_context):
        assert auth_context.state.status == AuthStatus.uninitialized
        assert auth_context.state.user is None

    @pytest.mark.unit
    def test_signed_in_user_loads_profile(self, auth_context):
        transitions = _record(auth_context)

        state = auth_context.initialize()

        assert state.status == AuthStatus.authenticated
        assert state.user.id == "user-1"
        assert state.profile.role.value == "super_admin"
        assert state.effective_client_id == "client-hq"
        assert [t.status for t in transitions] == [AuthStatus.loading, AuthStatus.authenticated]

    @pytest.mark.unit
    def test_no_session_is_anonymous(self):
        context = _context(make_supabase(session=None))

        state = context.initialize()

        assert state.status == AuthStatus.anonymous
        assert state.user is None
        assert state.profile is None

    @pytest.mark.unit
    def test_profile_failure_leaves_user_signed_in(self):
        context = _context(make_supabase(profile_row=None, session=make_auth_session()))

        state = context.initialize()

        assert state.status == AuthStatus.authenticated
        assert state.user is not None
        assert state.profile is None
        assert state.degraded is True
        assert state.effective_client_id is None

    @pytest.mark.unit
    def test_one_profile_fetch_per_session_event(self, supabase_client, auth_context):
        auth_context.initialize()
        callback = session_change_callback(supabase_client)
        query = supabase_client.table.return_value.select.return_value.eq.return_value.maybe_single.return_value

        callback("TOKEN_REFRESHED", make_auth_session())
        callback("USER_UPDATED", make_auth_session())

        # initialize plus two events
        assert query.execute.call_count == 3

    @pytest.mark.unit
    def test_initialize_registers_one_subscription(self, supabase_client, auth_context):
        auth_context.initialize()
        auth_context.initialize()
        assert supabase_client.auth.on_auth_state_change.call_count == 1


class TestSessionEvents:
    @pytest.mark.unit
    def test_signed_out_event_clears_everything(self, supabase_client, auth_context):
        auth_context.initialize()
        auth_context.impersonate_client("client-other")

        session_change_callback(supabase_client)("SIGNED_OUT", None)

        assert auth_context.state == AuthState(status=AuthStatus.anonymous)

    @pytest.mark.unit
    def test_token_refresh_keeps_view_as(self, supabase_client, auth_context):
        auth_context.initialize()
        auth_context.impersonate_client("client-other")

        session_change_callback(supabase_client)("TOKEN_REFRESHED", make_auth_session())

        assert auth_context.state.impersonated_client_id == "client-other"
        assert auth_context.state.effective_client_id == "client-other"

    @pytest.mark.unit
    def test_different_user_drops_view_as_and_profile(self, supabase_client, auth_context):
        auth_context.initialize()
        auth_context.impersonate_client("client-other")
        transitions = _record(auth_context)

        session_change_callback(supabase_client)("SIGNED_IN", make_auth_session(user_id="user-2"))

        loading = transitions[0]
        assert loading.status == AuthStatus.loading
        assert loading.user.id == "user-2"
        assert loading.profile is None
        assert auth_context.state.impersonated_client_id is None


class TestSignOut:
    @pytest.mark.unit
    def test_sign_out_is_a_single_transition(self, auth_context):
        auth_context.initialize()
        auth_context.impersonate_client("client-other")
        transitions = _record(auth_context)

        auth_context.sign_out()

        assert transitions == [AuthState(status=AuthStatus.anonymous)]

    @pytest.mark.unit
    def test_no_snapshot_with_profile_but_no_user(self, supabase_client, auth_context):
        seen = []
        auth_context.subscribe(lambda old, new: seen.append(new))
        auth_context.initialize()

        auth_context.sign_out()
        # the auth service echoes the sign-out as an event
        session_change_callback(supabase_client)("SIGNED_OUT", None)

        assert all(s.user is not None or s.profile is None for s in seen)

    @pytest.mark.unit
    def test_state_cleared_even_when_remote_sign_out_fails(self, supabase_client, auth_context):
        auth_context.initialize()
        supabase_client.auth.sign_out.side_effect = RuntimeError("network down")

        with pytest.raises(RuntimeError):
            auth_context.sign_out()

        assert auth_context.state.status == AuthStatus.anonymous
        assert auth_context.state.user is None


class TestImpersonation:
    @pytest.mark.unit
    def test_view_as_overrides_effective_client(self, auth_context):
        auth_context.initialize()

        state = auth_context.impersonate_client("client-skyline")

        assert state.effective_client_id == "client-skyline"
        assert state.profile.client_id == "client-hq"

    @pytest.mark.unit
    def test_clearing_view_as_restores_own_client(self, auth_context):
        auth_context.initialize()
        auth_context.impersonate_client("client-skyline")

        state = auth_context.impersonate_client(None)

        assert state.impersonated_client_id is None
        assert state.effective_client_id == "client-hq"

    @pytest.mark.unit
    def test_requires_signed_in_user(self):
        context = _context(make_supabase(session=None))
        context.initialize()

        with pytest.raises(PermissionDeniedError):
            context.impersonate_client("client-skyline")

    @pytest.mark.unit
    def test_does_not_refetch_profile(self, supabase_client, auth_context):
        auth_context.initialize()
        query = supabase_client.table.return_value.select.return_value.eq.return_value.maybe_single.return_value

        auth_context.impersonate_client("client-skyline")

        assert query.execute.call_count == 1


class TestListeners:
    @pytest.mark.unit
    def test_failing_listener_does_not_block_others(self, auth_context):
        received = []

        def broken(old, new):
            raise ValueError("boom")

        auth_context.subscribe(broken)
        auth_context.subscribe(lambda old, new: received.append(new.status))

        auth_context.initialize()

        assert received == [AuthStatus.loading, AuthStatus.authenticated]

    @pytest.mark.unit
    def test_unsubscribe(self, auth_context):
        received = []
        unsubscribe = auth_context.subscribe(lambda old, new: received.append(new))
        unsubscribe()

        auth_context.initialize()

        assert received == []

    @pytest.mark.unit
    def test_unchanged_state_not_republished(self, auth_context):
        auth_context.initialize()
        received = []
        auth_context.subscribe(lambda old, new: received.append(new))

        auth_context.impersonate_client(None)

        assert received == []

    @pytest.mark.unit
    def test_close_unsubscribes_from_auth_service(self, supabase_client, auth_context):
        auth_context.initialize()
        subscription = supabase_client.auth.on_auth_state_change.return_value

        auth_context.close()

        subscription.unsubscribe.assert_called_once()


class TestAuthStateResponse:
    @pytest.mark.unit
    def test_to_response(self):
        context = _context(make_supabase(profile_row=dict(ADMIN_PROFILE), session=make_auth_session()))
        response = context.initialize().to_response()

        assert response.status == AuthStatus.authenticated
        assert response.effective_client_id == "client-skyline"
        assert response.degraded is False


class TestRevalidate:
    @pytest.mark.unit
    def test_live_session_keeps_state_without_profile_fetch(self, supabase_client, auth_context):
        auth_context.initialize()
        query = supabase_client.table.return_value.select.return_value.eq.return_value.maybe_single.return_value

        state = auth_context.revalidate()

        assert state.status == AuthStatus.authenticated
        assert query.execute.call_count == 1

    @pytest.mark.unit
    def test_expired_session_turns_anonymous(self, supabase_client, auth_context):
        auth_context.initialize()
        auth_context.impersonate_client("client-skyline")
        supabase_client.auth.get_session.return_value = None

        state = auth_context.revalidate()

        assert state == AuthState(status=AuthStatus.anonymous)

    @pytest.mark.unit
    def test_rejected_refresh_turns_anonymous(self, supabase_client, auth_context):
        auth_context.initialize()
        supabase_client.auth.get_session.side_effect = AuthError("Invalid Refresh Token: Refresh Token Not Found", None)

        assert auth_context.revalidate().status == AuthStatus.anonymous

    @pytest.mark.unit
    def test_unreachable_auth_service_keeps_state(self, supabase_client, auth_context):
        auth_context.initialize()
        supabase_client.auth.get_session.side_effect = httpx.ConnectError("connection refused")

        state = auth_context.revalidate()

        assert state.status == AuthStatus.authenticated
        assert state.user.id == "user-1"

    @pytest.mark.unit
    def test_anonymous_context_does_not_query(self):
        supabase = make_supabase(session=None)
        context = _context(supabase)
        context.initialize()
        supabase.auth.get_session.reset_mock()

        context.revalidate()

        supabase.auth.get_session.assert_not_called()
