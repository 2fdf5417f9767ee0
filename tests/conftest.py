"""
Shared fixtures: a stubbed Supabase client, mocked remote APIs and a FastAPI
test client whose dashboard sessions are built from those stubs.
"""
from types import SimpleNamespace
from typing import Any, Dict, Optional
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from app.main import app
from app.services.admin_service import AdminService
from app.services.auth_context import AuthContext
from app.services.dashboard_service import DashboardController
from app.services.management_client import ManagementClient
from app.services.analytics_client import AnalyticsClient
from app.services.profile_store import ProfileStore
from app.services.session_client import SessionClient
from app.services.session_registry import build_session, session_registry

SUPER_ADMIN_PROFILE = {
    "id": "user-1",
    "full_name": "Auraalith HQ",
    "role": "super_admin",
    "client_id": "client-hq",
    "agent_name": None,
}

ADMIN_PROFILE = {
    "id": "user-1",
    "full_name": "Skyline Realty",
    "role": "admin",
    "client_id": "client-skyline",
    "agent_name": None,
}

AGENT_PROFILE = {
    "id": "user-1",
    "full_name": "Jamie Agent",
    "role": "agent",
    "client_id": "client-skyline",
    "agent_name": "Jamie",
}


def make_auth_session(user_id: str = "user-1", email: str = "owner@example.com"):
    """Shape of a Supabase session as far as this app reads it."""
    return SimpleNamespace(
        user=SimpleNamespace(id=user_id, email=email),
        access_token="access-token",
        refresh_token="refresh-token",
    )


def make_supabase(profile_row: Optional[Dict[str, Any]] = None, session: Any = None) -> MagicMock:
    client = MagicMock()
    client.auth.get_session.return_value = session
    client.auth.sign_in_with_password.return_value = SimpleNamespace(
        session=session, user=session.user if session else None
    )
    client.auth.set_session.return_value = SimpleNamespace(session=session, user=session.user if session else None)
    client.auth.on_auth_state_change.return_value = MagicMock()
    set_profile_row(client, profile_row)
    return client


def set_profile_row(client: MagicMock, profile_row: Optional[Dict[str, Any]]) -> None:
    query = client.table.return_value.select.return_value.eq.return_value.maybe_single.return_value
    query.execute.return_value = MagicMock(data=profile_row)


def session_change_callback(client: MagicMock):
    """The callback the auth context registered with the Supabase client."""
    return client.auth.on_auth_state_change.call_args[0][0]


def make_stats_payload(total_calls: int = 120, **overrides) -> Dict[str, Any]:
    payload = {
        "kpis": {
            "total_calls": total_calls,
            "hours_saved": 14.5,
            "appointments_booked": 9,
            "pipeline_value": 1250000,
            "closed_revenue": 36000,
        },
        "funnel": {"dials": 120, "conversations": 64, "interested": 21, "booked": 9},
        "outcomes": {"booked": 9, "voicemail": 40, "not_interested": 15},
        "lead_sources": {"calls": 80, "sms": 25, "instagram": 10, "facebook": 5},
        "hourly_activity": [{"hour": "09:00", "count": 12}, {"hour": "10:00", "count": 18}],
        "sentiment": {"positive": 30, "negative": 10, "booked": 9, "neutral": 40, "unresponsive": 11},
        "hot_leads": [
            {
                "name": "Dana Whitfield",
                "lead_type": "Seller",
                "budget": 650000,
                "timeline": "3 months",
                "preferences": "Listing in spring",
            }
        ],
        "recent_calls": [
            {
                "call_id": "call-1",
                "phone_number": "+15550100",
                "contact_name": "Dana Whitfield",
                "duration_seconds": 184,
                "outcome": "booked",
                "recording_url": "https://recordings.example.com/call-1.mp3",
                "transcript_summary": "Wants a valuation next week.",
                "created_at": "2026-10-15T14:03:00Z",
            }
        ],
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def auth_session():
    return make_auth_session()


@pytest.fixture
def profile_row():
    return dict(SUPER_ADMIN_PROFILE)


@pytest.fixture
def supabase_client(profile_row, auth_session):
    return make_supabase(profile_row=profile_row, session=auth_session)


@pytest.fixture
def auth_context(supabase_client):
    return AuthContext(SessionClient(client=supabase_client), ProfileStore(supabase_client))


@pytest.fixture
def analytics():
    mock = MagicMock(spec=AnalyticsClient)
    mock.get_stats = AsyncMock(return_value=make_stats_payload())
    return mock


@pytest.fixture
def management():
    mock = MagicMock(spec=ManagementClient)
    mock.list_users = AsyncMock(return_value=[])
    mock.create_user = AsyncMock()
    mock.delete_user = AsyncMock()
    return mock


@pytest.fixture
def session_factory(supabase_client, analytics, management):
    def factory(session_id: str):
        session = build_session(session_id, client=supabase_client)
        session.dashboard = DashboardController(session.auth, analytics_client=analytics, poll_interval=3600)
        session.admin = AdminService(management_client=management, admin_secret="test-secret")
        return session

    return factory


@pytest.fixture
def client(session_factory):
    with patch.object(session_registry, "factory", session_factory):
        with TestClient(app) as test_client:
            yield test_client


@pytest.fixture
def logged_in(client: TestClient):
    response = client.post(
        "/api/v1/auth/login",
        json={"email": "owner@example.com", "password": "secret123"},
    )
    assert response.status_code == 200
    return client
