"""In-memory registry of browser sessions.

Each browser session owns its own auth client, auth context, dashboard view
and admin service, the way a single browser tab would own them. Sessions that
go unused for ``SESSION_IDLE_TIMEOUT_SECONDS`` are closed by ``sweep()``, which
also stops their polling.
"""
import asyncio
import logging
import secrets
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Optional

from supabase import Client

from app.core.config import settings
from app.services.admin_service import AdminService
from app.services.auth_context import AuthContext
from app.services.auth_flows import AuthFlows
from app.services.dashboard_service import DashboardController
from app.services.profile_store import ProfileStore
from app.services.session_client import SessionClient, create_supabase_client

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class DashboardSession:
    id: str
    session_client: SessionClient
    auth: AuthContext
    dashboard: DashboardController
    admin: AdminService
    flows: AuthFlows
    created_at: datetime = field(default_factory=_utcnow)
    last_seen_at: datetime = field(default_factory=_utcnow)

    def touch(self, now: datetime = None) -> None:
        self.last_seen_at = now or _utcnow()

    async def close(self) -> None:
        await self.dashboard.stop()
        self.auth.close()


def build_session(session_id: str, client: Client = None) -> DashboardSession:
    client = client or create_supabase_client()
    session_client = SessionClient(client=client)
    auth = AuthContext(session_client, ProfileStore(client))
    return DashboardSession(
        id=session_id,
        session_client=session_client,
        auth=auth,
        dashboard=DashboardController(auth),
        admin=AdminService(),
        flows=AuthFlows(session_client),
    )


class SessionRegistry:
    def __init__(
        self,
        factory: Callable[[str], DashboardSession] = build_session,
        idle_timeout: float = None,
    ):
        self.factory = factory
        self.idle_timeout = idle_timeout or settings.SESSION_IDLE_TIMEOUT_SECONDS
        self._sessions: Dict[str, DashboardSession] = {}

    def create(self) -> DashboardSession:
        session_id = secrets.token_urlsafe(32)
        session = self.factory(session_id)
        self._sessions[session_id] = session
        logger.info(f"Opened dashboard session ({len(self._sessions)} active)")
        return session

    def get(self, session_id: Optional[str]) -> Optional[DashboardSession]:
        if not session_id:
            return None
        session = self._sessions.get(session_id)
        if session is not None:
            session.touch()
        return session

    async def destroy(self, session_id: str) -> None:
        session = self._sessions.pop(session_id, None)
        if session is not None:
            await session.close()
            logger.info(f"Closed dashboard session ({len(self._sessions)} active)")

    async def sweep(self, now: datetime = None) -> int:
        """Close sessions idle longer than ``idle_timeout``; returns how many."""
        cutoff = (now or _utcnow()) - timedelta(seconds=self.idle_timeout)
        expired = [sid for sid, s in self._sessions.items() if s.last_seen_at < cutoff]
        for session_id in expired:
            await self.destroy(session_id)
        if expired:
            logger.info(f"Swept {len(expired)} idle dashboard session(s)")
        return len(expired)

    async def run_sweeper(self, interval: float = None) -> None:
        interval = interval or settings.SESSION_SWEEP_INTERVAL_SECONDS
        while True:
            await asyncio.sleep(interval)
            try:
                await self.sweep()
            except Exception:
                logger.exception("Session sweep failed")

    async def close_all(self) -> None:
        for session_id in list(self._sessions):
            await self.destroy(session_id)

    def __len__(self) -> int:
        return len(self._sessions)


session_registry = SessionRegistry()
