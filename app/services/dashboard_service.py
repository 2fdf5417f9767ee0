"""
Dashboard view state for one browser session.

Holds the latest stats, the selected date range and the polling loop. Data is
fetched on mount, on date-range change, on tenant change, on a fixed interval
and on manual refresh. Each fetch takes a generation number; a response older
than the newest one already applied is dropped, so a slow early request can
never overwrite fresher data. Responses issued for a tenant other than the
current one, or that land after ``stop()``, are dropped as well.
"""
import asyncio
import logging
import math
from datetime import datetime, timezone
from typing import Dict, List, Optional, Set

from pydantic import ValidationError

from app.core.config import settings
from app.core.errors import CONNECTION_LOST_MESSAGE, ConnectivityError
from app.schemas.auth import AuthStatus
from app.schemas.dashboard import (
    DashboardPanels,
    DashboardStats,
    DashboardViewResponse,
    DatePreset,
    DateRange,
    FunnelStage,
    LeadSourceRow,
)
from app.services.analytics_client import AnalyticsClient
from app.services.auth_context import AuthContext, AuthState
from app.services.date_ranges import DEFAULT_PRESET, dashboard_timezone, range_for_preset

logger = logging.getLogger(__name__)

SENTIMENT_KEYS = ("positive", "negative", "booked", "neutral", "unresponsive")


def greeting_for(now: datetime) -> str:
    hour = now.hour
    if hour < 12:
        return "Good Morning"
    if hour < 18:
        return "Good Afternoon"
    return "Good Evening"


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def sentiment_percentages(stats: DashboardStats) -> Optional[Dict[str, int]]:
    total = stats.sentiment.total
    if total == 0:
        return None
    return {key: _round_half_up(getattr(stats.sentiment, key) / total * 100) for key in SENTIMENT_KEYS}


def funnel_stages(stats: DashboardStats) -> List[FunnelStage]:
    funnel = stats.funnel
    return [
        FunnelStage(name="Dials", value=funnel.dials),
        FunnelStage(name="Conversations", value=funnel.conversations),
        FunnelStage(name="Interested", value=funnel.interested),
        FunnelStage(name="Booked", value=funnel.booked),
    ]


def lead_source_rows(stats: DashboardStats) -> List[LeadSourceRow]:
    sources = stats.lead_sources
    return [
        LeadSourceRow(label="Calls", count=sources.calls),
        LeadSourceRow(label="SMS", count=sources.sms),
        LeadSourceRow(label="Instagram", count=sources.instagram),
        LeadSourceRow(label="Facebook", count=sources.facebook),
    ]


def build_panels(stats: Optional[DashboardStats], now: datetime = None) -> DashboardPanels:
    now = now or datetime.now(dashboard_timezone())
    if stats is None:
        return DashboardPanels(greeting=greeting_for(now))
    return DashboardPanels(
        greeting=greeting_for(now),
        funnel=funnel_stages(stats),
        lead_sources=lead_source_rows(stats),
        sentiment_percentages=sentiment_percentages(stats),
    )


class DashboardController:
    def __init__(
        self,
        auth_context: AuthContext,
        analytics_client: AnalyticsClient = None,
        poll_interval: float = None,
    ):
        self.auth_context = auth_context
        self.analytics_client = analytics_client or AnalyticsClient()
        self.poll_interval = poll_interval or settings.POLL_INTERVAL_SECONDS

        self.date_range: DateRange = range_for_preset(DEFAULT_PRESET)
        self.date_picker_open = False
        self.stats: Optional[DashboardStats] = None
        self.error: Optional[str] = None
        self.last_updated_at: Optional[datetime] = None

        self._issued_generation = 0
        self._applied_generation = 0
        self._in_flight = 0
        self._mounted = False
        self._poll_task: Optional[asyncio.Task] = None
        self._background: Set[asyncio.Task] = set()
        self._unsubscribe = None

    @property
    def loading(self) -> bool:
        return self._in_flight > 0

    @property
    def mounted(self) -> bool:
        return self._mounted

    @property
    def client_id(self) -> Optional[str]:
        return self.auth_context.state.effective_client_id

    async def start(self) -> None:
        """Mount the view: follow tenant changes, fetch once, start polling."""
        if self._mounted:
            return
        self._mounted = True
        self._unsubscribe = self.auth_context.subscribe(self._on_auth_change)
        self._restart_polling()
        await self.fetch_dashboard_data()

    async def stop(self) -> None:
        """Tear the view down. Fetches still in flight resolve into the void."""
        self._mounted = False
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        task, self._poll_task = self._poll_task, None
        if task is not None:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

    async def fetch_dashboard_data(self) -> bool:
        """Fetch stats for the effective tenant and current range.

        Returns True when the response was applied to the view.
        """
        client_id = self.client_id
        if not client_id:
            return False

        self._issued_generation += 1
        generation = self._issued_generation
        date_range = self.date_range

        self._in_flight += 1
        try:
            raw = await self.analytics_client.get_stats(client_id, date_range)
            stats = DashboardStats.model_validate(raw)
        except ConnectivityError as e:
            return self._apply_failure(generation, client_id, e.message)
        except ValidationError as e:
            logger.error(f"Analytics response for client {client_id} failed validation: {e}")
            return self._apply_failure(generation, client_id, "invalid analytics payload")
        finally:
            self._in_flight -= 1

        if not self._accepts(generation, client_id):
            return False
        self._applied_generation = generation
        self.stats = stats
        self.error = None
        self.last_updated_at = datetime.now(timezone.utc)
        return True

    def _accepts(self, generation: int, client_id: str) -> bool:
        if not self._mounted:
            logger.debug(f"Dropping dashboard response {generation}: view is not mounted")
            return False
        if client_id != self.client_id:
            logger.info(
                f"Dropping dashboard response {generation}: issued for client {client_id}, "
                f"now showing {self.client_id}"
            )
            return False
        if generation < self._applied_generation:
            logger.info(
                f"Dropping stale dashboard response {generation} "
                f"(already showing {self._applied_generation})"
            )
            return False
        return True

    def _apply_failure(self, generation: int, client_id: str, reason: str) -> bool:
        logger.warning(f"Dashboard fetch for client {client_id} failed: {reason}")
        if not self._accepts(generation, client_id):
            return False
        self._applied_generation = generation
        # previous stats stay on screen
        self.error = CONNECTION_LOST_MESSAGE
        return True

    async def refresh(self) -> bool:
        return await self.fetch_dashboard_data()

    def toggle_date_picker(self) -> bool:
        self.date_picker_open = not self.date_picker_open
        return self.date_picker_open

    async def select_preset(self, preset: DatePreset, now: datetime = None) -> DateRange:
        """Recompute the window from "now", close the picker and refetch."""
        self.date_range = range_for_preset(preset, now)
        self.date_picker_open = False
        if self._mounted:
            self._restart_polling()
            await self.fetch_dashboard_data()
        return self.date_range

    def _on_auth_change(self, old: AuthState, new: AuthState) -> None:
        if new.status == AuthStatus.anonymous:
            return
        if old.effective_client_id == new.effective_client_id:
            return
        logger.info(f"Dashboard tenant changed: {old.effective_client_id} -> {new.effective_client_id}")
        # never show one tenant's numbers under another tenant's name
        self.stats = None
        self.error = None
        self._applied_generation = self._issued_generation
        if self._mounted:
            self._restart_polling()
            self._spawn(self.fetch_dashboard_data())

    def _spawn(self, coro) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            coro.close()
            return
        task = loop.create_task(coro)
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    def _restart_polling(self) -> None:
        if self._poll_task is not None:
            self._poll_task.cancel()
            self._poll_task = None
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return
        self._poll_task = loop.create_task(self._poll_loop())

    async def _poll_loop(self) -> None:
        while True:
            await asyncio.sleep(self.poll_interval)
            try:
                # an expired session turns the context anonymous, which stops fetching
                self.auth_context.revalidate()
                await self.fetch_dashboard_data()
            except Exception:
                logger.exception("Dashboard poll failed")

    def view(self, now: datetime = None) -> DashboardViewResponse:
        return DashboardViewResponse(
            stats=self.stats,
            loading=self.loading,
            error=self.error,
            date_range=self.date_range,
            date_picker_open=self.date_picker_open,
            client_id=self.client_id,
            last_updated_at=self.last_updated_at,
            panels=build_panels(self.stats, now),
        )
