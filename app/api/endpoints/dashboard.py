"""Dashboard endpoints: KPIs, charts and recent calls for the effective tenant."""
from typing import List

from fastapi import APIRouter, Depends

from app.api.deps import require_user
from app.schemas.auth import MessageResponse
from app.schemas.dashboard import DashboardViewResponse, DatePreset, DateRangeRequest
from app.services.session_registry import DashboardSession

router = APIRouter()


async def _mounted(session: DashboardSession) -> DashboardSession:
    # first visit mounts the view: initial fetch plus the polling loop
    if not session.dashboard.mounted:
        await session.dashboard.start()
    return session


@router.get("", response_model=DashboardViewResponse)
async def get_dashboard(session: DashboardSession = Depends(require_user)):
    await _mounted(session)
    return session.dashboard.view()


@router.post("/refresh", response_model=DashboardViewResponse)
async def refresh_dashboard(session: DashboardSession = Depends(require_user)):
    await _mounted(session)
    await session.dashboard.refresh()
    return session.dashboard.view()


@router.get("/presets", response_model=List[str])
async def list_presets():
    return [preset.value for preset in DatePreset]


@router.put("/date-range", response_model=DashboardViewResponse)
async def set_date_range(request: DateRangeRequest, session: DashboardSession = Depends(require_user)):
    await _mounted(session)
    await session.dashboard.select_preset(request.preset)
    return session.dashboard.view()


@router.post("/date-picker", response_model=DashboardViewResponse)
async def toggle_date_picker(session: DashboardSession = Depends(require_user)):
    session.dashboard.toggle_date_picker()
    return session.dashboard.view()


@router.delete("", response_model=MessageResponse)
async def close_dashboard(session: DashboardSession = Depends(require_user)):
    """Leave the dashboard: stop polling for this session."""
    await session.dashboard.stop()
    return MessageResponse(message="Dashboard closed")
