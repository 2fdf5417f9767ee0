"""Authentication endpoints backed by the hosted auth service."""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Response, status

from app.api.deps import (
    clear_session_cookie,
    get_optional_session,
    require_user,
    set_session_cookie,
)
from app.core.errors import DashboardError
from app.schemas.auth import (
    AuthStateResponse,
    AuthStatus,
    ForgotPasswordRequest,
    ImpersonateRequest,
    LoginRequest,
    MessageResponse,
    UpdatePasswordRequest,
)
from app.services.auth_flows import AuthFlows
from app.services.session_client import SessionClient
from app.services.session_registry import DashboardSession, session_registry

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/login", response_model=AuthStateResponse)
async def login(
    request: LoginRequest,
    response: Response,
    existing: Optional[DashboardSession] = Depends(get_optional_session),
):
    """Sign in with email and password and open a dashboard session."""
    if existing is not None:
        await session_registry.destroy(existing.id)

    session = session_registry.create()
    try:
        session.flows.login(request.email, request.password)
        state = session.auth.initialize()
    except DashboardError:
        await session_registry.destroy(session.id)
        raise

    set_session_cookie(response, session.id)
    return state.to_response()


@router.post("/logout", response_model=MessageResponse)
async def logout(response: Response, session: Optional[DashboardSession] = Depends(get_optional_session)):
    """Sign out; user, profile and any "view as" override are dropped together."""
    clear_session_cookie(response)
    if session is None:
        return MessageResponse(message="Signed out")
    try:
        session.auth.sign_out()
    finally:
        await session_registry.destroy(session.id)
    return MessageResponse(message="Signed out")


@router.get("/me", response_model=AuthStateResponse)
async def get_auth_state(session: Optional[DashboardSession] = Depends(get_optional_session)):
    """Current auth state; anonymous callers should be sent to the login page."""
    if session is None:
        return AuthStateResponse(status=AuthStatus.anonymous)
    return session.auth.state.to_response()


@router.post("/forgot-password", response_model=MessageResponse)
async def forgot_password(request: ForgotPasswordRequest):
    """Ask the auth service to email a reset link that returns to /update-password."""
    flows = AuthFlows(SessionClient())
    return MessageResponse(message=flows.forgot_password(request.email))


@router.post("/update-password", response_model=MessageResponse)
async def update_password(
    request: UpdatePasswordRequest,
    response: Response,
    existing: Optional[DashboardSession] = Depends(get_optional_session),
):
    """Set a new password inside the recovery session from the emailed link."""
    session = existing or session_registry.create()
    try:
        message = session.flows.update_password(
            request.password,
            request.confirm_password,
            access_token=request.access_token,
            refresh_token=request.refresh_token,
        )
        # an initialized context already followed the change events above
        if session.auth.state.status == AuthStatus.uninitialized:
            session.auth.initialize()
    except DashboardError:
        if existing is None:
            await session_registry.destroy(session.id)
        raise

    if existing is None:
        set_session_cookie(response, session.id)
    return MessageResponse(message=message)


@router.post("/impersonate", response_model=AuthStateResponse)
async def impersonate(request: ImpersonateRequest, session: DashboardSession = Depends(require_user)):
    """View the dashboard as another client; a null client_id exits "view as"."""
    profile = session.auth.state.profile
    if request.client_id and (profile is None or not profile.is_admin):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required")
    return session.auth.impersonate_client(request.client_id).to_response()


@router.delete("/impersonate", response_model=AuthStateResponse)
async def stop_impersonating(session: DashboardSession = Depends(require_user)):
    return session.auth.impersonate_client(None).to_response()
