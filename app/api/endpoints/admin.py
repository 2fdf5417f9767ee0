"""Admin panel endpoints: role-gated user provisioning, listing and deletion."""
from fastapi import APIRouter, Depends, Query

from app.api.deps import require_user
from app.core.errors import PermissionDeniedError, ValidationFailedError
from app.schemas.admin import AdminFormResponse, CreateUserRequest, ManagementResult, UserListResponse
from app.schemas.auth import AuthStateResponse
from app.services.admin_service import admin_form, require_admin
from app.services.session_registry import DashboardSession

router = APIRouter()


@router.get("/form", response_model=AdminFormResponse)
async def get_form(session: DashboardSession = Depends(require_user)):
    return admin_form(require_admin(session.auth.state.profile))


@router.get("/users", response_model=UserListResponse)
async def list_users(session: DashboardSession = Depends(require_user)):
    state = session.auth.state
    return await session.admin.list_users(state.user, state.profile)


@router.post("/users", response_model=ManagementResult)
async def create_user(request: CreateUserRequest, session: DashboardSession = Depends(require_user)):
    return await session.admin.create_user(session.auth.state.profile, request)


@router.delete("/users/{user_id}", response_model=ManagementResult)
async def delete_user(
    user_id: str,
    confirm: bool = Query(False, description="Must be true; deletion cannot be undone"),
    session: DashboardSession = Depends(require_user),
):
    state = session.auth.state
    return await session.admin.delete_user(state.user, state.profile, user_id, confirmed=confirm)


@router.post("/users/{user_id}/impersonate", response_model=AuthStateResponse)
async def impersonate_user(user_id: str, session: DashboardSession = Depends(require_user)):
    """View the dashboard as the tenant that ``user_id`` belongs to."""
    state = session.auth.state
    target = await session.admin.find_user(state.user, state.profile, user_id)
    if target.id == state.user.id:
        raise PermissionDeniedError("You are already viewing your own dashboard")
    if not target.client_id:
        raise ValidationFailedError("This user is not assigned to a client")
    return session.auth.impersonate_client(target.client_id).to_response()
