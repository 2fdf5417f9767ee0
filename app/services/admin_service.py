"""
Role-gated user provisioning for the admin panel.

super_admin provisions clients (tenant + user) with a free choice of tenant
name and role and sees every tenant. admin only adds agents to their own
tenant, under their own profile name. Hiding affordances is all this module
does for authorization; the management API enforces the real rules.
"""
import logging
from typing import Dict, List, Optional

from app.core.config import settings
from app.core.errors import ConfigurationError, NotFoundError, PermissionDeniedError, ValidationFailedError
from app.schemas.admin import (
    AdminFormResponse,
    CreateUserPayload,
    CreateUserRequest,
    ManagedUser,
    ManagementResult,
    TenantGroup,
    UserListResponse,
    UserRow,
)
from app.schemas.auth import AuthUser, Profile, Role
from app.services.management_client import ManagementClient

logger = logging.getLogger(__name__)

MISSING_COMPANY_NAME = "Error: Your profile is missing a full name/company name."


def require_admin(profile: Optional[Profile]) -> Profile:
    if profile is None:
        raise PermissionDeniedError("Your profile could not be loaded")
    if not profile.is_admin:
        raise PermissionDeniedError("Admin access required")
    return profile


def admin_form(profile: Profile) -> AdminFormResponse:
    """Describe the provisioning form for the caller's role."""
    require_admin(profile)
    if profile.role == Role.super_admin:
        return AdminFormResponse(
            title="Provision New Client",
            can_choose_role=True,
            can_choose_client_name=True,
            default_role=Role.admin,
            allowed_roles=[Role.admin, Role.agent],
            show_client_id_column=True,
        )
    return AdminFormResponse(
        title="Add New Agent",
        can_choose_role=False,
        can_choose_client_name=False,
        default_role=Role.agent,
        allowed_roles=[Role.agent],
        fixed_client_name=profile.full_name,
        show_client_id_column=False,
    )


def build_create_payload(profile: Profile, request: CreateUserRequest, admin_secret: str) -> CreateUserPayload:
    """Apply the role rules to a submitted provisioning form.

    admin: role is always agent and the tenant is the caller's own name.
    super_admin: tenant name and role come from the form.
    """
    require_admin(profile)

    if profile.role == Role.admin:
        client_name = profile.full_name or ""
        role = Role.agent
        if not client_name:
            raise ValidationFailedError(MISSING_COMPANY_NAME)
    else:
        client_name = (request.client_name or "").strip()
        role = request.role or Role.admin
        if not client_name:
            raise ValidationFailedError("Company / agent name is required")
        if role == Role.super_admin:
            raise ValidationFailedError("Role must be admin or agent")

    return CreateUserPayload(
        admin_secret=admin_secret,
        requester_role=profile.role,
        requester_client_id=profile.client_id,
        email=request.email,
        password=request.password,
        client_name=client_name,
        role=role,
    )


def build_user_rows(current_user: AuthUser, users: List[ManagedUser]) -> UserListResponse:
    """Group users by tenant and decide row actions; the caller's own row has none."""
    groups: Dict[Optional[str], List[UserRow]] = {}
    for u in users:
        is_self = u.id == current_user.id
        groups.setdefault(u.client_id, []).append(
            UserRow(user=u, is_self=is_self, can_impersonate=not is_self, can_delete=not is_self)
        )
    return UserListResponse(
        groups=[TenantGroup(client_id=client_id, users=rows) for client_id, rows in groups.items()],
        total=len(users),
    )


class AdminService:
    def __init__(self, management_client: ManagementClient = None, admin_secret: str = None):
        self.management_client = management_client or ManagementClient()
        self.admin_secret = admin_secret if admin_secret is not None else settings.MANAGEMENT_API_SECRET

    def _secret(self) -> str:
        if not self.admin_secret:
            raise ConfigurationError("Management API secret is not configured. Please set MANAGEMENT_API_SECRET.")
        return self.admin_secret

    async def list_users(self, current_user: AuthUser, profile: Optional[Profile]) -> UserListResponse:
        profile = require_admin(profile)
        users = await self.management_client.list_users(
            admin_secret=self._secret(),
            requester_role=profile.role.value,
            requester_client_id=profile.client_id,
        )
        if profile.role == Role.admin:
            # the API scopes this already; keep the view consistent if it doesn't
            users = [u for u in users if u.client_id == profile.client_id]
        return build_user_rows(current_user, users)

    async def create_user(self, profile: Optional[Profile], request: CreateUserRequest) -> ManagementResult:
        profile = require_admin(profile)
        payload = build_create_payload(profile, request, self._secret())
        result = await self.management_client.create_user(payload)
        logger.info(f"Provisioned {payload.role.value} {payload.email} under '{payload.client_name}'")
        return ManagementResult(status=result.status, message="Successfully created user!")

    async def find_user(self, current_user: AuthUser, profile: Optional[Profile], user_id: str) -> ManagedUser:
        listing = await self.list_users(current_user, profile)
        for group in listing.groups:
            for row in group.users:
                if row.user.id == user_id:
                    return row.user
        raise NotFoundError("User not found")

    async def delete_user(
        self,
        current_user: AuthUser,
        profile: Optional[Profile],
        target_user_id: str,
        confirmed: bool,
    ) -> ManagementResult:
        profile = require_admin(profile)
        if target_user_id == current_user.id:
            raise PermissionDeniedError("You cannot delete your own account")
        if not confirmed:
            raise ValidationFailedError(
                "Are you sure you want to delete this user? This cannot be undone. Confirm to proceed."
            )
        result = await self.management_client.delete_user(
            admin_secret=self._secret(),
            requester_role=profile.role.value,
            requester_client_id=profile.client_id,
            target_user_id=target_user_id,
        )
        logger.info(f"User {current_user.id} deleted user {target_user_id}")
        return result
