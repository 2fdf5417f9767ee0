from pydantic import BaseModel, EmailStr, Field
from typing import Optional, List

from app.schemas.auth import Role


class ManagedUser(BaseModel):
    """A dashboard user as listed by the management API."""
    id: str
    full_name: Optional[str] = None
    role: Role
    client_id: Optional[str] = None
    email: Optional[str] = None

    model_config = {"extra": "forbid"}


class ManagementResult(BaseModel):
    status: str
    message: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status == "success"


class CreateUserRequest(BaseModel):
    """Provisioning form as submitted by the browser."""
    email: EmailStr
    password: str = Field(..., min_length=1)
    client_name: Optional[str] = None
    role: Optional[Role] = None


class CreateUserPayload(BaseModel):
    """Body of the management API's create-user call."""
    admin_secret: str
    requester_role: Role
    requester_client_id: Optional[str] = None
    email: str
    password: str
    client_name: str
    role: Role


class UserRow(BaseModel):
    user: ManagedUser
    is_self: bool
    can_impersonate: bool
    can_delete: bool


class TenantGroup(BaseModel):
    client_id: Optional[str] = None
    users: List[UserRow]


class UserListResponse(BaseModel):
    groups: List[TenantGroup]
    total: int


class AdminFormResponse(BaseModel):
    """Which provisioning fields the caller may fill in."""
    title: str
    can_choose_role: bool
    can_choose_client_name: bool
    default_role: Role
    allowed_roles: List[Role]
    fixed_client_name: Optional[str] = None
    show_client_id_column: bool
