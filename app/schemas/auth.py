from pydantic import BaseModel, EmailStr, Field
from typing import Optional
from enum import Enum


class Role(str, Enum):
    super_admin = "super_admin"
    admin = "admin"
    agent = "agent"


class AuthStatus(str, Enum):
    uninitialized = "uninitialized"
    loading = "loading"
    authenticated = "authenticated"
    anonymous = "anonymous"


class AuthUser(BaseModel):
    """The raw authenticated user, owned by the auth service."""
    id: str
    email: Optional[str] = None


class Profile(BaseModel):
    """Tenant-scoped identity record layered over the authenticated user."""
    id: str
    full_name: Optional[str] = None
    role: Role
    client_id: Optional[str] = None
    agent_name: Optional[str] = None

    model_config = {"extra": "forbid"}

    @property
    def is_admin(self) -> bool:
        return self.role in (Role.admin, Role.super_admin)


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class ForgotPasswordRequest(BaseModel):
    email: EmailStr


class UpdatePasswordRequest(BaseModel):
    password: str
    confirm_password: str
    # Tokens from the emailed recovery link, when no session exists yet
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None


class ImpersonateRequest(BaseModel):
    client_id: Optional[str] = None


class AuthStateResponse(BaseModel):
    status: AuthStatus
    user: Optional[AuthUser] = None
    profile: Optional[Profile] = None
    impersonated_client_id: Optional[str] = None
    effective_client_id: Optional[str] = None
    # user set but profile missing: signed in, but the profile row could not be read
    degraded: bool = False


class MessageResponse(BaseModel):
    message: str
