"""Authentication and user schemas."""

import datetime as dt
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..models.user import Permission, UserRole
from .common import EMAIL_PATTERN, PHONE_PATTERN


class SendOtpRequest(BaseModel):
    """Request schema for sending a sign-in code."""

    phone: str = Field(..., pattern=PHONE_PATTERN, description="Phone number, country code optional")


class SendOtpResponse(BaseModel):
    """Response schema for a sent sign-in code."""

    success: bool = True
    message: str
    phone: str = Field(..., description="Normalized phone number the code was issued to")
    expires_in_seconds: int
    dev_otp: Optional[str] = Field(None, description="The code itself, development only, when delivery failed")


class VerifyOtpRequest(BaseModel):
    """Request schema for signing in with a sign-in code."""

    phone: str = Field(..., pattern=PHONE_PATTERN)
    code: str = Field(..., pattern=r"^[0-9]{4,10}$")
    first_name: Optional[str] = Field(None, max_length=100, description="Used when the account is created")
    last_name: Optional[str] = Field(None, max_length=100)
    email: Optional[str] = Field(None, max_length=255, pattern=EMAIL_PATTERN)


class PasswordLoginRequest(BaseModel):
    """Request schema for staff sign-in."""

    email: str = Field(..., max_length=255, pattern=EMAIL_PATTERN)
    password: str = Field(..., min_length=1, max_length=256)


class User(BaseModel):
    """User response schema."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    phone: Optional[str] = None
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    role: UserRole
    is_admin: bool
    permissions: List[str] = Field(default_factory=list)
    is_active: bool
    registration_source: str
    last_login_at: Optional[dt.datetime] = None
    created_at: dt.datetime


class TokenResponse(BaseModel):
    """Issued access token and the identity it carries."""

    access_token: str
    token_type: str = "bearer"
    expires_in: int = Field(..., description="Token lifetime in seconds")
    user: User


class ListUsersRequest(BaseModel):
    """Request schema for listing users."""

    role: Optional[UserRole] = None
    include_inactive: bool = True
    search: Optional[str] = Field(None, max_length=100, description="Match on name, phone or email")
    limit: int = Field(100, ge=1, le=500)
    offset: int = Field(0, ge=0)


class GetUserRequest(BaseModel):
    """Request schema for fetching one user."""

    user_id: str = Field(..., min_length=1, max_length=64)


class UpdateRoleRequest(BaseModel):
    """Request schema for changing a user's role; permissions reset to the role defaults."""

    user_id: str = Field(..., min_length=1, max_length=64)
    role: UserRole


class UpdatePermissionsRequest(BaseModel):
    """Request schema for replacing a user's permissions."""

    user_id: str = Field(..., min_length=1, max_length=64)
    permissions: List[Permission]


class GrantAdminRequest(BaseModel):
    """Request schema for granting or revoking admin status."""

    user_id: str = Field(..., min_length=1, max_length=64)
    is_admin: bool = True


class SetUserActiveRequest(BaseModel):
    """Request schema for deactivating or reactivating an account."""

    user_id: str = Field(..., min_length=1, max_length=64)
    is_active: bool = False


class CreateStaffRequest(BaseModel):
    """Request schema for creating a password account for venue staff."""

    email: str = Field(..., max_length=255, pattern=EMAIL_PATTERN)
    password: str = Field(..., min_length=8, max_length=256)
    first_name: Optional[str] = Field(None, max_length=100)
    last_name: Optional[str] = Field(None, max_length=100)
    phone: Optional[str] = Field(None, pattern=PHONE_PATTERN)
    role: UserRole = UserRole.STAFF


class UserList(BaseModel):
    """A page of users."""

    users: List[User]
    total: int
