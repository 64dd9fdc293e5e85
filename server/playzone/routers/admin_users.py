"""Admin router for user accounts, roles and permissions."""

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.dependencies import DatabaseSession, require_permission
from ..models.user import Permission, User
from ..schemas.auth import (
    CreateStaffRequest,
    GetUserRequest,
    GrantAdminRequest,
    ListUsersRequest,
    SetUserActiveRequest,
    UpdatePermissionsRequest,
    UpdateRoleRequest,
    User as UserSchema,
    UserList,
)
from ..services.user_service import UserService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/admin/users", tags=["admin"])

ViewUsers = Depends(require_permission(Permission.VIEW_USERS))
ManageUsers = Depends(require_permission(Permission.MANAGE_USERS))
ManageRoles = Depends(require_permission(Permission.MANAGE_ROLES))


def _user_response(user: User, status_code: int = 200) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=UserSchema.model_validate(user).model_dump(mode="json"))


@router.post("/list", response_model=UserList)
async def list_users(
    request: ListUsersRequest,
    db: AsyncSession = DatabaseSession,
    user: User = ViewUsers,
) -> JSONResponse:
    """List users by role or activity, with a free-text search on name, phone and email."""
    users, total = await UserService(db).list_users(request)
    response_data = UserList(users=[UserSchema.model_validate(u) for u in users], total=total)
    return JSONResponse(status_code=200, content=response_data.model_dump(mode="json"))


@router.post("/get", response_model=UserSchema)
async def get_user(
    request: GetUserRequest,
    db: AsyncSession = DatabaseSession,
    user: User = ViewUsers,
) -> JSONResponse:
    return _user_response(await UserService(db).get_user_or_raise(request.user_id))


@router.post("/create-staff", response_model=UserSchema, status_code=201)
async def create_staff(
    request: CreateStaffRequest,
    db: AsyncSession = DatabaseSession,
    user: User = ManageUsers,
) -> JSONResponse:
    """Create a password account for staff, a manager or an admin."""
    created = await UserService(db).create_staff(request)
    logger.info("Staff account created by admin", extra={"user_id": created.id, "admin_user_id": user.id})
    return _user_response(created, status_code=201)


@router.post("/role", response_model=UserSchema)
async def update_role(
    request: UpdateRoleRequest,
    db: AsyncSession = DatabaseSession,
    user: User = ManageRoles,
) -> JSONResponse:
    """Change a user's role, resetting their permissions to the role defaults."""
    return _user_response(await UserService(db).update_role(request, acting_user_id=user.id))


@router.post("/permissions", response_model=UserSchema)
async def update_permissions(
    request: UpdatePermissionsRequest,
    db: AsyncSession = DatabaseSession,
    user: User = ManageRoles,
) -> JSONResponse:
    """Replace a user's permission list."""
    return _user_response(await UserService(db).update_permissions(request, acting_user_id=user.id))


@router.post("/admin", response_model=UserSchema)
async def grant_admin(
    request: GrantAdminRequest,
    db: AsyncSession = DatabaseSession,
    user: User = ManageRoles,
) -> JSONResponse:
    """Grant or revoke admin status. Admins cannot revoke their own."""
    return _user_response(await UserService(db).set_admin(request, acting_user_id=user.id))


@router.post("/active", response_model=UserSchema)
async def set_active(
    request: SetUserActiveRequest,
    db: AsyncSession = DatabaseSession,
    user: User = ManageUsers,
) -> JSONResponse:
    """Activate or deactivate an account. Deactivated users cannot sign in."""
    return _user_response(await UserService(db).set_active(request, acting_user_id=user.id))
