"""User administration service."""

import logging

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.exceptions import ConflictError, NotFoundError
from ..models.user import User, UserRole, default_permissions
from ..schemas.auth import (
    CreateStaffRequest,
    GrantAdminRequest,
    ListUsersRequest,
    SetUserActiveRequest,
    UpdatePermissionsRequest,
    UpdateRoleRequest,
)
from .identity_service import hash_password
from .otp_service import normalize_phone

logger = logging.getLogger(__name__)


class UserService:
    """Service for user and role management."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_user(self, user_id: str) -> User | None:
        return await self.db.get(User, user_id)

    async def get_user_or_raise(self, user_id: str) -> User:
        user = await self.get_user(user_id)
        if not user:
            raise NotFoundError(resource_type="user", resource_id=user_id)
        return user

    async def list_users(self, request: ListUsersRequest) -> tuple[list[User], int]:
        filters = []
        if request.role is not None:
            filters.append(User.role == request.role.value)
        if not request.include_inactive:
            filters.append(User.is_active.is_(True))
        if request.search:
            pattern = f"%{request.search}%"
            filters.append(
                or_(
                    User.first_name.ilike(pattern),
                    User.last_name.ilike(pattern),
                    User.phone.ilike(pattern),
                    User.email.ilike(pattern),
                )
            )

        total = (await self.db.execute(select(func.count(User.id)).where(*filters))).scalar_one()
        stmt = (
            select(User)
            .where(*filters)
            .order_by(User.created_at.desc(), User.id)
            .limit(request.limit)
            .offset(request.offset)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars()), int(total)

    async def count_by_role(self) -> dict[str, int]:
        result = await self.db.execute(select(User.role, func.count(User.id)).group_by(User.role))
        counts = {role.value: 0 for role in UserRole}
        counts.update({role: int(count) for role, count in result.all()})
        return counts

    async def create_staff(self, request: CreateStaffRequest) -> User:
        user = User(
            email=request.email.lower(),
            phone=normalize_phone(request.phone) if request.phone else None,
            first_name=request.first_name,
            last_name=request.last_name,
            role=request.role.value,
            is_admin=request.role == UserRole.ADMIN,
            permissions=default_permissions(request.role),
            password_hash=hash_password(request.password),
            registration_source="admin",
        )
        self.db.add(user)
        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            raise ConflictError(
                detail="A user with this email or phone already exists",
                conflicting_resource={"email": request.email.lower()},
                code="USER_EXISTS",
            )
        await self.db.refresh(user)

        logger.info("Staff account created", extra={"user_id": user.id, "role": user.role})
        return user

    async def update_role(self, request: UpdateRoleRequest, acting_user_id: str) -> User:
        """Change a role and reset permissions to that role's defaults."""
        user = await self.get_user_or_raise(request.user_id)
        previous = user.role
        user.role = request.role.value
        user.permissions = default_permissions(request.role)
        user.is_admin = request.role == UserRole.ADMIN
        await self.db.commit()
        await self.db.refresh(user)

        logger.info(
            "User role changed",
            extra={
                "user_id": user.id,
                "from_role": previous,
                "to_role": user.role,
                "acting_user_id": acting_user_id,
            }
        )
        return user

    async def update_permissions(self, request: UpdatePermissionsRequest, acting_user_id: str) -> User:
        user = await self.get_user_or_raise(request.user_id)
        user.permissions = sorted({p.value for p in request.permissions})
        await self.db.commit()
        await self.db.refresh(user)

        logger.info(
            "User permissions replaced",
            extra={"user_id": user.id, "permissions": user.permissions, "acting_user_id": acting_user_id}
        )
        return user

    async def set_admin(self, request: GrantAdminRequest, acting_user_id: str) -> User:
        """
        Grant or revoke admin status.

        Revoking drops the user back to the staff defaults.

        Raises:
            ConflictError: If an admin tries to revoke their own admin status
        """
        user = await self.get_user_or_raise(request.user_id)
        if not request.is_admin and user.id == acting_user_id:
            raise ConflictError(detail="Admins cannot revoke their own admin status", code="SELF_DEMOTION")

        user.is_admin = request.is_admin
        if request.is_admin:
            user.role = UserRole.ADMIN.value
            user.permissions = default_permissions(UserRole.ADMIN)
        elif user.role == UserRole.ADMIN.value:
            user.role = UserRole.STAFF.value
            user.permissions = default_permissions(UserRole.STAFF)
        await self.db.commit()
        await self.db.refresh(user)

        logger.info(
            "Admin status changed",
            extra={"user_id": user.id, "is_admin": user.is_admin, "acting_user_id": acting_user_id}
        )
        return user

    async def set_active(self, request: SetUserActiveRequest, acting_user_id: str) -> User:
        user = await self.get_user_or_raise(request.user_id)
        if not request.is_active and user.id == acting_user_id:
            raise ConflictError(detail="You cannot deactivate your own account", code="SELF_DEACTIVATION")

        user.is_active = request.is_active
        await self.db.commit()
        await self.db.refresh(user)

        logger.info(
            "User activation changed",
            extra={"user_id": user.id, "is_active": user.is_active, "acting_user_id": acting_user_id}
        )
        return user
