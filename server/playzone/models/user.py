"""User model, roles and permission sets."""

from datetime import datetime
from enum import Enum
from uuid import uuid4

from sqlalchemy import JSON, Boolean, CheckConstraint, DateTime, String, func
from sqlalchemy.orm import Mapped, mapped_column

from ..core.database import Base


class UserRole(str, Enum):
    """User role enumeration."""
    CUSTOMER = "customer"
    STAFF = "staff"
    MANAGER = "manager"
    ADMIN = "admin"


class Permission(str, Enum):
    """Fine-grained permissions checked by admin endpoints."""
    VIEW_PACKAGES = "view_packages"
    MANAGE_PACKAGES = "manage_packages"
    VIEW_EVENTS = "view_events"
    MANAGE_EVENTS = "manage_events"
    VIEW_BOOKINGS = "view_bookings"
    MANAGE_BOOKINGS = "manage_bookings"
    VIEW_USERS = "view_users"
    MANAGE_USERS = "manage_users"
    VIEW_ANALYTICS = "view_analytics"
    EXPORT_DATA = "export_data"
    MANAGE_ROLES = "manage_roles"
    MANAGE_SETTINGS = "manage_settings"
    MANAGE_CONTENT = "manage_content"
    MODERATE_REVIEWS = "moderate_reviews"


ROLE_PERMISSIONS: dict[UserRole, list[Permission]] = {
    UserRole.CUSTOMER: [
        Permission.VIEW_PACKAGES,
        Permission.VIEW_EVENTS,
    ],
    UserRole.STAFF: [
        Permission.VIEW_PACKAGES,
        Permission.VIEW_EVENTS,
        Permission.VIEW_BOOKINGS,
        Permission.MANAGE_BOOKINGS,
    ],
    UserRole.MANAGER: [
        Permission.VIEW_PACKAGES,
        Permission.MANAGE_PACKAGES,
        Permission.VIEW_EVENTS,
        Permission.MANAGE_EVENTS,
        Permission.VIEW_BOOKINGS,
        Permission.MANAGE_BOOKINGS,
        Permission.VIEW_USERS,
        Permission.VIEW_ANALYTICS,
        Permission.MANAGE_CONTENT,
        Permission.MODERATE_REVIEWS,
    ],
    UserRole.ADMIN: list(Permission),
}


def default_permissions(role: UserRole) -> list[str]:
    """Permission values granted to a role by default."""
    return [permission.value for permission in ROLE_PERMISSIONS[UserRole(role)]]


class User(Base):
    """User entity for customers signing in by OTP and staff signing in by password."""

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=lambda: uuid4().hex)

    phone: Mapped[str | None] = mapped_column(String(20), unique=True, index=True)
    email: Mapped[str | None] = mapped_column(String(255), unique=True, index=True)
    first_name: Mapped[str | None] = mapped_column(String(100))
    last_name: Mapped[str | None] = mapped_column(String(100))

    role: Mapped[str] = mapped_column(String(20), nullable=False, default=UserRole.CUSTOMER.value)
    is_admin: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    permissions: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    password_hash: Mapped[str | None] = mapped_column(String(255))
    registration_source: Mapped[str] = mapped_column(String(32), nullable=False, default="whatsapp")
    last_login_at: Mapped[datetime | None] = mapped_column(DateTime)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        nullable=False,
        server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        nullable=False,
        server_default=func.now(),
        onupdate=func.now()
    )

    __table_args__ = (
        CheckConstraint(
            "role IN ('customer', 'staff', 'manager', 'admin')",
            name="ck_user_role_valid"
        ),
    )

    @property
    def display_name(self) -> str:
        parts = [self.first_name, self.last_name]
        return " ".join(p for p in parts if p) or (self.phone or self.email or self.id)

    def has_permission(self, permission: Permission | str) -> bool:
        """Admins hold every permission; everyone else needs it listed."""
        if self.is_admin:
            return True
        value = permission.value if isinstance(permission, Permission) else permission
        return value in (self.permissions or [])

    def __repr__(self) -> str:
        return f"<User(id='{self.id}', role='{self.role}', is_admin={self.is_admin})>"
