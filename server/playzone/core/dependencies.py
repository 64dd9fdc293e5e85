"""FastAPI dependencies for database sessions, authentication, and permissions."""

from typing import Callable, Optional

from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from .database import get_db
from .exceptions import AuthenticationError, AuthorizationError
from ..models.user import Permission, User
from ..services.identity_service import decode_token
from ..services.notification_service import NotificationSender, build_sender

DB_DEPENDENCY = Depends(get_db)


def _bearer_token(authorization: Optional[str]) -> str:
    if not authorization:
        raise AuthenticationError(detail="Authorization header missing")
    try:
        scheme, token = authorization.split()
    except ValueError:
        raise AuthenticationError(detail="Invalid authorization header format")
    if scheme.lower() != "bearer":
        raise AuthenticationError(detail="Invalid authentication scheme")
    return token


async def _load_user(token: str, db: AsyncSession) -> User:
    """
    Resolve a token to its user, re-read from the database.

    Deactivation and role changes therefore apply to tokens already issued.
    """
    identity = decode_token(token)
    user = await db.get(User, identity.user_id, populate_existing=True)
    if user is None:
        raise AuthenticationError(detail="User no longer exists")
    if not user.is_active:
        raise AuthenticationError(detail="Account is deactivated")
    return user


async def get_current_user(
    authorization: Optional[str] = Header(None, alias="Authorization"),
    db: AsyncSession = DB_DEPENDENCY,
) -> User:
    """
    Authentication dependency that validates Bearer tokens.

    Raises:
        AuthenticationError: If the token is missing, invalid or its user inactive
    """
    return await _load_user(_bearer_token(authorization), db)


async def get_optional_user(
    authorization: Optional[str] = Header(None, alias="Authorization"),
    db: AsyncSession = DB_DEPENDENCY,
) -> Optional[User]:
    """Signed-in user when a token is sent, None for guests."""
    if not authorization:
        return None
    return await _load_user(_bearer_token(authorization), db)


def require_permission(*permissions: Permission) -> Callable:
    """
    Dependency factory requiring every listed permission.

    Admins pass every check.
    """

    async def checker(user: User = Depends(get_current_user)) -> User:
        missing = [p.value for p in permissions if not user.has_permission(p)]
        if missing:
            raise AuthorizationError(required_permissions=missing)
        return user

    return checker


def get_notification_sender() -> NotificationSender:
    """Outbound message sender; overridden in tests."""
    return build_sender()


CurrentUser = Depends(get_current_user)
OptionalUser = Depends(get_optional_user)
DatabaseSession = DB_DEPENDENCY
Sender = Depends(get_notification_sender)
