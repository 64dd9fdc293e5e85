"""Sign-in paths resolving to a uniform identity, and the tokens that carry it."""

import hashlib
import hmac
import logging
import secrets
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

import jwt
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.config import settings
from ..core.database import utcnow
from ..core.exceptions import AuthenticationError
from ..models.user import User, UserRole, default_permissions
from ..schemas.auth import PasswordLoginRequest, VerifyOtpRequest
from .otp_service import OtpService

logger = logging.getLogger(__name__)

TOKEN_ALGORITHM = "HS256"
PBKDF2_ITERATIONS = 240_000


def hash_password(password: str, iterations: int = PBKDF2_ITERATIONS) -> str:
    """PBKDF2-SHA256 hash in ``pbkdf2_sha256$iterations$salt$digest`` form."""
    salt = secrets.token_hex(16)
    digest = hashlib.pbkdf2_hmac("sha256", password.encode(), bytes.fromhex(salt), iterations)
    return f"pbkdf2_sha256${iterations}${salt}${digest.hex()}"


def verify_password(password: str, encoded: str | None) -> bool:
    if not encoded:
        return False
    try:
        algorithm, iterations, salt, expected = encoded.split("$")
    except ValueError:
        return False
    if algorithm != "pbkdf2_sha256":
        return False
    digest = hashlib.pbkdf2_hmac("sha256", password.encode(), bytes.fromhex(salt), int(iterations))
    return hmac.compare_digest(digest.hex(), expected)


@dataclass(frozen=True)
class Identity:
    """Who is calling, whichever way they signed in."""

    user_id: str
    is_admin: bool
    role: str
    permissions: tuple[str, ...]

    @classmethod
    def from_user(cls, user: User) -> "Identity":
        return cls(
            user_id=user.id,
            is_admin=bool(user.is_admin),
            role=user.role,
            permissions=tuple(user.permissions or ()),
        )


def issue_token(identity: Identity, ttl_minutes: int | None = None) -> tuple[str, int]:
    """
    Sign an access token for an identity.

    Returns:
        The encoded token and its lifetime in seconds
    """
    ttl = timedelta(minutes=ttl_minutes or settings.access_token_ttl_minutes)
    now = datetime.now(timezone.utc)
    payload: dict[str, Any] = {
        "sub": identity.user_id,
        "role": identity.role,
        "is_admin": identity.is_admin,
        "permissions": list(identity.permissions),
        "iat": now,
        "exp": now + ttl,
    }
    token = jwt.encode(payload, settings.bearer_token_secret, algorithm=TOKEN_ALGORITHM)
    return token, int(ttl.total_seconds())


def decode_token(token: str) -> Identity:
    """
    Validate a token's signature and expiry.

    Raises:
        AuthenticationError: If the token is expired, malformed or unsigned
    """
    try:
        payload = jwt.decode(
            token,
            settings.bearer_token_secret,
            algorithms=[TOKEN_ALGORITHM],
            options={"require": ["sub", "exp"]},
        )
    except jwt.ExpiredSignatureError:
        raise AuthenticationError(detail="Token has expired")
    except jwt.PyJWTError as e:
        raise AuthenticationError(detail=f"Token validation failed: {e}")

    return Identity(
        user_id=str(payload["sub"]),
        is_admin=bool(payload.get("is_admin", False)),
        role=payload.get("role", UserRole.CUSTOMER.value),
        permissions=tuple(payload.get("permissions", ())),
    )


class IdentityResolver(ABC):
    """One sign-in path: turns credentials into an active user."""

    source: str

    def __init__(self, db: AsyncSession):
        self.db = db

    @abstractmethod
    async def resolve(self, credentials: Any) -> User:
        """Return the signed-in user or raise an authentication error."""


class OtpIdentityResolver(IdentityResolver):
    """Phone number plus one-time code; creates a customer account on first sign-in."""

    source = "whatsapp_otp"

    def __init__(self, db: AsyncSession, otp_service: OtpService):
        super().__init__(db)
        self.otp_service = otp_service

    async def resolve(self, credentials: VerifyOtpRequest) -> User:
        phone = await self.otp_service.verify_code(credentials.phone, credentials.code)

        user = (await self.db.execute(select(User).where(User.phone == phone))).scalar_one_or_none()
        if user is not None:
            return user

        email = credentials.email
        if email:
            taken = (await self.db.execute(select(User.id).where(User.email == email))).first()
            if taken:
                email = None

        user = User(
            phone=phone,
            email=email,
            first_name=credentials.first_name,
            last_name=credentials.last_name,
            role=UserRole.CUSTOMER.value,
            is_admin=False,
            permissions=default_permissions(UserRole.CUSTOMER),
            registration_source=self.source,
        )
        self.db.add(user)
        await self.db.flush()

        logger.info("Customer account created", extra={"user_id": user.id, "source": self.source})
        return user


class PasswordIdentityResolver(IdentityResolver):
    """Email plus password, for staff and admin accounts."""

    source = "password"

    async def resolve(self, credentials: PasswordLoginRequest) -> User:
        user = (
            await self.db.execute(select(User).where(User.email == credentials.email.lower()))
        ).scalar_one_or_none()
        if user is None or not verify_password(credentials.password, user.password_hash):
            logger.warning("Password sign-in rejected", extra={"email": credentials.email})
            raise AuthenticationError(detail="Invalid email or password")
        return user


class IdentityService:
    """Runs a resolver and issues the token for the resulting identity."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def sign_in(self, resolver: IdentityResolver, credentials: Any) -> tuple[User, str, int]:
        """
        Sign a user in through any resolver.

        Returns:
            The user, the access token and its lifetime in seconds

        Raises:
            AuthenticationError: If the credentials are rejected or the account is inactive
        """
        user = await resolver.resolve(credentials)
        if not user.is_active:
            await self.db.rollback()
            logger.warning("Sign-in for deactivated account", extra={"user_id": user.id})
            raise AuthenticationError(detail="Account is deactivated")

        user.last_login_at = utcnow()
        await self.db.commit()
        await self.db.refresh(user)

        token, expires_in = issue_token(Identity.from_user(user))
        logger.info(
            "User signed in",
            extra={"user_id": user.id, "source": resolver.source, "role": user.role}
        )
        return user, token, expires_in
