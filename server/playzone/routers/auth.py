"""Authentication router: one-time codes, staff passwords and the current user."""

import logging

from fastapi import APIRouter, HTTPException
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.config import settings
from ..core.dependencies import CurrentUser, DatabaseSession, Sender
from ..core.exceptions import ProblemDetailsException
from ..models.user import User
from ..schemas.auth import (
    PasswordLoginRequest,
    SendOtpRequest,
    SendOtpResponse,
    TokenResponse,
    User as UserSchema,
    VerifyOtpRequest,
)
from ..services.identity_service import (
    IdentityResolver,
    IdentityService,
    OtpIdentityResolver,
    PasswordIdentityResolver,
)
from ..services.notification_service import NotificationSender
from ..services.otp_service import OtpService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/auth", tags=["auth"])


async def _sign_in(db: AsyncSession, resolver: IdentityResolver, credentials) -> JSONResponse:
    user, token, expires_in = await IdentityService(db).sign_in(resolver, credentials)
    response_data = TokenResponse(
        access_token=token,
        expires_in=expires_in,
        user=UserSchema.model_validate(user),
    )
    return JSONResponse(status_code=200, content=response_data.model_dump(mode="json"))


@router.post("/otp/send", response_model=SendOtpResponse)
async def send_otp(
    request: SendOtpRequest,
    db: AsyncSession = DatabaseSession,
    sender: NotificationSender = Sender,
) -> JSONResponse:
    """
    Send a one-time sign-in code over WhatsApp.

    In development, when delivery fails, the code is returned in the response.
    """
    try:
        issued = await OtpService(db, sender).send_code(request.phone)
        response_data = SendOtpResponse(
            message=(
                "OTP sent successfully" if issued.delivered
                else "OTP generated (development mode, delivery failed)"
            ),
            phone=issued.phone,
            expires_in_seconds=issued.expires_in_seconds,
            dev_otp=issued.dev_code if settings.debug else None,
        )
        return JSONResponse(status_code=200, content=response_data.model_dump(mode="json"))

    except ProblemDetailsException:
        raise

    except Exception as e:
        logger.error("Unexpected error sending OTP", extra={"error": str(e)}, exc_info=True)
        raise HTTPException(status_code=500, detail="Internal server error")


@router.post("/otp/verify", response_model=TokenResponse)
async def verify_otp(
    request: VerifyOtpRequest,
    db: AsyncSession = DatabaseSession,
    sender: NotificationSender = Sender,
) -> JSONResponse:
    """Sign in with a one-time code, creating a customer account on first use."""
    resolver = OtpIdentityResolver(db, OtpService(db, sender))
    return await _sign_in(db, resolver, request)


@router.post("/login", response_model=TokenResponse)
async def password_login(
    request: PasswordLoginRequest,
    db: AsyncSession = DatabaseSession,
) -> JSONResponse:
    """Staff and admin sign-in with email and password."""
    return await _sign_in(db, PasswordIdentityResolver(db), request)


@router.post("/me", response_model=UserSchema)
async def current_user(user: User = CurrentUser) -> JSONResponse:
    """Return the signed-in user with their current role and permissions."""
    return JSONResponse(status_code=200, content=UserSchema.model_validate(user).model_dump(mode="json"))
