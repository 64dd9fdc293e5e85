"""Custom exceptions following RFC 9457 Problem Details for HTTP APIs."""

import logging
import uuid
from datetime import date
from decimal import Decimal
from typing import Any, Dict, Optional

from fastapi import HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from .database import utcnow

logger = logging.getLogger(__name__)

PROBLEM_BASE_URI = "https://playzone.example.com/problems"


class ProblemDetailsException(HTTPException):
    """
    Base exception class following RFC 9457 Problem Details for HTTP APIs.

    https://tools.ietf.org/rfc/rfc9457.txt
    """

    def __init__(
        self,
        status_code: int,
        title: str,
        detail: Optional[str] = None,
        type_uri: Optional[str] = None,
        instance: Optional[str] = None,
        extensions: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ):
        """
        Initialize Problem Details exception.

        Args:
            status_code: HTTP status code
            title: Short, human-readable summary of the problem type
            detail: Human-readable explanation specific to this occurrence
            type_uri: URI reference that identifies the problem type
            instance: URI reference that identifies the specific occurrence
            extensions: Additional problem-specific information
            headers: HTTP headers to include in response
        """
        self.status_code = status_code
        self.title = title
        self.detail = detail
        self.type_uri = type_uri or f"about:blank#{status_code}"
        self.instance = instance
        self.extensions = extensions or {}

        self.problem_details = {
            "type": self.type_uri,
            "title": self.title,
            "status": self.status_code,
        }

        if self.detail:
            self.problem_details["detail"] = self.detail

        if self.instance:
            self.problem_details["instance"] = self.instance

        self.problem_details.update(self.extensions)

        super().__init__(
            status_code=status_code,
            detail=self.problem_details,
            headers=headers
        )

    @property
    def code(self) -> Optional[str]:
        """Application-specific error code, when the problem carries one."""
        return self.problem_details.get("code")


class ValidationError(ProblemDetailsException):
    """Exception for request validation errors."""

    def __init__(
        self,
        detail: str = "The request data failed validation",
        errors: Optional[Dict[str, Any]] = None,
        instance: Optional[str] = None,
    ):
        extensions = {"code": "VALIDATION_ERROR", "retryable": False}
        if errors:
            extensions["errors"] = errors

        super().__init__(
            status_code=400,
            title="Validation Error",
            detail=detail,
            type_uri=f"{PROBLEM_BASE_URI}/validation-error",
            instance=instance,
            extensions=extensions,
        )


class AuthenticationError(ProblemDetailsException):
    """Exception for authentication errors."""

    def __init__(
        self,
        detail: str = "Authentication credentials are required",
        instance: Optional[str] = None,
    ):
        super().__init__(
            status_code=401,
            title="Authentication Required",
            detail=detail,
            type_uri=f"{PROBLEM_BASE_URI}/authentication-required",
            instance=instance,
            extensions={"code": "UNAUTHENTICATED", "retryable": False},
            headers={"WWW-Authenticate": "Bearer"},
        )


class AuthorizationError(ProblemDetailsException):
    """Exception for authorization errors."""

    def __init__(
        self,
        detail: str = "Insufficient permissions to access this resource",
        required_permissions: Optional[list] = None,
        instance: Optional[str] = None,
    ):
        extensions = {"code": "FORBIDDEN", "retryable": False}
        if required_permissions:
            extensions["required_permissions"] = required_permissions

        super().__init__(
            status_code=403,
            title="Access Forbidden",
            detail=detail,
            type_uri=f"{PROBLEM_BASE_URI}/access-forbidden",
            instance=instance,
            extensions=extensions,
        )


class NotFoundError(ProblemDetailsException):
    """Exception for resource not found errors."""

    def __init__(
        self,
        resource_type: str = "resource",
        resource_id: Optional[str] = None,
        detail: Optional[str] = None,
        instance: Optional[str] = None,
    ):
        if not detail:
            detail = f"The requested {resource_type}"
            if resource_id:
                detail += f" with ID '{resource_id}'"
            detail += " could not be found"

        extensions = {
            "code": "NOT_FOUND",
            "retryable": False,
            "resource_type": resource_type,
        }
        if resource_id:
            extensions["resource_id"] = resource_id

        super().__init__(
            status_code=404,
            title="Resource Not Found",
            detail=detail,
            type_uri=f"{PROBLEM_BASE_URI}/resource-not-found",
            instance=instance,
            extensions=extensions,
        )


class ConflictError(ProblemDetailsException):
    """Exception for resource conflict errors."""

    def __init__(
        self,
        detail: str = "The request conflicts with the current state of the resource",
        conflicting_resource: Optional[Dict[str, Any]] = None,
        code: str = "CONFLICT",
        instance: Optional[str] = None,
    ):
        extensions = {"code": code, "retryable": False}
        if conflicting_resource:
            extensions["conflicting_resource"] = conflicting_resource

        super().__init__(
            status_code=409,
            title="Resource Conflict",
            detail=detail,
            type_uri=f"{PROBLEM_BASE_URI}/resource-conflict",
            instance=instance,
            extensions=extensions,
        )


# Booking admission

class CapacityExceededError(ProblemDetailsException):
    """The slot does not have enough free places for the requested children."""

    def __init__(
        self,
        time_slot_id: int,
        booking_date: date,
        requested: int,
        booked: int,
        capacity: int,
    ):
        remaining = max(capacity - booked, 0)
        super().__init__(
            status_code=409,
            title="Capacity Exceeded",
            detail=(
                f"Only {remaining} places remaining in slot {time_slot_id} on "
                f"{booking_date.isoformat()}, but {requested} were requested"
            ),
            type_uri=f"{PROBLEM_BASE_URI}/capacity-exceeded",
            extensions={
                "code": "CAPACITY_EXCEEDED",
                "retryable": False,
                "time_slot_id": time_slot_id,
                "booking_date": booking_date.isoformat(),
                "requested": requested,
                "booked": booked,
                "capacity": capacity,
                "remaining": remaining,
            },
        )


class HolidayClosedError(ProblemDetailsException):
    """The venue is closed on the requested date."""

    def __init__(self, booking_date: date, holiday_name: str):
        super().__init__(
            status_code=409,
            title="Venue Closed",
            detail=f"The venue is closed on {booking_date.isoformat()} ({holiday_name})",
            type_uri=f"{PROBLEM_BASE_URI}/holiday-closed",
            extensions={
                "code": "HOLIDAY_CLOSED",
                "retryable": False,
                "booking_date": booking_date.isoformat(),
                "holiday": holiday_name,
            },
        )


class InvalidStateTransitionError(ProblemDetailsException):
    """A booking status change that the booking lifecycle does not allow."""

    def __init__(self, booking_id: int, current_status: str, requested_status: str):
        super().__init__(
            status_code=409,
            title="Invalid State Transition",
            detail=f"Booking {booking_id} cannot move from '{current_status}' to '{requested_status}'",
            type_uri=f"{PROBLEM_BASE_URI}/invalid-state-transition",
            extensions={
                "code": "INVALID_STATE_TRANSITION",
                "retryable": False,
                "booking_id": booking_id,
                "current_status": current_status,
                "requested_status": requested_status,
            },
        )


# Voucher redemption

class VoucherError(ProblemDetailsException):
    """Base class for voucher rejections; ``reason`` names the failed check."""

    reason = "voucher_rejected"

    def __init__(self, status_code: int, title: str, code: str, detail: str, **fields: Any):
        self.voucher_code = code
        super().__init__(
            status_code=status_code,
            title=title,
            detail=detail,
            type_uri=f"{PROBLEM_BASE_URI}/{self.reason.replace('_', '-')}",
            extensions={
                "code": self.reason.upper(),
                "retryable": False,
                "voucher_code": code,
                **fields,
            },
        )


class VoucherNotFound(VoucherError):
    reason = "voucher_not_found"

    def __init__(self, code: str):
        super().__init__(404, "Voucher Not Found", code, f"Voucher '{code}' does not exist")


class VoucherExpired(VoucherError):
    reason = "voucher_expired"

    def __init__(self, code: str, valid_from: date, valid_till: date):
        super().__init__(
            422,
            "Voucher Expired",
            code,
            f"Voucher '{code}' is only valid from {valid_from.isoformat()} to {valid_till.isoformat()}",
            valid_from=valid_from.isoformat(),
            valid_till=valid_till.isoformat(),
        )


class VoucherExhausted(VoucherError):
    reason = "voucher_exhausted"

    def __init__(self, code: str, usage_limit: Optional[int]):
        super().__init__(
            409,
            "Voucher Exhausted",
            code,
            f"Voucher '{code}' has reached its usage limit",
            usage_limit=usage_limit,
        )


class VoucherMinAmountNotMet(VoucherError):
    reason = "voucher_min_amount_not_met"

    def __init__(self, code: str, order_amount: Decimal, min_amount: Decimal):
        super().__init__(
            422,
            "Voucher Minimum Amount Not Met",
            code,
            f"Voucher '{code}' requires an order of at least {min_amount}",
            order_amount=str(order_amount),
            min_amount=str(min_amount),
        )


class VoucherNotApplicable(VoucherError):
    reason = "voucher_not_applicable"

    def __init__(self, code: str, package_type: str, applicable_packages: list[str]):
        super().__init__(
            422,
            "Voucher Not Applicable",
            code,
            f"Voucher '{code}' cannot be used with '{package_type}' packages",
            package_type=package_type,
            applicable_packages=applicable_packages,
        )


# Authentication and payments

class OtpInvalidError(ProblemDetailsException):
    """The submitted one-time code is wrong, used or expired."""

    def __init__(self, attempts_remaining: Optional[int] = None):
        extensions: Dict[str, Any] = {"code": "OTP_INVALID", "retryable": True}
        if attempts_remaining is not None:
            extensions["attempts_remaining"] = attempts_remaining
        super().__init__(
            status_code=400,
            title="Invalid Code",
            detail="Invalid or expired OTP",
            type_uri=f"{PROBLEM_BASE_URI}/otp-invalid",
            extensions=extensions,
        )


class OtpDeliveryError(ProblemDetailsException):
    """The one-time code could not be delivered."""

    def __init__(self, phone: str):
        super().__init__(
            status_code=503,
            title="Code Delivery Failed",
            detail="Failed to send OTP. Please try again.",
            type_uri=f"{PROBLEM_BASE_URI}/otp-delivery-failed",
            extensions={"code": "OTP_DELIVERY_FAILED", "retryable": True, "phone": phone},
        )


class PaymentVerificationError(ProblemDetailsException):
    """The payment gateway signature did not match."""

    def __init__(self, booking_id: int):
        super().__init__(
            status_code=400,
            title="Payment Verification Failed",
            detail=f"Payment signature for booking {booking_id} is invalid",
            type_uri=f"{PROBLEM_BASE_URI}/payment-verification-failed",
            extensions={"code": "PAYMENT_VERIFICATION_FAILED", "retryable": False, "booking_id": booking_id},
        )


async def problem_details_handler(request: Request, exc: ProblemDetailsException) -> JSONResponse:
    """
    Exception handler for Problem Details exceptions.

    Args:
        request: FastAPI request object
        exc: Problem Details exception

    Returns:
        JSONResponse: Problem Details formatted response
    """
    content = dict(exc.problem_details)
    content.setdefault("instance", request.url.path)
    return JSONResponse(
        status_code=exc.status_code,
        content=content,
        headers=exc.headers,
        media_type="application/problem+json",
    )


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Render FastAPI request validation failures as Problem Details with violations."""
    violations = [
        {
            "path": ".".join(str(part) for part in error.get("loc", ())),
            "message": error.get("msg", "Invalid value"),
        }
        for error in exc.errors()
    ]
    return JSONResponse(
        status_code=422,
        content={
            "type": f"{PROBLEM_BASE_URI}/request-validation",
            "title": "Request Validation Failed",
            "status": 422,
            "detail": "The request body or parameters are invalid",
            "instance": request.url.path,
            "code": "REQUEST_VALIDATION",
            "retryable": False,
            "violations": violations,
        },
        media_type="application/problem+json",
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Generic exception handler that converts unhandled exceptions to Problem Details format.

    Args:
        request: FastAPI request object
        exc: Unhandled exception

    Returns:
        JSONResponse: Problem Details formatted response
    """
    error_id = str(uuid.uuid4())

    logger.error(
        "Unhandled exception",
        extra={"error_id": error_id, "path": request.url.path, "error": str(exc)},
        exc_info=exc,
    )

    problem_details = {
        "type": f"{PROBLEM_BASE_URI}/internal-server-error",
        "title": "Internal Server Error",
        "status": 500,
        "detail": "An unexpected error occurred while processing the request",
        "instance": str(request.url),
        "error_id": error_id,
        "timestamp": utcnow().isoformat() + "Z",
    }

    return JSONResponse(
        status_code=500,
        content=problem_details,
        media_type="application/problem+json",
    )
