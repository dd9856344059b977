"""Custom exceptions and error codes."""

from enum import StrEnum
from typing import Any


class ErrorCode(StrEnum):
    """Standardized error codes for the API."""

    # Authentication errors (401)
    UNAUTHORIZED = "UNAUTHORIZED"
    INVALID_TOKEN = "INVALID_TOKEN"
    INVALID_CREDENTIALS = "INVALID_CREDENTIALS"
    EMAIL_NOT_CONFIRMED = "EMAIL_NOT_CONFIRMED"

    # Authorization errors (403)
    FORBIDDEN = "FORBIDDEN"

    # Not found errors (404)
    PROFILE_NOT_FOUND = "PROFILE_NOT_FOUND"

    # Validation errors (400)
    VALIDATION_ERROR = "VALIDATION_ERROR"
    USER_INPUT_ERROR = "USER_INPUT_ERROR"

    # Registration errors
    IDENTITY_CREATION_FAILED = "IDENTITY_CREATION_FAILED"
    PROFILE_PROVISIONING_FAILED = "PROFILE_PROVISIONING_FAILED"

    # Referral errors (fail-soft, reported as warnings)
    REFERRAL_LOOKUP_UNAVAILABLE = "REFERRAL_LOOKUP_UNAVAILABLE"
    REFERRAL_CODE_NOT_FOUND = "REFERRAL_CODE_NOT_FOUND"
    REFERRAL_NOT_COUNTED = "REFERRAL_NOT_COUNTED"

    # QR code errors (silently degraded)
    QR_ENCODING_FAILED = "QR_ENCODING_FAILED"

    # Rate limiting (429)
    RATE_LIMIT_EXCEEDED = "RATE_LIMIT_EXCEEDED"

    # Server errors (500)
    INTERNAL_ERROR = "INTERNAL_ERROR"
    DATABASE_ERROR = "DATABASE_ERROR"
    IDENTITY_PROVIDER_ERROR = "IDENTITY_PROVIDER_ERROR"


class AppException(Exception):
    """Base application exception."""

    def __init__(
        self,
        error_code: ErrorCode,
        message: str,
        status_code: int = 400,
        details: Any | None = None,
    ) -> None:
        self.error_code = error_code
        self.message = message
        self.status_code = status_code
        self.details = details
        super().__init__(self.message)


class AuthenticationError(AppException):
    """Authentication failed."""

    def __init__(
        self,
        message: str = "Authentication required",
        error_code: ErrorCode = ErrorCode.UNAUTHORIZED,
    ) -> None:
        super().__init__(
            error_code=error_code,
            message=message,
            status_code=401,
        )


class AuthorizationError(AppException):
    """Authorization failed."""

    def __init__(self, message: str = "Access denied") -> None:
        super().__init__(
            error_code=ErrorCode.FORBIDDEN,
            message=message,
            status_code=403,
        )


class UserInputError(AppException):
    """Input rejected by the identity provider; the message is shown verbatim."""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.USER_INPUT_ERROR,
        status_code: int = 400,
    ) -> None:
        super().__init__(
            error_code=error_code,
            message=message,
            status_code=status_code,
        )


class InvalidCredentialsError(UserInputError):
    """Email/password pair was rejected."""

    def __init__(self) -> None:
        super().__init__(
            message="Invalid email or password",
            error_code=ErrorCode.INVALID_CREDENTIALS,
            status_code=401,
        )


class EmailNotConfirmedError(UserInputError):
    """Sign-in attempted before the email address was confirmed."""

    def __init__(self) -> None:
        super().__init__(
            message="Please confirm your email before logging in",
            error_code=ErrorCode.EMAIL_NOT_CONFIRMED,
            status_code=403,
        )


class IdentityProviderError(AppException):
    """The identity provider failed or returned something unusable."""

    def __init__(self, message: str, status_code: int = 502) -> None:
        super().__init__(
            error_code=ErrorCode.IDENTITY_PROVIDER_ERROR,
            message=message,
            status_code=status_code,
        )


class IdentityRateLimitedError(AppException):
    """The identity provider is throttling sign-up or sign-in attempts."""

    def __init__(
        self,
        message: str = "Too many attempts. Please wait a moment and try again",
    ) -> None:
        super().__init__(
            error_code=ErrorCode.RATE_LIMIT_EXCEEDED,
            message=message,
            status_code=429,
        )


class IdentityCreationError(AppException):
    """Account creation failed; registration is aborted."""

    def __init__(self, message: str, status_code: int = 400) -> None:
        super().__init__(
            error_code=ErrorCode.IDENTITY_CREATION_FAILED,
            message=message,
            status_code=status_code,
        )


class ProfileNotFoundError(AppException):
    """Profile not found."""

    def __init__(self, profile_id: str) -> None:
        super().__init__(
            error_code=ErrorCode.PROFILE_NOT_FOUND,
            message=f"Profile not found: {profile_id}",
            status_code=404,
            details={"profile_id": profile_id},
        )


class ProfileProvisioningError(AppException):
    """No profile row could be established after every fallback."""

    def __init__(self, user_id: str, failed_steps: dict[str, str]) -> None:
        steps = ", ".join(failed_steps) or "unknown"
        super().__init__(
            error_code=ErrorCode.PROFILE_PROVISIONING_FAILED,
            message=f"Could not create profile for user {user_id} (failed: {steps})",
            status_code=500,
            details={"user_id": user_id, "failed_steps": failed_steps},
        )


class ReferralLookupUnavailableError(AppException):
    """The referral lookup itself failed; never reported as an invalid code."""

    def __init__(self, reason: str = "") -> None:
        super().__init__(
            error_code=ErrorCode.REFERRAL_LOOKUP_UNAVAILABLE,
            message="Referral code lookup is unavailable",
            status_code=503,
            details={"reason": reason} if reason else None,
        )


class ReferralCodeNotFoundError(AppException):
    """The lookup succeeded and no profile owns the code."""

    def __init__(self, code: str) -> None:
        super().__init__(
            error_code=ErrorCode.REFERRAL_CODE_NOT_FOUND,
            message="Invalid referral code",
            status_code=404,
            details={"code": code},
        )


class ReferralApplicationError(AppException):
    """Linking a new profile to its referrer failed."""

    def __init__(self, user_id: str, referrer_id: str, reason: str = "") -> None:
        super().__init__(
            error_code=ErrorCode.REFERRAL_NOT_COUNTED,
            message="Your account was created, but the referral could not be counted",
            status_code=500,
            details={"user_id": user_id, "referrer_id": referrer_id, "reason": reason},
        )


class QrEncodingError(AppException):
    """QR image could not be produced or stored."""

    def __init__(self, reason: str = "") -> None:
        super().__init__(
            error_code=ErrorCode.QR_ENCODING_FAILED,
            message="QR code could not be generated",
            status_code=500,
            details={"reason": reason} if reason else None,
        )
