# backend/airlinedb/errors.py
"""
Typed errors raised by the credential engine.

Each error carries the HTTP status and a sanitised public message. The
boundary layer (see `airlinedb.main`) turns them into responses; callers
never see internal details, and messages never contain secrets.
"""

from __future__ import annotations

from typing import Optional


class AuthError(Exception):
    """Base class for every error the engine surfaces to the HTTP layer."""

    status_code: int = 400
    code: str = "AUTH_ERROR"
    public_message: str = "Request could not be processed."

    def __init__(self, message: Optional[str] = None) -> None:
        super().__init__(message or self.public_message)
        if message:
            self.public_message = message


# ---------------------------------------------------------------------------
# Input / registration
# ---------------------------------------------------------------------------


class ValidationError(AuthError):
    status_code = 400
    code = "VALIDATION_ERROR"
    public_message = "Invalid request."


class DuplicateAccount(AuthError):
    status_code = 409
    code = "DUPLICATE_ACCOUNT"
    public_message = "User already exists"


class AccountAlreadyVerified(AuthError):
    status_code = 409
    code = "ACCOUNT_ALREADY_VERIFIED"
    public_message = "Account already verified"


# ---------------------------------------------------------------------------
# Credentials and OTP
# ---------------------------------------------------------------------------


class InvalidCredentials(AuthError):
    status_code = 401
    code = "INVALID_CREDENTIALS"
    public_message = "Invalid credentials"


class AccountNotVerified(AuthError):
    status_code = 401
    code = "ACCOUNT_NOT_VERIFIED"
    public_message = "Account not verified"


class AccountNotFound(AuthError):
    status_code = 404
    code = "ACCOUNT_NOT_FOUND"
    public_message = "User not found"


class InvalidOTP(AuthError):
    status_code = 401
    code = "INVALID_OTP"
    public_message = "Invalid or expired OTP"


class OTPExpired(AuthError):
    status_code = 401
    code = "OTP_EXPIRED"
    public_message = "Invalid or expired OTP"


# ---------------------------------------------------------------------------
# Tokens and request authorisation
# ---------------------------------------------------------------------------


class TokenError(AuthError):
    """Any token validation failure. All subclasses look the same to callers."""

    status_code = 401
    code = "INVALID_TOKEN"
    public_message = "Invalid token"


class MalformedToken(TokenError):
    pass


class InvalidSignature(TokenError):
    pass


class TokenExpired(TokenError):
    pass


class MissingAuth(AuthError):
    status_code = 401
    code = "MISSING_AUTH"
    public_message = "Authorization header required"


class MalformedAuth(AuthError):
    status_code = 401
    code = "MALFORMED_AUTH"
    public_message = "Invalid token format"


class Forbidden(AuthError):
    status_code = 403
    code = "FORBIDDEN"
    public_message = "Unauthorized access"


# ---------------------------------------------------------------------------
# Infrastructure
# ---------------------------------------------------------------------------


class StorageError(AuthError):
    """Storage failed; not the caller's fault and safe to retry client-side."""

    status_code = 500
    code = "STORAGE_ERROR"
    public_message = "Service temporarily unavailable"


class StorageTimeout(StorageError):
    code = "STORAGE_TIMEOUT"


class HashingError(AuthError):
    status_code = 500
    code = "HASHING_ERROR"
    public_message = "Service temporarily unavailable"
