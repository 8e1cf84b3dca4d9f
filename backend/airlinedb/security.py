# backend/airlinedb/security.py

"""
Security helpers for the airline backend.

Responsibilities:
- Password hashing and verification (Argon2id, legacy bcrypt accepted)
- One-time password generation
- JWT session token issue and validation
- FastAPI dependencies for the bearer header and role gates

Every component here is stateless apart from its configuration, so one
instance per process is shared by all request workers.
"""

from __future__ import annotations

import json
import logging
import secrets
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import Any, Callable, Dict, Optional, Union

from argon2 import PasswordHasher as Argon2Hasher
from argon2.exceptions import (
    HashingError as Argon2HashingError,
    InvalidHash,
    VerificationError,
    VerifyMismatchError,
)
import bcrypt
from fastapi import Depends, Request
from jose import JWTError, jws, jwt
from jose.exceptions import JWSError, JWSSignatureError

from .config import AuthSettings, get_settings
from .errors import (
    Forbidden,
    HashingError,
    InvalidSignature,
    MalformedAuth,
    MalformedToken,
    MissingAuth,
    TokenExpired,
)

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# PASSWORD HASHING
# ---------------------------------------------------------------------------


def _is_argon2_hash(hashed_password: str) -> bool:
    return isinstance(hashed_password, str) and hashed_password.startswith("$argon2")


def _is_bcrypt_hash(hashed_password: str) -> bool:
    return isinstance(hashed_password, str) and hashed_password.startswith(("$2a$", "$2b$", "$2y$"))


class PasswordHasher:
    """
    Salted, deliberately slow one-way password transform.

    The salt and work-factor parameters are embedded in the digest, so
    `verify` only needs the digest and the candidate password.
    """

    def __init__(
        self,
        *,
        time_cost: int = 3,
        memory_cost: int = 65536,
        parallelism: int = 2,
        hash_len: int = 32,
        salt_len: int = 16,
    ) -> None:
        self._hasher = Argon2Hasher(
            time_cost=time_cost,
            memory_cost=memory_cost,
            parallelism=parallelism,
            hash_len=hash_len,
            salt_len=salt_len,
        )
        self._dummy_hash: Optional[str] = None

    @classmethod
    def from_settings(cls, settings: AuthSettings) -> "PasswordHasher":
        return cls(
            time_cost=settings.argon2_time_cost,
            memory_cost=settings.argon2_memory_cost,
            parallelism=settings.argon2_parallelism,
        )

    def hash(self, password: str) -> str:
        try:
            return self._hasher.hash(password)
        except (Argon2HashingError, OSError) as exc:
            # Entropy or allocator failure; nothing the caller can retry.
            logger.error("Password hashing failed", extra={"error": type(exc).__name__})
            raise HashingError() from exc

    def verify(self, password: str, hashed_password: str) -> bool:
        """Return True if the password matches. Never raises on mismatch."""
        if not password or not hashed_password:
            return False

        if _is_argon2_hash(hashed_password):
            try:
                return self._hasher.verify(hashed_password, password)
            except (VerifyMismatchError, VerificationError, InvalidHash):
                return False

        # Backward compatibility: accounts created before the Argon2 switch
        if _is_bcrypt_hash(hashed_password):
            try:
                return bcrypt.checkpw(
                    password.encode("utf-8"),
                    hashed_password.encode("utf-8"),
                )
            except ValueError:
                return False

        # Unknown hash format
        return False

    def verify_dummy(self, password: str) -> bool:
        """
        Run a full verification against a throwaway digest and return False.

        Used when no account matched, so the response takes as long as a
        wrong password would.
        """
        if self._dummy_hash is None:
            self._dummy_hash = self.hash(secrets.token_urlsafe(16))
        self.verify(password or "x", self._dummy_hash)
        return False

    def needs_rehash(self, hashed_password: str) -> bool:
        if _is_bcrypt_hash(hashed_password):
            return True
        if _is_argon2_hash(hashed_password):
            try:
                return self._hasher.check_needs_rehash(hashed_password)
            except InvalidHash:
                return True
        return True


# ---------------------------------------------------------------------------
# ONE-TIME PASSWORDS
# ---------------------------------------------------------------------------


class OTPGenerator:
    """Uniformly random numeric codes from the OS CSPRNG, leading zeros kept."""

    def __init__(self, length: int = 6) -> None:
        self.length = length
        self._upper = 10 ** length

    def generate(self) -> str:
        return f"{secrets.randbelow(self._upper):0{self.length}d}"


# ---------------------------------------------------------------------------
# JWT TOKENS
# ---------------------------------------------------------------------------

_REQUIRED_CLAIMS = ("sub", "role", "iat", "exp")


class TokenService:
    """
    Issues and validates signed session tokens.

    The expected algorithm is fixed at construction. A token whose header
    names any other algorithm (including "none") is rejected before the
    signature is even checked.
    """

    def __init__(
        self,
        secret_key: str,
        *,
        algorithm: str = "HS256",
        ttl: timedelta = timedelta(hours=24),
        clock: Clock = utcnow,
    ) -> None:
        if not secret_key:
            raise ValueError("secret_key is required")
        self._secret_key = secret_key
        self.algorithm = algorithm
        self.ttl = ttl
        self._clock = clock

    @classmethod
    def from_settings(cls, settings: AuthSettings, clock: Clock = utcnow) -> "TokenService":
        return cls(
            settings.secret_key,
            algorithm=settings.jwt_algorithm,
            ttl=settings.access_token_ttl,
            clock=clock,
        )

    @property
    def expires_in(self) -> int:
        return int(self.ttl.total_seconds())

    def issue(self, account) -> str:
        issued_at = self._clock()
        role = account.role.value if hasattr(account.role, "value") else str(account.role)
        payload = {
            "sub": str(account.id),
            "role": role,
            "iat": int(issued_at.timestamp()),
            "exp": int((issued_at + self.ttl).timestamp()),
        }
        return jwt.encode(payload, self._secret_key, algorithm=self.algorithm)

    def validate(self, token: str) -> Dict[str, Any]:
        if not isinstance(token, str) or token.count(".") != 2:
            raise MalformedToken()

        try:
            header = jwt.get_unverified_header(token)
        except JWTError:
            raise MalformedToken()

        if header.get("alg") != self.algorithm:
            raise InvalidSignature()

        try:
            payload = jws.verify(token, self._secret_key, algorithms=[self.algorithm])
        except JWSSignatureError:
            raise InvalidSignature()
        except JWSError as exc:
            # python-jose re-raises a failed MAC check as a plain JWSError.
            if isinstance(exc.__context__, JWSSignatureError):
                raise InvalidSignature()
            raise MalformedToken()

        try:
            claims = json.loads(payload)
        except ValueError:
            raise MalformedToken()
        if not isinstance(claims, dict):
            raise MalformedToken()

        for name in _REQUIRED_CLAIMS:
            if name not in claims:
                raise MalformedToken()
        if not isinstance(claims["sub"], str) or not isinstance(claims["role"], str):
            raise MalformedToken()
        if not isinstance(claims["exp"], int) or not isinstance(claims["iat"], int):
            raise MalformedToken()

        if self._clock().timestamp() > claims["exp"]:
            raise TokenExpired()

        return claims


# ---------------------------------------------------------------------------
# PROCESS-WIDE INSTANCES
# ---------------------------------------------------------------------------


@lru_cache(maxsize=1)
def get_password_hasher() -> PasswordHasher:
    return PasswordHasher.from_settings(get_settings())


@lru_cache(maxsize=1)
def get_otp_generator() -> OTPGenerator:
    return OTPGenerator(get_settings().otp_length)


@lru_cache(maxsize=1)
def get_token_service() -> TokenService:
    return TokenService.from_settings(get_settings())


# ---------------------------------------------------------------------------
# FASTAPI DEPENDENCIES
# ---------------------------------------------------------------------------


def parse_bearer(authorization: Optional[str]) -> str:
    """Extract the token from an `Authorization: Bearer <token>` header."""
    if not authorization:
        raise MissingAuth()

    parts = authorization.split(" ")
    if len(parts) != 2 or parts[0] != "Bearer" or not parts[1]:
        raise MalformedAuth()
    return parts[1]


def get_current_claims(
    request: Request,
    tokens: TokenService = Depends(get_token_service),
) -> Dict[str, Any]:
    """
    Validate the bearer token and attach its claims to the request.

    Downstream handlers can read them from `request.state.claims`.
    """
    token = parse_bearer(request.headers.get("Authorization"))
    claims = tokens.validate(token)
    request.state.claims = claims
    return claims


def require_role(
    role: Union[str, Any],
) -> Callable[..., Dict[str, Any]]:
    """
    Dependency factory that only lets through tokens carrying `role`.

    Usage:
        @router.get(...)
        def endpoint(claims: dict = Depends(require_role("admin"))):
            ...
    """
    required = role.value if hasattr(role, "value") else str(role)

    def dependency(
        claims: Dict[str, Any] = Depends(get_current_claims),
    ) -> Dict[str, Any]:
        if claims.get("role") != required:
            raise Forbidden()
        return claims

    return dependency
