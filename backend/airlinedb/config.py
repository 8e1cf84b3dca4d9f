# backend/airlinedb/config.py
"""
Process-wide authentication settings.

Loaded once from the environment at startup and never mutated afterwards.
The signing secret has no built-in default: a missing SECRET_KEY stops the
process instead of silently signing tokens with a well-known literal.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import timedelta
from functools import lru_cache
from typing import Mapping, Optional

SUPPORTED_JWT_ALGORITHMS = ("HS256", "HS384", "HS512")

_TRUTHY = {"1", "true", "yes", "on"}


def _int_env(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        raise RuntimeError(f"{name} must be an integer, got {raw!r}")


def _bool_env(env: Mapping[str, str], name: str, default: bool) -> bool:
    raw = env.get(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in _TRUTHY


@dataclass(frozen=True)
class AuthSettings:
    secret_key: str
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 60 * 24
    otp_ttl_minutes: int = 5
    otp_length: int = 6
    min_password_length: int = 8

    # Argon2id work factor; raise these as hardware improves.
    argon2_time_cost: int = 3
    argon2_memory_cost: int = 65536  # KiB (64MB)
    argon2_parallelism: int = 2

    # When False, a correct password on an unverified account is reported
    # as plain invalid credentials.
    reveal_unverified_accounts: bool = True

    def __post_init__(self) -> None:
        if not self.secret_key:
            raise RuntimeError("SECRET_KEY must not be empty.")
        if self.jwt_algorithm not in SUPPORTED_JWT_ALGORITHMS:
            raise RuntimeError(
                f"JWT_ALGORITHM must be one of {', '.join(SUPPORTED_JWT_ALGORITHMS)}"
            )
        if self.otp_length < 4:
            raise RuntimeError("OTP_LENGTH must be at least 4.")

    @property
    def access_token_ttl(self) -> timedelta:
        return timedelta(minutes=self.access_token_expire_minutes)

    @property
    def otp_ttl(self) -> timedelta:
        return timedelta(minutes=self.otp_ttl_minutes)

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "AuthSettings":
        env = os.environ if env is None else env

        secret_key = (env.get("SECRET_KEY") or "").strip()
        if not secret_key:
            raise RuntimeError(
                "SECRET_KEY is not set. Generate one with:\n"
                "python -c \"import secrets; print(secrets.token_urlsafe(48))\""
            )

        return cls(
            secret_key=secret_key,
            jwt_algorithm=(env.get("JWT_ALGORITHM") or "HS256").strip().upper(),
            access_token_expire_minutes=_int_env(
                env, "ACCESS_TOKEN_EXPIRE_MINUTES", 60 * 24
            ),
            otp_ttl_minutes=_int_env(env, "OTP_TTL_MINUTES", 5),
            otp_length=_int_env(env, "OTP_LENGTH", 6),
            min_password_length=_int_env(env, "MIN_PASSWORD_LENGTH", 8),
            argon2_time_cost=_int_env(env, "ARGON2_TIME_COST", 3),
            argon2_memory_cost=_int_env(env, "ARGON2_MEMORY_COST", 65536),
            argon2_parallelism=_int_env(env, "ARGON2_PARALLELISM", 2),
            reveal_unverified_accounts=_bool_env(
                env, "REVEAL_UNVERIFIED_ACCOUNTS", True
            ),
        )


@lru_cache(maxsize=1)
def get_settings() -> AuthSettings:
    """Settings for this process, read from the environment on first use."""
    return AuthSettings.from_env()
