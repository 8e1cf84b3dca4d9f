# backend/airlinedb/apps/accounts/models.py

from __future__ import annotations

import enum
from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    String,
    Text,
)

from airlinedb.database import Base
from airlinedb.user_id import (
    generate_account_id,
    generate_event_id,
    generate_otp_id,
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """SQLite hands back naive datetimes; treat them as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


# ---------------------------------------------------------------------------
# ENUMS
# ---------------------------------------------------------------------------


class AccountRole(str, enum.Enum):
    """Roles carried in session tokens and checked by role gates."""

    USER = "user"
    PILOT = "pilot"
    ADMIN = "admin"


# ---------------------------------------------------------------------------
# ACCOUNTS
# ---------------------------------------------------------------------------


class Account(Base):
    """
    A person who can log in to the airline portal.

    Accounts start unverified. Verification flips `is_verified` exactly
    once, after the OTP sent at registration is confirmed; until then the
    account cannot log in.
    """

    __tablename__ = "accounts"
    __table_args__ = (
        Index("idx_accounts_role_verified", "role", "is_verified"),
    )

    id = Column(
        String(36),
        primary_key=True,
        default=generate_account_id,
    )

    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False, unique=True, index=True)
    phone = Column(String(64), nullable=True, unique=True, index=True)

    role = Column(
        Enum(
            AccountRole,
            name="account_role_enum",
            values_callable=lambda roles: [r.value for r in roles],
        ),
        nullable=False,
        default=AccountRole.USER,
    )

    password_hash = Column(String(255), nullable=False)
    is_verified = Column(Boolean, nullable=False, default=False)

    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
    )
    last_login_at = Column(DateTime(timezone=True), nullable=True)

    def __repr__(self) -> str:
        return f"<Account {self.id} {self.email} role={self.role}>"


# ---------------------------------------------------------------------------
# PENDING OTPs
# ---------------------------------------------------------------------------


class PendingOTP(Base):
    """
    Outstanding verification code for an account.

    - At most one row per account; issuing a new code replaces the old one.
    - Deleted when redeemed. Expired rows stay until the cleanup job runs.
    """

    __tablename__ = "pending_otps"
    __table_args__ = (
        Index("idx_pending_otps_account_code", "account_id", "code"),
    )

    id = Column(
        String(36),
        primary_key=True,
        default=generate_otp_id,
    )
    account_id = Column(
        String(36),
        ForeignKey("accounts.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    code = Column(String(16), nullable=False)
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
    )
    expires_at = Column(DateTime(timezone=True), nullable=False, index=True)

    def is_expired(self, now: datetime) -> bool:
        return as_utc(now) > as_utc(self.expires_at)


# ---------------------------------------------------------------------------
# SECURITY EVENTS (AUDIT TRAIL)
# ---------------------------------------------------------------------------


class AccountSecurityEvent(Base):
    """
    Security audit trail: registrations, OTP checks, logins.

    Never stores passwords, OTP codes or tokens.
    """

    __tablename__ = "account_security_events"
    __table_args__ = (
        Index(
            "idx_security_events_account_created",
            "account_id",
            "event_type",
            "created_at",
        ),
    )

    id = Column(
        String(36),
        primary_key=True,
        default=generate_event_id,
    )
    account_id = Column(
        String(36),
        ForeignKey("accounts.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    event_type = Column(
        String(64),
        nullable=False,
        doc="e.g. 'REGISTERED', 'OTP_VERIFIED', 'LOGIN_SUCCESS', 'LOGIN_FAILED'",
    )
    description = Column(Text, nullable=True)

    ip_address = Column(String(64), nullable=True)
    user_agent = Column(Text, nullable=True)

    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
    )

    def __repr__(self) -> str:
        return f"<SecurityEvent {self.event_type} account={self.account_id}>"
