# backend/airlinedb/apps/accounts/store.py
"""
Credential storage on top of a SQLAlchemy session.

The auth engine only talks to storage through this class. Every compound
flow runs inside `transaction()`, which commits on success and rolls back
on any error, so partial writes are never observable.

Storage failures are translated into `StorageTimeout` / `StorageError`;
nothing here retries.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import datetime
from typing import Iterator, List, Optional

from sqlalchemy import delete, select
from sqlalchemy import exc as sa_exc
from sqlalchemy.orm import Session

from airlinedb.errors import DuplicateAccount, StorageError, StorageTimeout
from . import models

logger = logging.getLogger(__name__)

# Driver messages that mean "we waited too long" rather than "it broke".
_TIMEOUT_MARKERS = (
    "timeout",
    "timed out",
    "database is locked",
    "canceling statement",
    "lock wait",
)


def translate_storage_error(exc: sa_exc.SQLAlchemyError) -> StorageError:
    if isinstance(exc, sa_exc.TimeoutError):
        return StorageTimeout()
    if isinstance(exc, sa_exc.OperationalError):
        message = str(getattr(exc, "orig", exc)).lower()
        if any(marker in message for marker in _TIMEOUT_MARKERS):
            return StorageTimeout()
    return StorageError()


class CredentialStore:
    def __init__(self, db: Session) -> None:
        self.db = db

    # -----------------------------------------------------------------------
    # Transactions
    # -----------------------------------------------------------------------

    @contextmanager
    def transaction(self) -> Iterator["CredentialStore"]:
        try:
            yield self
            self.db.commit()
        except sa_exc.SQLAlchemyError as exc:
            self.db.rollback()
            error = translate_storage_error(exc)
            logger.warning(
                "Credential store operation failed",
                extra={"error": type(exc).__name__, "code": error.code},
            )
            raise error from exc
        except Exception:
            self.db.rollback()
            raise

    # -----------------------------------------------------------------------
    # Accounts
    # -----------------------------------------------------------------------

    def find_account_by_email(self, email: str) -> Optional[models.Account]:
        return self.db.execute(
            select(models.Account).where(models.Account.email == email)
        ).scalar_one_or_none()

    def find_account_by_phone(self, phone: str) -> Optional[models.Account]:
        return self.db.execute(
            select(models.Account).where(models.Account.phone == phone)
        ).scalar_one_or_none()

    def find_account_by_id(self, account_id: str) -> Optional[models.Account]:
        return self.db.get(models.Account, account_id)

    def list_accounts(self) -> List[models.Account]:
        return list(
            self.db.execute(
                select(models.Account).order_by(models.Account.created_at.asc())
            ).scalars()
        )

    def create_account(self, account: models.Account) -> models.Account:
        self.db.add(account)
        try:
            self.db.flush()
        except sa_exc.IntegrityError as exc:
            # Lost a race with a concurrent registration for the same key.
            raise DuplicateAccount() from exc
        return account

    def save_account(self, account: models.Account) -> None:
        self.db.add(account)
        self.db.flush()

    # -----------------------------------------------------------------------
    # Pending OTPs
    # -----------------------------------------------------------------------

    def create_pending_otp(self, otp: models.PendingOTP) -> models.PendingOTP:
        """Store `otp`, replacing any earlier code for the same account."""
        self.db.execute(
            delete(models.PendingOTP)
            .where(models.PendingOTP.account_id == otp.account_id)
            .execution_options(synchronize_session=False)
        )
        self.db.add(otp)
        self.db.flush()
        return otp

    def find_pending_otp(self, account_id: str, code: str) -> Optional[models.PendingOTP]:
        return self.db.execute(
            select(models.PendingOTP).where(
                models.PendingOTP.account_id == account_id,
                models.PendingOTP.code == code,
            )
        ).scalar_one_or_none()

    def delete_pending_otp(self, otp_id: str) -> bool:
        """Delete by id. False means someone else already consumed it."""
        result = self.db.execute(
            delete(models.PendingOTP)
            .where(models.PendingOTP.id == otp_id)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    def purge_expired_otps(self, now: datetime) -> int:
        result = self.db.execute(
            delete(models.PendingOTP)
            .where(models.PendingOTP.expires_at < now)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount or 0

    # -----------------------------------------------------------------------
    # Security events
    # -----------------------------------------------------------------------

    def record_security_event(
        self,
        *,
        account: Optional[models.Account],
        event_type: str,
        description: Optional[str] = None,
        ip: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> None:
        self.db.add(
            models.AccountSecurityEvent(
                account_id=account.id if account else None,
                event_type=event_type,
                description=description,
                ip_address=ip,
                user_agent=user_agent,
            )
        )
