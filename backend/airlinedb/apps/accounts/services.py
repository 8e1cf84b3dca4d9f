from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from airlinedb.config import AuthSettings
from airlinedb.errors import (
    AccountAlreadyVerified,
    AccountNotFound,
    AccountNotVerified,
    AuthError,
    DuplicateAccount,
    InvalidCredentials,
    InvalidOTP,
    OTPExpired,
    ValidationError,
)
from airlinedb.security import (
    Clock,
    OTPGenerator,
    PasswordHasher,
    TokenService,
    utcnow,
)
from airlinedb.apps.notifications.providers import OTPNotifier
from . import models
from .store import CredentialStore

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

EMAIL_PATTERN = re.compile(r"^[a-zA-Z0-9._%+\-]+@[a-zA-Z0-9.\-]+\.[a-zA-Z]{2,}$")

# Security event types
EVENT_REGISTERED = "REGISTERED"
EVENT_OTP_ISSUED = "OTP_ISSUED"
EVENT_OTP_VERIFIED = "OTP_VERIFIED"
EVENT_OTP_REJECTED = "OTP_REJECTED"
EVENT_LOGIN_SUCCESS = "LOGIN_SUCCESS"
EVENT_LOGIN_FAILED = "LOGIN_FAILED"
EVENT_LOGIN_UNVERIFIED = "LOGIN_UNVERIFIED"


@dataclass(frozen=True)
class LoginResult:
    token: str
    expires_in: int
    account: models.Account


# ---------------------------------------------------------------------------
# Normalisation helpers
# ---------------------------------------------------------------------------


def _normalise_email(value: Optional[str]) -> str:
    return (value or "").strip().lower()


def _normalise_phone(value: Optional[str]) -> Optional[str]:
    phone = (value or "").strip()
    return phone or None


class AuthEngine:
    """
    Registration, OTP verification and password login.

    Each public method runs its reads and writes in a single store
    transaction. Errors are raised as `airlinedb.errors.AuthError`
    subclasses; nothing is retried here.
    """

    def __init__(
        self,
        store: CredentialStore,
        *,
        settings: AuthSettings,
        hasher: PasswordHasher,
        otp_generator: OTPGenerator,
        tokens: TokenService,
        notifier: OTPNotifier,
        clock: Clock = utcnow,
    ) -> None:
        self.store = store
        self.settings = settings
        self.hasher = hasher
        self.otp_generator = otp_generator
        self.tokens = tokens
        self.notifier = notifier
        self.clock = clock

    # -----------------------------------------------------------------------
    # Input validation
    # -----------------------------------------------------------------------

    def _validate_email(self, email: str) -> str:
        email = _normalise_email(email)
        if not EMAIL_PATTERN.match(email):
            raise ValidationError("Invalid email format")
        return email

    def _validate_password(self, password: str) -> None:
        minimum = self.settings.min_password_length
        if not password or len(password) < minimum:
            raise ValidationError(
                f"Password must be at least {minimum} characters long"
            )

    # -----------------------------------------------------------------------
    # OTP helpers
    # -----------------------------------------------------------------------

    def _find_account(
        self,
        *,
        email: Optional[str],
        phone: Optional[str],
    ) -> models.Account:
        email = _normalise_email(email)
        phone = _normalise_phone(phone)

        account = None
        if email:
            account = self.store.find_account_by_email(email)
        elif phone:
            account = self.store.find_account_by_phone(phone)
        else:
            raise ValidationError("Either email or phone is required")

        if account is None:
            raise AccountNotFound()
        return account

    def _issue_otp(self, account: models.Account) -> str:
        now = self.clock()
        code = self.otp_generator.generate()
        self.store.create_pending_otp(
            models.PendingOTP(
                account_id=account.id,
                code=code,
                created_at=now,
                expires_at=now + self.settings.otp_ttl,
            )
        )
        return code

    def _notify(self, account: models.Account, code: str) -> None:
        # Delivery failure leaves the account in place; the user can ask
        # for a new code.
        destination = account.phone or account.email
        try:
            self.notifier.send_otp(destination=destination, code=code)
        except Exception as exc:
            logger.warning(
                "OTP delivery failed",
                extra={"account_id": account.id, "error": type(exc).__name__},
            )

    # -----------------------------------------------------------------------
    # Register
    # -----------------------------------------------------------------------

    def register(
        self,
        *,
        name: str,
        email: str,
        password: str,
        phone: Optional[str] = None,
        ip: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> models.Account:
        name = (name or "").strip()
        if not name:
            raise ValidationError("Name is required")
        email = self._validate_email(email)
        self._validate_password(password)
        phone = _normalise_phone(phone)

        # Hash outside the transaction; it is the slow part.
        password_hash = self.hasher.hash(password)

        with self.store.transaction():
            if self.store.find_account_by_email(email) is not None:
                raise DuplicateAccount()
            if phone and self.store.find_account_by_phone(phone) is not None:
                raise DuplicateAccount()

            account = self.store.create_account(
                models.Account(
                    name=name,
                    email=email,
                    phone=phone,
                    role=models.AccountRole.USER,
                    password_hash=password_hash,
                    is_verified=False,
                    created_at=self.clock(),
                )
            )
            code = self._issue_otp(account)
            self.store.record_security_event(
                account=account,
                event_type=EVENT_REGISTERED,
                ip=ip,
                user_agent=user_agent,
            )

        logger.info("Account registered", extra={"account_id": account.id})
        self._notify(account, code)
        return account

    # -----------------------------------------------------------------------
    # OTP verification
    # -----------------------------------------------------------------------

    def verify_otp(
        self,
        *,
        code: str,
        email: Optional[str] = None,
        phone: Optional[str] = None,
        ip: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> models.Account:
        """
        Redeem the pending code and mark the account verified.

        The delete of the OTP row and the verified flag commit together.
        If a concurrent call consumed the row first, the delete affects
        nothing and this call fails with InvalidOTP.
        """
        code = (code or "").strip()
        failure: Optional[AuthError] = None

        with self.store.transaction():
            # Read after BEGIN; acquiring the lock may have taken a while.
            now = self.clock()
            account = self._find_account(email=email, phone=phone)
            otp = self.store.find_pending_otp(account.id, code) if code else None

            if otp is None:
                failure = InvalidOTP()
            elif otp.is_expired(now):
                # Expired rows are left for the cleanup job.
                failure = OTPExpired()
            elif not self.store.delete_pending_otp(otp.id):
                failure = InvalidOTP()
            else:
                account.is_verified = True
                self.store.save_account(account)
                self.store.record_security_event(
                    account=account,
                    event_type=EVENT_OTP_VERIFIED,
                    ip=ip,
                    user_agent=user_agent,
                )

            if failure is not None:
                self.store.record_security_event(
                    account=account,
                    event_type=EVENT_OTP_REJECTED,
                    description=failure.code,
                    ip=ip,
                    user_agent=user_agent,
                )

        if failure is not None:
            logger.info(
                "OTP rejected",
                extra={"account_id": account.id, "reason": failure.code},
            )
            raise failure

        logger.info("Account verified", extra={"account_id": account.id})
        return account

    def resend_otp(
        self,
        *,
        email: Optional[str] = None,
        phone: Optional[str] = None,
        ip: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> models.Account:
        """Issue a fresh code, superseding any outstanding one."""
        with self.store.transaction():
            account = self._find_account(email=email, phone=phone)
            if account.is_verified:
                raise AccountAlreadyVerified()
            code = self._issue_otp(account)
            self.store.record_security_event(
                account=account,
                event_type=EVENT_OTP_ISSUED,
                ip=ip,
                user_agent=user_agent,
            )

        self._notify(account, code)
        return account

    # -----------------------------------------------------------------------
    # Login
    # -----------------------------------------------------------------------

    def login(
        self,
        *,
        email: str,
        password: str,
        ip: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> LoginResult:
        """
        Password login.

        Unknown email and wrong password fail identically. A correct
        password on an unverified account fails with AccountNotVerified,
        unless `reveal_unverified_accounts` is off.
        """
        email = _normalise_email(email)
        if not email or not password:
            raise ValidationError("Email and password are required")

        # Digest work runs between two short transactions so no lock or
        # pooled connection is held while Argon2 is busy.
        with self.store.transaction():
            account = self.store.find_account_by_email(email)

        failure: Optional[AuthError] = None
        event_type = EVENT_LOGIN_SUCCESS
        description: Optional[str] = None
        new_hash: Optional[str] = None

        if account is None:
            self.hasher.verify_dummy(password)
            failure = InvalidCredentials()
            event_type = EVENT_LOGIN_FAILED
            description = "Unknown email."
        elif not self.hasher.verify(password, account.password_hash):
            failure = InvalidCredentials()
            event_type = EVENT_LOGIN_FAILED
            description = "Invalid password."
        elif not account.is_verified:
            if self.settings.reveal_unverified_accounts:
                failure = AccountNotVerified()
            else:
                failure = InvalidCredentials()
            event_type = EVENT_LOGIN_UNVERIFIED
        elif self.hasher.needs_rehash(account.password_hash):
            new_hash = self.hasher.hash(password)

        with self.store.transaction():
            if failure is None:
                if new_hash is not None:
                    account.password_hash = new_hash
                account.last_login_at = self.clock()
                self.store.save_account(account)
            self.store.record_security_event(
                account=account,
                event_type=event_type,
                description=description,
                ip=ip,
                user_agent=user_agent,
            )

        if failure is not None:
            logger.warning(
                "Login failed",
                extra={
                    "account_id": account.id if account else None,
                    "reason": failure.code,
                },
            )
            raise failure

        token = self.tokens.issue(account)
        logger.info("Login succeeded", extra={"account_id": account.id})
        return LoginResult(token=token, expires_in=self.tokens.expires_in, account=account)

    # -----------------------------------------------------------------------
    # Session helpers
    # -----------------------------------------------------------------------

    def account_for_claims(self, claims: Dict[str, Any]) -> models.Account:
        with self.store.transaction():
            account = self.store.find_account_by_id(claims["sub"])
        if account is None:
            raise AccountNotFound()
        return account

    def list_accounts(self) -> List[models.Account]:
        with self.store.transaction():
            return self.store.list_accounts()
