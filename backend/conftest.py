from __future__ import annotations

import os
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest
from sqlalchemy.orm import sessionmaker

ROOT = Path(__file__).resolve().parent
sys.path.append(str(ROOT))

os.environ["DATABASE_URL"] = "sqlite+pysqlite:///:memory:"
os.environ["DATABASE_WRITE_URL"] = "sqlite+pysqlite:///:memory:"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ.pop("DATABASE_READ_URL", None)
os.environ.pop("OTP_NOTIFIER", None)

from airlinedb.config import AuthSettings  # noqa: E402
from airlinedb.database import STATEMENT_TIMEOUT, Base, build_engine  # noqa: E402
from airlinedb.security import OTPGenerator, PasswordHasher, TokenService  # noqa: E402
from airlinedb.apps.accounts import models as account_models  # noqa: E402
from airlinedb.apps.accounts.services import AuthEngine  # noqa: E402
from airlinedb.apps.accounts.store import CredentialStore  # noqa: E402
from airlinedb.apps.notifications.providers import OTPNotifier  # noqa: E402

ACCOUNT_TABLES = [
    account_models.Account.__table__,
    account_models.PendingOTP.__table__,
    account_models.AccountSecurityEvent.__table__,
]


class FakeClock:
    """Settable UTC clock; call it like `utcnow`."""

    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


class RecordingNotifier(OTPNotifier):
    def __init__(self) -> None:
        self.sent = []
        self.fail = False

    def send_otp(self, *, destination: str, code: str) -> None:
        if self.fail:
            raise ConnectionError("relay unreachable")
        self.sent.append((destination, code))

    @property
    def last_code(self) -> str:
        return self.sent[-1][1]


@pytest.fixture()
def db_session():
    engine = build_engine("sqlite+pysqlite:///:memory:")
    Base.metadata.create_all(bind=engine, tables=ACCOUNT_TABLES)
    TestingSession = sessionmaker(
        bind=engine,
        autoflush=False,
        autocommit=False,
        expire_on_commit=False,
    )
    session = TestingSession()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


@pytest.fixture()
def make_file_sessionmaker(tmp_path):
    """Sessionmakers over a real SQLite file, so each worker gets its own connection and lock."""
    engines = []

    def _make(statement_timeout: int = STATEMENT_TIMEOUT):
        engine = build_engine(
            f"sqlite+pysqlite:///{tmp_path / f'shared-{len(engines)}.db'}",
            statement_timeout=statement_timeout,
        )
        engines.append(engine)
        Base.metadata.create_all(bind=engine, tables=ACCOUNT_TABLES)
        return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)

    try:
        yield _make
    finally:
        for engine in engines:
            engine.dispose()


@pytest.fixture()
def settings() -> AuthSettings:
    # Cheapest Argon2 parameters the library accepts.
    return AuthSettings(
        secret_key="test-secret-key",
        argon2_time_cost=1,
        argon2_memory_cost=8,
        argon2_parallelism=1,
    )


@pytest.fixture()
def hasher(settings) -> PasswordHasher:
    return PasswordHasher.from_settings(settings)


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock(datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc))


@pytest.fixture()
def tokens(settings, clock) -> TokenService:
    return TokenService.from_settings(settings, clock=clock)


@pytest.fixture()
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture()
def make_engine(settings, hasher, tokens, notifier, clock):
    """Build an AuthEngine over the given session with the test collaborators."""

    def _make(db, **overrides) -> AuthEngine:
        options = dict(
            settings=settings,
            hasher=hasher,
            otp_generator=OTPGenerator(settings.otp_length),
            tokens=tokens,
            notifier=notifier,
            clock=clock,
        )
        options.update(overrides)
        return AuthEngine(CredentialStore(db), **options)

    return _make


@pytest.fixture()
def auth_engine(db_session, make_engine) -> AuthEngine:
    return make_engine(db_session)
