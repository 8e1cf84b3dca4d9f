# backend/airlinedb/apps/accounts/router_public.py

from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session

from airlinedb.config import AuthSettings, get_settings
from airlinedb.database import get_db, get_read_db
from airlinedb.security import (
    OTPGenerator,
    PasswordHasher,
    TokenService,
    get_current_claims,
    get_otp_generator,
    get_password_hasher,
    get_token_service,
)
from airlinedb.apps.notifications.providers import OTPNotifier, get_notifier
from . import schemas
from .services import AuthEngine
from .store import CredentialStore

router = APIRouter(prefix="/auth", tags=["auth"])


def _client_ip(request: Request) -> str | None:
    return request.client.host if request.client else None


def _user_agent(request: Request) -> str | None:
    return request.headers.get("user-agent")


def _build_engine(
    db: Session,
    settings: AuthSettings,
    hasher: PasswordHasher,
    otp_generator: OTPGenerator,
    tokens: TokenService,
    notifier: OTPNotifier,
) -> AuthEngine:
    return AuthEngine(
        CredentialStore(db),
        settings=settings,
        hasher=hasher,
        otp_generator=otp_generator,
        tokens=tokens,
        notifier=notifier,
    )


def get_auth_engine(
    db: Session = Depends(get_db),
    settings: AuthSettings = Depends(get_settings),
    hasher: PasswordHasher = Depends(get_password_hasher),
    otp_generator: OTPGenerator = Depends(get_otp_generator),
    tokens: TokenService = Depends(get_token_service),
    notifier: OTPNotifier = Depends(get_notifier),
) -> AuthEngine:
    """Per-request engine over the write session; collaborators are process-wide."""
    return _build_engine(db, settings, hasher, otp_generator, tokens, notifier)


def get_read_auth_engine(
    db: Session = Depends(get_read_db),
    settings: AuthSettings = Depends(get_settings),
    hasher: PasswordHasher = Depends(get_password_hasher),
    otp_generator: OTPGenerator = Depends(get_otp_generator),
    tokens: TokenService = Depends(get_token_service),
    notifier: OTPNotifier = Depends(get_notifier),
) -> AuthEngine:
    return _build_engine(db, settings, hasher, otp_generator, tokens, notifier)


# ---------------------------------------------------------------------------
# REGISTRATION + OTP
# ---------------------------------------------------------------------------


@router.post(
    "/register",
    response_model=schemas.MessageResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register a new account and send a verification code",
)
def register(
    payload: schemas.RegisterRequest,
    request: Request,
    engine: AuthEngine = Depends(get_auth_engine),
):
    engine.register(
        name=payload.name,
        email=payload.email,
        password=payload.password,
        phone=payload.phone,
        ip=_client_ip(request),
        user_agent=_user_agent(request),
    )
    return schemas.MessageResponse(message="User registered. Check phone for OTP")


@router.post(
    "/verify",
    response_model=schemas.MessageResponse,
    summary="Confirm the verification code sent at registration",
)
def verify_otp(
    payload: schemas.VerifyOTPRequest,
    request: Request,
    engine: AuthEngine = Depends(get_auth_engine),
):
    engine.verify_otp(
        code=payload.otp,
        email=payload.email,
        phone=payload.phone,
        ip=_client_ip(request),
        user_agent=_user_agent(request),
    )
    return schemas.MessageResponse(message="User verified successfully")


@router.post(
    "/resend-otp",
    response_model=schemas.MessageResponse,
    summary="Send a new verification code, replacing the previous one",
)
def resend_otp(
    payload: schemas.ResendOTPRequest,
    request: Request,
    engine: AuthEngine = Depends(get_auth_engine),
):
    engine.resend_otp(
        email=payload.email,
        phone=payload.phone,
        ip=_client_ip(request),
        user_agent=_user_agent(request),
    )
    return schemas.MessageResponse(message="A new OTP has been sent")


# ---------------------------------------------------------------------------
# LOGIN
# ---------------------------------------------------------------------------


@router.post(
    "/login",
    response_model=schemas.LoginResponse,
    summary="Login with email and password",
)
def login(
    payload: schemas.LoginRequest,
    request: Request,
    engine: AuthEngine = Depends(get_auth_engine),
):
    result = engine.login(
        email=payload.email,
        password=payload.password,
        ip=_client_ip(request),
        user_agent=_user_agent(request),
    )
    return schemas.LoginResponse(
        token=result.token,
        expires_in=result.expires_in,
        user=schemas.AccountPublic.model_validate(result.account),
    )


# ---------------------------------------------------------------------------
# CURRENT SESSION
# ---------------------------------------------------------------------------


@router.get(
    "/me",
    response_model=schemas.CurrentSession,
    summary="Get the account behind the presented token",
)
def read_current_session(
    claims: Dict[str, Any] = Depends(get_current_claims),
    engine: AuthEngine = Depends(get_read_auth_engine),
):
    account = engine.account_for_claims(claims)
    return schemas.CurrentSession(
        account=schemas.AccountRead.model_validate(account),
        issued_at=claims["iat"],
        expires_at=claims["exp"],
    )
