from __future__ import annotations

import base64
import json
from types import SimpleNamespace

import bcrypt
import pytest
from jose import jwt
from jose.exceptions import JWSError, JWSSignatureError
from starlette.requests import Request

from airlinedb import security
from airlinedb.errors import (
    Forbidden,
    InvalidSignature,
    MalformedAuth,
    MalformedToken,
    MissingAuth,
    TokenExpired,
)


def _account(account_id: str = "ACC-TEST0001", role: str = "user"):
    return SimpleNamespace(id=account_id, role=SimpleNamespace(value=role))


def _b64(data: dict) -> str:
    raw = json.dumps(data, separators=(",", ":")).encode("utf-8")
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def _tamper_signature(token: str) -> str:
    header, payload, signature = token.split(".")
    first = "B" if signature[0] == "A" else "A"
    return ".".join([header, payload, first + signature[1:]])


# ---------------------------------------------------------------------------
# Password hashing
# ---------------------------------------------------------------------------


def test_hash_verifies_only_the_hashed_password(hasher):
    digest = hasher.hash("correct horse")

    assert digest.startswith("$argon2id$")
    assert hasher.verify("correct horse", digest) is True
    assert hasher.verify("correct horsex", digest) is False


def test_same_password_hashes_differently_and_both_verify(hasher):
    first = hasher.hash("s3cret-pass")
    second = hasher.hash("s3cret-pass")

    assert first != second
    assert hasher.verify("s3cret-pass", first)
    assert hasher.verify("s3cret-pass", second)


def test_verify_rejects_unknown_formats_and_empty_input(hasher):
    assert hasher.verify("anything", "plaintext") is False
    assert hasher.verify("", hasher.hash("pw123456")) is False
    assert hasher.verify("pw123456", "") is False
    assert hasher.verify("pw123456", "$argon2id$garbage") is False


def test_legacy_bcrypt_digest_verifies_and_needs_rehash(hasher):
    legacy = bcrypt.hashpw(b"old-password", bcrypt.gensalt(rounds=4)).decode("utf-8")

    assert hasher.verify("old-password", legacy) is True
    assert hasher.verify("new-password", legacy) is False
    assert hasher.needs_rehash(legacy) is True
    assert hasher.needs_rehash(hasher.hash("old-password")) is False


def test_verify_dummy_always_fails(hasher):
    assert hasher.verify_dummy("whatever") is False
    assert hasher.verify_dummy("") is False


def test_hash_failure_surfaces_as_hashing_error(hasher, monkeypatch):
    from argon2.exceptions import HashingError as Argon2HashingError

    from airlinedb.errors import HashingError

    class _BrokenArgon2:
        def hash(self, password):
            raise Argon2HashingError("out of memory")

    monkeypatch.setattr(hasher, "_hasher", _BrokenArgon2())

    with pytest.raises(HashingError):
        hasher.hash("password123")


# ---------------------------------------------------------------------------
# OTP generation
# ---------------------------------------------------------------------------


def test_otp_is_always_six_digits():
    generator = security.OTPGenerator(6)

    codes = [generator.generate() for _ in range(10_000)]

    assert all(len(code) == 6 and code.isdigit() for code in codes)
    # Leading zeros are kept and the space is actually used.
    assert len(set(codes)) > 9_000


def test_otp_length_follows_configuration():
    assert len(security.OTPGenerator(8).generate()) == 8


# ---------------------------------------------------------------------------
# Session tokens
# ---------------------------------------------------------------------------


def test_token_valid_after_one_hour_and_expired_after_twenty_five(tokens, clock):
    token = tokens.issue(_account(role="pilot"))

    clock.advance(hours=1)
    claims = tokens.validate(token)
    assert claims["sub"] == "ACC-TEST0001"
    assert claims["role"] == "pilot"
    assert claims["exp"] - claims["iat"] == 24 * 3600

    clock.advance(hours=24)
    with pytest.raises(TokenExpired):
        tokens.validate(token)


def test_tampered_signature_is_rejected(tokens):
    token = tokens.issue(_account())

    with pytest.raises(InvalidSignature):
        tokens.validate(_tamper_signature(token))


def test_signature_failure_is_classified_by_exception_type(tokens, monkeypatch):
    token = tokens.issue(_account())

    def _bad_mac(*args, **kwargs):
        raise JWSSignatureError()

    monkeypatch.setattr(security.jws, "verify", _bad_mac)

    with pytest.raises(InvalidSignature):
        tokens.validate(token)


def test_other_jws_errors_are_malformed_even_if_they_mention_signature(tokens, monkeypatch):
    token = tokens.issue(_account())

    def _bad_padding(*args, **kwargs):
        raise JWSError("bad signature padding")

    monkeypatch.setattr(security.jws, "verify", _bad_padding)

    with pytest.raises(MalformedToken):
        tokens.validate(token)


def test_token_signed_with_another_secret_is_rejected(tokens, settings):
    claims = {"sub": "ACC-TEST0001", "role": "admin", "iat": 0, "exp": 2**31}
    forged = jwt.encode(claims, "not-the-secret", algorithm=settings.jwt_algorithm)

    with pytest.raises(InvalidSignature):
        tokens.validate(forged)


def test_alg_none_token_is_rejected(tokens, clock):
    issued = int(clock().timestamp())
    unsigned = ".".join(
        [
            _b64({"alg": "none", "typ": "JWT"}),
            _b64({"sub": "ACC-TEST0001", "role": "admin", "iat": issued, "exp": issued + 60}),
            "",
        ]
    )

    with pytest.raises(InvalidSignature):
        tokens.validate(unsigned)


def test_token_with_other_hmac_algorithm_is_rejected(tokens, settings, clock):
    issued = int(clock().timestamp())
    claims = {"sub": "ACC-TEST0001", "role": "user", "iat": issued, "exp": issued + 60}
    other = jwt.encode(claims, settings.secret_key, algorithm="HS512")

    with pytest.raises(InvalidSignature):
        tokens.validate(other)


@pytest.mark.parametrize("token", ["", "abc", "a.b", "a.b.c.d", "not.base64!.sig"])
def test_malformed_tokens_are_rejected(tokens, token):
    with pytest.raises(MalformedToken):
        tokens.validate(token)


def test_token_missing_role_claim_is_malformed(tokens, settings, clock):
    issued = int(clock().timestamp())
    partial = jwt.encode(
        {"sub": "ACC-TEST0001", "iat": issued, "exp": issued + 60},
        settings.secret_key,
        algorithm=settings.jwt_algorithm,
    )

    with pytest.raises(MalformedToken):
        tokens.validate(partial)


def test_token_service_requires_secret():
    with pytest.raises(ValueError):
        security.TokenService("")


# ---------------------------------------------------------------------------
# Request authorisation
# ---------------------------------------------------------------------------


def test_parse_bearer_returns_token():
    assert security.parse_bearer("Bearer abc.def.ghi") == "abc.def.ghi"


def test_parse_bearer_requires_header():
    with pytest.raises(MissingAuth):
        security.parse_bearer(None)
    with pytest.raises(MissingAuth):
        security.parse_bearer("")


@pytest.mark.parametrize("header", ["Token abc", "Bearer", "Bearer ", "bearer abc", "Bearer a b"])
def test_parse_bearer_rejects_other_shapes(header):
    with pytest.raises(MalformedAuth):
        security.parse_bearer(header)


def _request_with_auth(value: str) -> Request:
    return Request(
        {
            "type": "http",
            "method": "GET",
            "path": "/auth/me",
            "headers": [(b"authorization", value.encode("latin-1"))],
        }
    )


def test_get_current_claims_attaches_claims_to_request(tokens):
    token = tokens.issue(_account(role="admin"))
    request = _request_with_auth(f"Bearer {token}")

    claims = security.get_current_claims(request, tokens=tokens)

    assert claims["role"] == "admin"
    assert request.state.claims == claims


def test_require_role_blocks_other_roles():
    gate = security.require_role("admin")

    assert gate(claims={"sub": "ACC-1", "role": "admin"})["sub"] == "ACC-1"
    with pytest.raises(Forbidden):
        gate(claims={"sub": "ACC-2", "role": "pilot"})
