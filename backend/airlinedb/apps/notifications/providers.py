from __future__ import annotations

import json
import logging
import os
import urllib.request
from functools import lru_cache
from typing import Optional

logger = logging.getLogger(__name__)

WEBHOOK_TIMEOUT_SECONDS = 10


class OTPNotifier:
    """Delivers a one-time code to a phone number or email address."""

    def send_otp(self, *, destination: str, code: str) -> None:
        raise NotImplementedError


class NoopNotifier(OTPNotifier):
    def send_otp(self, *, destination: str, code: str) -> None:
        logger.info("OTP delivery skipped: no notifier configured")


class WebhookNotifier(OTPNotifier):
    """
    POSTs `{"to": ..., "message": ...}` to an SMS/WhatsApp relay.

    Env expected:
      OTP_WEBHOOK_URL
      OTP_WEBHOOK_BEARER (optional)
    """

    def __init__(
        self,
        url: str,
        *,
        bearer: Optional[str] = None,
        timeout: float = WEBHOOK_TIMEOUT_SECONDS,
    ) -> None:
        self.url = url
        self.bearer = bearer
        self.timeout = timeout

    def build_request(self, *, destination: str, code: str) -> urllib.request.Request:
        message = f"Your verification code is {code}"
        payload = json.dumps({"to": destination, "message": message}).encode("utf-8")
        req = urllib.request.Request(
            self.url,
            data=payload,
            headers={"Content-Type": "application/json"},
            method="POST",
        )
        if self.bearer:
            req.add_header("Authorization", f"Bearer {self.bearer}")
        return req

    def send_otp(self, *, destination: str, code: str) -> None:
        req = self.build_request(destination=destination, code=code)
        with urllib.request.urlopen(req, timeout=self.timeout):
            pass


def build_notifier(env=None) -> OTPNotifier:
    env = os.environ if env is None else env
    name = (env.get("OTP_NOTIFIER") or "").strip().lower()
    if not name or name in {"none", "noop", "disabled"}:
        return NoopNotifier()
    if name == "webhook":
        url = (env.get("OTP_WEBHOOK_URL") or "").strip()
        if not url:
            raise ValueError("OTP_WEBHOOK_URL is required when OTP_NOTIFIER=webhook")
        return WebhookNotifier(url, bearer=env.get("OTP_WEBHOOK_BEARER") or None)
    raise ValueError(f"Unsupported OTP notifier: {name}")


@lru_cache(maxsize=1)
def get_notifier() -> OTPNotifier:
    return build_notifier()
