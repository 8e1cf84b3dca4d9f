# backend/airlinedb/apps/notifications/__init__.py
"""
Notifications app

Out-of-band delivery of one-time codes. The auth engine only sees the
`OTPNotifier` interface; which transport is used is chosen from the
environment at startup.
"""

from . import providers  # noqa: F401

__all__ = ["providers"]
