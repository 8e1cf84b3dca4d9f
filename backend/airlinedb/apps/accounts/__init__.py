# backend/airlinedb/apps/accounts/__init__.py
"""
Accounts app

Responsible for:
- Passenger, pilot and admin accounts with salted password digests
- One-time verification codes issued at registration
- Password login and signed session tokens
- Account security events (registration, verification, login)

Other apps should depend on these models for anything related to
"who is this caller and what role do they hold".
"""

from . import models, schemas, services, store  # noqa: F401

__all__ = ["models", "schemas", "services", "store"]
