# backend/airlinedb/__init__.py
"""
Import ORM models from each app so that Base.metadata.create_all() sees
all tables.

The actual model classes are kept in airlinedb/apps/*/models.py.
"""

from .apps.accounts import models as accounts_models          # accounts / OTPs / audit

__all__ = [
    "accounts_models",
]
