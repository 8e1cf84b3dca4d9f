"""OTP cleanup job.

Intended for cron (e.g. every 15 minutes) to delete verification codes
that expired without being redeemed.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from airlinedb.database import WriteSessionLocal
from airlinedb.security import utcnow
from airlinedb.apps.accounts.store import CredentialStore

logger = logging.getLogger(__name__)


def run(now: Optional[datetime] = None, session_factory=WriteSessionLocal) -> dict:
    """Execute the cleanup and return a summary dict."""
    db = session_factory()
    try:
        store = CredentialStore(db)
        with store.transaction():
            purged = store.purge_expired_otps(now or utcnow())
        logger.info("Expired OTPs purged", extra={"purged": purged})
        return {"purged": purged}
    finally:
        db.close()


if __name__ == "__main__":
    result = run()
    print("OTP cleanup completed:", result)
