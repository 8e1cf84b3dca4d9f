# backend/airlinedb/logging_config.py
import logging
from datetime import datetime, timezone

_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class UTCFormatter(logging.Formatter):
    def formatTime(self, record, datefmt=None):
        record_time = datetime.fromtimestamp(record.created, timezone.utc)
        return record_time.strftime(datefmt) if datefmt else record_time.isoformat()


def setup_logging(level: str = "info") -> logging.Logger:
    """Attach a single UTC stream handler to the `airlinedb` logger tree."""
    logger = logging.getLogger("airlinedb")
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(UTCFormatter(fmt=_FORMAT))
        logger.addHandler(handler)
    logger.setLevel(level.upper())
    return logger
