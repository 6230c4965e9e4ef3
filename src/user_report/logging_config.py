from __future__ import annotations

import logging

from user_report.config import get_settings

LOG_FORMAT = "%(asctime)s %(levelname)-7s [%(name)s] %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Driver loggers that would otherwise repeat every query of a long batch.
QUIET_LOGGERS = ("sqlalchemy.engine", "sqlalchemy.pool", "pymongo")

_LOG_CONFIGURED = False


def configure_logging() -> None:
    """Set up the per-user progress log once per process.

    Driver chatter stays at WARNING unless the report itself runs at DEBUG.
    """
    global _LOG_CONFIGURED
    if _LOG_CONFIGURED:
        return

    level = logging.getLevelName(get_settings().log_level)
    logging.basicConfig(level=level, format=LOG_FORMAT, datefmt=LOG_DATE_FORMAT)
    driver_level = logging.DEBUG if level == logging.DEBUG else logging.WARNING
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(driver_level)
    _LOG_CONFIGURED = True
