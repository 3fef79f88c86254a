"""Logging setup for entrypoints. Library modules only call logging.getLogger(__name__)."""

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from accounts.core.config import Settings

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%dT%H:%M:%SZ"


def configure_logging(settings: "Settings") -> None:
    """Configure the root logger from settings (LOG_LEVEL, DEBUG)."""
    level = logging.DEBUG if settings.DEBUG else getattr(logging, settings.LOG_LEVEL)
    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        datefmt=LOG_DATE_FORMAT,
    )
    # SQL echo goes through the sqlalchemy.engine logger
    if settings.DEBUG:
        logging.getLogger("sqlalchemy.engine").setLevel(logging.INFO)
