import logging
import os
import sys
from typing import Dict, Optional

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
DEFAULT_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# 第三方库的连接/重试细节太吵，单独压到 WARNING；要看时用 LOG_LEVEL_HTTP=DEBUG
_THIRD_PARTY_LEVELS: Dict[str, str] = {
    "urllib3": os.getenv("LOG_LEVEL_HTTP", "WARNING").upper(),
    "sqlalchemy.engine": os.getenv("LOG_LEVEL_SQL", "WARNING").upper(),
}

APP_LOGGER_NAME = "image_updater"


def configure_logging(level: Optional[str] = None) -> logging.Logger:
    """
    Root logger setup shared by the API process, Celery workers and scripts.
    Safe to call more than once: an existing handler (uvicorn, pytest) is kept and only the level changes.
    """
    resolved_level = (level or DEFAULT_LEVEL).upper()
    root_logger = logging.getLogger()

    if root_logger.handlers:
        root_logger.setLevel(resolved_level)
    else:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root_logger.addHandler(handler)
        root_logger.setLevel(resolved_level)

    for name, lib_level in _THIRD_PARTY_LEVELS.items():
        logging.getLogger(name).setLevel(lib_level)

    logging.captureWarnings(True)
    return logging.getLogger(APP_LOGGER_NAME)


logger = configure_logging()
