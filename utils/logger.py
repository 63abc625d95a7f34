from __future__ import annotations

import logging
import logging.config
from pathlib import Path
from typing import Any, Dict

LOG_FILE_NAME = "autoresponder.log"

# Third-party loggers that are noisy at INFO.
QUIET_LOGGERS = ("googleapiclient.discovery_cache", "google_auth_oauthlib.flow", "urllib3")


def build_logging_config(log_path: Path, level: str) -> Dict[str, Any]:
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "standard": {
                "format": "%(asctime)s | %(levelname)s | %(name)s | %(message)s",
            },
            "console": {
                "format": "%(asctime)s | %(levelname)s | %(message)s",
                "datefmt": "%H:%M:%S",
            },
        },
        "handlers": {
            "file": {
                "class": "logging.handlers.RotatingFileHandler",
                "formatter": "standard",
                "filename": str(log_path),
                "maxBytes": 1_000_000,
                "backupCount": 3,
                "encoding": "utf-8",
            },
            "stdout": {
                "class": "logging.StreamHandler",
                "formatter": "console",
            },
        },
        "loggers": {name: {"level": "WARNING"} for name in QUIET_LOGGERS},
        "root": {
            "handlers": ["file", "stdout"],
            "level": level.upper(),
        },
    }


def configure_logging(log_dir: Path, level: str = "INFO") -> Path:
    """Send log records to a rotating file under log_dir and to the console."""

    log_dir.mkdir(parents=True, exist_ok=True)
    log_path = log_dir / LOG_FILE_NAME
    logging.config.dictConfig(build_logging_config(log_path, level))
    logging.getLogger(__name__).debug("Logging configured at %s in %s", level, log_path)
    return log_path
