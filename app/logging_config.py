import logging.config
import sys
from pathlib import Path

from app.config import Settings, settings as default_settings

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def setup_logging(settings: Settings | None = None) -> None:
    """
    Configure console logging, plus a rotating file when LOG_FILE is set.
    Tunables via env:
      LOG_LEVEL=INFO|DEBUG|...
      LOG_FILE=logs/app.log
    """
    settings = settings or default_settings
    level = settings.log_level.upper()
    handlers = ["console"]

    config = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "default": {"format": LOG_FORMAT, "datefmt": "%Y-%m-%d %H:%M:%S"},
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "stream": sys.stdout,
                "level": level,
                "formatter": "default",
            },
        },
        "loggers": {
            "uvicorn.error": {"handlers": handlers, "level": level, "propagate": False},
            "uvicorn.access": {"handlers": handlers, "level": level, "propagate": False},
        },
        "root": {"handlers": handlers, "level": level},
    }

    if settings.log_file:
        log_file = Path(settings.log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        config["handlers"]["file"] = {
            "class": "logging.handlers.RotatingFileHandler",
            "filename": str(log_file),
            "maxBytes": 5 * 1024 * 1024,
            "backupCount": 3,
            "encoding": "utf-8",
            "level": "DEBUG",
            "formatter": "default",
        }
        handlers.append("file")

    logging.config.dictConfig(config)
