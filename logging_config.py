# logging_config.py
import logging
import logging.config
from pathlib import Path

import settings

_configured = False


def setup_logging() -> None:
    """Console + daily rotating files (combined / error), configured once per process."""
    global _configured
    if _configured:
        return

    handlers = {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "default",
        },
    }
    if settings.LOG_TO_FILE:
        base = Path(settings.LOG_DIR)
        (base / "combined").mkdir(parents=True, exist_ok=True)
        (base / "error").mkdir(parents=True, exist_ok=True)
        handlers["combined_file"] = {
            "class": "logging.handlers.TimedRotatingFileHandler",
            "formatter": "default",
            "filename": str(base / "combined" / "app.log"),
            "when": "midnight",
            "backupCount": 3,
            "encoding": "utf-8",
            "level": "INFO",
        }
        handlers["error_file"] = {
            "class": "logging.handlers.TimedRotatingFileHandler",
            "formatter": "default",
            "filename": str(base / "error" / "error.log"),
            "when": "midnight",
            "backupCount": 3,
            "encoding": "utf-8",
            "level": "ERROR",
        }

    logging.config.dictConfig({
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "default": {
                "format": "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
        },
        "handlers": handlers,
        "root": {
            "level": settings.LOG_LEVEL.upper(),
            "handlers": list(handlers),
        },
    })
    _configured = True
