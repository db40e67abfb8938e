import logging
import logging.config
from pathlib import Path


def setup_logging(app):
    """
    Configure root and application logging from the Flask config.
    Console output is always enabled; when LOG_DIR is set, 'gmvote.log' and
    'error.log' are written there as rotating files.
    """
    level = app.config.get("LOG_LEVEL", "INFO")
    handlers = {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "default",
            "level": level,
        },
    }
    log_dir = app.config.get("LOG_DIR")
    if log_dir:
        Path(log_dir).mkdir(parents=True, exist_ok=True)
        handlers["file_app"] = {
            "class": "logging.handlers.RotatingFileHandler",
            "formatter": "default",
            "filename": str(Path(log_dir) / "gmvote.log"),
            "maxBytes": 5 * 1024 * 1024,
            "backupCount": 3,
            "level": level,
            "encoding": "utf8",
        }
        handlers["file_error"] = {
            "class": "logging.handlers.RotatingFileHandler",
            "formatter": "default",
            "filename": str(Path(log_dir) / "error.log"),
            "maxBytes": 5 * 1024 * 1024,
            "backupCount": 3,
            "level": "ERROR",
            "encoding": "utf8",
        }

    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "default": {
                    "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
                },
            },
            "handlers": handlers,
            "loggers": {
                "gmvote": {
                    "handlers": list(handlers),
                    "level": level,
                    "propagate": False,
                },
            },
        }
    )
    app.logger.setLevel(level)
