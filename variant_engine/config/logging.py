import json
import logging
import socket
from datetime import datetime, timezone
from logging.config import dictConfig

from variant_engine.core.config import settings

# LogRecord attributes that are not user supplied `extra` fields
_RESERVED_ATTRS = set(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {"message", "asctime", "hostname"}

_initialized = False


class CustomJSONEncoder(json.JSONEncoder):
    def default(self, obj):
        if isinstance(obj, (set, frozenset)):
            return list(obj)
        return str(obj)


class JsonFormatter(logging.Formatter):
    def format(self, record):
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "hostname": socket.gethostname(),
        }

        if record.exc_info:
            log_data["exception"] = {
                "type": record.exc_info[0].__name__,
                "message": str(record.exc_info[1]),
                "stack_trace": self.formatException(record.exc_info),
            }

        # extra={...} 로 넘긴 필드
        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS and not key.startswith("_"):
                log_data[key] = value

        return json.dumps(log_data, cls=CustomJSONEncoder)


def build_log_config(level: str = None) -> dict:
    level = (level or settings.LOG_LEVEL).upper()
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "json": {
                "()": JsonFormatter,
            }
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "json",
                "stream": "ext://sys.stdout",
            },
        },
        "loggers": {
            "variant_engine": {
                "handlers": ["console"],
                "level": level,
                "propagate": False,
            },
            "httpx": {
                "handlers": ["console"],
                "level": "WARNING",
                "propagate": False,
            },
            "": {  # Root logger
                "handlers": ["console"],
                "level": level,
            },
        },
    }


def initialize_logging(level: str = None) -> None:
    """Apply the dictConfig once; later calls are ignored."""
    global _initialized
    if _initialized:
        return
    dictConfig(build_log_config(level))
    _initialized = True
    logging.getLogger(__name__).info("Logging initialized", extra={"log_level": (level or settings.LOG_LEVEL).upper()})


def get_configured_logger(name: str) -> logging.Logger:
    initialize_logging()
    return logging.getLogger(name)
