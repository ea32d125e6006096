"""
Logging configuration for the billing service.

LOG_FORMAT=json switches the console handler to one JSON object per line.
"""

import logging
import logging.config
from datetime import datetime, timezone
from typing import Any, Dict

from pythonjsonlogger import jsonlogger

from backspace.core.config import settings


class BillingJsonFormatter(jsonlogger.JsonFormatter):
    """JSON formatter with timestamp, level, logger and environment fields"""

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]):
        super().add_fields(log_record, record, message_dict)

        log_record['timestamp'] = datetime.now(timezone.utc).isoformat()
        log_record['level'] = record.levelname
        log_record['logger'] = record.name
        log_record['environment'] = settings.ENVIRONMENT

        if record.exc_info:
            log_record['exception'] = {
                'type': record.exc_info[0].__name__,
                'message': str(record.exc_info[1]),
                'traceback': self.formatException(record.exc_info)
            }


def build_logging_config(level: str, fmt: str = "text") -> Dict[str, Any]:
    return {
        'version': 1,
        'disable_existing_loggers': False,
        'formatters': {
            'standard': {
                'format': '%(asctime)s [%(levelname)s] %(name)s: %(message)s'
            },
            'json': {
                '()': BillingJsonFormatter,
                'format': '%(timestamp)s %(level)s %(logger)s %(message)s'
            },
        },
        'handlers': {
            'console': {
                'class': 'logging.StreamHandler',
                'formatter': 'json' if fmt == 'json' else 'standard',
                'stream': 'ext://sys.stdout',
            },
        },
        'loggers': {
            'backspace': {
                'handlers': ['console'],
                'level': level,
                'propagate': False,
            },
            'uvicorn.error': {
                'level': 'INFO',
            },
        },
        'root': {
            'handlers': ['console'],
            'level': 'WARNING',
        },
    }


def setup_logging(level: str | None = None, fmt: str | None = None) -> None:
    """Configure logging once at application startup."""
    level = (level or settings.LOG_LEVEL).upper()
    fmt = (fmt or settings.LOG_FORMAT).lower()
    logging.config.dictConfig(build_logging_config(level, fmt))
    logging.getLogger(__name__).debug("Logging configured at %s (%s)", level, fmt)
