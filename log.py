import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict

import config

_LOGGING_CONFIGURED = False

APP_LOGGERS = (
    "main",
    "controllers",
    "permissions",
    "database",
    "api_client",
    "content",
    "navigation",
    "site_app",
)


class _JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "ts": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str, ensure_ascii=True)


def configure_logging() -> None:
    """Attach a stdout handler to the application loggers (once)."""
    global _LOGGING_CONFIGURED
    if _LOGGING_CONFIGURED:
        return

    level = getattr(logging, config.LOG_LEVEL.strip().upper() or "INFO", logging.INFO)

    formatter: logging.Formatter
    if config.LOG_JSON:
        formatter = _JsonFormatter()
    else:
        formatter = logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s")

    handler = logging.StreamHandler(stream=sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(formatter)

    for name in APP_LOGGERS:
        app_logger = logging.getLogger(name)
        app_logger.handlers.clear()
        app_logger.addHandler(handler)
        app_logger.setLevel(level)
        app_logger.propagate = False

    _LOGGING_CONFIGURED = True
