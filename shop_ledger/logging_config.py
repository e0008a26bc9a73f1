"""
Structured Logging

One JSON object per log line. Ledger actions attach who did what to which
collection (``user_id``, ``action``, ``resource``) plus free-form ``extra``
figures such as sale totals, so the log doubles as an operator audit trail.
"""

import logging
import json
from datetime import datetime, timezone
from typing import Any, Dict, Optional


ACTION_FIELDS = ("user_id", "action", "resource", "extra")


class JSONFormatter(logging.Formatter):
    """Render a record as JSON, keeping only the action fields that are set"""

    def format(self, record):
        entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for name in ACTION_FIELDS:
            value = getattr(record, name, None)
            if value is not None:
                entry[name] = value

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)


def setup_logging(level: str = "INFO", logger_name: str = "shop_ledger",
                  log_file: Optional[str] = None) -> logging.Logger:
    """
    Route the ``shop_ledger`` logger tree to a single JSON handler.

    Logs go to ``log_file`` when given, otherwise to stderr. Calling this
    again replaces the handler rather than adding a second one.
    """
    logger = logging.getLogger(logger_name)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    if log_file:
        handler = logging.FileHandler(log_file, encoding="utf-8")
    else:
        handler = logging.StreamHandler()
    handler.setFormatter(JSONFormatter())

    logger.addHandler(handler)
    logger.setLevel(level.upper())
    logger.propagate = False
    return logger


def get_logger(name: str = "shop_ledger") -> logging.Logger:
    return logging.getLogger(name)


def log_action(logger: logging.Logger, level: str, message: str,
               user_id: Optional[int] = None, action: Optional[str] = None,
               resource: Optional[str] = None, extra: Optional[dict] = None) -> None:
    """Log a ledger action; unset fields are left off the record"""
    fields = {"user_id": user_id, "action": action, "resource": resource, "extra": extra}
    logger.log(
        logging.getLevelName(level.upper()), message,
        extra={name: value for name, value in fields.items() if value is not None}
    )
