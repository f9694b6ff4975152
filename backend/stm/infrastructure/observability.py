"""Structured Logging — one JSON object per record, carrying domain ids.

Invariants:
    - Every record has timestamp (record creation time, UTC), level, logger
      and message
    - Domain fields passed via `extra=` (project, task, user, actor, event,
      error code, request path) are copied only when set
    - setup_logging() is idempotent: calling it twice never doubles output

Design Decisions:
    - stdlib formatter over a logging library: the only need is a stable JSON
      shape for log shipping
    - SQLAlchemy engine logs follow database_echo, not the root level, so
      DEBUG on the service does not dump every statement
"""

import json
import logging
from datetime import datetime, timezone

EXTRA_FIELDS = (
    "project_id", "task_id", "task_ids", "user", "actor",
    "event", "error_code", "path",
)

_HANDLER_NAME = "stm"


class JSONFormatter(logging.Formatter):

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(
                record.created, tz=timezone.utc,
            ).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        entry.update(
            (key, record.__dict__[key]) for key in EXTRA_FIELDS
            if record.__dict__.get(key) is not None
        )
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False, default=str)


def setup_logging(level: str = "INFO", fmt: str = "json", sql_echo: bool = False):
    """Install the service's handler on the root logger."""
    root = logging.getLogger()
    for handler in list(root.handlers):
        if handler.get_name() == _HANDLER_NAME:
            root.removeHandler(handler)

    handler = logging.StreamHandler()
    handler.set_name(_HANDLER_NAME)
    handler.setFormatter(
        JSONFormatter() if fmt == "json"
        else logging.Formatter("%(asctime)s %(levelname)s %(name)s - %(message)s"),
    )
    root.addHandler(handler)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    logging.getLogger("sqlalchemy.engine").setLevel(
        logging.INFO if sql_echo else logging.WARNING,
    )
