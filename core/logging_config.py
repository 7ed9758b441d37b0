"""Logging setup shared by the services and the maintenance scripts."""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict

HUMAN_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"


class JsonFormatter(logging.Formatter):
    """One JSON object per log line."""

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_data)


def setup_logging(log_level: str = "INFO", use_json: bool = False) -> None:
    """Attach a single stdout handler to the root logger.

    Calling it again replaces the previous handler, so scripts can call it
    unconditionally.
    """
    level = getattr(logging, log_level.upper(), logging.INFO)

    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JsonFormatter() if use_json else logging.Formatter(HUMAN_FORMAT))
    root.addHandler(handler)
    root.setLevel(level)

    # SQL echo goes through the sqlalchemy logger; keep it quiet unless asked.
    logging.getLogger("sqlalchemy.engine").setLevel(
        logging.INFO if level <= logging.DEBUG else logging.WARNING
    )


def mask_national_id(national_id: str | None) -> str:
    """Keep only the last four digits of a national-ID for log output."""
    if not national_id:
        return "<none>"
    return "*" * max(len(national_id) - 4, 0) + national_id[-4:]
