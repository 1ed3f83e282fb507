"""Bootstrap de logging del proceso."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Optional

TEXT_FORMAT = "%(asctime)s - %(levelname)s - %(name)s - %(message)s"


class JsonFormatter(logging.Formatter):
    """Un objeto JSON por línea."""

    def format(self, record: logging.LogRecord) -> str:
        data = {
            "time": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            data["exception"] = self.formatException(record.exc_info)
        return json.dumps(data, default=str)


def configure_logging(
    level: str = "ERROR",
    fmt: str = "text",
    log_file: Optional[str] = None,
) -> None:
    desired = logging.getLevelName(str(level).upper())
    if not isinstance(desired, int):
        desired = logging.ERROR

    handler: logging.Handler
    file_error: Optional[OSError] = None
    if log_file:
        try:
            handler = logging.FileHandler(log_file, mode="a", encoding="utf-8")
        except OSError as e:
            # Sin fichero se sigue por stderr
            file_error = e
            handler = logging.StreamHandler()
    else:
        handler = logging.StreamHandler()

    if fmt == "json":
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(logging.Formatter(TEXT_FORMAT))

    logging.basicConfig(level=desired, handlers=[handler], force=True)

    if file_error is not None:
        logging.getLogger(__name__).warning(
            "[LOG] Cannot open log file %s (%s) - using stderr", log_file, file_error
        )
