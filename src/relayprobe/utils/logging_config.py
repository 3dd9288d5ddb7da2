import json
import logging
import os
import sys
from datetime import datetime, UTC
from typing import Any, Dict, TextIO

ROOT_LOGGER = "relayprobe"


class JSONFormatter(logging.Formatter):
    """One JSON object per line; StructuredLogger kwargs are merged in."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "func": record.funcName,
            "line": record.lineno,
        }

        if hasattr(record, "extra_fields"):
            log_entry.update(record.extra_fields)  # type: ignore
        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_entry, ensure_ascii=False, default=str)


def setup_logging(level: str = "INFO", stream: TextIO | None = None):
    """Attach JSON handlers to the relayprobe logger tree.

    Logs go to `stream` (stdout by default). RELAYPROBE_LOG_DIR adds a
    relayprobe.log file next to it.
    """
    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(level.upper())
    logger.propagate = False

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(JSONFormatter())

    logger.handlers = []
    logger.addHandler(handler)

    log_dir = os.getenv("RELAYPROBE_LOG_DIR")
    if log_dir:
        try:
            os.makedirs(log_dir, exist_ok=True)
            file_handler = logging.FileHandler(os.path.join(log_dir, "relayprobe.log"))
            file_handler.setFormatter(JSONFormatter())
            logger.addHandler(file_handler)
        except OSError as e:
            sys.stderr.write(f"Failed to setup file logging: {e}\n")

    # The API has its own request log lines; uvicorn's access format would not be JSON.
    logging.getLogger("uvicorn.access").disabled = True
    return logger


def _qualified(name: str) -> str:
    if name == ROOT_LOGGER or name.startswith(ROOT_LOGGER + "."):
        return name
    return f"{ROOT_LOGGER}.{name}"


def get_logger(name: str):
    return logging.getLogger(_qualified(name))


class StructuredLogger:
    def __init__(self, name: str):
        self.logger = get_logger(name)

    def _log(self, level: int, msg: str, fields: Dict[str, Any], exc_info: bool = False):
        self.logger.log(level, msg, exc_info=exc_info, extra={"extra_fields": fields}, stacklevel=3)

    def debug(self, msg: str, **kwargs):
        self._log(logging.DEBUG, msg, kwargs)

    def info(self, msg: str, **kwargs):
        self._log(logging.INFO, msg, kwargs)

    def warning(self, msg: str, **kwargs):
        self._log(logging.WARNING, msg, kwargs)

    def error(self, msg: str, **kwargs):
        self._log(logging.ERROR, msg, kwargs)

    def exception(self, msg: str, **kwargs):
        self._log(logging.ERROR, msg, kwargs, exc_info=True)

    def critical(self, msg: str, **kwargs):
        self._log(logging.CRITICAL, msg, kwargs)
