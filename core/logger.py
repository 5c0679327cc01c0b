"""BotLogger — Singleton JSON logger shared by every module of the library.

Records go to stdout and, unless disabled, to a rotating
``botline.log`` file.  Child channels (``botline.dispatch``,
``botline.errors`` …) inherit the handlers through :mod:`logging`
propagation, so a host application can also attach its own handlers to the
``botline`` logger.

Environment:
    BOTLINE_LOG_DIR: Directory of the log file (default ``logs``); an empty
        value disables file output.
    BOTLINE_LOG_LEVEL: Level name such as ``DEBUG`` (default ``INFO``).
"""

import json
import logging
import os
import sys
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from typing import Any, Dict, List, Optional


class _JsonFormatter(logging.Formatter):
    """Render a record as one JSON object per line.

    The fixed fields are ``timestamp``, ``level``, ``logger``, ``message``,
    ``module`` and ``func_name``.  Whatever the call passed through ``extra``
    is merged in, which is how the dispatcher attaches ``api_endpoint``,
    ``error_code`` and the like::

        logger.warning("API returned ok=false", extra={"api_endpoint": "sendMessage", "error_code": 400})
    """

    # Attributes every LogRecord carries; anything else came from ``extra``.
    _RECORD_ATTRS: frozenset[str] = frozenset(vars(logging.LogRecord(
        name="", level=0, pathname="", lineno=0, msg="", args=(), exc_info=None,
    ))) | {"message", "asctime"}

    def _extras(self, record: logging.LogRecord) -> Dict[str, Any]:
        return {k: v for k, v in vars(record).items() if k not in self._RECORD_ATTRS}

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "func_name": record.funcName,
        }
        for key, value in self._extras(record).items():
            entry.setdefault(key, value)
        if record.exc_info:
            entry["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False, default=str)


def _level_from_env(default: int) -> int:
    name = os.environ.get("BOTLINE_LOG_LEVEL", "").strip().upper()
    level = logging.getLevelName(name) if name else default
    return level if isinstance(level, int) else default


class BotLogger:
    """Process-wide owner of the ``botline`` logger and its handlers.

    Usage::

        from core.logger import BotLogger

        logger = BotLogger.get_logger("dispatch")   # botline.dispatch
        logger.info("Webhook set", extra={"url": url})
    """

    _instance: Optional["BotLogger"] = None
    _logger: Optional[logging.Logger] = None

    ROOT_NAME: str = "botline"

    _LOG_FILE: str = "botline.log"
    _MAX_BYTES: int = 5 * 1024 * 1024
    _BACKUP_COUNT: int = 5

    def __new__(cls, level: int = logging.INFO) -> "BotLogger":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._configure(_level_from_env(level))
        return cls._instance

    @classmethod
    def _log_dir(cls) -> str:
        return os.environ.get("BOTLINE_LOG_DIR", "logs")

    def _build_handlers(self) -> List[logging.Handler]:
        handlers: List[logging.Handler] = [logging.StreamHandler(sys.stdout)]
        log_dir = self._log_dir()
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
            handlers.append(RotatingFileHandler(
                os.path.join(log_dir, self._LOG_FILE),
                maxBytes=self._MAX_BYTES,
                backupCount=self._BACKUP_COUNT,
                encoding="utf-8",
            ))
        return handlers

    def _configure(self, level: int) -> None:
        self._logger = logging.getLogger(self.ROOT_NAME)
        self._logger.setLevel(level)
        if self._logger.handlers:
            return

        formatter = _JsonFormatter()
        for handler in self._build_handlers():
            handler.setLevel(level)
            handler.setFormatter(formatter)
            self._logger.addHandler(handler)

    @staticmethod
    def get_logger(channel: Optional[str] = None, level: int = logging.INFO) -> logging.Logger:
        """Return the ``botline`` logger, or its *channel* child.

        *level* only matters for the very first call, which configures the
        handlers; ``BOTLINE_LOG_LEVEL`` overrides it.
        """
        logger = BotLogger(level)._logger
        assert logger is not None
        return logger.getChild(channel) if channel else logger

    def cleanup(self) -> None:
        """Flush, close and detach every handler."""
        if self._logger is None:
            return
        for handler in list(self._logger.handlers):
            handler.flush()
            handler.close()
            self._logger.removeHandler(handler)

    def __del__(self) -> None:
        self.cleanup()
