"""Error-logging sink for dispatched API calls.

The dispatcher hands every call's outcome to an optional collaborator.  The
default :class:`ErrorLogger` keeps only the failures and records them, with
the update being handled and the parameters that were sent, on the
``botline.errors`` channel of the JSON logger.
"""

from __future__ import annotations

from typing import Any, List, Protocol, runtime_checkable

from core.logger import BotLogger


@runtime_checkable
class CallLogger(Protocol):
    """Anything that can receive ``(result, context)`` after a call."""

    def log(self, result: Any, context: List[Any]) -> None: ...  # noqa: E704


class ErrorLogger:
    """Record failed API calls through the JSON logger."""

    def __init__(self, channel: str = "errors") -> None:
        self._logger = BotLogger.get_logger(channel)

    @staticmethod
    def is_failure(result: Any) -> bool:
        """A call failed unless it decoded to an object with a truthy ``ok``."""
        return not (isinstance(result, dict) and result.get("ok"))

    def log(self, result: Any, context: List[Any]) -> None:
        if not self.is_failure(result):
            return

        extra: dict = {"api_response": result}
        if len(context) > 1:
            extra["update"] = context[0]
        if context:
            extra["parameters"] = context[-1]
        if isinstance(result, dict):
            extra["error_code"] = result.get("error_code")
            extra["description"] = result.get("description") or result.get("error_message")

        self._logger.error("API call failed", extra=extra)
