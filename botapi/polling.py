"""PollingLoop — long-poll retrieval of updates.

:meth:`PollingLoop.poll` fetches one batch with ``getUpdates`` and, unless
told otherwise, immediately confirms it by calling ``getUpdates`` again with
``offset = last update_id + 1`` and ``limit = 1``.  The confirmation is an
at-most-once acknowledgment: its reply is discarded and its failure never
reaches the caller, who always receives the first call's batch.
"""

from __future__ import annotations

import time
from typing import Any, Dict, Iterator, List, Optional

from botapi.dispatcher import RequestDispatcher
from botapi.exceptions import InvalidArgument
from core.context import UpdateContext
from core.logger import BotLogger

logger = BotLogger.get_logger("polling")

GET_UPDATES = "getUpdates"
MAX_LIMIT = 100

# Extra seconds granted on top of the long-poll timeout before the read gives up.
_READ_MARGIN = 10


class PollingLoop:
    """Long-poll ``getUpdates`` on top of a :class:`RequestDispatcher`.

    When a :class:`~core.context.UpdateContext` is given, every batch is also
    stored in it so :meth:`UpdateContext.serve_update` can select an update.
    """

    def __init__(self, dispatcher: RequestDispatcher, context: Optional[UpdateContext] = None) -> None:
        self._dispatcher = dispatcher
        self._context = context

    @staticmethod
    def _results(batch: Any) -> List[Dict[str, Any]]:
        if not isinstance(batch, dict):
            return []
        results = batch.get("result")
        return results if isinstance(results, list) else []

    def _confirm(self, offset: int, timeout: int) -> None:
        """Acknowledge everything below *offset*; the outcome is discarded."""
        try:
            result = self._dispatcher.send(
                GET_UPDATES,
                {"offset": offset, "limit": 1, "timeout": 0},
                read_timeout=timeout + _READ_MARGIN,
            )
        except Exception as exc:  # noqa: BLE001
            logger.warning("Offset confirmation failed", extra={"api_endpoint": GET_UPDATES, "offset": offset, "error": str(exc)})
            return
        if not result.ok:
            logger.warning("Offset confirmation not acknowledged", extra={"api_endpoint": GET_UPDATES, "offset": offset})

    def poll(
        self,
        offset: int = 0,
        limit: int = MAX_LIMIT,
        timeout: int = 0,
        advance_offset: bool = True,
    ) -> Any:
        """Fetch one batch of updates.

        Args:
            offset: Identifier of the first update to return.
            limit: Number of updates to retrieve, 1-100.
            timeout: Long-poll timeout in seconds; 0 means short polling.
            advance_offset: Confirm the returned updates server-side.

        Returns:
            The decoded ``getUpdates`` reply (or the raw body if it was not JSON).

        Raises:
            InvalidArgument: If *limit* is outside 1-100 or *timeout* is negative.
        """
        if not 1 <= limit <= MAX_LIMIT:
            raise InvalidArgument(f"limit must be between 1 and {MAX_LIMIT}, got {limit}")
        if timeout < 0:
            raise InvalidArgument(f"timeout must not be negative, got {timeout}")

        batch = self._dispatcher.send(
            GET_UPDATES,
            {"offset": offset, "limit": limit, "timeout": timeout},
            read_timeout=timeout + _READ_MARGIN,
        ).value

        results = self._results(batch)
        if results:
            logger.debug("Received updates", extra={"count": len(results), "offset": offset})

        if self._context is not None:
            self._context.set_batch(batch)

        if advance_offset and results:
            last_id = results[-1].get("update_id")
            if isinstance(last_id, int):
                self._confirm(last_id + 1, timeout)

        return batch

    def iter_updates(
        self,
        offset: int = 0,
        limit: int = MAX_LIMIT,
        timeout: int = 30,
        failure_delay: float = 5,
    ) -> Iterator[Dict[str, Any]]:
        """Poll forever, yielding updates one by one.

        Each yielded update has already been made current in the context.  The
        offset advances locally; server-side confirmation happens through the
        next poll's offset.  A failed poll is retried after *failure_delay*
        seconds.
        """
        while True:
            batch = self.poll(offset=offset, limit=limit, timeout=timeout, advance_offset=False)
            if not (isinstance(batch, dict) and batch.get("ok")):
                logger.warning("getUpdates returned ok=false, retrying", extra={"api_endpoint": GET_UPDATES, "delay": failure_delay})
                time.sleep(failure_delay)
                continue
            for update in self._results(batch):
                if self._context is not None:
                    self._context.set_update(update)
                offset = update.get("update_id", offset) + 1
                yield update
