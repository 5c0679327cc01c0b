"""Tests for PollingLoop fetch-then-confirm behaviour."""

import sys
import os
from unittest.mock import patch, MagicMock

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from botapi.exceptions import InvalidArgument
from botapi.models import DispatchResult
from botapi.polling import PollingLoop
from core.context import UpdateContext


def _result(decoded) -> DispatchResult:
    if isinstance(decoded, str):
        return DispatchResult(method="getUpdates", body=decoded)
    return DispatchResult(method="getUpdates", body="", decoded=decoded, is_json=True)


BATCH = {
    "ok": True,
    "result": [
        {"update_id": 99, "message": {"text": "a"}},
        {"update_id": 100, "message": {"text": "b"}},
    ],
}


# ── poll ─────────────────────────────────────────────────────────────────────


class TestPoll:
    """One fetch, then an acknowledgment at ``last update_id + 1``."""

    def test_confirms_after_last_update(self) -> None:
        dispatcher = MagicMock()
        dispatcher.send.side_effect = [_result(BATCH), _result({"ok": True, "result": []})]

        batch = PollingLoop(dispatcher).poll(offset=0, limit=100, timeout=0)

        assert batch == BATCH
        assert dispatcher.send.call_count == 2
        first, second = dispatcher.send.call_args_list
        assert first[0] == ("getUpdates", {"offset": 0, "limit": 100, "timeout": 0})
        assert second[0][1]["offset"] == 101
        assert second[0][1]["limit"] == 1

    def test_confirmation_failure_is_hidden(self) -> None:
        dispatcher = MagicMock()
        dispatcher.send.side_effect = [
            _result(BATCH),
            _result({"ok": False, "error_code": 7, "error_message": "down"}),
        ]
        assert PollingLoop(dispatcher).poll() == BATCH

    def test_confirmation_exception_is_hidden(self) -> None:
        dispatcher = MagicMock()
        dispatcher.send.side_effect = [_result(BATCH), RuntimeError("boom")]
        assert PollingLoop(dispatcher).poll() == BATCH

    def test_no_confirmation_when_disabled(self) -> None:
        dispatcher = MagicMock()
        dispatcher.send.return_value = _result(BATCH)
        PollingLoop(dispatcher).poll(advance_offset=False)
        assert dispatcher.send.call_count == 1

    def test_no_confirmation_for_empty_batch(self) -> None:
        dispatcher = MagicMock()
        dispatcher.send.return_value = _result({"ok": True, "result": []})
        PollingLoop(dispatcher).poll()
        assert dispatcher.send.call_count == 1

    def test_failed_fetch_is_returned_unconfirmed(self) -> None:
        failure = {"ok": False, "error_code": 28, "error_message": "timed out"}
        dispatcher = MagicMock()
        dispatcher.send.return_value = _result(failure)
        assert PollingLoop(dispatcher).poll() == failure
        assert dispatcher.send.call_count == 1

    def test_raw_body_is_returned(self) -> None:
        dispatcher = MagicMock()
        dispatcher.send.return_value = _result("<html>")
        assert PollingLoop(dispatcher).poll() == "<html>"

    def test_long_poll_read_timeout_has_margin(self) -> None:
        dispatcher = MagicMock()
        dispatcher.send.return_value = _result({"ok": True, "result": []})
        PollingLoop(dispatcher).poll(timeout=30)
        assert dispatcher.send.call_args[1]["read_timeout"] > 30

    def test_batch_stored_in_context(self) -> None:
        dispatcher = MagicMock()
        dispatcher.send.side_effect = [_result(BATCH), _result({"ok": True, "result": []})]
        ctx = UpdateContext()
        PollingLoop(dispatcher, ctx).poll()
        assert ctx.update_count() == 2
        ctx.serve_update(0)
        assert ctx.text() == "a"

    @pytest.mark.parametrize("limit", [0, 101, -1])
    def test_limit_bounds(self, limit: int) -> None:
        with pytest.raises(InvalidArgument):
            PollingLoop(MagicMock()).poll(limit=limit)

    def test_negative_timeout(self) -> None:
        with pytest.raises(InvalidArgument):
            PollingLoop(MagicMock()).poll(timeout=-1)


# ── iter_updates ─────────────────────────────────────────────────────────────


class TestIterUpdates:
    def test_yields_and_advances_offset(self) -> None:
        dispatcher = MagicMock()
        dispatcher.send.side_effect = [
            _result(BATCH),
            _result({"ok": True, "result": [{"update_id": 101, "callback_query": {"data": "c"}}]}),
        ]
        ctx = UpdateContext()
        updates = PollingLoop(dispatcher, ctx).iter_updates(timeout=5)

        assert next(updates)["update_id"] == 99
        assert ctx.text() == "a"
        assert next(updates)["update_id"] == 100
        assert next(updates)["update_id"] == 101
        assert ctx.text() == "c"
        assert dispatcher.send.call_args_list[1][0][1]["offset"] == 101

    @patch("botapi.polling.time.sleep")
    def test_failure_waits_then_retries(self, mock_sleep: MagicMock) -> None:
        dispatcher = MagicMock()
        dispatcher.send.side_effect = [
            _result({"ok": False, "error_code": 7, "error_message": "down"}),
            _result(BATCH),
        ]
        updates = PollingLoop(dispatcher).iter_updates(failure_delay=2)
        assert next(updates)["update_id"] == 99
        mock_sleep.assert_called_once_with(2)
