"""Tests for reply-markup, button and reaction builders."""

import json
import sys
import os

import pytest
from pydantic import ValidationError

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from botapi import markup
from botapi.exceptions import InvalidArgument
from botapi.models import ReactionTypeEmoji


# ── Inline keyboards ─────────────────────────────────────────────────────────


class TestInlineKeyboard:
    def test_rows_preserved(self) -> None:
        yes = markup.build_inline_keyboard_button("Yes", callback_data="y")
        no = markup.build_inline_keyboard_button("No", callback_data="n")
        docs = markup.build_inline_keyboard_button("Docs", url="https://example.com")

        decoded = json.loads(markup.build_inline_keyboard([[yes, no], [docs]]))

        assert decoded == {"inline_keyboard": [
            [{"text": "Yes", "callback_data": "y"}, {"text": "No", "callback_data": "n"}],
            [{"text": "Docs", "url": "https://example.com"}],
        ]}

    def test_button_drops_unset_fields(self) -> None:
        button = markup.build_inline_keyboard_button("Go", url="https://example.com")
        assert button == {"text": "Go", "url": "https://example.com"}

    def test_pay_only_when_true(self) -> None:
        assert "pay" not in markup.build_inline_keyboard_button("Buy", callback_data="x")
        assert markup.build_inline_keyboard_button("Buy", pay=True)["pay"] is True

    def test_empty_string_fields_dropped(self) -> None:
        button = markup.build_inline_keyboard_button("Q", switch_inline_query="", callback_data="c")
        assert button == {"text": "Q", "callback_data": "c"}

    def test_rows_must_be_lists(self) -> None:
        with pytest.raises(InvalidArgument):
            markup.build_inline_keyboard([{"text": "flat"}])

    def test_grid_must_be_list(self) -> None:
        with pytest.raises(InvalidArgument):
            markup.build_inline_keyboard("nope")


# ── Reply keyboards ──────────────────────────────────────────────────────────


class TestReplyKeyboard:
    def test_defaults_serialise_false_explicitly(self) -> None:
        decoded = json.loads(markup.build_keyboard([["One", "Two"]]))
        assert decoded["keyboard"] == [[{"text": "One"}, {"text": "Two"}]]
        assert decoded["resize_keyboard"] is False
        assert decoded["one_time_keyboard"] is False
        assert decoded["is_persistent"] is False
        assert decoded["selective"] is True
        assert "input_field_placeholder" not in decoded

    def test_options(self) -> None:
        decoded = json.loads(markup.build_keyboard(
            [[markup.build_keyboard_button("Share", request_contact=True)]],
            resize_keyboard=True,
            one_time_keyboard=True,
            input_field_placeholder="Pick one",
            selective=False,
        ))
        assert decoded["keyboard"] == [[{"text": "Share", "request_contact": True}]]
        assert decoded["resize_keyboard"] is True
        assert decoded["one_time_keyboard"] is True
        assert decoded["input_field_placeholder"] == "Pick one"
        assert decoded["selective"] is False

    def test_placeholder_too_long(self) -> None:
        with pytest.raises(ValidationError):
            markup.build_keyboard([["a"]], input_field_placeholder="x" * 65)

    def test_keyboard_button_drops_false_requests(self) -> None:
        assert markup.build_keyboard_button("Plain") == {"text": "Plain"}

    def test_web_app_button(self) -> None:
        assert markup.build_web_app_button("Open", "https://app.example.com") == {
            "text": "Open",
            "web_app": {"url": "https://app.example.com"},
        }


class TestRemoveAndForceReply:
    def test_keyboard_remove(self) -> None:
        assert json.loads(markup.build_keyboard_remove()) == {"remove_keyboard": True, "selective": True}

    def test_force_reply_without_placeholder(self) -> None:
        assert json.loads(markup.build_force_reply()) == {"force_reply": True, "selective": True}

    def test_force_reply_empty_placeholder_omitted(self) -> None:
        assert "input_field_placeholder" not in json.loads(markup.build_force_reply(""))

    def test_force_reply_with_placeholder(self) -> None:
        decoded = json.loads(markup.build_force_reply("Your name", selective=False))
        assert decoded == {"force_reply": True, "input_field_placeholder": "Your name", "selective": False}


# ── Reactions ────────────────────────────────────────────────────────────────


class TestReactions:
    def test_emoji_descriptors(self) -> None:
        assert markup.reaction_type_emoji("👍") == [{"type": "emoji", "emoji": "👍"}]
        assert len(markup.reaction_type_emoji(["👍", "🔥"])) == 2

    def test_custom_emoji_descriptors(self) -> None:
        assert markup.reaction_type_custom_emoji("5368") == [{"type": "custom_emoji", "custom_emoji_id": "5368"}]

    def test_flatten_concatenates_in_order(self) -> None:
        flat = markup.flatten_reactions([
            markup.reaction_type_emoji(["👍", "🔥"]),
            markup.reaction_type_custom_emoji("5368"),
        ])
        assert flat == [
            {"type": "emoji", "emoji": "👍"},
            {"type": "emoji", "emoji": "🔥"},
            {"type": "custom_emoji", "custom_emoji_id": "5368"},
        ]

    def test_flatten_accepts_single_items(self) -> None:
        flat = markup.flatten_reactions(["👍", {"type": "emoji", "emoji": "🎉"}, ReactionTypeEmoji(emoji="❤")])
        assert [r["emoji"] for r in flat] == ["👍", "🎉", "❤"]

    def test_flatten_empty(self) -> None:
        assert markup.flatten_reactions([]) == []

    @pytest.mark.parametrize("bad", ["👍", {"type": "emoji"}, None, 3])
    def test_flatten_rejects_non_list(self, bad) -> None:
        with pytest.raises(InvalidArgument, match="The reaction must be an array"):
            markup.flatten_reactions(bad)

    def test_flatten_rejects_unknown_item(self) -> None:
        with pytest.raises(InvalidArgument):
            markup.flatten_reactions([42])

    def test_encode_keeps_emoji(self) -> None:
        assert markup.encode_reactions([markup.reaction_type_emoji("👍")]) == '[{"type": "emoji", "emoji": "👍"}]'
