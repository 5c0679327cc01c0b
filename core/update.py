"""Update kinds and classification.

A Telegram update is a JSON object carrying a numeric ``update_id`` and
exactly one further key naming what happened (``message``,
``callback_query``, ``poll_answer`` …).  :func:`classify` finds that key by
presence, never by position, and rejects payloads that carry zero or several
candidates.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Mapping

UPDATE_ID = "update_id"


class InvalidUpdate(ValueError):
    """Raised when an update cannot be classified into exactly one kind."""

    def __init__(self, message: str, keys: list[str] | None = None) -> None:
        self.keys = keys or []
        super().__init__(message)


class UpdateKind(str, Enum):
    """Closed set of mutually exclusive update shapes."""

    MESSAGE = "message"
    EDITED_MESSAGE = "edited_message"
    CHANNEL_POST = "channel_post"
    EDITED_CHANNEL_POST = "edited_channel_post"
    MESSAGE_REACTION = "message_reaction"
    MESSAGE_REACTION_COUNT = "message_reaction_count"
    INLINE_QUERY = "inline_query"
    CHOSEN_INLINE_RESULT = "chosen_inline_result"
    CALLBACK_QUERY = "callback_query"
    SHIPPING_QUERY = "shipping_query"
    PRE_CHECKOUT_QUERY = "pre_checkout_query"
    POLL = "poll"
    POLL_ANSWER = "poll_answer"
    MY_CHAT_MEMBER = "my_chat_member"
    CHAT_MEMBER = "chat_member"
    CHAT_JOIN_REQUEST = "chat_join_request"
    CHAT_BOOST = "chat_boost"
    REMOVED_CHAT_BOOST = "removed_chat_boost"

    def __str__(self) -> str:
        return self.value


# Kinds whose payload is a full Message object.
MESSAGE_KINDS: frozenset[UpdateKind] = frozenset({
    UpdateKind.MESSAGE,
    UpdateKind.EDITED_MESSAGE,
    UpdateKind.CHANNEL_POST,
    UpdateKind.EDITED_CHANNEL_POST,
})

_KNOWN_KEYS: dict[str, UpdateKind] = {kind.value: kind for kind in UpdateKind}


def classify(update: Mapping[str, Any]) -> UpdateKind:
    """Return the :class:`UpdateKind` of *update*.

    Raises:
        InvalidUpdate: If the payload is not a mapping, carries no key besides
            ``update_id``, carries more than one, or its only key is not a
            known update kind.
    """
    if not isinstance(update, Mapping):
        raise InvalidUpdate(f"Invalid update: expected an object, got {type(update).__name__}")

    candidates = [key for key in update if key != UPDATE_ID]
    if not candidates:
        raise InvalidUpdate("Invalid update: no update kind present")
    if len(candidates) > 1:
        raise InvalidUpdate(
            f"Invalid update: {len(candidates)} update kinds present", keys=candidates
        )

    key = candidates[0]
    kind = _KNOWN_KEYS.get(key)
    if kind is None:
        raise InvalidUpdate(f"Invalid update: unknown update kind {key!r}", keys=candidates)
    return kind


def dig(data: Any, *path: str) -> Any:
    """Walk nested mappings along *path*, returning ``None`` on any miss."""
    current = data
    for key in path:
        if not isinstance(current, Mapping):
            return None
        current = current.get(key)
        if current is None:
            return None
    return current
