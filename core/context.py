"""UpdateContext — the currently active update and typed field accessors.

The context owns one decoded update (loaded from a webhook body, injected by
the poller, or set explicitly in tests) and exposes accessors such as
:meth:`UpdateContext.text` or :meth:`UpdateContext.chat_id`.  The location of
a field differs per update kind, so each accessor resolves through a table
mapping :class:`~core.update.UpdateKind` to a path inside that kind's
payload.  A kind missing from the table, or a path that runs into a missing
key, yields ``None``; only an unclassifiable update raises
:class:`~core.update.InvalidUpdate`.
"""

from __future__ import annotations

import json
import sys
from typing import IO, Any, Dict, Iterable, List, Optional, Tuple, Union

from core.logger import BotLogger
from core.update import MESSAGE_KINDS, UPDATE_ID, UpdateKind, classify, dig

logger = BotLogger.get_logger("context")

Path = Tuple[str, ...]
PathTable = Dict[UpdateKind, Path]


def _paths(kinds: Iterable[UpdateKind], *path: str) -> PathTable:
    """Map every kind in *kinds* to the same relative *path*."""
    return {kind: path for kind in kinds}


# ── Path tables (relative to ``update[kind]``) ───────────────────────────────

_CHAT_KINDS = MESSAGE_KINDS | {
    UpdateKind.MESSAGE_REACTION,
    UpdateKind.MESSAGE_REACTION_COUNT,
    UpdateKind.MY_CHAT_MEMBER,
    UpdateKind.CHAT_MEMBER,
    UpdateKind.CHAT_JOIN_REQUEST,
    UpdateKind.CHAT_BOOST,
    UpdateKind.REMOVED_CHAT_BOOST,
}

_FROM_KINDS = MESSAGE_KINDS | {
    UpdateKind.INLINE_QUERY,
    UpdateKind.CHOSEN_INLINE_RESULT,
    UpdateKind.CALLBACK_QUERY,
    UpdateKind.SHIPPING_QUERY,
    UpdateKind.PRE_CHECKOUT_QUERY,
    UpdateKind.MY_CHAT_MEMBER,
    UpdateKind.CHAT_MEMBER,
    UpdateKind.CHAT_JOIN_REQUEST,
}

_TEXT: PathTable = {
    **_paths(MESSAGE_KINDS, "text"),
    UpdateKind.INLINE_QUERY: ("query",),
    UpdateKind.CHOSEN_INLINE_RESULT: ("query",),
    UpdateKind.CALLBACK_QUERY: ("data",),
}

_CHAT_ID: PathTable = {
    **_paths(_CHAT_KINDS, "chat", "id"),
    UpdateKind.CALLBACK_QUERY: ("message", "chat", "id"),
    UpdateKind.POLL_ANSWER: ("voter_chat", "id"),
}

_CHAT: PathTable = {
    **_paths(MESSAGE_KINDS, "chat"),
    UpdateKind.CALLBACK_QUERY: ("message", "chat"),
}

_SENDER: PathTable = {
    **_paths(_FROM_KINDS, "from"),
    UpdateKind.CHAT_BOOST: ("boost", "source", "user"),
    UpdateKind.REMOVED_CHAT_BOOST: ("boost", "source", "user"),
    UpdateKind.MESSAGE_REACTION: ("user",),
    UpdateKind.POLL_ANSWER: ("user",),
}

_MESSAGE_ID: PathTable = {
    **_paths(MESSAGE_KINDS, "message_id"),
    UpdateKind.MESSAGE_REACTION: ("message_id",),
    UpdateKind.MESSAGE_REACTION_COUNT: ("message_id",),
    UpdateKind.CALLBACK_QUERY: ("message", "message_id"),
}

_DATE: PathTable = {
    **_paths(
        MESSAGE_KINDS | {
            UpdateKind.MESSAGE_REACTION,
            UpdateKind.MESSAGE_REACTION_COUNT,
            UpdateKind.MY_CHAT_MEMBER,
            UpdateKind.CHAT_MEMBER,
            UpdateKind.CHAT_JOIN_REQUEST,
        },
        "date",
    ),
    UpdateKind.CALLBACK_QUERY: ("message", "date"),
}

_LOCATION: PathTable = _paths(
    MESSAGE_KINDS | {UpdateKind.INLINE_QUERY, UpdateKind.CHOSEN_INLINE_RESULT},
    "location",
)

_CAPTION = _paths(MESSAGE_KINDS, "caption")
_REPLY_TO_MESSAGE_ID = _paths(MESSAGE_KINDS, "reply_to_message", "message_id")
_REPLY_TO_FORWARD_FROM_ID = _paths(MESSAGE_KINDS, "reply_to_message", "forward_from", "id")
_FORWARD_FROM_ID = _paths(MESSAGE_KINDS, "forward_from", "id")
_FORWARD_FROM_CHAT_ID = _paths(MESSAGE_KINDS, "forward_from_chat", "id")
_CONTACT_PHONE = _paths(MESSAGE_KINDS, "contact", "phone_number")

_NEW_REACTION: PathTable = {UpdateKind.MESSAGE_REACTION: ("new_reaction",)}
_OLD_REACTION: PathTable = {UpdateKind.MESSAGE_REACTION: ("old_reaction",)}
_REACTION_COUNTS: PathTable = {UpdateKind.MESSAGE_REACTION_COUNT: ("reactions",)}

_POLL_ID: PathTable = {
    UpdateKind.POLL_ANSWER: ("poll_id",),
    UpdateKind.POLL: ("id",),
}
_POLL_OPTION_IDS: PathTable = {UpdateKind.POLL_ANSWER: ("option_ids",)}


RawBody = Union[bytes, str, IO[bytes], IO[str]]


class UpdateContext:
    """Holds the update being handled plus the last polled batch.

    One context serves one logical event at a time: loading or injecting a
    new update replaces the previous one.  Typical webhook usage::

        ctx = UpdateContext()
        ctx.load_body(request_body)
        if ctx.update_type() is UpdateKind.CALLBACK_QUERY:
            handle(ctx.callback_data(), ctx.chat_id())
    """

    def __init__(self, update: Optional[Dict[str, Any]] = None) -> None:
        self._update: Dict[str, Any] = dict(update) if update else {}
        self._batch: Dict[str, Any] = {}

    # ------------------------------------------------------------------
    #  Loading
    # ------------------------------------------------------------------

    @property
    def update(self) -> Dict[str, Any]:
        """The current update payload (``{}`` before anything was loaded)."""
        return self._update

    def get_update(self) -> Dict[str, Any]:
        return self._update

    def set_update(self, update: Dict[str, Any]) -> None:
        """Replace the current update with *update*."""
        self._update = update
        logger.debug("Update injected", extra={"update_id": update.get(UPDATE_ID)})

    def load_body(self, body: Optional[RawBody] = None) -> Dict[str, Any]:
        """Decode a raw webhook body and make it the current update.

        *body* may be ``bytes``, ``str`` or a readable stream; when omitted the
        process's standard input is read (CGI-style deployments).  A body that
        is not a JSON object leaves the current update untouched.

        Returns:
            The current update after the attempt.
        """
        if body is None:
            body = sys.stdin.buffer
        if hasattr(body, "read"):
            body = body.read()

        try:
            decoded = json.loads(body) if body else None
        except (ValueError, TypeError) as exc:
            logger.warning("Inbound body is not valid JSON, keeping previous update", extra={"error": str(exc)})
            return self._update

        if not isinstance(decoded, dict):
            logger.debug("Inbound body carries no update object, keeping previous update")
            return self._update

        self._update = decoded
        logger.debug("Update loaded from body", extra={"update_id": decoded.get(UPDATE_ID)})
        return self._update

    # ------------------------------------------------------------------
    #  Polled batches
    # ------------------------------------------------------------------

    def set_batch(self, batch: Any) -> None:
        """Remember a decoded ``getUpdates`` reply for :meth:`serve_update`."""
        self._batch = batch if isinstance(batch, dict) else {}

    def batch_results(self) -> List[Dict[str, Any]]:
        results = self._batch.get("result")
        return results if isinstance(results, list) else []

    def update_count(self) -> int:
        """Number of updates in the last polled batch."""
        return len(self.batch_results())

    def serve_update(self, index: int) -> Dict[str, Any]:
        """Make the *index*-th update of the last polled batch current.

        Raises:
            IndexError: If the batch has no update at *index*.
        """
        update = self.batch_results()[index]
        self.set_update(update)
        return update

    # ------------------------------------------------------------------
    #  Classification
    # ------------------------------------------------------------------

    def classify(self) -> UpdateKind:
        """Return the kind of the current update.

        Raises:
            InvalidUpdate: If the update has zero or several kind keys.
        """
        return classify(self._update)

    update_type = classify

    def _payload(self) -> Tuple[UpdateKind, Any]:
        kind = self.classify()
        return kind, self._update[kind.value]

    def _lookup(self, table: PathTable) -> Any:
        kind, payload = self._payload()
        path = table.get(kind)
        if path is None:
            return None
        return dig(payload, *path)

    def _sender_field(self, field: str) -> Any:
        sender = self._lookup(_SENDER)
        return dig(sender, field)

    # ------------------------------------------------------------------
    #  Common accessors
    # ------------------------------------------------------------------

    def update_id(self) -> Optional[int]:
        return self._update.get(UPDATE_ID)

    def text(self) -> Optional[str]:
        """Message text, inline query string or callback data, by kind."""
        return self._lookup(_TEXT)

    def chat_id(self) -> Optional[int]:
        """Identifier of the chat the update belongs to.

        For ``poll_answer`` this is the anonymous voter chat, absent when the
        vote came from a user.
        """
        return self._lookup(_CHAT_ID)

    def user_id(self) -> Optional[int]:
        """Identifier of the user behind the update.

        Read from ``from`` for most kinds, from ``boost.source.user`` for chat
        boosts and from ``user`` for reactions and poll answers.
        """
        return dig(self._lookup(_SENDER), "id")

    def message_id(self) -> Optional[int]:
        return self._lookup(_MESSAGE_ID)

    def inline_message_id(self) -> Optional[str]:
        _, payload = self._payload()
        return dig(payload, "inline_message_id")

    def first_name(self) -> Optional[str]:
        return self._sender_field("first_name")

    def last_name(self) -> Optional[str]:
        return self._sender_field("last_name")

    def full_name(self) -> str:
        """First and last name joined by one space, trimmed."""
        return f"{self.first_name() or ''} {self.last_name() or ''}".strip()

    def username(self) -> Optional[str]:
        return self._sender_field("username")

    def is_premium(self) -> bool:
        return bool(self._sender_field("is_premium"))

    def is_bot(self) -> bool:
        return bool(self._sender_field("is_bot"))

    def language(self) -> str:
        """IETF language tag of the sender, ``"en"`` when unknown."""
        return self._sender_field("language_code") or "en"

    def caption(self) -> Optional[str]:
        return self._lookup(_CAPTION)

    def date(self) -> Optional[int]:
        return self._lookup(_DATE)

    def location(self) -> Optional[Dict[str, Any]]:
        return self._lookup(_LOCATION)

    def reply_to_message_id(self) -> Optional[int]:
        return self._lookup(_REPLY_TO_MESSAGE_ID)

    def reply_to_message_from_user_id(self) -> Optional[int]:
        """Original author of a forwarded message that is being replied to."""
        return self._lookup(_REPLY_TO_FORWARD_FROM_ID)

    def forward_from_id(self) -> Optional[int]:
        return self._lookup(_FORWARD_FROM_ID)

    def forward_from_chat_id(self) -> Optional[int]:
        return self._lookup(_FORWARD_FROM_CHAT_ID)

    def contact_phone_number(self) -> Optional[str]:
        return self._lookup(_CONTACT_PHONE)

    def message_from_group(self) -> Optional[bool]:
        """``True`` for group, supergroup and channel chats, ``None`` without a chat."""
        chat_type = dig(self._lookup(_CHAT), "type")
        if chat_type is None:
            return None
        return chat_type != "private"

    def message_from_group_title(self) -> Optional[str]:
        chat = self._lookup(_CHAT)
        if dig(chat, "type") in (None, "private"):
            return None
        return dig(chat, "title")

    # ------------------------------------------------------------------
    #  Inline and callback queries
    # ------------------------------------------------------------------

    def inline_query(self) -> Optional[Dict[str, Any]]:
        return self._update.get(UpdateKind.INLINE_QUERY.value)

    def callback_query(self) -> Optional[Dict[str, Any]]:
        return self._update.get(UpdateKind.CALLBACK_QUERY.value)

    def callback_id(self) -> Optional[str]:
        return dig(self.callback_query(), "id")

    def callback_data(self) -> Optional[str]:
        return dig(self.callback_query(), "data")

    def callback_message(self) -> Optional[Dict[str, Any]]:
        return dig(self.callback_query(), "message")

    def callback_chat_id(self) -> Optional[int]:
        return dig(self.callback_query(), "message", "chat", "id")

    def callback_from_id(self) -> Optional[int]:
        return dig(self.callback_query(), "from", "id")

    def callback_instance(self) -> Optional[str]:
        """Global identifier of the chat the callback button was sent to."""
        return dig(self.callback_query(), "chat_instance")

    # ------------------------------------------------------------------
    #  Reactions and polls
    # ------------------------------------------------------------------

    def new_reaction(self) -> Optional[List[Dict[str, Any]]]:
        return self._lookup(_NEW_REACTION)

    def old_reaction(self) -> Optional[List[Dict[str, Any]]]:
        return self._lookup(_OLD_REACTION)

    def reaction_counts(self) -> Optional[List[Dict[str, Any]]]:
        """Anonymous reaction tallies of a ``message_reaction_count`` update."""
        return self._lookup(_REACTION_COUNTS)

    def poll_id(self) -> Optional[str]:
        return self._lookup(_POLL_ID)

    def poll_option_ids(self) -> Optional[List[int]]:
        return self._lookup(_POLL_OPTION_IDS)
