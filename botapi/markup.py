"""Reply-markup and reaction builders.

Pure functions that assemble the structures the Bot API expects in the
``reply_markup`` and ``reaction`` parameters.  Markup builders return a JSON
string ready to drop into a parameter bag; button builders return plain
dicts so they can be arranged into rows first::

    from botapi import markup

    keyboard = markup.build_inline_keyboard([
        [markup.build_inline_keyboard_button("Yes", callback_data="vote:yes"),
         markup.build_inline_keyboard_button("No", callback_data="vote:no")],
        [markup.build_inline_keyboard_button("Docs", url="https://example.com")],
    ])
    client.send_message({"chat_id": 42, "text": "Agree?", "reply_markup": keyboard})
"""

from __future__ import annotations

import json
from typing import Any, Dict, List, Optional, Sequence, Union

from pydantic import BaseModel

from botapi.exceptions import InvalidArgument
from botapi.models import (
    ForceReply,
    InlineKeyboardButton,
    InlineKeyboardMarkup,
    KeyboardButton,
    ReactionTypeCustomEmoji,
    ReactionTypeEmoji,
    ReplyKeyboardMarkup,
    ReplyKeyboardRemove,
)

Button = Dict[str, Any]
Rows = Sequence[Sequence[Union[Button, str]]]


def _to_json(model: BaseModel) -> str:
    return model.model_dump_json(exclude_none=True)


def _button_rows(rows: Rows) -> List[List[Any]]:
    """Turn keyboard rows into lists, rejecting anything that is not a grid."""
    if isinstance(rows, (str, bytes)) or not isinstance(rows, Sequence):
        raise InvalidArgument("Keyboard rows must be a list of button lists")
    grid = []
    for row in rows:
        if isinstance(row, (str, bytes, dict)) or not isinstance(row, Sequence):
            raise InvalidArgument("Each keyboard row must be a list of buttons")
        grid.append(list(row))
    return grid


def _compact_button(model: type[BaseModel], text: str, **fields: Any) -> Button:
    """Build a button, dropping every optional field that is empty or false."""
    button = {"text": text}
    button.update({key: value for key, value in fields.items() if value})
    return model.model_validate(button).model_dump(exclude_none=True)


# ── Reply markup ─────────────────────────────────────────────────────────────


def build_keyboard(
    rows: Rows,
    is_persistent: bool = False,
    resize_keyboard: bool = False,
    one_time_keyboard: bool = False,
    input_field_placeholder: Optional[str] = None,
    selective: bool = True,
) -> str:
    """Custom reply keyboard from rows of :func:`build_keyboard_button` dicts.

    The boolean options are always serialised, ``false`` included; an empty
    placeholder is omitted.
    """
    return _to_json(ReplyKeyboardMarkup(
        keyboard=[[KeyboardButton(text=b) if isinstance(b, str) else b for b in row] for row in _button_rows(rows)],
        is_persistent=is_persistent,
        resize_keyboard=resize_keyboard,
        one_time_keyboard=one_time_keyboard,
        input_field_placeholder=input_field_placeholder or None,
        selective=selective,
    ))


def build_inline_keyboard(rows: Rows) -> str:
    """Inline keyboard from rows of :func:`build_inline_keyboard_button` dicts."""
    return _to_json(InlineKeyboardMarkup(inline_keyboard=_button_rows(rows)))


def build_keyboard_remove(selective: bool = True) -> str:
    """Ask clients to drop the current custom keyboard."""
    return _to_json(ReplyKeyboardRemove(selective=selective))


def build_force_reply(input_field_placeholder: Optional[str] = None, selective: bool = True) -> str:
    """Ask clients to open a reply interface for the bot's message."""
    return _to_json(ForceReply(
        input_field_placeholder=input_field_placeholder or None,
        selective=selective,
    ))


# ── Buttons ──────────────────────────────────────────────────────────────────


def build_keyboard_button(
    text: str,
    request_users: Optional[Dict[str, Any]] = None,
    request_chat: Optional[Dict[str, Any]] = None,
    request_contact: bool = False,
    request_location: bool = False,
    request_poll: Optional[Dict[str, Any]] = None,
) -> Button:
    """One reply-keyboard button; only the options actually requested are kept."""
    return _compact_button(
        KeyboardButton,
        text,
        request_users=request_users,
        request_chat=request_chat,
        request_contact=request_contact,
        request_location=request_location,
        request_poll=request_poll,
    )


def build_inline_keyboard_button(
    text: str,
    url: Optional[str] = None,
    callback_data: Optional[str] = None,
    login_url: Optional[Dict[str, Any]] = None,
    switch_inline_query: Optional[str] = None,
    switch_inline_query_current_chat: Optional[str] = None,
    switch_inline_query_chosen_chat: Optional[Dict[str, Any]] = None,
    callback_game: Optional[Dict[str, Any]] = None,
    pay: bool = False,
) -> Button:
    """One inline-keyboard button. Use exactly one of the optional fields.

    ``pay`` is sent only when true.
    """
    return _compact_button(
        InlineKeyboardButton,
        text,
        url=url,
        callback_data=callback_data,
        login_url=login_url,
        switch_inline_query=switch_inline_query,
        switch_inline_query_current_chat=switch_inline_query_current_chat,
        switch_inline_query_chosen_chat=switch_inline_query_chosen_chat,
        callback_game=callback_game,
        pay=pay,
    )


def build_web_app_button(text: str, url: str) -> Button:
    """Keyboard button that opens the Web App at *url*."""
    return KeyboardButton(text=text, web_app={"url": url}).model_dump(exclude_none=True)


# ── Reactions ────────────────────────────────────────────────────────────────


def _as_list(value: Union[str, Sequence[str]]) -> List[str]:
    return [value] if isinstance(value, str) else list(value)


def reaction_type_emoji(emoji: Union[str, Sequence[str]]) -> List[Dict[str, Any]]:
    """Emoji reaction descriptors, one per emoji in *emoji*."""
    return [ReactionTypeEmoji(emoji=e).model_dump() for e in _as_list(emoji)]


def reaction_type_custom_emoji(custom_emoji_id: Union[str, Sequence[str]]) -> List[Dict[str, Any]]:
    """Custom-emoji reaction descriptors, one per identifier."""
    return [ReactionTypeCustomEmoji(custom_emoji_id=c).model_dump() for c in _as_list(custom_emoji_id)]


def flatten_reactions(reaction: Any) -> List[Dict[str, Any]]:
    """Merge a list of reaction descriptor lists into one flat list.

    Items may be descriptor lists (as returned by :func:`reaction_type_emoji`),
    single descriptor dicts or models, or a bare emoji string.

    Raises:
        InvalidArgument: If *reaction* is not a list.
    """
    if not isinstance(reaction, (list, tuple)):
        raise InvalidArgument("The reaction must be an array")

    flat: List[Dict[str, Any]] = []
    for item in reaction:
        if isinstance(item, (list, tuple)):
            flat.extend(item)
        elif isinstance(item, BaseModel):
            flat.append(item.model_dump())
        elif isinstance(item, str):
            flat.extend(reaction_type_emoji(item))
        elif isinstance(item, dict):
            flat.append(item)
        else:
            raise InvalidArgument(f"Unsupported reaction item: {item!r}")
    return flat


def encode_reactions(reaction: Any) -> str:
    """JSON-serialised :func:`flatten_reactions` output, emoji kept unescaped."""
    return json.dumps(flatten_reactions(reaction), ensure_ascii=False)
