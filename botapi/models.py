"""Pydantic models for outgoing structures and dispatch results.

Markup classes follow the Telegram Bot API schemas for reply markup and
keyboard buttons.  :class:`ProxyConfig` and :class:`DispatchResult` describe
the client's own transport configuration and the outcome of one call.
"""

from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field


# ── Transport ────────────────────────────────────────────────────────────────


class ProxyConfig(BaseModel):
    """Optional HTTP proxy every call is routed through.

    ``type`` is the proxy scheme (``http``, ``https``, ``socks5`` …), ``url``
    the proxy host (a full URL is accepted as well), ``auth`` a
    ``user:password`` pair.
    """

    type: Optional[str] = None
    url: Optional[str] = None
    port: Optional[int] = None
    auth: Optional[str] = None

    model_config = {"populate_by_name": True, "frozen": True}

    @property
    def enabled(self) -> bool:
        return bool(self.url)

    def as_url(self) -> Optional[str]:
        """Compose the proxy URL understood by :mod:`requests`."""
        if not self.url:
            return None
        scheme, sep, host = self.url.partition("://")
        if not sep:
            scheme, host = self.type or "http", self.url
        if self.auth:
            host = f"{self.auth}@{host}"
        if self.port and ":" not in host.rsplit("@", 1)[-1]:
            host = f"{host}:{self.port}"
        return f"{scheme}://{host}"

    def as_requests_proxies(self) -> Dict[str, str]:
        proxy_url = self.as_url()
        if proxy_url is None:
            return {}
        return {"http": proxy_url, "https": proxy_url}


class TransportFailure(BaseModel):
    """Synthetic reply standing in for a call that never reached the server."""

    ok: bool = False
    error_code: int
    error_message: str

    model_config = {"populate_by_name": True}


class DispatchResult(BaseModel):
    """Outcome of one dispatched call.

    ``body`` is the raw response text, ``decoded`` its JSON decoding when
    ``is_json`` is set.  :attr:`value` collapses the three possible outcomes
    (decoded reply, raw non-JSON text, synthetic transport failure) into the
    single slot callers of :meth:`botapi.client.BotClient.endpoint` receive.
    """

    method: str
    body: str
    decoded: Any = None
    is_json: bool = False
    transport_error: bool = False

    @property
    def value(self) -> Any:
        return self.decoded if self.is_json else self.body

    @property
    def ok(self) -> bool:
        return self.is_json and isinstance(self.decoded, dict) and bool(self.decoded.get("ok"))


# ── Keyboard buttons ─────────────────────────────────────────────────────────


class WebAppInfo(BaseModel):
    """Describes a Web App to be opened from a button."""

    url: str


class KeyboardButton(BaseModel):
    """One button of a custom reply keyboard."""

    text: str
    request_users: Optional[Dict[str, Any]] = None
    request_chat: Optional[Dict[str, Any]] = None
    request_contact: Optional[bool] = None
    request_location: Optional[bool] = None
    request_poll: Optional[Dict[str, Any]] = None
    web_app: Optional[WebAppInfo] = None

    model_config = {"populate_by_name": True, "extra": "allow"}


class InlineKeyboardButton(BaseModel):
    """One button of an inline keyboard. Exactly one optional field should be set."""

    text: str
    url: Optional[str] = None
    callback_data: Optional[str] = None
    web_app: Optional[WebAppInfo] = None
    login_url: Optional[Dict[str, Any]] = None
    switch_inline_query: Optional[str] = None
    switch_inline_query_current_chat: Optional[str] = None
    switch_inline_query_chosen_chat: Optional[Dict[str, Any]] = None
    callback_game: Optional[Dict[str, Any]] = None
    pay: Optional[bool] = None

    model_config = {"populate_by_name": True, "extra": "allow"}


# ── Reply markup ─────────────────────────────────────────────────────────────


class ReplyKeyboardMarkup(BaseModel):
    """A custom keyboard with reply options."""

    keyboard: List[List[KeyboardButton]]
    is_persistent: bool = False
    resize_keyboard: bool = False
    one_time_keyboard: bool = False
    input_field_placeholder: Optional[str] = Field(None, min_length=1, max_length=64)
    selective: bool = True


class InlineKeyboardMarkup(BaseModel):
    """An inline keyboard that appears right next to the message it belongs to."""

    inline_keyboard: List[List[InlineKeyboardButton]]


class ReplyKeyboardRemove(BaseModel):
    """Asks clients to remove the current custom keyboard."""

    remove_keyboard: Literal[True] = True
    selective: bool = True


class ForceReply(BaseModel):
    """Asks clients to display a reply interface to the user."""

    force_reply: Literal[True] = True
    input_field_placeholder: Optional[str] = Field(None, min_length=1, max_length=64)
    selective: bool = True


ReplyMarkup = Union[ReplyKeyboardMarkup, InlineKeyboardMarkup, ReplyKeyboardRemove, ForceReply]


# ── Reactions ────────────────────────────────────────────────────────────────


class ReactionTypeEmoji(BaseModel):
    """Reaction based on a standard emoji."""

    type: Literal["emoji"] = "emoji"
    emoji: str


class ReactionTypeCustomEmoji(BaseModel):
    """Reaction based on a custom emoji."""

    type: Literal["custom_emoji"] = "custom_emoji"
    custom_emoji_id: str
