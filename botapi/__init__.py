"""Telegram Bot API client — dispatch, polling, markup builders, and exceptions.

The :class:`BotClient` facade wires a :class:`RequestDispatcher`, a
:class:`PollingLoop` and an :class:`~core.context.UpdateContext` together.

Usage::

    from botapi import BotClient, markup
    from core import UpdateKind

    client = BotClient(token)
    client.load_body(request_body)
    if client.context.update_type() is UpdateKind.MESSAGE:
        client.send_message({"chat_id": client.context.chat_id(), "text": "hi"})
"""

from botapi.client import BotClient, get_default_client
from botapi.dispatcher import RequestDispatcher
from botapi.exceptions import (
    APIException,
    BotAPIError,
    InvalidArgument,
    InvalidUpdate,
    MissingTokenError,
    MissingWebhookError,
)
from botapi.models import DispatchResult, ProxyConfig
from botapi.polling import PollingLoop

__all__ = [
    "BotClient",
    "get_default_client",
    "RequestDispatcher",
    "PollingLoop",
    "DispatchResult",
    "ProxyConfig",
    "APIException",
    "BotAPIError",
    "InvalidArgument",
    "InvalidUpdate",
    "MissingTokenError",
    "MissingWebhookError",
]
