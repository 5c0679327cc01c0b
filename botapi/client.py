"""BotClient — the Bot API facade.

Wraps a :class:`~botapi.dispatcher.RequestDispatcher`, a
:class:`~botapi.polling.PollingLoop` and the :class:`~core.context.UpdateContext`
of the update being handled.  Every plain Bot API method is exposed as a
pass-through that forwards a parameter bag unchanged, under both its API
name and its snake_case name::

    client = BotClient(token)
    client.sendMessage({"chat_id": 42, "text": "hi"})
    client.send_message({"chat_id": 42, "text": "hi"})

Methods that need more than forwarding (webhook bookkeeping, reactions,
polling, file download, command simulation) are implemented explicitly.
"""

from __future__ import annotations

import json
import re
import time
from typing import Any, Callable, Dict, List, Optional

import requests

from botapi import markup
from botapi.dispatcher import DEFAULT_API_URL, RequestDispatcher
from botapi.exceptions import APIException, InvalidArgument, MissingWebhookError
from botapi.models import ProxyConfig
from botapi.polling import MAX_LIMIT, PollingLoop
from core.context import RawBody, UpdateContext
from core.error_log import CallLogger, ErrorLogger
from core.logger import BotLogger
from core.update import dig

logger = BotLogger.get_logger("client")

# Bot API methods that only forward their parameter bag.
PASSTHROUGH_METHODS: frozenset[str] = frozenset({
    "deleteWebhook",
    "sendMessage", "forwardMessage", "forwardMessages", "copyMessage", "copyMessages",
    "sendPhoto", "sendAudio", "sendDocument", "sendVideo", "sendAnimation", "sendVoice",
    "sendVideoNote", "sendMediaGroup", "sendLocation", "sendVenue", "sendContact",
    "sendPoll", "sendDice", "sendChatAction",
    "getUserProfilePhotos",
    "banChatMember", "unbanChatMember", "restrictChatMember", "promoteChatMember",
    "setChatAdministratorCustomTitle", "banChatSenderChat", "unbanChatSenderChat",
    "setChatPermissions", "exportChatInviteLink", "createChatInviteLink",
    "editChatInviteLink", "revokeChatInviteLink", "approveChatJoinRequest",
    "declineChatJoinRequest", "setChatPhoto", "deleteChatPhoto", "setChatTitle",
    "setChatDescription", "pinChatMessage", "unpinChatMessage", "unpinAllChatMessages",
    "leaveChat", "getChat", "getChatAdministrators", "getChatMembersCount",
    "getChatMember", "setChatStickerSet", "deleteChatStickerSet",
    "getForumTopicIconStickers", "createForumTopic", "editForumTopic", "closeForumTopic",
    "reopenForumTopic", "deleteForumTopic", "unpinAllForumTopicMessages",
    "editGeneralForumTopic", "closeGeneralForumTopic", "reopenGeneralForumTopic",
    "hideGeneralForumTopic", "unhideGeneralForumTopic", "unpinAllGeneralForumTopicMessages",
    "answerCallbackQuery", "getUserChatBoosts",
    "setMyCommands", "deleteMyCommands", "getMyCommands", "setMyName", "getMyName",
    "setMyDescription", "getMyDescription", "setMyShortDescription",
    "getMyShortDescription", "setChatMenuButton", "getChatMenuButton",
    "setMyDefaultAdministratorRights", "getMyDefaultAdministratorRights",
    "editMessageText", "editMessageCaption", "editMessageMedia", "editMessageLiveLocation",
    "stopMessageLiveLocation", "editMessageReplyMarkup", "stopPoll",
    "deleteMessage", "deleteMessages",
    "sendSticker", "getStickerSet", "getCustomEmojiStickers", "uploadStickerFile",
    "createNewStickerSet", "addStickerToSet", "setStickerPositionInSet",
    "deleteStickerFromSet", "setStickerEmojiList", "setStickerKeywords",
    "setStickerMaskPosition", "setStickerSetTitle", "setStickerSetThumbnail",
    "setCustomEmojiStickerSetThumbnail", "deleteStickerSet",
    "answerInlineQuery", "answerWebAppQuery",
    "sendInvoice", "createInvoiceLink", "answerShippingQuery", "answerPreCheckoutQuery",
    "sendGame", "setGameScore", "getGameHighScores",
})

# API names of the explicitly implemented methods.
_EXPLICIT_METHODS: Dict[str, str] = {
    "getUpdates": "get_updates",
    "setWebhook": "set_webhook",
    "getWebhookInfo": "get_webhook_info",
    "getMe": "get_me",
    "logOut": "log_out",
    "close": "close",
    "getFile": "get_file",
    "setMessageReaction": "set_message_reaction",
}


def snake_case(method: str) -> str:
    """``setChatTitle`` → ``set_chat_title``."""
    return re.sub(r"(?<!^)(?=[A-Z])", "_", method).lower()


_SNAKE_TO_METHOD: Dict[str, str] = {snake_case(m): m for m in PASSTHROUGH_METHODS}


class BotClient:
    """Client-side facade for the Telegram Bot API.

    Args:
        token: Bot token.
        webhook: Webhook URL, used by :meth:`set_webhook` and :meth:`run_command`.
        log_errors: Record failed calls through :class:`~core.error_log.ErrorLogger`.
        proxy: Optional proxy for every network call.
        api_url: Base URL of the Bot API server.
        connect_timeout: Seconds to wait for a connection.
        call_logger: Custom collaborator receiving every call's outcome;
            overrides *log_errors*.
        context: Update context to use; a fresh one by default.
    """

    _DEFAULT_CONNECT_TIMEOUT: float = 10

    def __init__(
        self,
        token: Optional[str] = None,
        webhook: Optional[str] = None,
        log_errors: bool = False,
        proxy: Optional[ProxyConfig] = None,
        api_url: str = DEFAULT_API_URL,
        connect_timeout: float = _DEFAULT_CONNECT_TIMEOUT,
        call_logger: Optional[CallLogger] = None,
        context: Optional[UpdateContext] = None,
    ) -> None:
        self._webhook = webhook
        self._context = context if context is not None else UpdateContext()
        if call_logger is None and log_errors:
            call_logger = ErrorLogger()
        self._dispatcher = RequestDispatcher(
            token,
            api_url=api_url,
            proxy=proxy,
            connect_timeout=connect_timeout,
            call_logger=call_logger,
            update_source=lambda: self._context.update,
        )
        self._poller = PollingLoop(self._dispatcher, self._context)

    @classmethod
    def from_config(cls) -> "BotClient":
        """Build a client from the environment-backed :mod:`config` module."""
        import config  # deferred: loads .env on first use

        return cls(
            token=config.BOT_TOKEN,
            webhook=config.WEBHOOK_URL,
            log_errors=config.LOG_ERRORS,
            proxy=config.PROXY,
            api_url=config.API_URL,
            connect_timeout=config.CONNECT_TIMEOUT,
        )

    # ------------------------------------------------------------------
    #  Plumbing
    # ------------------------------------------------------------------

    @property
    def context(self) -> UpdateContext:
        return self._context

    @property
    def dispatcher(self) -> RequestDispatcher:
        return self._dispatcher

    @property
    def webhook(self) -> Optional[str]:
        return self._webhook

    def endpoint(self, method: str, params: Optional[Dict[str, Any]] = None, post: bool = True) -> Any:
        """Call *method* and return its decoded reply.

        The result is the decoded JSON reply, the raw body when the reply was
        not JSON, or a synthetic ``{"ok": false, …}`` object when the request
        never completed.
        """
        return self._dispatcher.send(method, params or {}, post=post).value

    def __getattr__(self, name: str) -> Callable[..., Any]:
        if name in _EXPLICIT_METHODS:
            return getattr(self, _EXPLICIT_METHODS[name])
        method = name if name in PASSTHROUGH_METHODS else _SNAKE_TO_METHOD.get(name)
        if method is None:
            raise AttributeError(f"{type(self).__name__!r} object has no attribute {name!r}")

        def call(params: Optional[Dict[str, Any]] = None) -> Any:
            return self.endpoint(method, params)

        call.__name__ = name
        call.__doc__ = f"Forward *params* to the ``{method}`` Bot API method."
        return call

    def __dir__(self) -> List[str]:
        return sorted(set(super().__dir__()) | PASSTHROUGH_METHODS | set(_SNAKE_TO_METHOD) | set(_EXPLICIT_METHODS))

    # ------------------------------------------------------------------
    #  Inbound updates
    # ------------------------------------------------------------------

    def load_body(self, body: Optional[RawBody] = None) -> Dict[str, Any]:
        """Decode a webhook request body into the current update."""
        return self._context.load_body(body)

    def set_update(self, update: Dict[str, Any]) -> None:
        self._context.set_update(update)

    def get_updates(self, offset: int = 0, limit: int = MAX_LIMIT, timeout: int = 0, update: bool = True) -> Any:
        """Long-poll for updates; see :meth:`botapi.polling.PollingLoop.poll`.

        With *update* set, the returned updates are confirmed server-side.
        """
        return self._poller.poll(offset=offset, limit=limit, timeout=timeout, advance_offset=update)

    def serve_update(self, index: int) -> Dict[str, Any]:
        """Make the *index*-th update of the last polled batch current."""
        return self._context.serve_update(index)

    def update_count(self) -> int:
        return self._context.update_count()

    def iter_updates(self, offset: int = 0, timeout: int = 30):
        """Yield polled updates forever, each made current before it is yielded."""
        return self._poller.iter_updates(offset=offset, timeout=timeout)

    @staticmethod
    def respond_success() -> str:
        """Body to answer the webhook request with (status 200 is the host's job)."""
        return json.dumps({"status": "success"}, indent=4)

    # ------------------------------------------------------------------
    #  Methods with their own rules
    # ------------------------------------------------------------------

    def set_webhook(self, params: Optional[Dict[str, Any]] = None) -> Any:
        """Register the webhook; ``url`` defaults to the configured webhook.

        A ``url`` passed here becomes the client's webhook.  A ``certificate``
        naming a local file is uploaded.
        """
        params = dict(params or {})
        if params.get("url"):
            self._webhook = params["url"]
        else:
            params["url"] = self._webhook
        return self.endpoint("setWebhook", params)

    def get_webhook_info(self) -> Any:
        return self.endpoint("getWebhookInfo", post=False)

    def get_me(self) -> Any:
        """A simple method for testing the bot's token."""
        return self.endpoint("getMe", post=False)

    def log_out(self) -> Any:
        return self.endpoint("logOut", post=False)

    def close(self) -> Any:
        return self.endpoint("close", post=False)

    def get_file(self, file_id: str) -> Any:
        """Resolve *file_id* to a File object whose ``file_path`` can be downloaded."""
        return self.endpoint("getFile", {"file_id": file_id})

    def set_message_reaction(self, params: Dict[str, Any]) -> Any:
        """Change the reactions on a message.

        ``reaction`` is a list whose items are descriptor lists such as
        :func:`botapi.markup.reaction_type_emoji` returns; they are merged into
        one flat list before sending.

        Raises:
            InvalidArgument: If ``reaction`` is missing or not a list.
        """
        if "reaction" not in params:
            raise InvalidArgument("The reaction must be an array")
        params = dict(params)
        params["reaction"] = markup.encode_reactions(params["reaction"])
        return self.endpoint("setMessageReaction", params)

    def download_file(self, file_path: str, save_path: str) -> str:
        """Download the remote *file_path* (from :meth:`get_file`) to *save_path*."""
        return self._dispatcher.download(file_path, save_path)

    def run_command(self, command: str, timeout: float = 10) -> Any:
        """Simulate the current user typing *command*.

        Posts a synthetic message update to the webhook, reusing the sender and
        chat of the current update's message.

        Raises:
            MissingWebhookError: If no webhook URL is configured.
            APIException: If the webhook does not answer with status 200.
            requests.RequestException: On transport-level failures.
        """
        if not self._webhook:
            raise MissingWebhookError()

        current = self._context.update
        message = current.get("message") or {}
        name = command.split(maxsplit=1)[0] if command.strip() else command
        fake_message: Dict[str, Any] = {
            "message_id": (dig(message, "message_id") or 0) + 1,
            "from": message.get("from"),
            "chat": message.get("chat"),
            "date": int(time.time()),
            "text": command,
            "entities": [{"offset": 0, "length": len(name), "type": "bot_command"}],
        }
        synthetic: Dict[str, Any] = {
            "update_id": (current.get("update_id") or 0) + 1,
            "message": {key: value for key, value in fake_message.items() if value is not None},
        }

        logger.info("Simulating command", extra={"command": name, "update_id": synthetic["update_id"]})
        response = requests.post(self._webhook, json=synthetic, timeout=timeout)
        try:
            body = response.json()
        except ValueError:
            body = None
        if response.status_code != 200:
            raise APIException(response.status_code, body if isinstance(body, dict) else None)
        return body


# ── Module-level default client ──────────────────────────────────────────────

_default_client: BotClient | None = None


def get_default_client() -> BotClient:
    """Return (and lazily create) a client configured from the environment."""
    global _default_client
    if _default_client is None:
        _default_client = BotClient.from_config()
    return _default_client
