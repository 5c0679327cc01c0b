"""Exception hierarchy for the botline client.

Programmer errors (an unclassifiable update, a malformed argument, a client
without a token) raise.  Transport failures and non-JSON replies never do:
they come back from the dispatcher as inspectable values.
"""

from typing import Any, Dict, Optional

from core.update import InvalidUpdate


class BotAPIError(Exception):
    """Base class for every error raised by the client."""


class InvalidArgument(BotAPIError, ValueError):
    """A required parameter is missing or has the wrong shape."""


class MissingTokenError(BotAPIError):
    """An API call was attempted without a bot token."""

    def __init__(self) -> None:
        super().__init__("Bot Token is required")


class MissingWebhookError(BotAPIError):
    """A webhook-dependent operation was attempted without a webhook URL."""

    def __init__(self) -> None:
        super().__init__("Webhook URL is required")


class APIException(BotAPIError):
    """Non-2xx response from an HTTP endpoint.

    Attributes:
        status_code: HTTP status code returned by the server.
        response_body: Decoded response body, when available.
    """

    def __init__(self, status_code: int, response_body: Optional[Dict[str, Any]] = None) -> None:
        """Initialise with the HTTP status code and optional body."""
        self.status_code = status_code
        self.response_body = response_body or {}
        description = self.response_body.get("description", "Unknown error")
        super().__init__(f"API error {status_code}: {description}")


__all__ = [
    "BotAPIError",
    "InvalidArgument",
    "InvalidUpdate",
    "MissingTokenError",
    "MissingWebhookError",
    "APIException",
]
