"""RequestDispatcher — builds, sends and decodes one Bot API call.

Every outgoing call goes through :meth:`RequestDispatcher.send`:

* ``post=False`` — the whole parameter bag is sent as a GET query string.
* ``post=True`` — ``chat_id`` moves to the URL query string and the remaining
  parameters are sent as ``multipart/form-data``; a ``certificate`` that names
  a readable local file is uploaded as a file.

TLS peer verification is disabled for every call so that self-signed webhook
certificate workflows keep working.  This is a known weakness: a network
attacker can impersonate the API host.

Transport failures never raise; they produce a synthetic
``{"ok": false, "error_code": …, "error_message": …}`` reply.  A reply body
that is not JSON is handed back as the raw string.
"""

from __future__ import annotations

import json
import os
from contextlib import ExitStack
from typing import Any, Callable, Dict, Optional, Tuple

import requests
from pydantic import BaseModel

from botapi.exceptions import MissingTokenError
from botapi.models import DispatchResult, ProxyConfig, TransportFailure
from core.error_log import CallLogger
from core.logger import BotLogger

logger = BotLogger.get_logger("dispatch")

DEFAULT_API_URL = "https://api.telegram.org"

# libcurl error numbers, most specific exception class first.
_TRANSPORT_ERROR_CODES: Tuple[Tuple[type, int], ...] = (
    (requests.Timeout, 28),
    (requests.exceptions.ProxyError, 5),
    (requests.exceptions.SSLError, 35),
    (requests.ConnectionError, 7),
    (requests.exceptions.InvalidURL, 3),
)

_DOWNLOAD_CHUNK_SIZE = 8192


def transport_error_code(exc: requests.RequestException) -> int:
    """Map a :mod:`requests` failure onto a stable numeric error code."""
    for exc_type, code in _TRANSPORT_ERROR_CODES:
        if isinstance(exc, exc_type):
            return code
    return 0


def encode_value(value: Any) -> str:
    """Serialise one parameter value for a query string or form field."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, BaseModel):
        return value.model_dump_json(exclude_none=True)
    if isinstance(value, (dict, list, tuple)):
        return json.dumps(value, ensure_ascii=False, default=_json_default)
    return str(value)


def _json_default(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(exclude_none=True)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


class RequestDispatcher:
    """Sends parameter bags to named Bot API methods.

    Args:
        token: Bot token; required before any call is made.
        api_url: Base URL of the Bot API server.
        proxy: Optional proxy every request is routed through.
        connect_timeout: Seconds to wait for the TCP/TLS connection.
        read_timeout: Default seconds to wait for a reply.
        call_logger: Optional collaborator receiving every call's outcome.
        update_source: Callable returning the update being handled, attached
            to what *call_logger* receives.
    """

    _DEFAULT_CONNECT_TIMEOUT: float = 10
    _DEFAULT_READ_TIMEOUT: float = 60

    def __init__(
        self,
        token: Optional[str],
        api_url: str = DEFAULT_API_URL,
        proxy: Optional[ProxyConfig] = None,
        connect_timeout: float = _DEFAULT_CONNECT_TIMEOUT,
        read_timeout: float = _DEFAULT_READ_TIMEOUT,
        call_logger: Optional[CallLogger] = None,
        update_source: Optional[Callable[[], Optional[Dict[str, Any]]]] = None,
    ) -> None:
        self._token = token
        self._api_url = api_url.rstrip("/")
        self._proxy = proxy or ProxyConfig()
        self._connect_timeout = connect_timeout
        self._read_timeout = read_timeout
        self._call_logger = call_logger
        self._update_source = update_source

    # ------------------------------------------------------------------
    #  Internal helpers
    # ------------------------------------------------------------------

    @property
    def proxy(self) -> ProxyConfig:
        return self._proxy

    def method_url(self, method: str) -> str:
        """Fully-qualified URL of *method*.

        Raises:
            MissingTokenError: If the dispatcher has no bot token.
        """
        if not self._token:
            raise MissingTokenError()
        return f"{self._api_url}/bot{self._token}/{method.lstrip('/')}"

    def file_url(self, file_path: str) -> str:
        if not self._token:
            raise MissingTokenError()
        return f"{self._api_url}/file/bot{self._token}/{file_path.lstrip('/')}"

    def _request_options(self, read_timeout: Optional[float]) -> Dict[str, Any]:
        return {
            "timeout": (self._connect_timeout, read_timeout or self._read_timeout),
            "verify": False,
            "proxies": self._proxy.as_requests_proxies() or None,
        }

    @staticmethod
    def _is_upload(key: str, value: Any) -> bool:
        return key == "certificate" and isinstance(value, (str, os.PathLike)) and os.path.isfile(value)

    def _report(self, decoded: Any, params: Dict[str, Any]) -> None:
        """Forward the outcome to the call logger without ever raising."""
        if self._call_logger is None:
            return
        try:
            update = self._update_source() if self._update_source else None
            context = [update, params] if update else [params]
            self._call_logger.log(decoded, context)
        except Exception as exc:  # noqa: BLE001
            logger.warning("Call logger failed", extra={"error": str(exc)})

    # ------------------------------------------------------------------
    #  Public API
    # ------------------------------------------------------------------

    def send(
        self,
        method: str,
        params: Optional[Dict[str, Any]] = None,
        post: bool = True,
        read_timeout: Optional[float] = None,
    ) -> DispatchResult:
        """Call *method* with *params* and return the decoded outcome.

        Raises:
            MissingTokenError: If the dispatcher has no bot token.
        """
        url = self.method_url(method)
        params = {key: value for key, value in (params or {}).items() if value is not None}
        options = self._request_options(read_timeout)

        logger.debug("Dispatching API call", extra={"api_endpoint": method, "post": post})
        try:
            if not post:
                response = requests.get(
                    url,
                    params={key: encode_value(value) for key, value in params.items()},
                    **options,
                )
            else:
                body = dict(params)
                query = {}
                if "chat_id" in body:
                    query["chat_id"] = encode_value(body.pop("chat_id"))
                with ExitStack() as stack:
                    fields: Dict[str, Any] = {}
                    for key, value in body.items():
                        if self._is_upload(key, value):
                            handle = stack.enter_context(open(value, "rb"))
                            fields[key] = (os.path.basename(value), handle)
                        else:
                            fields[key] = (None, encode_value(value))
                    response = requests.post(url, params=query or None, files=fields or None, **options)
            result = self._decode(method, response.text)
        except requests.RequestException as exc:
            failure = TransportFailure(error_code=transport_error_code(exc), error_message=str(exc))
            logger.error(
                "API request error",
                extra={"api_endpoint": method, "error_code": failure.error_code, "error": failure.error_message},
            )
            result = DispatchResult(
                method=method,
                body=failure.model_dump_json(),
                decoded=failure.model_dump(),
                is_json=True,
                transport_error=True,
            )

        self._report(result.value, params)
        return result

    def _decode(self, method: str, body: str) -> DispatchResult:
        try:
            decoded = json.loads(body)
        except ValueError:
            logger.warning("API reply is not JSON, returning raw body", extra={"api_endpoint": method, "body_preview": body[:200]})
            return DispatchResult(method=method, body=body)

        if isinstance(decoded, dict) and not decoded.get("ok", True):
            logger.warning(
                "API returned ok=false",
                extra={"api_endpoint": method, "error_code": decoded.get("error_code"), "description": decoded.get("description")},
            )
        return DispatchResult(method=method, body=body, decoded=decoded, is_json=True)

    def download(self, file_path: str, destination: str) -> str:
        """Stream the remote file *file_path* into the local *destination*.

        Returns:
            The destination path.

        Raises:
            requests.HTTPError: If the file server answers with a non-2xx status.
            requests.RequestException: On transport-level failures.
        """
        url = self.file_url(file_path)
        options = self._request_options(None)
        options["verify"] = True
        with requests.get(url, stream=True, **options) as response:
            response.raise_for_status()
            with open(destination, "wb") as out:
                for chunk in response.iter_content(chunk_size=_DOWNLOAD_CHUNK_SIZE):
                    if chunk:
                        out.write(chunk)
        logger.info("File downloaded", extra={"file_path": file_path, "destination": destination})
        return destination
