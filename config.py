"""Library configuration — environment variables and derived constants.

Loads the bot token, webhook URL, error-logging flag and proxy settings from
the environment via ``python-dotenv``.  All values are resolved at import time
and are not modified afterwards; :meth:`botapi.client.BotClient.from_config`
reads them.
"""

# ── stdlib ───────────────────────────────────────────────────────────────────
import os

# ── third-party ──────────────────────────────────────────────────────────────
from dotenv import load_dotenv

# ── project ──────────────────────────────────────────────────────────────────
from botapi.models import ProxyConfig
from core.logger import BotLogger

# ── Environment bootstrap ────────────────────────────────────────────────────
load_dotenv()

logger = BotLogger.get_logger("config")


# ── Helper functions (private) ───────────────────────────────────────────────


def _parse_bool(raw: str | None) -> bool:
    """Interpret ``1``/``true``/``yes``/``on`` (any case) as true."""
    return (raw or "").strip().lower() in ("1", "true", "yes", "on")


def _parse_number(raw: str | None, default: float) -> float:
    """Parse a positive number, falling back to *default* on junk."""
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError:
        logger.warning("Ignoring non-numeric setting", extra={"value": raw})
        return default
    return value if value > 0 else default


def _parse_proxy() -> ProxyConfig | None:
    """Build the proxy settings from ``PROXY_*`` variables, if any are set."""
    url = os.environ.get("PROXY_URL")
    if not url:
        return None
    port = os.environ.get("PROXY_PORT")
    return ProxyConfig(
        type=os.environ.get("PROXY_TYPE") or None,
        url=url,
        port=int(port) if port and port.isdigit() else None,
        auth=os.environ.get("PROXY_AUTH") or None,
    )


# ── Public constants ─────────────────────────────────────────────────────────

BOT_TOKEN: str | None = os.environ.get("BOT_TOKEN")
WEBHOOK_URL: str | None = os.environ.get("WEBHOOK_URL")
LOG_ERRORS: bool = _parse_bool(os.environ.get("LOG_ERRORS"))
API_URL: str = os.environ.get("API_URL", "https://api.telegram.org")
CONNECT_TIMEOUT: float = _parse_number(os.environ.get("CONNECT_TIMEOUT"), 10)
PROXY: ProxyConfig | None = _parse_proxy()


# ── Startup diagnostics ─────────────────────────────────────────────────────

if BOT_TOKEN:
    logger.info("Config loaded — BOT_TOKEN is set")
else:
    logger.warning("Config loaded — BOT_TOKEN is NOT set")

if PROXY is not None:
    logger.info("Proxy configured", extra={"proxy_type": PROXY.type, "proxy_url": PROXY.url, "proxy_port": PROXY.port})
