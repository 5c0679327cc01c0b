"""Core update handling — classification, the update context, and logging.

This package is transport-agnostic. It must NEVER import from ``botapi/``.
"""

from core.context import UpdateContext
from core.error_log import ErrorLogger
from core.logger import BotLogger
from core.update import InvalidUpdate, UpdateKind, classify

__all__ = [
    "UpdateContext",
    "UpdateKind",
    "InvalidUpdate",
    "classify",
    "ErrorLogger",
    "BotLogger",
]
