"""
Chat proxy data models.
"""

from .request import (
    ChatRequest,
    ChatTurn,
    DeliveryMode,
    Provider,
    PROVIDER_ALIASES,
    Role,
    UpstreamRequest,
)
from .response import ChatResponse, NO_RESPONSE_TEXT

__all__ = [
    "ChatRequest",
    "ChatTurn",
    "DeliveryMode",
    "Provider",
    "PROVIDER_ALIASES",
    "Role",
    "UpstreamRequest",
    "ChatResponse",
    "NO_RESPONSE_TEXT",
]
