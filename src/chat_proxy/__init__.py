"""
Chat Proxy

A provider-agnostic chat completion proxy for browser clients:
- One request shape for Groq (OpenAI-compatible) and Gemini
- Buffered JSON replies or streamed passthrough
- Provider credentials kept server-side
"""

from .core.gateway import ChatGateway
from .core.registry import AdapterRegistry, default_registry
from .core.config import GatewayConfig, ProviderConfig, load_config
from .models.request import ChatRequest, ChatTurn, DeliveryMode, Provider
from .models.response import ChatResponse

__all__ = [
    "ChatGateway",
    "AdapterRegistry",
    "default_registry",
    "GatewayConfig",
    "ProviderConfig",
    "load_config",
    "ChatRequest",
    "ChatTurn",
    "DeliveryMode",
    "Provider",
    "ChatResponse",
]
