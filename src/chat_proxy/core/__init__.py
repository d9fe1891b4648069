"""
Core chat proxy components.
"""

from .config import GatewayConfig, ProviderConfig, ServiceSettings, load_config
from .errors import (
    GatewayError,
    InvalidRequestError,
    ConfigError,
    UpstreamError,
    GatewayConnectionError,
)
from .interface import ProviderAdapter

__all__ = [
    "GatewayConfig",
    "ProviderConfig",
    "ServiceSettings",
    "load_config",
    "GatewayError",
    "InvalidRequestError",
    "ConfigError",
    "UpstreamError",
    "GatewayConnectionError",
    "ProviderAdapter",
]
