"""
Adapter registry mapping providers to their adapters.
"""

import logging
from typing import Any, Dict, List, Optional, Type

from ..adapters import GeminiAdapter, GroqAdapter
from ..models.request import Provider
from .config import GatewayConfig, ProviderConfig
from .errors import InvalidRequestError
from .interface import ProviderAdapter

logger = logging.getLogger(__name__)


class AdapterRegistry:
    """
    Registry for provider adapters.

    Adapter classes are registered per provider; instances are created
    lazily from the gateway configuration and reused, since adapters
    hold nothing but read-only config.
    """

    def __init__(self, config: GatewayConfig):
        """
        Initialize the registry.

        Args:
            config: Provider configuration adapters are built from
        """
        self._config = config
        self._adapters: Dict[Provider, Type[ProviderAdapter]] = {}
        self._instances: Dict[Provider, ProviderAdapter] = {}

    def register_adapter(
        self,
        provider: Provider,
        adapter_class: Type[ProviderAdapter]
    ) -> None:
        """
        Register an adapter class for a provider.

        Args:
            provider: Provider the adapter speaks to
            adapter_class: Adapter class to register
        """
        self._adapters[provider] = adapter_class
        self._instances.pop(provider, None)
        logger.info(f"Registered provider adapter: {provider.value}")

    def get_adapter(self, provider: Provider) -> ProviderAdapter:
        """
        Get the adapter instance for a provider.

        Args:
            provider: Provider to look up

        Returns:
            Adapter instance

        Raises:
            InvalidRequestError: If no adapter or config exists for the provider
        """
        if provider in self._instances:
            return self._instances[provider]

        adapter_class = self._adapters.get(provider)
        pcfg = self._config.get(provider)
        if adapter_class is None or pcfg is None:
            raise InvalidRequestError(f"Unknown AI selected: {provider.value!r}")

        instance = adapter_class(pcfg)
        self._instances[provider] = instance
        return instance

    def list_providers(self) -> List[Dict[str, Any]]:
        """
        List registered providers.

        Returns:
            List of provider info dicts; credentials are reported as
            present or absent only
        """
        results = []
        for provider in self._adapters:
            pcfg: Optional[ProviderConfig] = self._config.get(provider)
            results.append({
                "provider": provider.value,
                "model": pcfg.model if pcfg else None,
                "configured": bool(pcfg and pcfg.has_credential),
            })
        return results


def default_registry(config: GatewayConfig) -> AdapterRegistry:
    """Registry with the built-in Groq and Gemini adapters."""
    registry = AdapterRegistry(config)
    registry.register_adapter(Provider.GROQ, GroqAdapter)
    registry.register_adapter(Provider.GEMINI, GeminiAdapter)
    return registry
