"""
Provider adapter interface.

Defines the contract each upstream provider adapter implements: build
the outbound request from normalized turns, pick the endpoint for the
delivery mode, and flatten a buffered reply into a ChatResponse.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List

from ..models.request import ChatTurn, DeliveryMode, Provider, UpstreamRequest
from ..models.response import ChatResponse
from .config import ProviderConfig
from .errors import ConfigError


class ProviderAdapter(ABC):
    """
    Abstract base class for upstream provider adapters.

    Adapters are stateless apart from their read-only ProviderConfig and
    never perform I/O themselves; the gateway issues the HTTP call.
    """

    def __init__(self, config: ProviderConfig):
        self._config = config

    @property
    @abstractmethod
    def provider(self) -> Provider:
        """
        Provider this adapter speaks to.

        Returns:
            Provider enumeration value
        """
        pass

    @property
    def config(self) -> ProviderConfig:
        return self._config

    @property
    def model(self) -> str:
        return self._config.model

    def require_credential(self) -> str:
        """
        Return the provider credential.

        Raises:
            ConfigError: If the credential is missing from configuration
        """
        if not self._config.api_key:
            raise ConfigError(
                f"{self._config.api_key_env} not set",
                provider=self.provider.value,
            )
        return self._config.api_key

    @abstractmethod
    def endpoint(self, mode: DeliveryMode) -> str:
        """
        Upstream URL for the given delivery mode.

        Args:
            mode: Buffered or streamed delivery

        Returns:
            Absolute URL without credentials
        """
        pass

    @abstractmethod
    def build_upstream_request(
        self,
        turns: List[ChatTurn],
        mode: DeliveryMode = DeliveryMode.BUFFERED,
    ) -> UpstreamRequest:
        """
        Translate normalized turns into the provider's wire format.

        Args:
            turns: Conversation in order
            mode: Buffered or streamed delivery

        Returns:
            Outbound request ready to send
        """
        pass

    @abstractmethod
    def extract_text(self, data: Dict[str, Any]) -> ChatResponse:
        """
        Flatten a buffered provider reply.

        Args:
            data: Decoded JSON body of a successful upstream response

        Returns:
            Normalized response
        """
        pass

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(provider={self.provider.value!r}, model={self.model!r})"
