"""
Chat gateway: validate, dispatch to a provider adapter, call upstream.

One invocation makes exactly one upstream call. Failures are surfaced
as GatewayError subclasses and never retried.
"""

import logging
from typing import Any, AsyncIterator, Optional, Tuple, Union

import httpx
from opentelemetry import trace

from ..models.request import ChatRequest, DeliveryMode, UpstreamRequest
from ..models.response import ChatResponse
from .config import GatewayConfig
from .errors import GatewayConnectionError, UpstreamError
from .interface import ProviderAdapter
from .normalize import parse_chat_body
from .registry import AdapterRegistry, default_registry
from .streaming import relay_stream

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


class ChatGateway:
    """
    Provider-agnostic chat completion gateway.

    The HTTP client is owned by the caller (the service lifespan) and
    shared across requests; the gateway itself holds no mutable state.
    """

    def __init__(
        self,
        config: GatewayConfig,
        client: httpx.AsyncClient,
        registry: Optional[AdapterRegistry] = None,
    ):
        self._config = config
        self._client = client
        self._registry = registry or default_registry(config)

    @property
    def registry(self) -> AdapterRegistry:
        return self._registry

    async def handle(
        self,
        body: Any,
        mode: DeliveryMode = DeliveryMode.BUFFERED,
    ) -> Union[ChatResponse, AsyncIterator[str]]:
        """
        Handle a decoded inbound JSON body.

        Returns a ChatResponse in buffered mode, or an async iterator of
        decoded text fragments in streamed mode.
        """
        request = parse_chat_body(body, streaming=mode == DeliveryMode.STREAMED)
        if request.streaming:
            return await self.stream(request)
        return await self.complete(request)

    def _prepare(self, request: ChatRequest) -> Tuple[ProviderAdapter, UpstreamRequest]:
        adapter = self._registry.get_adapter(request.provider)
        # Raises ConfigError on a missing credential, before any network I/O.
        upstream = adapter.build_upstream_request(request.turns, request.mode)
        logger.info(
            f"Dispatching {len(request.turns)} turns to {request.provider.value} "
            f"({adapter.model}, {request.mode.value})"
        )
        return adapter, upstream

    @staticmethod
    def _timeout(adapter: ProviderAdapter) -> Any:
        # Providers without their own timeout use the client default.
        if adapter.config.timeout is None:
            return httpx.USE_CLIENT_DEFAULT
        return adapter.config.timeout

    async def complete(self, request: ChatRequest) -> ChatResponse:
        """Buffered chat completion."""
        adapter, upstream = self._prepare(request)
        provider = request.provider.value

        with tracer.start_as_current_span("chat_completion") as span:
            span.set_attribute("provider", provider)
            span.set_attribute("model", adapter.model)

            try:
                response = await self._client.request(
                    upstream.method,
                    upstream.url,
                    params=upstream.params,
                    headers=upstream.headers,
                    json=upstream.json_body,
                    timeout=self._timeout(adapter),
                )
            except httpx.RequestError as e:
                logger.error(f"Request to {provider} failed: {e!r}")
                raise GatewayConnectionError(str(e) or type(e).__name__, provider=provider)

            span.set_attribute("upstream_status", response.status_code)

            if not response.is_success:
                logger.error(f"Upstream API error from {provider}: {response.status_code} {response.text}")
                raise UpstreamError(response.status_code, response.text, provider=provider)

            result = adapter.extract_text(response.json())
            span.set_attribute("blocked", result.blocked)
            return result

    async def stream(self, request: ChatRequest) -> AsyncIterator[str]:
        """
        Streamed chat completion.

        The upstream status is checked before returning, so upstream
        errors surface as UpstreamError instead of a broken stream.
        """
        adapter, upstream = self._prepare(request)
        provider = request.provider.value

        http_request = self._client.build_request(
            upstream.method,
            upstream.url,
            params=upstream.params,
            headers=upstream.headers,
            json=upstream.json_body,
            timeout=self._timeout(adapter),
        )

        try:
            response = await self._client.send(http_request, stream=True)
        except httpx.RequestError as e:
            logger.error(f"Stream request to {provider} failed: {e!r}")
            raise GatewayConnectionError(str(e) or type(e).__name__, provider=provider)

        if not response.is_success:
            try:
                await response.aread()
            finally:
                await response.aclose()
            logger.error(f"Upstream API error from {provider}: {response.status_code} {response.text}")
            raise UpstreamError(response.status_code, response.text, provider=provider)

        return relay_stream(response, provider)
