"""
Groq adapter.

Groq exposes an OpenAI-compatible chat completion API, so turns go out
as ``{role, content}`` messages unchanged and auth is a bearer token.
"""

from typing import Any, Dict, List

from ..core.interface import ProviderAdapter
from ..models.request import ChatTurn, DeliveryMode, Provider, UpstreamRequest
from ..models.response import ChatResponse, NO_RESPONSE_TEXT


class GroqAdapter(ProviderAdapter):
    """OpenAI-style chat completion adapter for Groq."""

    @property
    def provider(self) -> Provider:
        return Provider.GROQ

    def endpoint(self, mode: DeliveryMode) -> str:
        # Same path for both modes; streaming is selected in the body.
        return f"{self._config.base_url}/chat/completions"

    def build_upstream_request(
        self,
        turns: List[ChatTurn],
        mode: DeliveryMode = DeliveryMode.BUFFERED,
    ) -> UpstreamRequest:
        api_key = self.require_credential()

        body = {
            "model": self.model,
            "messages": [{"role": t.role, "content": t.content} for t in turns],
            "stream": mode == DeliveryMode.STREAMED,
        }

        return UpstreamRequest(
            url=self.endpoint(mode),
            headers={
                "Content-Type": "application/json",
                "Authorization": f"Bearer {api_key}",
            },
            json_body=body,
        )

    def extract_text(self, data: Dict[str, Any]) -> ChatResponse:
        choices = data.get("choices") or []
        if not choices:
            return ChatResponse(text=NO_RESPONSE_TEXT, provider=self.provider.value)

        message = choices[0].get("message") or {}
        text = message.get("content") or NO_RESPONSE_TEXT
        return ChatResponse(text=text, provider=self.provider.value)
