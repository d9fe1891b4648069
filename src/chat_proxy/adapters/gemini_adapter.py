"""
Google Gemini adapter.

Gemini's generateContent API differs from the OpenAI shape in three
ways: the system prompt travels as a separate ``systemInstruction``,
the assistant role is called ``model``, and text sits inside ``parts``.
Safety settings and generation parameters are fixed per deployment and
sent with every request.
"""

import logging
from typing import Any, Dict, List, Optional, Tuple

from ..core.config import SAFETY_CATEGORIES
from ..core.interface import ProviderAdapter
from ..models.request import ChatTurn, DeliveryMode, Provider, UpstreamRequest
from ..models.response import ChatResponse

logger = logging.getLogger(__name__)


class GeminiAdapter(ProviderAdapter):
    """
    Gemini generateContent adapter.

    The API key is passed as the ``key`` query parameter. Streamed
    requests go to ``:streamGenerateContent`` with ``alt=sse`` so the
    relayed body is server-sent-event framed like Groq's.
    """

    @property
    def provider(self) -> Provider:
        return Provider.GEMINI

    def endpoint(self, mode: DeliveryMode) -> str:
        method = "streamGenerateContent" if mode == DeliveryMode.STREAMED else "generateContent"
        return f"{self._config.base_url}/models/{self.model}:{method}"

    def _build_contents(self, turns: List[ChatTurn]) -> Tuple[List[Dict[str, Any]], Optional[str]]:
        """Split turns into Gemini contents and the system instruction text."""
        contents = []
        system_text: Optional[str] = None

        for turn in turns:
            if turn.role == "system":
                # Later system turns replace earlier ones.
                if system_text is not None:
                    logger.debug("Multiple system turns; keeping the last one")
                system_text = turn.content
                continue

            contents.append({
                "role": "model" if turn.role == "assistant" else "user",
                "parts": [{"text": turn.content}],
            })

        return contents, system_text

    def _safety_settings(self) -> List[Dict[str, str]]:
        return [
            {"category": category, "threshold": self._config.safety_threshold}
            for category in SAFETY_CATEGORIES
        ]

    def _generation_config(self) -> Dict[str, Any]:
        return {
            "temperature": self._config.temperature,
            "topK": self._config.top_k,
            "topP": self._config.top_p,
            "maxOutputTokens": self._config.max_output_tokens,
        }

    def build_upstream_request(
        self,
        turns: List[ChatTurn],
        mode: DeliveryMode = DeliveryMode.BUFFERED,
    ) -> UpstreamRequest:
        api_key = self.require_credential()

        contents, system_text = self._build_contents(turns)

        body: Dict[str, Any] = {"contents": contents}
        if system_text is not None:
            body["systemInstruction"] = {"parts": [{"text": system_text}]}
        body["safetySettings"] = self._safety_settings()
        body["generationConfig"] = self._generation_config()

        params = {"key": api_key}
        if mode == DeliveryMode.STREAMED:
            params["alt"] = "sse"

        return UpstreamRequest(
            url=self.endpoint(mode),
            headers={"Content-Type": "application/json"},
            params=params,
            json_body=body,
        )

    def extract_text(self, data: Dict[str, Any]) -> ChatResponse:
        candidates = data.get("candidates") or []
        content = (candidates[0].get("content") or {}) if candidates else {}
        parts = content.get("parts")

        if not parts:
            feedback = data.get("promptFeedback") or {}
            reason = feedback.get("blockReason")
            logger.info(f"Gemini withheld content, block reason: {reason or 'Unknown'}")
            return ChatResponse.filtered(reason, provider=self.provider.value)

        text = "\n".join(part.get("text", "") for part in parts)
        return ChatResponse(text=text, provider=self.provider.value)
