"""
Normalized response models for the chat proxy.
"""

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict

NO_RESPONSE_TEXT = "No response"
BLOCKED_TEXT_TEMPLATE = "I am unable to provide a response. Reason: {reason}"
UNKNOWN_BLOCK_REASON = "Unknown"


class ChatResponse(BaseModel):
    """
    Buffered reply from a provider, flattened to a single string.

    A blocked response is still a successful reply: the text explains
    why the provider withheld content.
    """
    model_config = ConfigDict(frozen=True)

    text: str
    blocked: bool = False
    block_reason: Optional[str] = None
    provider: Optional[str] = None

    @classmethod
    def filtered(cls, reason: Optional[str], provider: Optional[str] = None) -> "ChatResponse":
        """Build the explanatory reply for content withheld by the provider."""
        reason = reason or UNKNOWN_BLOCK_REASON
        return cls(
            text=BLOCKED_TEXT_TEMPLATE.format(reason=reason),
            blocked=True,
            block_reason=reason,
            provider=provider,
        )

    def to_payload(self) -> Dict[str, Any]:
        """Body returned to the browser."""
        return {"response": self.text}
