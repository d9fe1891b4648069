"""
Normalized request models for the chat proxy.
"""

from enum import Enum
from typing import Any, Dict, List, Literal

from pydantic import BaseModel, ConfigDict, Field


class Provider(str, Enum):
    """Upstream chat-completion services the proxy can talk to."""
    GROQ = "groq"
    GEMINI = "gemini"


# Selector values accepted from browser clients, including legacy spellings.
PROVIDER_ALIASES: Dict[str, Provider] = {
    "groq": Provider.GROQ,
    "grok": Provider.GROQ,
    "gemini": Provider.GEMINI,
}


class DeliveryMode(str, Enum):
    """How the reply is delivered back to the caller."""
    BUFFERED = "buffered"
    STREAMED = "streamed"


Role = Literal["system", "user", "assistant"]


class ChatTurn(BaseModel):
    """One message in a conversation."""
    model_config = ConfigDict(frozen=True)

    role: Role
    content: str = ""


class ChatRequest(BaseModel):
    """
    Normalized input to the gateway.

    Turns are kept in conversational order and are never empty.
    """
    model_config = ConfigDict(frozen=True)

    provider: Provider
    turns: List[ChatTurn] = Field(..., min_length=1)
    streaming: bool = False

    @property
    def mode(self) -> DeliveryMode:
        return DeliveryMode.STREAMED if self.streaming else DeliveryMode.BUFFERED


class UpstreamRequest(BaseModel):
    """A fully built outbound call to a provider."""
    url: str
    headers: Dict[str, str] = Field(default_factory=dict)
    params: Dict[str, str] = Field(default_factory=dict)
    json_body: Dict[str, Any] = Field(default_factory=dict)
    method: str = "POST"
