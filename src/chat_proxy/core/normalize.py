"""
Inbound body validation and turn normalization.

Browser clients send chat history in a few shapes: OpenAI-style
``{role, content}`` turns, or legacy ``{sender, text}`` turns where
``sender == "ai"`` marks the assistant. Everything is folded into
:class:`ChatTurn` here before any provider sees it.
"""

from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from ..models.request import ChatRequest, ChatTurn, Provider, PROVIDER_ALIASES
from .errors import InvalidRequestError


# Body keys that may carry the chat history, in order of precedence.
HISTORY_FIELDS = ("history", "messages")


def resolve_provider(selector: Any) -> Provider:
    """Map the ``ai`` selector from the request body to a Provider."""
    if not selector:
        raise InvalidRequestError("Missing 'ai' field (groq or gemini)")

    provider = PROVIDER_ALIASES.get(str(selector).strip().lower())
    if provider is None:
        raise InvalidRequestError(f"Unknown AI selected: {selector!r}")
    return provider


def normalize_turn(raw: Any) -> Optional[ChatTurn]:
    """
    Convert one raw history entry into a ChatTurn.

    Returns None for system turns without content; those are dropped.
    User and assistant turns without content pass through as empty text.
    """
    if not isinstance(raw, dict):
        raise InvalidRequestError("Invalid chat history provided")

    role = raw.get("role") or ("assistant" if raw.get("sender") == "ai" else "user")
    content = raw.get("content") or raw.get("text") or ""

    if not isinstance(content, str):
        raise InvalidRequestError("Message content must be text")

    if role == "system" and not content:
        return None

    try:
        return ChatTurn(role=role, content=content)
    except ValidationError:
        raise InvalidRequestError(f"Unsupported message role: {role!r}")


def normalize_turns(raw_turns: List[Any]) -> List[ChatTurn]:
    """Normalize a raw history array, preserving order."""
    turns = []
    for raw in raw_turns:
        turn = normalize_turn(raw)
        if turn is not None:
            turns.append(turn)
    return turns


def _find_history(body: Dict[str, Any]) -> Optional[List[Any]]:
    for field in HISTORY_FIELDS:
        value = body.get(field)
        if isinstance(value, list):
            return value
    return None


def parse_chat_body(body: Any, streaming: bool = False) -> ChatRequest:
    """
    Validate a decoded JSON body and build a ChatRequest from it.

    Raises:
        InvalidRequestError: missing/unknown provider or unusable history
    """
    if not isinstance(body, dict):
        raise InvalidRequestError("Request body must be a JSON object")

    provider = resolve_provider(body.get("ai"))

    raw_turns = _find_history(body)
    if not raw_turns:
        raise InvalidRequestError("Invalid chat history provided")

    turns = normalize_turns(raw_turns)
    if not turns:
        raise InvalidRequestError("Invalid chat history provided")

    return ChatRequest(provider=provider, turns=turns, streaming=streaming)
