"""
Provider adapters for upstream chat APIs.
"""

from .groq_adapter import GroqAdapter
from .gemini_adapter import GeminiAdapter

__all__ = [
    "GroqAdapter",
    "GeminiAdapter",
]
