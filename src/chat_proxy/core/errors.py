"""
Chat proxy error types.

Each error knows the HTTP status it maps to and the JSON body the
proxy returns for it.
"""

from typing import Any, Dict, Optional


class GatewayError(Exception):
    """Base exception for chat proxy errors."""

    status_code: int = 500

    def __init__(self, message: str, provider: Optional[str] = None):
        self.message = message
        self.provider = provider
        super().__init__(message)

    def to_payload(self) -> Dict[str, Any]:
        return {"error": self.message}


class InvalidRequestError(GatewayError):
    """Raised when the inbound chat request is malformed."""

    status_code = 400


class ConfigError(GatewayError):
    """Raised when a provider credential is missing from configuration."""

    status_code = 500


class UpstreamError(GatewayError):
    """Raised when the provider answers with a non-success status."""

    def __init__(self, status_code: int, details: str, provider: Optional[str] = None):
        super().__init__("Upstream API error", provider)
        self.status_code = status_code
        self.details = details

    def to_payload(self) -> Dict[str, Any]:
        return {"error": self.message, "details": self.details}


class GatewayConnectionError(GatewayError):
    """Raised when the provider cannot be reached or times out."""

    status_code = 500

    def to_payload(self) -> Dict[str, Any]:
        return {"error": "Server error", "details": self.message}
