"""
Configuration loading for the chat proxy.

Provider settings come from a YAML file when one is available and from
built-in defaults otherwise. Credentials are resolved from the process
environment once, at startup, and carried in the returned config so the
gateway itself never touches ``os.environ``.
"""

import os
import logging
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

import yaml

from ..models.request import Provider

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATHS = [
    Path("config/chat-proxy/providers.yaml"),
    Path("/etc/chat-proxy/providers.yaml"),
]

SAFETY_CATEGORIES = (
    "HARM_CATEGORY_HARASSMENT",
    "HARM_CATEGORY_HATE_SPEECH",
    "HARM_CATEGORY_SEXUALLY_EXPLICIT",
    "HARM_CATEGORY_DANGEROUS_CONTENT",
)


@dataclass(frozen=True)
class ProviderConfig:
    """Static settings for one upstream provider."""
    provider: Provider
    base_url: str
    model: str
    api_key_env: str
    api_key: Optional[str] = None
    # None defers to the service-wide UPSTREAM_TIMEOUT_SECONDS
    timeout: Optional[float] = None
    max_output_tokens: int = 1024
    temperature: float = 0.7
    top_k: int = 1
    top_p: float = 1.0
    safety_threshold: str = "BLOCK_MEDIUM_AND_ABOVE"

    @property
    def has_credential(self) -> bool:
        return bool(self.api_key)


@dataclass(frozen=True)
class GatewayConfig:
    """Complete provider configuration, read-only after startup."""
    providers: Dict[Provider, ProviderConfig] = field(default_factory=dict)

    def get(self, provider: Provider) -> Optional[ProviderConfig]:
        return self.providers.get(provider)


@dataclass
class ServiceSettings:
    """Process-level settings for the HTTP service."""

    host: str = os.getenv("HOST", "0.0.0.0")
    port: int = int(os.getenv("PORT", "8080"))
    log_level: str = os.getenv("LOG_LEVEL", "INFO")

    config_path: Optional[str] = os.getenv("CHAT_PROXY_CONFIG")
    cors_allow_origins: List[str] = field(
        default_factory=lambda: [
            o.strip() for o in os.getenv("CORS_ALLOW_ORIGINS", "*").split(",") if o.strip()
        ]
    )

    # OpenTelemetry; tracing is off unless an endpoint is configured
    otel_endpoint: Optional[str] = os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT")

    upstream_timeout: float = float(os.getenv("UPSTREAM_TIMEOUT_SECONDS", "60"))


settings = ServiceSettings()


def default_provider_configs() -> Dict[Provider, ProviderConfig]:
    """Built-in provider defaults, without credentials."""
    return {
        Provider.GROQ: ProviderConfig(
            provider=Provider.GROQ,
            base_url="https://api.groq.com/openai/v1",
            model="llama-3.3-70b-versatile",
            api_key_env="GROQ_API_KEY",
        ),
        Provider.GEMINI: ProviderConfig(
            provider=Provider.GEMINI,
            base_url="https://generativelanguage.googleapis.com/v1beta",
            model="gemini-1.5-flash-latest",
            api_key_env="GEMINI_API_KEY",
        ),
    }


def load_config(
    config_path: Optional[str] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> GatewayConfig:
    """
    Load provider configuration.

    Args:
        config_path: Path to a YAML config file. If None, tries
            ``CHAT_PROXY_CONFIG`` and then the default locations.
        environ: Mapping credentials are read from (defaults to os.environ)

    Returns:
        Loaded configuration with credentials resolved
    """
    if environ is None:
        environ = os.environ

    if config_path is None:
        config_path = environ.get("CHAT_PROXY_CONFIG")

    if config_path is None:
        for p in DEFAULT_CONFIG_PATHS:
            if p.exists():
                config_path = str(p)
                break

    if config_path is None or not Path(config_path).exists():
        logger.warning("No chat proxy config file found, using defaults")
        return _resolve_credentials(default_provider_configs(), environ)

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}

        providers = _parse_config(data, environ)

    except (OSError, yaml.YAMLError, KeyError, ValueError, TypeError) as e:
        logger.error(f"Failed to load config from {config_path}: {e}")
        providers = default_provider_configs()

    return _resolve_credentials(providers, environ)


def config_from_dict(
    data: Dict[str, Any],
    environ: Optional[Mapping[str, str]] = None,
) -> GatewayConfig:
    """Build a GatewayConfig from an already-parsed mapping."""
    if environ is None:
        environ = os.environ
    return _resolve_credentials(_parse_config(data, environ), environ)


def _expand_env(value: Any, environ: Mapping[str, str]) -> Any:
    """Expand a ``${VAR}`` placeholder; other values pass through."""
    if isinstance(value, str) and value.startswith("${") and value.endswith("}"):
        return environ.get(value[2:-1], "")
    return value


def _parse_config(
    data: Dict[str, Any],
    environ: Mapping[str, str],
) -> Dict[Provider, ProviderConfig]:
    """Parse configuration dictionary on top of the built-in defaults."""
    providers = default_provider_configs()

    for entry in data.get("providers", []):
        provider = Provider(entry["provider"])
        base = providers[provider]

        api_key_env = entry.get("api_key_env", base.api_key_env)
        raw_key = entry.get("api_key")
        if isinstance(raw_key, str) and raw_key.startswith("${") and raw_key.endswith("}"):
            api_key_env = raw_key[2:-1]

        providers[provider] = replace(
            base,
            base_url=entry.get("base_url", base.base_url).rstrip("/"),
            model=entry.get("model", base.model),
            api_key_env=api_key_env,
            api_key=_expand_env(raw_key, environ) or None,
            timeout=float(entry["timeout"]) if entry.get("timeout") is not None else base.timeout,
            max_output_tokens=int(entry.get("max_output_tokens", base.max_output_tokens)),
            temperature=float(entry.get("temperature", base.temperature)),
            top_k=int(entry.get("top_k", base.top_k)),
            top_p=float(entry.get("top_p", base.top_p)),
            safety_threshold=entry.get("safety_threshold", base.safety_threshold),
        )

    return providers


def _resolve_credentials(
    providers: Dict[Provider, ProviderConfig],
    environ: Mapping[str, str],
) -> GatewayConfig:
    """Fill in any credential not set by the file from the environment."""
    resolved = {}
    for provider, pcfg in providers.items():
        if not pcfg.api_key:
            pcfg = replace(pcfg, api_key=environ.get(pcfg.api_key_env) or None)
        resolved[provider] = pcfg
    return GatewayConfig(providers=resolved)
