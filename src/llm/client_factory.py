# src/llm/client_factory.py — v1
"""Factory: instantiate an oracle from a provider name.

The caller owns the returned instance and injects it into the
orchestrator and the graph builder; there is no module-level singleton.
"""

from __future__ import annotations

import importlib
import logging

from specweaver.config.settings import Settings
from specweaver.llm.base_client import BaseOracle

logger = logging.getLogger(__name__)

# Registry of provider name → adapter class path (lazy import).
_PROVIDER_REGISTRY: dict[str, str] = {
    "anthropic": "specweaver.llm.adapters.anthropic_adapter.AnthropicOracle",
}


class UnsupportedProviderError(ValueError):
    """Raised when a provider is not registered."""


def create_oracle(
    provider: str,
    model: str,
    settings: Settings | None = None,
    **kwargs: object,
) -> BaseOracle:
    """Instantiate the correct adapter from provider name.

    Args:
        provider: Provider identifier (anthropic, or a registered custom one).
        model: Model name (e.g. claude-sonnet-4-20250514).
        settings: Application settings (for API keys and token limits).
        **kwargs: Additional provider-specific arguments.

    Raises:
        UnsupportedProviderError: If provider is not registered.
    """
    if provider not in _PROVIDER_REGISTRY:
        raise UnsupportedProviderError(
            f"Unsupported LLM provider: {provider!r}. "
            f"Available: {', '.join(sorted(_PROVIDER_REGISTRY))}"
        )

    adapter_cls = _import_class(_PROVIDER_REGISTRY[provider])

    init_kwargs = dict(kwargs)
    init_kwargs["model"] = model
    if settings is not None and provider == "anthropic":
        init_kwargs.setdefault("api_key", settings.anthropic_api_key)
        init_kwargs.setdefault("max_tokens_default", settings.llm_max_tokens)

    logger.debug("Creating oracle: provider=%s, model=%s", provider, model)
    return adapter_cls(**init_kwargs)


def create_oracle_from_settings(settings: Settings) -> BaseOracle:
    """Instantiate the oracle configured by LLM_PROVIDER / LLM_MODEL."""
    return create_oracle(settings.llm_provider, settings.llm_model, settings)


def register_provider(name: str, class_path: str) -> None:
    """Register a custom provider adapter.

    Args:
        name: Provider identifier.
        class_path: Fully qualified class path implementing BaseOracle.
    """
    _PROVIDER_REGISTRY[name] = class_path
    logger.info("Registered oracle provider: %s → %s", name, class_path)


def _import_class(class_path: str) -> type:
    """Dynamically import a class from its fully qualified path."""
    module_path, class_name = class_path.rsplit(".", 1)
    module = importlib.import_module(module_path)
    return getattr(module, class_name)
