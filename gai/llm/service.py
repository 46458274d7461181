"""Adapter factory for LLM invocation.

Architectural role:
    Turns resolved `LLMSettings` into a concrete `ProviderAdapter`. This module is
    the only place that knows which adapter class serves which provider.

Provider resolution:
    explicit `provider` argument -> `settings.provider` -> `<provider>:` prefix of
    the configured model -> `DEFAULT_PROVIDER`.

Model resolution:
    `settings.model`, else the provider's initial chat model. A leading
    `<provider>:` prefix naming the owning provider is stripped; other colons
    (`llama3.1:8b`) are kept.

Failure behavior:
    Unknown providers raise `ConfigurationError`. Missing API keys are reported by
    the adapter itself, before any network call.
"""

import dataclasses
import logging

from gai.errors import ConfigurationError
from gai.llm.base import ProviderAdapter
from gai.llm.ollama_adapter import OllamaAdapter
from gai.llm.openai_adapter import OpenAIAdapter
from gai.llm.provider_config import DEFAULT_PROVIDER, INITIAL_CHAT_MODELS, PROVIDERS, LLMSettings, load_settings


logger = logging.getLogger(__name__)

ADAPTERS: dict[str, type[ProviderAdapter]] = {
    OllamaAdapter.provider: OllamaAdapter,
    OpenAIAdapter.provider: OpenAIAdapter,
}


def _model_prefix(model: str | None) -> str | None:
    prefix, sep, _ = (model or "").partition(":")
    prefix = prefix.strip().lower()
    if sep and prefix in PROVIDERS:
        return prefix
    return None


def resolve_provider(settings: LLMSettings, provider: str | None = None) -> str:
    """Return the provider name for `settings`, see module docstring for order."""
    name = (provider or settings.provider or _model_prefix(settings.model) or DEFAULT_PROVIDER).strip().lower()
    if name not in ADAPTERS:
        raise ConfigurationError(f"unknown provider '{name}', expected one of: {', '.join(PROVIDERS)}")
    return name


def resolve_model(settings: LLMSettings, provider: str) -> str:
    """Return the bare model name to send to `provider`."""
    model = (settings.model or "").strip() or INITIAL_CHAT_MODELS.get(provider, "")

    prefix = f"{provider}:"
    if model.lower().startswith(prefix):
        model = model[len(prefix):]

    return model.strip()


def create_adapter(provider: str | None = None, settings: LLMSettings | None = None) -> ProviderAdapter:
    """Build the adapter for the configured (or given) provider.

    Args:
        provider: Overrides the provider derived from `settings`.
        settings: Resolved settings; loaded from the environment when omitted.

    Returns:
        A ready adapter. Configuration is validated lazily, before the first call.
    """
    settings = settings or load_settings()

    name = resolve_provider(settings, provider)
    adapter = ADAPTERS[name](settings, resolve_model(settings, name))

    logger.debug("Using %s adapter with model '%s'", name, adapter.chat_model)
    return adapter


def create_listing_adapters(settings: LLMSettings | None = None) -> list[ProviderAdapter]:
    """One adapter per known provider, for `gai.core.engine.list_models`.

    A configured model and base URL only apply to the provider they belong to;
    every other provider gets its defaults.
    """
    settings = settings or load_settings()
    owner = resolve_provider(settings)

    adapters = []
    for name in PROVIDERS:
        if name == owner:
            adapters.append(create_adapter(name, settings))
        else:
            defaults = dataclasses.replace(settings, model=None, base_url=None)
            adapters.append(create_adapter(name, defaults))

    return adapters
