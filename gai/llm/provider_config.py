"""Provider/runtime configuration for the LLM layer.

Architectural role:
    Centralizes provider/model selection, generation parameters and application
    paths for `gai.llm.service`, the provider adapters and the conversation store.

Resolution order:
    Keyword overrides passed to `load_settings` (the CLI flag layer) win over
    environment variables, which win over the defaults below. A `.env` file in the
    working directory is loaded at import time.

Relevant environment variables:
    - `GAI_PROVIDER`, `GAI_MODEL`
    - `OPENAI_API_KEY` (fallback `GAI_API_KEY`)
    - `GAI_BASE_URL`
    - `GAI_TEMPERATURE`, `GAI_MAX_TOKENS`
    - `GAI_SYSTEM_PROMPT`, `GAI_SYSTEM_ROLE`
    - `GAI_CONTEXT`
    - `GAI_APP_DIR`

Failure behavior:
    Non-numeric temperature or token values raise `ConfigurationError`.
"""

import os
from dataclasses import dataclass
from typing import Any

from dotenv import load_dotenv

from gai.errors import ConfigurationError

load_dotenv()


PROVIDER_OPENAI = "openai"
PROVIDER_OLLAMA = "ollama"
PROVIDERS = (PROVIDER_OLLAMA, PROVIDER_OPENAI)
DEFAULT_PROVIDER = PROVIDER_OPENAI

# Initial chat models, used when no model is configured.
INITIAL_CHAT_MODELS = {
    PROVIDER_OLLAMA: "ollama:llama3.1:8b",
    PROVIDER_OPENAI: "openai:gpt-4.1-mini",
}

DEFAULT_BASE_URLS = {
    PROVIDER_OLLAMA: "http://localhost:11434",
    PROVIDER_OPENAI: "https://api.openai.com",
}

DEFAULT_TEMPERATURE = 0.3
DEFAULT_SYSTEM_ROLE = "system"
DEFAULT_RESPONSE_SCHEMA_NAME = "GaiResponseSchema"

CONVERSATIONS_FILE_NAME = ".conversations.yaml"


@dataclass
class LLMSettings:
    """Capability object read by adapters and sessions.

    Attributes:
        provider: Explicit provider, or `None` to derive it from the model prefix.
        model: Model id, optionally prefixed with `<provider>:`.
        api_key: Bearer token for key-authenticated backends.
        base_url: Backend base URL; `None` uses the provider default.
        temperature: Sampling temperature.
        max_tokens: Completion token cap; `None` lets the backend decide.
        system_prompt: Prompt injected into empty conversations.
        system_role: Role name of the injected turn.
        context: Default conversation context name.
        app_dir: Application directory holding the conversations file.
    """

    provider: str | None = None
    model: str | None = None
    api_key: str | None = None
    base_url: str | None = None
    temperature: float = DEFAULT_TEMPERATURE
    max_tokens: int | None = None
    system_prompt: str = ""
    system_role: str = DEFAULT_SYSTEM_ROLE
    context: str = ""
    app_dir: str | None = None

    def get_base_url(self, provider: str) -> str:
        base_url = (self.base_url or "").strip()
        if not base_url:
            base_url = DEFAULT_BASE_URLS.get(provider, "")
        return base_url.rstrip("/")


def _getenv(name: str) -> str:
    return (os.getenv(name) or "").strip()


def _parse_float(name: str, value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError) as err:
        raise ConfigurationError(f"{name} must be a number, got '{value}'") from err


def _parse_int(name: str, value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError) as err:
        raise ConfigurationError(f"{name} must be an integer, got '{value}'") from err


def load_settings(**overrides: Any) -> LLMSettings:
    """Build `LLMSettings` from the environment, then apply non-`None` overrides.

    Args:
        **overrides: Any `LLMSettings` field, typically taken from CLI flags.

    Returns:
        Fully resolved settings.

    Raises:
        ConfigurationError: unknown override names or non-numeric values.
    """
    unknown = set(overrides) - set(LLMSettings.__dataclass_fields__)
    if unknown:
        raise ConfigurationError(f"unknown settings: {', '.join(sorted(unknown))}")

    settings = LLMSettings(
        provider=_getenv("GAI_PROVIDER").lower() or None,
        model=_getenv("GAI_MODEL") or None,
        api_key=_getenv("OPENAI_API_KEY") or _getenv("GAI_API_KEY") or None,
        base_url=_getenv("GAI_BASE_URL") or None,
        system_prompt=_getenv("GAI_SYSTEM_PROMPT"),
        system_role=_getenv("GAI_SYSTEM_ROLE") or DEFAULT_SYSTEM_ROLE,
        context=_getenv("GAI_CONTEXT"),
        app_dir=_getenv("GAI_APP_DIR") or None,
    )

    temperature = _getenv("GAI_TEMPERATURE")
    if temperature:
        settings.temperature = _parse_float("GAI_TEMPERATURE", temperature)

    max_tokens = _getenv("GAI_MAX_TOKENS")
    if max_tokens:
        settings.max_tokens = _parse_int("GAI_MAX_TOKENS", max_tokens)

    for name, value in overrides.items():
        if value is not None:
            setattr(settings, name, value)

    settings.temperature = _parse_float("temperature", settings.temperature)
    if settings.max_tokens is not None:
        settings.max_tokens = _parse_int("max_tokens", settings.max_tokens)
        if settings.max_tokens <= 0:
            settings.max_tokens = None

    return settings


def get_app_dir(settings: LLMSettings | None = None) -> str:
    """Return the application directory (`~/.gai` unless configured). Not created here."""
    app_dir = settings.app_dir if settings else None
    if not app_dir:
        app_dir = _getenv("GAI_APP_DIR")
    if not app_dir:
        app_dir = os.path.join(os.path.expanduser("~"), ".gai")
    return os.path.abspath(os.path.expanduser(app_dir))


def get_conversations_file_path(settings: LLMSettings | None = None) -> str:
    return os.path.join(get_app_dir(settings), CONVERSATIONS_FILE_NAME)
