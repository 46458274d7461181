"""Tests for settings loading and the adapter factory."""

import pytest

from gai.errors import ConfigurationError
from gai.llm import service
from gai.llm.ollama_adapter import OllamaAdapter
from gai.llm.openai_adapter import OpenAIAdapter
from gai.llm.provider_config import LLMSettings, get_conversations_file_path, load_settings


@pytest.fixture
def clean_env(monkeypatch):
    for name in (
        "GAI_PROVIDER", "GAI_MODEL", "OPENAI_API_KEY", "GAI_API_KEY", "GAI_BASE_URL",
        "GAI_TEMPERATURE", "GAI_MAX_TOKENS", "GAI_SYSTEM_PROMPT", "GAI_SYSTEM_ROLE",
        "GAI_CONTEXT", "GAI_APP_DIR",
    ):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


def test_load_settings_defaults(clean_env):
    settings = load_settings()

    assert settings.temperature == 0.3
    assert settings.max_tokens is None
    assert settings.system_role == "system"
    assert settings.api_key is None


def test_load_settings_env_and_overrides(clean_env):
    clean_env.setenv("GAI_TEMPERATURE", "0.7")
    clean_env.setenv("GAI_MAX_TOKENS", "0")
    clean_env.setenv("OPENAI_API_KEY", "sk-env")

    settings = load_settings(temperature=1.2, model=None)

    assert settings.temperature == 1.2
    assert settings.max_tokens is None
    assert settings.api_key == "sk-env"


def test_load_settings_rejects_bad_values(clean_env):
    clean_env.setenv("GAI_TEMPERATURE", "warm")
    with pytest.raises(ConfigurationError):
        load_settings()


def test_load_settings_rejects_unknown_override(clean_env):
    with pytest.raises(ConfigurationError):
        load_settings(colour="blue")


def test_conversations_file_path(tmp_path):
    settings = LLMSettings(app_dir=str(tmp_path / "gai"))
    assert get_conversations_file_path(settings) == str(tmp_path / "gai" / ".conversations.yaml")


def test_default_adapter_is_openai_with_initial_model():
    adapter = service.create_adapter(settings=LLMSettings(api_key="sk"))

    assert isinstance(adapter, OpenAIAdapter)
    assert adapter.chat_model == "gpt-4.1-mini"


def test_model_prefix_selects_provider():
    adapter = service.create_adapter(settings=LLMSettings(model="ollama:llama3.1:8b"))

    assert isinstance(adapter, OllamaAdapter)
    assert adapter.chat_model == "llama3.1:8b"


def test_bare_model_name_is_kept():
    adapter = service.create_adapter("ollama", LLMSettings(model="qwen3:4b"))
    assert adapter.chat_model == "qwen3:4b"


def test_unknown_provider():
    with pytest.raises(ConfigurationError):
        service.create_adapter("anthropic", LLMSettings())


def test_listing_adapters_use_defaults_for_other_provider():
    settings = LLMSettings(model="openai:gpt-4o", api_key="sk", base_url="https://proxy.example.com")

    adapters = {a.provider: a for a in service.create_listing_adapters(settings)}

    assert adapters["openai"].base_url == "https://proxy.example.com"
    assert adapters["ollama"].base_url == "http://localhost:11434"
    assert adapters["ollama"].chat_model == "llama3.1:8b"
