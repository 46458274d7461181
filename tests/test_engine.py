"""Tests for the chat / prompt / list_models entrypoints."""

import json
import os
from unittest.mock import MagicMock, patch

import pytest
import requests

from conftest import make_response
from gai.core import engine
from gai.core.conversation_types import text_turn
from gai.errors import ConfigurationError, HTTPError
from gai.llm.base import ChatOptions, RequestOptions
from gai.llm.models import AIModel
from gai.llm.ollama_adapter import OllamaAdapter
from gai.llm.openai_adapter import OpenAIAdapter
from gai.memory.chat_session import ChatSession
from gai.memory.conversation_store import ConversationStore


def _openai_reply(text, model="gpt-4.1-mini"):
    return make_response(json_data={"model": model, "choices": [{"message": {"content": text}}]})


@pytest.fixture
def adapter(openai_settings):
    return OpenAIAdapter(openai_settings, "gpt-4.1-mini")


def test_chat_appends_and_persists(session, adapter, store_path, workdir):
    with patch("gai.llm.client.requests.post", return_value=_openai_reply("hello")):
        reply, history = engine.chat(session, adapter, "hi")

    assert reply == "hello"
    assert [(t.role, t.text()) for t in history] == [("user", "hi"), ("assistant", "hello")]

    reloaded = ChatSession(ConversationStore(store_path), working_directory=workdir)
    assert reloaded.get_conversation() == history


def test_chat_replays_full_history(session, adapter):
    with patch("gai.llm.client.requests.post", side_effect=[_openai_reply("one"), _openai_reply("two")]) as post:
        engine.chat(session, adapter, "first")
        engine.chat(session, adapter, "second")

    sent = json.loads(post.call_args.kwargs["data"])
    assert [m["role"] for m in sent["messages"]] == ["user", "assistant", "user"]
    assert sent["messages"][1]["content"] == [{"type": "text", "text": "one"}]
    assert len(session.get_conversation()) == 4


def test_chat_injects_system_prompt_once(session, adapter):
    options = ChatOptions(system_prompt="Answer in one word.")

    with patch("gai.llm.client.requests.post", side_effect=[_openai_reply("a"), _openai_reply("b")]) as post:
        engine.chat(session, adapter, "first", options)
        engine.chat(session, adapter, "second", options)

    roles = [t.role for t in session.get_conversation()]
    assert roles == ["system", "user", "assistant", "user", "assistant"]

    first_request = json.loads(post.call_args_list[0].kwargs["data"])
    assert first_request["messages"][0] == {"role": "system", "content": [{"type": "text", "text": "Answer in one word."}]}


def test_chat_uses_configured_system_prompt_and_role(session, openai_settings):
    openai_settings.system_prompt = "Be kind."
    openai_settings.system_role = "developer"
    adapter = OpenAIAdapter(openai_settings, "o3-mini")

    with patch("gai.llm.client.requests.post", return_value=_openai_reply("ok")):
        _, history = engine.chat(session, adapter, "hi")

    assert (history[0].role, history[0].text()) == ("developer", "Be kind.")


def test_chat_no_save(session, adapter, store_path):
    with patch("gai.llm.client.requests.post", return_value=_openai_reply("hello")):
        engine.chat(session, adapter, "hi", ChatOptions(no_save=True))

    assert len(session.get_conversation()) == 2
    assert not os.path.exists(store_path)


def test_failed_request_is_not_persisted(session, adapter, store_path):
    failing = make_response(status_code=500, json_data={}, text="upstream error")

    with patch("gai.llm.client.requests.post", return_value=failing):
        with pytest.raises(HTTPError):
            engine.chat(session, adapter, "hi", ChatOptions(system_prompt="sys"))

    assert session.get_conversation() == []
    assert not os.path.exists(store_path)


def test_transport_error_propagates(session, adapter):
    with patch("gai.llm.client.requests.post", side_effect=requests.ConnectionError("refused")):
        with pytest.raises(requests.ConnectionError):
            engine.chat(session, adapter, "hi")

    assert session.get_conversation() == []


def test_chat_missing_key_fails_before_io(session, openai_settings):
    openai_settings.api_key = ""
    adapter = OpenAIAdapter(openai_settings, "gpt-4.1-mini")

    with patch("gai.llm.client.requests.post") as post:
        with pytest.raises(ConfigurationError):
            engine.chat(session, adapter, "hi")

    post.assert_not_called()


def test_prompt_is_stateless(adapter, store_path):
    with patch("gai.llm.client.requests.post", return_value=_openai_reply("4", model="gpt-4.1-mini-2025")) as post:
        reply, model = engine.prompt(adapter, "2+2?", RequestOptions(system_prompt="Only digits."))

    assert (reply, model) == ("4", "gpt-4.1-mini-2025")
    sent = json.loads(post.call_args.kwargs["data"])
    assert [m["role"] for m in sent["messages"]] == ["system", "user"]
    assert not os.path.exists(store_path)


def test_prompt_with_ollama(ollama_settings):
    adapter = OllamaAdapter(ollama_settings, "llama3.1:8b")
    reply = make_response(json_data={"model": "llama3.1:8b", "message": {"content": "pong"}})

    with patch("gai.llm.client.requests.post", return_value=reply):
        assert engine.prompt(adapter, "ping") == ("pong", "llama3.1:8b")


def test_list_models_merges_sorts_and_skips_failures():
    good = MagicMock(provider="openai")
    good.list_models.return_value = [AIModel("openai", "gpt-4o"), AIModel("openai", "GPT-4.1")]
    other = MagicMock(provider="ollama")
    other.list_models.return_value = [AIModel("ollama", "llama3.1:8b")]
    down = MagicMock(provider="ollama")
    down.list_models.side_effect = requests.ConnectionError("refused")

    models = engine.list_models([good, down, other])

    assert [m.full_name for m in models] == ["ollama:llama3.1:8b", "openai:GPT-4.1", "openai:gpt-4o"]


def test_open_session_uses_settings_context(openai_settings, store, workdir):
    openai_settings.context = "Release Notes"
    store.ensure_context(workdir, "release-notes").append(text_turn("user", "earlier"))

    session = engine.open_session(openai_settings, store=store, directory=workdir)

    assert session.context_id == "release-notes"
    assert [t.text() for t in session.get_conversation()] == ["earlier"]
