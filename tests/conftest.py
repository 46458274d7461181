"""Shared fixtures: temporary store, resolved settings and fake HTTP responses."""

import io
import wave
from unittest.mock import MagicMock

import pytest
from PIL import Image

from gai.llm.provider_config import LLMSettings
from gai.memory.chat_session import ChatSession
from gai.memory.conversation_store import ConversationStore


@pytest.fixture
def store_path(tmp_path):
    return str(tmp_path / "app" / ".conversations.yaml")


@pytest.fixture
def store(store_path):
    return ConversationStore(store_path).load()


@pytest.fixture
def workdir(tmp_path):
    path = tmp_path / "project"
    path.mkdir()
    return str(path)


@pytest.fixture
def session(store, workdir):
    return ChatSession(store, working_directory=workdir)


@pytest.fixture
def openai_settings(tmp_path):
    return LLMSettings(
        provider="openai",
        model="openai:gpt-4.1-mini",
        api_key="sk-test",
        app_dir=str(tmp_path / "app"),
    )


@pytest.fixture
def ollama_settings(tmp_path):
    return LLMSettings(
        provider="ollama",
        model="llama3.1:8b",
        app_dir=str(tmp_path / "app"),
    )


def make_response(status_code=200, json_data=None, text=""):
    """Stand-in for `requests.Response` as read by `gai.llm.client`."""
    response = MagicMock()
    response.status_code = status_code
    response.text = text
    if json_data is None:
        response.json.side_effect = ValueError("Expecting value")
    else:
        response.json.return_value = json_data
    return response


def make_image(fmt, size=(4, 3), color=(200, 10, 10)):
    img = Image.new("RGB", size, color)
    out = io.BytesIO()
    img.save(out, format=fmt)
    return out.getvalue()


def make_wav(frames=b"\x00\x00" * 32):
    out = io.BytesIO()
    with wave.open(out, "wb") as w:
        w.setnchannels(1)
        w.setsampwidth(2)
        w.setframerate(8000)
        w.writeframes(frames)
    return out.getvalue()
