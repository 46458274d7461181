"""Tests for the YAML conversation repository."""

import os

import pytest
import yaml

from gai.core.conversation_types import ContentItem, ContentKind, ConversationItem, Role, text_turn
from gai.errors import DecodeError
from gai.memory.conversation_store import ConversationStore, slugify_context_name


def test_missing_file_is_empty_repository(store_path):
    store = ConversationStore(store_path).load()

    assert store.directories() == []
    assert not os.path.exists(store_path)


def test_save_then_load_in_fresh_store(store, store_path, workdir):
    ctx = store.ensure_context(workdir, "")
    ctx.append(text_turn(Role.USER.value, "hi", model="gpt-4.1-mini"))
    ctx.append(text_turn(Role.ASSISTANT.value, "hello", model="gpt-4.1-mini"))
    store.save()

    reloaded = ConversationStore(store_path).load()
    turns = reloaded.ensure_context(workdir, "").turns

    assert [(t.role, t.text()) for t in turns] == [("user", "hi"), ("assistant", "hello")]
    assert turns == ctx.turns


def test_persisted_layout(store, store_path, workdir):
    item = ConversationItem(role="user", model="m", time="2024-01-02T03:04:05.678Z")
    item.add_text("describe")
    item.contents.append(ContentItem(type=ContentKind.IMAGE, content="data:image/png;base64,AAAA"))
    item.response_format = '{"type": "object"}'

    store.ensure_context(workdir, "My Topic").append(item)
    store.save()

    with open(store_path, encoding="utf-8") as f:
        document = yaml.safe_load(f)

    turns = document["conversations"][os.path.abspath(workdir)]["my-topic"]["conversation"]
    assert turns == [{
        "role": "user",
        "model": "m",
        "time": "2024-01-02T03:04:05.678Z",
        "contents": [
            {"type": "text", "content": "describe"},
            {"type": "image", "content": "data:image/png;base64,AAAA"},
        ],
        "response_format": '{"type": "object"}',
    }]


def test_response_format_omitted_when_absent(store, store_path, workdir):
    store.ensure_context(workdir).append(text_turn("user", "hi"))
    store.save()

    with open(store_path, encoding="utf-8") as f:
        document = yaml.safe_load(f)

    (turn,) = document["conversations"][os.path.abspath(workdir)][""]["conversation"]
    assert "response_format" not in turn


def test_malformed_yaml_is_decode_error(store_path):
    os.makedirs(os.path.dirname(store_path))
    with open(store_path, "w", encoding="utf-8") as f:
        f.write("conversations: [unclosed\n")

    with pytest.raises(DecodeError):
        ConversationStore(store_path).load()


def test_non_utf8_file_is_decode_error(store_path):
    os.makedirs(os.path.dirname(store_path))
    with open(store_path, "wb") as f:
        f.write(b"conversations: {}\n# \xff\xfe not utf-8\n")

    with pytest.raises(DecodeError):
        ConversationStore(store_path).load()


def test_unknown_content_type_is_decode_error(store_path, workdir):
    os.makedirs(os.path.dirname(store_path))
    document = {"conversations": {workdir: {"": {"conversation": [
        {"role": "user", "contents": [{"type": "video", "content": "x"}]},
    ]}}}}
    with open(store_path, "w", encoding="utf-8") as f:
        yaml.safe_dump(document, f)

    with pytest.raises(DecodeError):
        ConversationStore(store_path).load()


def test_ensure_context_creates_on_access(store, workdir):
    ctx = store.ensure_context(workdir, "New Context")

    assert len(ctx) == 0
    assert store.ensure_context(workdir, "new context") is ctx
    assert store.contexts(workdir) == ["new-context"]


def test_turns_returns_copy(store, workdir):
    ctx = store.ensure_context(workdir)
    ctx.turns.append(text_turn("user", "ignored"))

    assert len(ctx) == 0


@pytest.mark.parametrize("name, slug", [
    ("", ""),
    (None, ""),
    ("Hello World", "hello-world"),
    ("Ärger im Büro", "arger-im-buro"),
    ("  spaces & symbols!  ", "spaces-symbols"),
])
def test_slugify_context_name(name, slug):
    assert slugify_context_name(name) == slug
