"""Conversation data contracts shared by the store, sessions and provider adapters.

Architectural role:
    Defines the turn (`ConversationItem`) and content (`ContentItem`) schema that is
    persisted by `gai.memory.conversation_store` and replayed by every adapter in
    `gai.llm`.

Content kinds:
    `ContentKind` is a closed set. Consumers dispatch with `match` and finish with
    `assert_never`, so a new kind fails type checking until every consumer handles it.

Serialization:
    `to_dict` / `from_dict` produce the plain mapping written to the YAML store.
    Key names follow the persisted schema (`contents`, `response_format`).
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from gai.errors import DecodeError


def now_iso() -> str:
    """Return the current UTC time as ISO-8601 with milliseconds and `Z` suffix."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class Role(str, Enum):
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


class ContentKind(str, Enum):
    """Tag of a `ContentItem`; decides how its payload is decoded."""

    TEXT = "text"
    IMAGE = "image"
    AUDIO = "audio"
    ATTACHMENT = "attachment"


@dataclass
class ContentItem:
    """One unit of a turn payload.

    Attributes:
        type: Content kind tag.
        content: Raw text for `text`; a data URI (or bare base64) for the others.
    """

    type: ContentKind
    content: str

    @classmethod
    def text(cls, value: str) -> "ContentItem":
        return cls(type=ContentKind.TEXT, content=value)

    def to_dict(self) -> dict[str, str]:
        return {"type": self.type.value, "content": self.content}

    @classmethod
    def from_dict(cls, data: Any) -> "ContentItem":
        if not isinstance(data, dict):
            raise DecodeError(f"content item must be a mapping, got {type(data).__name__}")

        raw_type = data.get("type")
        try:
            kind = ContentKind(raw_type)
        except ValueError as err:
            raise DecodeError(f"unknown content type '{raw_type}'") from err

        content = data.get("content")
        return cls(type=kind, content="" if content is None else str(content))


@dataclass
class ConversationItem:
    """One role-tagged turn of a conversation.

    Attributes:
        role: `system`, `user` or `assistant` (the system role name is configurable,
            so it is kept as a plain string).
        model: Model that produced or will consume the turn.
        time: ISO-8601 UTC timestamp with milliseconds.
        contents: Ordered content items.
        response_format: Serialized schema descriptor of a structured-output request.
    """

    role: str
    model: str = ""
    time: str = ""
    contents: list[ContentItem] = field(default_factory=list)
    response_format: str | None = None

    def add_text(self, value: str) -> ContentItem:
        item = ContentItem.text(value)
        self.contents.append(item)
        return item

    def text(self) -> str:
        """Concatenate all text items of the turn."""
        return "\n\n".join(c.content for c in self.contents if c.type is ContentKind.TEXT)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "role": self.role,
            "model": self.model,
            "time": self.time,
            "contents": [c.to_dict() for c in self.contents],
        }
        if self.response_format:
            data["response_format"] = self.response_format
        return data

    @classmethod
    def from_dict(cls, data: Any) -> "ConversationItem":
        if not isinstance(data, dict):
            raise DecodeError(f"conversation item must be a mapping, got {type(data).__name__}")

        contents = data.get("contents") or []
        if not isinstance(contents, list):
            raise DecodeError("conversation item 'contents' must be a list")

        response_format = data.get("response_format")

        return cls(
            role=str(data.get("role") or ""),
            model=str(data.get("model") or ""),
            time=str(data.get("time") or ""),
            contents=[ContentItem.from_dict(c) for c in contents],
            response_format=str(response_format) if response_format else None,
        )


def text_turn(role: str, text: str, model: str = "", time: str | None = None) -> ConversationItem:
    """Build a turn holding a single text item."""
    item = ConversationItem(role=role, model=model, time=time or now_iso())
    item.add_text(text)
    return item
