"""Persisted repository of all conversations, keyed by directory and context.

Purpose of this abstraction:
    Hold every conversation of the user in one YAML document
    (`~/.gai/.conversations.yaml` by default) and expose it as an explicit
    two-level keyed store: absolute working directory -> context slug -> turns.

Persisted layout:
    conversations:
      <absolute-directory>:
        <context-slug>:
          conversation:
            - role / model / time / contents / response_format

Lifecycle:
    - `get_default_store()` loads the default file lazily, once per process.
    - `ensure_context` always returns a live, mutable `ConversationContext`,
      creating an empty one on first access.
    - `save()` serializes the whole repository and replaces the file. There is no
      partial update, no pruning and no file locking (single writer assumed).

Failure handling:
    - A missing file is an empty repository.
    - Unreadable/unwritable files raise `StoreIOError`.
    - Non-UTF-8 content, malformed YAML or an unexpected document shape raises
      `DecodeError`.
"""

import logging
import os
from typing import Any

import yaml
from slugify import slugify

from gai.core.conversation_types import ConversationItem
from gai.errors import DecodeError, StoreIOError
from gai.llm.provider_config import get_conversations_file_path


logger = logging.getLogger(__name__)


def slugify_context_name(name: str | None) -> str:
    """Normalize an arbitrary context name into a stable lowercase, transliterated key.

    The empty string is the default context.
    """
    return slugify(name or "", lowercase=True).strip()


class ConversationContext:
    """Ordered turn sequence of one (directory, context) key."""

    def __init__(self, turns: list[ConversationItem] | None = None):
        self._turns: list[ConversationItem] = list(turns or [])

    @property
    def turns(self) -> list[ConversationItem]:
        """Snapshot of the turns in insertion order."""
        return list(self._turns)

    def __len__(self) -> int:
        return len(self._turns)

    def append(self, item: ConversationItem) -> ConversationItem:
        self._turns.append(item)
        return item

    def replace_all(self, items: list[ConversationItem] | None) -> None:
        self._turns = list(items or [])

    def reset(self) -> None:
        self._turns = []

    def to_dict(self) -> dict[str, Any]:
        return {"conversation": [t.to_dict() for t in self._turns]}

    @classmethod
    def from_dict(cls, data: Any) -> "ConversationContext":
        if data is None:
            return cls()
        if not isinstance(data, dict):
            raise DecodeError("conversation context must be a mapping")

        turns = data.get("conversation") or []
        if not isinstance(turns, list):
            raise DecodeError("'conversation' must be a list")

        return cls([ConversationItem.from_dict(t) for t in turns])


class ConversationStore:
    """YAML-backed repository of conversation contexts.

    Args:
        path: Persisted file. Defaults to the application conversations file.
    """

    def __init__(self, path: str | None = None):
        self.path = path or get_conversations_file_path()
        self._conversations: dict[str, dict[str, ConversationContext]] = {}
        self._loaded = False

    @property
    def loaded(self) -> bool:
        return self._loaded

    # ============================================================
    # LOAD / SAVE
    # ============================================================

    def load(self) -> "ConversationStore":
        """(Re)load the repository from disk, replacing the in-memory state.

        Raises:
            StoreIOError: if the file exists but cannot be read.
            DecodeError: if the document is not valid YAML or has the wrong shape.
        """
        conversations: dict[str, dict[str, ConversationContext]] = {}

        if os.path.exists(self.path):
            logger.debug("Loading conversations from '%s' ...", self.path)

            try:
                with open(self.path, "r", encoding="utf-8") as f:
                    document = yaml.safe_load(f)
            except (yaml.YAMLError, UnicodeDecodeError) as err:
                raise DecodeError(f"malformed conversation file '{self.path}': {err}") from err
            except OSError as err:
                raise StoreIOError(f"could not read conversation file '{self.path}': {err}") from err

            conversations = self._parse_document(document)
        else:
            logger.debug("Conversation file '%s' not found", self.path)

        self._conversations = conversations
        self._loaded = True
        return self

    def ensure_loaded(self) -> "ConversationStore":
        if not self._loaded:
            self.load()
        return self

    def save(self) -> None:
        """Serialize the full repository and overwrite the persisted file.

        Raises:
            StoreIOError: if the directory or file cannot be written.
        """
        logger.debug("Will write conversations to '%s' ...", self.path)

        data = yaml.safe_dump(
            self.to_document(),
            allow_unicode=True,
            sort_keys=False,
            default_flow_style=False,
        )

        try:
            directory = os.path.dirname(self.path)
            if directory:
                os.makedirs(directory, exist_ok=True)

            with open(self.path, "w", encoding="utf-8") as f:
                f.write(data)
        except OSError as err:
            raise StoreIOError(f"could not write conversation file '{self.path}': {err}") from err

    # ============================================================
    # KEYED ACCESS
    # ============================================================

    def ensure_context(self, directory: str, context_name: str | None = "") -> ConversationContext:
        """Return the context for (directory, slug(context_name)), creating it if needed."""
        self.ensure_loaded()

        directory_key = os.path.abspath(directory)
        context_key = slugify_context_name(context_name)

        contexts = self._conversations.setdefault(directory_key, {})

        context = contexts.get(context_key)
        if context is None:
            context = ConversationContext()
            contexts[context_key] = context

        return context

    def contexts(self, directory: str) -> list[str]:
        """Context slugs known for `directory`, in insertion order."""
        self.ensure_loaded()
        return list(self._conversations.get(os.path.abspath(directory), {}))

    def directories(self) -> list[str]:
        self.ensure_loaded()
        return list(self._conversations)

    # ============================================================
    # DOCUMENT MAPPING
    # ============================================================

    def to_document(self) -> dict[str, Any]:
        return {
            "conversations": {
                directory: {name: ctx.to_dict() for name, ctx in contexts.items()}
                for directory, contexts in self._conversations.items()
            }
        }

    @staticmethod
    def _parse_document(document: Any) -> dict[str, dict[str, ConversationContext]]:
        if document is None:
            return {}
        if not isinstance(document, dict):
            raise DecodeError("conversation file must contain a mapping")

        raw = document.get("conversations") or {}
        if not isinstance(raw, dict):
            raise DecodeError("'conversations' must be a mapping")

        conversations: dict[str, dict[str, ConversationContext]] = {}
        for directory, contexts in raw.items():
            if contexts is None:
                contexts = {}
            if not isinstance(contexts, dict):
                raise DecodeError(f"contexts of '{directory}' must be a mapping")

            conversations[str(directory)] = {
                "" if name is None else str(name): ConversationContext.from_dict(ctx)
                for name, ctx in contexts.items()
            }

        return conversations


_default_store: ConversationStore | None = None


def get_default_store() -> ConversationStore:
    """Process-wide store bound to the default conversations file, loaded on first use."""
    global _default_store

    if _default_store is None:
        _default_store = ConversationStore()
    return _default_store.ensure_loaded()
