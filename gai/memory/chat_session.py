"""In-memory chat session bound to one (working directory, context) pair.

Purpose of this abstraction:
    A `ChatSession` is the explicit "current conversation" value threaded through
    `gai.core.engine`. It carries the active context id as a field instead of
    module state, and mutates the shared `ConversationStore` in memory.

States:
    - Empty: the active context has zero turns.
    - Active: one or more turns.
    The state is recomputed from the live turn count on every check, never
    cached, so appends made by any caller are always observed.

Persistence:
    Nothing is written until `persist()` is called; `persist(no_save=True)` is a
    no-op and does not create the application directory either.
"""

import logging
import os
from enum import Enum

from gai.core.conversation_types import ConversationItem, Role, now_iso, text_turn
from gai.memory.conversation_store import ConversationContext, ConversationStore, slugify_context_name


logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    EMPTY = "empty"
    ACTIVE = "active"


class ChatSession:
    """Handle on the active conversation context.

    Args:
        store: Repository holding all conversations.
        working_directory: Directory part of the context key (made absolute).
        context_name: Initial context; slugified, empty string is the default.
    """

    def __init__(self, store: ConversationStore, working_directory: str | None = None, context_name: str = ""):
        self.store = store
        self.working_directory = os.path.abspath(working_directory or os.getcwd())
        self.context_id = ""
        self.switch_context(context_name)

    @property
    def context(self) -> ConversationContext:
        return self.store.ensure_context(self.working_directory, self.context_id)

    @property
    def state(self) -> SessionState:
        if len(self.context) == 0:
            return SessionState.EMPTY
        return SessionState.ACTIVE

    def is_empty(self) -> bool:
        return self.state is SessionState.EMPTY

    def switch_context(self, name: str | None) -> str:
        """Make slug(`name`) the active context, creating it in the store if needed.

        Does not persist anything.
        """
        self.context_id = slugify_context_name(name)
        self.store.ensure_context(self.working_directory, self.context_id)

        logger.debug("Switched to context '%s' in '%s'", self.context_id, self.working_directory)
        return self.context_id

    def get_conversation(self) -> list[ConversationItem]:
        return self.context.turns

    def append_turn(self, item: ConversationItem) -> ConversationItem:
        return self.context.append(item)

    def append_pseudo_conversation(
        self,
        user_message: str,
        answer: str = "OK",
        model: str = "",
        time: str | None = None,
    ) -> list[ConversationItem]:
        """Append a user turn and a simulated assistant answer, without saving."""
        time = time or now_iso()

        items = [
            text_turn(Role.USER.value, user_message, model=model, time=time),
            text_turn(Role.ASSISTANT.value, answer, model=model, time=time),
        ]
        for item in items:
            self.append_turn(item)
        return items

    def inject_system_prompt_if_absent(
        self,
        prompt_text: str,
        model: str,
        role: str = Role.SYSTEM.value,
    ) -> ConversationItem | None:
        """Append a system turn holding `prompt_text` only if the context is empty right now.

        Returns:
            The injected turn, or `None` when the context already has turns or the
            prompt is blank.
        """
        if not self.is_empty():
            return None

        prompt_text = (prompt_text or "").strip()
        if not prompt_text:
            return None

        logger.debug("Injecting system prompt into context '%s'", self.context_id)
        return self.append_turn(text_turn(role, prompt_text, model=model))

    def replace_conversation(self, items: list[ConversationItem] | None) -> None:
        self.context.replace_all(items)

    def reset(self) -> None:
        logger.debug("Resetting conversation '%s' of '%s' ...", self.context_id, self.working_directory)
        self.context.reset()

    def persist(self, no_save: bool = False) -> bool:
        """Write the repository unless `no_save` is set.

        Returns:
            Whether the file was written.
        """
        if no_save:
            return False

        self.store.save()
        return True
