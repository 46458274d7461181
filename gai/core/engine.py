"""Core request orchestration for chat, single-shot prompts and model listing.

Architectural role:
    Provides the entrypoints used by the outer CLI layer. Each function takes an
    explicit `ChatSession` and/or `ProviderAdapter`; nothing here keeps module
    state.

Control-flow model (`chat`):
    1. Validate adapter configuration (model, API key) before any I/O.
    2. Inject the system prompt if the active context is empty right now.
    3. Build the new user turn (text, response format, normalized files).
    4. Replay the full history plus the new turn through the adapter.
    5. Append the user turn and the assistant reply, in that order.
    6. Persist the repository unless `no_save` is set.

Error handling strategy:
    Every error surfaces unchanged to the caller. When any step before persistence
    fails, the in-memory context is restored to the turns it held on entry, so a
    failed request never reaches the conversation file.

Side effects:
    - `chat` mutates the session and writes the conversation file.
    - `prompt` and `list_models` perform HTTP calls only.

Determinism:
    Request assembly is deterministic for fixed inputs and settings. Generated
    output is not, because inference runs remotely.
"""

import logging
import os

import requests

from gai.core.conversation_types import ConversationItem, text_turn
from gai.errors import GaiError
from gai.llm.base import ChatOptions, ProviderAdapter, RequestOptions
from gai.llm.models import AIModel
from gai.llm.provider_config import LLMSettings, load_settings
from gai.memory.chat_session import ChatSession
from gai.memory.conversation_store import ConversationStore, get_default_store


logger = logging.getLogger(__name__)


def resolve_system_prompt(adapter: ProviderAdapter, options: RequestOptions | None) -> str:
    """Return the system prompt for a new conversation.

    The explicit option wins over the configured prompt. Blank means none.
    """
    if options is not None and options.system_prompt is not None:
        return options.system_prompt.strip()
    return (adapter.settings.system_prompt or "").strip()


def open_session(
    settings: LLMSettings | None = None,
    store: ConversationStore | None = None,
    directory: str | None = None,
    context_name: str | None = None,
) -> ChatSession:
    """Open a session on (directory, context) of the given or default store.

    Args:
        settings: Supplies the default context name.
        store: Repository to use; the process-wide default store when omitted.
        directory: Working directory part of the key; the current directory when omitted.
        context_name: Overrides `settings.context`.
    """
    settings = settings or load_settings()
    store = store or get_default_store()

    if context_name is None:
        context_name = settings.context

    return ChatSession(store, working_directory=directory or os.getcwd(), context_name=context_name)


def chat(
    session: ChatSession,
    adapter: ProviderAdapter,
    user_text: str,
    options: ChatOptions | None = None,
) -> tuple[str, list[ConversationItem]]:
    """Send one message within the active conversation of `session`.

    Args:
        session: Session bound to the active (directory, context) pair.
        adapter: Backend to replay the conversation to.
        user_text: Text of the new user turn.
        options: Per-call options; `no_save` skips writing the conversation file.

    Returns:
        `(reply_text, updated_history)` where the history is a copy of the active
        context after the reply was appended.

    Raises:
        ConfigurationError: missing model or API key, before any I/O.
        UnsupportedContentKind: an attached file the backend cannot carry.
        HTTPError, DecodeError: failed round trip; nothing is persisted.
        StoreIOError: the conversation file could not be written.
    """
    options = options or ChatOptions()
    adapter.validate()

    snapshot = session.get_conversation()
    try:
        session.inject_system_prompt_if_absent(
            resolve_system_prompt(adapter, options),
            adapter.chat_model,
            role=adapter.settings.system_role,
        )

        user_turn = adapter.create_user_turn(user_text, options)
        reply = adapter.complete(session.get_conversation(), user_turn, options)
    except Exception:
        session.replace_conversation(snapshot)
        raise

    session.append_turn(user_turn)
    session.append_turn(reply)

    if session.persist(no_save=options.no_save):
        logger.debug("Saved conversation '%s' with %d turns", session.context_id, len(session.context))

    return reply.text(), session.get_conversation()


def prompt(
    adapter: ProviderAdapter,
    user_text: str,
    options: RequestOptions | None = None,
) -> tuple[str, str]:
    """Stateless single-shot request; nothing is read from or written to the store.

    Returns:
        `(reply_text, model_used)`.
    """
    options = options or RequestOptions()
    adapter.validate()

    history = []
    system_prompt = resolve_system_prompt(adapter, options)
    if system_prompt:
        history.append(text_turn(adapter.settings.system_role, system_prompt, model=adapter.chat_model))

    user_turn = adapter.create_user_turn(user_text, options)
    reply = adapter.complete(history, user_turn, options)

    return reply.text(), reply.model


def list_models(adapters: list[ProviderAdapter]) -> list[AIModel]:
    """Merge the model lists of all adapters, sorted by `provider:name`.

    A provider whose listing fails (unreachable server, missing key) is logged and
    skipped, so one backend being down does not hide the others.
    """
    models: list[AIModel] = []

    for adapter in adapters:
        try:
            models.extend(adapter.list_models())
        except (GaiError, requests.RequestException) as err:
            logger.warning("Could not list %s models: %s", adapter.provider, err)

    return sorted(models, key=AIModel.sort_key)
