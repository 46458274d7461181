"""Capability contract shared by all provider adapters.

Architectural role:
    Declares what every backend must provide (`build_request`, `parse_response`,
    `supported_content_kinds`, `list_models`) and implements the common
    "replay full history" round trip once in `ProviderAdapter.complete`.

Model invocation flow:
    history + new user turn -> `build_request` -> `client.post_json`
    -> `parse_response` -> new assistant turn stamped at response time.

Backends are stateless: the complete history is sent on every call and nothing
is kept between calls except what the caller persists.
"""

import abc
import json
import logging
from dataclasses import dataclass, field
from typing import Any

from gai.core.conversation_types import ContentKind, ConversationItem, Role, now_iso, text_turn
from gai.errors import ConfigurationError, DecodeError, UnsupportedContentKind
from gai.llm import client
from gai.llm.models import AIModel
from gai.llm.provider_config import DEFAULT_RESPONSE_SCHEMA_NAME, LLMSettings
from gai.multimodal.content_normalizer import to_content_item


logger = logging.getLogger(__name__)


@dataclass
class RequestOptions:
    """Per-call options for `prompt` and `chat`.

    Attributes:
        system_prompt: Prompt for empty conversations; falls back to settings.
        files: Raw file contents attached to the new user turn.
        response_schema: JSON schema requested for structured output.
        response_schema_name: Schema name (used by backends that need one).
        temperature: Overrides the configured temperature.
        max_tokens: Overrides the configured completion token cap.
    """

    system_prompt: str | None = None
    files: list[bytes] = field(default_factory=list)
    response_schema: dict[str, Any] | None = None
    response_schema_name: str | None = None
    temperature: float | None = None
    max_tokens: int | None = None


@dataclass
class ChatOptions(RequestOptions):
    """`RequestOptions` plus `no_save`, which skips writing the conversation file."""

    no_save: bool = False


@dataclass
class WireRequest:
    """A fully built backend request."""

    url: str
    body: dict[str, Any]
    headers: dict[str, str] = field(default_factory=dict)


class ProviderAdapter(abc.ABC):
    """Base class of all backend adapters.

    Args:
        settings: Resolved configuration.
        chat_model: Model name without provider prefix.
    """

    provider: str = ""

    def __init__(self, settings: LLMSettings, chat_model: str):
        self.settings = settings
        self.chat_model = (chat_model or "").strip()

    @property
    def base_url(self) -> str:
        return self.settings.get_base_url(self.provider)

    # ============================================================
    # CONTRACT
    # ============================================================

    @abc.abstractmethod
    def supported_content_kinds(self) -> frozenset[ContentKind]:
        """Content kinds this backend can carry."""

    @abc.abstractmethod
    def build_request(
        self,
        history: list[ConversationItem],
        new_turn: ConversationItem,
        options: RequestOptions | None = None,
    ) -> WireRequest:
        """Translate history plus the new turn into one backend request."""

    @abc.abstractmethod
    def parse_response(self, data: dict[str, Any]) -> tuple[str, str]:
        """Return `(reply_text, model_used)` from a backend reply."""

    @abc.abstractmethod
    def to_response_format(self, schema: dict[str, Any] | None, schema_name: str) -> dict[str, Any] | None:
        """Wire representation of a structured-output schema, or `None`."""

    @abc.abstractmethod
    def list_models(self) -> list[AIModel]:
        """Models offered by the backend."""

    # ============================================================
    # SHARED BEHAVIOR
    # ============================================================

    def validate(self) -> None:
        """Raise `ConfigurationError` for configuration that must exist before any I/O."""
        if not self.chat_model:
            raise ConfigurationError("no chat ai model defined")

    def check_content_kind(self, kind: ContentKind) -> None:
        if kind not in self.supported_content_kinds():
            raise UnsupportedContentKind(f"content type '{kind.value}' not supported by {self.provider}")

    def resolve_temperature(self, options: RequestOptions | None) -> float:
        if options is not None and options.temperature is not None:
            return options.temperature
        return self.settings.temperature

    def resolve_max_tokens(self, options: RequestOptions | None) -> int | None:
        max_tokens = self.settings.max_tokens
        if options is not None and options.max_tokens is not None:
            max_tokens = options.max_tokens
        if max_tokens is not None and max_tokens <= 0:
            return None
        return max_tokens

    def create_user_turn(self, text: str, options: RequestOptions | None = None) -> ConversationItem:
        """Build the new user turn: text, optional response format, normalized files."""
        options = options or RequestOptions()

        turn = ConversationItem(role=Role.USER.value, model=self.chat_model)
        turn.add_text(text)

        response_format = self.to_response_format(
            options.response_schema,
            options.response_schema_name or DEFAULT_RESPONSE_SCHEMA_NAME,
        )
        if response_format is not None:
            try:
                turn.response_format = json.dumps(response_format, ensure_ascii=False)
            except (TypeError, ValueError) as err:
                raise DecodeError(f"response schema is not serializable: {err}") from err

        for data in options.files:
            item = to_content_item(data)
            self.check_content_kind(item.type)
            turn.contents.append(item)

        return turn

    @staticmethod
    def load_response_format(turn: ConversationItem) -> Any:
        """Decode the serialized response format attached to `turn`, if any."""
        if not turn.response_format:
            return None
        try:
            return json.loads(turn.response_format)
        except ValueError as err:
            raise DecodeError(f"invalid response format on turn: {err}") from err

    def complete(
        self,
        history: list[ConversationItem],
        new_turn: ConversationItem,
        options: RequestOptions | None = None,
    ) -> ConversationItem:
        """Replay `history` plus `new_turn` and return the assistant reply turn.

        `new_turn.time` is stamped when the request is sent and the reply turn is
        stamped when the response has been read. Neither turn is appended anywhere.
        """
        self.validate()

        request = self.build_request(history, new_turn, options)
        new_turn.time = now_iso()

        data = client.post_json(request.url, request.body, request.headers)
        response_time = now_iso()

        answer, model_used = self.parse_response(data)
        logger.debug("Received %d characters from %s model '%s'", len(answer), self.provider, model_used)

        return text_turn(Role.ASSISTANT.value, answer, model=model_used or self.chat_model, time=response_time)
