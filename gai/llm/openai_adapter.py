"""Adapter for the hosted, key-authenticated OpenAI chat completions API.

Request shape:
    POST {base_url}/v1/chat/completions
    {model, messages[], stream: false, temperature,
     max_completion_tokens?, response_format?}

Content mapping:
    - text       -> `{"type": "text", "text": ...}`
    - image      -> `{"type": "image_url", "image_url": {"url": <data URI>}}`,
                    bare base64 is wrapped into a data URI of its sniffed type
    - audio      -> `{"type": "input_audio", "input_audio": {"data", "format"}}`,
                    format `mp3` or `wav` from the mime suffix
    - attachment -> `{"type": "file", "file": {"file_data", "filename"}}`

Auth:
    Bearer token. A missing key is a `ConfigurationError` raised before any I/O.
"""

import logging
import mimetypes
from typing import Any, assert_never

from gai.core.conversation_types import ContentItem, ContentKind, ConversationItem
from gai.errors import ConfigurationError, DecodeError, UnsupportedAudioFormat
from gai.llm import client
from gai.llm.base import ProviderAdapter, RequestOptions, WireRequest
from gai.llm.models import AIModel
from gai.llm.provider_config import PROVIDER_OPENAI, LLMSettings
from gai.multimodal.content_normalizer import ensure_data_uri, split_data_uri


logger = logging.getLogger(__name__)

# owners of models usable for chat
_LISTED_MODEL_OWNERS = {"openai", "system"}


def audio_format_from_mime(mime: str) -> str:
    """Map an audio mime type to the `input_audio` format name.

    Raises:
        UnsupportedAudioFormat: for anything other than mp3/mpeg or wav.
    """
    mime = mime.strip().lower()

    if mime.endswith("mp3") or mime.endswith("mpeg"):
        return "mp3"
    if mime.endswith("wav") or mime.endswith("wave"):
        return "wav"

    raise UnsupportedAudioFormat(f"unsupported audio format '{mime}'")


def attachment_filename(index: int, mime: str) -> str:
    extension = mimetypes.guess_extension(mime) or ""
    return f"file_{index}{extension}"


class OpenAIAdapter(ProviderAdapter):
    provider = PROVIDER_OPENAI

    def __init__(self, settings: LLMSettings, chat_model: str, api_key: str | None = None):
        super().__init__(settings, chat_model)
        self.api_key = (api_key if api_key is not None else settings.api_key or "").strip()

    def _require_api_key(self) -> None:
        if not self.api_key:
            raise ConfigurationError("no OpenAI api key defined")

    def validate(self) -> None:
        self._require_api_key()
        super().validate()

    def supported_content_kinds(self) -> frozenset[ContentKind]:
        return frozenset(ContentKind)

    def _headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.api_key}"}

    def to_content_block(self, content: ContentItem, index: int) -> dict[str, Any]:
        """Translate one content item; `index` is its 1-based position in the turn."""
        match content.type:
            case ContentKind.TEXT:
                return {"type": "text", "text": content.content}

            case ContentKind.IMAGE:
                return {"type": "image_url", "image_url": {"url": ensure_data_uri(content.content)}}

            case ContentKind.AUDIO:
                payload, mime = split_data_uri(content.content)
                return {
                    "type": "input_audio",
                    "input_audio": {
                        "data": payload,
                        "format": audio_format_from_mime(mime),
                    },
                }

            case ContentKind.ATTACHMENT:
                _, mime = split_data_uri(content.content)
                return {
                    "type": "file",
                    "file": {
                        "file_data": content.content,
                        "filename": attachment_filename(index, mime),
                    },
                }

            case _:
                assert_never(content.type)

    def to_message(self, item: ConversationItem) -> dict[str, Any]:
        return {
            "role": item.role,
            "content": [self.to_content_block(c, i) for i, c in enumerate(item.contents, start=1)],
        }

    def to_response_format(self, schema: dict[str, Any] | None, schema_name: str) -> dict[str, Any] | None:
        if schema is None:
            return None

        return {
            "type": "json_schema",
            "json_schema": {
                "name": schema_name,
                "schema": schema,
            },
        }

    def build_request(
        self,
        history: list[ConversationItem],
        new_turn: ConversationItem,
        options: RequestOptions | None = None,
    ) -> WireRequest:
        self.validate()

        messages = [self.to_message(item) for item in history]
        messages.append(self.to_message(new_turn))

        body: dict[str, Any] = {
            "model": self.chat_model,
            "messages": messages,
            "stream": False,
            "temperature": self.resolve_temperature(options),
        }

        max_tokens = self.resolve_max_tokens(options)
        if max_tokens is not None:
            body["max_completion_tokens"] = max_tokens

        response_format = self.load_response_format(new_turn)
        if response_format is not None:
            body["response_format"] = response_format

        return WireRequest(
            url=f"{self.base_url}/v1/chat/completions",
            body=body,
            headers=self._headers(),
        )

    def parse_response(self, data: dict[str, Any]) -> tuple[str, str]:
        choices = data.get("choices") or []
        if not isinstance(choices, list):
            raise DecodeError("'choices' of chat completion must be a list")

        answer = ""
        if choices:
            first = choices[0]
            if not isinstance(first, dict):
                raise DecodeError("chat completion choice must be an object")
            message = first.get("message") or {}
            if not isinstance(message, dict):
                raise DecodeError("'message' of chat completion choice must be an object")
            answer = message.get("content") or ""

        return str(answer), str(data.get("model") or "")

    def list_models(self) -> list[AIModel]:
        self._require_api_key()

        data = client.get_json(f"{self.base_url}/v1/models", headers=self._headers())

        models = []
        for item in data.get("data") or []:
            if not isinstance(item, dict):
                raise DecodeError("model list entry must be an object")
            if item.get("owned_by") not in _LISTED_MODEL_OWNERS:
                continue
            models.append(AIModel(provider=self.provider, name=str(item.get("id") or "")))

        return models
