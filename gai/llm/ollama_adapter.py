"""Adapter for a self-hosted, unauthenticated Ollama server.

Request shape:
    POST {base_url}/api/chat
    {model, messages[], stream: false, options: {temperature}, format?}

Content mapping:
    - text  -> message `content` (several text items are joined by blank lines)
    - image -> appended to message `images` as bare base64, data-URI prefix stripped
    - audio / attachment -> `UnsupportedContentKind`
"""

import logging
from typing import Any, assert_never

from gai.core.conversation_types import ContentKind, ConversationItem
from gai.errors import DecodeError, UnsupportedContentKind
from gai.llm import client
from gai.llm.base import ProviderAdapter, RequestOptions, WireRequest
from gai.llm.models import AIModel
from gai.llm.provider_config import PROVIDER_OLLAMA
from gai.multimodal.content_normalizer import strip_data_uri_prefix


logger = logging.getLogger(__name__)


class OllamaAdapter(ProviderAdapter):
    provider = PROVIDER_OLLAMA

    def supported_content_kinds(self) -> frozenset[ContentKind]:
        return frozenset({ContentKind.TEXT, ContentKind.IMAGE})

    def to_message(self, item: ConversationItem) -> dict[str, Any]:
        texts: list[str] = []
        images: list[str] = []

        for content in item.contents:
            match content.type:
                case ContentKind.TEXT:
                    texts.append(content.content)
                case ContentKind.IMAGE:
                    images.append(strip_data_uri_prefix(content.content))
                case ContentKind.AUDIO | ContentKind.ATTACHMENT:
                    raise UnsupportedContentKind(f"content type '{content.type.value}' not allowed")
                case _:
                    assert_never(content.type)

        message: dict[str, Any] = {
            "role": item.role,
            "content": "\n\n".join(texts),
        }
        if images:
            message["images"] = images

        return message

    def to_response_format(self, schema: dict[str, Any] | None, schema_name: str) -> dict[str, Any] | None:
        return schema

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
            "options": {
                "temperature": self.resolve_temperature(options),
            },
        }

        response_format = self.load_response_format(new_turn)
        if response_format is not None:
            body["format"] = response_format

        return WireRequest(url=f"{self.base_url}/api/chat", body=body)

    def parse_response(self, data: dict[str, Any]) -> tuple[str, str]:
        message = data.get("message") or {}
        if not isinstance(message, dict):
            raise DecodeError("'message' of chat response must be an object")

        return str(message.get("content") or ""), str(data.get("model") or "")

    def list_models(self) -> list[AIModel]:
        data = client.get_json(f"{self.base_url}/api/tags")

        models = []
        for item in data.get("models") or []:
            if not isinstance(item, dict):
                raise DecodeError("model list entry must be an object")
            details = item.get("details")
            if not isinstance(details, dict):
                details = {}
            models.append(AIModel(
                provider=self.provider,
                name=str(item.get("name") or item.get("model") or ""),
                model_type=str(details.get("family") or ""),
            ))

        return models
