"""gai: persisted multi-provider AI conversations for command-line tools.

Architectural role:
    Library core consumed by an outer CLI. It owns the conversation data model and
    its on-disk repository, normalization of input media into content items, and
    the provider adapters that replay a conversation to a chat backend.

Package split:
    - `core`: data model and the exposed `chat` / `prompt` / `list_models` entrypoints.
    - `memory`: persisted conversation repository and the per-context chat session.
    - `multimodal`: mime sniffing, data URIs, image transcoding, text extraction.
    - `llm`: configuration, HTTP transport, and the provider adapters.
"""

__version__ = "0.1.0"
