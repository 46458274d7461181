"""Core package.

Architectural role:
    Holds the conversation data contracts and the entrypoints the CLI layer calls.

Composition:
    - `conversation_types`: turn and content-item schema shared by every layer.
    - `engine`: `chat`, `prompt` and `list_models` orchestration.

Import `engine` explicitly; the package import itself pulls in nothing else, so
`gai.llm` can depend on `conversation_types` without a cycle.
"""
