"""Conversation persistence package.

Groups the stateful components:
- `conversation_store`: the single YAML repository, keyed by directory and context.
- `chat_session`: handle on one (directory, context) pair with append/reset/switch.
"""
