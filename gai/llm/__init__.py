"""LLM access package.

Architectural role:
    Provides provider configuration, HTTP transport and the backend adapters that
    replay a conversation to a chat model.

Module split:
    - `provider_config`: environment-driven provider, model and path configuration.
    - `client`: JSON-over-HTTP transport and response status handling.
    - `base`: adapter contract and the shared "replay full history" round trip.
    - `openai_adapter`, `ollama_adapter`: the two backends.
    - `models`: `AIModel` value type for listings.
    - `service`: adapter factory.
"""
