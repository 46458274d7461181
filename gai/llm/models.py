"""Model identity value type used for listing and selection."""

from dataclasses import dataclass


@dataclass(frozen=True)
class AIModel:
    """A (provider, model name) pair.

    Attributes:
        provider: Provider id such as `openai` or `ollama`.
        name: Model name without provider prefix.
        model_type: Optional model family/type reported by the backend.
    """

    provider: str
    name: str
    model_type: str = ""

    @property
    def full_name(self) -> str:
        return f"{self.provider}:{self.name}"

    def __str__(self) -> str:
        return self.full_name

    def sort_key(self) -> str:
        return self.full_name.strip().lower()
