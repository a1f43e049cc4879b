"""LLM service interface."""

from typing import Protocol


class LLMService(Protocol):
    """Interface for hosted language-model completions."""

    def complete_json(self, system: str, text: str) -> str:
        """Send instructions plus user text. Returns the raw JSON-ish response content."""
        ...
