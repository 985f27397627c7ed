from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

# Abstract interface for text generation clients so the prompt optimizer can
# run against OpenAI, an OpenAI-compatible server or a test fake.


@dataclass
class GenerationResult:
    """Container describing generated text."""

    text: str


class TextGenerationClient(ABC):
    """Abstract interface for a text generation client.

    Implementations must provide synchronous generation methods
    used by the rest of the application.
    """

    @abstractmethod
    def generate(
        self,
        prompt: str,
        system_instruction: Optional[str] = None,
        max_new_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
    ) -> GenerationResult:
        """Generate free-form text from a prompt."""
