from __future__ import annotations

from abc import ABC, abstractmethod


class ImageGenerationClient(ABC):
    """Abstract interface for an image generation client.

    Implementations must provide synchronous generation methods
    used by the rest of the application.
    """

    @abstractmethod
    def generate(self, prompt: str, width: int, height: int) -> str:
        """Generate an image from a prompt and return a URL pointing at it."""
