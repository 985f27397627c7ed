from __future__ import annotations

from typing import Sequence

from .imagegenerationclient import ImageGenerationClient


def stable_string_hash(text: str) -> int:
    """32-bit rolling hash (``h * 31 + c``) that is stable across processes.

    ``c`` runs over UTF-16 code units, so characters outside the Basic
    Multilingual Plane contribute their surrogate pair. Python's built-in
    ``hash`` is salted per interpreter, so it cannot be used to pick the same
    placeholder for the same prompt after a restart.
    """
    data = text.encode("utf-16-le")
    value = 0
    for offset in range(0, len(data), 2):
        unit = int.from_bytes(data[offset:offset + 2], "little")
        value = (value * 31 + unit) & 0xFFFFFFFF
    if value >= 0x80000000:
        value -= 0x100000000
    return value


class MockImageGenerationClient(ImageGenerationClient):
    """Returns one of a fixed set of placeholder images, chosen by prompt."""

    def __init__(self, image_urls: Sequence[str]) -> None:
        if not image_urls:
            raise ValueError("mock image generation needs at least one placeholder URL")
        self._image_urls = tuple(image_urls)

    @property
    def image_urls(self) -> tuple[str, ...]:
        return self._image_urls

    def generate(self, prompt: str, width: int = 1024, height: int = 1024) -> str:
        index = abs(stable_string_hash(prompt)) % len(self._image_urls)
        return self._image_urls[index]
