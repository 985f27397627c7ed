from __future__ import annotations

import logging
from typing import Optional

from openai import OpenAI

from ..config import Settings, get_settings
from .imagegenerationclient import ImageGenerationClient

logger = logging.getLogger(__name__)


class OpenAIImageGenerationClient(ImageGenerationClient):
    """Image generation through the OpenAI Images API."""

    def __init__(self, settings: Optional[Settings] = None, client: Optional[OpenAI] = None) -> None:
        self.settings = settings or get_settings()
        # Single attempt per request: retries are disabled on the SDK as well.
        self._client = client or OpenAI(
            api_key=self.settings.openai_api_key.get_secret_value(),
            base_url=self.settings.openai_base_url,
            timeout=self.settings.http_timeout_seconds,
            max_retries=0,
        )
        self._model = self.settings.image_model_id
        self._quality = self.settings.image_quality

    def generate(self, prompt: str, width: int, height: int) -> str:
        size = f"{width}x{height}"
        logger.info("Requesting %s image from %s (prompt length %s)", size, self._model, len(prompt))

        response = self._client.images.generate(
            model=self._model,
            prompt=prompt,
            n=1,
            size=size,
            quality=self._quality,
        )

        data = getattr(response, "data", None) or []
        image_url = getattr(data[0], "url", None) if data else None
        if not image_url:
            raise ValueError("No image URL returned from OpenAI")
        return image_url
