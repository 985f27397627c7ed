"""Dispatches optimized prompts to the mock or the real image provider."""

from __future__ import annotations

import logging
from enum import Enum
from typing import Dict, Tuple, Union

from .aiservices.imagegenerationclient import ImageGenerationClient
from .config import Settings
from .errors import UpstreamProviderError, ValidationError
from .schemas import GeneratedAsset, Layout, ProviderKind

logger = logging.getLogger(__name__)


LAYOUT_DIMENSIONS: Dict[Layout, Tuple[int, int]] = {
    Layout.square: (1024, 1024),
    Layout.tall: (1024, 1792),
    Layout.wide: (1792, 1024),
}


class GenerationStrategy(str, Enum):
    mock = "mock"
    real = "real"


def select_generation_strategy(settings: Settings) -> GenerationStrategy:
    """Real provider only in production mode with an OpenAI key configured."""
    if settings.is_production and settings.has_openai_credentials:
        return GenerationStrategy.real
    return GenerationStrategy.mock


def resolve_dimensions(layout: Union[Layout, str]) -> Tuple[int, int]:
    try:
        key = layout if isinstance(layout, Layout) else Layout(layout)
    except ValueError:
        raise ValidationError(
            f"Unknown layout '{layout}'. Use one of: {', '.join(item.value for item in Layout)}"
        ) from None
    return LAYOUT_DIMENSIONS[key]


class ImageGenerationRouter:
    """Sends a prompt to the provider picked by the injected strategy."""

    def __init__(
        self,
        strategy: GenerationStrategy,
        mock_client: ImageGenerationClient,
        real_client: ImageGenerationClient | None = None,
    ) -> None:
        if strategy is GenerationStrategy.real and real_client is None:
            raise ValueError("real generation strategy requires a real image client")
        self.strategy = strategy
        self._mock_client = mock_client
        self._real_client = real_client

    def generate(self, optimized_prompt: str, layout: Union[Layout, str]) -> GeneratedAsset:
        width, height = resolve_dimensions(layout)

        if self.strategy is GenerationStrategy.mock:
            url = self._mock_client.generate(optimized_prompt, width, height)
            logger.info("Mock provider selected %s", url)
            return GeneratedAsset(source_url=url, provider_kind=ProviderKind.mock)

        try:
            url = self._real_client.generate(optimized_prompt, width, height)
        except Exception as exc:
            logger.error("Image provider failed: %s", exc)
            raise UpstreamProviderError(str(exc) or "Failed to generate image") from exc
        return GeneratedAsset(source_url=url, provider_kind=ProviderKind.real)
