"""Composition root and request-level orchestration for the design asset pipeline."""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import Optional, Tuple

import httpx

from .aiservices.mockimagegenerationclient import MockImageGenerationClient
from .aiservices.openaiimagegenerationclient import OpenAIImageGenerationClient
from .aiservices.openaitextgenerationclient import OpenAITextGenerationClient
from .config import Settings, get_settings
from .errors import ConfigurationError, NotFoundError, SigningError, ValidationError
from .generation import GenerationStrategy, ImageGenerationRouter, resolve_dimensions, select_generation_strategy
from .persistence import AssetPersistence
from .promptoptimizer import PromptOptimizer
from .proxy import ImageProxyResolver
from .schemas import GeneratedAsset, OptimizedPrompt, PersistedAssetRecord, PersistOutcome, ProxyResult
from .signedurlcache import SignedURLCache
from .storageservice.objectstorage import ObjectStorage
from .storageservice.storageservice import StorageService
from .utils import normalise_object_key

logger = logging.getLogger(__name__)


class DesignAssetService:
    """High-level orchestrator for generation, persistence and delivery."""

    def __init__(
        self,
        *,
        optimizer: PromptOptimizer,
        router: ImageGenerationRouter,
        persistence: AssetPersistence,
        proxy: ImageProxyResolver,
        metadata: StorageService,
        signed_urls: Optional[SignedURLCache] = None,
        environment: str = "development",
        owned_http_client: Optional[httpx.Client] = None,
    ) -> None:
        self.optimizer = optimizer
        self.router = router
        self.persistence = persistence
        self.proxy = proxy
        self.metadata = metadata
        self.signed_urls = signed_urls
        self.environment = environment
        self.owned_http_client = owned_http_client

    @property
    def generation_strategy(self) -> GenerationStrategy:
        return self.router.strategy

    @property
    def has_object_storage(self) -> bool:
        return self.signed_urls is not None

    def close(self) -> None:
        """Release the HTTP client built by the composition root, if any."""
        if self.owned_http_client is not None:
            self.owned_http_client.close()

    # ------------------------------------------------------------------
    # Generation
    # ------------------------------------------------------------------
    def optimize_prompt(self, prompt: str, layout: Optional[str] = None) -> OptimizedPrompt:
        if not prompt or not prompt.strip():
            raise ValidationError("Prompt is required")
        return self.optimizer.optimize(prompt, layout)

    def generate_image(self, prompt: str, layout: str) -> Tuple[OptimizedPrompt, GeneratedAsset]:
        if not prompt or not prompt.strip():
            raise ValidationError("Prompt is required")
        # Reject unknown layouts before spending a completion on the prompt.
        resolve_dimensions(layout)

        optimized = self.optimizer.optimize(prompt, layout)
        asset = self.router.generate(optimized.text, layout)
        return optimized, asset

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------
    def persist_image(self, asset_id: str, image_url: str) -> PersistOutcome:
        if not asset_id or not asset_id.strip() or not image_url or not image_url.strip():
            raise ValidationError("Missing imageUrl or id")
        return self.persistence.persist(asset_id.strip(), image_url.strip())

    def lookup_image(self, asset_id: str) -> PersistedAssetRecord:
        if not asset_id or not asset_id.strip():
            raise ValidationError("Missing id parameter")
        record = self.persistence.lookup(asset_id.strip())
        if record is None:
            raise NotFoundError("Image not found")
        return record

    # ------------------------------------------------------------------
    # Delivery
    # ------------------------------------------------------------------
    def resolve_image(self, asset_id: str) -> ProxyResult:
        return self.proxy.resolve(asset_id)

    def relay_external(self, url: str) -> Optional[ProxyResult]:
        if not url or not url.strip():
            raise ValidationError("URL parameter is required")
        return self.proxy.relay_external(url.strip())

    def signed_delivery_url(self, raw_key: str) -> str:
        key = normalise_object_key(raw_key or "")
        if not key:
            raise ValidationError("key is required")
        if self.signed_urls is None:
            raise SigningError("object storage is not configured")
        return self.signed_urls.resolve(key)


def build_design_asset_service(
    settings: Settings,
    *,
    http_client: Optional[httpx.Client] = None,
) -> DesignAssetService:
    """Wire every component once. Missing required configuration fails here."""
    if not settings.mock_image_urls:
        raise ConfigurationError("At least one mock image URL must be configured")
    if settings.is_production and not settings.has_object_storage:
        raise ConfigurationError(
            "Production mode requires DESIGNASSETS_R2_ENDPOINT, DESIGNASSETS_R2_ACCESS_KEY_ID "
            "and DESIGNASSETS_R2_SECRET_ACCESS_KEY"
        )

    owned_http_client = None
    if http_client is None:
        http_client = owned_http_client = httpx.Client(timeout=settings.http_timeout_seconds)

    strategy = select_generation_strategy(settings)
    real_client = OpenAIImageGenerationClient(settings) if strategy is GenerationStrategy.real else None
    router = ImageGenerationRouter(strategy, MockImageGenerationClient(settings.mock_image_urls), real_client)

    text_client = OpenAITextGenerationClient(settings) if settings.has_openai_credentials else None
    optimizer = PromptOptimizer(text_client)

    object_storage: Optional[ObjectStorage] = None
    signed_urls: Optional[SignedURLCache] = None
    if settings.has_object_storage:
        object_storage = ObjectStorage.from_settings(settings)
        signed_urls = SignedURLCache(
            object_storage,
            cache_ttl=settings.signed_url_cache_ttl_seconds,
            sign_ttl=settings.signed_url_ttl_seconds,
        )
    else:
        logger.warning("Object storage is not configured; persisted images will point at provider URLs")

    metadata = StorageService(settings.database_path)
    persistence = AssetPersistence(metadata, http_client, object_storage, signed_urls)
    proxy = ImageProxyResolver(
        persistence,
        http_client,
        user_agent=settings.user_agent,
        id_pattern=settings.proxy_id_pattern,
        allowed_hosts=settings.proxy_allowed_hosts,
        signed_urls=signed_urls,
    )

    logger.info("Design asset service ready (environment=%s, strategy=%s)", settings.environment, strategy.value)
    return DesignAssetService(
        optimizer=optimizer,
        router=router,
        persistence=persistence,
        proxy=proxy,
        metadata=metadata,
        signed_urls=signed_urls,
        environment=settings.environment,
        owned_http_client=owned_http_client,
    )


@lru_cache
def get_design_asset_service() -> DesignAssetService:
    return build_design_asset_service(get_settings())
