from functools import lru_cache
from typing import List, Optional

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration for the design asset backend."""

    #----------------------------------------------------------
    # Execution mode
    #----------------------------------------------------------
    environment: str = Field(
        default="development",
        description="Execution mode. Only 'production' enables the real image provider.",
    )
    log_level: str = Field(
        default="INFO",
        description="Root logging level.",
    )

    #----------------------------------------------------------
    # OpenAI settings
    #----------------------------------------------------------
    openai_api_key: SecretStr = Field(
        default=SecretStr(""),
        description="API key for the OpenAI text and image endpoints.",
    )
    openai_base_url: Optional[str] = Field(
        default=None,
        description="Override for OpenAI-compatible endpoints.",
    )
    text_model_id: str = Field(
        default="gpt-4o-mini",
        description="Chat model used to rewrite prompts.",
    )
    image_model_id: str = Field(
        default="dall-e-3",
        description="Image model used by the real provider.",
    )
    image_quality: str = Field(
        default="hd",
        description="Quality parameter passed to the image endpoint.",
    )
    temperature: float = Field(
        default=0.4,
        ge=0.0,
        le=2.0,
        description="Sampling temperature for prompt optimization.",
    )
    max_new_tokens: int = Field(
        default=300,
        description="Maximum number of tokens for an optimized prompt.",
    )
    mock_image_urls: List[str] = Field(
        default=[
            "https://images.unsplash.com/photo-1541701494587-cb58502866ab?w=512&h=512&fit=crop",
            "https://images.unsplash.com/photo-1578662996442-48f60103fc96?w=512&h=512&fit=crop",
            "https://images.unsplash.com/photo-1558618666-fcd25c85cd64?w=512&h=512&fit=crop",
            "https://images.unsplash.com/photo-1557672172-298e090bd0f1?w=512&h=512&fit=crop",
            "https://images.unsplash.com/photo-1549490349-8643362247b5?w=512&h=512&fit=crop",
        ],
        description="Placeholder images served by the mock provider.",
    )

    #----------------------------------------------------------
    # Storage settings
    #----------------------------------------------------------
    database_path: str = Field(
        default="designassets.db",
        description="SQLite file holding persisted asset records.",
    )
    r2_endpoint: Optional[str] = Field(
        default=None,
        description="S3-compatible endpoint, e.g. https://<account>.r2.cloudflarestorage.com",
    )
    r2_access_key_id: SecretStr = Field(default=SecretStr(""))
    r2_secret_access_key: SecretStr = Field(default=SecretStr(""))
    r2_bucket_name: str = Field(
        default="novamente-images",
        description="Bucket receiving persisted design images.",
    )
    r2_region: str = Field(default="auto")
    r2_public_domain: Optional[str] = Field(
        default=None,
        description="Public domain serving the bucket. Signed URLs are used when unset.",
    )

    #----------------------------------------------------------
    # Delivery settings
    #----------------------------------------------------------
    signed_url_cache_ttl_seconds: float = Field(
        default=300,
        gt=0,
        description="How long a signed URL is reused from the in-process cache.",
    )
    signed_url_ttl_seconds: int = Field(
        default=86400,
        gt=0,
        description="Lifetime requested for each signed URL.",
    )
    http_timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        description="Timeout applied to every outbound network call.",
    )
    user_agent: str = Field(
        default="Mozilla/5.0 (compatible; ImageProxy/1.0)",
        description="User-Agent sent when fetching upstream image bytes.",
    )
    proxy_id_pattern: str = Field(
        default=r"^(temp|asset)-[A-Za-z0-9_-]+$",
        description="Identifiers served by the image proxy must match this pattern.",
    )
    proxy_allowed_hosts: List[str] = Field(
        default=["oaidalleapiprodscus.blob.core.windows.net"],
        description="Hosts that /proxy-image is allowed to relay.",
    )

    model_config = SettingsConfigDict(
        env_prefix="DESIGNASSETS_",
        env_file=".env",
        env_file_encoding="utf-8",
    )

    @property
    def is_production(self) -> bool:
        return self.environment.strip().lower() == "production"

    @property
    def has_openai_credentials(self) -> bool:
        return bool(self.openai_api_key.get_secret_value())

    @property
    def has_object_storage(self) -> bool:
        return bool(
            self.r2_endpoint
            and self.r2_access_key_id.get_secret_value()
            and self.r2_secret_access_key.get_secret_value()
        )


@lru_cache
def get_settings() -> Settings:
    return Settings()  # type: ignore[call-arg]
