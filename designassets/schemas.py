"""Pydantic models shared by the services and the FastAPI endpoints."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class Layout(str, Enum):
    square = "square"
    tall = "tall"
    wide = "wide"


class ProviderKind(str, Enum):
    mock = "mock"
    real = "real"


class PersistStatus(str, Enum):
    persisted = "persisted"
    degraded = "degraded"
    not_recorded = "not_recorded"


# ---- Domain models ----
class OptimizedPrompt(BaseModel):
    model_config = ConfigDict(frozen=True)

    text: str
    used_fallback: bool


class GeneratedAsset(BaseModel):
    model_config = ConfigDict(frozen=True)

    source_url: str
    provider_kind: ProviderKind


class PersistedAssetRecord(BaseModel):
    id: str
    canonical_url: str
    original_url: str
    created_at: datetime
    degraded: bool = False


class PersistOutcome(BaseModel):
    id: str
    success: bool
    canonical_url: str
    degraded: bool
    status: PersistStatus


class ProxyResult(BaseModel):
    status: int
    content: Optional[bytes] = None
    content_type: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status == 200 and self.content is not None
# ------------------------------------------------------


class GenerationRequest(BaseModel):
    prompt: str = Field(..., description="Raw prompt typed by the user")
    layout: str = Field(default=Layout.square.value, description="One of square, tall or wide")


class GenerationResponse(BaseModel):
    imageUrl: str
    optimizedPrompt: str


class OptimizePromptRequest(BaseModel):
    prompt: str = Field(..., description="Raw prompt to optimize")
    layout: Optional[str] = Field(default=None, description="Optional layout hint")


class OptimizePromptResponse(BaseModel):
    optimizedPrompt: str
    fallback: bool


class PersistRequest(BaseModel):
    imageUrl: str = Field(..., description="URL returned by the image provider")
    id: str = Field(..., description="Opaque identifier chosen by the client")


class PersistResponse(BaseModel):
    success: bool
    id: str
    imageUrl: str
    degraded: bool
    status: PersistStatus


class LookupResponse(BaseModel):
    imageUrl: str
    originalUrl: str


class HealthResponse(BaseModel):
    status: str
    environment: str
    generationStrategy: str
    objectStorage: bool
    storedImages: int
