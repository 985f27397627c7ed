"""FastAPI entry point exposing the design asset REST API."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, RedirectResponse, Response
from starlette.concurrency import run_in_threadpool

from .config import get_settings
from .errors import DesignAssetsError
from .schemas import (
    GenerationRequest,
    GenerationResponse,
    HealthResponse,
    LookupResponse,
    OptimizePromptRequest,
    OptimizePromptResponse,
    PersistRequest,
    PersistResponse,
    ProxyResult,
)
from .service import DesignAssetService, get_design_asset_service

logger = logging.getLogger(__name__)

IMMUTABLE_CACHE_CONTROL = "public, max-age=31536000, immutable"


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    logging.basicConfig(level=settings.log_level.upper())
    logging.getLogger("httpx").setLevel(logging.WARNING)

    # Build the service graph at startup so missing configuration fails fast.
    factory = app.dependency_overrides.get(get_design_asset_service, get_design_asset_service)
    service = factory()
    logger.info("Serving with %s image generation", service.generation_strategy.value)
    yield

    service.close()
    if factory is get_design_asset_service:
        get_design_asset_service.cache_clear()


app = FastAPI(title="Design Assets Backend", version="1.0.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(DesignAssetsError)
async def design_assets_error_handler(request: Request, exc: DesignAssetsError):
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(request: Request, exc: RequestValidationError):
    fields = [str(err["loc"][-1]) for err in exc.errors() if err.get("loc")]
    message = f"Missing or invalid field(s): {', '.join(fields)}" if fields else "Invalid request"
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"error": message})


def _image_response(result: ProxyResult, not_found_message: str = "Image not found") -> Response:
    if result.ok:
        return Response(
            content=result.content,
            media_type=result.content_type,
            headers={
                "Cache-Control": IMMUTABLE_CACHE_CONTROL,
                "Access-Control-Allow-Origin": "*",
            },
        )
    if result.status == status.HTTP_404_NOT_FOUND:
        return JSONResponse(status_code=result.status, content={"error": not_found_message})
    return JSONResponse(status_code=result.status, content={"error": "Failed to fetch image"})


@app.get("/health", response_model=HealthResponse, summary="Health Check Endpoint")
async def healthcheck(service: DesignAssetService = Depends(get_design_asset_service)):
    stored = await run_in_threadpool(service.metadata.count_records)
    return HealthResponse(
        status="ok",
        environment=service.environment,
        generationStrategy=service.generation_strategy.value,
        objectStorage=service.has_object_storage,
        storedImages=stored,
    )


@app.post(
    "/optimize-prompt",
    response_model=OptimizePromptResponse,
    summary="Rewrite a raw prompt into a print-ready prompt",
)
async def optimize_prompt(
    payload: OptimizePromptRequest,
    service: DesignAssetService = Depends(get_design_asset_service),
):
    optimized = await run_in_threadpool(service.optimize_prompt, payload.prompt, payload.layout)
    return OptimizePromptResponse(optimizedPrompt=optimized.text, fallback=optimized.used_fallback)


@app.post(
    "/generate-image",
    response_model=GenerationResponse,
    summary="Optimize a prompt and generate a design image",
)
async def generate_image(
    payload: GenerationRequest,
    service: DesignAssetService = Depends(get_design_asset_service),
):
    optimized, asset = await run_in_threadpool(service.generate_image, payload.prompt, payload.layout)
    return GenerationResponse(imageUrl=asset.source_url, optimizedPrompt=optimized.text)


@app.post(
    "/temp-image",
    response_model=PersistResponse,
    summary="Persist a generated image under a client-chosen id",
)
async def save_temp_image(
    payload: PersistRequest,
    service: DesignAssetService = Depends(get_design_asset_service),
):
    outcome = await run_in_threadpool(service.persist_image, payload.id, payload.imageUrl)
    return PersistResponse(
        success=outcome.success,
        id=outcome.id,
        imageUrl=outcome.canonical_url,
        degraded=outcome.degraded,
        status=outcome.status,
    )


@app.get(
    "/temp-image",
    response_model=LookupResponse,
    summary="Look up a persisted image by id",
)
async def load_temp_image(
    id: Optional[str] = None,
    service: DesignAssetService = Depends(get_design_asset_service),
):
    record = await run_in_threadpool(service.lookup_image, id or "")
    return LookupResponse(imageUrl=record.canonical_url, originalUrl=record.original_url)


@app.get("/images/{image_id}", summary="Serve the bytes of a persisted image")
async def proxy_image_by_id(
    image_id: str,
    service: DesignAssetService = Depends(get_design_asset_service),
):
    result = await run_in_threadpool(service.resolve_image, image_id)
    return _image_response(result)


@app.get("/proxy-image", summary="Relay an image from an allowed provider host")
async def proxy_external_image(
    url: Optional[str] = None,
    service: DesignAssetService = Depends(get_design_asset_service),
):
    result = await run_in_threadpool(service.relay_external, url or "")
    if result is None:
        return JSONResponse(status_code=status.HTTP_403_FORBIDDEN, content={"error": "Invalid image source"})
    return _image_response(result)


@app.get("/r2-public", summary="Redirect to a time-limited URL for a stored object")
async def signed_delivery_redirect(
    key: Optional[str] = None,
    service: DesignAssetService = Depends(get_design_asset_service),
):
    signed_url = await run_in_threadpool(service.signed_delivery_url, key or "")
    return RedirectResponse(signed_url, status_code=status.HTTP_307_TEMPORARY_REDIRECT)


__all__ = ["app"]


if __name__ == "__main__":  # pragma: no cover - convenience entry point
    import uvicorn

    uvicorn.run("designassets.main:app", host="0.0.0.0", port=8000, reload=True)
