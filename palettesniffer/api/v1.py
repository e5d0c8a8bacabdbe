"""
Palette Sniffer API v1
Image and webpage palette extraction endpoints.
"""
import time

from fastapi import APIRouter, Depends, File, HTTPException, Request, UploadFile
from loguru import logger

from ..schemas import ErrorResponse, MetricsResponse, PaletteResponse, UrlAnalysisRequest
from ..services.orchestrator import PaletteExtractor, normalize_url
from ..services.reliability import ImageDecodeError, InvalidUrlError, RateLimitExceeded


router = APIRouter(prefix="/v1", tags=["Palette Extraction"])


def get_extractor(request: Request) -> PaletteExtractor:
    """Extractor created by the application lifespan."""
    return request.app.state.extractor


@router.post("/palette/image",
             response_model=PaletteResponse,
             responses={400: {"model": ErrorResponse}, 413: {"model": ErrorResponse}},
             summary="Extract Image Palette",
             description="Cluster the pixels of an uploaded image into a categorized palette")
async def extract_image_palette(
    file: UploadFile = File(..., description="Image file (any format Pillow can read)"),
    extractor: PaletteExtractor = Depends(get_extractor),
) -> PaletteResponse:
    start_time = time.time()

    try:
        file_bytes = await file.read()
    except Exception as e:
        raise HTTPException(status_code=400, detail=f"Failed to read file: {str(e)}")

    max_bytes = extractor.config.max_file_bytes
    if len(file_bytes) > max_bytes:
        raise HTTPException(
            status_code=413,
            detail=f"File too large. Maximum size: {extractor.config.max_file_mb}MB"
        )

    try:
        palette = await extractor.extract_from_image(file_bytes)
    except ImageDecodeError as e:
        raise HTTPException(status_code=400, detail=str(e))

    processing_time = (time.time() - start_time) * 1000
    return PaletteResponse.from_palette("image", palette, processing_time)


@router.post("/palette/url",
             response_model=PaletteResponse,
             responses={400: {"model": ErrorResponse}, 429: {"model": ErrorResponse}},
             summary="Extract Webpage Palette",
             description="Resolve a webpage palette through the strategy chain")
async def extract_url_palette(
    payload: UrlAnalysisRequest,
    extractor: PaletteExtractor = Depends(get_extractor),
) -> PaletteResponse:
    start_time = time.time()

    try:
        palette = await extractor.extract_from_url(payload.url)
    except InvalidUrlError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except RateLimitExceeded as e:
        logger.warning(f"Rejected URL analysis for {e.domain}: rate limit")
        raise HTTPException(
            status_code=429,
            detail=str(e),
            headers={"Retry-After": str(int(e.retry_after) + 1)}
        )

    processing_time = (time.time() - start_time) * 1000
    return PaletteResponse.from_palette(normalize_url(payload.url), palette, processing_time)


@router.get("/metrics",
            response_model=MetricsResponse,
            summary="Service Metrics",
            description="Request counters, cache and rate limiter statistics")
async def get_metrics(extractor: PaletteExtractor = Depends(get_extractor)) -> MetricsResponse:
    return MetricsResponse(**extractor.get_performance_metrics())
