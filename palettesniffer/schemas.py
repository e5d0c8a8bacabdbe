"""
Palette Sniffer API Schemas
Pydantic models for palette extraction request/response validation.
"""
from typing import Any, Dict, List

from pydantic import BaseModel, Field

from .services.colors.palette import Palette


class ColorRecordModel(BaseModel):
    """A single palette color."""
    hex: str = Field(..., description="Lowercase #rrggbb hex color")
    rgb: List[int] = Field(..., min_length=3, max_length=3, description="RGB channels 0-255")
    hsl: List[int] = Field(..., min_length=3, max_length=3, description="Hue 0-360, saturation and lightness 0-100")
    frequency: float = Field(..., description="Share of the evidence this color represents")


class PaletteModel(BaseModel):
    """Categorized palette."""
    dominant: List[ColorRecordModel] = Field(default_factory=list)
    secondary: List[ColorRecordModel] = Field(default_factory=list)
    accent: List[ColorRecordModel] = Field(default_factory=list)
    all: List[ColorRecordModel] = Field(default_factory=list, description="All colors, ranked")


class PaletteResponse(BaseModel):
    """Palette extraction response."""
    source: str = Field(..., description="'image' or the normalized URL")
    palette: PaletteModel
    processing_time_ms: float = Field(..., description="Server-side processing time")

    @classmethod
    def from_palette(cls, source: str, palette: Palette, processing_time_ms: float) -> "PaletteResponse":
        return cls(
            source=source,
            palette=PaletteModel(**palette.to_dict()),
            processing_time_ms=processing_time_ms,
        )


class UrlAnalysisRequest(BaseModel):
    """Webpage palette request."""
    url: str = Field(..., max_length=2048, description="Page URL; https:// is assumed when no scheme is given")


class MetricsResponse(BaseModel):
    """Request counters and service statistics."""
    total_requests: int
    successful_requests: int
    failed_requests: int
    average_response_time_ms: float
    cache: Dict[str, Any]
    rate_limiter: Dict[str, Any]
    summary: Dict[str, Any]


class HealthResponse(BaseModel):
    """Health check response."""
    ok: bool = Field(True, description="Service health status")
    version: str = Field(..., description="Service version")
    service: str = Field("palette-sniffer", description="Service name")


class ErrorResponse(BaseModel):
    """Error response."""
    detail: str = Field(..., description="Error message")
