from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class ServiceAvailability(BaseModel):
    render_engine: str
    external_api: str
    layout_engine: str


class HealthConfig(BaseModel):
    default_strategy: dict[str, str]
    fallback_enabled: bool


class HealthStatus(BaseModel):
    status: str
    version: str
    uptime_s: float
    timestamp: str
    services: ServiceAvailability
    config: HealthConfig


class ConversionCounters(BaseModel):
    total: int = 0
    successful: int = 0
    failed: int = 0
    by_strategy: dict[str, int] = Field(default_factory=dict)


class StatsBody(BaseModel):
    uptime_s: float
    conversions: ConversionCounters


class StatsResponse(BaseModel):
    success: bool = True
    stats: StatsBody
    timestamp: str


class ErrorResponse(BaseModel):
    success: bool = False
    error_kind: str | None = None
    error: str | None = None
    strategy: str | None = None


class ImagesFromUrlsRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    urls: list[str] = Field(default_factory=list)
    file_name: str | None = Field(None, alias="fileName")
    method: str | None = None
    enable_fallback: bool = Field(True, alias="enableFallback")
    page_size: str | None = Field(None, alias="pageSize")
    orientation: str | None = None
    margin: float = 20.0
    quality: int = 90
    fit: str | None = None


__all__ = [
    "ImagesFromUrlsRequest",
    "ServiceAvailability",
    "HealthConfig",
    "HealthStatus",
    "ConversionCounters",
    "StatsBody",
    "StatsResponse",
    "ErrorResponse",
]
