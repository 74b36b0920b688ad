from __future__ import annotations

import time
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Request

from api.dependencies import get_config, get_service
from api.schemas import (
    ConversionCounters,
    HealthConfig,
    HealthStatus,
    ServiceAvailability,
    StatsBody,
    StatsResponse,
)
from pdf_converter.config import AppConfig
from pdf_converter.core import ConversionService
from pdf_converter.models import DocumentClass

router = APIRouter(tags=["health"])


def _uptime(request: Request) -> float:
    started = getattr(request.app.state, "started_at", None)
    return round(time.monotonic() - started, 3) if started is not None else 0.0


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


@router.get("/health", summary="Health check", response_model=HealthStatus)
def health(request: Request, config: AppConfig = Depends(get_config)) -> HealthStatus:
    return HealthStatus(
        status="healthy",
        version=request.app.version,
        uptime_s=_uptime(request),
        timestamp=_now(),
        services=ServiceAvailability(
            render_engine="available",
            external_api="configured" if config.external_api.has_credentials else "not-configured",
            layout_engine="available",
        ),
        config=HealthConfig(
            default_strategy={
                document_class.value: config.defaults.strategy_for(document_class).value
                for document_class in DocumentClass
            },
            fallback_enabled=config.defaults.enable_fallback,
        ),
    )


@router.get("/api/stats", summary="Conversion counters", response_model=StatsResponse)
def stats(request: Request, service: ConversionService = Depends(get_service)) -> StatsResponse:
    snapshot = service.stats.snapshot()
    return StatsResponse(
        stats=StatsBody(
            uptime_s=_uptime(request),
            conversions=ConversionCounters(**snapshot.to_dict()),
        ),
        timestamp=_now(),
    )


__all__ = ["router"]
