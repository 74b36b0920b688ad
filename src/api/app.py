from __future__ import annotations

import logging
import time

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from pdf_converter.cleanup import TempSweeper
from pdf_converter.config import AppConfig
from pdf_converter.core import ConversionService
from pdf_converter.fetch import ImageFetcher
from pdf_converter.settings import Settings, get_settings, load_app_config
from pdf_converter.stats import ConversionStats
from pdf_converter.utils import ensure_temp_dir

from .routers import convert, health
from .utils import ConversionExecutor

logger = logging.getLogger(__name__)


def create_app(
    settings: Settings | None = None,
    *,
    config: AppConfig | None = None,
    service: ConversionService | None = None,
    fetcher: ImageFetcher | None = None,
) -> FastAPI:
    config = config or load_app_config(settings or get_settings())
    # startup fails when the temp dir cannot be created
    ensure_temp_dir(config.runtime.temp_dir)

    app = FastAPI(title="PDF Converter", version="1.0.0")
    app.state.config = config
    app.state.started_at = time.monotonic()
    app.state.service = service or ConversionService(config, stats=ConversionStats())
    app.state.executor = ConversionExecutor(config.runtime.max_concurrent_conversions)
    app.state.fetcher = fetcher or ImageFetcher(
        timeout_s=config.runtime.fetch_timeout_s,
        max_bytes=config.runtime.max_file_size_mb * 1024 * 1024,
    )
    app.state.sweeper = TempSweeper(
        config.runtime.temp_dir,
        retention_s=config.runtime.cleanup.retention_s,
        interval_s=config.runtime.cleanup.interval_s,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(config.api.cors_origins),
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
        expose_headers=["Content-Disposition", "X-Conversion-Method", "X-Total-Pages"],
    )
    app.add_exception_handler(convert.UploadRejected, convert.upload_rejected_handler)
    app.include_router(health.router)
    app.include_router(convert.router)

    @app.on_event("startup")
    async def _startup() -> None:  # pragma: no cover - FastAPI lifecycle
        app.state.sweeper.start()
        logger.info("PDF converter ready, temp dir %s", config.runtime.temp_dir)

    @app.on_event("shutdown")
    async def _shutdown() -> None:  # pragma: no cover - FastAPI lifecycle
        sweeper: TempSweeper = app.state.sweeper
        sweeper.stop()

    return app


__all__ = ["create_app"]
