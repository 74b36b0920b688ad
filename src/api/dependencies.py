"""FastAPI dependency providers for application services."""

from __future__ import annotations

from fastapi import HTTPException, Request

from pdf_converter.config import AppConfig
from pdf_converter.core import ConversionService
from pdf_converter.fetch import ImageFetcher

from .utils import ConversionExecutor


def get_config(request: Request) -> AppConfig:
    config = getattr(request.app.state, "config", None)
    if config is None:
        raise HTTPException(status_code=503, detail="CONFIG_UNAVAILABLE")
    return config


def get_service(request: Request) -> ConversionService:
    service = getattr(request.app.state, "service", None)
    if service is None:
        raise HTTPException(status_code=503, detail="SERVICE_UNAVAILABLE")
    return service


def get_executor(request: Request) -> ConversionExecutor:
    executor = getattr(request.app.state, "executor", None)
    if executor is None:
        raise HTTPException(status_code=503, detail="EXECUTOR_UNAVAILABLE")
    return executor


def get_fetcher(request: Request) -> ImageFetcher:
    fetcher = getattr(request.app.state, "fetcher", None)
    if fetcher is None:
        raise HTTPException(status_code=503, detail="FETCHER_UNAVAILABLE")
    return fetcher


__all__ = ["get_config", "get_service", "get_executor", "get_fetcher"]
