from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

from .config import CONFIG_FILE, AppConfig, load_config
from .models import Strategy

ENV_PREFIX = "PDFC_"


@dataclass(frozen=True, slots=True)
class Settings:
    """Application runtime settings sourced from environment variables."""

    config_path: Path = CONFIG_FILE
    temp_dir: Path | None = None
    log_file: Path | None = None
    enable_fallback: bool | None = None
    default_strategy: Strategy | None = None
    headless: bool | None = None
    browser_timeout_ms: int | None = None
    cleanup_interval_s: int | None = None
    max_file_size_mb: int | None = None
    port: int | None = None
    ilovepdf_public_key: str | None = None
    ilovepdf_secret_key: str | None = None


def _parse_bool(value: str | None) -> bool | None:
    if value is None:
        return None
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "on"}:
        return True
    if normalized in {"0", "false", "no", "off"}:
        return False
    return None


def _parse_int(value: str | None) -> int | None:
    if value is None or not value.strip():
        return None
    try:
        return int(value)
    except ValueError:
        return None


def _env(name: str) -> str | None:
    return os.getenv(f"{ENV_PREFIX}{name}")


def _read_settings() -> Settings:
    config_env = _env("CONFIG_PATH")
    temp_env = _env("TEMP_DIR")
    log_env = _env("LOG_FILE")
    return Settings(
        config_path=Path(config_env) if config_env else CONFIG_FILE,
        temp_dir=Path(temp_env) if temp_env else None,
        log_file=Path(log_env) if log_env else None,
        enable_fallback=_parse_bool(_env("ENABLE_FALLBACK")),
        default_strategy=Strategy.parse(_env("DEFAULT_STRATEGY")),
        headless=_parse_bool(_env("BROWSER_HEADLESS")),
        browser_timeout_ms=_parse_int(_env("BROWSER_TIMEOUT_MS")),
        cleanup_interval_s=_parse_int(_env("CLEANUP_INTERVAL_S")),
        max_file_size_mb=_parse_int(_env("MAX_FILE_SIZE_MB")),
        port=_parse_int(_env("PORT")),
        ilovepdf_public_key=_env("ILOVEPDF_PUBLIC_KEY") or os.getenv("ILOVEPDF_PUBLIC_KEY"),
        ilovepdf_secret_key=_env("ILOVEPDF_SECRET_KEY") or os.getenv("ILOVEPDF_SECRET_KEY"),
    )


@lru_cache
def get_settings() -> Settings:
    """Return cached settings instance."""

    return _read_settings()


def apply_settings(config: AppConfig, settings: Settings) -> AppConfig:
    if settings.temp_dir is not None:
        config.runtime.temp_dir = settings.temp_dir
    if settings.log_file is not None:
        config.runtime.log_file = settings.log_file
    if settings.max_file_size_mb is not None:
        config.runtime.max_file_size_mb = settings.max_file_size_mb
    if settings.cleanup_interval_s is not None:
        config.runtime.cleanup.interval_s = settings.cleanup_interval_s
    if settings.enable_fallback is not None:
        config.defaults.enable_fallback = settings.enable_fallback
    # the legacy single default only applies to the document classes that can use it
    if settings.default_strategy in {Strategy.RENDER_ENGINE, Strategy.EXTERNAL_API}:
        config.defaults.spreadsheet_strategy = settings.default_strategy
        config.defaults.word_strategy = settings.default_strategy
    if settings.headless is not None:
        config.browser.headless = settings.headless
    if settings.browser_timeout_ms is not None:
        config.browser.timeout_ms = settings.browser_timeout_ms
    if settings.port is not None:
        config.api.port = settings.port
    if settings.ilovepdf_public_key:
        config.external_api.public_key = settings.ilovepdf_public_key
    if settings.ilovepdf_secret_key:
        config.external_api.secret_key = settings.ilovepdf_secret_key
    return config


def load_app_config(settings: Settings | None = None) -> AppConfig:
    settings = settings or get_settings()
    return apply_settings(load_config(settings.config_path), settings)


__all__ = ["ENV_PREFIX", "Settings", "get_settings", "apply_settings", "load_app_config"]
