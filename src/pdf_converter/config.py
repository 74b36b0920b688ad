from __future__ import annotations

import json
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Mapping

from .models import DocumentClass, Strategy


CONFIG_FILE = Path("config.toml")

DEFAULT_BROWSER_ARGS: tuple[str, ...] = (
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-accelerated-2d-canvas",
    "--no-first-run",
    "--no-zygote",
    "--disable-gpu",
)


@dataclass(slots=True)
class CleanupConfig:
    retention_s: int = 300
    interval_s: int = 300


@dataclass(slots=True)
class RuntimeConfig:
    temp_dir: Path = Path("/tmp/pdf-converter")
    log_file: Path | None = None
    max_file_size_mb: int = 10
    max_images: int = 20
    max_collage_images: int = 50
    image_dpi: int = 300
    max_concurrent_conversions: int = 4
    fetch_timeout_s: float = 10.0
    cleanup: CleanupConfig = field(default_factory=CleanupConfig)


@dataclass(slots=True)
class DefaultsConfig:
    spreadsheet_strategy: Strategy = Strategy.RENDER_ENGINE
    word_strategy: Strategy = Strategy.RENDER_ENGINE
    image_strategy: Strategy = Strategy.LAYOUT_ENGINE
    enable_fallback: bool = True

    def strategy_for(self, document_class: DocumentClass) -> Strategy:
        if document_class is DocumentClass.SPREADSHEET:
            return self.spreadsheet_strategy
        if document_class is DocumentClass.WORD:
            return self.word_strategy
        return self.image_strategy


@dataclass(slots=True)
class BrowserConfig:
    headless: bool = True
    timeout_ms: int = 60000
    args: tuple[str, ...] = DEFAULT_BROWSER_ARGS


@dataclass(slots=True)
class ExternalApiConfig:
    public_key: str | None = None
    secret_key: str | None = None
    base_url: str = "https://api.ilovepdf.com/v1"
    timeout_s: float = 120.0

    @property
    def has_credentials(self) -> bool:
        return bool(self.public_key and self.secret_key)


@dataclass(slots=True)
class APIConfig:
    host: str = "127.0.0.1"
    port: int = 3004
    cors_origins: tuple[str, ...] = ("http://localhost:3000",)


@dataclass(slots=True)
class AppConfig:
    runtime: RuntimeConfig = field(default_factory=RuntimeConfig)
    defaults: DefaultsConfig = field(default_factory=DefaultsConfig)
    browser: BrowserConfig = field(default_factory=BrowserConfig)
    external_api: ExternalApiConfig = field(default_factory=ExternalApiConfig)
    api: APIConfig = field(default_factory=APIConfig)
    formats: tuple[str, ...] = (
        "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        "application/vnd.ms-excel",
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
        "application/msword",
        "image/jpeg",
        "image/jpg",
        "image/png",
        "image/webp",
        "image/tiff",
        "image/gif",
        "image/bmp",
    )

    @property
    def allowed_mime_types(self) -> tuple[str, ...]:
        return self.formats


def _read_toml(path: Path) -> Mapping[str, object]:
    if not path.exists():
        return {}
    with path.open("rb") as handle:
        return tomllib.load(handle)


def _section(data: Mapping[str, object] | None, key: str) -> Mapping[str, object] | None:
    if not data:
        return None
    value = data.get(key)
    return value if isinstance(value, Mapping) else None


def _build_cleanup(data: Mapping[str, object] | None) -> CleanupConfig:
    if not data:
        return CleanupConfig()
    return CleanupConfig(
        retention_s=int(data.get("retention_s", 300)),
        interval_s=int(data.get("interval_s", 300)),
    )


def _build_runtime(data: Mapping[str, object] | None) -> RuntimeConfig:
    if not data:
        return RuntimeConfig()
    log_file = data.get("log_file")
    return RuntimeConfig(
        temp_dir=Path(str(data.get("temp_dir", "/tmp/pdf-converter"))),
        log_file=Path(str(log_file)) if log_file else None,
        max_file_size_mb=int(data.get("max_file_size_mb", 10)),
        max_images=int(data.get("max_images", 20)),
        max_collage_images=int(data.get("max_collage_images", 50)),
        image_dpi=int(data.get("image_dpi", 300)),
        max_concurrent_conversions=int(data.get("max_concurrent_conversions", 4)),
        fetch_timeout_s=float(data.get("fetch_timeout_s", 10.0)),
        cleanup=_build_cleanup(_section(data, "cleanup")),
    )


def _build_defaults(data: Mapping[str, object] | None) -> DefaultsConfig:
    if not data:
        return DefaultsConfig()
    base = DefaultsConfig()
    return DefaultsConfig(
        spreadsheet_strategy=Strategy.parse(data.get("spreadsheet_strategy")) or base.spreadsheet_strategy,
        word_strategy=Strategy.parse(data.get("word_strategy")) or base.word_strategy,
        image_strategy=Strategy.parse(data.get("image_strategy")) or base.image_strategy,
        enable_fallback=bool(data.get("enable_fallback", True)),
    )


def _build_browser(data: Mapping[str, object] | None) -> BrowserConfig:
    if not data:
        return BrowserConfig()
    return BrowserConfig(
        headless=bool(data.get("headless", True)),
        timeout_ms=int(data.get("timeout_ms", 60000)),
        args=_tuple_of_strings(data.get("args"), DEFAULT_BROWSER_ARGS),
    )


def _build_external_api(data: Mapping[str, object] | None) -> ExternalApiConfig:
    if not data:
        return ExternalApiConfig()
    public_key = data.get("public_key")
    secret_key = data.get("secret_key")
    return ExternalApiConfig(
        public_key=str(public_key) if public_key else None,
        secret_key=str(secret_key) if secret_key else None,
        base_url=str(data.get("base_url", "https://api.ilovepdf.com/v1")),
        timeout_s=float(data.get("timeout_s", 120.0)),
    )


def _build_api(data: Mapping[str, object] | None) -> APIConfig:
    if not data:
        return APIConfig()
    return APIConfig(
        host=str(data.get("host", "127.0.0.1")),
        port=int(data.get("port", 3004)),
        cors_origins=_tuple_of_strings(data.get("cors_origins"), APIConfig().cors_origins),
    )


def _tuple_of_strings(value: object | None, default: Iterable[str]) -> tuple[str, ...]:
    if not value:
        return tuple(default)
    if isinstance(value, str):
        return (value,)
    if isinstance(value, Iterable):
        return tuple(str(item) for item in value)
    raise TypeError(f"Unsupported list configuration: {value!r}")


def load_config(path: Path | None = None) -> AppConfig:
    path = path or CONFIG_FILE
    raw = _read_toml(path)
    return AppConfig(
        runtime=_build_runtime(_section(raw, "runtime")),
        defaults=_build_defaults(_section(raw, "defaults")),
        browser=_build_browser(_section(raw, "browser")),
        external_api=_build_external_api(_section(raw, "external_api")),
        api=_build_api(_section(raw, "api")),
        formats=_tuple_of_strings(raw.get("formats") if raw else None, AppConfig().formats),
    )


def _mask(secret: str | None) -> str | None:
    if not secret:
        return None
    return secret[:4] + "****"


def dump_config(config: AppConfig) -> str:
    payload = {
        "runtime": {
            "temp_dir": str(config.runtime.temp_dir),
            "log_file": str(config.runtime.log_file) if config.runtime.log_file else None,
            "max_file_size_mb": config.runtime.max_file_size_mb,
            "max_images": config.runtime.max_images,
            "max_collage_images": config.runtime.max_collage_images,
            "image_dpi": config.runtime.image_dpi,
            "max_concurrent_conversions": config.runtime.max_concurrent_conversions,
            "fetch_timeout_s": config.runtime.fetch_timeout_s,
            "cleanup": {
                "retention_s": config.runtime.cleanup.retention_s,
                "interval_s": config.runtime.cleanup.interval_s,
            },
        },
        "defaults": {
            "spreadsheet_strategy": config.defaults.spreadsheet_strategy.value,
            "word_strategy": config.defaults.word_strategy.value,
            "image_strategy": config.defaults.image_strategy.value,
            "enable_fallback": config.defaults.enable_fallback,
        },
        "browser": {
            "headless": config.browser.headless,
            "timeout_ms": config.browser.timeout_ms,
            "args": list(config.browser.args),
        },
        "external_api": {
            "public_key": _mask(config.external_api.public_key),
            "secret_key": _mask(config.external_api.secret_key),
            "base_url": config.external_api.base_url,
            "timeout_s": config.external_api.timeout_s,
        },
        "formats": list(config.allowed_mime_types),
        "api": {
            "host": config.api.host,
            "port": config.api.port,
            "cors_origins": list(config.api.cors_origins),
        },
    }
    return json.dumps(payload, indent=2)
