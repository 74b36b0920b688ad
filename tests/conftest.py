from __future__ import annotations

from io import BytesIO
from pathlib import Path
from typing import Callable

import pytest
from PIL import Image

from pdf_converter.config import AppConfig, RuntimeConfig


@pytest.fixture
def make_image() -> Callable[..., bytes]:
    def _make(width: int = 40, height: int = 20, *, fmt: str = "PNG", color: str = "red", orientation: int | None = None) -> bytes:
        image = Image.new("RGB", (width, height), color)
        buffer = BytesIO()
        if orientation is not None:
            exif = image.getexif()
            exif[0x0112] = orientation
            image.save(buffer, format=fmt, exif=exif)
        else:
            image.save(buffer, format=fmt)
        return buffer.getvalue()

    return _make


@pytest.fixture
def app_config(tmp_path: Path) -> AppConfig:
    runtime = RuntimeConfig()
    runtime.temp_dir = tmp_path / "tmp"
    runtime.image_dpi = 72
    return AppConfig(runtime=runtime)
