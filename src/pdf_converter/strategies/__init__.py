from __future__ import annotations

from typing import Mapping

from ..config import AppConfig
from ..models import DocumentClass, Strategy
from .base import BaseStrategy, ConversionStrategy, RenderedDocument
from .external_api import ExternalApiStrategy, ILovePDFClient
from .layout_engine import LayoutEngineStrategy
from .render_engine import RenderEngineStrategy

SUPPORTED_STRATEGIES: dict[DocumentClass, frozenset[Strategy]] = {
    DocumentClass.SPREADSHEET: frozenset({Strategy.RENDER_ENGINE, Strategy.EXTERNAL_API}),
    DocumentClass.WORD: frozenset({Strategy.RENDER_ENGINE, Strategy.EXTERNAL_API}),
    DocumentClass.IMAGE: frozenset({Strategy.LAYOUT_ENGINE, Strategy.EXTERNAL_API}),
}

ALTERNATE_STRATEGY: dict[tuple[DocumentClass, Strategy], Strategy] = {
    (DocumentClass.SPREADSHEET, Strategy.RENDER_ENGINE): Strategy.EXTERNAL_API,
    (DocumentClass.SPREADSHEET, Strategy.EXTERNAL_API): Strategy.RENDER_ENGINE,
    (DocumentClass.WORD, Strategy.RENDER_ENGINE): Strategy.EXTERNAL_API,
    (DocumentClass.WORD, Strategy.EXTERNAL_API): Strategy.RENDER_ENGINE,
    (DocumentClass.IMAGE, Strategy.EXTERNAL_API): Strategy.LAYOUT_ENGINE,
    (DocumentClass.IMAGE, Strategy.LAYOUT_ENGINE): Strategy.EXTERNAL_API,
}


def build_strategies(config: AppConfig) -> Mapping[Strategy, ConversionStrategy]:
    return {
        Strategy.RENDER_ENGINE: RenderEngineStrategy(config.browser),
        Strategy.EXTERNAL_API: ExternalApiStrategy(config.external_api, config.runtime.temp_dir),
        Strategy.LAYOUT_ENGINE: LayoutEngineStrategy(image_dpi=config.runtime.image_dpi),
    }


__all__ = [
    "SUPPORTED_STRATEGIES",
    "ALTERNATE_STRATEGY",
    "BaseStrategy",
    "ConversionStrategy",
    "RenderedDocument",
    "ExternalApiStrategy",
    "ILovePDFClient",
    "LayoutEngineStrategy",
    "RenderEngineStrategy",
    "build_strategies",
]
