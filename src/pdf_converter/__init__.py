"""Spreadsheet, Word and image to PDF conversion service."""

from .config import AppConfig, load_config
from .core import ConversionService
from .errors import (
    ConfigurationError,
    ConversionError,
    InvalidGeometry,
    PartialItemFailure,
    StrategyExecutionError,
    ValidationError,
)
from .models import (
    CollageOptions,
    ConversionOptions,
    ConversionRequest,
    ConversionResult,
    DocumentClass,
    Strategy,
)
from .stats import ConversionStats

__all__ = [
    "AppConfig",
    "load_config",
    "ConversionService",
    "ConversionStats",
    "ConversionError",
    "ValidationError",
    "ConfigurationError",
    "StrategyExecutionError",
    "InvalidGeometry",
    "PartialItemFailure",
    "CollageOptions",
    "ConversionOptions",
    "ConversionRequest",
    "ConversionResult",
    "DocumentClass",
    "Strategy",
]
