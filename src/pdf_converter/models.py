"""Domain models for PDF conversion requests and results."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Sequence

from .errors import ConversionError, ValidationError

PDF_MIME_TYPE = "application/pdf"

_HEX_COLOR_RE = re.compile(r"^#?([a-f\d]{2})([a-f\d]{2})([a-f\d]{2})$", re.IGNORECASE)


class DocumentClass(str, Enum):
    SPREADSHEET = "spreadsheet"
    WORD = "word"
    IMAGE = "image"


class Strategy(str, Enum):
    RENDER_ENGINE = "render_engine"
    EXTERNAL_API = "external_api"
    LAYOUT_ENGINE = "layout_engine"

    @classmethod
    def parse(cls, value: "str | Strategy | None") -> "Strategy | None":
        if value is None or isinstance(value, Strategy):
            return value
        normalized = value.strip().lower().replace("-", "_")
        if not normalized:
            return None
        alias = _STRATEGY_ALIASES.get(normalized)
        if alias is not None:
            return alias
        try:
            return cls(normalized)
        except ValueError as exc:
            raise ValidationError(f"Unknown conversion strategy: {value}") from exc


_STRATEGY_ALIASES: dict[str, Strategy] = {
    "puppeteer": Strategy.RENDER_ENGINE,
    "playwright": Strategy.RENDER_ENGINE,
    "browser": Strategy.RENDER_ENGINE,
    "ilovepdf": Strategy.EXTERNAL_API,
    "api": Strategy.EXTERNAL_API,
    "pdf_lib": Strategy.LAYOUT_ENGINE,
    "layout": Strategy.LAYOUT_ENGINE,
}


class PageSize(str, Enum):
    A4 = "A4"
    A3 = "A3"
    LETTER = "Letter"
    LEGAL = "Legal"
    TABLOID = "Tabloid"

    @classmethod
    def parse(cls, value: "str | PageSize | None") -> "PageSize":
        if isinstance(value, PageSize):
            return value
        if value:
            for member in cls:
                if member.value.lower() == value.strip().lower():
                    return member
        return cls.A4


class Orientation(str, Enum):
    PORTRAIT = "portrait"
    LANDSCAPE = "landscape"

    @classmethod
    def parse(cls, value: "str | Orientation | None") -> "Orientation":
        if isinstance(value, Orientation):
            return value
        if value and value.strip().lower() == cls.LANDSCAPE.value:
            return cls.LANDSCAPE
        return cls.PORTRAIT


class FitMode(str, Enum):
    CONTAIN = "contain"
    COVER = "cover"
    FILL = "fill"

    @classmethod
    def parse(cls, value: "str | FitMode | None") -> "FitMode":
        if isinstance(value, FitMode):
            return value
        if not value:
            return cls.CONTAIN
        try:
            return cls(value.strip().lower())
        except ValueError as exc:
            raise ValidationError(f"Unknown fit mode: {value}") from exc


class Outcome(str, Enum):
    SUCCESS = "success"
    FAILURE = "failure"


@dataclass(frozen=True, slots=True)
class RGB:
    r: int
    g: int
    b: int

    @classmethod
    def from_hex(cls, value: str | None) -> "RGB":
        match = _HEX_COLOR_RE.match((value or "").strip())
        if not match:
            return WHITE
        return cls(*(int(part, 16) for part in match.groups()))

    def as_fractions(self) -> tuple[float, float, float]:
        return (self.r / 255, self.g / 255, self.b / 255)


WHITE = RGB(255, 255, 255)


@dataclass(frozen=True, slots=True)
class CollageOptions:
    columns: int = 2
    rows: int = 2
    spacing_pt: float = 10.0
    background_color: RGB | None = WHITE

    @property
    def images_per_page(self) -> int:
        return self.columns * self.rows

    def validate(self) -> None:
        if self.columns < 1 or self.rows < 1:
            raise ValidationError("Collage needs at least one column and one row")
        if self.spacing_pt < 0:
            raise ValidationError("Collage spacing must not be negative")


@dataclass(frozen=True, slots=True)
class ConversionOptions:
    """Per-request conversion settings."""

    file_name_stem: str = "document"
    strategy: Strategy | None = None
    enable_fallback: bool = True
    page_size: PageSize = PageSize.A4
    orientation: Orientation = Orientation.PORTRAIT
    margin_pt: float = 20.0
    fit_mode: FitMode = FitMode.CONTAIN
    quality_pct: int = 90
    collage: CollageOptions | None = None

    def validate(self) -> None:
        if self.margin_pt < 0:
            raise ValidationError("Margin must not be negative")
        if not 1 <= self.quality_pct <= 100:
            raise ValidationError("Quality must be between 1 and 100")
        if self.collage is not None:
            self.collage.validate()


@dataclass(frozen=True, slots=True)
class ConversionRequest:
    """A single unit of conversion work. Immutable once created."""

    document_class: DocumentClass
    payload: bytes | tuple[bytes, ...]
    options: ConversionOptions = field(default_factory=ConversionOptions)

    def __post_init__(self) -> None:
        if not isinstance(self.payload, (bytes, tuple)):
            object.__setattr__(self, "payload", tuple(self.payload))

    @property
    def buffers(self) -> tuple[bytes, ...]:
        if isinstance(self.payload, bytes):
            return (self.payload,)
        return self.payload

    @property
    def size_bytes(self) -> int:
        return sum(len(buffer) for buffer in self.buffers)


@dataclass(frozen=True, slots=True)
class ConversionResult:
    """Normalised outcome of a conversion, whichever strategy produced it."""

    outcome: Outcome
    strategy_used: Strategy | None
    data: bytes | None = None
    mime_type: str = PDF_MIME_TYPE
    page_count: int = 0
    file_name: str | None = None
    error_kind: str | None = None
    message: str | None = None
    warnings: tuple[str, ...] = ()
    attempts: tuple[Strategy, ...] = ()

    @property
    def succeeded(self) -> bool:
        return self.outcome is Outcome.SUCCESS

    @classmethod
    def success(
        cls,
        strategy: Strategy,
        data: bytes,
        *,
        page_count: int,
        file_name: str,
        warnings: Sequence[str] = (),
    ) -> "ConversionResult":
        return cls(
            outcome=Outcome.SUCCESS,
            strategy_used=strategy,
            data=data,
            page_count=max(1, page_count),
            file_name=file_name,
            warnings=tuple(warnings),
        )

    @classmethod
    def failure(
        cls,
        strategy: Strategy | None,
        error: ConversionError,
        *,
        warnings: Sequence[str] = (),
    ) -> "ConversionResult":
        return cls(
            outcome=Outcome.FAILURE,
            strategy_used=strategy,
            error_kind=error.code,
            message=error.message,
            warnings=tuple(warnings),
        )

    def to_error_payload(self) -> dict[str, object]:
        return {
            "success": False,
            "error_kind": self.error_kind,
            "error": self.message,
            "strategy": self.strategy_used.value if self.strategy_used else None,
        }


__all__ = [
    "PDF_MIME_TYPE",
    "DocumentClass",
    "Strategy",
    "PageSize",
    "Orientation",
    "FitMode",
    "Outcome",
    "RGB",
    "WHITE",
    "CollageOptions",
    "ConversionOptions",
    "ConversionRequest",
    "ConversionResult",
]
