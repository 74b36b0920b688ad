from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import ClassVar, Protocol

from ..errors import ConversionError, StrategyExecutionError
from ..models import ConversionRequest, ConversionResult, DocumentClass, Strategy
from ..utils import sanitize_file_name

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class RenderedDocument:
    data: bytes
    page_count: int
    warnings: list[str] = field(default_factory=list)


class ConversionStrategy(Protocol):
    strategy: Strategy

    def execute(self, request: ConversionRequest) -> ConversionResult:  # pragma: no cover - interface
        ...


class BaseStrategy:
    """Shared result normalisation for every backend.

    Subclasses implement :meth:`_convert` and raise typed
    :class:`ConversionError` subclasses; :meth:`execute` never raises.
    """

    strategy: ClassVar[Strategy]
    supported: ClassVar[frozenset[DocumentClass]] = frozenset()

    def supports(self, document_class: DocumentClass) -> bool:
        return document_class in self.supported

    def execute(self, request: ConversionRequest) -> ConversionResult:
        try:
            rendered = self._convert(request)
        except ConversionError as exc:
            logger.warning("%s failed with %s: %s", self.strategy.value, exc.code, exc.message)
            return ConversionResult.failure(self.strategy, exc, warnings=_item_warnings(exc))
        except Exception as exc:
            logger.exception("%s raised an unexpected error", self.strategy.value)
            wrapped = StrategyExecutionError(f"{self.strategy.value} failed: {exc}")
            return ConversionResult.failure(self.strategy, wrapped)
        if not rendered.data:
            return ConversionResult.failure(
                self.strategy, StrategyExecutionError(f"{self.strategy.value} produced an empty PDF")
            )
        return ConversionResult.success(
            self.strategy,
            rendered.data,
            page_count=rendered.page_count,
            file_name=f"{sanitize_file_name(request.options.file_name_stem)}.pdf",
            warnings=rendered.warnings,
        )

    def _convert(self, request: ConversionRequest) -> RenderedDocument:  # pragma: no cover - abstract
        raise NotImplementedError


def _item_warnings(exc: ConversionError) -> list[str]:
    failures = getattr(exc, "item_failures", ())
    return [failure.message for failure in failures]


__all__ = ["RenderedDocument", "ConversionStrategy", "BaseStrategy"]
