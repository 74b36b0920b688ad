from __future__ import annotations

import logging
import time
from dataclasses import replace
from typing import Mapping, Sequence

from .config import AppConfig
from .errors import ConfigurationError, ConversionError, StrategyExecutionError, ValidationError
from .logging import RunLogEntry, RunLogger
from .models import (
    CollageOptions,
    ConversionOptions,
    ConversionRequest,
    ConversionResult,
    DocumentClass,
    Strategy,
)
from .stats import ConversionStats
from .strategies import ALTERNATE_STRATEGY, SUPPORTED_STRATEGIES, ConversionStrategy, build_strategies
from .utils import generate_run_id

logger = logging.getLogger(__name__)

RETRYABLE_KINDS = frozenset({ConfigurationError.code, StrategyExecutionError.code})


class ConversionService:
    """Entry point for every conversion.

    Picks a strategy, retries once with the alternate strategy when the
    failure is retryable, and records exactly one stats entry per request.
    Safe to call from several threads at once.
    """

    def __init__(
        self,
        config: AppConfig,
        *,
        stats: ConversionStats | None = None,
        strategies: Mapping[Strategy, ConversionStrategy] | None = None,
        run_logger: RunLogger | None = None,
    ) -> None:
        self._config = config
        self.stats = stats if stats is not None else ConversionStats()
        self._strategies = dict(strategies) if strategies is not None else dict(build_strategies(config))
        if run_logger is None and config.runtime.log_file is not None:
            run_logger = RunLogger(config.runtime.log_file)
        self._run_logger = run_logger

    @property
    def config(self) -> AppConfig:
        return self._config

    def resolve_strategy(self, request: ConversionRequest) -> Strategy:
        strategy = request.options.strategy or self._config.defaults.strategy_for(request.document_class)
        if strategy not in SUPPORTED_STRATEGIES[request.document_class]:
            raise ValidationError(
                f"Strategy {strategy.value} cannot convert {request.document_class.value} input"
            )
        if request.options.collage is not None and strategy is not Strategy.LAYOUT_ENGINE:
            raise ValidationError("Collages can only be built by the layout engine")
        return strategy

    def convert_document(self, request: ConversionRequest) -> ConversionResult:
        started = time.perf_counter()
        request_id = generate_run_id("conv")
        try:
            self._validate(request)
            primary = self.resolve_strategy(request)
        except ConversionError as exc:
            logger.warning("Rejected %s request %s: %s", request.document_class.value, request_id, exc.message)
            result = ConversionResult.failure(request.options.strategy, exc)
        else:
            result = self._run(request, primary)
        self._complete(request_id, request, result, started)
        return result

    def create_collage(
        self,
        images: Sequence[bytes],
        options: ConversionOptions | None = None,
    ) -> ConversionResult:
        """Lay ``images`` out on an N x M grid. Layout engine only, no fallback."""

        options = options or ConversionOptions()
        options = replace(
            options,
            strategy=Strategy.LAYOUT_ENGINE,
            enable_fallback=False,
            collage=options.collage or CollageOptions(),
        )
        return self.convert_document(ConversionRequest(DocumentClass.IMAGE, tuple(images), options))

    def _validate(self, request: ConversionRequest) -> None:
        request.options.validate()
        buffers = request.buffers
        if not buffers:
            raise ValidationError("No input provided")
        for index, buffer in enumerate(buffers):
            if not buffer:
                raise ValidationError(f"Input {index} is empty")
        if request.document_class is not DocumentClass.IMAGE:
            if len(buffers) != 1:
                raise ValidationError(f"{request.document_class.value} conversion takes exactly one file")
            return
        runtime = self._config.runtime
        limit = runtime.max_collage_images if request.options.collage is not None else runtime.max_images
        if len(buffers) > limit:
            raise ValidationError(f"At most {limit} images are accepted, got {len(buffers)}")

    def _attempt(self, strategy: Strategy, request: ConversionRequest) -> ConversionResult:
        backend = self._strategies.get(strategy)
        if backend is None:
            return ConversionResult.failure(
                strategy, ConfigurationError(f"Strategy {strategy.value} is not available")
            )
        logger.debug("Trying %s for %s", strategy.value, request.document_class.value)
        return backend.execute(request)

    def _alternate(self, request: ConversionRequest, primary: Strategy) -> Strategy | None:
        if not request.options.enable_fallback or request.options.collage is not None:
            return None
        return ALTERNATE_STRATEGY.get((request.document_class, primary))

    def _run(self, request: ConversionRequest, primary: Strategy) -> ConversionResult:
        attempts = [primary]
        result = self._attempt(primary, request)
        alternate = self._alternate(request, primary)
        if not result.succeeded and result.error_kind in RETRYABLE_KINDS and alternate is not None:
            logger.info(
                "%s failed (%s), falling back to %s",
                primary.value,
                result.message,
                alternate.value,
            )
            first_failure = f"{primary.value} failed: {result.message}"
            attempts.append(alternate)
            result = self._attempt(alternate, request)
            result = replace(result, warnings=(first_failure, *result.warnings))
        return replace(result, attempts=tuple(attempts))

    def _complete(
        self,
        request_id: str,
        request: ConversionRequest,
        result: ConversionResult,
        started: float,
    ) -> None:
        self.stats.record(result)
        duration_ms = (time.perf_counter() - started) * 1000
        if result.succeeded:
            logger.info(
                "Converted %s request %s with %s: %d page(s) in %.0f ms",
                request.document_class.value,
                request_id,
                result.strategy_used.value if result.strategy_used else "-",
                result.page_count,
                duration_ms,
            )
        else:
            logger.warning(
                "Conversion %s failed (%s): %s", request_id, result.error_kind, result.message
            )
        if self._run_logger is None:
            return
        self._run_logger.append(
            RunLogEntry(
                request_id=request_id,
                document_class=request.document_class.value,
                status=result.outcome.value,
                attempts=[strategy.value for strategy in result.attempts],
                strategy=result.strategy_used.value if result.strategy_used else None,
                error_kind=result.error_kind,
                page_count=result.page_count,
                input_bytes=request.size_bytes,
                output_bytes=len(result.data or b""),
                duration_ms=round(duration_ms, 2),
                warnings=list(result.warnings),
            )
        )


__all__ = ["RETRYABLE_KINDS", "ConversionService"]
