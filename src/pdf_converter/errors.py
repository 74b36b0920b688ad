from __future__ import annotations

from typing import Sequence


class ConversionError(RuntimeError):
    code = "ConversionError"
    retryable = False

    def __init__(self, message: str, *, code: str | None = None) -> None:
        super().__init__(message)
        if code is not None:
            self.code = code

    @property
    def message(self) -> str:
        return str(self)


class ValidationError(ConversionError):
    """Missing or unsupported input. Never retried."""

    code = "ValidationError"


class ConfigurationError(ConversionError):
    """A strategy is missing configuration such as API credentials."""

    code = "ConfigurationError"
    retryable = True


class StrategyExecutionError(ConversionError):
    """The chosen strategy ran and failed."""

    code = "StrategyExecutionError"
    retryable = True

    def __init__(self, message: str, *, item_failures: Sequence["PartialItemFailure"] = ()) -> None:
        super().__init__(message)
        self.item_failures = tuple(item_failures)


class InvalidGeometry(ConversionError):
    """Layout math produced a non-positive region."""

    code = "InvalidGeometry"


class PartialItemFailure(ConversionError):
    """One item of a multi-item payload could not be processed."""

    code = "PartialItemFailure"

    def __init__(self, index: int, message: str) -> None:
        super().__init__(f"item {index}: {message}")
        self.index = index


__all__ = [
    "ConversionError",
    "ValidationError",
    "ConfigurationError",
    "StrategyExecutionError",
    "InvalidGeometry",
    "PartialItemFailure",
]
