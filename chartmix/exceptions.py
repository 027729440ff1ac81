"""
Module: exceptions

Purpose: Domain-specific exception hierarchy for chart composition.

All exceptions include context information. Configuration problems are raised
at setup time; nothing in this package returns an empty chart to hide an error.
"""

from typing import Any


class ChartMixError(Exception):
    """Base exception for all chartmix errors."""

    def __init__(self, message: str, *, context: dict[str, Any] | None = None) -> None:
        self.message = message
        self.context = context or {}
        super().__init__(self.message)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(message={self.message!r}, context={self.context!r})"


class MissingOperationError(ChartMixError):
    """Raised when a behavior layer overrides an operation that was never installed."""

    def __init__(
        self,
        message: str,
        *,
        operation: str,
        available: list[str] | None = None,
        context: dict[str, Any] | None = None,
    ) -> None:
        ctx = context or {}
        ctx["operation"] = operation
        if available is not None:
            ctx["available"] = available
        super().__init__(message, context=ctx)
        self.operation = operation
        self.available = available or []


class InvalidConfigurationError(ChartMixError):
    """Raised when a setter or settings file receives an unusable value."""

    def __init__(
        self,
        message: str,
        *,
        setting: str | None = None,
        value: Any = None,
        context: dict[str, Any] | None = None,
    ) -> None:
        ctx = context or {}
        if setting is not None:
            ctx["setting"] = setting
        if value is not None:
            ctx["value"] = value
        super().__init__(message, context=ctx)
        self.setting = setting
        self.value = value
