"""Domain exception hierarchy for the side effect managers."""

from __future__ import annotations


class SideEffectError(RuntimeError):
    """Base class for all side effect manager errors."""


class InvalidExecutorResultError(SideEffectError, TypeError):
    """Raised when an executor returns something that is not a disposer."""


class ConfigValidationError(SideEffectError):
    """Raised when configuration cannot be validated safely."""
