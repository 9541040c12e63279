"""Engine error types."""

from __future__ import annotations


class ShapeError(ValueError):
    """A monthly series does not have the expected one-dimensional length."""


class DivisionByZeroError(ZeroDivisionError):
    """A per-head metric was requested for a zero headcount."""
