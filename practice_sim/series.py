"""Monthly series primitives shared by both engines."""

from __future__ import annotations

import math
from typing import Sequence

import numpy as np

from practice_sim.errors import ShapeError


def as_series(values: Sequence[float] | np.ndarray, months: int, name: str = "series") -> np.ndarray:
    """Return a fresh float array, rejecting anything that is not exactly ``months`` long."""
    arr = np.array(values, dtype=float)
    if arr.ndim != 1:
        raise ShapeError(f"{name} must be one-dimensional, got shape {arr.shape}.")
    if len(arr) != int(months):
        raise ShapeError(f"{name} must have {int(months)} monthly values, got {len(arr)}.")
    return arr


def sum_range(series: np.ndarray, start: int, end: int) -> float:
    return float(np.sum(series[start:end]))


def annual_sums(series: np.ndarray, years: int) -> list[float]:
    return [sum_range(series, 12 * y, 12 * (y + 1)) for y in range(years)]


def series_min(series: np.ndarray) -> float:
    if len(series) == 0:
        raise ShapeError("Cannot take the minimum of an empty series.")
    return float(np.min(series))


def moving_average(series: np.ndarray, window: int) -> np.ndarray:
    """Trailing moving average; the first ``window - 1`` months average what is available."""
    window = int(window)
    if window < 1:
        raise ValueError("window must be at least 1.")
    arr = np.asarray(series, dtype=float)
    csum = np.cumsum(arr)
    out = np.empty_like(arr)
    for m in range(len(arr)):
        lo = m - window + 1
        if lo <= 0:
            out[m] = csum[m] / (m + 1)
        else:
            out[m] = (csum[m] - csum[lo - 1]) / window
    return out


def first_month_where(mask: np.ndarray) -> int | None:
    """Return the 0-based index of the first True entry, or None."""
    hits = np.flatnonzero(mask)
    return int(hits[0]) if len(hits) else None


def round_half_up(value: float) -> int:
    """Round .5 up (toward +inf), unlike the built-in banker's rounding."""
    return int(math.floor(float(value) + 0.5))
