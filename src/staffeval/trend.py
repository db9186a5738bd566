"""Least-squares trend of a score series."""
from __future__ import annotations

from typing import Sequence


def calculate_trend(x_values: Sequence[float], y_values: Sequence[float]) -> float:
    """Return the slope of the ordinary least-squares line through (x, y).

    Callers pass sequence indices ``0..n-1`` with ``n >= 2``, so the
    denominator is never zero.
    """
    if len(x_values) != len(y_values):
        raise ValueError("x_values and y_values must have the same length")

    n = len(x_values)
    sum_x = sum(x_values)
    sum_y = sum(y_values)
    sum_xy = sum(x * y for x, y in zip(x_values, y_values))
    sum_xx = sum(x * x for x in x_values)

    return (n * sum_xy - sum_x * sum_y) / (n * sum_xx - sum_x * sum_x)


__all__ = ["calculate_trend"]
