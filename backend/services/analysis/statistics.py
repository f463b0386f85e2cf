"""Pure statistical primitives for group summaries.

Every function is total: an empty (or too small) input resolves to 0 rather than
NaN or an exception, so "no data" groups always render.
"""

import math

import numpy as np


def _arr(values) -> np.ndarray:
    return np.asarray(list(values), dtype=float)


def mean(values) -> float:
    """Arithmetic mean. 0 for empty input."""
    a = _arr(values)
    if len(a) == 0:
        return 0.0
    return float(np.mean(a))


def sample_sd(values, default: float = 0.0) -> float:
    """Sample standard deviation (n-1 denominator). ``default`` when n <= 1."""
    a = _arr(values)
    if len(a) <= 1:
        return default
    return float(np.std(a, ddof=1))


def sem(values) -> float:
    """Standard error of the mean: sqrt(sample variance / n). 0 when n <= 1."""
    a = _arr(values)
    if len(a) <= 1:
        return 0.0
    return float(np.sqrt(np.var(a, ddof=1) / len(a)))


def median(values) -> float:
    """Median; average of the two central values for even length. 0 for empty input."""
    a = _arr(values)
    if len(a) == 0:
        return 0.0
    return float(np.median(a))


def quantile(values, q: float) -> float:
    """Linear-interpolation quantile (R-7, numpy's default method). 0 for empty input."""
    a = _arr(values)
    if len(a) == 0:
        return 0.0
    return float(np.quantile(a, q, method="linear"))


def min_or_zero(values) -> float:
    a = _arr(values)
    return float(np.min(a)) if len(a) > 0 else 0.0


def max_or_zero(values) -> float:
    a = _arr(values)
    return float(np.max(a)) if len(a) > 0 else 0.0


def round_half_up(value: float, digits: int = 2) -> float:
    """Round to ``digits`` decimals, halves toward +inf (scale, floor(x + 0.5), divide).

    Not the built-in round(), which is half-to-even: round_half_up(0.125) == 0.13.
    """
    factor = 10 ** digits
    return math.floor(value * factor + 0.5) / factor


def percent(part: float, whole: float) -> float:
    """part / whole * 100, or 0 when the denominator is 0."""
    if whole == 0:
        return 0.0
    return part / whole * 100
