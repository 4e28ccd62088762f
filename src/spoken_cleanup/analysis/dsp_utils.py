"""Small numeric helpers shared by the analysis and processing modules."""

import math

from .config import LINEAR_TO_DB_FLOOR


def db_to_linear(db: float) -> float:
    """Convert a decibel value to linear amplitude."""
    return math.pow(10.0, db / 20.0)


def linear_to_db(linear: float) -> float:
    """Convert linear amplitude to decibels, flooring non-positive input."""
    if linear <= 0:
        return LINEAR_TO_DB_FLOOR
    return 20.0 * math.log10(linear)


def clamp(value: float, low: float, high: float) -> float:
    """Restrict value to [low, high]."""
    return max(low, min(high, value))


def sanitize_float(value: float, default: float) -> float:
    """Return default when value is NaN or infinite."""
    if math.isnan(value) or math.isinf(value):
        return default
    return value
