"""
Utility Functions for GPS Track Analysis

This module provides helpers for float conversion and rounding used when
track values are turned into JSON/CSV payloads.
"""

import numpy as np
from typing import Optional


def safe_float(value) -> float:
    """
    Safely convert a value to float, returning NaN on failure.

    Args:
        value: Value to convert (string, number, None, etc.).

    Returns:
        Float value, or np.nan if conversion fails.
    """
    try:
        return float(value)
    except (TypeError, ValueError):
        return np.nan


def optional_float(value) -> Optional[float]:
    """
    Convert an optional sensor field (altitude, accuracy, speed) to float.

    Blank cells, None and NaN all mean "not recorded".

    Args:
        value: Raw value from a CSV cell or JSON field.

    Returns:
        Float value, or None if the value is missing or not numeric.
    """
    number = safe_float(value)
    if np.isnan(number):
        return None
    return number


def is_finite(value) -> bool:
    """Return True for a real number that is neither NaN nor infinite."""
    return value is not None and bool(np.isfinite(value))


def round_float(value, digits: int = 3) -> Optional[float]:
    """
    Round a float value, handling None, NaN, and Inf.

    Args:
        value: Value to round.
        digits: Number of decimal places. Default 3.

    Returns:
        Rounded float, or None if value is None, NaN, or Inf.
    """
    if not is_finite(value):
        return None
    return round(float(value), digits)


def preserve_precision(value, digits: Optional[int] = None) -> Optional[float]:
    """
    Preserve or round precision of a float value.

    Coordinates are passed through untouched so that round trips through
    JSON keep the recorded precision.

    Args:
        value: Value to process.
        digits: Number of decimal places. If None, preserves original precision.

    Returns:
        Float value (rounded if digits specified), or None if value is None or NaN.
    """
    if value is None or np.isnan(value):
        return None
    if digits is None:
        return float(value)
    return round(float(value), digits)
