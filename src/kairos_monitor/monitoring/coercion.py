"""Numeric coercion of raw query values into metric values.

Values are rounded to whole numbers because the monitoring backend only
accepts integers. Ties round toward positive infinity (``2.5 -> 3``,
``-2.5 -> -2``), the same rule as Java's ``Math.round``.
"""

import math
from typing import Mapping, Optional


class MetricValueError(ValueError):
    """Raised when a stored value cannot be converted to a metric value."""


def round_half_up(value: float) -> int:
    """Round to the nearest integer, ties toward positive infinity."""
    floor = math.floor(value)
    # exact subtraction; floor(value + 0.5) misrounds 0.49999999999999994
    return floor + 1 if value - floor >= 0.5 else floor


def to_metric_value(raw) -> str:
    """Convert a raw value to the decimal string of its rounded integer.

    Args:
        raw: Stored value, usually a string

    Returns:
        Canonical integer string, e.g. ``"74"`` or ``"-3"``

    Raises:
        MetricValueError: If the value is not a finite number
    """
    try:
        number = float(raw)
    except (TypeError, ValueError) as e:
        raise MetricValueError(f"Not a number: {raw!r}") from e

    if not math.isfinite(number):
        raise MetricValueError(f"Not a finite number: {raw!r}")

    return str(round_half_up(number))


def get_string(
    result_map: Mapping[str, Optional[str]], key: str, convert_upper: bool = True
) -> str:
    """Look up a key and return its value as a rounded integer string.

    Args:
        result_map: Collected values keyed by upper-cased key
        key: Key to look up
        convert_upper: Upper-case the key before the lookup

    Returns:
        Integer string, or an empty string if the key is absent or blank

    Raises:
        MetricValueError: If the stored value is not numeric
    """
    if convert_upper:
        key = key.upper()

    raw = result_map.get(key)
    if raw is None or not str(raw).strip():
        return ""

    return to_metric_value(raw)
