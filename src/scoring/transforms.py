"""
Scoring transformation functions.

Angular helpers and normalizations shared by the wind, terrain and scoring
stages. All functions accept scalars or numpy arrays and return the same kind.

Transformation types:
1. normalize_bearing - fold any angle into [0, 360)
2. perpendicular - rotate a bearing by a quarter turn
3. angular_alignment - |cos| of the difference between two bearings
4. linear - map a value range to [0, 1], NaN-preserving
"""

from typing import Union
import numpy as np

# Type alias for values that can be scalar or array
NumericType = Union[float, np.ndarray]


def _as_output(result: np.ndarray) -> NumericType:
    """Return scalar if input was scalar."""
    if result.ndim == 0:
        return float(result)
    return result


def normalize_bearing(degrees: NumericType) -> NumericType:
    """
    Fold angles into the compass range [0, 360).

    Float rounding in np.mod can yield exactly 360.0 for tiny negative
    inputs; those fold back to 0.

    Example:
        >>> normalize_bearing(-90.0)
        270.0
        >>> normalize_bearing(450.0)
        90.0
    """
    degrees = np.asarray(degrees, dtype=float)
    result = np.mod(degrees, 360.0)
    result = np.where(result >= 360.0, result - 360.0, result)
    # Avoid -0.0 leaking into reports
    result = result + 0.0
    return _as_output(result)


def perpendicular(bearing: NumericType, offset: float = 90.0) -> NumericType:
    """
    Bearing rotated clockwise by offset degrees, in [0, 360).

    Example:
        >>> perpendicular(10.0)
        100.0
        >>> perpendicular(350.0)
        80.0
    """
    return normalize_bearing(np.asarray(bearing, dtype=float) + offset)


def angular_alignment(angle: NumericType, reference: NumericType) -> NumericType:
    """
    Absolute cosine of the difference between two bearings.

    1.0 where the angles coincide (or are opposite), 0.0 where they are
    orthogonal. NaN inputs give NaN.

    Example:
        >>> angular_alignment(100.0, 100.0)
        1.0
        >>> round(angular_alignment(190.0, 100.0), 12)
        0.0
    """
    angle = np.asarray(angle, dtype=float)
    reference = np.asarray(reference, dtype=float)
    result = np.abs(np.cos(np.radians(angle) - np.radians(reference)))
    return _as_output(result)


def linear(
    value: NumericType,
    value_range: tuple[float, float],
) -> NumericType:
    """
    Linear normalization transformation.

    Maps value_range to [0, 1], clamping values outside the range. NaN stays
    NaN so masked pixels remain masked. A degenerate range (min == max) maps
    every valid value to 1.0.

    Args:
        value: Input value(s) to transform
        value_range: (min, max) range to normalize

    Returns:
        Score in [0, 1]

    Example:
        >>> linear(50.0, value_range=(0, 100))
        0.5
    """
    value = np.asarray(value, dtype=float)
    vmin, vmax = value_range

    span = vmax - vmin
    if span == 0:
        result = np.where(np.isnan(value), np.nan, 1.0)
    else:
        result = np.clip((value - vmin) / span, 0.0, 1.0)

    return _as_output(np.asarray(result, dtype=float))
