"""
Perpendicularity scoring: terrain faces orthogonal to the prevailing wind.

Formula:
    perp_bearing = (mean_bearing + 90) mod 360
    alignment    = |cos(aspect - perp_bearing)|
    highlighted  = |alignment * slope|

Steep faces whose aspect matches the direction perpendicular to the wind get
the highest scores. The result is bounded by max(slope) and is exactly 0
wherever slope is 0.
"""

import logging
from dataclasses import dataclass
from typing import Optional

import numpy as np

from src.scoring.transforms import angular_alignment, normalize_bearing, perpendicular
from src.terrain.raster import Raster

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PerpendicularityScore:
    """Output of the perpendicularity scorer."""

    mean_bearing: float
    """Region-mean wind bearing the score was computed against, degrees."""

    perp_bearing: float
    """Bearing orthogonal to the wind, degrees in [0, 360)."""

    alignment: Raster
    """|cos(aspect - perp_bearing)|, dimensionless in [0, 1]."""

    highlighted: Raster
    """alignment * slope, degrees."""


def score_perpendicularity(
    aspect: Raster,
    slope: Raster,
    mean_bearing: float,
    wind_support: Optional[Raster] = None,
) -> PerpendicularityScore:
    """
    Score each pixel by slope weighted by alignment with the perpendicular bearing.

    Args:
        aspect: Aspect raster in degrees
        slope: Slope raster in degrees, same grid as aspect
        mean_bearing: Region-mean wind bearing in degrees (any real value)
        wind_support: Optional raster on the same grid; pixels where it is
            NaN (wind composite undefined) are NaN in the output

    Returns:
        PerpendicularityScore with alignment and highlighted rasters

    Raises:
        ValueError: If the rasters are not on the same grid, or mean_bearing
            is not finite
    """
    if not aspect.same_grid(slope):
        raise ValueError("aspect and slope must share a grid")
    if not np.isfinite(mean_bearing):
        raise ValueError(f"mean_bearing must be finite, got {mean_bearing}")

    mean_bearing = float(normalize_bearing(mean_bearing))
    perp_bearing = float(perpendicular(mean_bearing))
    logger.info(f"Mean wind bearing {mean_bearing:.1f}, perpendicular {perp_bearing:.1f}")

    alignment = np.asarray(angular_alignment(aspect.data, perp_bearing))
    highlighted = np.abs(alignment * slope.data)

    if wind_support is not None:
        if not wind_support.same_grid(slope):
            raise ValueError("wind_support must share the terrain grid")
        unsupported = ~wind_support.valid_mask
        alignment = np.where(unsupported, np.nan, alignment)
        highlighted = np.where(unsupported, np.nan, highlighted)

    return PerpendicularityScore(
        mean_bearing=mean_bearing,
        perp_bearing=perp_bearing,
        alignment=aspect.with_data(alignment, unit="1", name="alignment"),
        highlighted=slope.with_data(highlighted, unit="deg", name="highlighted"),
    )
