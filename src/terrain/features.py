"""
Terrain feature extraction: slope and aspect from an elevation raster.

Uses Horn's method, the 3x3 weighted finite difference used by GDAL and most
GIS slope tools. Cell sizes come from Raster.cell_size_meters(), so geographic
DEMs get a per-row east-west spacing that follows meridian convergence.

Conventions:
- Slope: degrees from horizontal, [0, 90]
- Aspect: compass bearing of steepest descent, [0, 360), 0 on flat cells
- Both are NaN unless the full 3x3 window around the cell is valid
"""

import logging
from typing import Tuple

import numpy as np
from scipy import ndimage

from src.errors import InsufficientDataError
from src.scoring.transforms import normalize_bearing
from src.terrain.raster import Raster

logger = logging.getLogger(__name__)

# Horn kernels in correlation orientation (row 0 is north)
HORN_EAST = np.array([[-1, 0, 1], [-2, 0, 2], [-1, 0, 1]], dtype=float)
HORN_SOUTH = np.array([[-1, -2, -1], [0, 0, 0], [1, 2, 1]], dtype=float)

WINDOW = np.ones((3, 3), dtype=float)


def complete_windows(valid: np.ndarray) -> np.ndarray:
    """
    True where a cell and all 8 neighbours are valid.

    Cells on the raster edge never have a complete window.
    """
    counts = ndimage.correlate(valid.astype(float), WINDOW, mode="constant", cval=0.0)
    return counts >= 9 - 1e-9


def horn_gradients(elevation: Raster) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Elevation gradients toward east and south, in meters per meter.

    Args:
        elevation: Elevation raster in meters

    Returns:
        (dz_dx, dz_dy_south, defined) where defined marks complete windows

    Raises:
        InsufficientDataError: If no cell has a complete 3x3 valid window
    """
    if elevation.height < 3 or elevation.width < 3:
        raise InsufficientDataError(
            f"Elevation raster {elevation.shape} is smaller than a 3x3 window"
        )

    valid = elevation.valid_mask
    defined = complete_windows(valid)
    if not np.any(defined):
        raise InsufficientDataError(
            f"No complete 3x3 window of valid elevation cells "
            f"({int(valid.sum())} valid cells in {elevation.shape})"
        )

    filled = np.where(valid, elevation.data, 0.0)
    dx_m, dy_m = elevation.cell_size_meters()

    east = ndimage.correlate(filled, HORN_EAST, mode="nearest") / (8.0 * dx_m[:, None])
    south = ndimage.correlate(filled, HORN_SOUTH, mode="nearest") / (8.0 * dy_m[:, None])

    east = np.where(defined, east, np.nan)
    south = np.where(defined, south, np.nan)
    return east, south, defined


def compute_slope_aspect(elevation: Raster) -> Tuple[Raster, Raster]:
    """
    Derive slope and aspect rasters from an elevation raster.

    Args:
        elevation: Elevation raster in meters (NaN = nodata)

    Returns:
        (slope, aspect) rasters in degrees, on the elevation grid

    Raises:
        InsufficientDataError: If fewer than 3x3 valid cells are available

    Examples:
        >>> slope, aspect = compute_slope_aspect(dem)
        >>> print(f"Slope range: {slope.value_range()}")
    """
    logger.info("Computing Horn slope/aspect for DEM shape: %s", elevation.shape)

    dz_dx, dz_dy_south, defined = horn_gradients(elevation)

    slope_deg = np.degrees(np.arctan(np.hypot(dz_dx, dz_dy_south)))

    # Downslope vector is -grad(z); east component -dz_dx, north component +dz_dy_south
    aspect_deg = normalize_bearing(np.degrees(np.arctan2(-dz_dx, dz_dy_south)))
    flat = defined & (slope_deg == 0)
    aspect_deg = np.where(flat, 0.0, aspect_deg)
    aspect_deg = np.where(defined, aspect_deg, np.nan)

    slope = elevation.with_data(np.clip(slope_deg, 0.0, 90.0), unit="deg", name="slope")
    aspect = elevation.with_data(aspect_deg, unit="deg", name="aspect")

    logger.info("Slope range: %.2f to %.2f deg", *slope.value_range())
    logger.debug("Defined cells: %d of %d", int(defined.sum()), defined.size)
    return slope, aspect
