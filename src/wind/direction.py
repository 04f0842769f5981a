"""
Direction resolver: mean wind vectors to compass bearings.

bearing = degrees(atan2(u, v)), folded into [0, 360). With u as the first
argument, u=0/v>0 gives 0 deg and u>0/v=0 gives 90 deg: the bearing the
vector points toward, clockwise from north.
"""

import logging

import numpy as np
from rasterio.warp import Resampling, reproject

from src.scoring.transforms import normalize_bearing, perpendicular
from src.terrain.raster import Raster
from src.wind.compositor import VectorField

logger = logging.getLogger(__name__)


def vector_bearing(u, v):
    """Bearing in [0, 360) of vectors with east component u and north component v."""
    return normalize_bearing(np.degrees(np.arctan2(u, v)))


def wind_bearing(field: VectorField) -> Raster:
    """
    Per-pixel bearing raster of a vector field.

    Args:
        field: Mean u/v wind

    Returns:
        Raster named 'wind_direction' in degrees, NaN where u or v is NaN
    """
    bearing = vector_bearing(field.u.data, field.v.data)
    return field.u.with_data(np.asarray(bearing), unit="deg", name="wind_direction")


def perpendicular_bearing(mean_bearing: float) -> float:
    """(mean_bearing + 90) mod 360."""
    return float(perpendicular(mean_bearing))


def resample_to_grid(source: Raster, target: Raster) -> Raster:
    """
    Nearest-neighbour resample of source onto target's grid.

    Nearest is used so bearings are never interpolated across the 0/360 seam.
    Target pixels outside the source footprint are NaN.
    """
    if source.same_grid(target):
        return source

    destination = np.full(target.shape, np.nan, dtype=np.float64)
    reproject(
        source=np.ascontiguousarray(source.data),
        destination=destination,
        src_transform=source.transform,
        src_crs=source.crs,
        src_nodata=np.nan,
        dst_transform=target.transform,
        dst_crs=target.crs,
        dst_nodata=np.nan,
        resampling=Resampling.nearest,
    )
    logger.debug(f"Resampled {source.name} {source.shape} -> {target.shape}")
    return Raster(
        data=destination,
        transform=target.transform,
        crs=target.crs,
        unit=source.unit,
        name=source.name,
    )
