"""
Point extraction from a masked raster.

Every retained pixel of the masked raster becomes a PointSample at its pixel
centre, carrying the masked value and the value of each additional band under
its own name. Coarser sampling takes the centre pixel of each block, the way
the tiled loaders stride through large grids.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional

import numpy as np
from rasterio.warp import transform as warp_transform

from src.errors import InvalidParameterError
from src.terrain.raster import Raster

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PointSample:
    """One sampled pixel centre in lon/lat."""

    lon: float
    lat: float
    value: float
    bands: Dict[str, float] = field(default_factory=dict)

    def as_record(self, value_name: str = "value") -> Dict[str, float]:
        """Flat mapping with distinct keys for coordinates and every band."""
        record = {"longitude": self.lon, "latitude": self.lat, value_name: self.value}
        for name, value in self.bands.items():
            if name in record:
                raise ValueError(f"Band name {name!r} collides with another field")
            record[name] = value
        return record


def _stride_for(raster: Raster, scale: Optional[float]) -> int:
    if scale is None:
        return 1
    if not scale > 0:
        raise InvalidParameterError(f"Sampling scale must be positive, got {scale}")
    return max(1, int(round(scale / raster.nominal_scale())))


def extract_points(
    masked: Raster,
    bands: Optional[Mapping[str, Raster]] = None,
    scale: Optional[float] = None,
    limit: Optional[int] = None,
) -> List[PointSample]:
    """
    Sample the retained pixels of a masked raster.

    Args:
        masked: Raster with NaN in excluded pixels
        bands: Extra rasters on the same grid, keyed by output field name
        scale: Sampling scale in meters (None = every pixel)
        limit: Keep only the first `limit` points after sorting

    Returns:
        PointSamples sorted by masked value, highest first

    Raises:
        ValueError: If a band is on a different grid or reuses a reserved name
    """
    bands = dict(bands or {})
    for name, raster in bands.items():
        if name in ("longitude", "latitude"):
            raise ValueError(f"Band name {name!r} is reserved for coordinates")
        if not raster.same_grid(masked):
            raise ValueError(f"Band {name!r} is not on the masked raster's grid")

    stride = _stride_for(masked, scale)
    offset = stride // 2
    rows = np.arange(offset, masked.height, stride)
    cols = np.arange(offset, masked.width, stride)
    rr, cc = np.meshgrid(rows, cols, indexing="ij")

    values = masked.data[rr, cc]
    keep = np.isfinite(values)
    rr, cc, values = rr[keep], cc[keep], values[keep]

    order = np.argsort(-values, kind="stable")
    if limit is not None:
        order = order[: max(0, int(limit))]
    rr, cc, values = rr[order], cc[order], values[order]

    xs_all, ys_all = masked.pixel_centers()
    xs, ys = xs_all[rr, cc], ys_all[rr, cc]
    if not masked.is_geographic and xs.size:
        xs, ys = warp_transform(masked.crs, "EPSG:4326", xs.tolist(), ys.tolist())

    samples = [
        PointSample(
            lon=float(x),
            lat=float(y),
            value=float(v),
            bands={name: float(raster.data[r, c]) for name, raster in bands.items()},
        )
        for x, y, v, r, c in zip(xs, ys, values, rr, cc)
    ]
    logger.info(f"Extracted {len(samples)} points from {masked.name} (stride {stride})")
    return samples
