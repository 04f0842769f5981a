"""
Raster value type shared by every pipeline stage.

A Raster is an immutable 2D float grid with a geographic transform. Missing or
masked-out samples are NaN so that they stay distinguishable from a true zero.
Every operation returns a new Raster; the backing array is read-only.
"""

from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np
from pyproj import Geod
from rasterio.crs import CRS
from rasterio.transform import Affine

WGS84 = Geod(ellps="WGS84")


@dataclass(frozen=True, eq=False)
class Raster:
    """Immutable single-band raster.

    Attributes:
        data: 2D array of samples, NaN where undefined
        transform: Affine mapping (col, row) to (x, y) of the pixel corner
        crs: CRS string understood by rasterio (default: EPSG:4326)
        unit: Unit tag, e.g. "m", "deg", "m/s" or "1" for dimensionless
        name: Band name used for statistic keys and point fields
    """

    data: np.ndarray
    transform: Affine
    crs: str = "EPSG:4326"
    unit: str = "1"
    name: str = "band"

    def __post_init__(self):
        arr = np.array(self.data, dtype=np.float64, copy=True)
        if arr.ndim != 2:
            raise ValueError(f"Raster data must be 2D, got shape {arr.shape}")
        arr.flags.writeable = False
        object.__setattr__(self, "data", arr)

    @property
    def shape(self) -> Tuple[int, int]:
        return self.data.shape

    @property
    def height(self) -> int:
        return self.data.shape[0]

    @property
    def width(self) -> int:
        return self.data.shape[1]

    @property
    def valid_mask(self) -> np.ndarray:
        """Boolean array, True where the sample is defined."""
        return np.isfinite(self.data)

    @property
    def valid_count(self) -> int:
        return int(np.count_nonzero(self.valid_mask))

    @property
    def is_geographic(self) -> bool:
        return CRS.from_user_input(self.crs).is_geographic

    @property
    def pixel_size(self) -> Tuple[float, float]:
        """(x, y) pixel size in CRS units, always positive."""
        return abs(self.transform.a), abs(self.transform.e)

    @property
    def bounds(self) -> Tuple[float, float, float, float]:
        """(minx, miny, maxx, maxy) of the raster footprint."""
        x0, y0 = self.transform * (0, 0)
        x1, y1 = self.transform * (self.width, self.height)
        return min(x0, x1), min(y0, y1), max(x0, x1), max(y0, y1)

    def pixel_centers(self) -> Tuple[np.ndarray, np.ndarray]:
        """
        Coordinates of every pixel centre.

        Returns:
            (xs, ys) arrays with the raster's shape
        """
        cols, rows = np.meshgrid(
            np.arange(self.width) + 0.5, np.arange(self.height) + 0.5
        )
        t = self.transform
        xs = t.a * cols + t.b * rows + t.c
        ys = t.d * cols + t.e * rows + t.f
        return xs, ys

    def row_centers(self) -> np.ndarray:
        """y coordinate of each row centre (latitude for geographic rasters)."""
        rows = np.arange(self.height) + 0.5
        t = self.transform
        return t.e * rows + t.f

    def cell_size_meters(self) -> Tuple[np.ndarray, np.ndarray]:
        """
        Ground distance covered by one pixel, per row.

        Projected rasters return the transform's pixel size for every row.
        Geographic rasters measure east-west and north-south spacing on the
        WGS84 ellipsoid at each row's latitude, so east-west spacing shrinks
        toward the poles.

        Returns:
            (dx, dy) arrays of length height, in meters
        """
        px, py = self.pixel_size
        if not self.is_geographic:
            return np.full(self.height, px), np.full(self.height, py)

        lats = np.clip(self.row_centers(), -89.999, 89.999)
        lon0 = np.zeros_like(lats)
        _, _, dx = WGS84.inv(lon0, lats, lon0 + px, lats)
        _, _, dy = WGS84.inv(
            lon0,
            np.clip(lats - py / 2, -90.0, 90.0),
            lon0,
            np.clip(lats + py / 2, -90.0, 90.0),
        )
        return np.asarray(dx, dtype=np.float64), np.asarray(dy, dtype=np.float64)

    def nominal_scale(self) -> float:
        """Mean pixel edge length in meters over the raster."""
        dx, dy = self.cell_size_meters()
        return float(np.sqrt(np.mean(dx) * np.mean(dy)))

    def same_grid(self, other: "Raster") -> bool:
        """True when both rasters share shape, transform and CRS."""
        return (
            self.shape == other.shape
            and self.transform.almost_equals(other.transform)
            and CRS.from_user_input(self.crs) == CRS.from_user_input(other.crs)
        )

    def with_data(
        self,
        data: np.ndarray,
        unit: Optional[str] = None,
        name: Optional[str] = None,
    ) -> "Raster":
        """New Raster on the same grid with different samples."""
        data = np.asarray(data)
        if data.shape != self.shape:
            raise ValueError(f"Shape mismatch: {data.shape} vs {self.shape}")
        return Raster(
            data=data,
            transform=self.transform,
            crs=self.crs,
            unit=self.unit if unit is None else unit,
            name=self.name if name is None else name,
        )

    def masked_where(self, condition: np.ndarray, name: Optional[str] = None) -> "Raster":
        """New Raster with NaN wherever condition is True."""
        return self.with_data(np.where(condition, np.nan, self.data), name=name)

    def value_range(self) -> Tuple[float, float]:
        """(min, max) over valid samples, (nan, nan) when none are valid."""
        if self.valid_count == 0:
            return float("nan"), float("nan")
        return float(np.nanmin(self.data)), float(np.nanmax(self.data))

    def __repr__(self) -> str:
        return (
            f"Raster(name={self.name!r}, shape={self.shape}, unit={self.unit!r}, "
            f"crs={self.crs!r}, valid={self.valid_count})"
        )
