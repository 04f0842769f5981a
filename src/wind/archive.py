"""
Wind sources: per-time-step 10 m u/v wind component rasters.

Two archives share the same interface:
- InMemoryWindArchive: a list of WindStep values (tests, precomputed grids)
- ERA5WindArchive: ERA5 / ERA5-Land NetCDF files read with xarray

The archive only filters by time and, for large files, subsets to the
region's bounding box. Averaging happens in src.wind.compositor.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date, datetime, time
from pathlib import Path
from typing import Iterator, List, Optional, Sequence, Tuple, Union

import numpy as np
from rasterio.transform import Affine
from tqdm import tqdm

from src import config
from src.terrain.raster import Raster
from src.terrain.region import Region

logger = logging.getLogger(__name__)

DateLike = Union[date, datetime, str]


def as_datetime(value: DateLike) -> datetime:
    """Parse an ISO date/datetime, a date or a datetime into a naive datetime."""
    if isinstance(value, str):
        value = datetime.fromisoformat(value)
    if isinstance(value, datetime):
        return value.replace(tzinfo=None)
    return datetime.combine(value, time.min)


@dataclass(frozen=True)
class WindStep:
    """One archived time step: east (u) and north (v) wind at 10 m, m/s."""

    timestamp: datetime
    u: Raster
    v: Raster

    def __post_init__(self):
        if not self.u.same_grid(self.v):
            raise ValueError(f"u and v grids differ at {self.timestamp}")


class WindArchive(ABC):
    """Provider of wind time steps."""

    @abstractmethod
    def steps(
        self, start: DateLike, end: DateLike, region: Optional[Region] = None
    ) -> Iterator[WindStep]:
        """Yield steps with start <= timestamp < end."""


class InMemoryWindArchive(WindArchive):
    """Wind archive over an explicit list of steps."""

    def __init__(self, steps: Sequence[WindStep]):
        self._steps: List[WindStep] = sorted(steps, key=lambda s: s.timestamp)

    def __len__(self) -> int:
        return len(self._steps)

    def steps(
        self, start: DateLike, end: DateLike, region: Optional[Region] = None
    ) -> Iterator[WindStep]:
        start_dt, end_dt = as_datetime(start), as_datetime(end)
        for step in self._steps:
            if start_dt <= step.timestamp < end_dt:
                yield step


def _first_present(names: Sequence[str], available) -> Optional[str]:
    for name in names:
        if name in available:
            return name
    return None


def _grid_transform(lons: np.ndarray, lats: np.ndarray) -> Affine:
    """Transform for a regular grid given ascending lons and descending lats (cell centres)."""
    res_x = float(lons[1] - lons[0]) if lons.size > 1 else 0.1
    res_y = float(lats[0] - lats[1]) if lats.size > 1 else 0.1
    return Affine(res_x, 0.0, float(lons[0]) - res_x / 2, 0.0, -res_y, float(lats[0]) + res_y / 2)


class ERA5WindArchive(WindArchive):
    """
    Client for reading ERA5 10 m wind components from local NetCDF files.

    Files are matched by pattern in data_dir and opened one at a time with
    xarray. Both the short (u10/v10) and the long ERA5-Land variable names
    are recognised, as are 'time'/'valid_time' and 'latitude'/'lat' style
    coordinates. Longitudes stored as 0-360 are converted to -180..180.
    """

    def __init__(self, data_dir: Optional[Path] = None, pattern: str = config.DEFAULT_ERA5_PATTERN):
        """
        Initialize ERA5 wind archive.

        Args:
            data_dir: Directory containing ERA5 NetCDF files.
                      Defaults to config.ERA5_DIR
            pattern: Glob pattern for files (default: *.nc)
        """
        self.data_dir = Path(data_dir) if data_dir is not None else config.ERA5_DIR
        self.pattern = pattern
        logger.info(f"ERA5 wind archive initialized: {self.data_dir}")

    def files(self) -> List[Path]:
        if not self.data_dir.exists():
            raise FileNotFoundError(f"ERA5 directory not found: {self.data_dir}")
        return sorted(self.data_dir.glob(self.pattern))

    def steps(
        self, start: DateLike, end: DateLike, region: Optional[Region] = None
    ) -> Iterator[WindStep]:
        import xarray as xr

        start64 = np.datetime64(as_datetime(start))
        end64 = np.datetime64(as_datetime(end))

        for path in tqdm(self.files(), desc="Reading ERA5 files"):
            with xr.open_dataset(path) as ds:
                yield from self._read_steps(ds, path, start64, end64, region)

    def _read_steps(self, ds, path: Path, start64, end64, region: Optional[Region]) -> Iterator[WindStep]:
        u_name = _first_present(config.ERA5_U_VARIABLES, ds.data_vars)
        v_name = _first_present(config.ERA5_V_VARIABLES, ds.data_vars)
        if u_name is None or v_name is None:
            logger.warning(f"No 10 m wind components in {path.name}, skipping")
            return

        time_name = _first_present(("time", "valid_time"), ds.coords)
        lon_name = _first_present(("longitude", "lon"), ds.coords)
        lat_name = _first_present(("latitude", "lat"), ds.coords)
        if time_name is None or lon_name is None or lat_name is None:
            raise ValueError(f"Unrecognised coordinates in {path.name}: {list(ds.coords)}")

        times = ds[time_name].values
        in_range = (times >= start64) & (times < end64)
        if not np.any(in_range):
            logger.debug(f"{path.name}: no steps in range")
            return

        ds = ds.isel({time_name: np.flatnonzero(in_range)})

        if float(ds[lon_name].max()) > 180.0:
            ds = ds.assign_coords({lon_name: ((ds[lon_name] + 180.0) % 360.0) - 180.0})
        ds = ds.sortby(lon_name).sortby(lat_name, ascending=False)

        if region is not None:
            ds = self._subset_to_region(ds, region, lon_name, lat_name)

        lons = ds[lon_name].values
        lats = ds[lat_name].values
        if lons.size == 0 or lats.size == 0:
            logger.warning(f"{path.name}: region outside file extent")
            return
        transform = _grid_transform(lons, lats)

        u_all = ds[u_name].transpose(time_name, lat_name, lon_name).values
        v_all = ds[v_name].transpose(time_name, lat_name, lon_name).values
        stamps = ds[time_name].values

        logger.info(f"{path.name}: {len(stamps)} steps on a {u_all.shape[1:]} grid")
        for stamp, u, v in zip(stamps, u_all, v_all):
            timestamp = datetime.fromisoformat(str(np.datetime_as_string(stamp, unit="s")))
            yield WindStep(
                timestamp=timestamp,
                u=Raster(u, transform, unit="m/s", name="u_component_of_wind_10m"),
                v=Raster(v, transform, unit="m/s", name="v_component_of_wind_10m"),
            )

    @staticmethod
    def _subset_to_region(ds, region: Region, lon_name: str, lat_name: str):
        """Bounding-box subset padded by one grid cell on each side."""
        minx, miny, maxx, maxy = region.bounds
        lons = ds[lon_name].values
        lats = ds[lat_name].values
        pad_x = abs(float(lons[1] - lons[0])) if lons.size > 1 else 0.0
        pad_y = abs(float(lats[0] - lats[1])) if lats.size > 1 else 0.0
        return ds.sel(
            {
                lon_name: slice(minx - pad_x, maxx + pad_x),
                lat_name: slice(maxy + pad_y, miny - pad_y),
            }
        )

    def coverage(self) -> Tuple[Optional[datetime], Optional[datetime]]:
        """(first, last) timestamp across all files, (None, None) if empty."""
        import xarray as xr

        first, last = None, None
        for path in self.files():
            with xr.open_dataset(path) as ds:
                time_name = _first_present(("time", "valid_time"), ds.coords)
                if time_name is None or ds[time_name].size == 0:
                    continue
                lo = as_datetime(str(np.datetime_as_string(ds[time_name].values.min(), unit="s")))
                hi = as_datetime(str(np.datetime_as_string(ds[time_name].values.max(), unit="s")))
                first = lo if first is None else min(first, lo)
                last = hi if last is None else max(last, hi)
        return first, last
