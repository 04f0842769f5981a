"""
Wind field compositor: temporal mean of u and v over a date range.

u and v are averaged independently, pixel by pixel, over every step whose
timestamp falls in [start, end). NaN samples are skipped per pixel; a pixel
with no valid sample in any step stays NaN.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

import numpy as np

from src.errors import EmptyRangeError, InvalidRangeError
from src.terrain.raster import Raster
from src.terrain.region import Region
from src.wind.archive import DateLike, WindArchive, as_datetime

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VectorField:
    """Co-registered east (u) and north (v) component rasters."""

    u: Raster
    v: Raster
    step_count: int = 1
    start: Optional[datetime] = None
    end: Optional[datetime] = None

    def __post_init__(self):
        if not self.u.same_grid(self.v):
            raise ValueError("u and v components must share a grid")

    @property
    def speed(self) -> Raster:
        """Magnitude of the mean vector, m/s."""
        return self.u.with_data(np.hypot(self.u.data, self.v.data), name="wind_speed")


def composite_wind(
    archive: WindArchive,
    start: DateLike,
    end: DateLike,
    region: Optional[Region] = None,
) -> VectorField:
    """
    Average hourly wind components over [start, end).

    Args:
        archive: Source of per-step u/v rasters
        start: First included date (inclusive)
        end: First excluded date (exclusive)
        region: Optional region forwarded to the archive for subsetting

    Returns:
        VectorField of mean u and mean v

    Raises:
        InvalidRangeError: If end <= start (checked before the archive is read)
        EmptyRangeError: If no step falls in the range
        ValueError: If steps are not all on the same grid
    """
    start_dt, end_dt = as_datetime(start), as_datetime(end)
    if end_dt <= start_dt:
        raise InvalidRangeError(
            f"End date {end_dt.date()} must be after start date {start_dt.date()}"
        )

    logger.info(f"Compositing wind from {start_dt:%Y-%m-%d} to {end_dt:%Y-%m-%d} (exclusive)")

    reference = None
    u_sum = v_sum = u_count = v_count = None
    step_count = 0

    for step in archive.steps(start_dt, end_dt, region):
        if reference is None:
            reference = step.u
            u_sum = np.zeros(reference.shape)
            v_sum = np.zeros(reference.shape)
            u_count = np.zeros(reference.shape, dtype=np.int64)
            v_count = np.zeros(reference.shape, dtype=np.int64)
        elif not step.u.same_grid(reference):
            raise ValueError(f"Wind step at {step.timestamp} is on a different grid")

        u_valid = step.u.valid_mask
        v_valid = step.v.valid_mask
        u_sum += np.where(u_valid, step.u.data, 0.0)
        v_sum += np.where(v_valid, step.v.data, 0.0)
        u_count += u_valid
        v_count += v_valid
        step_count += 1

    if step_count == 0:
        raise EmptyRangeError(
            f"No wind time steps between {start_dt:%Y-%m-%d} and {end_dt:%Y-%m-%d}"
        )

    with np.errstate(invalid="ignore", divide="ignore"):
        u_mean = np.where(u_count > 0, u_sum / u_count, np.nan)
        v_mean = np.where(v_count > 0, v_sum / v_count, np.nan)

    logger.info(f"Averaged {step_count} wind steps on a {reference.shape} grid")

    return VectorField(
        u=reference.with_data(u_mean, unit="m/s", name="u_component_of_wind_10m"),
        v=reference.with_data(v_mean, unit="m/s", name="v_component_of_wind_10m"),
        step_count=step_count,
        start=start_dt,
        end=end_dt,
    )
