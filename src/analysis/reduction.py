"""
Region reduction: rasters to scalar statistics over a polygon.

The raster is aggregated into blocks at the requested nominal scale (meters
per pixel) before reducing, using the same reshape-into-blocks aggregation as
tiled slope statistics. Means reduce block means; min and max reduce block
extremes, so the reported range is the range of the pixels themselves.

When the region holds more pixels than max_pixels, best_effort doubles the
scale until it fits and flags the result as coarsened, so a reporting layer
can annotate its confidence. Coarsening only changes the mean.
"""

import logging
import warnings
from dataclasses import dataclass, field
from typing import Dict, Iterable, Optional, Tuple

import numpy as np

from src import config
from src.errors import InvalidParameterError, NoDataError, TooManyPixelsError
from src.terrain.raster import Raster
from src.terrain.region import Region

logger = logging.getLogger(__name__)

REDUCERS = ("mean", "min", "max")
COMBINED = {"minmax": ("min", "max")}
BLOCK_FUNCS = {"mean": np.nanmean, "min": np.nanmin, "max": np.nanmax}
REDUCE_FUNCS = {"mean": np.mean, "min": np.min, "max": np.max}


@dataclass
class ReductionConfig:
    """Configuration for region reductions."""

    scale: Optional[float] = None
    """Nominal scale in meters per pixel (None = native resolution)."""

    best_effort: bool = False
    """Coarsen instead of failing when max_pixels is exceeded."""

    max_pixels: int = config.DEFAULT_MAX_PIXELS
    """Maximum number of region pixels reduced at the chosen scale."""

    def reduce(
        self, raster: Raster, region: Optional[Region] = None, reducers: Iterable[str] = ("mean",)
    ) -> "ReductionResult":
        """reduce_region with this configuration."""
        return reduce_region(
            raster,
            region,
            reducers,
            scale=self.scale,
            best_effort=self.best_effort,
            max_pixels=self.max_pixels,
        )


@dataclass(frozen=True)
class ReductionResult:
    """Statistics of one raster over one region."""

    band: str
    values: Dict[str, float]
    requested_scale: float
    effective_scale: float
    pixel_count: int
    coarsened: bool = False
    reducers: Tuple[str, ...] = field(default_factory=tuple)

    def get(self, stat: str) -> float:
        """Look up a statistic by reducer name ('mean', 'min', 'max')."""
        key = f"{self.band}_{stat}"
        if key not in self.values:
            raise KeyError(f"No '{stat}' statistic for band '{self.band}'. Available: {list(self.values)}")
        return self.values[key]

    def __getitem__(self, key: str) -> float:
        return self.values[key]


def expand_reducers(reducers: Iterable[str]) -> Tuple[str, ...]:
    """Resolve combined reducers and validate names, preserving order."""
    expanded = []
    for name in reducers:
        for stat in COMBINED.get(name, (name,)):
            if stat not in REDUCERS:
                raise InvalidParameterError(
                    f"Unknown reducer '{name}'. Available: {list(REDUCERS) + list(COMBINED)}"
                )
            if stat not in expanded:
                expanded.append(stat)
    if not expanded:
        raise InvalidParameterError("At least one reducer is required")
    return tuple(expanded)


def block_reduce(data: np.ndarray, factor: int, stat: str = "mean") -> np.ndarray:
    """
    NaN-aware aggregation of factor x factor blocks.

    'mean' averages each block; 'min' and 'max' keep the block extreme so a
    coarser scale never shrinks the range of the raster. Edges that do not
    fill a whole block are padded with NaN so partial blocks still aggregate
    their valid pixels. An all-NaN block stays NaN.
    """
    if factor <= 1:
        return data

    h, w = data.shape
    out_h = -(-h // factor)
    out_w = -(-w // factor)
    padded = np.full((out_h * factor, out_w * factor), np.nan)
    padded[:h, :w] = data

    blocks = padded.reshape(out_h, factor, out_w, factor)
    with warnings.catch_warnings():
        warnings.simplefilter("ignore", category=RuntimeWarning)
        return BLOCK_FUNCS[stat](blocks, axis=(1, 3))


def reduce_region(
    raster: Raster,
    region: Optional[Region] = None,
    reducers: Iterable[str] = ("mean",),
    scale: Optional[float] = None,
    best_effort: bool = False,
    max_pixels: int = config.DEFAULT_MAX_PIXELS,
) -> ReductionResult:
    """
    Reduce a raster over a region to scalar statistics.

    Args:
        raster: Raster to reduce
        region: Polygon support (None = every pixel of the raster)
        reducers: Any of 'mean', 'min', 'max', 'minmax'
        scale: Nominal resolution in meters per pixel (None = native)
        best_effort: Coarsen rather than fail when max_pixels is exceeded
        max_pixels: Pixel limit at the reduction scale

    Returns:
        ReductionResult with keys '<band>_<stat>'

    Raises:
        InvalidParameterError: Unknown reducer or non-positive scale
        TooManyPixelsError: Pixel limit exceeded and best_effort is False
        NoDataError: No valid pixel inside the region
    """
    stats = expand_reducers(reducers)
    native = raster.nominal_scale()
    requested = native if scale is None else float(scale)
    if not np.isfinite(requested) or requested <= 0:
        raise InvalidParameterError(f"Reduction scale must be positive, got {scale}")
    if max_pixels < 1:
        raise InvalidParameterError(f"max_pixels must be at least 1, got {max_pixels}")

    inside = region.mask(raster) if region is not None else np.ones(raster.shape, dtype=bool)
    inside_count = int(np.count_nonzero(inside))

    factor = max(1, int(round(requested / native)))
    coarsened = False
    while inside_count / (factor * factor) > max_pixels:
        if not best_effort:
            raise TooManyPixelsError(
                f"Region holds ~{inside_count // (factor * factor):,} pixels at "
                f"{native * factor:.0f} m, above max_pixels={max_pixels:,}"
            )
        factor *= 2
        coarsened = True

    if coarsened:
        logger.warning(
            f"Reducing {raster.name} at {native * factor:.0f} m instead of {requested:.0f} m (best effort)"
        )

    data = np.where(inside, raster.data, np.nan)
    result_values = {}
    pixel_count = 0
    for stat in stats:
        reduced = block_reduce(data, factor, stat)
        values = reduced[np.isfinite(reduced)]
        if values.size == 0:
            raise NoDataError(f"No valid '{raster.name}' pixels inside the region")
        # Blocks are finite exactly where they hold a valid pixel, for every stat
        pixel_count = int(values.size)
        result_values[f"{raster.name}_{stat}"] = float(REDUCE_FUNCS[stat](values))
    logger.debug(f"Reduced {raster.name} over {pixel_count} pixels: {result_values}")

    return ReductionResult(
        band=raster.name,
        values=result_values,
        requested_scale=requested,
        effective_scale=native * factor,
        pixel_count=pixel_count,
        coarsened=coarsened,
        reducers=stats,
    )
