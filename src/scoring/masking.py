"""
Thresholding and masking of the highlighted (perpendicularity) raster.

Two policies:
- RateMask: cutoff = max * rate over the region, keep score >= cutoff
- ThresholdMask: fixed threshold with an explicit comparison direction,
  optionally on the min/max-normalized score

Excluded pixels become NaN, never 0. Zero scores carry no perpendicular
feature and are never retained by a rate mask, so a perfectly flat region
masks to an empty raster.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Union

import numpy as np

from src import config
from src.analysis.reduction import ReductionResult, reduce_region
from src.errors import InvalidParameterError
from src.scoring.transforms import linear
from src.terrain.raster import Raster
from src.terrain.region import Region

logger = logging.getLogger(__name__)

KEEP_ABOVE = "above"
KEEP_BELOW = "below"


@dataclass(frozen=True)
class RateMask:
    """Keep pixels scoring at least rate * max over the region."""

    rate: float = config.DEFAULT_MASK_RATE

    def __post_init__(self):
        low, high = config.MASK_RATE_BOUNDS
        if not isinstance(self.rate, (int, float)) or not np.isfinite(self.rate):
            raise InvalidParameterError(f"Mask rate must be a number, got {self.rate!r}")
        if not low <= self.rate <= high:
            raise InvalidParameterError(
                f"Please enter a valid mask rate between {low} and {high}, got {self.rate}"
            )

    def describe(self) -> str:
        return f"Current Mask Rate: {self.rate:g} ({self.rate * 100:g}%)"


@dataclass(frozen=True)
class ThresholdMask:
    """
    Keep pixels on one side of a fixed threshold.

    keep='above' retains score > threshold, keep='below' retains
    score <= threshold. With normalized=True the threshold applies to
    (score - min) / (max - min) over the region and must lie in [0, 1];
    otherwise it is in score units and must be >= 0.
    """

    threshold: float
    keep: str = KEEP_ABOVE
    normalized: bool = True

    def __post_init__(self):
        if self.keep not in (KEEP_ABOVE, KEEP_BELOW):
            raise InvalidParameterError(
                f"keep must be '{KEEP_ABOVE}' or '{KEEP_BELOW}', got {self.keep!r}"
            )
        if not isinstance(self.threshold, (int, float)) or not np.isfinite(self.threshold):
            raise InvalidParameterError(f"Threshold must be a number, got {self.threshold!r}")
        if self.normalized:
            low, high = config.NORMALIZED_THRESHOLD_BOUNDS
            if not low <= self.threshold <= high:
                raise InvalidParameterError(
                    f"Normalized threshold must be between {low} and {high}, got {self.threshold}"
                )
        elif self.threshold < 0:
            raise InvalidParameterError(f"Threshold must be >= 0, got {self.threshold}")

    def describe(self) -> str:
        op = ">" if self.keep == KEEP_ABOVE else "<="
        scale = "normalized" if self.normalized else "absolute"
        return f"Applied Threshold: score {op} {self.threshold:g} ({scale})"


MaskPolicy = Union[RateMask, ThresholdMask]


@dataclass(frozen=True)
class MaskResult:
    """Masked raster and the cutoff it was derived from."""

    masked: Raster
    cutoff: float
    policy: MaskPolicy
    stats: ReductionResult
    """min/max of the unmasked score over the region."""

    @property
    def retained(self) -> int:
        return self.masked.valid_count


def apply_mask(
    scored: Raster,
    policy: MaskPolicy,
    region: Optional[Region] = None,
    scale: Optional[float] = None,
    best_effort: bool = True,
    max_pixels: int = config.DEFAULT_MAX_PIXELS,
) -> MaskResult:
    """
    Mask a scored raster according to policy.

    Args:
        scored: Highlighted raster to mask
        policy: RateMask or ThresholdMask
        region: Optional region; pixels outside are excluded too
        scale: Nominal scale for the min/max reduction (None = native)
        best_effort: Passed to the reducer
        max_pixels: Passed to the reducer

    Returns:
        MaskResult with NaN in excluded pixels

    Raises:
        NoDataError: If the region holds no valid score
    """
    stats = reduce_region(
        scored, region, ("minmax",), scale=scale, best_effort=best_effort, max_pixels=max_pixels
    )
    smin, smax = stats.get("min"), stats.get("max")
    values = scored.data

    with np.errstate(invalid="ignore"):
        if isinstance(policy, RateMask):
            cutoff = smax * policy.rate
            keep = (values >= cutoff) & (values > 0)
        elif isinstance(policy, ThresholdMask):
            if policy.normalized:
                compared = np.asarray(linear(values, (smin, smax)))
                cutoff = smin + policy.threshold * (smax - smin)
            else:
                compared = values
                cutoff = float(policy.threshold)
            if policy.keep == KEEP_ABOVE:
                keep = compared > policy.threshold
            else:
                keep = compared <= policy.threshold
        else:
            raise InvalidParameterError(f"Unknown mask policy: {policy!r}")

    keep &= np.isfinite(values)
    if region is not None:
        keep &= region.mask(scored)

    masked = scored.masked_where(~keep, name=f"{scored.name}_mask")
    logger.info(
        f"Mask cutoff {cutoff:.3f} (score range {smin:.3f}-{smax:.3f}): "
        f"{masked.valid_count} of {scored.valid_count} pixels retained"
    )
    return MaskResult(masked=masked, cutoff=float(cutoff), policy=policy, stats=stats)
