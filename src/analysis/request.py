"""
Validated analysis parameters.

An AnalysisRequest is the immutable context a single run reads from. Raw
user inputs (ISO date strings, a mask rate or threshold, polygon vertices)
are checked in AnalysisRequest.from_inputs before any data source is
queried. Changing a parameter builds a new request instead of mutating the
old one.
"""

import dataclasses
from dataclasses import dataclass
from datetime import date, datetime
from typing import Iterable, Optional, Sequence

from src import config
from src.analysis.reduction import ReductionConfig
from src.errors import InvalidParameterError, InvalidRangeError, RegionRequiredError
from src.scoring.masking import MaskPolicy, RateMask, ThresholdMask
from src.terrain.region import Region


def parse_date(value, label: str = "date") -> date:
    """Parse an ISO 8601 date (YYYY-MM-DD) or pass a date through."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value).strip())
    except ValueError:
        raise InvalidParameterError(
            f"Invalid {label} {value!r}: expected an ISO date (YYYY-MM-DD)"
        ) from None


@dataclass(frozen=True)
class AnalysisRequest:
    """
    Parameters of one analysis run.

    Attributes:
        start: First day of the wind composite (inclusive)
        end: Day after the last day of the composite (exclusive)
        mask: Mask policy for the highlighted raster
        region: Region of interest (None = whole dataset)
        wind_scale: Reduction scale for the mean wind bearing, meters
        score_scale: Reduction scale for the score min/max, meters
        best_effort: Coarsen reductions instead of failing on max_pixels
        max_pixels: Pixel limit per reduction
    """

    start: date
    end: date
    mask: MaskPolicy = RateMask()
    region: Optional[Region] = None
    wind_scale: float = config.WIND_REDUCTION_SCALE
    score_scale: float = config.SCORE_REDUCTION_SCALE
    best_effort: bool = True
    max_pixels: int = config.DEFAULT_MAX_PIXELS

    def __post_init__(self):
        object.__setattr__(self, "start", parse_date(self.start, "start date"))
        object.__setattr__(self, "end", parse_date(self.end, "end date"))
        if self.end <= self.start:
            raise InvalidRangeError(
                f"End date {self.end} must be after start date {self.start}"
            )
        if not isinstance(self.mask, (RateMask, ThresholdMask)):
            raise InvalidParameterError(f"Unknown mask policy: {self.mask!r}")
        for label, scale in (("wind_scale", self.wind_scale), ("score_scale", self.score_scale)):
            if not scale > 0:
                raise InvalidParameterError(f"{label} must be positive, got {scale}")

    @classmethod
    def from_inputs(
        cls,
        start_date,
        end_date,
        mask_rate: Optional[float] = None,
        threshold: Optional[float] = None,
        keep: str = "above",
        normalized: bool = True,
        polygon: Optional[Iterable[Sequence[float]]] = None,
        **kwargs,
    ) -> "AnalysisRequest":
        """
        Build a request from raw user inputs.

        Args:
            start_date: ISO start date string
            end_date: ISO end date string (exclusive)
            mask_rate: Rate in [0.01, 1.0] for a rate-relative mask
            threshold: Threshold for a fixed-threshold mask
            keep: 'above' or 'below' (threshold masks only)
            normalized: Whether the threshold applies to the normalized score
            polygon: Region vertices as (lon, lat) pairs
            **kwargs: Remaining AnalysisRequest fields (scales, best_effort, ...)

        Raises:
            InvalidRangeError: end <= start
            InvalidParameterError: Unparseable date, bad mask parameters or polygon
        """
        start = parse_date(start_date, "start date")
        end = parse_date(end_date, "end date")

        if mask_rate is not None and threshold is not None:
            raise InvalidParameterError("Give either a mask rate or a threshold, not both")
        if threshold is not None:
            mask = ThresholdMask(threshold=threshold, keep=keep, normalized=normalized)
        else:
            mask = RateMask(config.DEFAULT_MASK_RATE if mask_rate is None else mask_rate)

        region = Region.from_coordinates(polygon) if polygon is not None else None
        return cls(start=start, end=end, mask=mask, region=region, **kwargs)

    def reduction(self, scale: float) -> ReductionConfig:
        """Reduction settings of this request at a given scale."""
        return ReductionConfig(scale=scale, best_effort=self.best_effort, max_pixels=self.max_pixels)

    def with_changes(self, **changes) -> "AnalysisRequest":
        """New, re-validated request with some fields replaced."""
        return dataclasses.replace(self, **changes)

    def require_region(self) -> Region:
        if self.region is None:
            raise RegionRequiredError("Draw a polygon on the map to run the analysis")
        return self.region
