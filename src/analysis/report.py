"""
Analysis results and their presentation.

AnalysisResult bundles everything one run produced. format_report turns it
into the lines of the results panel, and layer_styles gives the display
parameters for each raster layer. Nothing here renders; the example script
draws the layers with matplotlib.
"""

import math
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from src import config
from src.analysis.reduction import ReductionResult
from src.scoring.masking import KEEP_ABOVE, KEEP_BELOW, MaskPolicy, RateMask
from src.terrain.raster import Raster


@dataclass(frozen=True)
class LayerStyle:
    """Display parameters for one raster layer."""

    name: str
    layer: str
    vmin: float
    vmax: float
    palette: Tuple[str, ...]
    opacity: float = 1.0
    shown: bool = True


@dataclass(frozen=True)
class AnalysisResult:
    """
    Output of one pipeline run.

    Attributes:
        mean_bearing: Region-mean wind bearing, degrees in [0, 360)
        perp_bearing: (mean_bearing + 90) mod 360
        scored_min: Minimum highlighted score over the region
        scored_max: Maximum highlighted score over the region
        cutoff: Mask cutoff in score units
        mask_policy: Policy the mask was built with
        masked: Highlighted raster with NaN in excluded pixels
        layers: Intermediate rasters by name (elevation, wind_direction,
            slope, aspect, alignment, highlighted)
        reductions: Region statistics by name (wind, highlighted, masked)
        wind_steps: Number of wind time steps averaged
        generation: Trigger generation that produced this result
    """

    mean_bearing: float
    perp_bearing: float
    scored_min: float
    scored_max: float
    cutoff: float
    mask_policy: MaskPolicy
    masked: Raster
    layers: Dict[str, Raster] = field(default_factory=dict)
    reductions: Dict[str, ReductionResult] = field(default_factory=dict)
    wind_steps: int = 0
    generation: int = 0

    @property
    def coarsened(self) -> bool:
        """True when any reduction ran at a coarser scale than requested."""
        return any(r.coarsened for r in self.reductions.values())

    @property
    def retained(self) -> int:
        return self.masked.valid_count


def round_degrees(value: float) -> int:
    """Round half up to a whole degree in [0, 360)."""
    return int(math.floor(value + 0.5)) % 360


def format_report(result: AnalysisResult) -> List[str]:
    """Results-panel lines for a finished analysis."""
    mean = round_degrees(result.mean_bearing)
    lines = [
        "Analysis Results",
        f"Mean Wind Direction: {mean}°",
        f"Perpendicular Direction: {(mean + 90) % 360}°",
        result.mask_policy.describe(),
        f"Perpendicular Score Range: {result.scored_min:.2f} - {result.scored_max:.2f}",
        f"Mask Cutoff: {result.cutoff:.2f} ({result.retained} pixels retained)",
        f"Wind Steps Averaged: {result.wind_steps}",
    ]
    if result.coarsened:
        scales = ", ".join(
            f"{name} at {r.effective_scale:.0f} m (requested {r.requested_scale:.0f} m)"
            for name, r in result.reductions.items()
            if r.coarsened
        )
        lines.append(f"Note: statistics were computed at a coarser scale: {scales}")
    lines.append(
        "Highlighted areas show elevation features perpendicular to the prevailing wind direction."
    )
    return lines


def layer_styles(result: Optional[AnalysisResult] = None) -> List[LayerStyle]:
    """
    Display parameters for the map layers, in drawing order.

    Without a result only the elevation and wind direction layers are styled.
    """
    dem_min, dem_max = config.DEM_DISPLAY_RANGE
    wind_min, wind_max = config.WIND_DISPLAY_RANGE
    styles = [
        LayerStyle("Elevation (DEM)", "elevation", dem_min, dem_max, config.DEM_PALETTE),
        LayerStyle(
            "Wind Direction",
            "wind_direction",
            wind_min,
            wind_max,
            config.WIND_PALETTE,
            opacity=0.5,
            shown=result is None,
        ),
    ]
    if result is None:
        return styles

    styles.append(
        LayerStyle(
            "Elevation Perpendicular to Wind",
            "highlighted",
            result.scored_min,
            result.scored_max,
            config.HIGHLIGHT_PALETTE,
            opacity=0.7,
        )
    )
    policy = result.mask_policy
    if isinstance(policy, RateMask):
        label = f"Rate: {policy.rate:g}"
    else:
        label = f"Threshold: {policy.threshold:g}"
    if getattr(policy, "keep", KEEP_ABOVE) == KEEP_BELOW:
        vmin, vmax = result.scored_min, result.cutoff
    else:
        vmin, vmax = result.cutoff, result.scored_max
    styles.append(
        LayerStyle(
            f"Highlighted Mask ({label})",
            "masked",
            vmin,
            vmax,
            config.HIGHLIGHT_PALETTE,
            opacity=0.7,
        )
    )
    return styles
