"""
Scoring module for wind-perpendicular terrain analysis.

Transformation functions:
- normalize_bearing: fold angles into [0, 360)
- perpendicular: bearing rotated by 90 degrees
- angular_alignment: |cos(angle - reference)|
- linear: min/max normalization to [0, 1]

Scoring and masking live in submodules that depend on the terrain and
analysis packages; import them directly:
- src.scoring.perpendicularity: score_perpendicularity
- src.scoring.masking: RateMask, ThresholdMask, apply_mask
"""

from src.scoring.transforms import (
    normalize_bearing,
    perpendicular,
    angular_alignment,
    linear,
)

__all__ = [
    "normalize_bearing",
    "perpendicular",
    "angular_alignment",
    "linear",
]
