"""
Wind data package: archives, temporal compositing and bearings.
"""

from src.wind.archive import ERA5WindArchive, InMemoryWindArchive, WindArchive, WindStep
from src.wind.compositor import VectorField, composite_wind
from src.wind.direction import perpendicular_bearing, resample_to_grid, wind_bearing

__all__ = [
    "WindArchive",
    "WindStep",
    "InMemoryWindArchive",
    "ERA5WindArchive",
    "VectorField",
    "composite_wind",
    "wind_bearing",
    "perpendicular_bearing",
    "resample_to_grid",
]
