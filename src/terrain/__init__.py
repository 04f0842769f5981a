"""
Terrain data and analysis package.

Core functionality:
- Raster value type with geodesic cell sizes
- Region polygons for clipping and reductions
- Elevation sources (GeoTIFF, tile directories, in-memory arrays)
- Horn slope and aspect
"""

from .raster import Raster
from .region import Region
from .data_loading import (
    ArrayElevationSource,
    ElevationSource,
    GeoTiffElevationSource,
    TileDirectoryElevationSource,
    load_dem_files,
)
from .features import compute_slope_aspect, horn_gradients

__all__ = [
    "Raster",
    "Region",
    "ElevationSource",
    "ArrayElevationSource",
    "GeoTiffElevationSource",
    "TileDirectoryElevationSource",
    "load_dem_files",
    "compute_slope_aspect",
    "horn_gradients",
]
