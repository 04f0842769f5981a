"""
User-drawn region of interest.

A Region wraps a simple polygon given as an ordered ring of (lon, lat) pairs.
It clips rasters and defines the support for reductions and masking. The ring
need not be closed explicitly.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, Sequence, Tuple

import numpy as np
from rasterio.crs import CRS
from rasterio.features import geometry_mask
from rasterio.warp import transform_geom
from shapely.geometry import Polygon, mapping, shape

from src.errors import InvalidParameterError
from src.terrain.raster import Raster

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Region:
    """
    Simple polygon region.

    Attributes:
        coordinates: Exterior ring as (x, y) pairs, without the closing vertex
        crs: CRS of the coordinates (default: EPSG:4326, i.e. lon/lat)
    """

    coordinates: Tuple[Tuple[float, float], ...]
    crs: str = "EPSG:4326"

    def __post_init__(self):
        ring = [tuple(float(c) for c in pair) for pair in self.coordinates]
        if any(len(pair) != 2 for pair in ring):
            raise InvalidParameterError("Region coordinates must be (lon, lat) pairs")
        if len(ring) > 1 and ring[0] == ring[-1]:
            ring = ring[:-1]
        if len(ring) < 3:
            raise InvalidParameterError(
                f"Region needs at least 3 coordinate pairs, got {len(ring)}"
            )
        if not np.all(np.isfinite(np.asarray(ring))):
            raise InvalidParameterError("Region coordinates must be finite numbers")

        polygon = Polygon(ring)
        if polygon.area <= 0:
            raise InvalidParameterError("Region polygon has zero area")
        if not polygon.is_valid:
            raise InvalidParameterError("Region polygon is self-intersecting")

        object.__setattr__(self, "coordinates", tuple(ring))

    @classmethod
    def from_coordinates(
        cls, coordinates: Iterable[Sequence[float]], crs: str = "EPSG:4326"
    ) -> "Region":
        return cls(coordinates=tuple(tuple(pair) for pair in coordinates), crs=crs)

    @classmethod
    def from_geojson(cls, geometry: Dict[str, Any], crs: str = "EPSG:4326") -> "Region":
        """
        Build a Region from a GeoJSON Polygon geometry or Feature.

        Only the exterior ring is used.
        """
        if geometry.get("type") == "Feature":
            geometry = geometry.get("geometry") or {}
        geom = shape(geometry)
        if geom.geom_type != "Polygon":
            raise InvalidParameterError(
                f"Region must be a Polygon, got {geom.geom_type}"
            )
        return cls.from_coordinates(list(geom.exterior.coords), crs=crs)

    @classmethod
    def from_file(cls, path) -> "Region":
        """
        Load the first polygon of a vector file (GeoJSON, shapefile, ...).

        The geometry is reprojected to EPSG:4326.
        """
        import geopandas as gpd

        path = Path(path)
        gdf = gpd.read_file(path)
        if len(gdf) == 0:
            raise InvalidParameterError(f"No features in {path}")
        if gdf.crs is not None:
            gdf = gdf.to_crs("EPSG:4326")
        geom = gdf.geometry.iloc[0]
        if geom.geom_type == "MultiPolygon":
            geom = max(geom.geoms, key=lambda g: g.area)
            logger.warning(f"{path} holds a MultiPolygon, using its largest part")
        if geom.geom_type != "Polygon":
            raise InvalidParameterError(
                f"Region must be a Polygon, got {geom.geom_type}"
            )
        logger.info(f"Loaded region from {path}: {len(geom.exterior.coords) - 1} vertices")
        return cls.from_coordinates(list(geom.exterior.coords))

    @property
    def polygon(self) -> Polygon:
        return Polygon(self.coordinates)

    @property
    def bounds(self) -> Tuple[float, float, float, float]:
        return self.polygon.bounds

    def geometry_in(self, crs: str) -> Dict[str, Any]:
        """GeoJSON mapping of the polygon, reprojected to crs when needed."""
        geom = mapping(self.polygon)
        if CRS.from_user_input(crs) != CRS.from_user_input(self.crs):
            geom = transform_geom(self.crs, crs, geom)
        return geom

    def mask(self, raster: Raster) -> np.ndarray:
        """
        Boolean array on the raster's grid, True for pixels whose centre is inside.
        """
        return geometry_mask(
            [self.geometry_in(raster.crs)],
            out_shape=raster.shape,
            transform=raster.transform,
            invert=True,
        )

    def clip(self, raster: Raster) -> Raster:
        """Raster with NaN outside the region."""
        return raster.masked_where(~self.mask(raster))
