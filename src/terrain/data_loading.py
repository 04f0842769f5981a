"""
Elevation sources for the terrain feature extractor.

This module loads DEM rasters from GeoTIFF files, directories of tiles
(merged with rasterio), or in-memory arrays. Every source answers the same
question: "give me the elevation raster, optionally clipped to a Region".
"""

import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

import numpy as np
import rasterio
from rasterio.mask import mask as rio_mask
from rasterio.merge import merge
from rasterio.transform import Affine
from tqdm import tqdm

from src.errors import NoDataError
from src.terrain.raster import Raster
from src.terrain.region import Region

logger = logging.getLogger(__name__)


def load_dem_files(
    directory_path: str, pattern: str = "*.tif", recursive: bool = False
) -> Raster:
    """
    Load and merge DEM files from a directory into a single elevation Raster.
    Supports any raster format readable by rasterio (HGT, GeoTIFF, etc.).

    Args:
        directory_path: Path to directory containing DEM files
        pattern: File pattern to match (default: "*.tif")
        recursive: Whether to search subdirectories recursively (default: False)

    Returns:
        Raster in meters with NaN where the tiles carry nodata

    Raises:
        ValueError: If no valid DEM files are found or directory doesn't exist
        rasterio.errors.RasterioIOError: If there are issues reading the DEM files
    """
    logger.info(f"Searching for DEM files matching '{pattern}' in: {directory_path}")

    directory = Path(directory_path)
    if not directory.exists():
        raise ValueError(f"Directory does not exist: {directory}")
    if not directory.is_dir():
        raise ValueError(f"Path is not a directory: {directory}")

    glob_func = directory.rglob if recursive else directory.glob
    dem_files = sorted(glob_func(pattern))
    if not dem_files:
        raise ValueError(f"No files matching '{pattern}' found in {directory}")

    dem_datasets = []
    try:
        with tqdm(dem_files, desc="Opening DEM files") as pbar:
            for file in pbar:
                try:
                    ds = rasterio.open(file)
                except rasterio.errors.RasterioIOError as e:
                    logger.warning(f"Failed to open {file}: {str(e)}")
                    continue

                if ds.count == 0:
                    logger.warning(f"No raster bands found in {file}")
                    ds.close()
                    continue

                dem_datasets.append(ds)
                pbar.set_postfix({"opened": len(dem_datasets)})

        if not dem_datasets:
            raise ValueError("No valid DEM files could be opened")

        logger.info(f"Successfully opened {len(dem_datasets)} DEM files")

        nodata = dem_datasets[0].nodata
        crs = dem_datasets[0].crs
        merged, transform = merge(dem_datasets, nodata=nodata)
        elevation = merged[0].astype(np.float64)
        if nodata is not None:
            elevation[elevation == nodata] = np.nan

        logger.info(f"Merged DEM shape: {elevation.shape}")
        logger.info(
            f"  Value range: {np.nanmin(elevation):.2f} to {np.nanmax(elevation):.2f}"
        )
        return Raster(
            data=elevation,
            transform=transform,
            crs=crs.to_string() if crs else "EPSG:4326",
            unit="m",
            name="elevation",
        )
    finally:
        for ds in dem_datasets:
            ds.close()


def crop_to_mask(raster: Raster, inside: np.ndarray) -> Raster:
    """
    Crop a raster to the bounding window of inside, NaN outside.

    The returned transform is shifted so the cropped grid stays georeferenced.
    """
    rows = np.flatnonzero(inside.any(axis=1))
    cols = np.flatnonzero(inside.any(axis=0))
    if rows.size == 0:
        # Region misses the raster entirely; keep an all-NaN 1x1 window
        return Raster(
            data=np.full((1, 1), np.nan),
            transform=raster.transform,
            crs=raster.crs,
            unit=raster.unit,
            name=raster.name,
        )

    r0, r1 = rows[0], rows[-1] + 1
    c0, c1 = cols[0], cols[-1] + 1
    data = np.where(inside, raster.data, np.nan)[r0:r1, c0:c1]
    return Raster(
        data=data,
        transform=raster.transform * Affine.translation(c0, r0),
        crs=raster.crs,
        unit=raster.unit,
        name=raster.name,
    )


class ElevationSource(ABC):
    """Provider of an elevation Raster in meters."""

    @abstractmethod
    def load(self, region: Optional[Region] = None) -> Raster:
        """Return the elevation raster, clipped to region when given."""


class ArrayElevationSource(ElevationSource):
    """Elevation source backed by an in-memory Raster."""

    def __init__(self, raster: Raster):
        self.raster = raster

    def load(self, region: Optional[Region] = None) -> Raster:
        if region is None:
            return self.raster
        return crop_to_mask(self.raster, region.mask(self.raster))


class GeoTiffElevationSource(ElevationSource):
    """Elevation source reading a single rasterio-readable file."""

    def __init__(self, path, band: int = 1):
        self.path = Path(path)
        self.band = band

    def load(self, region: Optional[Region] = None) -> Raster:
        if not self.path.exists():
            raise FileNotFoundError(f"DEM not found: {self.path}")

        with rasterio.open(self.path) as src:
            crs = src.crs.to_string() if src.crs else "EPSG:4326"
            if region is None:
                data = src.read(self.band, masked=True)
                transform = src.transform
            else:
                try:
                    clipped, transform = rio_mask(
                        src,
                        [region.geometry_in(crs)],
                        crop=True,
                        filled=False,
                        indexes=self.band,
                    )
                except ValueError as e:
                    raise NoDataError(f"Region does not overlap DEM {self.path.name}: {e}") from e
                data = clipped

        elevation = np.ma.filled(data.astype(np.float64), np.nan)
        logger.info(f"Loaded DEM {self.path.name}: shape={elevation.shape}")
        return Raster(data=elevation, transform=transform, crs=crs, unit="m", name="elevation")


class TileDirectoryElevationSource(ElevationSource):
    """Elevation source merging every tile in a directory on first use."""

    def __init__(self, directory, pattern: str = "*.tif", recursive: bool = False):
        self.directory = Path(directory)
        self.pattern = pattern
        self.recursive = recursive
        self._merged: Optional[Raster] = None

    def load(self, region: Optional[Region] = None) -> Raster:
        if self._merged is None:
            self._merged = load_dem_files(str(self.directory), self.pattern, self.recursive)
        if region is None:
            return self._merged
        return crop_to_mask(self._merged, region.mask(self._merged))
