#!/usr/bin/env python3
"""
Wind-Perpendicular Elevation Analysis Example.

Finds terrain faces that stand perpendicular to the prevailing wind over a
date range inside a polygon, and writes a figure of the layers:

1. Elevation (DEM)
2. Wind Direction
3. Elevation Perpendicular to Wind
4. Highlighted Mask

Usage:
    # Synthetic ridge and constant wind (fast, no data needed)
    python examples/wind_perpendicular_analysis.py --mock-data

    # Real DEM tiles and ERA5 files, region from a GeoJSON file
    python examples/wind_perpendicular_analysis.py \\
        --dem data/dem --era5-dir data/era5 --region data/regions/ridge.geojson \\
        --start 2024-01-01 --end 2024-02-01 --mask-rate 0.8

    # Get help
    python examples/wind_perpendicular_analysis.py --help
"""

import sys
import argparse
import logging
from datetime import datetime, timedelta
from pathlib import Path

import numpy as np
import matplotlib

matplotlib.use("Agg")
import matplotlib.pyplot as plt
from matplotlib.colors import LinearSegmentedColormap
from rasterio.transform import from_origin

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from src import config
from src.analysis.pipeline import WindPerpendicularityPipeline
from src.analysis.points import extract_points
from src.analysis.report import format_report, layer_styles
from src.analysis.request import AnalysisRequest
from src.analysis.session import AnalysisSession
from src.errors import ComputationError, ValidationError
from src.terrain.data_loading import (
    ArrayElevationSource,
    GeoTiffElevationSource,
    TileDirectoryElevationSource,
)
from src.terrain.raster import Raster
from src.terrain.region import Region
from src.wind.archive import ERA5WindArchive, InMemoryWindArchive, WindStep

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s: %(message)s",
)
logger = logging.getLogger(__name__)

MOCK_REGION = ((-105.9, 39.1), (-105.1, 39.1), (-105.1, 39.9), (-105.9, 39.9))


def create_mock_sources(start: str, end: str):
    """
    Two crossing ridges under a steady westerly wind.

    The wind blows toward the east, so the perpendicular bearing is near 180.
    The east-west ridge's north and south flanks score highest; the
    north-south ridge's east and west flanks score near zero.
    """
    logger.info("Creating mock DEM and wind data...")
    transform = from_origin(-106.0, 40.0, 0.01, 0.01)
    rows, cols = np.mgrid[0:100, 0:100]
    ns_ridge = 800.0 * np.exp(-((cols - 50) / 12.0) ** 2)
    ew_ridge = 1200.0 * np.exp(-((rows - 40) / 8.0) ** 2)
    dem = Raster(1500.0 + ns_ridge + ew_ridge, transform, unit="m", name="elevation")

    wind_transform = from_origin(-106.0, 40.0, 0.25, 0.25)
    t0 = datetime.fromisoformat(start)
    hours = int((datetime.fromisoformat(end) - t0).total_seconds() // 3600)
    rng = np.random.default_rng(42)
    steps = []
    for hour in range(min(hours, 24 * 14)):
        u = 6.0 + rng.normal(0, 1.5, (4, 4))
        v = rng.normal(0, 1.5, (4, 4))
        steps.append(
            WindStep(
                timestamp=t0 + timedelta(hours=hour),
                u=Raster(u, wind_transform, unit="m/s", name="u_component_of_wind_10m"),
                v=Raster(v, wind_transform, unit="m/s", name="v_component_of_wind_10m"),
            )
        )
    return ArrayElevationSource(dem), InMemoryWindArchive(steps), Region.from_coordinates(MOCK_REGION)


def build_sources(args):
    """Elevation source, wind archive and region from the command line."""
    if args.mock_data:
        return create_mock_sources(args.start, args.end)

    if args.dem is None:
        raise ValidationError("--dem is required without --mock-data")
    dem_path = Path(args.dem)
    if dem_path.is_dir():
        elevation = TileDirectoryElevationSource(dem_path, pattern=args.dem_pattern)
    else:
        elevation = GeoTiffElevationSource(dem_path)

    archive = ERA5WindArchive(args.era5_dir)
    first, last = archive.coverage()
    logger.info(f"ERA5 coverage: {first} to {last}")

    region = None
    if args.region:
        region = Region.from_file(args.region)
    elif args.polygon:
        values = [float(v) for v in args.polygon.replace(";", ",").split(",") if v.strip()]
        region = Region.from_coordinates(zip(values[0::2], values[1::2]))
    return elevation, archive, region


def plot_layers(result, output_path: Path):
    """Save the four map layers side by side."""
    styles = layer_styles(result)
    layers = dict(result.layers, masked=result.masked)

    fig, axes = plt.subplots(1, len(styles), figsize=(5 * len(styles), 5))
    for ax, style in zip(axes, styles):
        raster = layers[style.layer]
        cmap = LinearSegmentedColormap.from_list(style.layer, list(style.palette))
        vmin, vmax = style.vmin, style.vmax
        if style.layer == "elevation":
            vmin, vmax = raster.value_range()
        im = ax.imshow(
            raster.data,
            cmap=cmap,
            vmin=vmin,
            vmax=vmax if vmax > vmin else vmin + 1e-6,
            alpha=style.opacity,
            extent=(raster.bounds[0], raster.bounds[2], raster.bounds[1], raster.bounds[3]),
        )
        ax.set_title(style.name)
        fig.colorbar(im, ax=ax, shrink=0.7)

    fig.tight_layout()
    output_path.parent.mkdir(parents=True, exist_ok=True)
    fig.savefig(output_path, dpi=120)
    plt.close(fig)
    logger.info(f"Saved figure: {output_path}")


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Wind-Perpendicular Elevation Analysis",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Synthetic data
  python examples/wind_perpendicular_analysis.py --mock-data

  # Threshold mask keeping the top 30% of the normalized score
  python examples/wind_perpendicular_analysis.py --mock-data --threshold 0.7
        """,
    )
    parser.add_argument("--start", default="2024-01-01", help="Start date, inclusive (YYYY-MM-DD)")
    parser.add_argument("--end", default="2024-01-15", help="End date, exclusive (YYYY-MM-DD)")
    parser.add_argument("--dem", type=Path, help="DEM GeoTIFF or directory of tiles")
    parser.add_argument(
        "--dem-pattern", default=config.DEFAULT_DEM_PATTERN, help="Tile glob pattern (default: *.tif)"
    )
    parser.add_argument("--era5-dir", type=Path, help="Directory of ERA5 NetCDF files")
    parser.add_argument("--region", type=Path, help="Vector file holding the region polygon")
    parser.add_argument("--polygon", help="Region as 'lon,lat;lon,lat;...'")

    mask_group = parser.add_mutually_exclusive_group()
    mask_group.add_argument("--mask-rate", type=float, help="Mask rate (0.01-1.0), default 0.9")
    mask_group.add_argument("--threshold", type=float, help="Fixed threshold instead of a rate")
    parser.add_argument("--keep", choices=["above", "below"], default="above")
    parser.add_argument(
        "--absolute", action="store_true", help="Threshold in score units instead of normalized"
    )

    parser.add_argument("--points", type=int, default=0, help="Print the top N perpendicular points")
    parser.add_argument(
        "--output-dir",
        type=Path,
        default=Path("examples/output"),
        help="Output directory for the figure (default: examples/output/)",
    )
    parser.add_argument(
        "--mock-data",
        action="store_true",
        help="Use a synthetic ridge and wind instead of real data",
    )
    args = parser.parse_args()

    try:
        elevation, archive, region = build_sources(args)
        request = AnalysisRequest.from_inputs(
            args.start,
            args.end,
            mask_rate=args.mask_rate,
            threshold=args.threshold,
            keep=args.keep,
            normalized=not args.absolute,
            polygon=region.coordinates if region is not None else None,
        )
    except ValidationError as e:
        parser.error(str(e))

    pipeline = WindPerpendicularityPipeline(elevation, archive)
    pipeline.explain("report")

    with AnalysisSession(pipeline) as session:
        try:
            result = session.run(request)
        except ComputationError as e:
            logger.error(f"Analysis failed: {e}")
            return 1

    logger.info("\n" + "=" * 70)
    for line in format_report(result):
        logger.info(line)
    logger.info("=" * 70)

    if args.points:
        points = extract_points(
            result.masked,
            {"alignment": result.layers["alignment"], "wind_direction": result.layers["wind_direction"]},
            scale=config.POINT_SAMPLING_SCALE,
            limit=args.points,
        )
        logger.info(f"{'Longitude':>12} {'Latitude':>12} {'Score':>8} {'Alignment':>10}")
        for point in points:
            logger.info(
                f"{point.lon:12.6f} {point.lat:12.6f} {point.value:8.2f} {point.bands['alignment']:10.4f}"
            )

    plot_layers(result, args.output_dir / "wind_perpendicular_layers.png")
    return 0


if __name__ == "__main__":
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        logger.info("\n[✗] Interrupted by user")
        sys.exit(1)
