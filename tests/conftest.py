"""Pytest configuration and fixtures for wind-terrain tests."""
import sys
from datetime import datetime, timedelta
from pathlib import Path

# Add project root to Python path for imports
project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

import pytest
import numpy as np
from rasterio.transform import from_origin

# Geographic test grid: 0.001 deg pixels with the upper-left corner at (-106, 40)
GEO_ORIGIN = (-106.0, 40.0)
GEO_RES = 0.001

# Projected test grid: 30 m pixels in UTM zone 13N
UTM_CRS = "EPSG:32613"
UTM_ORIGIN = (500000.0, 4400000.0)
UTM_RES = 30.0


def make_geo_raster(data, name="elevation", unit="m"):
    from src.terrain.raster import Raster

    return Raster(np.asarray(data, dtype=float), from_origin(*GEO_ORIGIN, GEO_RES, GEO_RES), unit=unit, name=name)


def make_utm_raster(data, name="elevation", unit="m", res=UTM_RES):
    from src.terrain.raster import Raster

    return Raster(
        np.asarray(data, dtype=float),
        from_origin(*UTM_ORIGIN, res, res),
        crs=UTM_CRS,
        unit=unit,
        name=name,
    )


def make_wind_archive(u=0.0, v=5.0, hours=48, start="2024-01-01", shape=(4, 4)):
    """In-memory archive of hourly steps with constant u/v on a coarse grid over the test area."""
    from src.terrain.raster import Raster
    from src.wind.archive import InMemoryWindArchive, WindStep

    transform = from_origin(GEO_ORIGIN[0] - 0.05, GEO_ORIGIN[1] + 0.05, 0.05, 0.05)
    t0 = datetime.fromisoformat(start)
    steps = [
        WindStep(
            timestamp=t0 + timedelta(hours=h),
            u=Raster(np.full(shape, u), transform, unit="m/s", name="u_component_of_wind_10m"),
            v=Raster(np.full(shape, v), transform, unit="m/s", name="v_component_of_wind_10m"),
        )
        for h in range(hours)
    ]
    return InMemoryWindArchive(steps)


@pytest.fixture
def sample_dem():
    """Synthetic 60x60 geographic DEM with an east-west ridge across the middle."""
    rows, cols = np.mgrid[0:60, 0:60]
    z = 1000 + 300 * np.exp(-((rows - 30) / 8.0) ** 2) + 0.5 * cols
    return make_geo_raster(z)


@pytest.fixture
def flat_dem():
    """All-zero geographic DEM."""
    return make_geo_raster(np.zeros((40, 40)))


@pytest.fixture
def sample_region():
    """Square region well inside the geographic test grid."""
    from src.terrain.region import Region

    return Region.from_coordinates(
        [(-105.99, 39.99), (-105.95, 39.99), (-105.95, 39.95), (-105.99, 39.95)]
    )


@pytest.fixture
def wind_archive():
    """Two days of steady wind blowing toward the north."""
    return make_wind_archive(u=0.0, v=5.0)


@pytest.fixture
def project_root():
    """Get the project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def geo_raster():
    """Factory for rasters on the geographic test grid."""
    return make_geo_raster


@pytest.fixture
def utm_raster():
    """Factory for rasters on the projected test grid."""
    return make_utm_raster


@pytest.fixture
def wind_archive_factory():
    """Factory for constant-wind in-memory archives."""
    return make_wind_archive
