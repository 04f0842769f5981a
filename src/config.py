"""Configuration module for the wind-terrain project.

Centralizes data paths, source variable names and analysis defaults.
"""
from pathlib import Path

# Project root
PROJECT_ROOT = Path(__file__).parent.parent

# Data directories
DATA_DIR = PROJECT_ROOT / "data"
DEM_DIR = DATA_DIR / "dem"
ERA5_DIR = DATA_DIR / "era5"
REGIONS_DIR = DATA_DIR / "regions"

# Default settings
DEFAULT_DEM_PATTERN = "*.tif"
DEFAULT_ERA5_PATTERN = "*.nc"
DEFAULT_LOG_LEVEL = "INFO"

# ERA5-Land hourly 10 m wind components, short and long names
ERA5_U_VARIABLES = ("u10", "u_component_of_wind_10m")
ERA5_V_VARIABLES = ("v10", "v_component_of_wind_10m")

# Reduction scales in meters per pixel
WIND_REDUCTION_SCALE = 1000.0  # mean wind bearing over the region
SCORE_REDUCTION_SCALE = 30.0  # min/max of the highlighted raster
DEFAULT_MAX_PIXELS = 1_000_000_000

# Mask defaults
DEFAULT_MASK_RATE = 0.9
MASK_RATE_BOUNDS = (0.01, 1.0)
NORMALIZED_THRESHOLD_BOUNDS = (0.0, 1.0)

# Point sampling scale for extracted perpendicular points (meters)
POINT_SAMPLING_SCALE = 500.0

# Display ranges (visualization only, never used in computation)
DEM_DISPLAY_RANGE = (-10.0, 6500.0)
WIND_DISPLAY_RANGE = (0.0, 360.0)

DEM_PALETTE = (
    "#313695", "#4575b4", "#74add1", "#abd9e9", "#e0f3f8",
    "#ffffbf", "#fee090", "#fdae61", "#f46d43", "#d73027", "#a50026",
)
WIND_PALETTE = ("#440154", "#3b528b", "#21908d", "#5dc963", "#fde725")
HIGHLIGHT_PALETTE = ("white", "black")
