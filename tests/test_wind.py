"""
Tests for wind compositing and direction resolution.
"""

from datetime import date, datetime, timedelta
from unittest.mock import MagicMock

import numpy as np
import pytest
from rasterio.transform import from_origin


def steps_with_values(u_values, v_values, start="2024-01-01"):
    from src.terrain.raster import Raster
    from src.wind.archive import WindStep

    transform = from_origin(-106.0, 40.0, 0.25, 0.25)
    t0 = datetime.fromisoformat(start)
    return [
        WindStep(
            timestamp=t0 + timedelta(hours=i),
            u=Raster(np.full((2, 2), u), transform, name="u_component_of_wind_10m"),
            v=Raster(np.full((2, 2), v), transform, name="v_component_of_wind_10m"),
        )
        for i, (u, v) in enumerate(zip(u_values, v_values))
    ]


class TestInMemoryWindArchive:
    """Tests for InMemoryWindArchive."""

    def test_half_open_range(self, wind_archive_factory):
        archive = wind_archive_factory(hours=48, start="2024-01-01")
        steps = list(archive.steps("2024-01-01", "2024-01-02"))
        assert len(steps) == 24
        assert steps[0].timestamp == datetime(2024, 1, 1, 0)
        assert steps[-1].timestamp == datetime(2024, 1, 1, 23)

    def test_accepts_dates(self, wind_archive_factory):
        archive = wind_archive_factory(hours=48)
        assert len(list(archive.steps(date(2024, 1, 2), date(2024, 1, 3)))) == 24

    def test_step_grids_must_match(self):
        from src.terrain.raster import Raster
        from src.wind.archive import WindStep

        with pytest.raises(ValueError, match="grids differ"):
            WindStep(
                timestamp=datetime(2024, 1, 1),
                u=Raster(np.zeros((2, 2)), from_origin(0, 2, 1, 1)),
                v=Raster(np.zeros((3, 3)), from_origin(0, 2, 1, 1)),
            )


class TestCompositeWind:
    """Tests for composite_wind."""

    def test_means_components_independently(self):
        from src.wind.archive import InMemoryWindArchive
        from src.wind.compositor import composite_wind

        archive = InMemoryWindArchive(steps_with_values([1.0, 2.0, 6.0], [-3.0, 0.0, 3.0]))
        field = composite_wind(archive, "2024-01-01", "2024-01-02")

        np.testing.assert_allclose(field.u.data, 3.0)
        np.testing.assert_allclose(field.v.data, 0.0)
        assert field.step_count == 3
        assert field.u.name == "u_component_of_wind_10m"
        assert field.v.unit == "m/s"

    def test_end_date_excluded(self):
        from src.wind.archive import InMemoryWindArchive
        from src.wind.compositor import composite_wind

        steps = steps_with_values([1.0] * 24 + [100.0], [0.0] * 25)
        field = composite_wind(InMemoryWindArchive(steps), "2024-01-01", "2024-01-02")
        assert field.step_count == 24
        np.testing.assert_allclose(field.u.data, 1.0)

    def test_nan_samples_skipped_per_pixel(self):
        from src.terrain.raster import Raster
        from src.wind.archive import InMemoryWindArchive, WindStep
        from src.wind.compositor import composite_wind

        transform = from_origin(0, 2, 1, 1)
        first = np.array([[np.nan, 2.0], [np.nan, 2.0]])
        second = np.array([[4.0, 4.0], [np.nan, 4.0]])
        steps = [
            WindStep(datetime(2024, 1, 1, h), Raster(u, transform), Raster(u, transform))
            for h, u in enumerate([first, second])
        ]
        field = composite_wind(InMemoryWindArchive(steps), "2024-01-01", "2024-01-02")

        assert field.u.data[0, 0] == pytest.approx(4.0)
        assert field.u.data[0, 1] == pytest.approx(3.0)
        assert np.isnan(field.u.data[1, 0])

    def test_end_before_start_raises_without_reading(self):
        from src.errors import InvalidRangeError
        from src.wind.compositor import composite_wind

        archive = MagicMock()
        with pytest.raises(InvalidRangeError):
            composite_wind(archive, "2024-02-01", "2024-01-01")
        archive.steps.assert_not_called()

    def test_equal_dates_raise(self, wind_archive):
        from src.errors import InvalidRangeError
        from src.wind.compositor import composite_wind

        with pytest.raises(InvalidRangeError):
            composite_wind(wind_archive, "2024-01-01", "2024-01-01")

    def test_empty_range_raises(self, wind_archive):
        from src.errors import EmptyRangeError
        from src.wind.compositor import composite_wind

        with pytest.raises(EmptyRangeError):
            composite_wind(wind_archive, "2025-01-01", "2025-02-01")

    def test_grid_mismatch_raises(self):
        from src.terrain.raster import Raster
        from src.wind.archive import InMemoryWindArchive, WindStep
        from src.wind.compositor import composite_wind

        a = Raster(np.ones((2, 2)), from_origin(0, 2, 1, 1))
        b = Raster(np.ones((2, 2)), from_origin(5, 2, 1, 1))
        archive = InMemoryWindArchive(
            [WindStep(datetime(2024, 1, 1, 0), a, a), WindStep(datetime(2024, 1, 1, 1), b, b)]
        )
        with pytest.raises(ValueError, match="different grid"):
            composite_wind(archive, "2024-01-01", "2024-01-02")

    def test_speed_of_mean_vector(self):
        from src.wind.archive import InMemoryWindArchive
        from src.wind.compositor import composite_wind

        field = composite_wind(
            InMemoryWindArchive(steps_with_values([3.0], [4.0])), "2024-01-01", "2024-01-02"
        )
        np.testing.assert_allclose(field.speed.data, 5.0)


class TestWindBearing:
    """Tests for direction resolution."""

    @pytest.mark.parametrize(
        "u, v, expected",
        [
            (0.0, 5.0, 0.0),
            (5.0, 0.0, 90.0),
            (0.0, -5.0, 180.0),
            (-5.0, 0.0, 270.0),
            (1.0, 1.0, 45.0),
            (-1.0, 1.0, 315.0),
        ],
    )
    def test_compass_bearing(self, u, v, expected):
        from src.wind.direction import vector_bearing

        assert vector_bearing(u, v) == pytest.approx(expected)

    def test_bearing_raster_in_range(self):
        from src.wind.archive import InMemoryWindArchive
        from src.wind.compositor import composite_wind
        from src.wind.direction import wind_bearing

        rng = np.random.default_rng(1)
        u = rng.normal(0, 5, 20)
        v = rng.normal(0, 5, 20)
        steps = steps_with_values(u, v)
        field = composite_wind(InMemoryWindArchive(steps[:1]), "2024-01-01", "2024-01-02")
        bearing = wind_bearing(field)

        assert bearing.name == "wind_direction"
        assert bearing.unit == "deg"
        assert np.all((bearing.data >= 0) & (bearing.data < 360))

    def test_bearing_nan_where_components_nan(self):
        from src.terrain.raster import Raster
        from src.wind.compositor import VectorField
        from src.wind.direction import wind_bearing

        transform = from_origin(0, 1, 1, 1)
        field = VectorField(
            u=Raster(np.array([[np.nan, 1.0]]), transform),
            v=Raster(np.array([[1.0, 0.0]]), transform),
        )
        bearing = wind_bearing(field)
        assert np.isnan(bearing.data[0, 0])
        assert bearing.data[0, 1] == pytest.approx(90.0)

    def test_perpendicular_bearing(self):
        from src.wind.direction import perpendicular_bearing

        assert perpendicular_bearing(10.0) == pytest.approx(100.0)
        assert perpendicular_bearing(350.0) == pytest.approx(80.0)


class TestResampleToGrid:
    """Tests for resample_to_grid."""

    def test_coarse_grid_onto_fine_grid(self, geo_raster):
        from src.terrain.raster import Raster
        from src.wind.direction import resample_to_grid

        coarse = Raster(
            np.array([[10.0, 20.0], [30.0, 40.0]]),
            from_origin(-106.0, 40.0, 0.005, 0.005),
            unit="deg",
            name="wind_direction",
        )
        target = geo_raster(np.zeros((10, 10)))
        resampled = resample_to_grid(coarse, target)

        assert resampled.same_grid(target)
        assert resampled.name == "wind_direction"
        assert resampled.data[0, 0] == 10.0
        assert resampled.data[0, 9] == 20.0
        assert resampled.data[9, 0] == 30.0
        assert resampled.data[9, 9] == 40.0

    def test_nearest_never_interpolates_across_north(self, geo_raster):
        from src.terrain.raster import Raster
        from src.wind.direction import resample_to_grid

        coarse = Raster(np.array([[359.0, 1.0]]), from_origin(-106.0, 40.0, 0.005, 0.01))
        resampled = resample_to_grid(coarse, geo_raster(np.zeros((10, 10))))
        assert set(np.unique(resampled.data)) <= {359.0, 1.0}

    def test_outside_footprint_is_nan(self, geo_raster):
        from src.terrain.raster import Raster
        from src.wind.direction import resample_to_grid

        coarse = Raster(np.ones((1, 1)), from_origin(-106.0, 40.0, 0.005, 0.005))
        resampled = resample_to_grid(coarse, geo_raster(np.zeros((10, 10))))
        assert resampled.data[0, 0] == 1.0
        assert np.isnan(resampled.data[9, 9])

    def test_same_grid_returns_source(self, geo_raster):
        from src.wind.direction import resample_to_grid

        raster = geo_raster(np.ones((3, 3)))
        assert resample_to_grid(raster, raster) is raster
