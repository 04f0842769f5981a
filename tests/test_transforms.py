"""
Tests for scoring transformation functions.

Covers bearing normalization, perpendicular rotation, angular alignment and
linear normalization.
"""

import numpy as np
import pytest


class TestNormalizeBearing:
    """Tests for normalize_bearing."""

    def test_negative_angle_wraps(self):
        from src.scoring.transforms import normalize_bearing

        assert normalize_bearing(-90.0) == pytest.approx(270.0)

    def test_large_angle_wraps(self):
        from src.scoring.transforms import normalize_bearing

        assert normalize_bearing(450.0) == pytest.approx(90.0)
        assert normalize_bearing(720.0) == 0.0

    def test_exactly_360_folds_to_zero(self):
        from src.scoring.transforms import normalize_bearing

        assert normalize_bearing(360.0) == 0.0

    def test_tiny_negative_never_returns_360(self):
        """np.mod(-1e-14, 360) rounds to 360.0; it must fold back to 0."""
        from src.scoring.transforms import normalize_bearing

        result = normalize_bearing(-1e-14)
        assert 0.0 <= result < 360.0

    def test_array_input_stays_in_range(self):
        from src.scoring.transforms import normalize_bearing

        values = np.linspace(-1000, 1000, 257)
        result = normalize_bearing(values)
        assert isinstance(result, np.ndarray)
        assert np.all((result >= 0) & (result < 360))

    def test_nan_preserved(self):
        from src.scoring.transforms import normalize_bearing

        result = normalize_bearing(np.array([np.nan, 10.0]))
        assert np.isnan(result[0])
        assert result[1] == pytest.approx(10.0)


class TestPerpendicular:
    """Tests for perpendicular."""

    def test_quarter_turn(self):
        from src.scoring.transforms import perpendicular

        assert perpendicular(10.0) == pytest.approx(100.0)

    def test_wraps_past_north(self):
        from src.scoring.transforms import perpendicular

        assert perpendicular(350.0) == pytest.approx(80.0)
        assert perpendicular(270.0) == 0.0


class TestAngularAlignment:
    """Tests for angular_alignment."""

    def test_coincident_angles_align(self):
        from src.scoring.transforms import angular_alignment

        assert angular_alignment(100.0, 100.0) == pytest.approx(1.0)

    def test_opposite_angles_align(self):
        from src.scoring.transforms import angular_alignment

        assert angular_alignment(280.0, 100.0) == pytest.approx(1.0)

    def test_orthogonal_angles_do_not_align(self):
        from src.scoring.transforms import angular_alignment

        assert angular_alignment(190.0, 100.0) == pytest.approx(0.0, abs=1e-12)

    def test_range_is_unit_interval(self):
        from src.scoring.transforms import angular_alignment

        result = angular_alignment(np.linspace(0, 720, 101), 37.0)
        assert np.all((result >= 0) & (result <= 1))

    def test_nan_gives_nan(self):
        from src.scoring.transforms import angular_alignment

        assert np.isnan(angular_alignment(np.nan, 10.0))


class TestLinear:
    """Tests for linear normalization."""

    def test_midpoint(self):
        from src.scoring.transforms import linear

        assert linear(50.0, value_range=(0, 100)) == pytest.approx(0.5)

    def test_clamps_outside_range(self):
        from src.scoring.transforms import linear

        result = linear(np.array([-10.0, 110.0]), value_range=(0, 100))
        np.testing.assert_allclose(result, [0.0, 1.0])

    def test_degenerate_range_maps_to_one(self):
        from src.scoring.transforms import linear

        result = linear(np.array([5.0, 5.0, np.nan]), value_range=(5.0, 5.0))
        np.testing.assert_allclose(result[:2], [1.0, 1.0])
        assert np.isnan(result[2])

    def test_nan_preserved(self):
        from src.scoring.transforms import linear

        result = linear(np.array([np.nan, 50.0]), value_range=(0, 100))
        assert np.isnan(result[0])
        assert result[1] == pytest.approx(0.5)
