"""
Tests for mask policies and apply_mask.
"""

import numpy as np
import pytest


@pytest.fixture
def scored(utm_raster):
    """Highlighted scores 0..99 on a 10x10 grid (value = 10 * row + col)."""
    return utm_raster(np.arange(100.0).reshape(10, 10), name="highlighted", unit="deg")


class TestRateMask:
    """Tests for RateMask."""

    def test_keeps_scores_at_or_above_cutoff(self, scored):
        from src.scoring.masking import RateMask, apply_mask

        result = apply_mask(scored, RateMask(0.9))

        assert result.cutoff == pytest.approx(89.1)
        # 90..99 survive
        assert result.retained == 10
        assert np.nanmin(result.masked.data) == 90.0
        # Excluded pixels are NaN, never 0
        assert np.isnan(result.masked.data[0, 0])
        assert result.masked.name == "highlighted_mask"

    def test_rate_one_keeps_only_maximum(self, scored):
        from src.scoring.masking import RateMask, apply_mask

        result = apply_mask(scored, RateMask(1.0))
        assert result.retained == 1
        assert result.masked.data[9, 9] == 99.0

    def test_lower_rate_widens_mask(self, scored):
        from src.scoring.masking import RateMask, apply_mask

        narrow = apply_mask(scored, RateMask(0.9)).masked.valid_mask
        wide = apply_mask(scored, RateMask(0.5)).masked.valid_mask
        assert np.all(wide[narrow])
        assert wide.sum() > narrow.sum()

    def test_minimum_rate_keeps_every_positive_score(self, scored):
        from src.scoring.masking import RateMask, apply_mask

        result = apply_mask(scored, RateMask(0.01))
        # cutoff 0.99 drops only the zero pixel
        assert result.retained == 99

    def test_all_zero_scores_mask_to_empty(self, utm_raster):
        from src.scoring.masking import RateMask, apply_mask

        flat = utm_raster(np.zeros((5, 5)), name="highlighted")
        result = apply_mask(flat, RateMask(0.5))
        assert result.retained == 0
        assert result.cutoff == 0.0

    def test_stats_come_from_unmasked_score(self, scored):
        from src.scoring.masking import RateMask, apply_mask

        result = apply_mask(scored, RateMask(0.9))
        assert result.stats.get("min") == 0.0
        assert result.stats.get("max") == 99.0

    @pytest.mark.parametrize("rate", [0.0, 0.005, 1.5, -0.1, float("nan"), float("inf")])
    def test_out_of_bounds_rate_rejected(self, rate):
        from src.errors import InvalidParameterError
        from src.scoring.masking import RateMask

        with pytest.raises(InvalidParameterError):
            RateMask(rate)

    def test_describe(self):
        from src.scoring.masking import RateMask

        assert RateMask(0.9).describe() == "Current Mask Rate: 0.9 (90%)"


class TestThresholdMask:
    """Tests for ThresholdMask."""

    def test_normalized_above(self, scored):
        from src.scoring.masking import ThresholdMask, apply_mask

        result = apply_mask(scored, ThresholdMask(0.5, keep="above"))
        # score / 99 > 0.5  <=>  score > 49.5
        assert result.retained == 50
        assert result.cutoff == pytest.approx(49.5)
        assert np.nanmin(result.masked.data) == 50.0

    def test_normalized_below(self, scored):
        from src.scoring.masking import ThresholdMask, apply_mask

        result = apply_mask(scored, ThresholdMask(0.5, keep="below"))
        assert result.retained == 50
        assert np.nanmax(result.masked.data) == 49.0

    def test_above_and_below_partition_valid_pixels(self, scored):
        from src.scoring.masking import ThresholdMask, apply_mask

        above = apply_mask(scored, ThresholdMask(0.3, keep="above")).masked.valid_mask
        below = apply_mask(scored, ThresholdMask(0.3, keep="below")).masked.valid_mask
        assert not np.any(above & below)
        assert np.all(above | below)

    def test_absolute_threshold(self, scored):
        from src.scoring.masking import ThresholdMask, apply_mask

        result = apply_mask(scored, ThresholdMask(10.0, normalized=False))
        assert result.cutoff == 10.0
        assert result.retained == 89

    def test_normalized_threshold_out_of_bounds(self):
        from src.errors import InvalidParameterError
        from src.scoring.masking import ThresholdMask

        with pytest.raises(InvalidParameterError):
            ThresholdMask(1.5)

    def test_negative_absolute_threshold_rejected(self):
        from src.errors import InvalidParameterError
        from src.scoring.masking import ThresholdMask

        with pytest.raises(InvalidParameterError):
            ThresholdMask(-1.0, normalized=False)

    def test_unknown_keep_rejected(self):
        from src.errors import InvalidParameterError
        from src.scoring.masking import ThresholdMask

        with pytest.raises(InvalidParameterError, match="keep"):
            ThresholdMask(0.5, keep="sideways")


class TestApplyMask:
    """Tests for region handling in apply_mask."""

    def test_pixels_outside_region_excluded(self, scored):
        from src.scoring.masking import RateMask, apply_mask
        from src.terrain.region import Region

        region = Region.from_coordinates(
            [(500000, 4400000), (500150, 4400000), (500150, 4399700), (500000, 4399700)],
            crs="EPSG:32613",
        )
        result = apply_mask(scored, RateMask(0.9), region)

        assert result.stats.get("max") == 94.0
        # 0.9 * 94 = 84.6; left-half values >= 84.6 are 90..94
        assert result.retained == 5
        assert np.isnan(result.masked.data[9, 9])

    def test_all_nan_score_raises_no_data(self, utm_raster):
        from src.errors import NoDataError
        from src.scoring.masking import RateMask, apply_mask

        with pytest.raises(NoDataError):
            apply_mask(utm_raster(np.full((3, 3), np.nan)), RateMask(0.9))

    def test_nan_pixels_stay_excluded(self, utm_raster):
        from src.scoring.masking import ThresholdMask, apply_mask

        data = np.arange(9.0).reshape(3, 3)
        data[1, 1] = np.nan
        result = apply_mask(utm_raster(data), ThresholdMask(0.0, keep="above"))
        assert np.isnan(result.masked.data[1, 1])


class TestCoarseScaleMask:
    """Masking with a reduction scale coarser than the score grid."""

    @pytest.fixture
    def peaked(self, utm_raster):
        """6x6 grid at 10 m with one 10.0 peak and a 4.0 secondary peak."""
        data = np.zeros((6, 6))
        data[0, 0] = 10.0
        data[4, 4] = 4.0
        return utm_raster(data, name="highlighted", unit="deg", res=10.0)

    def test_rate_one_keeps_only_global_maximum(self, peaked):
        from src.scoring.masking import RateMask, apply_mask

        result = apply_mask(peaked, RateMask(1.0), scale=30.0)

        assert result.cutoff == pytest.approx(10.0)
        assert result.retained == 1
        assert result.masked.data[0, 0] == 10.0

    def test_masked_range_within_unmasked_range(self, peaked):
        from src.analysis.reduction import reduce_region
        from src.scoring.masking import RateMask, apply_mask

        for rate in (0.3, 0.9, 1.0):
            result = apply_mask(peaked, RateMask(rate), scale=30.0)
            masked = reduce_region(result.masked, reducers=("minmax",), scale=30.0)

            assert masked.get("max") <= result.stats.get("max")
            assert masked.get("min") >= result.stats.get("min")

    def test_normalized_threshold_cutoff_in_score_units(self, peaked):
        from src.scoring.masking import ThresholdMask, apply_mask

        result = apply_mask(peaked, ThresholdMask(0.5), scale=30.0)

        assert result.cutoff == pytest.approx(5.0)
        assert result.retained == 1
