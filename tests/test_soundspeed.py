"""Tests for the sound speed equation and depth binning."""

from __future__ import annotations

import math

import numpy as np
import pytest

from xarray_ocl.soundspeed import (
    DEFAULT_SALINITY,
    bin_profile,
    depth_to_pressure,
    range_status,
    sound_speed,
)


class TestSoundSpeed:
    def test_check_value(self):
        assert sound_speed(1000.0, 40.0, 40.0) == pytest.approx(1745.095215, abs=1e-3)

    def test_surface_water(self):
        # Fresh water at 0 deg C, surface
        assert sound_speed(0.0, 0.0, 0.0) == pytest.approx(1402.388, abs=1e-9)

    def test_typical_sea_water(self):
        speed = sound_speed(0.0, 10.0, DEFAULT_SALINITY)
        assert 1485.0 < speed < 1495.0

    def test_vectorised(self):
        speeds = sound_speed([0.0, 1000.0], [0.0, 40.0], 40.0)
        assert speeds.shape == (2,)
        assert speeds[1] == pytest.approx(1745.095215, abs=1e-3)

    def test_out_of_range(self):
        assert math.isnan(sound_speed(1001.0, 10.0, 35.0))
        speeds = sound_speed([10.0, 10.0], [10.0, -1.0], [35.0, 35.0])
        assert not np.isnan(speeds[0])
        assert np.isnan(speeds[1])


class TestRangeStatus:
    def test_bits(self):
        assert range_status(500.0, 10.0, 35.0) == 0
        assert range_status(-1.0, 10.0, 35.0) == 1
        assert range_status(500.0, 41.0, 35.0) == 2
        assert range_status(500.0, 10.0, 41.0) == 4
        assert range_status(1001.0, 41.0, 41.0) == 7

    def test_nan_is_out_of_range(self):
        assert range_status(500.0, math.nan, 35.0) == 2


def test_depth_to_pressure():
    assert depth_to_pressure(99.0) == pytest.approx(10.0)
    np.testing.assert_allclose(depth_to_pressure([0.0, 990.0]), [0.0, 100.0])


class TestBinProfile:
    def test_means_and_counts(self):
        depths = [0.0, 5.0, 12.0, 35.0, 38.0]
        bins, means, stds, counts = bin_profile(depths, {"t": [10.0, 12.0, 9.0, 4.0, 6.0]}, 10.0)
        np.testing.assert_allclose(bins, [0.0, 10.0, 30.0])
        np.testing.assert_array_equal(counts, [2, 1, 2])
        np.testing.assert_allclose(means["t"], [11.0, 9.0, 5.0])
        np.testing.assert_allclose(stds["t"], [1.0, 0.0, 1.0])

    def test_nan_depths_dropped(self):
        bins, means, _, counts = bin_profile([math.nan, 1.0], {"t": [99.0, 1.0]}, 10.0)
        np.testing.assert_array_equal(counts, [1])
        np.testing.assert_allclose(means["t"], [1.0])

    def test_bad_bin_size(self):
        with pytest.raises(ValueError):
            bin_profile([1.0], {}, 0.0)
