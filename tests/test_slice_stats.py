"""Tests for hydrophone/slice_stats.py — sentinel-aware axial max/sum."""

import numpy as np

from hydrophone.slice_stats import axial_profiles


class TestAxialProfiles:
    def test_plain_volume(self):
        vol = np.arange(2 * 3 * 4, dtype=np.float64).reshape(2, 3, 4)
        axial_max, axial_sum = axial_profiles(vol)
        np.testing.assert_array_equal(axial_max, vol.max(axis=(0, 1)))
        np.testing.assert_array_equal(axial_sum, vol.sum(axis=(0, 1)))

    def test_all_sentinel_slice(self):
        vol = np.ones((3, 3, 4))
        vol[:, :, :2] = np.nan
        axial_max, axial_sum = axial_profiles(vol)
        assert np.all(np.isnan(axial_max[:2]))
        np.testing.assert_array_equal(axial_sum[:2], [0.0, 0.0])
        np.testing.assert_array_equal(axial_max[2:], [1.0, 1.0])
        np.testing.assert_array_equal(axial_sum[2:], [9.0, 9.0])

    def test_partially_missing_slice(self):
        vol = np.zeros((2, 2, 1))
        vol[0, 0, 0] = np.nan
        vol[1, 0, 0] = 5.0
        vol[0, 1, 0] = -1.0
        vol[1, 1, 0] = 2.0
        axial_max, axial_sum = axial_profiles(vol)
        assert axial_max[0] == 5.0
        assert axial_sum[0] == 6.0

    def test_length_matches_z_extent(self):
        vol = np.random.default_rng(0).random((4, 5, 7))
        axial_max, axial_sum = axial_profiles(vol)
        assert axial_max.shape == (7,)
        assert axial_sum.shape == (7,)

    def test_input_untouched(self):
        vol = np.full((2, 2, 2), np.nan)
        vol[..., 1] = 3.0
        before = vol.copy()
        axial_profiles(vol)
        np.testing.assert_array_equal(vol, before)
