"""Per-slice axial statistics of an aligned volume."""

import numpy as np

from hydrophone.utils import SENTINEL, is_missing


def axial_profiles(isppa):
    """Maximum and sum of each z slice, ignoring missing samples.

    Parameters
    ----------
    isppa : ndarray (nx, ny, nz)
        Aligned intensity with NaN marking missing samples.

    Returns
    -------
    axial_max : ndarray (nz,)
        Slice maximum; the sentinel where the whole slice is missing.
    axial_sum : ndarray (nz,)
        Sum of the real samples in the slice (0 for an all-missing slice).
    """
    missing = is_missing(isppa)
    has_data = ~np.all(missing, axis=(0, 1))

    axial_max = np.where(missing, -np.inf, isppa).max(axis=(0, 1))
    axial_max = np.where(has_data, axial_max, SENTINEL)
    axial_sum = np.where(missing, 0.0, isppa).sum(axis=(0, 1))
    return axial_max, axial_sum
