"""Rescale raw Isppa to W/cm^2 at the intended operating power."""

import numpy as np

from hydrophone.errors import NormalizationError
from hydrophone.utils import RAW_TO_W_PER_CM2


def compute_scale_factor(resolved_power, measured_power):
    """Ratio of the power needed for the desired Isppa to the scan power."""
    measured_power = float(measured_power)
    if not np.isfinite(measured_power) or measured_power <= 0.0:
        raise NormalizationError(
            f"Invalid drive power during measurement: {measured_power}")
    return float(resolved_power) / measured_power


def normalize_intensity(raw, resolved_power):
    """Convert a raw volume to calibrated W/cm^2 at the resolved power.

    Parameters
    ----------
    raw : RawVolume
    resolved_power : float
        Drive power that reaches the desired Isppa (from the calibration
        table).

    Returns
    -------
    isppa : ndarray, float64, same shape as raw.intensity
    scale_factor : float
    """
    scale_factor = compute_scale_factor(resolved_power, raw.drive_power)
    isppa = raw.intensity / RAW_TO_W_PER_CM2 * scale_factor
    return isppa, scale_factor
