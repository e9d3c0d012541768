"""Resolve the drive-power setting that reaches a desired Isppa.

The calibration table comes from a power sweep of one transducer / power
output unit combination: each row lists the global power setting and the
free-water Isppa it produced.  The table is read-only during a run.
"""

from dataclasses import dataclass

import numpy as np
import pandas as pd

from hydrophone.errors import CalibrationError

POWER_COLUMN = "globalPower"
INTENSITY_COLUMN = "intensity"


@dataclass(frozen=True)
class CalibrationTable:
    """Ordered (drive power, intensity) pairs from a calibration sweep."""
    drive_power: np.ndarray
    intensity: np.ndarray

    def __post_init__(self):
        if self.drive_power.shape != self.intensity.shape:
            raise CalibrationError(
                f"Calibration columns differ in length: "
                f"{self.drive_power.shape[0]} powers vs "
                f"{self.intensity.shape[0]} intensities")

    @classmethod
    def from_pairs(cls, pairs):
        """Build a table from an iterable of (drive_power, intensity)."""
        rows = [(float(p), float(i)) for p, i in pairs]
        powers = np.array([p for p, _ in rows], dtype=np.float64)
        intensities = np.array([i for _, i in rows], dtype=np.float64)
        return cls(powers, intensities)

    def __len__(self):
        return int(self.drive_power.shape[0])


def load_calibration_table(path):
    """Load a calibration table from CSV with globalPower/intensity columns.

    Raises
    ------
    CalibrationError
        If a column is missing or holds non-numeric values.
    """
    df = pd.read_csv(path)
    for col in (POWER_COLUMN, INTENSITY_COLUMN):
        if col not in df.columns:
            raise CalibrationError(
                f"{path}: missing column {col!r} (found {list(df.columns)})")
    try:
        powers = pd.to_numeric(df[POWER_COLUMN]).to_numpy(dtype=np.float64)
        intensities = pd.to_numeric(df[INTENSITY_COLUMN]).to_numpy(dtype=np.float64)
    except (ValueError, TypeError) as e:
        raise CalibrationError(f"{path}: non-numeric calibration value ({e})")
    return CalibrationTable(powers, intensities)


def resolve_drive_power(table, target_intensity):
    """Return the drive power whose intensity is closest to the target.

    Ties (equal absolute difference) resolve to the first entry in table
    order.

    Parameters
    ----------
    table : CalibrationTable
    target_intensity : float
        Desired Isppa (W/cm^2).

    Returns
    -------
    float
    """
    if len(table) == 0:
        raise CalibrationError("Calibration table is empty")
    diff = np.abs(table.intensity - float(target_intensity))
    if np.all(np.isnan(diff)):
        raise CalibrationError("Calibration table has no finite intensities")
    # nanargmin returns the first occurrence of the minimum
    return float(table.drive_power[int(np.nanargmin(diff))])
