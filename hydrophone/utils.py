"""Shared constants and helpers for the hydrophone pipeline.

Provides the unit conversion, missing-data sentinel, threshold levels,
output file naming, and the axis bookkeeping used by all processing steps.
"""

from pathlib import Path

import numpy as np

# ---------------------------------------------------------------------------
# Physical constants
# ---------------------------------------------------------------------------
RAW_TO_W_PER_CM2 = 10000.0   # raw Isppa is exported in W/m^2
SENTINEL = np.nan            # marks grid positions with no measurement
STEP_TOLERANCE_MM = 1e-6     # allowed step size disagreement between axes


# ---------------------------------------------------------------------------
# Focal region thresholds: label -> fraction of peak intensity
# ---------------------------------------------------------------------------
THRESHOLD_LEVELS = {"-3dB": 0.5, "-6dB": 0.25}


# ---------------------------------------------------------------------------
# Axis bookkeeping (volumes are indexed x, y, z)
# ---------------------------------------------------------------------------
AXES = ("x", "y", "z")


def axis_index(axis):
    """Return the array axis for an axis name ('x', 'y' or 'z')."""
    try:
        return AXES.index(axis)
    except ValueError:
        raise ValueError(f"Unknown axis {axis!r}, expected one of {AXES}")


def is_missing(volume):
    """Boolean mask of sentinel entries."""
    return np.isnan(volume)


# ---------------------------------------------------------------------------
# Output paths
# ---------------------------------------------------------------------------
def metrics_path(out_dir, name):
    """Return the focal metrics CSV path for a measurement."""
    return Path(out_dir) / f"focal_metrics_{name}.csv"


def profiles_path(out_dir, name):
    """Return the axial profiles CSV path for a measurement."""
    return Path(out_dir) / f"axial_profiles_{name}.csv"


def volume_path(out_dir, name):
    """Return the aligned volume NIfTI path for a measurement."""
    return Path(out_dir) / f"aligned_isppa_{name}.nii.gz"
