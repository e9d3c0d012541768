"""Align a normalized hydrophone volume to the transducer exit plane.

Validates that the scan grid is uniform and isotropic, applies any
per-transducer axis crop, pads the z axis with the missing-data sentinel so
that z index 0 lies on the exit plane, and collapses the full coordinate
grids to one vector per axis.
"""

from dataclasses import dataclass

import numpy as np

from hydrophone.errors import GridConsistencyError
from hydrophone.raw_data import RawVolume
from hydrophone.utils import AXES, SENTINEL, STEP_TOLERANCE_MM, axis_index


@dataclass
class AlignedVolume:
    """Calibrated intensity on a zero-origin axial grid."""
    name: str
    isppa: np.ndarray          # (nx, ny, nz_padded), W/cm^2, NaN = missing
    coord_x: np.ndarray        # (nx,) mm
    coord_y: np.ndarray        # (ny,) mm
    coord_z: np.ndarray        # (nz_padded,) mm, coord_z[0] ~ exit plane
    step_size: float
    z_min: float
    z_offset_gridpoints: int

    @property
    def shape(self):
        return self.isppa.shape

    def coords(self, axis):
        return getattr(self, f"coord_{axis}")


# ---------------------------------------------------------------------------
# Step size
# ---------------------------------------------------------------------------
def _axis_step(coords, axis):
    """Spacing of the first adjacent sample pair along one axis."""
    ax = axis_index(axis)
    if coords.shape[ax] < 2:
        raise GridConsistencyError(
            f"Need at least 2 samples along {axis} to derive the step size, "
            f"got {coords.shape[ax]}")
    first = coords[(0, 0, 0)]
    idx = [0, 0, 0]
    idx[ax] = 1
    return float(abs(coords[tuple(idx)] - first))


def derive_step_size(raw, tol=STEP_TOLERANCE_MM):
    """Return the common grid step (mm), checking all three axes agree.

    Raises
    ------
    GridConsistencyError
        If the per-axis steps differ by more than ``tol`` or are not
        positive.
    """
    steps = {axis: _axis_step(getattr(raw, f"coord_{axis}"), axis) for axis in AXES}
    step = steps["x"]
    if not np.isfinite(step) or step <= 0.0:
        raise GridConsistencyError(f"Invalid step size along x: {step}")
    mismatched = {a: s for a, s in steps.items() if not abs(s - step) <= tol}
    if mismatched:
        detail = ", ".join(f"{a}={s:.6g}" for a, s in steps.items())
        raise GridConsistencyError(
            f"The step size is not equal across dimensions ({detail} mm)")
    return step


# ---------------------------------------------------------------------------
# Crops
# ---------------------------------------------------------------------------
def apply_axis_crop(raw, isppa, axis_crop):
    """Slice the raw grid and its intensity along the configured axes.

    Parameters
    ----------
    raw : RawVolume
    isppa : ndarray
        Normalized intensity, same shape as the raw grid.
    axis_crop : dict of str -> slice

    Returns
    -------
    cropped_raw : RawVolume
    cropped_isppa : ndarray
    """
    if not axis_crop:
        return raw, isppa
    index = [slice(None)] * 3
    for axis, sl in axis_crop.items():
        index[axis_index(axis)] = sl
    index = tuple(index)

    cropped_isppa = isppa[index]
    if 0 in cropped_isppa.shape:
        raise GridConsistencyError(
            f"{raw.name}: axis crop {axis_crop} leaves an empty grid")
    cropped = RawVolume(
        name=raw.name,
        intensity=raw.intensity[index],
        coord_x=raw.coord_x[index],
        coord_y=raw.coord_y[index],
        coord_z=raw.coord_z[index],
        drive_power=raw.drive_power,
    )
    return cropped, cropped_isppa


# ---------------------------------------------------------------------------
# Exit-plane padding
# ---------------------------------------------------------------------------
def compute_z_offset(z_min, step_size, tol=STEP_TOLERANCE_MM, verbose=True):
    """Number of grid cells between the exit plane and the first slice.

    A fractional count is rounded to the nearest cell.
    """
    if not np.isfinite(z_min):
        raise GridConsistencyError("No finite z coordinates in measurement")
    if z_min < -tol:
        raise GridConsistencyError(
            f"Minimum z coordinate {z_min} mm lies behind the exit plane")
    exact = max(z_min, 0.0) / step_size
    offset = int(np.floor(exact + 0.5))
    if verbose and abs(exact - offset) * step_size > tol:
        print(f"WARNING: z_min={z_min} mm is not a whole number of "
              f"{step_size} mm steps ({exact:.4f}); padding {offset} slices")
    return offset


def pad_to_exit_plane(isppa, z_offset_gridpoints):
    """Prepend ``z_offset_gridpoints`` sentinel slices along z."""
    nx, ny, nz = isppa.shape
    padded = np.full((nx, ny, nz + z_offset_gridpoints), SENTINEL, dtype=np.float64)
    padded[:, :, z_offset_gridpoints:] = isppa
    return padded


def collapse_coordinates(raw):
    """Reduce the full coordinate grids to one vector per axis.

    The grid is separable, so each axis is read along a line through the
    middle of the other two.
    """
    nx, ny, nz = raw.shape
    cx, cy, cz = nx // 2, ny // 2, nz // 2
    return (raw.coord_x[:, cy, cz].copy(),
            raw.coord_y[cx, :, cz].copy(),
            raw.coord_z[cx, cy, :].copy())


def align_grid(raw, isppa, rule=None, tol=STEP_TOLERANCE_MM, verbose=True):
    """Validate, crop, pad and collapse a normalized scan.

    Parameters
    ----------
    raw : RawVolume
        Source grid (coordinates are read from here).
    isppa : ndarray
        Normalized intensity, same shape as ``raw.intensity``.
    rule : OverrideRule or None
        Per-name crop configuration; only ``axis_crop`` is used here.

    Returns
    -------
    AlignedVolume
    """
    if isppa.shape != raw.shape:
        raise GridConsistencyError(
            f"Intensity shape {isppa.shape} != grid shape {raw.shape}")

    step_size = derive_step_size(raw, tol=tol)
    if verbose:
        print(f"Dimension step sizes correspond at {step_size:g} mm")

    if rule is not None and rule.axis_crop:
        raw, isppa = apply_axis_crop(raw, isppa, rule.axis_crop)
        if verbose:
            print(f"Applied axis crop {rule.axis_crop} -> shape {isppa.shape}")

    z_min = float(np.nanmin(raw.coord_z)) if np.any(np.isfinite(raw.coord_z)) else np.nan
    offset = compute_z_offset(z_min, step_size, tol=tol, verbose=verbose)

    coord_x, coord_y, coord_z = collapse_coordinates(raw)
    padded_z = coord_z[0] - step_size * np.arange(offset, 0, -1, dtype=np.float64)

    return AlignedVolume(
        name=raw.name,
        isppa=pad_to_exit_plane(isppa, offset),
        coord_x=coord_x,
        coord_y=coord_y,
        coord_z=np.concatenate([padded_z, coord_z]),
        step_size=step_size,
        z_min=z_min,
        z_offset_gridpoints=offset,
    )
