"""Shared fixtures for the test suite."""

import numpy as np
import pytest

from hydrophone.grid_align import AlignedVolume
from hydrophone.raw_data import RawVolume


def _make_raw(shape=(6, 5, 4), step=0.5, origin=(-1.0, -1.0, 2.0),
              drive_power=20.0, name="test", intensity=None):
    """Build a RawVolume on a uniform grid with the given origin (mm)."""
    nx, ny, nz = shape
    x = origin[0] + step * np.arange(nx)
    y = origin[1] + step * np.arange(ny)
    z = origin[2] + step * np.arange(nz)
    if intensity is None:
        intensity = np.arange(nx * ny * nz, dtype=np.float64).reshape(shape)
    return RawVolume.from_axes(name, intensity, x, y, z, drive_power)


def _make_aligned(isppa, step=1.0, name="test", z_offset=0):
    """Build an AlignedVolume with integer-mm coordinates scaled by step."""
    nx, ny, nz = isppa.shape
    return AlignedVolume(
        name=name,
        isppa=np.asarray(isppa, dtype=np.float64),
        coord_x=step * np.arange(nx, dtype=np.float64),
        coord_y=step * np.arange(ny, dtype=np.float64),
        coord_z=step * np.arange(nz, dtype=np.float64),
        step_size=step,
        z_min=step * z_offset,
        z_offset_gridpoints=z_offset,
    )


@pytest.fixture
def make_raw():
    """Factory fixture that returns the _make_raw helper."""
    return _make_raw


@pytest.fixture
def make_aligned():
    """Factory fixture that returns the _make_aligned helper."""
    return _make_aligned


def _write_hydrophone_mat(path, raw, variable="hydrophone_data"):
    """Write a RawVolume in the scanning-tank .mat layout (MATLAB y, x, z order)."""
    from scipy.io import savemat

    def to_matlab(arr):
        return np.ascontiguousarray(np.swapaxes(arr, 0, 1))

    entry = {
        "driverAmp": {"power": float(raw.drive_power)},
        "measurement": {
            "ISPPA": {"data": to_matlab(raw.intensity)},
            "cor": {
                "x": to_matlab(raw.coord_x),
                "y": to_matlab(raw.coord_y),
                "z": to_matlab(raw.coord_z),
            },
        },
    }
    cell = np.empty((1, 1), dtype=object)
    cell[0, 0] = entry
    savemat(str(path), {variable: {"data": cell}})
    return path


def _focus_volume(shape=(9, 9, 12), center=(4, 4, 7), sigma=(1.0, 1.0, 2.5),
                  peak=1e5):
    """Gaussian focal spot (raw W/m^2 units) on an index grid."""
    ii, jj, kk = np.meshgrid(*(np.arange(n) for n in shape), indexing='ij')
    r2 = (((ii - center[0]) / sigma[0]) ** 2
          + ((jj - center[1]) / sigma[1]) ** 2
          + ((kk - center[2]) / sigma[2]) ** 2)
    return peak * np.exp(-0.5 * r2)


@pytest.fixture
def write_hydrophone_mat():
    """Factory fixture that returns the _write_hydrophone_mat helper."""
    return _write_hydrophone_mat


@pytest.fixture
def focus_volume():
    """Factory fixture that returns the _focus_volume helper."""
    return _focus_volume
