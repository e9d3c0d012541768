"""Raw hydrophone measurement container and .mat loader.

The scanning tank software exports one MATLAB struct per measurement:

    <var>.data{1}.driverAmp.power          drive power during the scan
    <var>.data{1}.measurement.ISPPA.data   raw Isppa volume (W/m^2)
    <var>.data{1}.measurement.cor.x/y/z    sample positions (mm)

MATLAB volumes are stored (row=y, col=x, page=z); the loader swaps the
first two axes so every array in this package is indexed (x, y, z).
"""

from dataclasses import dataclass
from pathlib import Path

import numpy as np
from scipy.io import loadmat
from scipy.io.matlab import MatReadError


@dataclass
class RawVolume:
    """Raw intensity samples plus full coordinate grids of the same shape."""
    name: str
    intensity: np.ndarray
    coord_x: np.ndarray
    coord_y: np.ndarray
    coord_z: np.ndarray
    drive_power: float

    def __post_init__(self):
        self.intensity = np.asarray(self.intensity, dtype=np.float64)
        if self.intensity.ndim != 3:
            raise ValueError(
                f"{self.name}: intensity must be 3D, got shape "
                f"{self.intensity.shape}")
        for axis in ("x", "y", "z"):
            attr = f"coord_{axis}"
            coords = np.asarray(getattr(self, attr), dtype=np.float64)
            if coords.shape != self.intensity.shape:
                raise ValueError(
                    f"{self.name}: {attr} shape {coords.shape} != intensity "
                    f"shape {self.intensity.shape}")
            setattr(self, attr, coords)
        self.drive_power = float(self.drive_power)

    @property
    def shape(self):
        return self.intensity.shape

    @classmethod
    def from_axes(cls, name, intensity, x, y, z, drive_power):
        """Build a RawVolume from 1D axis vectors (meshgrid, ij indexing)."""
        gx, gy, gz = np.meshgrid(np.asarray(x, dtype=np.float64),
                                 np.asarray(y, dtype=np.float64),
                                 np.asarray(z, dtype=np.float64),
                                 indexing='ij')
        return cls(name, intensity, gx, gy, gz, drive_power)


# ---------------------------------------------------------------------------
# .mat loading
# ---------------------------------------------------------------------------
def _field(obj, path):
    """Walk a dotted field path through loadmat structs."""
    for part in path.split("."):
        if isinstance(obj, np.ndarray) and obj.dtype == object:
            obj = obj.flat[0]
        if not hasattr(obj, part):
            raise ValueError(f"Hydrophone export is missing field {path!r}")
        obj = getattr(obj, part)
    return obj


def _first_cell(cell):
    """Return the first entry of a (possibly squeezed) MATLAB cell array."""
    if isinstance(cell, np.ndarray) and cell.dtype == object:
        if cell.size == 0:
            raise ValueError("Hydrophone export has an empty 'data' cell")
        return cell.flat[0]
    return cell


def _matlab_to_xyz(arr):
    """Swap MATLAB (y, x, z) storage order to (x, y, z)."""
    arr = np.asarray(arr, dtype=np.float64)
    if arr.ndim != 3:
        raise ValueError(f"Expected a 3D array in hydrophone export, got {arr.shape}")
    return np.swapaxes(arr, 0, 1)


def load_raw_volume(path, name=None, variable=None):
    """Load a raw hydrophone scan from a MATLAB (v5/v7) export.

    Parameters
    ----------
    path : str or Path
    name : str or None
        Measurement name.  Defaults to the file stem.
    variable : str or None
        Variable holding the export struct.  If None, the file must contain
        exactly one non-private variable.

    Returns
    -------
    RawVolume
    """
    path = Path(path)
    print(f"Loading {path}")
    try:
        contents = loadmat(str(path), squeeze_me=True, struct_as_record=False)
    except (MatReadError, NotImplementedError) as e:
        # v7.3 (HDF5) exports raise NotImplementedError
        raise ValueError(f"{path}: cannot read hydrophone export ({e})") from e
    candidates = [k for k in contents if not k.startswith("__")]

    if variable is None:
        if len(candidates) != 1:
            raise ValueError(
                f"{path}: expected one variable, found {candidates}; "
                "pass variable= to choose")
        variable = candidates[0]
    elif variable not in contents:
        raise ValueError(f"{path}: variable {variable!r} not in {candidates}")

    entry = _first_cell(_field(contents[variable], "data"))
    return RawVolume(
        name=name if name is not None else path.stem,
        intensity=_matlab_to_xyz(_field(entry, "measurement.ISPPA.data")),
        coord_x=_matlab_to_xyz(_field(entry, "measurement.cor.x")),
        coord_y=_matlab_to_xyz(_field(entry, "measurement.cor.y")),
        coord_z=_matlab_to_xyz(_field(entry, "measurement.cor.z")),
        drive_power=float(_field(entry, "driverAmp.power")),
    )
