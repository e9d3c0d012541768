"""Segment -3dB / -6dB focal regions and measure their geometry.

The aligned volume is thresholded at fixed fractions of its peak
intensity.  Each binary mask is split into 26-connected components, and
every component is summarised by its volume, its geometric centroid and
the axis lengths of the uniform ellipsoid with the same second moments.
"""

from dataclasses import dataclass, replace

import numpy as np
from scipy.ndimage import find_objects, label as cc_label

from hydrophone.errors import EmptyVolumeError
from hydrophone.utils import THRESHOLD_LEVELS, is_missing

# Full 3x3x3 neighbourhood: face, edge and corner neighbours connect
CONNECTIVITY_26 = np.ones((3, 3, 3), dtype=bool)


@dataclass(frozen=True)
class PeakLocation:
    value: float
    index: tuple           # (ix, iy, iz)
    position_mm: tuple     # (x, y, z)


@dataclass(frozen=True)
class FocalRegion:
    """One connected region above a relative intensity threshold."""
    level: str                 # "-3dB" or "-6dB"
    index: int                 # 1-based, label order within the level
    volume_mm3: float
    dimensions_mm: tuple       # (x, y, z)
    centroid_mm: tuple         # (x, y, z)


# ---------------------------------------------------------------------------
# Pre-segmentation crop
# ---------------------------------------------------------------------------
def crop_z_range(aligned, z_range):
    """Restrict an aligned volume to a [start, stop) range of z indices."""
    if z_range is None:
        return aligned
    return replace(aligned,
                   isppa=aligned.isppa[:, :, z_range],
                   coord_z=aligned.coord_z[z_range])


# ---------------------------------------------------------------------------
# Peak
# ---------------------------------------------------------------------------
def find_peak(aligned):
    """Locate the maximum intensity, first occurrence in C (x, y, z) order.

    Raises
    ------
    EmptyVolumeError
        If every sample is missing or the peak is not positive.
    """
    isppa = aligned.isppa
    missing = is_missing(isppa)
    if isppa.size == 0 or np.all(missing):
        raise EmptyVolumeError(f"{aligned.name}: volume holds no valid samples")

    filled = np.where(missing, -np.inf, isppa)
    lin_idx = int(np.argmax(filled))
    value = float(filled.flat[lin_idx])
    if value <= 0.0:
        raise EmptyVolumeError(
            f"{aligned.name}: peak intensity {value} is not positive")

    ix, iy, iz = (int(i) for i in np.unravel_index(lin_idx, isppa.shape))
    position = (float(aligned.coord_x[ix]),
                float(aligned.coord_y[iy]),
                float(aligned.coord_z[iz]))
    return PeakLocation(value=value, index=(ix, iy, iz), position_mm=position)


# ---------------------------------------------------------------------------
# Masks and labels
# ---------------------------------------------------------------------------
def threshold_mask(isppa, peak_value, level):
    """Voxels strictly above ``level * peak_value`` (missing never selected)."""
    return np.where(is_missing(isppa), False, isppa > level * peak_value)


def label_regions(mask):
    """Label 26-connected components of a binary mask.

    Returns
    -------
    labeled : ndarray, int32
        0 for background, 1..n in raster-scan order of first appearance.
    n_regions : int
    """
    labeled, n_regions = cc_label(mask, structure=CONNECTIVITY_26)
    return labeled, int(n_regions)


# ---------------------------------------------------------------------------
# Region geometry
# ---------------------------------------------------------------------------
def principal_axis_lengths(voxel_coords):
    """Equivalent-ellipsoid axis lengths (voxels), reported as (x, y, z).

    Axis length per eigenvalue of the coordinate covariance is
    ``sqrt(20 * eigenvalue)``.  With lengths sorted L1 >= L2 >= L3 the
    result is ``(L2, L3, L1)`` so the longest (beam) axis is reported on z.
    """
    coords = np.asarray(voxel_coords, dtype=np.float64)
    if coords.shape[0] < 2:
        return np.zeros(3)
    cov = np.cov(coords.T, bias=True)
    eigvals = np.clip(np.linalg.eigvalsh(cov), 0.0, None)
    lengths = np.sqrt(20.0 * eigvals)[::-1]   # descending
    return np.array([lengths[1], lengths[2], lengths[0]])


def centroid_index(voxel_coords):
    """Mean voxel index per axis, rounded half away from zero."""
    mean = np.asarray(voxel_coords, dtype=np.float64).mean(axis=0)
    return tuple(int(np.floor(m + 0.5)) for m in mean)


def measure_regions(labeled, n_regions, aligned, level_name):
    """Summarise each labeled component as a FocalRegion.

    Parameters
    ----------
    labeled : ndarray, int
    n_regions : int
    aligned : AlignedVolume
        Supplies the coordinate vectors and step size.
    level_name : str

    Returns
    -------
    list of FocalRegion, in label order
    """
    step = aligned.step_size
    regions = []
    for lab, bbox in enumerate(find_objects(labeled, max_label=n_regions), start=1):
        if bbox is None:
            continue
        offset = np.array([s.start for s in bbox])
        coords = np.argwhere(labeled[bbox] == lab) + offset

        cx, cy, cz = centroid_index(coords)
        regions.append(FocalRegion(
            level=level_name,
            index=len(regions) + 1,
            volume_mm3=float(coords.shape[0] * step ** 3),
            dimensions_mm=tuple(float(d) for d in principal_axis_lengths(coords) * step),
            centroid_mm=(float(aligned.coord_x[cx]),
                         float(aligned.coord_y[cy]),
                         float(aligned.coord_z[cz])),
        ))
    return regions


def segment_focal_regions(aligned, levels=None):
    """Threshold, label and measure the focal regions of an aligned volume.

    Parameters
    ----------
    aligned : AlignedVolume
    levels : dict of str -> float or None
        Threshold label -> fraction of peak.  Defaults to THRESHOLD_LEVELS.

    Returns
    -------
    peak : PeakLocation
    masks : dict of str -> ndarray, bool
    regions : dict of str -> list of FocalRegion
    """
    if levels is None:
        levels = THRESHOLD_LEVELS
    peak = find_peak(aligned)

    masks = {}
    regions = {}
    for level_name, fraction in levels.items():
        mask = threshold_mask(aligned.isppa, peak.value, fraction)
        labeled, n_regions = label_regions(mask)
        masks[level_name] = mask
        regions[level_name] = measure_regions(labeled, n_regions, aligned, level_name)
        del labeled
    return peak, masks, regions
