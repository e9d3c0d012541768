"""Compile focal-region results into the exported metrics table."""

from pathlib import Path

import pandas as pd

from hydrophone.utils import metrics_path, profiles_path

METRICS_COLUMNS = [
    "dB_Level", "VolumeNumber", "Volume_mm3",
    "Dimensions_mm_x", "Dimensions_mm_y", "Dimensions_mm_z",
    "Centroid_mm_x", "Centroid_mm_y", "Centroid_mm_z",
]


def assemble_metrics(regions_3db, regions_6db):
    """Concatenate -3dB then -6dB regions into one read-only table."""
    return tuple(regions_3db) + tuple(regions_6db)


def metrics_to_frame(metrics):
    """Convert a metrics table to a DataFrame with the export columns."""
    rows = [
        [r.level, r.index, r.volume_mm3, *r.dimensions_mm, *r.centroid_mm]
        for r in metrics
    ]
    return pd.DataFrame(rows, columns=METRICS_COLUMNS)


def write_metrics_csv(metrics, out_dir, name):
    """Write focal_metrics_<name>.csv and return its path."""
    path = metrics_path(out_dir, name)
    Path(path).parent.mkdir(parents=True, exist_ok=True)
    metrics_to_frame(metrics).to_csv(path, index=False)
    print(f"Saved {path}  ({len(metrics)} regions)")
    return path


def write_axial_profiles_csv(coord_z, axial_max, axial_sum, out_dir, name):
    """Write axial_profiles_<name>.csv (missing maxima written empty)."""
    path = profiles_path(out_dir, name)
    Path(path).parent.mkdir(parents=True, exist_ok=True)
    df = pd.DataFrame({"z_mm": coord_z, "axial_max": axial_max,
                       "axial_sum": axial_sum})
    df.to_csv(path, index=False)
    print(f"Saved {path}  ({len(df)} slices)")
    return path


# ---------------------------------------------------------------------------
# Console report
# ---------------------------------------------------------------------------
def print_region_report(regions):
    """Print volume, dimensions and centroid lines for each region."""
    for r in regions:
        print(f"{r.level}: Focal volume, volume {r.index} (mm^3) = {r.volume_mm3:.2f}")
    for r in regions:
        x, y, z = r.dimensions_mm
        print(f"{r.level}: Focal dimensions, volume {r.index} (mm): "
              f"x = {x:.1f}, y = {y:.1f}, z = {z:.1f}")
    for r in regions:
        x, y, z = r.centroid_mm
        print(f"{r.level}: Centroid coordinates, volume {r.index} (mm): "
              f"x = {x:.1f}, y = {y:.1f}, z = {z:.1f}")


def print_metrics(metrics):
    """Print the metrics table."""
    print("\n" + "=" * 60)
    print("Focal Metrics")
    print("=" * 60)
    if not metrics:
        print("  (no regions)")
        return
    print(metrics_to_frame(metrics).to_string(index=False, float_format="%.2f"))
