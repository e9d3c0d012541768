"""Post-process one hydrophone measurement.

Rescales the measured Isppa field to W/cm^2 at the drive power that
reaches the desired Isppa, pads the axial range between the transducer exit
plane and the first measured slice with NaN, computes axial max/sum
profiles, and measures the -3dB / -6dB focal regions.  Saves:
  - focal_metrics_<name>.csv
  - axial_profiles_<name>.csv
  - aligned_isppa_<name>.nii.gz

Usage:
    python -m hydrophone.process --raw CTX250-014.mat \
        --calibration power_isppa_CTX250-014.csv --desired-isppa 30
"""

import argparse
import sys
from dataclasses import dataclass
from pathlib import Path

import nibabel as nib
import numpy as np

from hydrophone.calibration import load_calibration_table, resolve_drive_power
from hydrophone.focal_regions import PeakLocation, crop_z_range, segment_focal_regions
from hydrophone.grid_align import AlignedVolume, align_grid
from hydrophone.metrics import (
    assemble_metrics,
    print_metrics,
    print_region_report,
    write_axial_profiles_csv,
    write_metrics_csv,
)
from hydrophone.normalize import normalize_intensity
from hydrophone.overrides import OverrideRule, load_overrides, rule_for
from hydrophone.profiling import stage
from hydrophone.raw_data import load_raw_volume
from hydrophone.slice_stats import axial_profiles
from hydrophone.utils import volume_path


@dataclass
class ProcessedMeasurement:
    name: str
    drive_power: float          # power used during the scan
    tpo_power: float            # power that reaches the desired Isppa
    scale_factor: float
    aligned: AlignedVolume      # full padded volume
    segmented: AlignedVolume    # after any z-range crop
    axial_max: np.ndarray
    axial_sum: np.ndarray
    peak: PeakLocation
    masks: dict
    regions: dict
    metrics: tuple


# ---------------------------------------------------------------------------
# Core pipeline
# ---------------------------------------------------------------------------
def process_measurement(raw, calibration, desired_isppa, rule=None, verbose=True):
    """Run calibration, alignment, axial statistics and segmentation.

    Parameters
    ----------
    raw : RawVolume
    calibration : CalibrationTable
    desired_isppa : float
        Isppa (W/cm^2) intended for the experiment.
    rule : OverrideRule or None
        Per-name crop configuration.

    Returns
    -------
    ProcessedMeasurement
    """
    if rule is None:
        rule = OverrideRule()
    if verbose:
        print(f"\nProcessing {raw.name}... ")
        if not rule.is_empty:
            crops = ", ".join(f"{a}[{s.start}:{s.stop}]"
                              for a, s in rule.axis_crop.items())
            print(f"Override rule: crop {crops or 'none'}  z_range {rule.z_range}")

    with stage("Calibrate", verbose):
        tpo_power = resolve_drive_power(calibration, desired_isppa)
        isppa, scale_factor = normalize_intensity(raw, tpo_power)
        if verbose:
            print(f"Drive power during scan: {raw.drive_power:g}  "
                  f"required: {tpo_power:g}  scale factor: {scale_factor:.4f}")

    with stage("Align grid", verbose):
        aligned = align_grid(raw, isppa, rule=rule, verbose=verbose)
        if verbose:
            print(f"Exit-plane padding: {aligned.z_offset_gridpoints} slices "
                  f"(z_min = {aligned.z_min:g} mm)  shape: {aligned.shape}")

    with stage("Axial profiles", verbose):
        axial_max, axial_sum = axial_profiles(aligned.isppa)

    segmented = crop_z_range(aligned, rule.z_range)
    if verbose and rule.z_range is not None:
        print(f"Segmenting z indices {rule.z_range.start}:{rule.z_range.stop} "
              f"-> shape {segmented.shape}")

    with stage("Segment focal regions", verbose):
        peak, masks, regions = segment_focal_regions(segmented)

    if verbose:
        print(f"Value of free-water Isppa (W/cm^2): {peak.value:g}")
        px, py, pz = peak.position_mm
        print(f"Position of free-water Isppa (mm): "
              f"x = {px:.4f}, y = {py:.4f}, z = {pz:.4f}")
        for level_regions in regions.values():
            print_region_report(level_regions)

    metrics = assemble_metrics(regions["-3dB"], regions["-6dB"])
    if verbose:
        print_metrics(metrics)

    return ProcessedMeasurement(
        name=raw.name,
        drive_power=raw.drive_power,
        tpo_power=tpo_power,
        scale_factor=scale_factor,
        aligned=aligned,
        segmented=segmented,
        axial_max=axial_max,
        axial_sum=axial_sum,
        peak=peak,
        masks=masks,
        regions=regions,
        metrics=metrics,
    )


# ---------------------------------------------------------------------------
# I/O
# ---------------------------------------------------------------------------
def build_affine(aligned):
    """Voxel -> mm affine for the aligned grid (axis-aligned, z from exit plane)."""
    affine = np.eye(4)
    for ax, axis in enumerate(("x", "y", "z")):
        coords = aligned.coords(axis)
        spacing = coords[1] - coords[0] if coords.size > 1 else aligned.step_size
        affine[ax, ax] = spacing
        affine[ax, 3] = coords[0]
    return affine


def save_aligned_volume(aligned, out_dir):
    """Save the aligned Isppa volume as float32 NIfTI (NaN = missing)."""
    path = volume_path(out_dir, aligned.name)
    path.parent.mkdir(parents=True, exist_ok=True)
    img = nib.Nifti1Image(aligned.isppa.astype(np.float32), build_affine(aligned))
    img.header.set_data_dtype(np.float32)
    img.header.set_xyzt_units("mm")
    nib.save(img, str(path))
    print(f"Saved {path}  shape={aligned.shape}  dtype=float32")
    return path


def save_outputs(result, out_dir):
    """Write metrics, axial profiles and the aligned volume."""
    out_dir = Path(out_dir)
    return {
        "metrics": write_metrics_csv(result.metrics, out_dir, result.name),
        "profiles": write_axial_profiles_csv(
            result.aligned.coord_z, result.axial_max, result.axial_sum,
            out_dir, result.name),
        "volume": save_aligned_volume(result.aligned, out_dir),
    }


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------
def parse_args(argv=None):
    """Parse CLI arguments for process."""
    parser = argparse.ArgumentParser(
        description="Post-process one hydrophone measurement."
    )
    parser.add_argument("--raw", required=True, type=Path,
                        help="Hydrophone export (.mat)")
    parser.add_argument("--calibration", required=True, type=Path,
                        help="CSV with globalPower and intensity columns")
    parser.add_argument("--desired-isppa", required=True, type=float,
                        help="Intended Isppa (W/cm^2)")
    parser.add_argument("--name", help="Measurement name (default: file stem)")
    parser.add_argument("--variable", help="Struct variable inside the .mat file")
    parser.add_argument("--overrides", type=Path,
                        help="JSON with per-name crop rules")
    parser.add_argument("--out-dir", type=Path, default=Path("."),
                        help="Output directory (default: current directory)")
    parser.add_argument("--quiet", action="store_true", help="Less console output")
    return parser.parse_args(argv)


def main(argv=None):
    """Process one measurement from the command line."""
    args = parse_args(argv)
    verbose = not args.quiet

    try:
        raw = load_raw_volume(args.raw, name=args.name, variable=args.variable)
        calibration = load_calibration_table(args.calibration)
        overrides = load_overrides(args.overrides) if args.overrides else {}
        result = process_measurement(
            raw, calibration, args.desired_isppa,
            rule=rule_for(overrides, raw.name), verbose=verbose)
        print()
        save_outputs(result, args.out_dir)
    except (ValueError, OSError) as e:
        print(f"\nFATAL: {type(e).__name__}: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
