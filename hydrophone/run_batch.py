"""Process a batch of hydrophone measurements.

Each measurement runs independently: a failure is reported and the batch
moves on to the next transducer.  The manifest is JSON:

    {
      "desired_isppa": 30.0,
      "overrides": "overrides.json",
      "measurements": [
        {"name": "CTX250-014", "raw": "CTX250014.mat",
         "calibration": "power_isppa_CTX250-014.csv"},
        {"name": "CTX500-006", "raw": "CTX500006.mat",
         "calibration": "power_isppa_CTX500-006.csv", "desired_isppa": 20.0}
      ]
    }

Relative paths are resolved against the manifest directory.

Usage:
    python -m hydrophone.run_batch --manifest batch.json --out-dir results
"""

import argparse
import json
import sys
from pathlib import Path

from hydrophone.calibration import load_calibration_table
from hydrophone.overrides import load_overrides, rule_for
from hydrophone.process import process_measurement, save_outputs
from hydrophone.profiling import stage
from hydrophone.raw_data import load_raw_volume


def parse_args(argv=None):
    """Parse CLI arguments for run_batch."""
    parser = argparse.ArgumentParser(
        description="Post-process a batch of hydrophone measurements."
    )
    parser.add_argument("--manifest", required=True, type=Path,
                        help="JSON manifest listing the measurements")
    parser.add_argument("--out-dir", type=Path, default=Path("."),
                        help="Output directory (default: current directory)")
    parser.add_argument("--quiet", action="store_true", help="Less console output")
    return parser.parse_args(argv)


def load_manifest(path):
    """Load and validate a batch manifest, resolving relative paths.

    Returns
    -------
    entries : list of dict
        Each with name, raw, calibration (Path) and desired_isppa (float).
    overrides_path : Path or None
    """
    path = Path(path)
    with open(path) as f:
        manifest = json.load(f)
    base = path.parent

    measurements = manifest.get("measurements")
    if not isinstance(measurements, list) or not measurements:
        raise ValueError(f"{path}: 'measurements' must be a non-empty list")

    default_isppa = manifest.get("desired_isppa")
    entries = []
    for i, m in enumerate(measurements):
        for key in ("raw", "calibration"):
            if key not in m:
                raise ValueError(f"{path}: measurement {i} is missing {key!r}")
        isppa = m.get("desired_isppa", default_isppa)
        if isppa is None:
            raise ValueError(f"{path}: measurement {i} has no desired_isppa")
        raw = base / m["raw"]
        entries.append({
            "name": m.get("name", raw.stem),
            "raw": raw,
            "calibration": base / m["calibration"],
            "desired_isppa": float(isppa),
            "variable": m.get("variable"),
        })

    overrides_path = manifest.get("overrides")
    if overrides_path is not None:
        overrides_path = base / overrides_path
    return entries, overrides_path


def run_one(entry, overrides, out_dir, verbose=True):
    """Load, process and save one measurement; exceptions propagate."""
    raw = load_raw_volume(entry["raw"], name=entry["name"],
                          variable=entry["variable"])
    calibration = load_calibration_table(entry["calibration"])
    result = process_measurement(raw, calibration, entry["desired_isppa"],
                                 rule=rule_for(overrides, entry["name"]),
                                 verbose=verbose)
    save_outputs(result, out_dir)
    return result


def run_batch(entries, overrides, out_dir, verbose=True, runner=run_one):
    """Run every entry, isolating failures.

    Returns
    -------
    statuses : list of (name, status, detail)
        status is "OK" or "FAILED".
    """
    statuses = []
    for entry in entries:
        name = entry["name"]
        print(f"\n{'─' * 60}")
        print(f"  {name}")
        print(f"{'─' * 60}")
        try:
            with stage(name, verbose):
                result = runner(entry, overrides, out_dir, verbose=verbose)
        except (ValueError, OSError) as e:
            print(f"\nFAILED: {name} raised {type(e).__name__}: {e}")
            statuses.append((name, "FAILED", f"{type(e).__name__}: {e}"))
            continue
        statuses.append((name, "OK", f"{len(result.metrics)} regions"))
    return statuses


def print_summary(statuses):
    """Print one status line per measurement."""
    print("\n" + "=" * 60)
    print("Batch Summary")
    print("=" * 60)
    for name, status, detail in statuses:
        print(f"  {name:<30s} {status:<7s} {detail}")
    n_failed = sum(1 for _, s, _ in statuses if s != "OK")
    print(f"\n  {len(statuses) - n_failed}/{len(statuses)} succeeded")


def main(argv=None):
    """Process every measurement listed in the manifest."""
    args = parse_args(argv)

    try:
        entries, overrides_path = load_manifest(args.manifest)
        overrides = load_overrides(overrides_path) if overrides_path else {}
    except (ValueError, OSError) as e:
        print(f"FATAL: Could not read manifest {args.manifest}: {e}")
        sys.exit(1)

    print("=" * 60)
    print(f"  Hydrophone batch: {len(entries)} measurements")
    print(f"  Output: {args.out_dir}")
    print("=" * 60)

    statuses = run_batch(entries, overrides, args.out_dir, verbose=not args.quiet)
    print_summary(statuses)

    if any(status != "OK" for _, status, _ in statuses):
        sys.exit(1)


if __name__ == "__main__":
    main()
