"""Per-transducer crop rules, kept out of the processing algorithms.

Some measurements need a trim before they are comparable with the rest of
the set (e.g. two extra rows scanned on one transducer, or a near-field
lobe that must be isolated from the main focus).  These exceptions live in
a JSON file keyed by measurement name:

    {
      "CTX500-006": {"axis_crop": {"y": [2, null]}},
      "nearfield_CTX250-026": {"z_range": [0, 60]}
    }

``axis_crop`` slices the raw grid before alignment; ``z_range`` slices the
aligned z axis before segmentation.  Both use [start, stop) indices with
``null`` meaning open-ended.
"""

import json
from dataclasses import dataclass, field
from pathlib import Path

from hydrophone.utils import AXES

_RULE_KEYS = {"axis_crop", "z_range"}


@dataclass(frozen=True)
class OverrideRule:
    axis_crop: dict = field(default_factory=dict)   # axis name -> slice
    z_range: slice | None = None

    @property
    def is_empty(self):
        return not self.axis_crop and self.z_range is None


def _parse_bounds(value, where):
    if not isinstance(value, (list, tuple)) or len(value) != 2:
        raise ValueError(f"{where}: expected [start, stop], got {value!r}")
    for v in value:
        if v is not None and (isinstance(v, bool) or not isinstance(v, int)):
            raise ValueError(f"{where}: bounds must be integers or null, got {value!r}")
    return slice(value[0], value[1])


def parse_rule(name, body):
    """Build an OverrideRule from its JSON mapping."""
    if not isinstance(body, dict):
        raise ValueError(f"Override {name!r}: expected an object, got {body!r}")
    unknown = set(body) - _RULE_KEYS
    if unknown:
        raise ValueError(f"Override {name!r}: unknown keys {sorted(unknown)}")

    axis_crop = {}
    for axis, bounds in body.get("axis_crop", {}).items():
        if axis not in AXES:
            raise ValueError(f"Override {name!r}: unknown axis {axis!r}")
        axis_crop[axis] = _parse_bounds(bounds, f"Override {name!r} axis_crop.{axis}")

    z_range = None
    if body.get("z_range") is not None:
        z_range = _parse_bounds(body["z_range"], f"Override {name!r} z_range")

    return OverrideRule(axis_crop=axis_crop, z_range=z_range)


def load_overrides(path):
    """Load override rules from JSON.

    Returns
    -------
    dict of str -> OverrideRule
    """
    path = Path(path)
    with open(path) as f:
        raw = json.load(f)
    if not isinstance(raw, dict):
        raise ValueError(f"{path}: overrides must be a JSON object keyed by name")
    return {name: parse_rule(name, body) for name, body in raw.items()}


def rule_for(overrides, name):
    """Return the rule for a measurement name (empty rule if none)."""
    if not overrides:
        return OverrideRule()
    return overrides.get(name, OverrideRule())
