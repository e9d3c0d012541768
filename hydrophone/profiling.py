"""Stage timing for the hydrophone pipeline: wall time + peak RSS.

Usage:
    from hydrophone.profiling import stage

    with stage("Align grid"):
        aligned = align_grid(volume, raw)

Output format:
    [Align grid] 0.04s | peak RSS 212 MB
      [Label -3dB] 0.01s | peak RSS 212 MB
"""

import resource
import time
from contextlib import contextmanager

_depth = 0


def _peak_rss_mb():
    """Peak RSS in MB (ru_maxrss is reported in KB on Linux)."""
    return resource.getrusage(resource.RUSAGE_SELF).ru_maxrss / 1024


def _fmt_mb(mb):
    if mb >= 1024:
        return f"{mb / 1024:.2f} GB"
    return f"{mb:.0f} MB"


@contextmanager
def stage(name, verbose=True):
    """Time a named pipeline stage and print a summary line on exit.

    Nested stages are indented one level per depth.  Nothing is printed
    when ``verbose`` is False, but timing still wraps the block so the
    exception (if any) propagates unchanged.
    """
    global _depth
    depth = _depth
    _depth = depth + 1
    t_start = time.monotonic()
    try:
        yield
    finally:
        _depth = depth
        if verbose:
            elapsed = time.monotonic() - t_start
            print(f"{'  ' * depth}[{name}] {elapsed:.2f}s"
                  f" | peak RSS {_fmt_mb(_peak_rss_mb())}")
