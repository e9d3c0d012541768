"""Exception taxonomy for hydrophone post-processing.

Every error is fatal for the measurement being processed.  The batch
runner catches ``HydrophoneError`` per measurement so sibling transducers
still run.
"""


class HydrophoneError(ValueError):
    """Base class for all processing failures of a single measurement."""


class CalibrationError(HydrophoneError):
    """Calibration table is empty or malformed."""


class NormalizationError(HydrophoneError):
    """Measured drive power cannot be used as a rescaling denominator."""


class GridConsistencyError(HydrophoneError):
    """Sample spacing differs between axes or the grid cannot be aligned."""


class EmptyVolumeError(HydrophoneError):
    """No valid (non-sentinel, positive) samples to segment."""
