"""
Error taxonomy for the wind-perpendicular terrain analysis.

Two families:
- ValidationError: bad user input, raised before any raster is requested
- ComputationError: a pipeline stage could not produce a result

Callers that drive an interactive session catch ComputationError to keep the
previously displayed result, and surface ValidationError messages directly.
"""


class WindTerrainError(Exception):
    """Base class for all analysis errors."""

    pass


class ValidationError(WindTerrainError):
    """Raised when user-supplied parameters are rejected at the boundary."""

    pass


class InvalidRangeError(ValidationError):
    """Raised when a date range has end <= start."""

    pass


class InvalidParameterError(ValidationError):
    """Raised when a mask rate, threshold or polygon is out of bounds."""

    pass


class RegionRequiredError(ValidationError):
    """Raised when an operation that needs a Region is called without one."""

    pass


class ComputationError(WindTerrainError):
    """Raised when a pipeline stage fails on valid input."""

    pass


class EmptyRangeError(ComputationError):
    """Raised when no wind time step falls inside the requested range."""

    pass


class InsufficientDataError(ComputationError):
    """Raised when the elevation raster has no complete 3x3 window of valid cells."""

    pass


class NoDataError(ComputationError):
    """Raised when a region reduction finds no valid pixels."""

    pass


class TooManyPixelsError(ComputationError):
    """Raised when a reduction exceeds max_pixels and best_effort is off."""

    pass


class SupersededError(WindTerrainError):
    """Raised inside a run that was replaced by a newer trigger."""

    pass
