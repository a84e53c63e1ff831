"""Central module containing enums and exceptions for spline path handling."""

from __future__ import annotations

from enum import Enum, auto

###############################################################################
# Enums
###############################################################################


class HandleMode(Enum):
    """Coupling rule between the two handles of a control point."""

    FREE = auto()  # handles are independent
    ALIGNED = auto()  # opposite direction, independent distance
    MIRRORED = auto()  # opposite direction, same distance


class PointPart(Enum):
    """Addressable parts of a control point."""

    ANCHOR = auto()
    HANDLE_IN = auto()
    HANDLE_OUT = auto()


class Parameterization(Enum):
    """How the global parameter is distributed over the segments of a path."""

    ARC_LENGTH = auto()  # buckets proportional to the segment arc lengths
    UNIFORM = auto()  # one equal bucket per segment


###############################################################################
# Exceptions
###############################################################################


class SplinePathError(Exception):
    """Base exception for spline path errors."""


class InvalidPathStateError(SplinePathError):
    """Raised when a path is evaluated with fewer than two control points."""


class ArcLengthSpanError(SplinePathError):
    """Raised when an arc-length query spans more than two adjacent segments."""
