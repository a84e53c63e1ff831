"""Numerical settings for arc-length integration and inversion."""

from __future__ import annotations

from dataclasses import dataclass, fields

###############################################################################
# SolverSettings
###############################################################################


@dataclass(frozen=True)
class SolverSettings:
    """Tuning parameters of the arc-length solver.

    Attributes:
        simpson_resolution: Number of Simpson subintervals per integral (rounded up to even).
        bisection_tolerance: Absolute arc-length width (in length units) at which bisection stops.
            Not scaled to the curve size: very large or very small curves may want another value.
        newton_tolerance: Parameter step below which Newton refinement counts as converged.
        newton_max_iterations: Maximum number of Newton steps before falling back to bisection.
        bisection_max_iterations: Hard cap on the number of halvings.
    """

    simpson_resolution: int = 16
    bisection_tolerance: float = 0.1
    newton_tolerance: float = 0.01
    newton_max_iterations: int = 16
    bisection_max_iterations: int = 64

    def __post_init__(self) -> None:
        if self.simpson_resolution < 1:
            raise ValueError(f"simpson_resolution must be >= 1, got {self.simpson_resolution}")
        if self.bisection_tolerance <= 0.0:
            raise ValueError(f"bisection_tolerance must be > 0, got {self.bisection_tolerance}")
        if self.newton_tolerance <= 0.0:
            raise ValueError(f"newton_tolerance must be > 0, got {self.newton_tolerance}")
        if self.newton_max_iterations < 1:
            raise ValueError(f"newton_max_iterations must be >= 1, got {self.newton_max_iterations}")
        if self.bisection_max_iterations < 1:
            raise ValueError(f"bisection_max_iterations must be >= 1, got {self.bisection_max_iterations}")

    def to_dict(self) -> dict:
        """Convert settings to a dictionary."""
        return {
            "simpson_resolution": self.simpson_resolution,
            "bisection_tolerance": self.bisection_tolerance,
            "newton_tolerance": self.newton_tolerance,
            "newton_max_iterations": self.newton_max_iterations,
            "bisection_max_iterations": self.bisection_max_iterations,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "SolverSettings":
        """Create SolverSettings from a dictionary, using defaults for missing keys and ignoring unknown ones."""
        return cls(**{f.name: data[f.name] for f in fields(cls) if f.name in data})


DEFAULT_SOLVER_SETTINGS = SolverSettings()
