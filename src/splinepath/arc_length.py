"""Arc-length integration and inversion for spline paths.

Segment lengths are estimated with the composite Simpson rule applied to the
segment speed |B'(t)|. Inverting "distance traveled" into a global path
parameter is done in two phases:

1. Bisection on [0, 1] until the bracketed arc length is narrower than the
   bisection tolerance (absolute, in length units).
2. Newton refinement starting at the bisection midpoint. If Newton does not
   converge within its iteration cap, or meets a vanishing speed, the
   bisection midpoint is used instead.

Both loops are bounded, so every query terminates.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Optional, Sequence

from splinepath.bezier import BezierCurve
from splinepath.settings import DEFAULT_SOLVER_SETTINGS, SolverSettings
from splinepath.vector import Vector3

if TYPE_CHECKING:
    from splinepath.path import SplinePath

logger = logging.getLogger(__name__)

# Speeds at or below this value are treated as zero by the Newton step
_MIN_NEWTON_SPEED: float = 1.0e-12


###############################################################################
# ArcLengthSolver
###############################################################################


class ArcLengthSolver:
    """Arc-length computations for one SplinePath.

    The solver reads the path on every call and keeps no state of its own
    besides the settings, so it never observes a stale path.
    """

    def __init__(self, path: SplinePath, settings: Optional[SolverSettings] = None):
        self._path = path
        self._settings = settings if settings is not None else DEFAULT_SOLVER_SETTINGS

    @property
    def settings(self) -> SolverSettings:
        """SolverSettings: The numerical settings in use."""
        return self._settings

    @staticmethod
    def integrand(segment: Sequence[Vector3], t: float) -> float:
        """Speed of the segment (p0, p1, p2, p3) at local parameter t."""
        p0, p1, p2, p3 = segment
        return BezierCurve.tangent_at(p0, p1, p2, p3, t).length()

    @classmethod
    def simpson_integral(
        cls,
        segment: Sequence[Vector3],
        t_start: float,
        t_end: float,
        resolution: int = 16,
    ) -> float:
        """
        Integrate the segment speed over [t_start, t_end] with the composite Simpson rule.

        length = (h/3) * (f(t_start) + f(t_end) + 4*sum(f_odd) + 2*sum(f_even_interior))
        with h = (t_end - t_start) / resolution.

        Args:
            segment: Control points (p0, p1, p2, p3) of the segment
            t_start: Lower local parameter
            t_end: Upper local parameter
            resolution: Number of subintervals, an odd value is rounded up to the next even one

        Returns:
            The approximated arc length, negative if t_end < t_start
        """
        if t_start == t_end:
            return 0.0
        if resolution < 1:
            raise ValueError(f"resolution must be >= 1, got {resolution}")
        if resolution % 2:
            resolution += 1

        h = (t_end - t_start) / resolution
        total = cls.integrand(segment, t_start) + cls.integrand(segment, t_end)
        for i in range(1, resolution):
            weight = 4.0 if i % 2 else 2.0
            total += weight * cls.integrand(segment, t_start + i * h)
        return total * h / 3.0

    def segment_length(self, segment: Sequence[Vector3]) -> float:
        """Arc length of a complete segment using the configured resolution."""
        return self.simpson_integral(segment, 0.0, 1.0, self._settings.simpson_resolution)

    def arc_length_to(self, t0: float) -> float:
        """
        Arc length from the start of the path to the global parameter t0.

        Sums the cached lengths of all segments before the one t0 resolves to and
        adds one Simpson integral over the covered part of that segment.
        """
        path = self._path
        low, _, local_t = path.map_global_parameter(t0)
        preceding = sum(path.chord_lengths[:low])
        return preceding + self.simpson_integral(
            path.segment(low), 0.0, local_t, self._settings.simpson_resolution
        )

    def global_speed(self, t0: float) -> float:
        """
        Derivative of arc_length_to() with respect to the global parameter.

        The segment speed is rescaled by the share of the global parameter range
        the segment occupies.
        """
        path = self._path
        low, _, local_t = path.map_global_parameter(t0)
        weights = path.mapping_weights()
        if weights[low] <= 0.0:
            return 0.0
        return self.integrand(path.segment(low), local_t) * sum(weights) / weights[low]

    def find_constant_speed_parameter(self, distance: float, total_length: Optional[float] = None) -> float:
        """
        Find the global parameter whose arc length from the start equals distance.

        Args:
            distance: Target arc length, clamped to [0, total_length]
            total_length: Length of the path, defaults to the path length

        Returns:
            The global parameter in [0, 1]
        """
        settings = self._settings
        if total_length is None:
            total_length = self._path.length
        if total_length <= 0.0:
            return 0.0
        distance = min(max(distance, 0.0), total_length)

        # Phase 1: bisection
        t_min, t_max = 0.0, 1.0
        arc_min, arc_max = 0.0, self.arc_length_to(1.0)
        iterations = 0
        while arc_max - arc_min > settings.bisection_tolerance and iterations < settings.bisection_max_iterations:
            t_mid = 0.5 * (t_min + t_max)
            arc_mid = self.arc_length_to(t_mid)
            if arc_mid < distance:
                t_min, arc_min = t_mid, arc_mid
            else:
                t_max, arc_max = t_mid, arc_mid
            iterations += 1
        t_bisect = 0.5 * (t_min + t_max)

        # Phase 2: Newton refinement
        t = t_bisect
        for _ in range(settings.newton_max_iterations):
            speed = self.global_speed(t)
            if speed <= _MIN_NEWTON_SPEED:
                break
            t_next = min(max(t - (self.arc_length_to(t) - distance) / speed, 0.0), 1.0)
            step = abs(t_next - t)
            t = t_next
            if step <= settings.newton_tolerance:
                return t

        logger.debug(
            "Newton refinement did not converge for distance %s, using bisection midpoint %s", distance, t_bisect
        )
        return t_bisect

    def find_constant_speed_point(self, distance: float, total_length: Optional[float] = None) -> Vector3:
        """Return the point of the path at arc length distance from its start."""
        return self._path.get_point(self.find_constant_speed_parameter(distance, total_length))
