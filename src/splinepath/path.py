"""Cubic Bezier spline paths with arc-length parameterization."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence, Tuple

import numpy as np
from numpy.typing import NDArray

from splinepath.arc_length import ArcLengthSolver
from splinepath.bezier import BezierCurve
from splinepath.common import (
    ArcLengthSpanError,
    HandleMode,
    InvalidPathStateError,
    Parameterization,
    PointPart,
)
from splinepath.settings import DEFAULT_SOLVER_SETTINGS, SolverSettings
from splinepath.vector import Vec3, Vector3

logger = logging.getLogger(__name__)

VectorFactory = Callable[[float, float, float], Vector3]


###############################################################################
# ControlPoint
###############################################################################


@dataclass
class ControlPoint:
    """
    One anchor of a spline path together with its two handles.

    Handles are stored as absolute positions. handle_in shapes the segment
    arriving at the anchor, handle_out the segment leaving it.

    Attributes:
        anchor: The on-curve point
        handle_in: Control point of the incoming segment
        handle_out: Control point of the outgoing segment
        mode: Coupling rule between the two handles

    The three vectors are required; use the same Vector3 type as the path
    that receives the point.
    """

    anchor: Vector3
    handle_in: Vector3
    handle_out: Vector3
    mode: HandleMode = HandleMode.FREE

    def get(self, part: PointPart) -> Vector3:
        """Return the stored vector of the given part (not a copy)."""
        if part is PointPart.HANDLE_IN:
            return self.handle_in
        if part is PointPart.HANDLE_OUT:
            return self.handle_out
        return self.anchor

    def clone(self) -> ControlPoint:
        """Deep copy with new vectors."""
        return ControlPoint(self.anchor.clone(), self.handle_in.clone(), self.handle_out.clone(), self.mode)


###############################################################################
# SplinePath
###############################################################################


class SplinePath:
    """
    Piecewise cubic Bezier path traversed at constant nominal speed.

    The global parameter t0 in [0, 1] is distributed over the segments
    proportionally to their arc lengths, so equal steps of t0 travel
    (approximately) equal distances. Segment lengths are cached and the cache
    is invalidated by every structural mutation; all length-dependent reads
    recompute it first.

    The path is not thread-safe. Use clone() to hand a snapshot to readers.
    """

    def __init__(
        self,
        points: Optional[Sequence[ControlPoint]] = None,
        loop: bool = False,
        settings: Optional[SolverSettings] = None,
        parameterization: Parameterization = Parameterization.ARC_LENGTH,
        vector_factory: VectorFactory = Vec3,
    ):
        """
        Initialize a SplinePath from control points.

        Args:
            points: Control points in path order, copied on construction.
            loop: If True, a closing segment connects the last point to the first.
            settings: Numerical settings for the arc-length solver.
            parameterization: Distribution of the global parameter over the segments.
            vector_factory: Callable building a vector from (x, y, z), used by reset() and add_point().
        """
        self._points: List[ControlPoint] = [] if points is None else [p.clone() for p in points]
        self._loop = loop
        self._settings = settings if settings is not None else DEFAULT_SOLVER_SETTINGS
        self._parameterization = parameterization
        self._vector_factory = vector_factory
        self._chord_lengths: Optional[List[float]] = None  # caching variable, None means dirty
        self._solver = ArcLengthSolver(self, self._settings)

    ###########################################################################
    # Properties
    ###########################################################################

    @property
    def point_count(self) -> int:
        """int: Number of control points."""
        return len(self._points)

    @property
    def segment_count(self) -> int:
        """int: Number of cubic segments, including the closing segment of a loop."""
        count = len(self._points)
        if count < 2:
            return 0
        return count if self._loop else count - 1

    @property
    def loop(self) -> bool:
        """bool: Whether the path is closed by a segment from the last to the first point."""
        return self._loop

    @loop.setter
    def loop(self, value: bool) -> None:
        self._loop = value
        self._invalidate()

    @property
    def parameterization(self) -> Parameterization:
        """Parameterization: How the global parameter maps onto the segments."""
        return self._parameterization

    @parameterization.setter
    def parameterization(self, value: Parameterization) -> None:
        self._parameterization = value

    @property
    def settings(self) -> SolverSettings:
        """SolverSettings: Numerical settings of the arc-length solver."""
        return self._settings

    @property
    def solver(self) -> ArcLengthSolver:
        """ArcLengthSolver: The solver bound to this path."""
        return self._solver

    @property
    def points(self) -> Tuple[ControlPoint, ...]:
        """Tuple of copies of the control points. Edit the path through its methods."""
        return tuple(p.clone() for p in self._points)

    @property
    def chord_lengths(self) -> Tuple[float, ...]:
        """Arc-length estimate of every segment, recomputed if the path changed."""
        return tuple(self._ensure_chord_lengths())

    @property
    def length(self) -> float:
        """float: Total arc length of the path, 0.0 with fewer than two points."""
        return float(sum(self._ensure_chord_lengths()))

    ###########################################################################
    # Cache handling
    ###########################################################################

    def _invalidate(self) -> None:
        self._chord_lengths = None

    def _ensure_chord_lengths(self) -> List[float]:
        if self._chord_lengths is None:
            self._chord_lengths = [self._solver.segment_length(self.segment(i)) for i in range(self.segment_count)]
            logger.debug("Recomputed %d chord lengths", len(self._chord_lengths))
        return self._chord_lengths

    def _is_valid_index(self, index: int) -> bool:
        return 0 <= index < len(self._points)

    def _require_evaluable(self) -> None:
        if len(self._points) < 2:
            raise InvalidPathStateError(f"Path needs at least 2 control points, has {len(self._points)}")

    ###########################################################################
    # Evaluation
    ###########################################################################

    def segment(self, index: int) -> Tuple[Vector3, Vector3, Vector3, Vector3]:
        """
        Control points (p0, p1, p2, p3) of segment index.

        The returned vectors are the internal ones; callers must not mutate them.
        """
        start = self._points[index]
        end = self._points[(index + 1) % len(self._points)]
        return start.anchor, start.handle_out, end.handle_in, end.anchor

    def mapping_weights(self) -> List[float]:
        """Width of every segment's bucket in the global parameter range (unnormalized)."""
        if self._parameterization is Parameterization.UNIFORM:
            return [1.0] * self.segment_count
        return list(self._ensure_chord_lengths())

    def map_global_parameter(self, t0: float) -> Tuple[int, int, float]:
        """
        Resolve a global parameter to a segment and a local parameter.

        Walks the prefix sums of the segment weights until the running total first
        reaches t0 * total; the local parameter is the fractional position inside
        that segment's bucket.

        Args:
            t0: Global parameter, clamped to [0, 1]

        Returns:
            Tuple (segment start index, segment end index, local parameter in [0, 1])

        Raises:
            InvalidPathStateError: If the path has fewer than two points.
        """
        self._require_evaluable()
        weights = self.mapping_weights()
        t0 = min(max(t0, 0.0), 1.0)
        target = t0 * sum(weights)
        last = len(weights) - 1
        running = 0.0
        for low, weight in enumerate(weights):
            if running + weight >= target or low == last:
                local_t = (target - running) / weight if weight > 0.0 else 0.0
                return low, (low + 1) % len(self._points), min(max(local_t, 0.0), 1.0)
            running += weight
        raise InvalidPathStateError("Path has no segments")  # unreachable with >= 2 points

    def get_point(self, t0: float) -> Vector3:
        """Point of the path at global parameter t0."""
        low, _, local_t = self.map_global_parameter(t0)
        return BezierCurve.position_at(*self.segment(low), local_t)

    def get_direction(self, t0: float) -> Vector3:
        """Normalized tangent of the path at global parameter t0."""
        low, _, local_t = self.map_global_parameter(t0)
        return BezierCurve.tangent_at(*self.segment(low), local_t).normalize()

    def get_approx_arc_length(self, t_start: float, t_end: float) -> float:
        """
        Arc length between two global parameters lying on the same or adjacent segments.

        The bounds may be given in any order. A start lying exactly at the end of
        a segment counts as the start of the following one.

        Raises:
            ArcLengthSpanError: If the bounds are separated by at least one full segment.
                Split such queries at segment boundaries.
        """
        if t_start > t_end:
            t_start, t_end = t_end, t_start
        low_start, high_start, local_start = self.map_global_parameter(t_start)
        low_end, _, local_end = self.map_global_parameter(t_end)
        if local_start >= 1.0 and low_start != low_end:
            low_start, high_start, local_start = high_start, (high_start + 1) % len(self._points), 0.0
        resolution = self._settings.simpson_resolution

        if low_start == low_end:
            return ArcLengthSolver.simpson_integral(self.segment(low_start), local_start, local_end, resolution)
        if high_start == low_end:
            tail = ArcLengthSolver.simpson_integral(self.segment(low_start), local_start, 1.0, resolution)
            head = ArcLengthSolver.simpson_integral(self.segment(low_end), 0.0, local_end, resolution)
            return tail + head
        raise ArcLengthSpanError(
            f"Arc length between t={t_start} (segment {low_start}) and t={t_end} (segment {low_end}) "
            f"spans more than two adjacent segments"
        )

    def find_constant_speed_parameter(self, distance: float, total_length: Optional[float] = None) -> float:
        """Global parameter at arc length distance from the start of the path."""
        self._require_evaluable()
        return self._solver.find_constant_speed_parameter(distance, total_length)

    def find_constant_speed_point(self, distance: float, total_length: Optional[float] = None) -> Vector3:
        """Point at arc length distance from the start of the path."""
        self._require_evaluable()
        return self._solver.find_constant_speed_point(distance, total_length)

    def sample(self, count: int) -> NDArray[np.float64]:
        """
        Sample points at equally spaced arc-length distances.

        Args:
            count: Number of points, including both ends of the path

        Returns:
            NDArray[np.float64] of shape (count, 3)
        """
        if count < 1:
            raise ValueError(f"count must be >= 1, got {count}")
        self._require_evaluable()
        total_length = self.length
        distances = np.linspace(0.0, total_length, count) if count > 1 else np.zeros(1)
        return np.array(
            [list(self._solver.find_constant_speed_point(float(d), total_length)) for d in distances],
            dtype=np.float64,
        )

    def polygonize(self, steps: int) -> NDArray[np.float64]:
        """
        Polygonize every segment with the given number of steps (native segment parameter).

        Returns:
            NDArray[np.float64] of shape (segment_count * steps + 1, 3)
        """
        self._require_evaluable()
        parts = []
        for index in range(self.segment_count):
            controls = np.array([list(v) for v in self.segment(index)], dtype=np.float64)
            polyline = BezierCurve.polygonize_cubic_segment(controls, steps)
            parts.append(polyline if index == 0 else polyline[1:])
        return np.concatenate(parts, axis=0)

    ###########################################################################
    # Control point access and editing
    ###########################################################################

    def _checked_point(self, index: int) -> ControlPoint:
        if not self._is_valid_index(index):
            raise IndexError(f"Control point index {index} out of range for {len(self._points)} points")
        return self._points[index]

    def get_control_point_mode(self, index: int) -> HandleMode:
        """Handle mode of point index.

        Raises:
            IndexError: If index is negative or out of range.
        """
        return self._checked_point(index).mode

    def set_control_point_mode(self, index: int, mode: HandleMode) -> None:
        """Change the handle mode of point index and enforce it (relative to handle_out)."""
        if not self._is_valid_index(index):
            logger.debug("Ignoring set_control_point_mode for invalid index %s", index)
            return
        self._points[index].mode = mode
        self.align_point_controls(index, PointPart.HANDLE_OUT)
        self._invalidate()

    def get_control_point(self, index: int, part: PointPart = PointPart.ANCHOR) -> Vector3:
        """Copy of the anchor or a handle of point index.

        Raises:
            IndexError: If index is negative or out of range.
        """
        return self._checked_point(index).get(part).clone()

    def set_control_point(self, index: int, value: Vector3, part: PointPart = PointPart.ANCHOR) -> None:
        """
        Move the anchor or a handle of point index.

        Moving the anchor drags both handles along. Moving a handle re-aligns the
        opposite handle according to the point's mode.
        """
        if not self._is_valid_index(index):
            logger.debug("Ignoring set_control_point for invalid index %s", index)
            return
        point = self._points[index]
        if part is PointPart.ANCHOR:
            delta = value.sub(point.anchor)
            point.handle_in = point.handle_in.add(delta)
            point.handle_out = point.handle_out.add(delta)
            point.anchor = value.clone()
        elif part is PointPart.HANDLE_IN:
            point.handle_in = value.clone()
            self.align_point_controls(index, part)
        else:
            point.handle_out = value.clone()
            self.align_point_controls(index, part)
        self._invalidate()

    def align_point_controls(self, index: int, moved_part: PointPart = PointPart.HANDLE_OUT) -> None:
        """
        Re-position the handle opposite to moved_part according to the point's mode.

        FREE leaves both handles alone. ALIGNED puts the opposite handle on the
        line through the moved handle and the anchor, keeping its distance to the
        anchor. MIRRORED makes it the point reflection of the moved handle.
        An anchor as moved_part is treated like handle_out. Invalid indices are ignored.
        """
        if not self._is_valid_index(index):
            logger.debug("Ignoring align_point_controls for invalid index %s", index)
            return
        point = self._points[index]
        if point.mode is HandleMode.FREE:
            return

        if moved_part is PointPart.HANDLE_IN:
            moved, fixed = point.handle_in, point.handle_out
        else:
            moved, fixed = point.handle_out, point.handle_in

        enforced = point.anchor.sub(moved)
        if point.mode is HandleMode.ALIGNED:
            direction = enforced.normalize()
            if direction.length() == 0.0:
                # moved handle sits on the anchor, no direction to align to
                return
            enforced = direction.scale(fixed.sub(point.anchor).length())
        fixed = point.anchor.add(enforced)

        if moved_part is PointPart.HANDLE_IN:
            point.handle_out = fixed
        else:
            point.handle_in = fixed
        self._invalidate()

    def add_point(self, index: int) -> None:
        """
        Insert a new control point after point index.

        Inside the path (or on a loop) the following segment is split at its
        parametric midpoint; the new point is ALIGNED. The whole path keeps its
        shape: neighbours are not re-aligned, and a MIRRORED neighbour becomes
        ALIGNED because its split handle is now shorter than its other handle.
        After the last point of an open path the path is extended along its end
        direction by the length of the last segment; the new point is MIRRORED.
        Invalid indices are ignored.
        """
        if not self._is_valid_index(index):
            logger.debug("Ignoring add_point for invalid index %s", index)
            return
        count = len(self._points)

        if count >= 2 and (index < count - 1 or self._loop):
            following = (index + 1) % count
            left, right = BezierCurve.split_cubic_segment(*self.segment(index), 0.5)
            self._points[index].handle_out = left[1]
            self._points[following].handle_in = right[2]
            new_point = ControlPoint(anchor=left[3], handle_in=left[2], handle_out=right[1], mode=HandleMode.ALIGNED)
            self._points.insert(index + 1, new_point)
            # split handles stay on their old tangents but not at their old distance
            for neighbour in (self._points[index], self._points[index + 2 if following else 0]):
                if neighbour.mode is HandleMode.MIRRORED:
                    neighbour.mode = HandleMode.ALIGNED
        else:
            last = self._points[index]
            if count >= 2:
                direction = self.get_direction(1.0)
                distance = self._ensure_chord_lengths()[-1] or 1.0
            else:
                direction = self._vector_factory(1.0, 0.0, 0.0)
                distance = 1.0
            offset = direction.scale(distance / 3.0)
            anchor = last.anchor.add(direction.scale(distance))
            new_point = ControlPoint(
                anchor=anchor, handle_in=anchor.sub(offset), handle_out=anchor.add(offset), mode=HandleMode.MIRRORED
            )
            self._points.append(new_point)
            self.align_point_controls(index, PointPart.HANDLE_IN)
        self._invalidate()

    def delete_point(self, index: int = -1) -> None:
        """Remove point index. Ignored for invalid indices and on paths with 2 or fewer points."""
        if len(self._points) <= 2 or not self._is_valid_index(index):
            logger.debug("Ignoring delete_point(%s) on path with %d points", index, len(self._points))
            return
        del self._points[index]
        self._invalidate()

    def reset(self) -> None:
        """Replace all points by a straight two-point path from (-1, 0, 0) to (1, 0, 0)."""
        make = self._vector_factory
        self._points = [
            ControlPoint(make(-1.0, 0.0, 0.0), make(-1.5, 0.0, 0.0), make(-0.5, 0.0, 0.0), HandleMode.MIRRORED),
            ControlPoint(make(1.0, 0.0, 0.0), make(0.5, 0.0, 0.0), make(1.5, 0.0, 0.0), HandleMode.MIRRORED),
        ]
        self.align_point_controls(0, PointPart.HANDLE_OUT)
        self.align_point_controls(1, PointPart.HANDLE_IN)
        self._invalidate()
        self._ensure_chord_lengths()

    def clone(self) -> SplinePath:
        """Independent deep copy with a freshly computed length cache."""
        copy = SplinePath(
            points=self._points,
            loop=self._loop,
            settings=self._settings,
            parameterization=self._parameterization,
            vector_factory=self._vector_factory,
        )
        copy._ensure_chord_lengths()  # pylint: disable=protected-access
        return copy

    def __repr__(self) -> str:
        return f"SplinePath(point_count={self.point_count}, loop={self._loop}, length={self.length})"


###############################################################################
# Functions
###############################################################################


def main() -> None:
    """Print equally spaced samples of a small S-shaped path."""
    path = SplinePath(
        [
            ControlPoint(Vec3(0, 0, 0), Vec3(-1, 0, 0), Vec3(1, 0, 0), HandleMode.MIRRORED),
            ControlPoint(Vec3(2, 2, 0), Vec3(1, 2, 0), Vec3(3, 2, 0), HandleMode.ALIGNED),
            ControlPoint(Vec3(4, 0, 0), Vec3(3, 0, 0), Vec3(5, 0, 0), HandleMode.FREE),
        ]
    )
    print(path)
    for point in path.sample(9):
        print(f"  ({point[0]:8.4f}, {point[1]:8.4f}, {point[2]:8.4f})")


if __name__ == "__main__":
    main()
