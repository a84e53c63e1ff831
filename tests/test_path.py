"""Test module for SplinePath evaluation, caching and cloning in splinepath.path

The tests are run using pytest.
"""

import math

import numpy as np
import pytest

from splinepath.bezier import BezierCurve
from splinepath.common import (
    ArcLengthSpanError,
    HandleMode,
    InvalidPathStateError,
    Parameterization,
    PointPart,
)
from splinepath.path import ControlPoint, SplinePath
from splinepath.settings import SolverSettings
from splinepath.vector import Vec3


def straight_point(x: float, left: float, right: float) -> ControlPoint:
    """Control point on the x axis with handles at the given x positions."""
    return ControlPoint(Vec3(x, 0, 0), Vec3(left, 0, 0), Vec3(right, 0, 0), HandleMode.FREE)


def make_straight_path(*anchors: float) -> SplinePath:
    """Straight path along x with handles at the thirds of every segment (uniform speed per segment)."""
    points = []
    for i, x in enumerate(anchors):
        left = x - (x - anchors[i - 1]) / 3.0 if i > 0 else x
        right = x + (anchors[i + 1] - x) / 3.0 if i < len(anchors) - 1 else x
        points.append(straight_point(x, left, right))
    return SplinePath(points)


def make_curved_path() -> SplinePath:
    """Two-segment S-shaped path in 3D."""
    return SplinePath(
        [
            ControlPoint(Vec3(0, 0, 0), Vec3(-1, 0, 0), Vec3(1, 0, 0), HandleMode.MIRRORED),
            ControlPoint(Vec3(2, 2, 1), Vec3(1, 2, 1), Vec3(3, 2, 1), HandleMode.ALIGNED),
            ControlPoint(Vec3(4, 0, 0), Vec3(3, 0, 0), Vec3(5, 0, 0), HandleMode.FREE),
        ]
    )


def make_reset_path() -> SplinePath:
    path = SplinePath()
    path.reset()
    return path


###############################################################################
# Construction and state
###############################################################################


class TestConstruction:
    """Test path creation, reset and basic properties."""

    def test_reset_endpoints(self):
        """The default path runs from (-1, 0, 0) to (1, 0, 0)."""
        path = make_reset_path()
        assert path.point_count == 2
        assert path.get_point(0.0).approx_equal(Vec3(-1, 0, 0))
        assert path.get_point(1.0).approx_equal(Vec3(1, 0, 0))

    def test_reset_handles_mirrored(self):
        """Both default points are MIRRORED with opposite handles of equal length."""
        path = make_reset_path()
        for index in range(2):
            anchor = path.get_control_point(index)
            handle_in = path.get_control_point(index, PointPart.HANDLE_IN).sub(anchor)
            handle_out = path.get_control_point(index, PointPart.HANDLE_OUT).sub(anchor)
            assert path.get_control_point_mode(index) is HandleMode.MIRRORED
            assert handle_in.add(handle_out).length() == pytest.approx(0.0)

    def test_reset_length(self):
        """The default path is a straight line of length 2."""
        assert make_reset_path().length == pytest.approx(2.0)

    def test_reset_replaces_points(self):
        """reset discards existing points."""
        path = make_curved_path()
        path.reset()
        assert path.point_count == 2
        assert path.get_point(0.5).approx_equal(Vec3(0, 0, 0), atol=1e-9)

    def test_constructor_copies_points(self):
        """Changing the input list or its points afterwards does not affect the path."""
        points = [straight_point(0, 0, 1), straight_point(3, 2, 3)]
        path = SplinePath(points)
        points[0].anchor = Vec3(100, 0, 0)
        points.append(straight_point(9, 8, 9))
        assert path.point_count == 2
        assert path.get_point(0.0).approx_equal(Vec3(0, 0, 0))

    def test_control_point_requires_vectors(self):
        """ControlPoint has no default vectors, the caller picks the vector type."""
        with pytest.raises(TypeError):
            ControlPoint()  # pylint: disable=no-value-for-parameter
        assert ControlPoint(Vec3(), Vec3(), Vec3()).mode is HandleMode.FREE

    def test_empty_path(self):
        """An empty path has no segments and zero length but cannot be evaluated."""
        path = SplinePath()
        assert path.point_count == 0
        assert path.segment_count == 0
        assert path.chord_lengths == ()
        assert path.length == 0.0
        with pytest.raises(InvalidPathStateError, match="at least 2"):
            path.get_point(0.5)

    def test_single_point_path(self):
        """One point is not enough for evaluation."""
        path = SplinePath([straight_point(0, 0, 0)])
        with pytest.raises(InvalidPathStateError):
            path.get_direction(0.0)
        with pytest.raises(InvalidPathStateError):
            path.find_constant_speed_point(0.0)

    def test_chord_length_count(self):
        """An open path has one chord length less than points."""
        path = make_straight_path(0, 3, 9)
        assert len(path.chord_lengths) == 2
        assert path.chord_lengths == pytest.approx((3.0, 6.0))
        assert path.length == pytest.approx(9.0)

    def test_points_returns_copies(self):
        """Mutating the returned points does not change the path."""
        path = make_straight_path(0, 3, 9)
        snapshot = path.points
        snapshot[0].anchor = Vec3(5, 5, 5)
        snapshot[1].handle_out = Vec3(5, 5, 5)
        assert path.get_control_point(0) == Vec3(0, 0, 0)
        assert path.length == pytest.approx(9.0)

    def test_repr(self):
        """repr names the point count."""
        assert "point_count=2" in repr(make_reset_path())


###############################################################################
# Parameter mapping and evaluation
###############################################################################


class TestMapGlobalParameter:
    """Test resolution of global parameters into segments."""

    def test_equal_segments(self):
        """Equal-length segments each take half of the parameter range."""
        path = make_straight_path(0, 3, 6)
        low, high, local_t = path.map_global_parameter(0.25)
        assert (low, high) == (0, 1)
        assert local_t == pytest.approx(0.5)
        low, high, local_t = path.map_global_parameter(0.75)
        assert (low, high) == (1, 2)
        assert local_t == pytest.approx(0.5)

    def test_unequal_segments(self):
        """Buckets are proportional to segment lengths."""
        path = make_straight_path(0, 3, 9)
        low, high, local_t = path.map_global_parameter(0.5)
        assert (low, high) == (1, 2)
        assert local_t == pytest.approx(0.25)

    def test_bounds_and_clamping(self):
        """0 and 1 map to the path ends; values outside are clamped."""
        path = make_straight_path(0, 3, 9)
        assert path.map_global_parameter(0.0) == (0, 1, 0.0)
        assert path.map_global_parameter(-2.0) == (0, 1, 0.0)
        low, high, local_t = path.map_global_parameter(1.0)
        assert (low, high) == (1, 2)
        assert local_t == pytest.approx(1.0)
        assert path.map_global_parameter(7.0) == path.map_global_parameter(1.0)

    def test_arc_length_parameterization_is_constant_speed(self):
        """Equal parameter steps travel equal distances on the straight path."""
        path = make_straight_path(0, 3, 9)
        xs = [path.get_point(t).x for t in np.linspace(0.0, 1.0, 7)]
        assert np.allclose(np.diff(xs), 1.5)

    def test_uniform_parameterization(self):
        """UNIFORM gives every segment the same share of the parameter range."""
        path = make_straight_path(0, 3, 9)
        path.parameterization = Parameterization.UNIFORM
        assert path.get_point(0.5).approx_equal(Vec3(3, 0, 0))
        low, _, local_t = path.map_global_parameter(0.25)
        assert low == 0
        assert local_t == pytest.approx(0.5)
        assert path.length == pytest.approx(9.0)


class TestEvaluation:
    """Test points and directions on the path."""

    def test_endpoints_are_anchors(self):
        """get_point(0) and get_point(1) are the first and last anchor."""
        path = make_curved_path()
        assert path.get_point(0.0).approx_equal(Vec3(0, 0, 0))
        assert path.get_point(1.0).approx_equal(Vec3(4, 0, 0))

    @pytest.mark.parametrize("t0", [0.1, 0.3, 0.5, 0.7, 0.95])
    def test_points_lie_on_segments(self, t0):
        """Every point comes from the closed-form segment evaluation."""
        path = make_curved_path()
        low, _, local_t = path.map_global_parameter(t0)
        expected = BezierCurve.position_at(*path.segment(low), local_t)
        assert path.get_point(t0).approx_equal(expected)

    def test_direction(self):
        """Directions are unit tangents."""
        path = make_reset_path()
        assert path.get_direction(0.5).approx_equal(Vec3(1, 0, 0))
        curved = make_curved_path()
        for t0 in np.linspace(0.0, 1.0, 9):
            assert curved.get_direction(float(t0)).length() == pytest.approx(1.0)

    def test_sample(self):
        """sample returns equally spaced points along the path."""
        path = make_straight_path(0, 3, 9)
        samples = path.sample(5)
        assert samples.shape == (5, 3)
        assert np.allclose(samples[:, 0], [0.0, 2.25, 4.5, 6.75, 9.0], atol=1e-6)
        assert np.allclose(samples[:, 1:], 0.0)

    def test_sample_single_and_invalid(self):
        """A single sample is the start point; fewer is rejected."""
        path = make_reset_path()
        assert np.allclose(path.sample(1), [[-1.0, 0.0, 0.0]], atol=0.05)
        with pytest.raises(ValueError, match="count"):
            path.sample(0)

    def test_polygonize(self):
        """polygonize joins the segment polylines without duplicate points."""
        path = make_curved_path()
        polyline = path.polygonize(10)
        assert polyline.shape == (21, 3)
        assert np.allclose(polyline[0], [0, 0, 0])
        assert np.allclose(polyline[10], [2, 2, 1])
        assert np.allclose(polyline[-1], [4, 0, 0])


###############################################################################
# Approximate arc length
###############################################################################


class TestApproxArcLength:
    """Test arc length between two parameters."""

    def test_same_segment(self):
        """Both ends on one segment use a single integral."""
        path = make_straight_path(0, 3, 9)
        assert path.get_approx_arc_length(0.0, 0.25) == pytest.approx(2.25)

    def test_adjacent_segments(self):
        """Ends on neighbouring segments sum tail and head integrals."""
        path = make_straight_path(0, 3, 9)
        assert path.get_approx_arc_length(0.25, 0.75) == pytest.approx(4.5)
        assert path.get_approx_arc_length(0.0, 1.0) == pytest.approx(9.0)

    def test_order_of_bounds(self):
        """The bounds may be swapped."""
        path = make_curved_path()
        assert path.get_approx_arc_length(0.8, 0.2) == pytest.approx(path.get_approx_arc_length(0.2, 0.8))

    def test_start_on_segment_boundary(self):
        """A start exactly at a segment end counts as the start of the next segment."""
        path = make_straight_path(0, 3, 6, 9)
        path.parameterization = Parameterization.UNIFORM
        assert path.map_global_parameter(1.0 / 3.0)[::2] == (0, 1.0)
        assert path.get_approx_arc_length(1.0 / 3.0, 0.9) == pytest.approx(5.1)

    def test_non_adjacent_segments_raise(self):
        """Spanning a full intermediate segment is rejected."""
        path = make_straight_path(0, 3, 6, 9)
        with pytest.raises(ArcLengthSpanError, match="spans more than two adjacent segments"):
            path.get_approx_arc_length(0.1, 0.9)

    def test_monotonic(self):
        """The length from the start grows with the end parameter."""
        path = make_curved_path()
        values = [path.get_approx_arc_length(0.0, float(t)) for t in np.linspace(0.0, 1.0, 21)]
        assert all(b >= a - 1e-12 for a, b in zip(values, values[1:]))
        assert values[-1] == pytest.approx(path.length)


###############################################################################
# Cache invalidation
###############################################################################


class TestCacheInvalidation:
    """Test that every mutation refreshes the chord lengths."""

    def test_move_anchor(self):
        """Moving an anchor changes the length."""
        path = make_straight_path(0, 3, 6)
        assert path.length == pytest.approx(6.0)
        path.set_control_point(2, Vec3(12, 0, 0))
        assert path.length == pytest.approx(12.0)
        assert path.get_point(1.0).approx_equal(Vec3(12, 0, 0))

    def test_move_handle(self):
        """Moving a handle off the line makes the path longer."""
        path = make_straight_path(0, 3)
        before = path.length
        path.set_control_point(0, Vec3(1, 2, 0), PointPart.HANDLE_OUT)
        assert path.length > before

    def test_add_and_delete(self):
        """Adding and deleting points update the chord table size."""
        path = make_straight_path(0, 3, 9)
        path.add_point(2)
        assert len(path.chord_lengths) == 3
        path.delete_point(0)
        assert len(path.chord_lengths) == 2

    def test_loop_toggle(self):
        """Closing the path adds the closing segment length."""
        path = make_straight_path(0, 3)
        path.loop = True
        assert len(path.chord_lengths) == 2
        assert path.length > 3.0

    def test_move_free_handle(self):
        """Moving a free handle updates the length."""
        path = make_curved_path()
        before = path.length
        path.set_control_point(2, Vec3(3, 3, 0), PointPart.HANDLE_IN)
        assert path.length != pytest.approx(before)


###############################################################################
# Looped paths
###############################################################################


class TestLoop:
    """Test closed paths."""

    def test_loop_closes(self):
        """A loop ends where it starts and has one segment per point."""
        path = make_curved_path()
        path.loop = True
        assert path.segment_count == 3
        assert path.map_global_parameter(1.0)[:2] == (2, 0)
        assert path.get_point(1.0).approx_equal(Vec3(0, 0, 0))

    def test_add_point_on_closing_segment(self):
        """Adding after the last point of a loop splits the closing segment."""
        path = make_curved_path()
        path.loop = True
        closing = path.segment(2)
        path.add_point(2)
        assert path.point_count == 4
        expected = BezierCurve.position_at(*closing, 0.5)
        assert path.get_control_point(3).approx_equal(expected)


###############################################################################
# Cloning
###############################################################################


class TestClone:
    """Test deep copies."""

    def test_clone_samples_identical(self):
        """Original and clone agree everywhere."""
        path = make_curved_path()
        copy = path.clone()
        for t0 in np.linspace(0.0, 1.0, 11):
            assert copy.get_point(float(t0)) == path.get_point(float(t0))
        assert copy.chord_lengths == path.chord_lengths

    def test_clone_is_independent(self):
        """Mutating the clone never changes the original."""
        path = make_curved_path()
        samples = [path.get_point(float(t0)) for t0 in np.linspace(0.0, 1.0, 11)]
        length = path.length

        copy = path.clone()
        copy.set_control_point(1, Vec3(10, 10, 10))
        copy.set_control_point(0, Vec3(0, 5, 0), PointPart.HANDLE_OUT)
        copy.set_control_point_mode(2, HandleMode.MIRRORED)
        copy.add_point(0)
        copy.delete_point(3)
        copy.loop = True

        assert path.length == length
        assert path.point_count == 3
        assert not path.loop
        assert [path.get_point(float(t0)) for t0 in np.linspace(0.0, 1.0, 11)] == samples

    def test_clone_keeps_configuration(self):
        """Settings, loop flag and parameterization are carried over."""
        settings = SolverSettings(simpson_resolution=8)
        path = SplinePath(make_curved_path().points, loop=True, settings=settings)
        path.parameterization = Parameterization.UNIFORM
        copy = path.clone()
        assert copy.settings is settings
        assert copy.loop
        assert copy.parameterization is Parameterization.UNIFORM


###############################################################################
# Generic vector type
###############################################################################


class TupleVec:
    """Minimal tuple-based vector satisfying the Vector3 protocol."""

    def __init__(self, x=0.0, y=0.0, z=0.0):
        self.c = (float(x), float(y), float(z))

    def add(self, other):
        return TupleVec(*(a + b for a, b in zip(self.c, other.c)))

    def sub(self, other):
        return TupleVec(*(a - b for a, b in zip(self.c, other.c)))

    def scale(self, factor):
        return TupleVec(*(a * factor for a in self.c))

    def length(self):
        return math.sqrt(sum(a * a for a in self.c))

    def normalize(self):
        norm = self.length()
        return self.scale(1.0 / norm) if norm else TupleVec()

    def clone(self):
        return TupleVec(*self.c)

    def __iter__(self):
        return iter(self.c)


class TestGenericVector:
    """Test that the path works with any Vector3 implementation."""

    def test_reset_with_custom_vectors(self):
        """reset builds points with the injected vector factory."""
        path = SplinePath(vector_factory=TupleVec)
        path.reset()
        point = path.get_point(0.5)
        assert isinstance(point, TupleVec)
        assert point.c == pytest.approx((0.0, 0.0, 0.0))
        assert path.length == pytest.approx(2.0)

    def test_constant_speed_with_custom_vectors(self):
        """The solver only relies on the protocol operations."""
        path = SplinePath(vector_factory=TupleVec)
        path.reset()
        point = path.find_constant_speed_point(0.5)
        assert point.c[0] == pytest.approx(-0.5, abs=0.05)
        assert path.sample(3).shape == (3, 3)

    def test_append_with_custom_vectors(self):
        """Extending a path uses protocol operations only."""
        path = SplinePath(vector_factory=TupleVec)
        path.reset()
        path.add_point(1)
        assert path.get_control_point(2).c == pytest.approx((3.0, 0.0, 0.0))
