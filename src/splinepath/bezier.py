"""Cubic Bezier segment evaluation utilities."""

from __future__ import annotations

from typing import Sequence, Tuple, TypeVar, Union

import numpy as np
from numpy.typing import NDArray

from splinepath.vector import Vector3

V = TypeVar("V", bound=Vector3)


def _clamp01(t: float) -> float:
    return min(max(t, 0.0), 1.0)


class BezierCurve:
    """Class to handle cubic Bezier segment operations.

    A segment is given by its start anchor p0, the two handles p1 and p2 and
    the end anchor p3. Scalar evaluation works on any Vector3 implementation,
    polygonization works on NumPy arrays.
    """

    @staticmethod
    def position_at(p0: V, p1: V, p2: V, p3: V, t: float) -> V:
        """
        Evaluate the segment position at local parameter t.

        B(t) = (1-t)^3*P0 + 3*(1-t)^2*t*P1 + 3*(1-t)*t^2*P2 + t^3*P3

        Args:
            p0, p1, p2, p3: Control points of the segment
            t: Local parameter, clamped to [0, 1]

        Returns:
            The point on the segment
        """
        t = _clamp01(t)
        omt = 1.0 - t
        return (
            p0.scale(omt * omt * omt)
            .add(p1.scale(3.0 * omt * omt * t))
            .add(p2.scale(3.0 * omt * t * t))
            .add(p3.scale(t * t * t))
        )

    @staticmethod
    def tangent_at(p0: V, p1: V, p2: V, p3: V, t: float) -> V:
        """
        Evaluate the first derivative of the segment at local parameter t.

        B'(t) = 3*(1-t)^2*(P1-P0) + 6*(1-t)*t*(P2-P1) + 3*t^2*(P3-P2)

        The result is not normalized, its length is the local speed of the segment.
        """
        t = _clamp01(t)
        omt = 1.0 - t
        return (
            p1.sub(p0)
            .scale(3.0 * omt * omt)
            .add(p2.sub(p1).scale(6.0 * omt * t))
            .add(p3.sub(p2).scale(3.0 * t * t))
        )

    @staticmethod
    def split_cubic_segment(p0: V, p1: V, p2: V, p3: V, t: float = 0.5) -> Tuple[Tuple[V, V, V, V], Tuple[V, V, V, V]]:
        """
        Split a segment at local parameter t using de Casteljau's algorithm.

        Returns:
            Two tuples (p0, p1, p2, p3) describing the left and right part.
            The left part ends and the right part starts at B(t).
        """
        t = _clamp01(t)
        p01 = p0.add(p1.sub(p0).scale(t))
        p12 = p1.add(p2.sub(p1).scale(t))
        p23 = p2.add(p3.sub(p2).scale(t))
        p012 = p01.add(p12.sub(p01).scale(t))
        p123 = p12.add(p23.sub(p12).scale(t))
        split = p012.add(p123.sub(p012).scale(t))
        return (p0.clone(), p01, p012, split), (split.clone(), p123, p23, p3.clone())

    @classmethod
    def polygonize_cubic_segment(
        cls, points: Union[Sequence[Sequence[float]], NDArray[np.float64]], steps: int
    ) -> NDArray[np.float64]:
        """
        Polygonize a cubic Bezier segment using vectorized NumPy evaluation.

        Args:
            points: 4 control points (start, handle, handle, end), each with 3 coordinates
            steps: Number of line segments to divide the curve into

        Returns:
            NDArray[np.float64] of shape (steps+1, 3) containing the polygonized points

        Raises:
            ValueError: If points is not of shape (4, 3) or steps < 1
        """
        points_array = np.asarray(points, dtype=np.float64)
        if points_array.shape != (4, 3):
            raise ValueError(f"Cubic segment requires control points of shape (4, 3), got {points_array.shape}")
        if steps < 1:
            raise ValueError(f"steps must be >= 1, got {steps}")

        t = np.linspace(0, 1, steps + 1, dtype=np.float64)

        # Cubic Bezier basis functions
        omt = 1 - t
        omt2 = omt**2
        omt3 = omt2 * omt
        t2 = t**2
        t3 = t2 * t

        basis = np.column_stack([omt3, 3 * omt2 * t, 3 * omt * t2, t3])
        return basis @ points_array
