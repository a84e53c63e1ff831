"""3D vector capability used by the spline path, plus a NumPy-backed implementation."""

from __future__ import annotations

import math
from typing import Iterator, Protocol, Sequence, TypeVar, Union

import numpy as np
from numpy.typing import NDArray

###############################################################################
# Vector3 protocol
###############################################################################


V = TypeVar("V", bound="Vector3")


class Vector3(Protocol):
    """Capabilities the spline path requires from a 3-component vector type.

    All operations return new values; none of them mutates the receiver.
    Iteration yields the three components and is only used for NumPy export.
    """

    def add(self: V, other: V) -> V: ...

    def sub(self: V, other: V) -> V: ...

    def scale(self: V, factor: float) -> V: ...

    def length(self) -> float: ...

    def normalize(self: V) -> V: ...

    def clone(self: V) -> V: ...

    def __iter__(self) -> Iterator[float]: ...


###############################################################################
# Vec3
###############################################################################


class Vec3:
    """Immutable-style 3D vector stored in a NumPy array of shape (3,)."""

    __slots__ = ("_data",)

    def __init__(self, x: float = 0.0, y: float = 0.0, z: float = 0.0):
        self._data: NDArray[np.float64] = np.array((x, y, z), dtype=np.float64)

    @classmethod
    def from_array(cls, values: Union[Sequence[float], NDArray[np.float64]]) -> Vec3:
        """Create a Vec3 from any sequence holding three numbers.

        Raises:
            ValueError: If the input does not contain exactly three components.
        """
        arr = np.asarray(values, dtype=np.float64)
        if arr.shape != (3,):
            raise ValueError(f"Vec3 requires exactly 3 components, got shape {arr.shape}")
        return cls(float(arr[0]), float(arr[1]), float(arr[2]))

    @property
    def x(self) -> float:
        """float: The x component."""
        return float(self._data[0])

    @property
    def y(self) -> float:
        """float: The y component."""
        return float(self._data[1])

    @property
    def z(self) -> float:
        """float: The z component."""
        return float(self._data[2])

    def to_array(self) -> NDArray[np.float64]:
        """Return a copy of the components as NumPy array of shape (3,)."""
        return self._data.copy()

    def add(self, other: Vec3) -> Vec3:
        return Vec3.from_array(self._data + other._data)

    def sub(self, other: Vec3) -> Vec3:
        return Vec3.from_array(self._data - other._data)

    def scale(self, factor: float) -> Vec3:
        return Vec3.from_array(self._data * factor)

    def length(self) -> float:
        return math.sqrt(float(np.dot(self._data, self._data)))

    def normalize(self) -> Vec3:
        """Return the unit vector; a zero vector stays zero."""
        norm = self.length()
        if norm == 0.0:
            return Vec3()
        return Vec3.from_array(self._data / norm)

    def clone(self) -> Vec3:
        return Vec3.from_array(self._data)

    def approx_equal(self, other: Vec3, rtol: float = 1e-9, atol: float = 1e-12) -> bool:
        """Check whether two vectors are equal within the given tolerances."""
        return bool(np.allclose(self._data, other._data, rtol=rtol, atol=atol))

    def __iter__(self) -> Iterator[float]:
        return iter((self.x, self.y, self.z))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Vec3):
            return NotImplemented
        return bool(np.array_equal(self._data, other._data))

    def __hash__(self) -> int:
        return hash((self.x, self.y, self.z))

    def __repr__(self) -> str:
        return f"Vec3({self.x}, {self.y}, {self.z})"
