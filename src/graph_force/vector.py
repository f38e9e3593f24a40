"""
N-dimensional vector type used throughout the force simulation.

Vectors are immutable values: every arithmetic operation returns a new
instance. Bulk per-node state lives in numpy arrays (see
``graph_force.forces.Kinetics``); ``Vector`` is the value exchanged with
callers and used inside the spatial tree.
"""

from __future__ import annotations

import math
import numbers
import random
from typing import Iterable, Iterator, Optional, Sequence, Union, overload

import numpy as np

from .validation import InvalidDimensionError

# Magnitude of the perturbation used to separate coincident points.
JIGGLE_SCALE = 1e-6

RandomSource = Union[random.Random, None]


def jiggle(rng: RandomSource = None) -> float:
    """Return a tiny random offset in [-JIGGLE_SCALE / 2, JIGGLE_SCALE / 2)."""
    source = rng if rng is not None else random
    return (source.random() - 0.5) * JIGGLE_SCALE


def jiggle_array(values: np.ndarray, rng: RandomSource = None) -> np.ndarray:
    """
    Replace exactly-zero entries of ``values`` in place with jiggle offsets.

    Args:
        values: Array of any shape
        rng: Random source (module-level ``random`` if None)

    Returns:
        The same array, for chaining.
    """
    zeros = np.flatnonzero(values == 0)
    if zeros.size:
        flat = values.reshape(-1)
        for i in zeros:
            flat[i] = jiggle(rng)
    return values


class Vector(Sequence[float]):
    """
    Immutable N-dimensional vector of floats.

    Example:
        a = Vector(1.0, 2.0)
        b = Vector.zero(2)
        c = (a - b) * 0.5
        c.length()
    """

    __slots__ = ("_components",)

    def __init__(self, *components: float) -> None:
        if len(components) == 1 and not isinstance(components[0], numbers.Real):
            components = tuple(components[0])  # type: ignore[arg-type]
        self._components: tuple[float, ...] = tuple(float(c) for c in components)

    # -------------------------------------------------------------------------
    # Construction
    # -------------------------------------------------------------------------

    @classmethod
    def zero(cls, dimension: int) -> Vector:
        """Return the zero vector of the given dimension."""
        return cls._from_tuple((0.0,) * dimension)

    @classmethod
    def from_array(cls, values: Union[np.ndarray, Iterable[float]]) -> Vector:
        """Build a vector from a 1-D numpy array or any iterable of numbers."""
        return cls._from_tuple(tuple(float(v) for v in values))

    @classmethod
    def _from_tuple(cls, components: tuple[float, ...]) -> Vector:
        vec = cls.__new__(cls)
        vec._components = components
        return vec

    def to_array(self) -> np.ndarray:
        """Return the components as a float64 numpy array."""
        return np.array(self._components, dtype=np.float64)

    # -------------------------------------------------------------------------
    # Sequence protocol
    # -------------------------------------------------------------------------

    @property
    def dimension(self) -> int:
        """Number of components."""
        return len(self._components)

    def __len__(self) -> int:
        return len(self._components)

    @overload
    def __getitem__(self, index: int) -> float: ...

    @overload
    def __getitem__(self, index: slice) -> Sequence[float]: ...

    def __getitem__(self, index: Union[int, slice]) -> Union[float, Sequence[float]]:
        return self._components[index]

    def __iter__(self) -> Iterator[float]:
        return iter(self._components)

    @property
    def x(self) -> float:
        return self._components[0]

    @property
    def y(self) -> float:
        return self._components[1]

    @property
    def z(self) -> float:
        return self._components[2]

    # -------------------------------------------------------------------------
    # Arithmetic
    # -------------------------------------------------------------------------

    def _check(self, other: Vector) -> None:
        if len(other._components) != len(self._components):
            raise InvalidDimensionError(
                f"Vector dimension mismatch: {len(self._components)} != {len(other._components)}"
            )

    def __add__(self, other: Vector) -> Vector:
        self._check(other)
        pairs = zip(self._components, other._components)
        return Vector._from_tuple(tuple(a + b for a, b in pairs))

    def __sub__(self, other: Vector) -> Vector:
        self._check(other)
        pairs = zip(self._components, other._components)
        return Vector._from_tuple(tuple(a - b for a, b in pairs))

    def __neg__(self) -> Vector:
        return Vector._from_tuple(tuple(-a for a in self._components))

    def __mul__(self, scalar: float) -> Vector:
        return Vector._from_tuple(tuple(a * scalar for a in self._components))

    __rmul__ = __mul__

    def __truediv__(self, scalar: float) -> Vector:
        return Vector._from_tuple(tuple(a / scalar for a in self._components))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Vector):
            return NotImplemented
        return self._components == other._components

    def __hash__(self) -> int:
        return hash(self._components)

    def __repr__(self) -> str:
        inner = ", ".join(f"{c:.4g}" for c in self._components)
        return f"Vector({inner})"

    # -------------------------------------------------------------------------
    # Metric
    # -------------------------------------------------------------------------

    def length_squared(self) -> float:
        return sum(a * a for a in self._components)

    def length(self) -> float:
        return math.sqrt(self.length_squared())

    def distance_squared(self, other: Vector) -> float:
        self._check(other)
        return sum((a - b) * (a - b) for a, b in zip(self._components, other._components))

    def distance(self, other: Vector) -> float:
        return math.sqrt(self.distance_squared(other))

    def jiggled(self, rng: RandomSource = None) -> Vector:
        """
        Return a copy with every exactly-zero component replaced by a jiggle.

        Non-zero components are left untouched, so the result is only
        perturbed along axes where two points coincide.

        Args:
            rng: Random source (module-level ``random`` if None)
        """
        return Vector._from_tuple(
            tuple(jiggle(rng) if a == 0 else a for a in self._components)
        )


def as_vector(value: Union[Vector, Sequence[float], np.ndarray], dimension: int) -> Vector:
    """
    Coerce ``value`` into a Vector of the given dimension.

    Raises:
        InvalidDimensionError: If the dimension does not match.
    """
    vec = value if isinstance(value, Vector) else Vector.from_array(value)
    if vec.dimension != dimension:
        raise InvalidDimensionError(
            f"Expected a {dimension}-dimensional vector, got {vec.dimension}"
        )
    return vec


def optional_vector(
    value: Optional[Union[Vector, Sequence[float], np.ndarray]], dimension: int
) -> Optional[Vector]:
    """Like :func:`as_vector` but passes None through."""
    if value is None:
        return None
    return as_vector(value, dimension)


__all__ = [
    "JIGGLE_SCALE",
    "Vector",
    "as_vector",
    "jiggle",
    "jiggle_array",
    "optional_vector",
]
