"""Tests for the Vector type, jiggling and KineticState."""

import random

import numpy as np
import pytest

from graph_force.types import Edge, KineticState
from graph_force.validation import InvalidDimensionError
from graph_force.vector import JIGGLE_SCALE, Vector, as_vector, jiggle, jiggle_array


class TestVectorConstruction:
    """Tests for building vectors."""

    def test_components(self):
        """Components are stored as floats."""
        v = Vector(1, 2)
        assert v.x == 1.0
        assert v.y == 2.0
        assert isinstance(v[0], float)
        assert v.dimension == 2
        assert len(v) == 2

    def test_from_iterable(self):
        """A single iterable argument is unpacked."""
        assert Vector([1.0, 2.0, 3.0]) == Vector(1.0, 2.0, 3.0)
        assert Vector.from_array(np.array([4.0, 5.0])) == Vector(4.0, 5.0)

    def test_zero(self):
        """Zero vector of any dimension."""
        z = Vector.zero(3)
        assert tuple(z) == (0.0, 0.0, 0.0)
        assert z.length() == 0.0

    def test_to_array(self):
        """Round trip through numpy keeps values."""
        arr = Vector(1.5, -2.5).to_array()
        assert arr.dtype == np.float64
        assert arr.tolist() == [1.5, -2.5]

    def test_index_out_of_range(self):
        """Indexing past the dimension raises IndexError."""
        v = Vector(1.0, 2.0)
        with pytest.raises(IndexError):
            _ = v[2]

    def test_hashable(self):
        """Equal vectors hash equally."""
        assert hash(Vector(1.0, 2.0)) == hash(Vector(1.0, 2.0))
        assert len({Vector(1.0, 2.0), Vector(1.0, 2.0), Vector(2.0, 1.0)}) == 2


class TestVectorArithmetic:
    """Tests for vector operations."""

    def test_add_sub(self):
        """Component-wise addition and subtraction."""
        a = Vector(1.0, 2.0)
        b = Vector(3.0, 5.0)
        assert a + b == Vector(4.0, 7.0)
        assert b - a == Vector(2.0, 3.0)
        assert -a == Vector(-1.0, -2.0)

    def test_scalar(self):
        """Scalar multiplication and division."""
        v = Vector(2.0, -4.0)
        assert v * 0.5 == Vector(1.0, -2.0)
        assert 2 * v == Vector(4.0, -8.0)
        assert v / 2 == Vector(1.0, -2.0)

    def test_length(self):
        """Euclidean length and distance."""
        v = Vector(3.0, 4.0)
        assert v.length_squared() == 25.0
        assert v.length() == 5.0
        assert Vector(1.0, 1.0).distance(Vector(4.0, 5.0)) == 5.0
        assert Vector(1.0, 1.0).distance_squared(Vector(4.0, 5.0)) == 25.0

    def test_three_dimensional(self):
        """Operations work in any dimension."""
        v = Vector(1.0, 2.0, 2.0)
        assert v.length() == 3.0
        assert v.z == 2.0

    def test_dimension_mismatch(self):
        """Mixing dimensions is a programmer error."""
        with pytest.raises(InvalidDimensionError):
            Vector(1.0, 2.0) + Vector(1.0, 2.0, 3.0)
        with pytest.raises(ValueError):
            Vector(1.0, 2.0).distance(Vector(1.0))

    def test_as_vector(self):
        """Coercion checks the dimension."""
        assert as_vector((1, 2), 2) == Vector(1.0, 2.0)
        with pytest.raises(InvalidDimensionError):
            as_vector((1, 2), 3)


class TestJiggle:
    """Tests for the coincident point perturbation."""

    def test_jiggle_range(self):
        """Jiggle values are tiny and centered on zero."""
        rng = random.Random(0)
        for _ in range(100):
            value = jiggle(rng)
            assert -JIGGLE_SCALE / 2 <= value < JIGGLE_SCALE / 2

    def test_jiggled_only_touches_zero_components(self):
        """Non-zero components are untouched."""
        v = Vector(0.0, 2.0).jiggled(random.Random(1))
        assert v[1] == 2.0
        assert v[0] != 0.0
        assert abs(v[0]) <= JIGGLE_SCALE / 2

    def test_jiggled_is_deterministic_with_seed(self):
        """Equal seeds give equal jiggles."""
        a = Vector.zero(3).jiggled(random.Random(7))
        b = Vector.zero(3).jiggled(random.Random(7))
        assert a == b

    def test_jiggle_array_in_place(self):
        """Zero entries of an array are replaced in place."""
        arr = np.array([[0.0, 1.0], [2.0, 0.0]])
        result = jiggle_array(arr, random.Random(3))
        assert result is arr
        assert arr[0, 1] == 1.0
        assert arr[1, 0] == 2.0
        assert arr[0, 0] != 0.0
        assert arr[1, 1] != 0.0
        assert np.all(np.abs(arr[[0, 1], [0, 1]]) <= JIGGLE_SCALE / 2)


class TestKineticState:
    """Tests for the per-node state snapshot."""

    def test_defaults(self):
        """Velocity defaults to zero and the node is free."""
        state = KineticState(position=(1.0, 2.0))
        assert state.position == Vector(1.0, 2.0)
        assert state.velocity == Vector(0.0, 0.0)
        assert state.fixation is None
        assert not state.is_fixed
        assert state.dimension == 2

    def test_pinned_and_released(self):
        """Pinning fixes the node at its position or a given point."""
        state = KineticState(position=(1.0, 2.0))
        assert state.pinned().fixation == Vector(1.0, 2.0)
        pinned = state.pinned(at=(5.0, 5.0))
        assert pinned.is_fixed
        assert pinned.fixation == Vector(5.0, 5.0)
        assert pinned.released().fixation is None

    def test_zero(self):
        """Zero state at the origin."""
        state = KineticState.zero(3)
        assert state.position == Vector.zero(3)
        assert state.velocity == Vector.zero(3)

    def test_dimension_mismatch(self):
        """Velocity and fixation must match the position dimension."""
        with pytest.raises(InvalidDimensionError):
            KineticState(position=(0.0, 0.0), velocity=(1.0, 1.0, 1.0))
        with pytest.raises(InvalidDimensionError):
            KineticState(position=(0.0, 0.0), fixation=(1.0,))


class TestEdge:
    """Tests for the Edge value type."""

    def test_unpack(self):
        """Edges unpack into (source, target)."""
        source, target = Edge("a", "b")
        assert (source, target) == ("a", "b")

    def test_equality(self):
        """Edges compare by value."""
        assert Edge(1, 2) == Edge(1, 2)
        assert Edge(1, 2) != Edge(2, 1)
        assert hash(Edge(1, 2)) == hash(Edge(1, 2))
