"""
N-dimensional 2^d-ary tree for Barnes-Hut force approximation.

The tree recursively bisects a hypercube at its midpoint along every axis
at once, producing 2^d children per internal node (a quadtree in 2D, an
octree in 3D). Each node carries an application-defined aggregate folded
bottom-up by an :class:`Aggregator`, which lets distant clusters stand in
for their members during a Barnes-Hut query.

Nodes live in a flat arena addressed by integer index. The children of an
internal node occupy ``2^d`` consecutive arena slots starting at
``first_child``, and are always allocated after their parent, so a single
reverse pass over the arena visits every child before its parent.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Callable, Generic, Iterator, Optional, Sequence, TypeVar, Union

import numpy as np

from ..validation import InvalidDimensionError, InvalidParameterError
from ..vector import Vector

logger = logging.getLogger(__name__)

A = TypeVar("A")


class Aggregator(ABC, Generic[A]):
    """
    Defines the per-subtree summary value stored in a KDTree.

    The tree only knows how to ask for a point's own contribution, how to
    fold several contributions into one, and where a summary sits in space.
    """

    @abstractmethod
    def point(self, index: int, position: Vector) -> A:
        """Contribution of the single point ``index`` located at ``position``."""

    @abstractmethod
    def merge(self, aggregates: Sequence[A]) -> A:
        """Fold child (or colocated point) aggregates; ``aggregates`` may be empty."""

    @abstractmethod
    def center(self, aggregate: A) -> Optional[Vector]:
        """
        Position of the pseudo-point representing ``aggregate``.

        Returning None means the aggregate cannot stand in for its members;
        Barnes-Hut queries then always descend into that subtree.
        """


@dataclass(frozen=True)
class KDBox:
    """
    Axis-aligned box given by its lower and upper corners.

    Attributes:
        lower: Minimum corner
        upper: Maximum corner
    """

    lower: Vector
    upper: Vector

    def __post_init__(self) -> None:
        if self.lower.dimension != self.upper.dimension:
            raise InvalidDimensionError("KDBox corners must have the same dimension")

    @classmethod
    def covering(cls, points: Sequence[Vector], padding: float = 0.0) -> KDBox:
        """
        Smallest hypercube containing ``points``, expanded by ``padding``.

        The box is square in every dimension so that subdivided children
        stay square as well.
        """
        dimension = points[0].dimension
        lows = [min(p[k] for p in points) for k in range(dimension)]
        highs = [max(p[k] for p in points) for k in range(dimension)]
        side = max(h - lo for lo, h in zip(lows, highs))
        half = side / 2 + padding
        center = [(lo + h) / 2 for lo, h in zip(lows, highs)]
        return cls(
            Vector.from_array(c - half for c in center),
            Vector.from_array(c + half for c in center),
        )

    @property
    def dimension(self) -> int:
        return self.lower.dimension

    @property
    def side(self) -> float:
        """Characteristic size: the largest edge length."""
        return max(h - lo for lo, h in zip(self.lower, self.upper))

    @property
    def midpoint(self) -> Vector:
        return (self.lower + self.upper) / 2

    def contains(self, point: Vector) -> bool:
        """Check if ``point`` lies within the box (boundary included)."""
        return all(lo <= p <= h for lo, p, h in zip(self.lower, point, self.upper))

    def is_splittable(self) -> bool:
        """True if the midpoint lies strictly inside the box on every axis."""
        return all(lo < (lo + h) / 2 < h for lo, h in zip(self.lower, self.upper))

    def orthant_of(self, point: Vector) -> int:
        """
        Index of the child orthant containing ``point``.

        Bit ``k`` is set when ``point[k]`` is at or above the midpoint on axis
        ``k``, so exact-midpoint points always select the upper child.
        """
        orthant = 0
        for k, (lo, p, h) in enumerate(zip(self.lower, point, self.upper)):
            if p >= (lo + h) / 2:
                orthant |= 1 << k
        return orthant

    def child(self, orthant: int) -> KDBox:
        """Box of child ``orthant`` (see :meth:`orthant_of`)."""
        lower = []
        upper = []
        for k, (lo, h) in enumerate(zip(self.lower, self.upper)):
            mid = (lo + h) / 2
            if orthant & (1 << k):
                lower.append(mid)
                upper.append(h)
            else:
                lower.append(lo)
                upper.append(mid)
        return KDBox(Vector.from_array(lower), Vector.from_array(upper))


@dataclass
class KDTreeNode(Generic[A]):
    """
    A node in the KDTree arena.

    Attributes:
        box: Region covered by this node
        first_child: Arena index of the first of 2^d children, -1 for leaves
        indices: Point indices stored in a leaf; all share ``position``
        position: Common position of the colocated points in a leaf
        aggregate: Summary value folded by the tree's Aggregator
    """

    box: KDBox
    first_child: int = -1
    indices: list[int] = field(default_factory=list)
    position: Optional[Vector] = None
    aggregate: Optional[A] = None

    @property
    def is_leaf(self) -> bool:
        """True if this node has no children (may still be empty)."""
        return self.first_child < 0

    @property
    def is_internal(self) -> bool:
        """True if this node has children; internal nodes never store points."""
        return self.first_child >= 0

    @property
    def is_filled_leaf(self) -> bool:
        return self.first_child < 0 and bool(self.indices)

    @property
    def is_empty_leaf(self) -> bool:
        return self.first_child < 0 and not self.indices

    @property
    def contained_indices(self) -> list[int]:
        """Copy of the point indices held by this leaf."""
        return list(self.indices)


class KDTree(Generic[A]):
    """
    Barnes-Hut tree over a snapshot of point positions.

    Usage:
        tree = KDTree.build(positions, MassAggregator(strengths))
        calls = tree.barnes_hut_query(positions[i], theta=0.9, combine=fn, exclude=i)
        tree.clear()

    The theta parameter of :meth:`barnes_hut_query` controls the
    accuracy/speed tradeoff:
    - theta = 0: Exact calculation (no approximation)
    - theta = 0.5: Good balance
    - theta = 0.9: d3-force default
    """

    def __init__(self, dimension: int, aggregator: Aggregator[A]) -> None:
        """
        Initialize an empty tree. Use :meth:`build` to populate one.

        Args:
            dimension: Number of axes of every point
            aggregator: Aggregate definition used for every node
        """
        self.dimension = dimension
        self.aggregator = aggregator
        self._branching = 1 << dimension
        self._nodes: list[KDTreeNode[A]] = []
        self._points: list[Vector] = []
        self._point_aggregates: list[A] = []

    @classmethod
    def build(
        cls,
        points: Union[Sequence[Vector], np.ndarray],
        aggregator: Aggregator[A],
        padding: float = 1.0,
        dimension: Optional[int] = None,
    ) -> KDTree[A]:
        """
        Build a tree from a full position snapshot.

        Args:
            points: Sequence of Vectors or an (n, d) array
            aggregator: Aggregate definition
            padding: Margin added around the bounding hypercube
            dimension: Required when ``points`` is empty and not an array

        Returns:
            Tree with every point inserted and aggregates computed. An empty
            point set yields an empty tree on which every query is a no-op.
        """
        if padding < 0:
            raise InvalidParameterError(f"padding must be >= 0, got {padding}")

        if isinstance(points, np.ndarray):
            if points.ndim != 2:
                raise InvalidDimensionError(f"Expected an (n, d) array, got shape {points.shape}")
            dimension = points.shape[1]
            vectors = [Vector.from_array(row) for row in points]
        else:
            vectors = list(points)
            if vectors:
                dimension = vectors[0].dimension
        if dimension is None:
            dimension = 2

        tree = cls(dimension, aggregator)
        if not vectors:
            return tree

        for p in vectors:
            if p.dimension != dimension:
                raise InvalidDimensionError(
                    f"All points must be {dimension}-dimensional, got {p.dimension}"
                )

        tree._points = vectors
        tree._point_aggregates = [aggregator.point(i, p) for i, p in enumerate(vectors)]
        tree._nodes.append(KDTreeNode(KDBox.covering(vectors, padding)))
        for i in range(len(vectors)):
            tree._insert(i)
        tree._compute_aggregates()

        logger.debug(
            "Built %d-d tree over %d points (%d nodes)", dimension, len(vectors), len(tree._nodes)
        )
        return tree

    # -------------------------------------------------------------------------
    # Properties
    # -------------------------------------------------------------------------

    @property
    def root(self) -> Optional[KDTreeNode[A]]:
        """Root node, or None for an empty tree."""
        return self._nodes[0] if self._nodes else None

    @property
    def node_count(self) -> int:
        """Number of nodes in the arena (leaves and internal nodes)."""
        return len(self._nodes)

    @property
    def points(self) -> list[Vector]:
        return self._points

    def __len__(self) -> int:
        return len(self._points)

    def children(self, node: KDTreeNode[A]) -> list[KDTreeNode[A]]:
        """The 2^d children of an internal node (empty list for leaves)."""
        if node.is_leaf:
            return []
        return self._nodes[node.first_child : node.first_child + self._branching]

    def leaves(self) -> Iterator[KDTreeNode[A]]:
        """Iterate over every leaf, empty ones included."""
        return (node for node in self._nodes if node.is_leaf)

    def depth(self) -> int:
        """Number of levels below the root (0 for a single leaf or empty tree)."""
        if not self._nodes:
            return 0
        deepest = 0
        stack = [(0, 0)]
        while stack:
            index, level = stack.pop()
            deepest = max(deepest, level)
            node = self._nodes[index]
            if node.is_internal:
                for child in range(node.first_child, node.first_child + self._branching):
                    stack.append((child, level + 1))
        return deepest

    def clear(self) -> None:
        """Release the arena, every colocated index list and the point snapshot."""
        for node in self._nodes:
            node.indices.clear()
        self._nodes = []
        self._points = []
        self._point_aggregates = []

    # -------------------------------------------------------------------------
    # Construction
    # -------------------------------------------------------------------------

    def _insert(self, index: int) -> None:
        """Insert point ``index`` starting from the root, splitting leaves as needed."""
        point = self._points[index]
        current = 0
        while True:
            node = self._nodes[current]

            if node.is_internal:
                current = node.first_child + node.box.orthant_of(point)
                continue

            if not node.indices:
                node.indices.append(index)
                node.position = point
                return

            # Identical positions cannot be separated by subdividing, and a
            # box at floating-point resolution cannot be subdivided at all.
            if node.position == point or not node.box.is_splittable():
                node.indices.append(index)
                return

            existing, existing_position = node.indices, node.position
            assert existing_position is not None
            node.indices = []
            node.position = None
            self._subdivide(current)

            child = self._nodes[node.first_child + node.box.orthant_of(existing_position)]
            child.indices = existing
            child.position = existing_position

            current = node.first_child + node.box.orthant_of(point)

    def _subdivide(self, index: int) -> None:
        """Allocate all 2^d children of node ``index`` at the end of the arena."""
        node = self._nodes[index]
        node.first_child = len(self._nodes)
        for orthant in range(self._branching):
            self._nodes.append(KDTreeNode(node.box.child(orthant)))

    def _compute_aggregates(self) -> None:
        """Fold aggregates bottom-up; children always follow their parent in the arena."""
        merge = self.aggregator.merge
        for node in reversed(self._nodes):
            if node.is_internal:
                node.aggregate = merge(
                    [c.aggregate for c in self.children(node)]  # type: ignore[misc]
                )
            else:
                node.aggregate = merge([self._point_aggregates[i] for i in node.indices])

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def visit(self, predicate: Callable[[KDTreeNode[A]], bool]) -> None:
        """
        Pre-order traversal.

        Args:
            predicate: Called with each node; return True to descend into
                its children, False to skip the subtree.
        """
        stack = [0] if self._nodes else []
        while stack:
            node = self._nodes[stack.pop()]
            if predicate(node) and node.is_internal:
                stack.extend(reversed(range(node.first_child, node.first_child + self._branching)))

    def barnes_hut_query(
        self,
        point: Vector,
        theta: float,
        combine: Callable[[Vector, A], None],
        exclude: Optional[int] = None,
    ) -> int:
        """
        Feed the contributions felt at ``point`` to ``combine``.

        At each internal node with side ``s`` whose aggregate center lies at
        distance ``d`` from ``point``, the whole subtree is reported as one
        pseudo-point ``combine(center, aggregate)`` when ``s / d < theta``.
        Otherwise the query descends. Leaves report every stored point
        individually with its own contribution, skipping ``exclude``.

        Args:
            point: Query position
            theta: Barnes-Hut threshold (0 = exact)
            combine: Callback receiving (position, aggregate)
            exclude: Point index to skip (the query point itself)

        Returns:
            Number of ``combine`` invocations.
        """
        if not self._nodes:
            return 0

        calls = 0
        center_of = self.aggregator.center
        stack = [0]
        while stack:
            node = self._nodes[stack.pop()]

            if node.is_leaf:
                for i in node.indices:
                    if i != exclude:
                        combine(node.position, self._point_aggregates[i])  # type: ignore[arg-type]
                        calls += 1
                continue

            if theta > 0:
                center = center_of(node.aggregate)  # type: ignore[arg-type]
                if center is not None:
                    distance = point.distance(center)
                    if distance > 0 and node.box.side / distance < theta:
                        combine(center, node.aggregate)  # type: ignore[arg-type]
                        calls += 1
                        continue

            stack.extend(reversed(range(node.first_child, node.first_child + self._branching)))

        return calls


__all__ = ["Aggregator", "KDBox", "KDTreeNode", "KDTree"]
