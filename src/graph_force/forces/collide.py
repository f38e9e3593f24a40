"""
Collision force.

Treats nodes as spheres and pushes overlapping pairs apart. Candidate pairs
are found by walking a KDTree over predicted positions whose aggregate is
the largest radius in each subtree, so any box farther than ``r_i + max_r``
from a node is pruned.
"""

from __future__ import annotations

import math
from typing import Optional

import numpy as np

from ..descriptors import NodeDescriptor, as_descriptor, resolve_node_values
from ..spatial import KDTree, KDTreeNode, MaxRadiusAggregator
from ..validation import validate_iterations
from ..vector import Vector, jiggle_array
from .base import Force, ForceContext, Kinetics


class CollideForce(Force):
    """
    Separate overlapping nodes.

    For every pair (i, j) whose predicted positions ``pos + vel`` are closer
    than ``r_i + r_j``:

        x = predicted_i - predicted_j, jiggled if zero
        l = (r_i + r_j - |x|) / |x| * strength
        vel_i += x * l * w
        vel_j -= x * l * (1 - w)

    with ``w = r_j^2 / (r_i^2 + r_j^2)`` so that smaller nodes move more.

    Example:
        CollideForce(radius=lambda node_id: sizes[node_id], strength=0.7)
    """

    def __init__(
        self,
        *,
        radius: NodeDescriptor = 1.0,
        strength: float = 1.0,
        iterations: int = 1,
    ) -> None:
        """
        Initialize collide force.

        Args:
            radius: Per-node sphere radius. Default 1.
            strength: Fraction of the overlap resolved per pass, clamped to
                [0, 1]. Default 1.
            iterations: Passes per tick. Default 1.
        """
        super().__init__()
        self._radius = as_descriptor(radius)
        self._strength = 1.0
        self.strength = strength
        self._iterations = validate_iterations(iterations)
        self._radii: Optional[np.ndarray] = None

    @property
    def radius(self) -> NodeDescriptor:
        return self._radius

    @radius.setter
    def radius(self, value: NodeDescriptor) -> None:
        self._radius = as_descriptor(value)
        if self._context is not None:
            self._resolve(self._context)

    @property
    def radii(self) -> Optional[np.ndarray]:
        return self._radii

    @property
    def strength(self) -> float:
        return self._strength

    @strength.setter
    def strength(self, value: float) -> None:
        self._strength = max(0.0, min(1.0, float(value)))

    @property
    def iterations(self) -> int:
        return self._iterations

    @iterations.setter
    def iterations(self, value: int) -> None:
        self._iterations = validate_iterations(value)

    def _resolve(self, context: ForceContext) -> None:
        self._radii = resolve_node_values(self._radius, context.node_ids)

    def apply(self, kinetics: Kinetics, alpha: float) -> None:
        context = self._require(kinetics)
        assert self._radii is not None
        if kinetics.count == 0:
            return

        for _ in range(self._iterations):
            predicted = kinetics.position + kinetics.velocity
            tree = KDTree.build(predicted, MaxRadiusAggregator(self._radii))
            try:
                for i in range(kinetics.count):
                    self._collide(tree, kinetics, i, context)
            finally:
                tree.clear()

    def _collide(
        self,
        tree: KDTree[float],
        kinetics: Kinetics,
        i: int,
        context: ForceContext,
    ) -> None:
        """Resolve overlaps between node ``i`` and every node with a higher index."""
        assert self._radii is not None
        radii = self._radii
        position = kinetics.position
        velocity = kinetics.velocity
        ri = radii[i]
        ri2 = ri * ri
        predicted = position[i] + velocity[i]
        query = Vector.from_array(predicted)

        def visit(node: KDTreeNode[float]) -> bool:
            if node.is_leaf:
                for j in node.indices:
                    if j <= i:
                        continue
                    r = ri + radii[j]
                    x = predicted - position[j] - velocity[j]
                    l = float(np.dot(x, x))
                    if l >= r * r:
                        continue
                    jiggle_array(x, context.rng)
                    l = math.sqrt(float(np.dot(x, x)))
                    x *= (r - l) / l * self._strength
                    rj2 = radii[j] * radii[j]
                    w = rj2 / (ri2 + rj2)
                    velocity[i] += x * w
                    velocity[j] -= x * (1 - w)
                return False

            reach = ri + (node.aggregate or 0.0)
            return all(
                lo - reach <= q <= hi + reach
                for lo, q, hi in zip(node.box.lower, query, node.box.upper)
            )

        tree.visit(visit)


__all__ = ["CollideForce"]
