"""
Many-body (charge) force with Barnes-Hut approximation.

Every node attracts (positive strength) or repels (negative strength) every
other node with a magnitude inversely proportional to their distance. The
pairwise sum is approximated in O(n log n) by rebuilding a KDTree from the
current positions on every tick and treating distant clusters as single
charges located at their strength-weighted centroid.
"""

from __future__ import annotations

import math
from typing import Optional

import numpy as np

from ..descriptors import NodeDescriptor, as_descriptor, resolve_node_values
from ..spatial import KDTree, MassAggregate, MassAggregator
from ..validation import InvalidParameterError, validate_theta
from ..vector import Vector
from .base import Force, ForceContext, Kinetics


class ManyBodyForce(Force):
    """
    N-body charge force between all node pairs.

    For each contribution (a single node, or a whole subtree standing in as
    a pseudo-node) at ``other`` felt by a node at ``p``:

        delta = (other - p).jiggled()
        l = |delta|^2, floored to sqrt(distance_min^2 * l) below distance_min^2
        velocity += delta * strength_other * alpha / l

    Contributions farther than ``distance_max`` are ignored.

    Example:
        sim = Simulation(node_ids=ids, forces=[ManyBodyForce(strength=-30, theta=0.9)])
    """

    def __init__(
        self,
        *,
        strength: NodeDescriptor = -30.0,
        theta: float = 0.9,
        distance_min: float = 1.0,
        distance_max: float = math.inf,
    ) -> None:
        """
        Initialize many-body force.

        Args:
            strength: Per-node charge (constant or function of the node id).
                Negative repels, positive attracts. Default -30.
            theta: Barnes-Hut accuracy (0 = exact). Default 0.9.
            distance_min: Distance below which the force stops growing.
                Default 1.
            distance_max: Distance beyond which contributions are ignored.
                Default infinity.
        """
        super().__init__()
        self._strength = as_descriptor(strength)
        self._theta = validate_theta(theta)
        self._distance_min = 0.0
        self._distance_max = math.inf
        self.distance_min = distance_min
        self.distance_max = distance_max
        self._strengths: Optional[np.ndarray] = None

    # -------------------------------------------------------------------------
    # Properties
    # -------------------------------------------------------------------------

    @property
    def strength(self) -> NodeDescriptor:
        """Get the strength descriptor."""
        return self._strength

    @strength.setter
    def strength(self, value: NodeDescriptor) -> None:
        """Set the strength descriptor; re-resolved immediately if attached."""
        self._strength = as_descriptor(value)
        if self._context is not None:
            self._resolve(self._context)

    @property
    def strengths(self) -> Optional[np.ndarray]:
        """Resolved per-node strengths (None before attach)."""
        return self._strengths

    @property
    def theta(self) -> float:
        """Get Barnes-Hut theta parameter (accuracy)."""
        return self._theta

    @theta.setter
    def theta(self, value: float) -> None:
        self._theta = validate_theta(value)

    @property
    def distance_min(self) -> float:
        return self._distance_min

    @distance_min.setter
    def distance_min(self, value: float) -> None:
        if value < 0:
            raise InvalidParameterError(f"distance_min must be >= 0, got {value}")
        self._distance_min = float(value)

    @property
    def distance_max(self) -> float:
        return self._distance_max

    @distance_max.setter
    def distance_max(self, value: float) -> None:
        if value <= 0:
            raise InvalidParameterError(f"distance_max must be > 0, got {value}")
        self._distance_max = float(value)

    # -------------------------------------------------------------------------
    # Force Implementation
    # -------------------------------------------------------------------------

    def _resolve(self, context: ForceContext) -> None:
        self._strengths = resolve_node_values(self._strength, context.node_ids)

    def apply(self, kinetics: Kinetics, alpha: float) -> None:
        context = self._require(kinetics)
        assert self._strengths is not None
        if kinetics.count == 0:
            return

        points = [Vector.from_array(row) for row in kinetics.position]
        tree = KDTree.build(points, MassAggregator(self._strengths))
        try:
            for i, point in enumerate(points):
                kinetics.velocity[i] += self._accumulate(tree, point, i, alpha, context)
        finally:
            tree.clear()

    def _accumulate(
        self,
        tree: KDTree[MassAggregate],
        point: Vector,
        index: int,
        alpha: float,
        context: ForceContext,
    ) -> np.ndarray:
        """Net velocity delta on node ``index`` located at ``point``."""
        rng = context.rng
        distance_min2 = self._distance_min * self._distance_min
        distance_max2 = self._distance_max * self._distance_max
        total = np.zeros(point.dimension, dtype=np.float64)

        def combine(position: Vector, aggregate: MassAggregate) -> None:
            if aggregate.strength == 0:
                return
            delta = (position - point).jiggled(rng)
            l = delta.length_squared()
            if l >= distance_max2:
                return
            if l < distance_min2:
                l = math.sqrt(distance_min2 * l)
            w = aggregate.strength * alpha / l
            for k, component in enumerate(delta):
                total[k] += component * w

        tree.barnes_hut_query(point, self._theta, combine, exclude=index)
        return total


__all__ = ["ManyBodyForce"]
