"""
Aggregators used by the built-in forces.

- MassAggregator: total strength and strength-weighted centroid (many-body)
- MaxRadiusAggregator: largest node radius in a subtree (collision)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence

from ..vector import Vector
from .kdtree import Aggregator


@dataclass(frozen=True)
class MassAggregate:
    """
    Accumulated charge of a subtree.

    Attributes:
        strength: Sum of member strengths (signed)
        weight: Sum of absolute member strengths
        count: Number of member points
        centroid: Weighted centroid (|strength| weights; plain mean when
            every member has zero strength), None when empty
    """

    strength: float
    weight: float
    count: int
    centroid: Optional[Vector]


EMPTY_MASS = MassAggregate(0.0, 0.0, 0, None)


class MassAggregator(Aggregator[MassAggregate]):
    """Aggregates per-node strengths into charge and centroid."""

    def __init__(self, strengths: Sequence[float]) -> None:
        """
        Args:
            strengths: Per-point strength, indexed like the tree's points
        """
        self.strengths = strengths

    def point(self, index: int, position: Vector) -> MassAggregate:
        s = float(self.strengths[index])
        return MassAggregate(s, abs(s), 1, position)

    def merge(self, aggregates: Sequence[MassAggregate]) -> MassAggregate:
        members = [a for a in aggregates if a.count]
        if not members:
            return EMPTY_MASS
        if len(members) == 1:
            return members[0]

        strength = sum(a.strength for a in members)
        weight = sum(a.weight for a in members)
        count = sum(a.count for a in members)

        dimension = members[0].centroid.dimension  # type: ignore[union-attr]
        total = [0.0] * dimension
        for a in members:
            w = a.weight if weight > 0 else a.count
            for k, c in enumerate(a.centroid):  # type: ignore[arg-type]
                total[k] += c * w
        norm = weight if weight > 0 else count
        centroid = Vector.from_array(t / norm for t in total)

        return MassAggregate(strength, weight, count, centroid)

    def center(self, aggregate: MassAggregate) -> Optional[Vector]:
        return aggregate.centroid


class MaxRadiusAggregator(Aggregator[float]):
    """
    Aggregates per-node radii into the largest radius of a subtree.

    There is no meaningful pseudo-point for a radius bound, so ``center``
    returns None and Barnes-Hut queries always descend. Collision detection
    uses :meth:`KDTree.visit` instead.
    """

    def __init__(self, radii: Sequence[float]) -> None:
        self.radii = radii

    def point(self, index: int, position: Vector) -> float:
        return float(self.radii[index])

    def merge(self, aggregates: Sequence[float]) -> float:
        return max(aggregates, default=0.0)

    def center(self, aggregate: float) -> Optional[Vector]:
        return None


__all__ = ["MassAggregate", "MassAggregator", "MaxRadiusAggregator", "EMPTY_MASS"]
