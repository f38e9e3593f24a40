"""
Single-axis positioning force.

Pulls one coordinate of every node toward a per-node target value, leaving
the other coordinates alone. Commonly used in pairs (x and y) instead of a
CenterForce, or to separate groups of nodes along an axis.
"""

from __future__ import annotations

from typing import Optional

import numpy as np

from ..descriptors import NodeDescriptor, as_descriptor, resolve_node_values
from ..validation import InvalidDimensionError
from .base import Force, ForceContext, Kinetics


class PositionForce(Force):
    """
    Pull coordinate ``axis`` toward ``target``.

        velocity[axis] += (target - position[axis]) * strength * alpha

    Example:
        forces = [PositionForce.x(target=0.0), PositionForce.y(target=0.0)]
    """

    def __init__(
        self,
        *,
        axis: int,
        target: NodeDescriptor = 0.0,
        strength: NodeDescriptor = 0.1,
    ) -> None:
        """
        Initialize position force.

        Args:
            axis: Index of the coordinate to constrain (0 = x, 1 = y, 2 = z).
            target: Target coordinate per node. Default 0.
            strength: Per-node strength. Default 0.1.
        """
        super().__init__()
        if axis < 0:
            raise InvalidDimensionError(f"axis must be >= 0, got {axis}")
        self._axis = int(axis)
        self._target = as_descriptor(target)
        self._strength = as_descriptor(strength)
        self._targets: Optional[np.ndarray] = None
        self._strengths: Optional[np.ndarray] = None

    @classmethod
    def x(cls, *, target: NodeDescriptor = 0.0, strength: NodeDescriptor = 0.1) -> PositionForce:
        """Force along the first axis."""
        return cls(axis=0, target=target, strength=strength)

    @classmethod
    def y(cls, *, target: NodeDescriptor = 0.0, strength: NodeDescriptor = 0.1) -> PositionForce:
        """Force along the second axis."""
        return cls(axis=1, target=target, strength=strength)

    @classmethod
    def z(cls, *, target: NodeDescriptor = 0.0, strength: NodeDescriptor = 0.1) -> PositionForce:
        """Force along the third axis."""
        return cls(axis=2, target=target, strength=strength)

    @property
    def axis(self) -> int:
        return self._axis

    @property
    def target(self) -> NodeDescriptor:
        return self._target

    @target.setter
    def target(self, value: NodeDescriptor) -> None:
        self._target = as_descriptor(value)
        if self._context is not None:
            self._resolve(self._context)

    @property
    def strength(self) -> NodeDescriptor:
        return self._strength

    @strength.setter
    def strength(self, value: NodeDescriptor) -> None:
        self._strength = as_descriptor(value)
        if self._context is not None:
            self._resolve(self._context)

    def _resolve(self, context: ForceContext) -> None:
        if self._axis >= context.dimension:
            raise InvalidDimensionError(
                f"axis {self._axis} out of range for a {context.dimension}-d simulation"
            )
        self._targets = resolve_node_values(self._target, context.node_ids)
        self._strengths = resolve_node_values(self._strength, context.node_ids)

    def apply(self, kinetics: Kinetics, alpha: float) -> None:
        self._require(kinetics)
        assert self._targets is not None
        assert self._strengths is not None
        column = kinetics.position[:, self._axis]
        kinetics.velocity[:, self._axis] += (self._targets - column) * self._strengths * alpha


__all__ = ["PositionForce"]
