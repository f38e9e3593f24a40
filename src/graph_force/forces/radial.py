"""
Radial force.

Pushes every node toward a circle (sphere in 3D) of a given radius around a
center point.
"""

from __future__ import annotations

from typing import Optional

import numpy as np

from ..descriptors import NodeDescriptor, as_descriptor, resolve_node_values
from ..types import VectorLike
from ..vector import as_vector, jiggle_array
from .base import Force, ForceContext, Kinetics


class RadialForce(Force):
    """
    Pull each node toward distance ``radius`` from ``center``.

    With ``delta = pos - center`` (jiggled when the node sits on the center)
    and ``r = |delta|``:

        velocity += delta * (radius - r) * strength * alpha / r

    Example:
        RadialForce(radius=lambda node_id: 50 * ring_of[node_id], strength=0.3)
    """

    def __init__(
        self,
        *,
        radius: NodeDescriptor,
        center: Optional[VectorLike] = None,
        strength: NodeDescriptor = 0.1,
    ) -> None:
        """
        Initialize radial force.

        Args:
            radius: Target distance from the center, per node.
            center: Center point. Defaults to the origin.
            strength: Per-node strength. Default 0.1.
        """
        super().__init__()
        self._radius = as_descriptor(radius)
        self._strength = as_descriptor(strength)
        self._center_input = center
        self._center: Optional[np.ndarray] = None
        self._radii: Optional[np.ndarray] = None
        self._strengths: Optional[np.ndarray] = None

    @property
    def radius(self) -> NodeDescriptor:
        return self._radius

    @radius.setter
    def radius(self, value: NodeDescriptor) -> None:
        self._radius = as_descriptor(value)
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

    @property
    def radii(self) -> Optional[np.ndarray]:
        return self._radii

    @property
    def strengths(self) -> Optional[np.ndarray]:
        return self._strengths

    def _resolve(self, context: ForceContext) -> None:
        if self._center_input is None:
            self._center = np.zeros(context.dimension, dtype=np.float64)
        else:
            self._center = as_vector(self._center_input, context.dimension).to_array()
        self._radii = resolve_node_values(self._radius, context.node_ids)
        self._strengths = resolve_node_values(self._strength, context.node_ids)

    def apply(self, kinetics: Kinetics, alpha: float) -> None:
        context = self._require(kinetics)
        assert self._center is not None
        assert self._radii is not None
        assert self._strengths is not None
        if kinetics.count == 0:
            return

        delta = kinetics.position - self._center
        jiggle_array(delta, context.rng)
        r = np.sqrt(np.sum(delta * delta, axis=1))
        k = (self._radii - r) * self._strengths * alpha / r
        kinetics.velocity += delta * k[:, np.newaxis]


__all__ = ["RadialForce"]
