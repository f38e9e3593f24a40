"""
Centering force.

Translates the whole layout so that the centroid of all nodes moves toward
a target point. Relative positions are unaffected. O(n), no tree needed.
"""

from __future__ import annotations

from typing import Optional

import numpy as np

from ..types import VectorLike
from ..vector import Vector, as_vector
from .base import Force, ForceContext, Kinetics


class CenterForce(Force):
    """
    Pull the node centroid toward ``center``.

    Every node receives the same velocity delta
    ``-(centroid - center) * strength * alpha``.

    Example:
        CenterForce(center=(400, 300), strength=1.0)
    """

    def __init__(self, *, center: Optional[VectorLike] = None, strength: float = 1.0) -> None:
        """
        Initialize center force.

        Args:
            center: Target point. Defaults to the origin.
            strength: Global strength. Default 1.
        """
        super().__init__()
        self._center_input = center
        self._center: Optional[np.ndarray] = None
        self._strength = float(strength)

    @property
    def center(self) -> Optional[Vector]:
        """Resolved target point (None before attach when constructed without one)."""
        if self._center is not None:
            return Vector.from_array(self._center)
        if self._center_input is not None:
            return Vector.from_array(self._center_input)
        return None

    @center.setter
    def center(self, value: Optional[VectorLike]) -> None:
        self._center_input = value
        if self._context is not None:
            self._resolve(self._context)

    @property
    def strength(self) -> float:
        return self._strength

    @strength.setter
    def strength(self, value: float) -> None:
        self._strength = float(value)

    def _resolve(self, context: ForceContext) -> None:
        if self._center_input is None:
            self._center = np.zeros(context.dimension, dtype=np.float64)
        else:
            self._center = as_vector(self._center_input, context.dimension).to_array()

    def apply(self, kinetics: Kinetics, alpha: float) -> None:
        self._require(kinetics)
        assert self._center is not None
        if kinetics.count == 0:
            return

        shift = (kinetics.position.mean(axis=0) - self._center) * (self._strength * alpha)
        kinetics.velocity -= shift


__all__ = ["CenterForce"]
