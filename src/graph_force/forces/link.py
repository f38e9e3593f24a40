"""
Link (spring) force.

Connected nodes are pulled together or pushed apart toward a rest length,
following Hooke's law. Each edge pushes both endpoints in opposite
directions, split between them according to their degree so that
highly-connected nodes move less.
"""

from __future__ import annotations

import math
import warnings
from typing import Any, Optional, Sequence

import numpy as np

from ..descriptors import (
    EdgeDescriptor,
    WeightedByDegree,
    as_descriptor,
    resolve_edge_values,
)
from ..types import LinkLike
from ..validation import resolve_links, validate_iterations
from ..vector import jiggle_array
from .base import Force, ForceContext, Kinetics


class LinkForce(Force):
    """
    Spring force along graph edges.

    For each edge (s, t), using positions predicted one step ahead:

        x = (pos_t + vel_t) - (pos_s + vel_s), jiggled if zero
        l = (|x| - rest) / |x| * alpha * stiffness
        vel_t -= x * l * bias
        vel_s += x * l * (1 - bias)

    where ``bias = degree(s) / (degree(s) + degree(t))``.

    Example:
        LinkForce(length=35.0, stiffness=WeightedByDegree(1.0))
    """

    def __init__(
        self,
        *,
        links: Optional[Sequence[LinkLike]] = None,
        length: EdgeDescriptor = 30.0,
        stiffness: Optional[EdgeDescriptor] = None,
        iterations: int = 1,
    ) -> None:
        """
        Initialize link force.

        Args:
            links: Edges as pairs of node ids. If None, the simulation's links
                are used.
            length: Rest length per edge (constant or ``fn(edge, lookup)``).
                Default 30.
            stiffness: Spring stiffness per edge. Defaults to
                ``WeightedByDegree(1.0)``, i.e. ``1 / min(degree)``.
            iterations: Relaxation passes per tick. Default 1.
        """
        super().__init__()
        self._links_input = list(links) if links is not None else None
        self._length = as_descriptor(length)
        self._stiffness = as_descriptor(stiffness if stiffness is not None else WeightedByDegree())
        self._iterations = validate_iterations(iterations)

        self._links: list[tuple[int, int]] = []
        self._lengths: Optional[np.ndarray] = None
        self._stiffnesses: Optional[np.ndarray] = None
        self._bias: Optional[np.ndarray] = None

    # -------------------------------------------------------------------------
    # Properties
    # -------------------------------------------------------------------------

    @property
    def links(self) -> list[tuple[int, int]]:
        """Resolved (source_index, target_index) pairs (empty before attach)."""
        return self._links

    @property
    def length(self) -> Any:
        return self._length

    @length.setter
    def length(self, value: EdgeDescriptor) -> None:
        self._length = as_descriptor(value)
        if self._context is not None:
            self._resolve(self._context)

    @property
    def stiffness(self) -> Any:
        return self._stiffness

    @stiffness.setter
    def stiffness(self, value: EdgeDescriptor) -> None:
        self._stiffness = as_descriptor(value)
        if self._context is not None:
            self._resolve(self._context)

    @property
    def lengths(self) -> Optional[np.ndarray]:
        return self._lengths

    @property
    def stiffnesses(self) -> Optional[np.ndarray]:
        return self._stiffnesses

    @property
    def iterations(self) -> int:
        return self._iterations

    @iterations.setter
    def iterations(self, value: int) -> None:
        self._iterations = validate_iterations(value)

    # -------------------------------------------------------------------------
    # Force Implementation
    # -------------------------------------------------------------------------

    def _resolve(self, context: ForceContext) -> None:
        if self._links_input is None:
            self._links = list(context.links)
        else:
            self._links = resolve_links(self._links_input, context.index_of)

        if not self._links and context.node_count > 1:
            warnings.warn("LinkForce attached without any links; it will have no effect")

        degrees = context.degrees(self._links)
        edges = context.edges(self._links)
        lookup = {context.node_ids[i]: int(d) for i, d in enumerate(degrees)}

        self._lengths = resolve_edge_values(self._length, edges, lookup)
        self._stiffnesses = resolve_edge_values(self._stiffness, edges, lookup)

        self._bias = np.empty(len(self._links), dtype=np.float64)
        for e, (s, t) in enumerate(self._links):
            self._bias[e] = degrees[s] / (degrees[s] + degrees[t])

    def apply(self, kinetics: Kinetics, alpha: float) -> None:
        context = self._require(kinetics)
        assert self._lengths is not None
        assert self._stiffnesses is not None
        assert self._bias is not None

        position = kinetics.position
        velocity = kinetics.velocity
        rng = context.rng

        for _ in range(self._iterations):
            for e, (s, t) in enumerate(self._links):
                x = position[t] + velocity[t] - position[s] - velocity[s]
                jiggle_array(x, rng)
                distance = math.sqrt(float(np.dot(x, x)))
                scale = (distance - self._lengths[e]) / distance * alpha * self._stiffnesses[e]
                x *= scale
                bias = self._bias[e]
                velocity[t] -= x * bias
                velocity[s] += x * (1 - bias)


__all__ = ["LinkForce"]
