"""
Base classes for forces.

This module provides the shared infrastructure every force builds on:

- Kinetics: Struct-of-arrays node state (position, velocity, fixation)
- ForceContext: What a force learns about its simulation when attached
- Force: Abstract capability interface (attach once, apply every tick)
"""

from __future__ import annotations

import logging
import random
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Hashable, Mapping, Optional, Sequence

import numpy as np

from ..types import Edge, KineticState
from ..validation import ForceNotAttachedError, InvalidDimensionError
from ..vector import Vector

logger = logging.getLogger(__name__)


@dataclass
class Kinetics:
    """
    Per-node kinetic state, one row per dense node index.

    Attributes:
        position: (n, d) positions; mutated only by the integrator
        velocity: (n, d) velocities; forces add to these
        fixation: (n, d) pinned positions, meaningful where ``fixed`` is set
        fixed: (n,) boolean mask of pinned nodes
    """

    position: np.ndarray
    velocity: np.ndarray
    fixation: np.ndarray
    fixed: np.ndarray

    @classmethod
    def zeros(cls, count: int, dimension: int) -> Kinetics:
        """Resting state at the origin for ``count`` nodes."""
        return cls(
            position=np.zeros((count, dimension), dtype=np.float64),
            velocity=np.zeros((count, dimension), dtype=np.float64),
            fixation=np.zeros((count, dimension), dtype=np.float64),
            fixed=np.zeros(count, dtype=bool),
        )

    @classmethod
    def from_states(cls, states: Sequence[KineticState], dimension: int) -> Kinetics:
        """Pack a sequence of KineticState snapshots into arrays."""
        kinetics = cls.zeros(len(states), dimension)
        for i, state in enumerate(states):
            kinetics.set_state(i, state)
        return kinetics

    @property
    def count(self) -> int:
        return self.position.shape[0]

    @property
    def dimension(self) -> int:
        return self.position.shape[1]

    def copy(self) -> Kinetics:
        return Kinetics(
            self.position.copy(), self.velocity.copy(), self.fixation.copy(), self.fixed.copy()
        )

    def state(self, index: int) -> KineticState:
        """Snapshot of node ``index``."""
        fixation = Vector.from_array(self.fixation[index]) if self.fixed[index] else None
        return KineticState(
            position=Vector.from_array(self.position[index]),
            velocity=Vector.from_array(self.velocity[index]),
            fixation=fixation,
        )

    def set_state(self, index: int, state: KineticState) -> None:
        """Overwrite node ``index`` with ``state``."""
        if state.dimension != self.dimension:
            raise InvalidDimensionError(
                f"Kinetic state is {state.dimension}-dimensional, "
                f"simulation is {self.dimension}-dimensional"
            )
        self.position[index] = state.position.to_array()
        self.velocity[index] = state.velocity.to_array()  # type: ignore[union-attr]
        if state.fixation is None:
            self.fixed[index] = False
            self.fixation[index] = 0.0
        else:
            self.fixed[index] = True
            self.fixation[index] = state.fixation.to_array()


@dataclass(frozen=True)
class ForceContext:
    """
    Everything a force needs to resolve its parameters.

    Attributes:
        node_ids: External node ids in dense index order
        links: Simulation links as (source_index, target_index) pairs
        dimension: Number of spatial axes
        rng: Random source used for jiggling
        index_of: Node id -> dense index lookup
    """

    node_ids: Sequence[Hashable]
    links: Sequence[tuple[int, int]] = ()
    dimension: int = 2
    rng: random.Random = field(default_factory=random.Random)
    index_of: Mapping[Hashable, int] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.index_of and self.node_ids:
            object.__setattr__(
                self, "index_of", {node_id: i for i, node_id in enumerate(self.node_ids)}
            )

    @property
    def node_count(self) -> int:
        return len(self.node_ids)

    def edges(self, links: Optional[Sequence[tuple[int, int]]] = None) -> list[Edge[Hashable]]:
        """Index links re-expressed with external node ids."""
        pairs = self.links if links is None else links
        return [Edge(self.node_ids[s], self.node_ids[t]) for s, t in pairs]

    def degrees(self, links: Optional[Sequence[tuple[int, int]]] = None) -> np.ndarray:
        """Number of link endpoints touching each node."""
        pairs = self.links if links is None else links
        counts = np.zeros(self.node_count, dtype=np.int64)
        for s, t in pairs:
            counts[s] += 1
            counts[t] += 1
        return counts


class Force(ABC):
    """
    Abstract base class for all forces.

    A force is attached once to a simulation, which resolves every per-node
    parameter into a cached array, and is then applied once per tick. Applying
    reads positions, never writes them, and only adds to velocities.

    Example:
        force = CenterForce(strength=1.0)
        force.attach(ForceContext(node_ids=["a", "b"]))
        force.apply(kinetics, alpha=0.5)
    """

    def __init__(self) -> None:
        self._context: Optional[ForceContext] = None

    @property
    def is_attached(self) -> bool:
        return self._context is not None

    @property
    def context(self) -> Optional[ForceContext]:
        return self._context

    def attach(self, context: ForceContext) -> None:
        """
        Bind to a simulation's nodes and resolve parameters.

        Varied parameters are evaluated exactly once here. The force is bound
        to ``context`` only if every parameter resolves.
        """
        self._resolve(context)
        self._context = context
        logger.debug("Attached %s to %d nodes", type(self).__name__, context.node_count)

    @abstractmethod
    def _resolve(self, context: ForceContext) -> None:
        """Resolve descriptors into arrays sized for ``context``."""
        pass

    @abstractmethod
    def apply(self, kinetics: Kinetics, alpha: float) -> None:
        """
        Add this force's velocity deltas for one tick.

        Args:
            kinetics: Node state; only ``velocity`` may be mutated
            alpha: Current cooling coefficient
        """
        pass

    def _require(self, kinetics: Kinetics) -> ForceContext:
        """Return the attached context, checking it matches ``kinetics``."""
        if self._context is None:
            raise ForceNotAttachedError(f"{type(self).__name__} applied before attach()")
        if kinetics.count != self._context.node_count:
            raise InvalidDimensionError(
                f"{type(self).__name__} attached to {self._context.node_count} nodes, "
                f"applied to {kinetics.count}"
            )
        return self._context

    def __repr__(self) -> str:
        return f"{type(self).__name__}(attached={self.is_attached})"


__all__ = ["Kinetics", "ForceContext", "Force"]
