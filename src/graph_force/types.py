"""
Common types for the force simulation.

This module provides the value types exchanged with callers:
- EventType: Simulation lifecycle events
- Event: Event payload for callbacks
- Edge: Link between two external node ids
- KineticState: Position/velocity/fixation snapshot of one node
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum
from typing import (
    Any,
    Callable,
    Generic,
    Hashable,
    Mapping,
    Optional,
    Sequence,
    Tuple,
    TypedDict,
    TypeVar,
    Union,
)

import numpy as np

from .vector import Vector, optional_vector


class EventType(IntEnum):
    """
    Simulation lifecycle events.

    - start: Scheduled ticking has begun
    - tick: Fired once per scheduled tick
    - end: Alpha dropped below alpha_min or stop() was called
    """

    start = 0
    tick = 1
    end = 2


class Event(TypedDict, total=False):
    """Event payload passed to event listeners."""

    type: EventType
    alpha: float


NodeID = TypeVar("NodeID", bound=Hashable)


@dataclass(frozen=True)
class Edge(Generic[NodeID]):
    """
    Undirected link between two external node ids.

    Attributes:
        source: Source node id
        target: Target node id
    """

    source: NodeID
    target: NodeID

    def __iter__(self):  # type: ignore[no-untyped-def]
        yield self.source
        yield self.target


VectorLike = Union[Vector, Sequence[float], np.ndarray]
"""Anything convertible to a Vector: Vector, tuple/list of floats, 1-D array."""


@dataclass(frozen=True)
class KineticState:
    """
    Kinetic state of one node.

    Attributes:
        position: Current position
        velocity: Current velocity (zero vector if omitted)
        fixation: Pinned position, or None when the node moves freely
    """

    position: Vector
    velocity: Optional[Vector] = field(default=None)
    fixation: Optional[Vector] = None

    def __post_init__(self) -> None:
        dimension = len(self.position)
        object.__setattr__(self, "position", optional_vector(self.position, dimension))
        if self.velocity is None:
            object.__setattr__(self, "velocity", Vector.zero(dimension))
        else:
            object.__setattr__(self, "velocity", optional_vector(self.velocity, dimension))
        object.__setattr__(self, "fixation", optional_vector(self.fixation, dimension))

    @property
    def dimension(self) -> int:
        return len(self.position)

    @property
    def is_fixed(self) -> bool:
        return self.fixation is not None

    @classmethod
    def zero(cls, dimension: int) -> KineticState:
        """Resting state at the origin."""
        return cls(position=Vector.zero(dimension))

    def pinned(self, at: Optional[VectorLike] = None) -> KineticState:
        """Return a copy fixed at ``at`` (current position if None)."""
        fixation = self.position if at is None else at
        return KineticState(self.position, self.velocity, optional_vector(fixation, self.dimension))

    def released(self) -> KineticState:
        """Return a copy with the fixation cleared."""
        return KineticState(self.position, self.velocity, None)


# Link lookup passed to per-edge descriptor functions: node id -> degree
LinkLookup = Mapping[Any, int]

InitialStateFn = Callable[[Any], KineticState]
"""Callback producing the starting state of a newly introduced node id."""

LinkLike = Union[Edge[Any], Tuple[Any, Any], dict[str, Any], Any]
"""Input type for links: Edge objects, (source, target) pairs, dicts or objects."""


__all__ = [
    "EventType",
    "Event",
    "Edge",
    "KineticState",
    "NodeID",
    "VectorLike",
    "LinkLookup",
    "LinkLike",
    "InitialStateFn",
]
