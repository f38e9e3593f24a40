"""
Force parameter descriptors.

Every tunable force parameter (strength, radius, rest length, stiffness,
target) is described either by a single constant or by a function that is
evaluated exactly once per node (or per edge) when the force attaches to a
simulation. The resolved values are cached as numpy arrays; the function is
never called again unless the force is re-attached.

Example:
    ManyBodyForce(strength=-30)                          # constant
    ManyBodyForce(strength=Varied(lambda node_id: ...))  # per node
    LinkForce(stiffness=WeightedByDegree(1.0))           # per edge
"""

from __future__ import annotations

import numbers
from dataclasses import dataclass
from typing import Any, Callable, Generic, Hashable, Sequence, TypeVar, Union

import numpy as np

from .types import Edge, LinkLookup

T = TypeVar("T")


@dataclass(frozen=True)
class Constant(Generic[T]):
    """The same value for every node or edge."""

    value: T


@dataclass(frozen=True)
class Varied(Generic[T]):
    """
    A per-node (or per-edge) function.

    Node parameters call ``fn(node_id)``; edge parameters call
    ``fn(edge, lookup)`` where ``lookup`` maps node ids to their degree.
    """

    fn: Callable[..., T]


@dataclass(frozen=True)
class WeightedByDegree:
    """
    Edge stiffness divided by the smaller endpoint degree.

    ``k`` is either a constant or ``k(edge, lookup)``; the resolved value is
    ``k / min(degree(source), degree(target))``.
    """

    k: Union[float, Callable[[Edge[Any], LinkLookup], float]] = 1.0


NodeDescriptor = Union[Constant[float], Varied[float], float, Callable[[Any], float]]
EdgeDescriptor = Union[
    Constant[float],
    Varied[float],
    WeightedByDegree,
    float,
    Callable[[Edge[Any], LinkLookup], float],
]


def as_descriptor(value: Any) -> Union[Constant[Any], Varied[Any], WeightedByDegree]:
    """Normalize a bare number or callable into a descriptor."""
    if isinstance(value, (Constant, Varied, WeightedByDegree)):
        return value
    if isinstance(value, numbers.Real):
        return Constant(float(value))
    if callable(value):
        return Varied(value)
    raise TypeError(f"Cannot use {value!r} as a force parameter")


def resolve_node_values(descriptor: NodeDescriptor, node_ids: Sequence[Hashable]) -> np.ndarray:
    """
    Evaluate a node descriptor for every node id.

    Args:
        descriptor: Constant, Varied, number or callable
        node_ids: External node ids in dense index order

    Returns:
        float64 array of length ``len(node_ids)``
    """
    desc = as_descriptor(descriptor)
    if isinstance(desc, Constant):
        return np.full(len(node_ids), float(desc.value), dtype=np.float64)
    if isinstance(desc, Varied):
        return np.array([float(desc.fn(node_id)) for node_id in node_ids], dtype=np.float64)
    raise TypeError("WeightedByDegree only applies to link parameters")


def resolve_edge_values(
    descriptor: EdgeDescriptor,
    edges: Sequence[Edge[Any]],
    lookup: LinkLookup,
) -> np.ndarray:
    """
    Evaluate an edge descriptor for every edge.

    Args:
        descriptor: Constant, Varied, WeightedByDegree, number or callable
        edges: Edges expressed with external node ids
        lookup: Node id -> degree mapping

    Returns:
        float64 array of length ``len(edges)``
    """
    desc = as_descriptor(descriptor)
    if isinstance(desc, Constant):
        return np.full(len(edges), float(desc.value), dtype=np.float64)
    if isinstance(desc, Varied):
        return np.array([float(desc.fn(edge, lookup)) for edge in edges], dtype=np.float64)

    values = np.empty(len(edges), dtype=np.float64)
    for i, edge in enumerate(edges):
        k = desc.k(edge, lookup) if callable(desc.k) else desc.k
        degree = min(lookup[edge.source], lookup[edge.target])
        values[i] = float(k) / max(degree, 1)
    return values


__all__ = [
    "Constant",
    "Varied",
    "WeightedByDegree",
    "NodeDescriptor",
    "EdgeDescriptor",
    "as_descriptor",
    "resolve_node_values",
    "resolve_edge_values",
]
