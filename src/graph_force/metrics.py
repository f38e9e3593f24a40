"""
Layout diagnostics.

Provides quantitative measures of a simulation's state:
- Kinetic energy: How much the layout is still moving
- Edge lengths: Distribution of link lengths
- Edge length variance / uniformity: How evenly links are stretched
- Tree statistics: Shape of a Barnes-Hut tree

All functions work on plain position arrays and index links, so they apply
equally to ``Simulation.positions`` snapshots and to hand-built layouts.
"""

from __future__ import annotations

import math
from typing import Any, Sequence, Union

import numpy as np

from .forces.base import Kinetics
from .spatial import KDTree
from .validation import InvalidDimensionError


def kinetic_energy(kinetics: Union[Kinetics, np.ndarray]) -> float:
    """
    Total kinetic energy ``0.5 * sum(|v|^2)`` assuming unit masses.

    Args:
        kinetics: Kinetics instance or an (n, d) velocity array

    Returns:
        Kinetic energy (0.0 for an empty set)
    """
    velocity = kinetics.velocity if isinstance(kinetics, Kinetics) else np.asarray(kinetics)
    if velocity.size == 0:
        return 0.0
    return 0.5 * float(np.sum(velocity * velocity))


def edge_lengths(positions: np.ndarray, links: Sequence[tuple[int, int]]) -> np.ndarray:
    """
    Euclidean length of every link.

    Args:
        positions: (n, d) position array
        links: (source_index, target_index) pairs

    Returns:
        float64 array with one length per link

    Raises:
        InvalidDimensionError: If positions is not a 2-D array
    """
    positions = np.asarray(positions, dtype=np.float64)
    if positions.ndim != 2:
        raise InvalidDimensionError(f"Expected an (n, d) array, got shape {positions.shape}")
    if len(links) == 0:
        return np.zeros(0, dtype=np.float64)

    pairs = np.asarray(links, dtype=np.int64)
    delta = positions[pairs[:, 0]] - positions[pairs[:, 1]]
    return np.sqrt(np.sum(delta * delta, axis=1))


def edge_length_variance(positions: np.ndarray, links: Sequence[tuple[int, int]]) -> float:
    """
    Compute the variance of edge lengths.

    Lower variance indicates more uniform edge lengths.

    Returns:
        Variance of edge lengths (0.0 without links)
    """
    lengths = edge_lengths(positions, links)
    if lengths.size == 0:
        return 0.0
    return float(np.var(lengths))


def edge_length_uniformity(positions: np.ndarray, links: Sequence[tuple[int, int]]) -> float:
    """
    Compute edge length uniformity (0-1, higher is better).

    Returns:
        1 - (std_dev / mean), clamped to [0, 1]
    """
    lengths = edge_lengths(positions, links)
    if lengths.size == 0:
        return 1.0

    mean = float(np.mean(lengths))
    if mean == 0:
        return 0.0

    std_dev = math.sqrt(float(np.var(lengths)))
    return max(0.0, min(1.0, 1.0 - std_dev / mean))


def tree_statistics(tree: KDTree[Any]) -> dict[str, Any]:
    """
    Summarize the shape of a built KDTree.

    Returns:
        Dictionary with:
        - points: Number of inserted points
        - nodes: Number of arena nodes
        - depth: Levels below the root
        - leaves: Number of leaves (empty ones included)
        - filled_leaves: Leaves holding at least one point
        - max_colocated: Largest number of points chained in one leaf
    """
    leaves = list(tree.leaves())
    filled = [leaf for leaf in leaves if leaf.is_filled_leaf]
    return {
        "points": len(tree),
        "nodes": tree.node_count,
        "depth": tree.depth(),
        "leaves": len(leaves),
        "filled_leaves": len(filled),
        "max_colocated": max((len(leaf.indices) for leaf in filled), default=0),
    }


__all__ = [
    "kinetic_energy",
    "edge_lengths",
    "edge_length_variance",
    "edge_length_uniformity",
    "tree_statistics",
]
