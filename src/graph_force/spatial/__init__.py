"""
Spatial data structures for efficient force calculations.

Provides an N-dimensional KD tree (quadtree in 2D, octree in 3D) for
Barnes-Hut O(n log n) force approximation.
"""

from .aggregates import EMPTY_MASS, MassAggregate, MassAggregator, MaxRadiusAggregator
from .kdtree import Aggregator, KDBox, KDTree, KDTreeNode

__all__ = [
    "Aggregator",
    "KDBox",
    "KDTree",
    "KDTreeNode",
    "MassAggregate",
    "MassAggregator",
    "MaxRadiusAggregator",
    "EMPTY_MASS",
]
