"""
graph-force: N-dimensional force-directed graph simulation in Python.

This package positions the nodes of a graph by simulating physical forces
until the layout settles, in the style of d3-force:

- spatial: KDTree (quadtree/octree) for Barnes-Hut approximation
- forces: Many-body, center, link, radial, position and collide forces
- simulation: Cooling schedule, integrator and node state access
- scheduler: Manual and asyncio timers driving a running simulation
"""

__version__ = "0.1.0"

# Parameter descriptors
from .descriptors import Constant, Varied, WeightedByDegree

# Forces
from .forces import (
    CenterForce,
    CollideForce,
    Force,
    ForceContext,
    Kinetics,
    LinkForce,
    ManyBodyForce,
    PositionForce,
    RadialForce,
)

# Diagnostics
from .metrics import (
    edge_length_uniformity,
    edge_length_variance,
    edge_lengths,
    kinetic_energy,
    tree_statistics,
)

# Schedulers
from .scheduler import AsyncioScheduler, Cancellable, ManualScheduler, Scheduler

# Simulation
from .simulation import Simulation, phyllotaxis

# Spatial data structures
from .spatial import (
    Aggregator,
    KDBox,
    KDTree,
    KDTreeNode,
    MassAggregate,
    MassAggregator,
    MaxRadiusAggregator,
)

# Shared types
from .types import Edge, Event, EventType, KineticState

# Validation
from .validation import (
    ForceNotAttachedError,
    InvalidDimensionError,
    InvalidLinkError,
    InvalidNodeError,
    InvalidParameterError,
    SchedulerError,
    SimulationError,
    ValidationError,
)
from .vector import Vector, jiggle

__all__ = [
    # Version
    "__version__",
    # Shared types
    "Vector",
    "jiggle",
    "Edge",
    "KineticState",
    "EventType",
    "Event",
    # Descriptors
    "Constant",
    "Varied",
    "WeightedByDegree",
    # Spatial data structures
    "Aggregator",
    "KDBox",
    "KDTree",
    "KDTreeNode",
    "MassAggregate",
    "MassAggregator",
    "MaxRadiusAggregator",
    # Forces
    "Force",
    "ForceContext",
    "Kinetics",
    "ManyBodyForce",
    "CenterForce",
    "LinkForce",
    "RadialForce",
    "PositionForce",
    "CollideForce",
    # Simulation
    "Simulation",
    "phyllotaxis",
    # Schedulers
    "Scheduler",
    "Cancellable",
    "ManualScheduler",
    "AsyncioScheduler",
    # Metrics
    "kinetic_energy",
    "edge_lengths",
    "edge_length_variance",
    "edge_length_uniformity",
    "tree_statistics",
    # Validation
    "ValidationError",
    "InvalidNodeError",
    "InvalidLinkError",
    "InvalidDimensionError",
    "InvalidParameterError",
    "SimulationError",
    "SchedulerError",
    "ForceNotAttachedError",
]
