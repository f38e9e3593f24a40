"""
Forces applied by the simulation.

Each force is attached once to a simulation's node set and then applied on
every tick, adding to node velocities:
- ManyBodyForce: Charge repulsion/attraction with Barnes-Hut approximation
- CenterForce: Translates the centroid toward a point
- LinkForce: Springs along edges
- RadialForce: Pulls nodes toward a circle (sphere) around a point
- PositionForce: Pulls one coordinate toward a target
- CollideForce: Pushes overlapping spheres apart
"""

from .base import Force, ForceContext, Kinetics
from .center import CenterForce
from .collide import CollideForce
from .link import LinkForce
from .many_body import ManyBodyForce
from .position import PositionForce
from .radial import RadialForce

__all__ = [
    "Force",
    "ForceContext",
    "Kinetics",
    "ManyBodyForce",
    "CenterForce",
    "LinkForce",
    "RadialForce",
    "PositionForce",
    "CollideForce",
]
