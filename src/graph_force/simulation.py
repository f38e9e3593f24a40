"""
Force simulation and timestep integrator.

A Simulation owns the kinetic state of every node, an ordered list of forces
and the cooling schedule (alpha). Each tick:

1. alpha moves toward alpha_target by alpha_decay
2. every force adds to node velocities, in registration order
3. fixed nodes snap to their fixation; free nodes decay their velocity and
   move by it

Ticking is driven either manually (:meth:`Simulation.tick`,
:meth:`Simulation.run`) or by an injected scheduler (:meth:`Simulation.start`).
"""

from __future__ import annotations

import logging
import math
import random
import warnings
from typing import TYPE_CHECKING, Any, Callable, Hashable, Optional, Sequence

import numpy as np

if TYPE_CHECKING:
    from typing_extensions import Self

from .forces.base import Force, ForceContext, Kinetics
from .scheduler import Cancellable, Scheduler
from .types import Event, EventType, InitialStateFn, KineticState, LinkLike
from .validation import (
    InvalidParameterError,
    SchedulerError,
    resolve_links,
    validate_alpha,
    validate_dimension,
    validate_node_ids,
)

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL = 1 / 60

# Phyllotaxis parameters for the default initial arrangement
INITIAL_RADIUS = 10.0
INITIAL_ANGLE = math.pi * (3 - math.sqrt(5))
INITIAL_ANGLE_YAW = math.pi * 20 / (9 + math.sqrt(221))


def phyllotaxis(count: int, dimension: int) -> np.ndarray:
    """
    Deterministic, evenly spread starting positions.

    Points spiral outward at the golden angle (a sunflower pattern) in 2D,
    over a spherical spiral in 3D and at regular spacing on the line in 1D.
    Beyond 3D the 2D pattern is used on the first two axes.

    Args:
        count: Number of nodes
        dimension: Number of axes

    Returns:
        (count, dimension) float64 array
    """
    positions = np.zeros((count, dimension), dtype=np.float64)
    for i in range(count):
        if dimension == 1:
            positions[i, 0] = INITIAL_RADIUS * i
        elif dimension == 3:
            radius = INITIAL_RADIUS * (0.5 + i) ** (1 / 3)
            roll = i * INITIAL_ANGLE
            yaw = i * INITIAL_ANGLE_YAW
            positions[i, 0] = radius * math.sin(roll) * math.cos(yaw)
            positions[i, 1] = radius * math.cos(roll)
            positions[i, 2] = radius * math.sin(roll) * math.sin(yaw)
        else:
            radius = INITIAL_RADIUS * math.sqrt(0.5 + i)
            angle = i * INITIAL_ANGLE
            positions[i, 0] = radius * math.cos(angle)
            positions[i, 1] = radius * math.sin(angle)
    return positions


class Simulation:
    """
    N-dimensional force-directed simulation.

    Example:
        sim = Simulation(
            node_ids=["a", "b", "c"],
            links=[("a", "b"), ("b", "c")],
            forces=[ManyBodyForce(), LinkForce(), CenterForce()],
            random_seed=42,
        )
        sim.run()
        print(sim.get_kinetic_state("a").position)
    """

    def __init__(
        self,
        *,
        node_ids: Sequence[Hashable] = (),
        links: Optional[Sequence[LinkLike]] = None,
        forces: Optional[Sequence[Force]] = None,
        dimension: int = 2,
        alpha: float = 1.0,
        alpha_min: float = 0.001,
        alpha_decay: Optional[float] = None,
        alpha_target: float = 0.0,
        velocity_decay: float = 0.6,
        initial_state: Optional[InitialStateFn] = None,
        random_seed: Optional[int] = None,
        scheduler: Optional[Scheduler] = None,
        on_start: Optional[Callable[[Optional[Event]], None]] = None,
        on_tick: Optional[Callable[[Optional[Event]], None]] = None,
        on_end: Optional[Callable[[Optional[Event]], None]] = None,
    ) -> None:
        """
        Initialize simulation.

        Args:
            node_ids: Unique hashable node ids; their order defines the dense
                index used by :attr:`kinetics`
            links: Edges as (source_id, target_id) pairs, Edge objects or
                dicts with source/target
            forces: Forces applied every tick, in order
            dimension: Number of spatial axes (>= 1)
            alpha: Initial alpha, restored by :meth:`start` (0 to 1)
            alpha_min: Threshold below which the simulation stops
            alpha_decay: Cooling rate. Defaults to ``1 - alpha_min ** (1 / 300)``
                so that alpha reaches alpha_min in 300 ticks.
            alpha_target: Value alpha decays toward
            velocity_decay: Fraction of velocity kept each tick (0 to 1)
            initial_state: ``fn(node_id) -> KineticState`` for starting
                states. Defaults to a phyllotaxis arrangement at rest.
            random_seed: Seed for the jiggle random source
            scheduler: Timer used by :meth:`start`
            on_start: Callback for start event
            on_tick: Callback for tick event
            on_end: Callback for end event

        Raises:
            InvalidNodeError: Duplicate node ids
            InvalidLinkError: Links referencing unknown ids
            InvalidDimensionError: Bad dimension or initial state dimension
            InvalidParameterError: Alpha/decay parameters out of range
        """
        self._dimension = validate_dimension(dimension)
        self._initial_alpha = validate_alpha(alpha)
        self._alpha = self._initial_alpha
        self._alpha_min = validate_alpha(alpha_min, "alpha_min")
        if alpha_decay is None:
            alpha_decay = 1 - self._alpha_min ** (1 / 300)
        self._alpha_decay = validate_alpha(alpha_decay, "alpha_decay")
        self._alpha_target = validate_alpha(alpha_target, "alpha_target")
        self._velocity_decay = validate_alpha(velocity_decay, "velocity_decay")

        self._random_seed = random_seed
        self._rng = random.Random(random_seed)
        self._initial_state = initial_state
        self._scheduler = scheduler
        self._handle: Optional[Cancellable] = None
        self._events: dict[EventType, Callable[[Optional[Event]], None]] = {}

        self._node_ids: list[Hashable] = list(node_ids)
        self._lookup = validate_node_ids(self._node_ids)
        self._links = resolve_links(list(links or ()), self._lookup)
        self._kinetics = self._initial_kinetics(self._node_ids, initial_state)
        self._forces: list[Force] = []
        self._context = self._make_context()

        for force in forces or ():
            self.add_force(force)

        if on_start:
            self._events[EventType.start] = on_start
        if on_tick:
            self._events[EventType.tick] = on_tick
        if on_end:
            self._events[EventType.end] = on_end

    # -------------------------------------------------------------------------
    # Properties
    # -------------------------------------------------------------------------

    @property
    def dimension(self) -> int:
        return self._dimension

    @property
    def alpha(self) -> float:
        """Get current alpha (cooling coefficient)."""
        return self._alpha

    @alpha.setter
    def alpha(self, value: float) -> None:
        self._alpha = validate_alpha(value)

    @property
    def initial_alpha(self) -> float:
        """Alpha restored by :meth:`start` when none is given."""
        return self._initial_alpha

    @property
    def alpha_min(self) -> float:
        return self._alpha_min

    @alpha_min.setter
    def alpha_min(self, value: float) -> None:
        self._alpha_min = validate_alpha(value, "alpha_min")

    @property
    def alpha_decay(self) -> float:
        return self._alpha_decay

    @alpha_decay.setter
    def alpha_decay(self, value: float) -> None:
        self._alpha_decay = validate_alpha(value, "alpha_decay")

    @property
    def alpha_target(self) -> float:
        return self._alpha_target

    @alpha_target.setter
    def alpha_target(self, value: float) -> None:
        self._alpha_target = validate_alpha(value, "alpha_target")

    @property
    def velocity_decay(self) -> float:
        return self._velocity_decay

    @velocity_decay.setter
    def velocity_decay(self, value: float) -> None:
        self._velocity_decay = validate_alpha(value, "velocity_decay")

    @property
    def random_seed(self) -> Optional[int]:
        return self._random_seed

    @property
    def node_ids(self) -> list[Hashable]:
        """Node ids in dense index order (copy)."""
        return list(self._node_ids)

    @property
    def links(self) -> list[tuple[int, int]]:
        """Links as (source_index, target_index) pairs (copy)."""
        return list(self._links)

    @property
    def forces(self) -> tuple[Force, ...]:
        return tuple(self._forces)

    @property
    def kinetics(self) -> Kinetics:
        """Live kinetic state arrays. Mutate between ticks only."""
        return self._kinetics

    @property
    def positions(self) -> np.ndarray:
        """Copy of the (n, dimension) position array."""
        return self._kinetics.position.copy()

    @property
    def is_running(self) -> bool:
        """True while a scheduler is driving the simulation."""
        return self._handle is not None

    # -------------------------------------------------------------------------
    # Event System
    # -------------------------------------------------------------------------

    def on(self, event: EventType | str, callback: Callable[[Optional[Event]], None]) -> Self:
        """
        Subscribe to a simulation event.

        Args:
            event: Event type (EventType enum or string name)
            callback: Function to call when event fires

        Returns:
            self (for chaining)
        """
        if isinstance(event, str):
            event = EventType[event]
        self._events[event] = callback
        return self

    def trigger(self, event: Event) -> None:
        """Call the callback registered for ``event['type']``, if any."""
        event_type = event.get("type")
        if event_type is not None and event_type in self._events:
            self._events[event_type](event)

    # -------------------------------------------------------------------------
    # Forces
    # -------------------------------------------------------------------------

    def add_force(self, force: Force) -> Self:
        """
        Attach ``force`` to this simulation and append it to the tick order.

        Returns:
            self (for chaining)
        """
        force.attach(self._context)
        self._forces.append(force)
        return self

    # -------------------------------------------------------------------------
    # Stepping
    # -------------------------------------------------------------------------

    def tick(self, count: int = 1) -> Self:
        """
        Advance the simulation ``count`` steps, ignoring alpha_min.

        Returns:
            self (for chaining)
        """
        if count < 0:
            raise InvalidParameterError(f"count must be >= 0, got {count}")

        kinetics = self._kinetics
        fixed = kinetics.fixed
        free = ~fixed
        for _ in range(count):
            self._alpha += (self._alpha_target - self._alpha) * self._alpha_decay

            for force in self._forces:
                force.apply(kinetics, self._alpha)

            # Pinned nodes keep whatever velocity the forces gave them.
            kinetics.velocity[free] *= self._velocity_decay
            kinetics.position[free] += kinetics.velocity[free]
            kinetics.position[fixed] = kinetics.fixation[fixed]
        return self

    def run(self, max_ticks: Optional[int] = None) -> Self:
        """
        Tick synchronously until alpha drops below alpha_min.

        Fires a start event, one tick event per step and an end event.

        Args:
            max_ticks: Upper bound on the number of ticks. A warning is
                emitted if it is reached before convergence.

        Returns:
            self (for chaining)

        Raises:
            InvalidParameterError: If alpha can never reach alpha_min and no
                max_ticks is given.
        """
        if max_ticks is None and self._alpha >= self._alpha_min:
            if self._alpha_target >= self._alpha_min or self._alpha_decay == 0:
                raise InvalidParameterError(
                    f"alpha never drops below alpha_min={self._alpha_min} "
                    f"(alpha_target={self._alpha_target}, alpha_decay={self._alpha_decay}); "
                    "pass max_ticks"
                )

        self.trigger({"type": EventType.start, "alpha": self._alpha})
        ticks = 0
        while self._alpha >= self._alpha_min:
            if max_ticks is not None and ticks >= max_ticks:
                warnings.warn(
                    f"Simulation stopped after max_ticks={max_ticks} with alpha={self._alpha:.4g}"
                )
                break
            self.tick()
            ticks += 1
            self.trigger({"type": EventType.tick, "alpha": self._alpha})
        self.trigger({"type": EventType.end, "alpha": self._alpha})
        return self

    def start(self, interval: Optional[float] = None, alpha: Optional[float] = None) -> Self:
        """
        Tick on the injected scheduler until alpha drops below alpha_min.

        Restarting a running simulation replaces its schedule.

        Args:
            interval: Seconds between ticks. Default 1/60.
            alpha: Alpha to restart from. Defaults to the initial alpha.

        Returns:
            self (for chaining)

        Raises:
            SchedulerError: If no scheduler was injected.
        """
        if self._scheduler is None:
            raise SchedulerError("start() requires a scheduler; use tick() or run() instead")

        self._cancel()
        self._alpha = validate_alpha(alpha) if alpha is not None else self._initial_alpha
        self.trigger({"type": EventType.start, "alpha": self._alpha})
        self._handle = self._scheduler.schedule(
            interval if interval is not None else DEFAULT_INTERVAL, self._step
        )
        logger.debug("Simulation started at alpha=%.4g", self._alpha)
        return self

    def stop(self) -> Self:
        """
        Cancel scheduled ticking immediately.

        Fires an end event if the simulation was running.

        Returns:
            self (for chaining)
        """
        if self._cancel():
            logger.debug("Simulation stopped at alpha=%.4g", self._alpha)
            self.trigger({"type": EventType.end, "alpha": self._alpha})
        return self

    def _step(self) -> None:
        """Scheduler callback."""
        if self._alpha < self._alpha_min:
            self._cancel()
            logger.debug("Simulation converged at alpha=%.4g", self._alpha)
            self.trigger({"type": EventType.end, "alpha": self._alpha})
            return
        try:
            self.tick()
            self.trigger({"type": EventType.tick, "alpha": self._alpha})
        except Exception:
            self._cancel()
            logger.debug("Simulation stopped by a failing tick at alpha=%.4g", self._alpha)
            raise

    def _cancel(self) -> bool:
        if self._handle is None:
            return False
        self._handle.cancel()
        self._handle = None
        return True

    # -------------------------------------------------------------------------
    # Node State Access
    # -------------------------------------------------------------------------

    def index_of(self, node_id: Hashable) -> Optional[int]:
        """Dense index of ``node_id``, or None if unknown."""
        return self._lookup.get(node_id)

    def get_kinetic_state(self, node_id: Hashable) -> Optional[KineticState]:
        """Snapshot of ``node_id``, or None if unknown."""
        index = self._lookup.get(node_id)
        if index is None:
            return None
        return self._kinetics.state(index)

    def update_kinetic_state(self, node_id: Hashable, state: KineticState) -> bool:
        """
        Overwrite the state of ``node_id`` (e.g. to pin a dragged node).

        Returns:
            False if ``node_id`` is unknown, True otherwise.

        Raises:
            InvalidDimensionError: If ``state`` has the wrong dimension.
        """
        index = self._lookup.get(node_id)
        if index is None:
            return False
        self._kinetics.set_state(index, state)
        return True

    def update_all_kinetic_states(self, fn: Callable[[Any], KineticState]) -> Self:
        """
        Replace every node's state with ``fn(node_id)``.

        Returns:
            self (for chaining)
        """
        for i, node_id in enumerate(self._node_ids):
            self._kinetics.set_state(i, fn(node_id))
        return self

    # -------------------------------------------------------------------------
    # Revive
    # -------------------------------------------------------------------------

    def revive(
        self,
        node_ids: Sequence[Hashable],
        links: Optional[Sequence[LinkLike]] = None,
        forces: Optional[Sequence[Force]] = None,
        initial_state: Optional[InitialStateFn] = None,
        alpha: Optional[float] = None,
    ) -> Self:
        """
        Replace the node set while keeping the state of surviving nodes.

        Ids present before and after keep their position, velocity and
        fixation. New ids start from ``initial_state(id)`` (falling back to
        the constructor's initializer, then to a zero state). Removed ids are
        dropped. Every force is re-attached, re-evaluating its descriptors.

        Args:
            node_ids: New node ids
            links: New links. If None, current links whose endpoints both
                survive are kept.
            forces: New forces. If None, current forces are re-attached.
            initial_state: Initializer for new ids
            alpha: New alpha. If None, alpha is unchanged.

        Returns:
            self (for chaining)

        Raises:
            ValidationError: If the new ids, links or a force reject the new
                node set. The simulation is left exactly as it was.
        """
        new_ids = list(node_ids)
        new_lookup = validate_node_ids(new_ids)

        if links is None:
            old_ids = self._node_ids
            links = [
                (old_ids[s], old_ids[t])
                for s, t in self._links
                if old_ids[s] in new_lookup and old_ids[t] in new_lookup
            ]
        new_links = resolve_links(list(links), new_lookup)

        init = initial_state if initial_state is not None else self._initial_state
        kinetics = Kinetics.zeros(len(new_ids), self._dimension)
        kept = 0
        for i, node_id in enumerate(new_ids):
            old = self._lookup.get(node_id)
            if old is not None:
                kinetics.position[i] = self._kinetics.position[old]
                kinetics.velocity[i] = self._kinetics.velocity[old]
                kinetics.fixation[i] = self._kinetics.fixation[old]
                kinetics.fixed[i] = self._kinetics.fixed[old]
                kept += 1
            elif init is not None:
                kinetics.set_state(i, init(node_id))

        new_alpha = validate_alpha(alpha) if alpha is not None else self._alpha
        context = self._make_context(new_ids, new_links, new_lookup)
        new_forces = self._forces if forces is None else list(forces)

        # Nothing is committed until every force accepts the new node set.
        try:
            for force in new_forces:
                force.attach(context)
        except Exception:
            for force in self._forces:
                if force.context is not self._context:
                    force.attach(self._context)
            raise

        logger.debug(
            "Revived simulation: %d kept, %d added, %d dropped",
            kept,
            len(new_ids) - kept,
            len(self._node_ids) - kept,
        )

        self._node_ids = new_ids
        self._lookup = new_lookup
        self._links = new_links
        self._kinetics = kinetics
        self._context = context
        self._forces = list(new_forces)
        self._alpha = new_alpha
        return self

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _make_context(
        self,
        node_ids: Optional[Sequence[Hashable]] = None,
        links: Optional[Sequence[tuple[int, int]]] = None,
        lookup: Optional[dict[Hashable, int]] = None,
    ) -> ForceContext:
        return ForceContext(
            node_ids=tuple(self._node_ids if node_ids is None else node_ids),
            links=tuple(self._links if links is None else links),
            dimension=self._dimension,
            rng=self._rng,
            index_of=self._lookup if lookup is None else lookup,
        )

    def _initial_kinetics(
        self, node_ids: Sequence[Hashable], initial_state: Optional[InitialStateFn]
    ) -> Kinetics:
        if initial_state is None:
            kinetics = Kinetics.zeros(len(node_ids), self._dimension)
            kinetics.position[:] = phyllotaxis(len(node_ids), self._dimension)
            return kinetics
        states = [initial_state(node_id) for node_id in node_ids]
        return Kinetics.from_states(states, self._dimension)

    def __repr__(self) -> str:
        return (
            f"Simulation(nodes={len(self._node_ids)}, links={len(self._links)}, "
            f"forces={len(self._forces)}, alpha={self._alpha:.4g})"
        )


__all__ = ["Simulation", "phyllotaxis", "DEFAULT_INTERVAL"]
