"""Tests for the Simulation integrator, lifecycle and node state access."""

import math

import numpy as np
import pytest

from graph_force import (
    CenterForce,
    KineticState,
    LinkForce,
    ManualScheduler,
    ManyBodyForce,
    PositionForce,
    Simulation,
    Vector,
    phyllotaxis,
)
from graph_force.types import EventType
from graph_force.validation import (
    InvalidDimensionError,
    InvalidLinkError,
    InvalidNodeError,
    InvalidParameterError,
    SchedulerError,
)


def at(*positions):
    """Initial state function placing node i at positions[i]."""
    return lambda node_id: KineticState(position=positions[node_id])


def colocated_simulation(seed):
    return Simulation(
        node_ids=list(range(6)),
        links=[(0, 1), (1, 2), (2, 3), (3, 4), (4, 5)],
        forces=[ManyBodyForce(), LinkForce(), CenterForce()],
        initial_state=lambda node_id: KineticState(position=(0.0, 0.0)),
        random_seed=seed,
    )


class TestSimulationCreation:
    """Tests for simulation construction."""

    def test_defaults(self):
        """Default cooling parameters."""
        sim = Simulation(node_ids=["a", "b"])
        assert sim.alpha == 1.0
        assert sim.alpha_min == 0.001
        assert sim.alpha_decay == pytest.approx(1 - 0.001 ** (1 / 300))
        assert sim.alpha_target == 0.0
        assert sim.velocity_decay == 0.6
        assert sim.dimension == 2
        assert not sim.is_running

    def test_node_lookup(self):
        """Node ids map to dense indices."""
        sim = Simulation(node_ids=["a", "b", "c"])
        assert sim.node_ids == ["a", "b", "c"]
        assert sim.index_of("c") == 2
        assert sim.index_of("zzz") is None

    def test_links_resolved(self):
        """Links are stored as index pairs."""
        links = [("a", "c"), {"source": "b", "target": "a"}]
        sim = Simulation(node_ids=["a", "b", "c"], links=links)
        assert sim.links == [(0, 2), (1, 0)]

    def test_duplicate_ids(self):
        """Duplicate node ids raise InvalidNodeError."""
        with pytest.raises(InvalidNodeError):
            Simulation(node_ids=["a", "a"])

    def test_unknown_link(self):
        """Links to unknown ids raise InvalidLinkError."""
        with pytest.raises(InvalidLinkError):
            Simulation(node_ids=["a"], links=[("a", "b")])

    def test_invalid_parameters(self):
        """Out-of-range parameters raise."""
        with pytest.raises(InvalidDimensionError):
            Simulation(node_ids=[0], dimension=0)
        with pytest.raises(InvalidParameterError):
            Simulation(node_ids=[0], alpha=1.5)
        with pytest.raises(InvalidParameterError):
            Simulation(node_ids=[0], velocity_decay=-0.1)
        with pytest.raises(InvalidParameterError):
            Simulation(node_ids=[0], alpha_decay=2.0)

    def test_initial_state_dimension(self):
        """Initial states must match the simulation dimension."""
        with pytest.raises(InvalidDimensionError):
            Simulation(
                node_ids=[0],
                dimension=3,
                initial_state=lambda node_id: KineticState(position=(0.0, 0.0)),
            )

    def test_empty_simulation(self):
        """A simulation without nodes ticks without error."""
        sim = Simulation(forces=[ManyBodyForce(), CenterForce()])
        sim.tick(3)
        assert sim.positions.shape == (0, 2)


class TestPhyllotaxis:
    """Tests for the default initial arrangement."""

    def test_2d(self):
        """Nodes spiral out at the golden angle."""
        positions = phyllotaxis(5, 2)
        assert positions[0].tolist() == pytest.approx([10 * math.sqrt(0.5), 0.0])
        radius = np.linalg.norm(positions, axis=1)
        assert radius.tolist() == pytest.approx([10 * math.sqrt(0.5 + i) for i in range(5)])

    def test_distinct(self):
        """No two starting positions coincide."""
        for dimension in (1, 2, 3, 4):
            positions = phyllotaxis(50, dimension)
            assert len({tuple(p) for p in positions}) == 50

    def test_1d(self):
        """The line is evenly spaced."""
        assert phyllotaxis(3, 1)[:, 0].tolist() == [0.0, 10.0, 20.0]

    def test_3d_radius(self):
        """3D points lie on a growing spiral."""
        positions = phyllotaxis(4, 3)
        radius = np.linalg.norm(positions, axis=1)
        assert radius.tolist() == pytest.approx([10 * (0.5 + i) ** (1 / 3) for i in range(4)])

    def test_used_by_default(self):
        """Simulations without an initializer start from the phyllotaxis layout."""
        sim = Simulation(node_ids=list(range(4)))
        assert np.array_equal(sim.positions, phyllotaxis(4, 2))
        assert np.all(sim.kinetics.velocity == 0.0)


class TestTick:
    """Tests for manual stepping and integration."""

    def test_alpha_decays(self):
        """Each tick moves alpha toward alpha_target."""
        sim = Simulation(node_ids=[0], alpha_decay=0.5)
        sim.tick()
        assert sim.alpha == 0.5
        sim.tick(2)
        assert sim.alpha == 0.125

    def test_alpha_target(self):
        """Alpha converges to a non-zero target."""
        sim = Simulation(node_ids=[0], alpha=0.0, alpha_target=0.5, alpha_decay=0.5)
        sim.tick()
        assert sim.alpha == 0.25

    def test_velocity_integration(self):
        """Free nodes decay their velocity and then move by it."""
        sim = Simulation(
            node_ids=[0],
            initial_state=lambda node_id: KineticState(position=(1.0, 1.0), velocity=(10.0, 0.0)),
        )
        sim.tick()
        state = sim.get_kinetic_state(0)
        assert list(state.velocity) == pytest.approx([6.0, 0.0])
        assert list(state.position) == pytest.approx([7.0, 1.0])

    def test_two_node_link(self):
        """A compressed link moves both nodes apart by 0.3 * alpha."""
        sim = Simulation(
            node_ids=[0, 1],
            links=[(0, 1)],
            forces=[LinkForce(length=2.0, stiffness=1.0)],
            initial_state=at((0.0, 0.0), (1.0, 0.0)),
            random_seed=1,
        )
        sim.tick()
        alpha = 1 - sim.alpha_decay
        assert sim.alpha == pytest.approx(alpha)
        positions = sim.positions
        assert positions[0, 0] == pytest.approx(-0.3 * alpha, abs=1e-6)
        assert positions[1, 0] == pytest.approx(1 + 0.3 * alpha, abs=1e-6)
        assert abs(positions[0, 1]) < 1e-6
        assert abs(positions[1, 1]) < 1e-6

    def test_determinism(self):
        """Equal seeds give identical trajectories."""
        a = colocated_simulation(seed=7).tick(20)
        b = colocated_simulation(seed=7).tick(20)
        assert np.array_equal(a.positions, b.positions)

    def test_seed_changes_jiggle(self):
        """Different seeds separate colocated nodes differently."""
        a = colocated_simulation(seed=1).tick(5)
        b = colocated_simulation(seed=2).tick(5)
        assert not np.array_equal(a.positions, b.positions)

    def test_colocated_nodes_separate(self):
        """Nodes starting on the same point spread out."""
        sim = colocated_simulation(seed=3).tick(50)
        positions = sim.positions
        assert np.all(np.isfinite(positions))
        assert len({tuple(p) for p in positions}) == 6

    def test_negative_count(self):
        """A negative tick count is rejected."""
        with pytest.raises(InvalidParameterError):
            Simulation(node_ids=[0]).tick(-1)


class TestFixation:
    """Tests for pinned nodes."""

    def test_fixed_node_stays_at_fixation(self):
        """After every tick a pinned node sits exactly at its fixation."""
        sim = Simulation(
            node_ids=list(range(5)),
            forces=[ManyBodyForce(), CenterForce(center=(100.0, 100.0))],
            random_seed=0,
        )
        sim.update_kinetic_state(0, KineticState(position=(0.0, 0.0), fixation=(5.0, 5.0)))
        before = sim.positions[1:]
        for _ in range(10):
            sim.tick()
            assert sim.get_kinetic_state(0).position == Vector(5.0, 5.0)
        assert not np.array_equal(sim.positions[1:], before)

    def test_fixed_velocity_untouched(self):
        """The integrator neither decays nor applies a pinned node's velocity."""
        sim = Simulation(
            node_ids=[0],
            initial_state=lambda node_id: KineticState(
                position=(0.0, 0.0), velocity=(1.0, 0.0), fixation=(2.0, 2.0)
            ),
        )
        sim.tick(3)
        state = sim.get_kinetic_state(0)
        assert state.velocity == Vector(1.0, 0.0)
        assert state.position == Vector(2.0, 2.0)

    def test_release(self):
        """Clearing the fixation lets the node move again."""
        sim = Simulation(
            node_ids=[0],
            initial_state=lambda node_id: KineticState(
                position=(0.0, 0.0), velocity=(1.0, 0.0), fixation=(2.0, 2.0)
            ),
        )
        sim.tick()
        sim.update_kinetic_state(0, sim.get_kinetic_state(0).released())
        sim.tick()
        assert list(sim.get_kinetic_state(0).position) == pytest.approx([2.6, 2.0])


class TestRun:
    """Tests for synchronous runs."""

    def test_converges_in_about_300_ticks(self):
        """With default decay alpha crosses alpha_min after 300 +/- 1 ticks."""
        ticks = []
        sim = Simulation(node_ids=[0, 1], on_tick=lambda event: ticks.append(event["alpha"]))
        sim.run()
        assert 299 <= len(ticks) <= 301
        assert sim.alpha < sim.alpha_min

    def test_events(self):
        """run() fires start, tick and end events."""
        events = []
        sim = Simulation(node_ids=[0], alpha_decay=0.5, alpha_min=0.2)
        sim.on("start", lambda e: events.append(e["type"]))
        sim.on(EventType.tick, lambda e: events.append(e["type"]))
        sim.on("end", lambda e: events.append(e["type"]))
        sim.run()
        assert events == [EventType.start] + [EventType.tick] * 3 + [EventType.end]

    def test_on_returns_self(self):
        """on() supports chaining."""
        sim = Simulation(node_ids=[0])
        assert sim.on("tick", lambda e: None) is sim

    def test_non_convergent_run_rejected(self):
        """A target above alpha_min would never stop."""
        sim = Simulation(node_ids=[0], alpha_target=0.1)
        with pytest.raises(InvalidParameterError):
            sim.run()

    def test_max_ticks_warns(self):
        """Hitting max_ticks warns and stops."""
        ticks = []
        sim = Simulation(node_ids=[0], alpha_target=0.1, on_tick=lambda e: ticks.append(e))
        with pytest.warns(UserWarning, match="max_ticks"):
            sim.run(max_ticks=10)
        assert len(ticks) == 10

    def test_layout_settles(self):
        """A small graph reaches a stable, finite layout."""
        sim = Simulation(
            node_ids=list("abcdef"),
            links=[("a", "b"), ("b", "c"), ("c", "a"), ("d", "e"), ("e", "f"), ("f", "d")],
            forces=[ManyBodyForce(), LinkForce(), CenterForce()],
            random_seed=42,
        )
        sim.run()
        positions = sim.positions
        assert np.all(np.isfinite(positions))
        assert np.allclose(positions.mean(axis=0), 0.0, atol=1.0)
        assert np.max(np.abs(sim.kinetics.velocity)) < 1.0


class TestScheduledRun:
    """Tests for scheduler-driven ticking."""

    def test_requires_scheduler(self):
        """start() without a scheduler raises SchedulerError."""
        with pytest.raises(SchedulerError):
            Simulation(node_ids=[0]).start()

    def test_ticks_on_advance(self):
        """Each scheduler step performs one tick."""
        scheduler = ManualScheduler()
        ticks = []
        sim = Simulation(node_ids=[0, 1], scheduler=scheduler, on_tick=ticks.append)
        sim.start()
        assert sim.is_running
        assert scheduler.advance(5) == 5
        assert len(ticks) == 5

    def test_stops_below_alpha_min(self):
        """The schedule is cancelled once alpha drops below alpha_min."""
        scheduler = ManualScheduler()
        events = []
        sim = Simulation(
            node_ids=[0],
            alpha_decay=0.5,
            alpha_min=0.2,
            scheduler=scheduler,
            on_tick=lambda e: events.append("tick"),
            on_end=lambda e: events.append("end"),
        )
        sim.start()
        assert scheduler.advance(10) == 4
        assert events == ["tick", "tick", "tick", "end"]
        assert not sim.is_running
        assert scheduler.pending == 0

    def test_stop(self):
        """stop() cancels immediately and fires end."""
        scheduler = ManualScheduler()
        ends = []
        sim = Simulation(node_ids=[0], scheduler=scheduler, on_end=ends.append)
        sim.start()
        scheduler.advance(2)
        alpha = sim.alpha
        sim.stop()
        assert not sim.is_running
        assert len(ends) == 1
        scheduler.advance(3)
        assert sim.alpha == alpha

    def test_stop_when_idle(self):
        """stop() on an idle simulation is a no-op."""
        ends = []
        sim = Simulation(node_ids=[0], on_end=ends.append)
        sim.stop()
        assert ends == []

    def test_start_resets_alpha(self):
        """start() restores the initial alpha or uses the one given."""
        scheduler = ManualScheduler()
        sim = Simulation(node_ids=[0], scheduler=scheduler)
        sim.tick(10)
        sim.start()
        assert sim.alpha == 1.0
        sim.start(alpha=0.3)
        assert sim.alpha == 0.3
        assert scheduler.pending == 1

    def test_failing_tick_stops_schedule(self):
        """An error raised while ticking cancels the schedule before propagating."""

        def explode(event):
            raise RuntimeError("tick handler failed")

        scheduler = ManualScheduler()
        sim = Simulation(node_ids=[0, 1], scheduler=scheduler, on_tick=explode)
        sim.start()
        with pytest.raises(RuntimeError, match="tick handler failed"):
            scheduler.advance()
        assert not sim.is_running
        assert scheduler.pending == 0
        alpha = sim.alpha
        assert scheduler.advance(3) == 0
        assert sim.alpha == alpha


class TestKineticStateAccess:
    """Tests for reading and writing node state."""

    def test_get_unknown(self):
        """Unknown ids return None."""
        assert Simulation(node_ids=["a"]).get_kinetic_state("b") is None

    def test_update(self):
        """update_kinetic_state overwrites one node."""
        sim = Simulation(node_ids=["a", "b"])
        assert sim.update_kinetic_state("b", KineticState(position=(3.0, 4.0)))
        assert sim.get_kinetic_state("b").position == Vector(3.0, 4.0)

    def test_update_unknown(self):
        """Updating an unknown id returns False."""
        sim = Simulation(node_ids=["a"])
        assert sim.update_kinetic_state("zzz", KineticState(position=(0.0, 0.0))) is False

    def test_update_wrong_dimension(self):
        """A state of the wrong dimension raises."""
        sim = Simulation(node_ids=["a"])
        with pytest.raises(InvalidDimensionError):
            sim.update_kinetic_state("a", KineticState(position=(0.0, 0.0, 0.0)))

    def test_update_all(self):
        """update_all_kinetic_states applies a function to every id."""
        sim = Simulation(node_ids=[1, 2, 3])
        sim.update_all_kinetic_states(lambda node_id: KineticState(position=(node_id, -node_id)))
        assert sim.positions.tolist() == [[1.0, -1.0], [2.0, -2.0], [3.0, -3.0]]

    def test_positions_is_a_copy(self):
        """Mutating the returned array does not affect the simulation."""
        sim = Simulation(node_ids=["a"])
        positions = sim.positions
        positions[0, 0] = 1e9
        assert sim.positions[0, 0] != 1e9


class TestRevive:
    """Tests for replacing the node set."""

    def test_superset_preserves_state(self):
        """Surviving ids keep position, velocity and fixation."""
        sim = Simulation(
            node_ids=["a", "b", "c"],
            links=[("a", "b"), ("b", "c")],
            forces=[ManyBodyForce(), LinkForce()],
            random_seed=0,
        )
        sim.update_kinetic_state("b", sim.get_kinetic_state("b").pinned())
        sim.tick(5)
        before = {node_id: sim.get_kinetic_state(node_id) for node_id in "abc"}

        sim.revive(
            ["a", "b", "c", "d"],
            links=[("a", "b"), ("b", "c"), ("c", "d")],
            initial_state=lambda node_id: KineticState(position=(50.0, 50.0)),
        )

        for node_id, state in before.items():
            assert sim.get_kinetic_state(node_id) == state
        assert sim.get_kinetic_state("d").position == Vector(50.0, 50.0)
        assert sim.index_of("d") == 3
        assert all(force.context.node_count == 4 for force in sim.forces)
        sim.tick()

    def test_revive_re_resolves_descriptors(self):
        """Forces re-evaluate varied parameters for the new node set."""
        calls = []

        def strength(node_id):
            calls.append(node_id)
            return -10.0

        sim = Simulation(node_ids=["a", "b"], forces=[ManyBodyForce(strength=strength)])
        sim.revive(["b", "c", "d"])
        assert calls == ["a", "b", "b", "c", "d"]
        assert sim.forces[0].strengths.tolist() == [-10.0] * 3

    def test_subset_drops_nodes_and_links(self):
        """Removed ids disappear along with their links."""
        sim = Simulation(node_ids=["a", "b", "c"], links=[("a", "b"), ("a", "c")])
        sim.revive(["a", "c"])
        assert sim.get_kinetic_state("b") is None
        assert sim.links == [(0, 1)]
        assert sim.node_ids == ["a", "c"]

    def test_new_ids_default_to_zero_state(self):
        """Without any initializer new ids start at rest at the origin."""
        sim = Simulation(node_ids=["a"])
        sim.revive(["a", "b"])
        assert sim.get_kinetic_state("b") == KineticState.zero(2)

    def test_alpha(self):
        """Alpha is kept unless given."""
        sim = Simulation(node_ids=["a"])
        sim.tick(10)
        alpha = sim.alpha
        sim.revive(["a", "b"])
        assert sim.alpha == alpha
        sim.revive(["a"], alpha=0.5)
        assert sim.alpha == 0.5

    def test_replace_forces(self):
        """Passing forces replaces the force list."""
        sim = Simulation(node_ids=["a", "b"], forces=[ManyBodyForce()])
        center = CenterForce()
        sim.revive(["a", "b"], forces=[center])
        assert sim.forces == (center,)

    def test_rejected_links_leave_simulation_unchanged(self):
        """A force rejecting the new node set rolls the whole revive back."""
        many_body = ManyBodyForce()
        link = LinkForce(links=[("a", "c")])
        center = CenterForce()
        sim = Simulation(
            node_ids=["a", "b", "c"],
            links=[("a", "b"), ("b", "c")],
            forces=[many_body, link, center],
            random_seed=0,
        )
        sim.tick(3)
        positions = sim.positions
        alpha = sim.alpha

        with pytest.raises(InvalidLinkError):
            sim.revive(["a", "b"], alpha=0.5)

        assert sim.node_ids == ["a", "b", "c"]
        assert sim.links == [(0, 1), (1, 2)]
        assert sim.forces == (many_body, link, center)
        assert np.array_equal(sim.positions, positions)
        assert sim.alpha == alpha
        assert all(force.context.node_count == 3 for force in sim.forces)
        assert link.links == [(0, 2)]
        sim.tick()

    def test_rejected_forces_keep_current_forces(self):
        """Replacement forces that fail to attach are not installed."""
        many_body = ManyBodyForce()
        sim = Simulation(node_ids=["a", "b"], forces=[many_body])
        center = CenterForce()

        with pytest.raises(InvalidDimensionError):
            sim.revive(["a", "b", "c"], forces=[center, PositionForce.z()])

        assert sim.node_ids == ["a", "b"]
        assert sim.forces == (many_body,)
        assert many_body.context.node_count == 2
        assert sim.get_kinetic_state("c") is None
