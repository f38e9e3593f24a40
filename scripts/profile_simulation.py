"""
Profiling script for graph-force performance analysis.

This script profiles simulation ticks across graph sizes and dimensions to
identify bottlenecks (tree construction, Barnes-Hut queries, link passes).
"""

import cProfile
import io
import pstats
import random
import sys
import time
from pathlib import Path
from pstats import SortKey

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))


def create_graph(n_nodes, n_edges, seed=42):
    """Create a random graph with n nodes and approximately n_edges edges."""
    rng = random.Random(seed)
    node_ids = list(range(n_nodes))

    edges = []
    for _ in range(n_edges):
        source = rng.randrange(n_nodes)
        target = rng.randrange(n_nodes)
        if source != target:
            edges.append((source, target))

    return node_ids, edges


def make_simulation(n_nodes, n_edges, dimension=2, theta=0.9, collide=False):
    from graph_force import CenterForce, CollideForce, LinkForce, ManyBodyForce, Simulation

    node_ids, edges = create_graph(n_nodes, n_edges)
    forces = [ManyBodyForce(theta=theta), LinkForce(), CenterForce()]
    if collide:
        forces.append(CollideForce(radius=5.0))
    return Simulation(
        node_ids=node_ids, links=edges, forces=forces, dimension=dimension, random_seed=42
    )


# =============================================================================
# Scenarios
# =============================================================================


def profile_small_2d():
    """Profile 2D simulation: small graph (50 nodes, 80 edges)."""
    make_simulation(50, 80).tick(50)


def profile_medium_2d():
    """Profile 2D simulation: medium graph (300 nodes, 500 edges)."""
    make_simulation(300, 500).tick(20)


def profile_medium_2d_exact():
    """Profile 2D simulation with theta=0: medium graph (300 nodes, 500 edges)."""
    make_simulation(300, 500, theta=0.0).tick(5)


def profile_medium_3d():
    """Profile 3D simulation: medium graph (300 nodes, 500 edges)."""
    make_simulation(300, 500, dimension=3).tick(20)


def profile_collide():
    """Profile collide force: medium graph (300 nodes, 500 edges)."""
    make_simulation(300, 500, collide=True).tick(20)


# =============================================================================
# Benchmarking Infrastructure
# =============================================================================


def benchmark_scenario(name, func, profile=True):
    """Benchmark a scenario and print timing."""
    print(f"\n{'-' * 60}")
    print(f"  {name}")
    print("-" * 60)

    if profile:
        profiler = cProfile.Profile()
        start_time = time.time()
        profiler.enable()
        func()
        profiler.disable()
        elapsed = time.time() - start_time

        s = io.StringIO()
        ps = pstats.Stats(profiler, stream=s).sort_stats(SortKey.CUMULATIVE)
        ps.print_stats(10)
        print(f"Time: {elapsed:.3f}s")
        print("\nTop 10 functions:")
        for line in s.getvalue().split("\n")[5:16]:
            if line.strip():
                print(line)
        return elapsed, profiler

    start_time = time.time()
    func()
    elapsed = time.time() - start_time
    print(f"Time: {elapsed:.3f}s")
    return elapsed, None


def main():
    """Run all profiling scenarios."""
    print("=" * 60)
    print("  graph-force Performance Profiling")
    print("=" * 60)

    profile = "--profile" in sys.argv[1:]
    scenarios = [
        ("2D: Small (50 nodes)", profile_small_2d),
        ("2D: Medium (300 nodes)", profile_medium_2d),
        ("2D: Medium, exact (300 nodes)", profile_medium_2d_exact),
        ("3D: Medium (300 nodes)", profile_medium_3d),
        ("2D: Medium + collide (300 nodes)", profile_collide),
    ]

    results = {}
    for name, func in scenarios:
        elapsed, _ = benchmark_scenario(name, func, profile=profile)
        results[name] = elapsed

    print("\n" + "=" * 60)
    print("  Summary")
    print("=" * 60)
    print(f"\n{'Scenario':<35} {'Time':>10}")
    print("-" * 47)
    for name, elapsed in results.items():
        print(f"{name:<35} {elapsed:>10.3f}s")


if __name__ == "__main__":
    main()
