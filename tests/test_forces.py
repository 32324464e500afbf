import numpy as np
import pytest

from lineagechart.controller.forces import (
    CollideForce, LinkForce, ManyBodyForce, PositionXForce, PositionYForce, depth_weighted_strength
)
from lineagechart.controller.simulation import Simulation


def make_sim(positions, forces=(), links=()):
    positions = np.asarray(positions, dtype=np.float64)
    names = [f"n{i}" for i in range(len(positions))]
    return Simulation(names, links=links, forces=forces, initial_positions=positions)


def test_position_force_pulls_toward_target():
    force = PositionXForce(target=100.0, strength=0.5)
    sim = make_sim([[0.0, 0.0]], [force])
    force.apply(1.0)
    assert sim.velocities.tolist() == [[50.0, 0.0]]


def test_position_force_per_node_strength():
    force = PositionYForce(target=[10.0, 10.0], strength=[1.0, 0.0])
    sim = make_sim([[0.0, 0.0], [0.0, 0.0]], [force])
    force.apply(0.5)
    assert sim.velocities[:, 1].tolist() == [5.0, 0.0]


def test_per_node_length_mismatch():
    with pytest.raises(ValueError):
        make_sim([[0.0, 0.0], [1.0, 1.0]], [PositionXForce(target=[1.0, 2.0, 3.0])])


def test_link_spring_is_split_by_degree():
    force = LinkForce([(0, 1)], distance=30.0, strength=0.5)
    sim = make_sim([[0.0, 0.0], [100.0, 0.0]], [force], links=[(0, 1)])
    force.apply(1.0)
    assert sim.velocities[:, 0] == pytest.approx([17.5, -17.5])
    assert sim.velocities[:, 1] == pytest.approx([0.0, 0.0], abs=1e-6)


def test_link_default_strength_uses_degree():
    force = LinkForce([(0, 1), (0, 2), (0, 3)])
    make_sim(np.zeros((4, 2)) + np.arange(4)[:, None], [force])
    assert force._strengths.tolist() == [1.0, 1.0, 1.0]
    assert force._bias.tolist() == [0.75, 0.75, 0.75]


def test_charge_repels_pair():
    force = ManyBodyForce(strength=-30.0)
    sim = make_sim([[0.0, 0.0], [10.0, 0.0]], [force])
    force.apply(1.0)
    assert sim.velocities[:, 0] == pytest.approx([-3.0, 3.0])


def test_charge_with_coincident_points_stays_finite():
    force = ManyBodyForce(strength=-30.0)
    sim = make_sim([[5.0, 5.0], [5.0, 5.0], [5.0, 5.0]], [force])
    force.apply(1.0)
    assert np.isfinite(sim.velocities).all()


def test_barnes_hut_matches_exact_at_small_theta():
    rng = np.random.default_rng(7)
    positions = rng.uniform(0.0, 500.0, size=(120, 2))
    exact = ManyBodyForce(strength=-30.0, exact_below=1000)
    approx = ManyBodyForce(strength=-30.0, theta=1e-3, exact_below=0)
    sim_exact = make_sim(positions, [exact])
    sim_approx = make_sim(positions, [approx])
    exact.apply(1.0)
    approx.apply(1.0)
    assert np.allclose(sim_exact.velocities, sim_approx.velocities, rtol=1e-6, atol=1e-9)


def test_barnes_hut_default_theta_is_close():
    rng = np.random.default_rng(3)
    positions = rng.uniform(0.0, 800.0, size=(200, 2))
    exact = ManyBodyForce(strength=-30.0, exact_below=1000)
    approx = ManyBodyForce(strength=-30.0, theta=0.9, exact_below=0)
    sim_exact = make_sim(positions, [exact])
    sim_approx = make_sim(positions, [approx])
    exact.apply(1.0)
    approx.apply(1.0)
    error = np.linalg.norm(sim_exact.velocities - sim_approx.velocities, axis=1)
    scale = np.linalg.norm(sim_exact.velocities, axis=1)
    assert np.median(error / scale) < 0.1


def test_collision_pushes_overlapping_disks_apart():
    force = CollideForce(radius=32.0, strength=1.0)
    sim = make_sim([[0.0, 0.0], [10.0, 0.0]], [force])
    force.apply(1.0)
    assert sim.velocities[:, 0] == pytest.approx([-27.0, 27.0])


def test_collision_ignores_distant_disks():
    force = CollideForce(radius=5.0)
    sim = make_sim([[0.0, 0.0], [100.0, 0.0]], [force])
    force.apply(1.0)
    assert not sim.velocities.any()


def test_depth_weighted_strength():
    assert depth_weighted_strength([0, 1, 2], 0.05) == pytest.approx([0.15, 0.10, 0.05])
    assert depth_weighted_strength([0], 0.05, max_depth=3) == pytest.approx([0.2])
