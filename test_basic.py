"""
Basic test script for the landmark_pf library.

Run: python test_basic.py
"""

import os
import tempfile

import numpy as np
from numpy.random import default_rng

from landmark_pf.models import LandmarkMap, Observation
from landmark_pf.simulation import Trajectory, make_landmark_map, simulate
from landmark_pf.filters import LandmarkParticleFilter
from landmark_pf.utils import weighted_mean_pose, compute_rmse


def test_simulation():
    """Test trajectory simulation and observation generation."""
    print("=" * 60)
    print("Testing Simulation")
    print("=" * 60)

    lm = make_landmark_map(20, extent=30.0, seed=0)
    trajectory = simulate(lm, T=30, delta_t=0.1, velocity=4.0, yaw_rate=0.2, seed=1)

    print(f"Map: {lm}")
    print(f"Poses shape: {trajectory.poses.shape}")
    print(f"Observations per step: {[len(o) for o in trajectory.observations[:5]]} ...")

    assert trajectory.poses.shape == (31, 3)
    assert trajectory.controls.shape == (30, 2)
    assert len(trajectory.observations) == 30
    assert all(o.shape[1] == 2 for o in trajectory.observations)

    print("\n✓ Simulation working correctly!")


def test_trajectory_save_load():
    """Test .npz round trip of a trajectory with ragged observations."""
    lm = make_landmark_map(10, extent=40.0, seed=2)
    trajectory = simulate(lm, T=5, sensor_range=30.0, seed=3)

    with tempfile.TemporaryDirectory() as directory:
        path = os.path.join(directory, "trajectory.npz")
        trajectory.save(path)
        loaded = Trajectory.load(path)

    assert np.array_equal(loaded.poses, trajectory.poses)
    assert loaded.delta_t == trajectory.delta_t
    for a, b in zip(loaded.observations, trajectory.observations):
        assert np.array_equal(a, b)

    print("\n✓ Trajectory save/load working correctly!")


def test_single_cycle():
    """Run one full cycle by hand on a tiny map."""
    print("\n" + "=" * 60)
    print("Testing Single Filter Cycle")
    print("=" * 60)

    lm = LandmarkMap.from_records([(1, 5.0, 0.0), (2, 0.0, 5.0), (3, -5.0, -5.0)])
    pf = LandmarkParticleFilter(n_particles=100, seed=123)
    pf.init(0.0, 0.0, 0.0, (0.3, 0.3, 0.01))
    pf.prediction(0.1, (0.05, 0.05, 0.005), 1.0, 0.0)

    # Observations generated from the pose (0.1, 0, 0)
    observations = [Observation(5.1, 0.0), Observation(0.1, 5.0), Observation(-4.9, -5.0)]
    pf.update_weights(50.0, (0.3, 0.3), observations, lm)
    print(f"ESS after update: {pf.effective_sample_size():.1f}")
    print(f"Weighted mean pose: {weighted_mean_pose(pf.particles)}")

    pf.resample()
    assert len(pf.particles) == 100
    assert np.all(pf.particles.weights >= 0)

    print("\n✓ Filter cycle working correctly!")


def test_localization_rmse():
    """Compare resampling schemes on one simulated run."""
    print("\n" + "=" * 60)
    print("Testing Localization Accuracy")
    print("=" * 60)

    rng = default_rng(42)
    lm = make_landmark_map(30, extent=40.0, rng=rng)
    trajectory = simulate(lm, T=40, velocity=5.0, yaw_rate=0.1, rng=rng)

    for method in ["multinomial", "systematic", "stratified", "residual"]:
        pf = LandmarkParticleFilter(n_particles=150, resample_method=method, seed=7)
        pf.init(*trajectory.poses[0], (0.3, 0.3, 0.01))
        estimates = np.zeros((trajectory.T, 3))
        for t in range(trajectory.T):
            v, w = trajectory.controls[t]
            pf.prediction(trajectory.delta_t, (0.05, 0.05, 0.005), v, w)
            pf.update_weights(50.0, (0.3, 0.3), trajectory.observations[t], lm)
            estimates[t] = weighted_mean_pose(pf.particles)
            pf.resample()

        _, rmse = compute_rmse(trajectory.poses, estimates)
        print(f"{method:12s} - RMSE: {rmse:.4f}")
        assert rmse < 1.0, f"{method} diverged (RMSE {rmse:.3f})"

    print("\n✓ All resampling methods tracking!")


def main():
    """Run all tests."""
    print("\n" + "#" * 60)
    print("# Landmark Particle Filter Library Tests")
    print("#" * 60)

    tests = [
        test_simulation,
        test_trajectory_save_load,
        test_single_cycle,
        test_localization_rmse,
    ]

    passed = 0
    failed = 0

    for test in tests:
        try:
            test()
            passed += 1
        except Exception as e:
            print(f"\n✗ {test.__name__} FAILED: {e}")
            import traceback
            traceback.print_exc()
            failed += 1

    print("\n" + "#" * 60)
    print(f"# Results: {passed} passed, {failed} failed")
    print("#" * 60)

    return failed == 0


if __name__ == "__main__":
    success = main()
    exit(0 if success else 1)
