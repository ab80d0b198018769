"""
Tests for the motion model, sensor model, landmark map and data association.

Run: pytest test_models.py -v
"""

import pytest
import numpy as np
from numpy.random import default_rng
from scipy.integrate import solve_ivp

from landmark_pf.models import (
    UNASSOCIATED,
    Landmark,
    LandmarkMap,
    Observation,
    PredictedSighting,
    as_observation_array,
    to_observations,
    predict_mean,
    sample_motion,
    project_landmarks,
    landmarks_in_range,
    predicted_sightings,
    observation_likelihood,
)
from landmark_pf.models.motion import check_std
from landmark_pf.filters.association import nearest_indices, nearest_neighbor
from landmark_pf.utils.geometry import wrap_angle, distance


# ============================================================================
# Assertion helpers
# ============================================================================

def assert_close(name: str, a, b, atol: float, rtol: float = 0.0):
    """Check two arrays are close within tolerances."""
    a = np.asarray(a, dtype=np.float64)
    b = np.asarray(b, dtype=np.float64)
    if not np.allclose(a, b, atol=atol, rtol=rtol):
        pytest.fail(
            f"{name}: FAILED\n"
            f"  got {a}\n  expected {b}\n"
            f"  max_abs_diff={np.max(np.abs(a - b)):.3e}, required atol={atol:.0e}"
        )


def integrate_unicycle(pose0, velocity, yaw_rate, delta_t):
    """Reference pose from numerically integrating the unicycle ODE."""
    def rhs(t, s):
        return [velocity * np.cos(s[2]), velocity * np.sin(s[2]), yaw_rate]

    sol = solve_ivp(rhs, (0.0, delta_t), list(pose0), method="DOP853", rtol=1e-12, atol=1e-12)
    return sol.y[:, -1]


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture
def small_map():
    return LandmarkMap.from_records([
        (1, 3.0, 4.0),
        (2, 10.0, 0.0),
        (3, -20.0, 5.0),
    ])


# ============================================================================
# Motion model
# ============================================================================

class TestMotionModel:

    def test_zero_yaw_rate_straight_line(self):
        """v=10, w=0, dt=1 from the origin moves exactly (10, 0, 0)."""
        pose = predict_mean(np.array([0.0, 0.0, 0.0]), 1.0, 10.0, 0.0)
        assert_close("straight line", pose, [10.0, 0.0, 0.0], atol=1e-12)

    def test_zero_noise_equals_expected_pose(self):
        """Sampling with zero process noise returns the expected pose."""
        rng = default_rng(0)
        poses = np.zeros((5, 3))
        sampled = sample_motion(poses, 1.0, 10.0, 0.0, (0.0, 0.0, 0.0), rng)
        assert np.array_equal(sampled, np.tile([10.0, 0.0, 0.0], (5, 1)))

    @pytest.mark.parametrize("theta0", [0.0, 0.7, -2.5])
    def test_turning_matches_integration(self, theta0):
        """Closed-form arc matches the integrated trajectory for w = pi/8."""
        pose0 = np.array([1.0, -2.0, theta0])
        closed = predict_mean(pose0, 1.0, 10.0, np.pi / 8)
        reference = integrate_unicycle(pose0, 10.0, np.pi / 8, 1.0)
        assert_close("arc vs ODE", closed, reference, atol=1e-6)

    def test_small_yaw_rate_continuous(self):
        """Both branches agree near the switching threshold."""
        pose0 = np.array([0.0, 0.0, 0.3])
        straight = predict_mean(pose0, 0.1, 5.0, 1e-9)
        curved = predict_mean(pose0, 0.1, 5.0, 1e-6)
        assert_close("branch continuity", straight, curved, atol=1e-6)

    def test_heading_not_wrapped(self):
        pose = predict_mean(np.array([0.0, 0.0, 3.0]), 1.0, 1.0, 1.0)
        assert pose[2] == pytest.approx(4.0)

    def test_batched_matches_single(self):
        rng = default_rng(1)
        poses = rng.normal(size=(10, 3))
        batched = predict_mean(poses, 0.5, 3.0, 0.2)
        single = np.array([predict_mean(p, 0.5, 3.0, 0.2) for p in poses])
        assert_close("batched", batched, single, atol=1e-12)

    def test_noise_statistics(self):
        """Per-axis process noise has the requested standard deviation."""
        rng = default_rng(2)
        std = np.array([0.5, 0.2, 0.1])
        poses = np.zeros((20000, 3))
        sampled = sample_motion(poses, 1.0, 0.0, 0.0, std, rng)
        assert_close("noise mean", sampled.mean(axis=0), [0.0, 0.0, 0.0], atol=0.02)
        assert_close("noise std", sampled.std(axis=0), std, atol=0.0, rtol=0.05)

    def test_check_std_rejects_bad_input(self):
        with pytest.raises(ValueError):
            check_std([0.1, 0.1], 3, "std_pos")
        with pytest.raises(ValueError):
            check_std([0.1, -0.1, 0.1], 3, "std_pos")
        with pytest.raises(ValueError):
            check_std([0.3, 0.0], 2, "std_landmark", strictly_positive=True)
        assert np.array_equal(check_std((0.0, 0.0, 0.0), 3, "std"), np.zeros(3))


# ============================================================================
# Geometry and sensor model
# ============================================================================

class TestSensorModel:

    def test_projection_translation(self):
        projected = project_landmarks(np.array([[1.0, 2.0]]), np.array([5.0, -1.0, 0.0]))
        assert_close("translation", projected, [[6.0, 1.0]], atol=1e-12)

    def test_projection_rotation_then_translation(self):
        projected = project_landmarks(np.array([[1.0, 0.0]]), np.array([2.0, 3.0, np.pi / 2]))
        assert_close("rotation", projected, [[2.0, 4.0]], atol=1e-12)

    def test_range_gate_inclusive(self, small_map):
        pose = np.array([0.0, 0.0, 0.0])
        ids, _ = landmarks_in_range(small_map, pose, 5.0)
        assert list(ids) == [1]
        ids, _ = landmarks_in_range(small_map, pose, 4.99)
        assert list(ids) == []

    def test_range_gate_preserves_map_order(self, small_map):
        ids, positions = landmarks_in_range(small_map, np.array([1.0, 1.0, 0.0]), 100.0)
        assert list(ids) == [1, 2, 3]
        assert positions.shape == (3, 2)

    def test_predicted_sightings_objects(self, small_map):
        sightings = predicted_sightings(small_map, np.array([1.0, 0.0, 0.0]), 11.0)
        assert sightings == [
            PredictedSighting(1, 4.0, 4.0),
            PredictedSighting(2, 11.0, 0.0),
        ]

    def test_exact_match_density(self):
        """Zero residual with sx = sy = 0.3 gives 1 / (2 pi 0.09)."""
        p = observation_likelihood(np.array([[0.0, 0.0]]), (0.3, 0.3))
        assert p[0] == pytest.approx(1.0 / (2.0 * np.pi * 0.09), rel=1e-12)

    def test_density_formula(self):
        dx, dy, sx, sy = 0.1, -0.2, 0.3, 0.5
        expected = (1.0 / (2.0 * np.pi * sx * sy)) * np.exp(
            -(dx ** 2 / (2 * sx ** 2) + dy ** 2 / (2 * sy ** 2))
        )
        p = observation_likelihood(np.array([[dx, dy]]), (sx, sy))
        assert p[0] == pytest.approx(expected, rel=1e-12)

    def test_wrap_angle_and_distance(self):
        assert wrap_angle(np.array(3 * np.pi / 2)) == pytest.approx(-np.pi / 2)
        assert distance(0.0, 0.0, 3.0, 4.0) == pytest.approx(5.0)


# ============================================================================
# Landmark map and observations
# ============================================================================

class TestLandmarkMap:

    def test_from_records(self, small_map):
        assert len(small_map) == 3
        assert list(small_map.ids) == [1, 2, 3]
        assert list(small_map)[0] == Landmark(1, 3.0, 4.0)

    def test_from_arrays(self):
        lm = LandmarkMap.from_arrays([7, 8], np.array([[1.0, 2.0], [3.0, 4.0]]))
        assert_close("positions", lm.positions, [[1.0, 2.0], [3.0, 4.0]], atol=0.0)

    def test_duplicate_ids_rejected(self):
        with pytest.raises(ValueError):
            LandmarkMap.from_records([(1, 0.0, 0.0), (1, 1.0, 1.0)])

    def test_arrays_read_only(self, small_map):
        with pytest.raises(ValueError):
            small_map.positions[0, 0] = 99.0

    def test_empty_map(self):
        lm = LandmarkMap(())
        ids, positions = landmarks_in_range(lm, np.zeros(3), 10.0)
        assert ids.shape == (0,)
        assert positions.shape == (0, 2)

    def test_observation_array_conversion(self):
        obs = [Observation(1.0, 2.0), Observation(3.0, 4.0)]
        assert_close("objects", as_observation_array(obs), [[1.0, 2.0], [3.0, 4.0]], atol=0.0)
        assert as_observation_array([]).shape == (0, 2)
        wrapped = to_observations(np.array([[1.0, 2.0], [3.0, 4.0]]))
        assert wrapped == [Observation(1.0, 2.0), Observation(3.0, 4.0)]
        assert all(o.id == UNASSOCIATED for o in wrapped)
        with pytest.raises(ValueError):
            as_observation_array(np.zeros((2, 3)))


# ============================================================================
# Data association
# ============================================================================

class TestAssociation:

    def test_nearest_neighbor(self):
        """Observation (1, 1) goes to the sighting at (0, 0)."""
        predicted = [PredictedSighting(1, 0.0, 0.0), PredictedSighting(2, 10.0, 10.0)]
        observations = [Observation(1.0, 1.0)]
        indices = nearest_neighbor(predicted, observations)
        assert observations[0].id == 1
        assert list(indices) == [0]

    def test_labels_every_observation_in_place(self):
        predicted = [PredictedSighting(4, 0.0, 0.0), PredictedSighting(9, 10.0, 10.0)]
        observations = [Observation(9.0, 9.5), Observation(-1.0, 0.5), Observation(6.0, 6.0)]
        nearest_neighbor(predicted, observations)
        assert [o.id for o in observations] == [9, 4, 9]

    def test_tie_goes_to_first_sighting(self):
        observations = [Observation(0.0, 0.0)]
        nearest_neighbor(
            [PredictedSighting(7, 1.0, 0.0), PredictedSighting(3, -1.0, 0.0)], observations
        )
        assert observations[0].id == 7

        nearest_neighbor(
            [PredictedSighting(3, -1.0, 0.0), PredictedSighting(7, 1.0, 0.0)], observations
        )
        assert observations[0].id == 3

    def test_empty_predicted_leaves_unassociated(self):
        observations = [Observation(1.0, 1.0, id=5), Observation(2.0, 2.0)]
        indices = nearest_neighbor([], observations)
        assert [o.id for o in observations] == [UNASSOCIATED, UNASSOCIATED]
        assert list(indices) == [-1, -1]

    def test_no_observations(self):
        indices = nearest_neighbor([PredictedSighting(1, 0.0, 0.0)], [])
        assert indices.shape == (0,)

    def test_kdtree_matches_brute_force(self):
        rng = default_rng(3)
        pred = rng.uniform(-50, 50, size=(40, 2))
        obs = rng.uniform(-50, 50, size=(25, 2))
        brute = nearest_indices(pred, obs, method="brute")
        tree = nearest_indices(pred, obs, method="kdtree")
        assert np.array_equal(brute, tree)

    def test_unknown_method(self):
        with pytest.raises(ValueError):
            nearest_indices(np.zeros((1, 2)), np.zeros((1, 2)), method="hungarian")
