"""
Pose estimates and error metrics for landmark localization.
"""

import numpy as np
from typing import Tuple

from .geometry import wrap_angle
from .resampling import normalize_particle_weights
from ..filters.base import ParticleSet


def best_particle(particle_set: ParticleSet) -> np.ndarray:
    """
    Pose of the highest-weight particle (first one on ties).

    Ranked by log weight when the set carries one, so particles whose
    weights underflowed to 0.0 are still told apart.

    Returns:
        pose: [3]
    """
    scores = particle_set.weights if particle_set.log_weights is None else particle_set.log_weights
    return particle_set.poses[int(np.argmax(scores))].copy()


def weighted_mean_pose(particle_set: ParticleSet) -> np.ndarray:
    """
    Weighted mean pose, circular mean for heading.

    Weights are normalized from the log weights when present. All-zero
    weights are treated as uniform (and logged).

    Returns:
        pose: [3] with heading in [-pi, pi)
    """
    w = normalize_particle_weights(particle_set.weights, particle_set.log_weights)

    poses = particle_set.poses
    x = np.sum(w * poses[:, 0])
    y = np.sum(w * poses[:, 1])
    theta = np.arctan2(np.sum(w * np.sin(poses[:, 2])), np.sum(w * np.cos(poses[:, 2])))
    return np.array([x, y, wrap_angle(theta)])


def position_error(pose_est: np.ndarray, pose_true: np.ndarray) -> float:
    """Euclidean distance between estimated and true positions."""
    return float(np.hypot(pose_est[0] - pose_true[0], pose_est[1] - pose_true[1]))


def heading_error(pose_est: np.ndarray, pose_true: np.ndarray) -> float:
    """Absolute wrapped heading difference."""
    return float(abs(wrap_angle(pose_est[2] - pose_true[2])))


def compute_rmse(
    poses_true: np.ndarray,
    poses_est: np.ndarray,
) -> Tuple[np.ndarray, float]:
    """
    Per-step error of an estimated trajectory.

    Args:
        poses_true: [T+1, 3] True poses
        poses_est: [T+1, 3] or [T, 3] Estimated poses

    Returns:
        error_per_step: [T] position error at each time step
        rmse: Root mean square position error
    """
    # Handle alignment
    if poses_est.shape[0] == poses_true.shape[0] - 1:
        poses_true = poses_true[1:]

    T = min(poses_true.shape[0], poses_est.shape[0])
    err = np.hypot(
        poses_true[:T, 0] - poses_est[:T, 0],
        poses_true[:T, 1] - poses_est[:T, 1],
    )
    return err, float(np.sqrt(np.mean(err ** 2)))
