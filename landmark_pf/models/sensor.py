"""
Landmark sensor model.

Landmarks are projected by a particle pose (rotation by heading, then
translation by position), gated by the sensor range, and compared with
observations under an independent-axis Gaussian:

    p(dx, dy) = 1 / (2 pi sx sy) * exp(-(dx^2 / (2 sx^2) + dy^2 / (2 sy^2)))
"""

import numpy as np
from scipy import stats
from typing import List, Sequence, Tuple

from .base import LandmarkMap, PredictedSighting
from ..utils.geometry import distance, rigid_transform


def project_landmarks(landmark_xy: np.ndarray, pose: np.ndarray) -> np.ndarray:
    """
    Project map landmarks by a particle pose.

    Args:
        landmark_xy: [M, 2] landmark positions
        pose: [3] particle pose

    Returns:
        projected: [M, 2]
    """
    return rigid_transform(landmark_xy, pose)


def landmarks_in_range(
    landmark_map: LandmarkMap,
    pose: np.ndarray,
    sensor_range: float,
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Projected landmarks within sensor range of the particle.

    Args:
        landmark_map: Known landmarks
        pose: [3] particle pose
        sensor_range: Maximum sensing distance (inclusive)

    Returns:
        ids: [P] landmark ids, map order preserved
        positions: [P, 2] projected positions
    """
    projected = project_landmarks(landmark_map.positions, pose)
    d = distance(pose[0], pose[1], projected[:, 0], projected[:, 1])
    mask = d <= sensor_range
    return landmark_map.ids[mask], projected[mask]


def predicted_sightings(
    landmark_map: LandmarkMap,
    pose: np.ndarray,
    sensor_range: float,
) -> List[PredictedSighting]:
    """Object form of landmarks_in_range."""
    ids, positions = landmarks_in_range(landmark_map, pose, sensor_range)
    return [
        PredictedSighting(int(i), float(p[0]), float(p[1]))
        for i, p in zip(ids, positions)
    ]


def observation_log_likelihood(
    residuals: np.ndarray,
    std_landmark: Sequence[float],
) -> np.ndarray:
    """
    Log density of (dx, dy) residuals under independent Gaussian noise.

    Args:
        residuals: [K, 2] observation minus matched sighting
        std_landmark: (std_x, std_y)

    Returns:
        log_prob: [K]
    """
    residuals = np.asarray(residuals, dtype=np.float64).reshape(-1, 2)
    sx, sy = std_landmark[0], std_landmark[1]
    return (
        stats.norm.logpdf(residuals[:, 0], loc=0.0, scale=sx)
        + stats.norm.logpdf(residuals[:, 1], loc=0.0, scale=sy)
    )


def observation_likelihood(
    residuals: np.ndarray,
    std_landmark: Sequence[float],
) -> np.ndarray:
    """Density form of observation_log_likelihood."""
    return np.exp(observation_log_likelihood(residuals, std_landmark))
