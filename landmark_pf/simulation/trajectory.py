"""
Trajectory simulation and storage.
"""

import numpy as np
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence
from numpy.random import Generator, default_rng

from ..models.base import LandmarkMap
from ..models.motion import predict_mean, sample_motion
from ..models.sensor import landmarks_in_range


@dataclass
class Trajectory:
    """
    Container for simulated or recorded localization data.

    Attributes:
        poses: [T+1, 3] True poses (p_0, p_1, ..., p_T)
        controls: [T, 2] (velocity, yaw_rate) applied before each step
        observations: T arrays of shape [K_t, 2], vehicle-frame observations
        delta_t: Time between steps
        metadata: Optional dictionary for additional info
    """
    poses: np.ndarray
    controls: np.ndarray
    observations: List[np.ndarray]
    delta_t: float = 0.1
    metadata: Optional[Dict[str, Any]] = None

    @property
    def T(self) -> int:
        """Number of time steps."""
        return self.controls.shape[0]

    def save(self, path: str):
        """Save trajectory to .npz file."""
        observations = np.empty(len(self.observations), dtype=object)
        for i, obs in enumerate(self.observations):
            observations[i] = obs
        np.savez(
            path,
            poses=self.poses,
            controls=self.controls,
            observations=observations,
            delta_t=self.delta_t,
            metadata=self.metadata,
        )

    @classmethod
    def load(cls, path: str) -> "Trajectory":
        """Load trajectory from .npz file."""
        with np.load(path, allow_pickle=True) as data:
            metadata = data["metadata"].item() if "metadata" in data else None
            return cls(
                poses=data["poses"],
                controls=data["controls"],
                observations=[
                    np.asarray(o, dtype=np.float64).reshape(-1, 2) for o in data["observations"]
                ],
                delta_t=float(data["delta_t"]),
                metadata=metadata,
            )


def make_landmark_map(
    n_landmarks: int,
    extent: float = 50.0,
    seed: Optional[int] = None,
    rng: Optional[Generator] = None,
) -> LandmarkMap:
    """
    Random landmark map, uniform over [-extent, extent]^2, ids 1..n.
    """
    if rng is None:
        rng = default_rng(seed)
    positions = rng.uniform(-extent, extent, size=(n_landmarks, 2))
    return LandmarkMap.from_arrays(np.arange(1, n_landmarks + 1), positions)


def simulate(
    landmark_map: LandmarkMap,
    T: int,
    initial_pose: Sequence[float] = (0.0, 0.0, 0.0),
    delta_t: float = 0.1,
    velocity: float = 5.0,
    yaw_rate: float = 0.1,
    std_pos: Sequence[float] = (0.0, 0.0, 0.0),
    std_landmark: Sequence[float] = (0.3, 0.3),
    sensor_range: float = 50.0,
    seed: Optional[int] = None,
    rng: Optional[Generator] = None,
    metadata: Optional[Dict[str, Any]] = None,
) -> Trajectory:
    """
    Simulate a pose trajectory and the landmark observations along it.

    Observations are generated with the filter's own sensor model: landmarks
    in range of the true pose are projected by it and perturbed with
    N(0, diag(std_landmark^2)).

    Args:
        landmark_map: Known landmarks
        T: Number of time steps
        initial_pose: Starting pose (x, y, theta)
        delta_t: Time step
        velocity: Constant linear velocity command
        yaw_rate: Constant yaw rate command
        std_pos: Process noise on the true trajectory
        std_landmark: Observation noise
        sensor_range: Maximum sensing distance
        seed: Random seed (ignored if rng is provided)
        rng: NumPy random generator (optional)
        metadata: Optional metadata to attach

    Returns:
        Trajectory object
    """
    if rng is None:
        rng = default_rng(seed)

    std_landmark = np.asarray(std_landmark, dtype=np.float64)
    poses = np.zeros((T + 1, 3))
    poses[0] = initial_pose
    controls = np.tile([velocity, yaw_rate], (T, 1)).astype(np.float64)
    observations = []

    for t in range(T):
        if np.any(np.asarray(std_pos) > 0):
            poses[t + 1] = sample_motion(
                poses[t:t + 1], delta_t, velocity, yaw_rate, std_pos, rng
            )[0]
        else:
            poses[t + 1] = predict_mean(poses[t], delta_t, velocity, yaw_rate)

        _, visible = landmarks_in_range(landmark_map, poses[t + 1], sensor_range)
        noise = rng.standard_normal(visible.shape) * std_landmark
        observations.append(visible + noise)

    return Trajectory(
        poses=poses,
        controls=controls,
        observations=observations,
        delta_t=delta_t,
        metadata=metadata,
    )
