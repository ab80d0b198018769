"""
Velocity / yaw-rate motion model for planar poses.

State: [x, y, theta]
Control: linear velocity v, yaw rate w over an interval dt

    |w| <  YAW_RATE_EPS:  x' = x + v dt cos(theta)
                          y' = y + v dt sin(theta)
                          theta' = theta
    |w| >= YAW_RATE_EPS:  x' = x + v/w (sin(theta + w dt) - sin(theta))
                          y' = y + v/w (cos(theta) - cos(theta + w dt))
                          theta' = theta + w dt

The straight-line branch avoids dividing by a near-zero yaw rate. Heading is
left unwrapped.
"""

import numpy as np
from typing import Sequence
from numpy.random import Generator


YAW_RATE_EPS = 1e-7


def check_std(std: Sequence[float], n: int, name: str, strictly_positive: bool = False) -> np.ndarray:
    """Validate a vector of standard deviations and return it as an array."""
    std = np.asarray(std, dtype=np.float64)
    if std.shape != (n,):
        raise ValueError(f"{name} must have {n} entries, got shape {std.shape}")
    if not np.all(np.isfinite(std)):
        raise ValueError(f"{name} must be finite, got {std}")
    if strictly_positive and np.any(std <= 0):
        raise ValueError(f"{name} must be > 0, got {std}")
    if np.any(std < 0):
        raise ValueError(f"{name} must be >= 0, got {std}")
    return std


def predict_mean(
    poses: np.ndarray,
    delta_t: float,
    velocity: float,
    yaw_rate: float,
) -> np.ndarray:
    """
    Noiseless pose after applying (velocity, yaw_rate) for delta_t.

    Args:
        poses: [N, 3] or [3] poses
        delta_t: Elapsed time
        velocity: Linear velocity
        yaw_rate: Yaw rate in rad per unit time

    Returns:
        poses_next: same shape as poses
    """
    poses = np.asarray(poses, dtype=np.float64)
    single = poses.ndim == 1
    if single:
        poses = poses[None, :]

    x, y, theta = poses[:, 0], poses[:, 1], poses[:, 2]
    out = np.empty_like(poses)

    if abs(yaw_rate) < YAW_RATE_EPS:
        out[:, 0] = x + velocity * delta_t * np.cos(theta)
        out[:, 1] = y + velocity * delta_t * np.sin(theta)
        out[:, 2] = theta
    else:
        theta_next = theta + yaw_rate * delta_t
        ratio = velocity / yaw_rate
        out[:, 0] = x + ratio * (np.sin(theta_next) - np.sin(theta))
        out[:, 1] = y + ratio * (np.cos(theta) - np.cos(theta_next))
        out[:, 2] = theta_next

    if single:
        return out[0]
    return out


def sample_motion(
    poses: np.ndarray,
    delta_t: float,
    velocity: float,
    yaw_rate: float,
    std_pos: Sequence[float],
    rng: Generator,
) -> np.ndarray:
    """
    Sample next poses: expected pose plus independent Gaussian noise per axis.

    Args:
        poses: [N, 3] current poses
        delta_t: Elapsed time
        velocity: Linear velocity
        yaw_rate: Yaw rate
        std_pos: (std_x, std_y, std_theta) process noise
        rng: NumPy random generator

    Returns:
        poses_next: [N, 3]
    """
    std_pos = check_std(std_pos, 3, "std_pos")
    mean = predict_mean(poses, delta_t, velocity, yaw_rate)
    noise = rng.standard_normal(mean.shape)
    return mean + noise * std_pos
