"""
Planar geometry primitives shared by the motion, sensor and association code.
"""

import numpy as np


def wrap_angle(a: np.ndarray) -> np.ndarray:
    """Wrap angle to [-pi, pi)."""
    return (a + np.pi) % (2.0 * np.pi) - np.pi


def distance(x1, y1, x2, y2):
    """Euclidean distance between (x1, y1) and (x2, y2). Broadcasts over arrays."""
    return np.hypot(x2 - x1, y2 - y1)


def rigid_transform(points: np.ndarray, pose: np.ndarray) -> np.ndarray:
    """
    Rotate points by the pose heading, then translate by the pose position.

        x' = x cos(theta) - y sin(theta) + px
        y' = x sin(theta) + y cos(theta) + py

    Args:
        points: [M, 2] or [2] points
        pose: [3] pose (px, py, theta)

    Returns:
        transformed: same shape as points
    """
    points = np.asarray(points, dtype=np.float64)
    px, py, theta = pose[0], pose[1], pose[2]
    c, s = np.cos(theta), np.sin(theta)

    single = points.ndim == 1
    if single:
        points = points[None, :]

    out = np.empty_like(points)
    out[:, 0] = points[:, 0] * c - points[:, 1] * s + px
    out[:, 1] = points[:, 0] * s + points[:, 1] * c + py

    if single:
        return out[0]
    return out
