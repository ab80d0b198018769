"""
Trajectory simulation.
"""

from .trajectory import Trajectory, make_landmark_map, simulate

__all__ = [
    "Trajectory",
    "make_landmark_map",
    "simulate",
]
