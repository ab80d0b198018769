"""
Filtering algorithms.
"""

from .base import NotInitializedError, Particle, ParticleSet
from .association import nearest_indices, nearest_neighbor
from .particle import LandmarkParticleFilter

__all__ = [
    "NotInitializedError",
    "Particle",
    "ParticleSet",
    "nearest_indices",
    "nearest_neighbor",
    "LandmarkParticleFilter",
]
