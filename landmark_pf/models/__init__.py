"""
Map, motion and sensor model definitions.
"""

from .base import (
    UNASSOCIATED,
    Landmark,
    LandmarkMap,
    Observation,
    PredictedSighting,
    as_observation_array,
    to_observations,
)
from .motion import YAW_RATE_EPS, predict_mean, sample_motion
from .sensor import (
    project_landmarks,
    landmarks_in_range,
    predicted_sightings,
    observation_log_likelihood,
    observation_likelihood,
)

__all__ = [
    "UNASSOCIATED",
    "Landmark",
    "LandmarkMap",
    "Observation",
    "PredictedSighting",
    "as_observation_array",
    "to_observations",
    "YAW_RATE_EPS",
    "predict_mean",
    "sample_motion",
    "project_landmarks",
    "landmarks_in_range",
    "predicted_sightings",
    "observation_log_likelihood",
    "observation_likelihood",
]
