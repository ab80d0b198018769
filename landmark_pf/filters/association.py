"""
Nearest-neighbour data association.

Each observation is labelled with the id of the closest predicted sighting.
Ties go to the first sighting in iteration order. With no predicted
sightings every observation is left UNASSOCIATED; scoring such observations
is the weight stage's job.
"""

import logging
import numpy as np
from typing import List, Literal, Sequence
from scipy.spatial import cKDTree

from ..models.base import UNASSOCIATED, Observation, PredictedSighting


logger = logging.getLogger(__name__)

AssociationMethod = Literal["brute", "kdtree"]


def nearest_indices(
    pred_xy: np.ndarray,
    obs_xy: np.ndarray,
    method: AssociationMethod = "brute",
) -> np.ndarray:
    """
    Index of the nearest predicted point for every observation.

    Args:
        pred_xy: [P, 2] predicted sighting positions
        obs_xy: [K, 2] observation positions
        method: "brute" (O(P K) distance matrix) or "kdtree" (scipy cKDTree)

    Returns:
        indices: [K] indices into pred_xy, -1 where P == 0
    """
    pred_xy = np.asarray(pred_xy, dtype=np.float64).reshape(-1, 2)
    obs_xy = np.asarray(obs_xy, dtype=np.float64).reshape(-1, 2)
    K = obs_xy.shape[0]

    if pred_xy.shape[0] == 0:
        return np.full(K, -1, dtype=np.int64)
    if K == 0:
        return np.zeros(0, dtype=np.int64)

    if method == "brute":
        diff = obs_xy[:, np.newaxis, :] - pred_xy[np.newaxis, :, :]  # [K, P, 2]
        dist_sq = np.sum(diff ** 2, axis=-1)
        # argmin returns the first minimum, which fixes the tie-break
        return np.argmin(dist_sq, axis=1).astype(np.int64)
    elif method == "kdtree":
        tree = cKDTree(pred_xy)
        _, idx = tree.query(obs_xy, k=1)
        return np.asarray(idx, dtype=np.int64)
    else:
        raise ValueError(f"Unknown association method: {method}")


def nearest_neighbor(
    predicted: Sequence[PredictedSighting],
    observations: List[Observation],
    method: AssociationMethod = "brute",
) -> np.ndarray:
    """
    Label observations in place with the id of the nearest predicted sighting.

    Args:
        predicted: Predicted sightings (map frame, landmark ids)
        observations: Observations to label; their `id` is overwritten
        method: Search method, see nearest_indices

    Returns:
        indices: [K] matched index into `predicted` per observation (-1 if none)
    """
    pred_xy = np.array([[p.x, p.y] for p in predicted], dtype=np.float64).reshape(-1, 2)
    obs_xy = np.array([[o.x, o.y] for o in observations], dtype=np.float64).reshape(-1, 2)

    indices = nearest_indices(pred_xy, obs_xy, method=method)

    if len(predicted) == 0 and len(observations) > 0:
        logger.debug(
            "No predicted sightings; %d observations left unassociated",
            len(observations),
        )

    for obs, idx in zip(observations, indices):
        obs.id = predicted[idx].id if idx >= 0 else UNASSOCIATED

    return indices
