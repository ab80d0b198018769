"""
Landmark map and observation types.

The map is supplied once per session and never mutated. Observations and
predicted sightings are rebuilt every cycle.
"""

import numpy as np
from dataclasses import dataclass, field
from typing import Iterable, List, Sequence, Union


# Id carried by an observation before (or without) association.
UNASSOCIATED = -1


@dataclass(frozen=True)
class Landmark:
    """A map landmark: integer id and fixed map-frame position."""
    id: int
    x: float
    y: float


@dataclass
class Observation:
    """
    A raw landmark measurement in the vehicle frame.

    `id` stays UNASSOCIATED until the association stage labels it.
    """
    x: float
    y: float
    id: int = UNASSOCIATED


@dataclass(frozen=True)
class PredictedSighting:
    """A landmark as seen from one particle's hypothesized pose."""
    id: int
    x: float
    y: float


@dataclass(frozen=True)
class LandmarkMap:
    """
    Ordered, read-only collection of landmarks.

    Attributes:
        landmarks: Landmarks in map order
        ids: [M] landmark ids (read-only view)
        positions: [M, 2] landmark positions (read-only view)
    """
    landmarks: tuple
    ids: np.ndarray = field(init=False, repr=False, compare=False)
    positions: np.ndarray = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        landmarks = tuple(self.landmarks)
        ids = np.array([lm.id for lm in landmarks], dtype=np.int64)
        if len(np.unique(ids)) != len(ids):
            raise ValueError("Landmark ids must be unique")

        positions = np.array(
            [[lm.x, lm.y] for lm in landmarks], dtype=np.float64
        ).reshape(len(landmarks), 2)
        ids.setflags(write=False)
        positions.setflags(write=False)

        object.__setattr__(self, "landmarks", landmarks)
        object.__setattr__(self, "ids", ids)
        object.__setattr__(self, "positions", positions)

    @classmethod
    def from_records(cls, records: Iterable[Sequence]) -> "LandmarkMap":
        """Build a map from (id, x, y) records."""
        return cls(tuple(Landmark(int(r[0]), float(r[1]), float(r[2])) for r in records))

    @classmethod
    def from_arrays(cls, ids: Sequence[int], positions: np.ndarray) -> "LandmarkMap":
        """Build a map from an [M] id array and an [M, 2] position array."""
        positions = np.asarray(positions, dtype=np.float64)
        if positions.ndim != 2 or positions.shape[1] != 2 or positions.shape[0] != len(ids):
            raise ValueError(
                f"positions must have shape ({len(ids)}, 2), got {positions.shape}"
            )
        return cls(tuple(
            Landmark(int(i), float(p[0]), float(p[1])) for i, p in zip(ids, positions)
        ))

    def __len__(self) -> int:
        return len(self.landmarks)

    def __iter__(self):
        return iter(self.landmarks)

    def __repr__(self) -> str:
        return f"LandmarkMap(n_landmarks={len(self)})"


ObservationsLike = Union[Sequence[Observation], np.ndarray]


def as_observation_array(observations: ObservationsLike) -> np.ndarray:
    """
    Convert observations to a [K, 2] float array of vehicle-frame coordinates.

    Accepts a sequence of Observation objects, (x, y) pairs, or an array.
    """
    if isinstance(observations, np.ndarray):
        obs = observations.astype(np.float64)
    else:
        obs = np.array(
            [[o.x, o.y] if isinstance(o, Observation) else [o[0], o[1]] for o in observations],
            dtype=np.float64,
        )
    if obs.size == 0:
        return np.zeros((0, 2))
    if obs.ndim != 2 or obs.shape[1] != 2:
        raise ValueError(f"Observations must have shape (K, 2), got {obs.shape}")
    return obs


def to_observations(obs_xy: np.ndarray) -> List[Observation]:
    """Wrap a [K, 2] array as unassociated Observation objects."""
    return [Observation(float(x), float(y)) for x, y in np.asarray(obs_xy).reshape(-1, 2)]
