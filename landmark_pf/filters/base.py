"""
Particle containers and filter errors.
"""

import logging
import numpy as np
from dataclasses import dataclass, field
from typing import Iterator, Optional


logger = logging.getLogger(__name__)


class NotInitializedError(RuntimeError):
    """A filter stage was called before the particle set was initialized."""


@dataclass(frozen=True)
class Particle:
    """Snapshot of one weighted pose hypothesis."""
    id: int
    x: float
    y: float
    theta: float
    weight: float


@dataclass
class ParticleSet:
    """
    Fixed-size ensemble of weighted poses.

    Weights live in one array only; `Particle.weight` and the vector handed
    to the resampler are both read from it. The weight arrays are read-only:
    `set_weights` and `set_log_weights` are the only way to change them, so
    `weights` and `log_weights` cannot drift apart.

    Attributes:
        poses: [N, 3] particle poses (x, y, theta)
        weights: [N] non-negative importance weights
        ids: [N] particle ids, unique within this generation
        log_weights: [N] log weights when computed in log space (optional).
                     `weights` is proportional to exp(log_weights), which
                     lets resampling survive underflow and overflow.
    """
    poses: np.ndarray
    weights: np.ndarray
    ids: Optional[np.ndarray] = None
    log_weights: Optional[np.ndarray] = field(default=None, repr=False)

    def __post_init__(self):
        self.poses = np.asarray(self.poses, dtype=np.float64)
        if self.poses.ndim != 2 or self.poses.shape[1] != 3:
            raise ValueError(f"poses must have shape (N, 3), got {self.poses.shape}")
        self.weights = self._checked_weights(self.weights)
        if self.log_weights is not None:
            self.log_weights = self._checked_log_weights(self.log_weights)
        if self.ids is None:
            self.ids = np.arange(self.poses.shape[0])

    def _checked_weights(self, weights: np.ndarray) -> np.ndarray:
        weights = np.array(weights, dtype=np.float64)
        if weights.shape != (self.poses.shape[0],):
            raise ValueError(
                f"weights must have shape ({self.poses.shape[0]},), got {weights.shape}"
            )
        if np.any(weights < 0) or np.any(np.isnan(weights)):
            raise ValueError("weights must be non-negative")
        weights.setflags(write=False)
        return weights

    def _checked_log_weights(self, log_weights: np.ndarray) -> np.ndarray:
        log_weights = np.array(log_weights, dtype=np.float64)
        if log_weights.shape != (self.poses.shape[0],):
            raise ValueError(
                f"log_weights must have shape ({self.poses.shape[0]},), got {log_weights.shape}"
            )
        if np.any(np.isnan(log_weights)) or np.any(log_weights == np.inf):
            raise ValueError("log_weights must not contain +inf or nan")
        log_weights.setflags(write=False)
        return log_weights

    @classmethod
    def uniform(cls, poses: np.ndarray) -> "ParticleSet":
        """Particle set with every weight equal to 1."""
        poses = np.asarray(poses, dtype=np.float64)
        return cls(poses=poses, weights=np.ones(poses.shape[0]))

    @property
    def n_particles(self) -> int:
        return self.poses.shape[0]

    def __len__(self) -> int:
        return self.poses.shape[0]

    def __getitem__(self, i: int) -> Particle:
        x, y, theta = self.poses[i]
        return Particle(
            id=int(self.ids[i]),
            x=float(x),
            y=float(y),
            theta=float(theta),
            weight=float(self.weights[i]),
        )

    def __iter__(self) -> Iterator[Particle]:
        for i in range(len(self)):
            yield self[i]

    def set_weights(self, weights: np.ndarray):
        """Replace all weights at once. Any stored log weights are dropped."""
        self.weights = self._checked_weights(weights)
        self.log_weights = None

    def set_log_weights(self, log_weights: np.ndarray):
        """
        Replace all weights from their logs.

        `weights` becomes exp(log_weights). If that overflows, the weights are
        stored relative to the largest log weight instead (the best particle
        gets weight 1) and a WARNING is logged; proportions are unchanged.
        """
        log_weights = self._checked_log_weights(log_weights)
        with np.errstate(over="ignore"):
            weights = np.exp(log_weights)
        if np.any(np.isinf(weights)):
            max_log = float(np.max(log_weights))
            logger.warning(
                "Particle weights overflow (max log weight %.2f); "
                "storing weights relative to the best particle", max_log
            )
            weights = np.exp(log_weights - max_log)
        self.weights = self._checked_weights(weights)
        self.log_weights = log_weights

    def take(self, indices: np.ndarray) -> "ParticleSet":
        """
        New set built from the given rows.

        Rows are copied, so particles drawn from the same origin do not share
        storage. Each drawn particle keeps its weight. Ids are renumbered
        0..N-1.
        """
        indices = np.asarray(indices, dtype=np.int64)
        return ParticleSet(
            poses=self.poses[indices],
            weights=self.weights[indices],
            log_weights=None if self.log_weights is None else self.log_weights[indices],
        )

    def copy(self) -> "ParticleSet":
        return ParticleSet(
            poses=self.poses.copy(),
            weights=self.weights,
            ids=self.ids.copy(),
            log_weights=self.log_weights,
        )

    def __repr__(self) -> str:
        return f"ParticleSet(n_particles={len(self)})"
