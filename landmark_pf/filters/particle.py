"""
Particle filter localization against a known landmark map.

Sequential importance resampling with the motion model as proposal:
init -> (prediction -> update_weights -> resample) per timestep.
"""

import logging
import numpy as np
from concurrent.futures import ThreadPoolExecutor
from typing import Literal, Optional, Sequence, Tuple
from numpy.random import Generator, default_rng

from .association import AssociationMethod, nearest_indices
from .base import NotInitializedError, ParticleSet
from ..models.base import UNASSOCIATED, LandmarkMap, ObservationsLike, as_observation_array
from ..models.motion import check_std, sample_motion
from ..models.sensor import landmarks_in_range, observation_log_likelihood
from ..utils.resampling import (
    systematic_resample,
    stratified_resample,
    multinomial_resample,
    residual_resample,
    effective_sample_size,
    normalize_particle_weights,
)
from ..utils.writer import append_particles


logger = logging.getLogger(__name__)


class LandmarkParticleFilter:
    """
    Monte Carlo localization with nearest-neighbour landmark association.

    Every particle is scored by the product, over all observations, of the
    Gaussian density of the residual to its associated landmark. Observations
    with no landmark in range contribute `unmatched_likelihood` to the
    product instead of being skipped.
    """

    def __init__(
        self,
        n_particles: int = 100,
        resample_method: Literal["multinomial", "systematic", "stratified", "residual"] = "multinomial",
        association: AssociationMethod = "brute",
        unmatched_likelihood: float = 0.0,
        n_workers: Optional[int] = None,
        seed: Optional[int] = None,
        rng: Optional[Generator] = None,
    ):
        """
        Args:
            n_particles: Number of particles N, fixed for the session
            resample_method: Resampling algorithm
            association: Nearest-neighbour search ("brute" or "kdtree")
            unmatched_likelihood: Likelihood factor for an observation with
                                  no landmark in range (0 zeroes the particle)
            n_workers: Thread pool size for weight evaluation (None = serial)
            seed: Random seed (ignored if rng is provided)
            rng: Optional random generator
        """
        if n_particles < 1:
            raise ValueError(f"n_particles must be >= 1, got {n_particles}")
        if association not in ("brute", "kdtree"):
            raise ValueError(f"Unknown association method: {association}")
        if unmatched_likelihood < 0:
            raise ValueError(f"unmatched_likelihood must be >= 0, got {unmatched_likelihood}")
        if n_workers is not None and n_workers < 1:
            raise ValueError(f"n_workers must be >= 1, got {n_workers}")

        self.n_particles = n_particles
        self.resample_method = resample_method
        self.association = association
        self.unmatched_likelihood = unmatched_likelihood
        self.n_workers = n_workers
        self.seed = seed
        self.rng = rng if rng is not None else default_rng(seed)

        self._resample_fn = self._get_resampler()
        self._log_unmatched = (
            -np.inf if unmatched_likelihood == 0.0 else np.log(unmatched_likelihood)
        )

        self.particles: Optional[ParticleSet] = None
        # [N, K] landmark id matched by each particle for each observation
        self.associations: Optional[np.ndarray] = None

    def _get_resampler(self):
        """Get resampling function based on method."""
        resamplers = {
            "systematic": systematic_resample,
            "stratified": stratified_resample,
            "multinomial": multinomial_resample,
            "residual": residual_resample,
        }
        if self.resample_method not in resamplers:
            raise ValueError(f"Unknown resample method: {self.resample_method}")
        return resamplers[self.resample_method]

    @property
    def is_initialized(self) -> bool:
        return self.particles is not None

    def _require_initialized(self, stage: str):
        if self.particles is None:
            raise NotInitializedError(f"{stage}() called before init()")

    # -------------------------------------------------------------------------
    # Cycle stages
    # -------------------------------------------------------------------------

    def init(self, x: float, y: float, theta: float, std: Sequence[float]) -> ParticleSet:
        """
        Sample N particles from N([x, y, theta], diag(std^2)), all weights 1.

        Args:
            x, y, theta: Initial pose estimate
            std: (std_x, std_y, std_theta)

        Returns:
            The new particle set
        """
        std = check_std(std, 3, "std")
        if self.particles is not None:
            logger.info("Re-initializing particle set")

        mean = np.array([x, y, theta], dtype=np.float64)
        poses = mean + self.rng.standard_normal((self.n_particles, 3)) * std
        self.particles = ParticleSet.uniform(poses)
        self.associations = None

        logger.info(
            "Initialized %d particles around (%.3f, %.3f, %.3f)",
            self.n_particles, x, y, theta,
        )
        return self.particles

    def prediction(
        self,
        delta_t: float,
        std_pos: Sequence[float],
        velocity: float,
        yaw_rate: float,
    ) -> ParticleSet:
        """
        Move every particle with the motion model plus process noise.

        Args:
            delta_t: Elapsed time (> 0)
            std_pos: (std_x, std_y, std_theta) process noise
            velocity: Linear velocity
            yaw_rate: Yaw rate

        Returns:
            The particle set, updated in place
        """
        self._require_initialized("prediction")
        if not delta_t > 0:
            raise ValueError(f"delta_t must be > 0, got {delta_t}")

        self.particles.poses = sample_motion(
            self.particles.poses, delta_t, velocity, yaw_rate, std_pos, self.rng
        )
        return self.particles

    def _particle_log_weight(
        self,
        pose: np.ndarray,
        obs_xy: np.ndarray,
        landmark_map: LandmarkMap,
        sensor_range: float,
        std_landmark: np.ndarray,
    ) -> Tuple[float, np.ndarray]:
        """Log weight of one particle and the landmark id matched per observation."""
        ids, pred_xy = landmarks_in_range(landmark_map, pose, sensor_range)
        idx = nearest_indices(pred_xy, obs_xy, method=self.association)

        matched = idx >= 0
        assoc = np.full(obs_xy.shape[0], UNASSOCIATED, dtype=np.int64)
        assoc[matched] = ids[idx[matched]]

        log_w = 0.0
        if np.any(matched):
            residuals = obs_xy[matched] - pred_xy[idx[matched]]
            log_w += float(np.sum(observation_log_likelihood(residuals, std_landmark)))

        n_unmatched = int(np.count_nonzero(~matched))
        if n_unmatched:
            log_w += n_unmatched * self._log_unmatched

        return log_w, assoc

    def update_weights(
        self,
        sensor_range: float,
        std_landmark: Sequence[float],
        observations: ObservationsLike,
        landmark_map: LandmarkMap,
    ) -> ParticleSet:
        """
        Weight every particle by the likelihood of the observations.

        Args:
            sensor_range: Maximum sensing distance (> 0)
            std_landmark: (std_x, std_y) measurement noise (> 0)
            observations: Vehicle-frame observations, Observation objects or [K, 2]
            landmark_map: Known landmarks

        Returns:
            The particle set with new weights
        """
        self._require_initialized("update_weights")
        if not sensor_range > 0:
            raise ValueError(f"sensor_range must be > 0, got {sensor_range}")
        std_landmark = check_std(std_landmark, 2, "std_landmark", strictly_positive=True)
        obs_xy = as_observation_array(observations)

        poses = self.particles.poses
        N = poses.shape[0]

        def evaluate(i):
            return self._particle_log_weight(
                poses[i], obs_xy, landmark_map, sensor_range, std_landmark
            )

        if self.n_workers is None:
            results = [evaluate(i) for i in range(N)]
        else:
            with ThreadPoolExecutor(max_workers=self.n_workers) as pool:
                results = list(pool.map(evaluate, range(N)))

        log_weights = np.array([r[0] for r in results], dtype=np.float64)
        self.associations = np.stack([r[1] for r in results]).reshape(N, obs_xy.shape[0])
        self.particles.set_log_weights(log_weights)

        if logger.isEnabledFor(logging.DEBUG):
            n_unmatched = int(np.count_nonzero(self.associations == UNASSOCIATED))
            logger.debug(
                "Weighted %d particles on %d observations (%d unmatched pairs, %d zero weights)",
                N, obs_xy.shape[0], n_unmatched, int(np.count_nonzero(self.particles.weights == 0)),
            )
        return self.particles

    def _normalized_weights(self) -> np.ndarray:
        return normalize_particle_weights(self.particles.weights, self.particles.log_weights)

    def resample(self) -> ParticleSet:
        """
        Draw N particles with replacement, proportional to weight.

        Uses the log weights when present so that products which underflowed
        to 0.0 are still resampled proportionally. An all-zero weight vector
        is resampled uniformly. Drawn particles keep their weights, so the
        new set still reflects the likelihoods of the last update until the
        next `update_weights` replaces them.

        Returns:
            The new particle set
        """
        self._require_initialized("resample")

        indices = self._resample_fn(self._normalized_weights(), self.rng)
        self.particles = self.particles.take(indices)
        self.associations = None
        return self.particles

    def step(
        self,
        delta_t: float,
        std_pos: Sequence[float],
        velocity: float,
        yaw_rate: float,
        sensor_range: float,
        std_landmark: Sequence[float],
        observations: ObservationsLike,
        landmark_map: LandmarkMap,
    ) -> ParticleSet:
        """Run one prediction / weighting / resampling cycle."""
        self.prediction(delta_t, std_pos, velocity, yaw_rate)
        self.update_weights(sensor_range, std_landmark, observations, landmark_map)
        return self.resample()

    def effective_sample_size(self) -> float:
        """
        ESS of the current weights.

        Computed from the weights on the set. After `resample` those are the
        carried-over weights of the drawn particles, not a uniform vector.
        """
        self._require_initialized("effective_sample_size")
        return effective_sample_size(self._normalized_weights())

    def write(self, path: str) -> bool:
        """Append the current particle poses to a text log."""
        self._require_initialized("write")
        return append_particles(path, self.particles)

    def __repr__(self) -> str:
        return (
            f"LandmarkParticleFilter(n_particles={self.n_particles}, "
            f"resample_method={self.resample_method!r}, association={self.association!r})"
        )
