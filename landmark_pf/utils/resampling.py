"""
Resampling algorithms and weight normalization for particle filters.

All samplers take normalized weights and return [N] indices into the
particle array. Normalization falls back to uniform weights when every
weight is zero, so the samplers never see a degenerate distribution.
"""

import logging
import numpy as np
from numpy.random import Generator
from typing import Optional, Tuple


logger = logging.getLogger(__name__)


def _inverse_cdf(weights: np.ndarray, positions: np.ndarray) -> np.ndarray:
    """Map sorted positions in [0, 1) to indices through the weight CDF."""
    N = len(weights)
    cdf = np.cumsum(weights)
    cdf[-1] = 1.0  # guard against round-off leaving the last bin short
    indices = np.searchsorted(cdf, positions, side='right')
    return np.minimum(indices, N - 1)


def multinomial_resample(weights: np.ndarray, rng: Generator) -> np.ndarray:
    """
    Multinomial resampling: N independent draws with replacement.

    Args:
        weights: [N] Normalized weights (must sum to 1)
        rng: NumPy random generator

    Returns:
        indices: [N] Resampled particle indices
    """
    N = len(weights)
    return _inverse_cdf(weights, np.sort(rng.random(N)))


def systematic_resample(weights: np.ndarray, rng: Generator) -> np.ndarray:
    """
    Systematic resampling: one uniform offset, N evenly spaced positions.

    Args:
        weights: [N] Normalized weights (must sum to 1)
        rng: NumPy random generator

    Returns:
        indices: [N] Resampled particle indices
    """
    N = len(weights)
    positions = (rng.uniform(0.0, 1.0) + np.arange(N)) / N
    return _inverse_cdf(weights, positions)


def stratified_resample(weights: np.ndarray, rng: Generator) -> np.ndarray:
    """
    Stratified resampling: one uniform draw inside each stratum [i/N, (i+1)/N).

    Args:
        weights: [N] Normalized weights (must sum to 1)
        rng: NumPy random generator

    Returns:
        indices: [N] Resampled particle indices
    """
    N = len(weights)
    positions = (np.arange(N) + rng.uniform(0.0, 1.0, N)) / N
    return _inverse_cdf(weights, positions)


def residual_resample(weights: np.ndarray, rng: Generator) -> np.ndarray:
    """
    Residual resampling.

    Every particle is kept floor(N * w_i) times; the remaining slots are
    drawn independently from the fractional parts.

    Args:
        weights: [N] Normalized weights (must sum to 1)
        rng: NumPy random generator

    Returns:
        indices: [N] Resampled particle indices
    """
    N = len(weights)
    scaled = N * np.asarray(weights, dtype=np.float64)
    kept = np.floor(scaled).astype(np.int64)
    deterministic = np.repeat(np.arange(N), kept)

    n_left = N - deterministic.shape[0]
    if n_left == 0:
        return deterministic
    fractional = scaled - kept
    drawn = _inverse_cdf(fractional / fractional.sum(), np.sort(rng.random(n_left)))
    return np.concatenate([deterministic, drawn])


def effective_sample_size(weights: np.ndarray) -> float:
    """
    Kish's effective sample size, (sum w)^2 / sum(w^2).

    Scale-free, so normalized and unnormalized weights give the same value.
    All-zero weights have no effective samples.

    Args:
        weights: [N] Non-negative weights

    Returns:
        ESS value in [1, N], or 0.0 for all-zero weights
    """
    weights = np.asarray(weights, dtype=np.float64)
    peak = np.max(weights) if weights.size else 0.0
    if peak == 0.0:
        return 0.0
    w = weights / peak
    return float(np.sum(w) ** 2 / np.sum(w ** 2))


def normalize_weights(weights: np.ndarray) -> Tuple[np.ndarray, float]:
    """
    Normalize non-negative weights to sum to 1.

    Args:
        weights: [N] Unnormalized non-negative weights

    Returns:
        weights: [N] Normalized weights (uniform if the total is zero, shared
                 equally among the infinite entries if any are infinite)
        total: Sum of the input weights
    """
    weights = np.asarray(weights, dtype=np.float64)
    if np.any(weights < 0) or np.any(np.isnan(weights)):
        raise ValueError("weights must be non-negative numbers")

    N = len(weights)
    infinite = np.isinf(weights)
    if np.any(infinite):
        logger.warning(
            "%d infinite weights; sharing probability equally among them",
            int(np.count_nonzero(infinite)),
        )
        return infinite / np.count_nonzero(infinite), np.inf

    with np.errstate(over="ignore"):
        total = float(np.sum(weights))
    if total == 0.0:
        logger.warning("All particle weights are zero; falling back to uniform weights")
        return np.full(N, 1.0 / N), total
    if not np.isfinite(total):
        # finite weights whose sum overflows
        scaled = weights / np.max(weights)
        return scaled / np.sum(scaled), total

    return weights / total, total


def normalize_log_weights(log_weights: np.ndarray) -> Tuple[np.ndarray, float]:
    """
    Normalize log weights with log-sum-exp.

    Args:
        log_weights: [N] Unnormalized log weights (-inf allowed)

    Returns:
        weights: [N] Normalized weights (uniform if every entry is -inf)
        log_normalizer: Log of the normalizing constant
    """
    log_weights = np.asarray(log_weights, dtype=np.float64)
    N = len(log_weights)

    max_log = np.max(log_weights)
    if not np.isfinite(max_log):
        if max_log == np.inf or np.isnan(max_log):
            raise ValueError("log weights must not contain +inf or nan")
        logger.warning("All particle weights are zero; falling back to uniform weights")
        return np.full(N, 1.0 / N), -np.inf

    log_sum = max_log + np.log(np.sum(np.exp(log_weights - max_log)))
    return np.exp(log_weights - log_sum), log_sum


def normalize_particle_weights(
    weights: np.ndarray,
    log_weights: Optional[np.ndarray] = None,
) -> np.ndarray:
    """
    Normalized probabilities of a particle set.

    Uses the log weights when present, so products that under- or
    overflowed in linear space keep their true proportions.
    """
    if log_weights is not None:
        probs, _ = normalize_log_weights(log_weights)
    else:
        probs, _ = normalize_weights(weights)
    return probs
