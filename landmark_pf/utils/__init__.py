"""
Utility functions.
"""

from .geometry import (
    wrap_angle,
    distance,
    rigid_transform,
)

from .resampling import (
    systematic_resample,
    stratified_resample,
    multinomial_resample,
    residual_resample,
    effective_sample_size,
    normalize_weights,
    normalize_log_weights,
    normalize_particle_weights,
)

from .metrics import (
    best_particle,
    weighted_mean_pose,
    position_error,
    heading_error,
    compute_rmse,
)

from .writer import append_particles

__all__ = [
    "wrap_angle",
    "distance",
    "rigid_transform",
    "systematic_resample",
    "stratified_resample",
    "multinomial_resample",
    "residual_resample",
    "effective_sample_size",
    "normalize_weights",
    "normalize_log_weights",
    "normalize_particle_weights",
    "best_particle",
    "weighted_mean_pose",
    "position_error",
    "heading_error",
    "compute_rmse",
    "append_particles",
]
