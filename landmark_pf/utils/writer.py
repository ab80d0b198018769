"""
Append-only particle log.

One line per particle per call, `x y theta`, space separated, written with
enough digits to read back the exact doubles. Failures are
reported and swallowed so the estimation cycle is never aborted by the sink.
"""

import logging
import numpy as np

from ..filters.base import ParticleSet


logger = logging.getLogger(__name__)


def append_particles(path: str, particle_set: ParticleSet) -> bool:
    """
    Append particle poses to a text file.

    Args:
        path: Output file, created if missing, never truncated
        particle_set: Particles to write

    Returns:
        True if the poses were written, False if the file could not be written
    """
    try:
        with open(path, "a") as f:
            np.savetxt(f, particle_set.poses, fmt="%.17g", delimiter=" ")
    except OSError as e:
        logger.warning("Could not append particles to %s: %s", path, e)
        return False
    return True
