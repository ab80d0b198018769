"""
Landmark Localization Library.

A NumPy-based particle filter for planar pose estimation against a known
landmark map:
- Velocity / yaw-rate motion model
- Nearest-neighbour landmark association
- Gaussian landmark likelihood and importance resampling
"""

from . import utils
from . import models
from . import filters
from . import simulation

__version__ = "0.1.0"
