"""
Eased interpolation between two corner sets.

Used to animate a layer from its current placement onto a new quad; the
warp engine is simply called once per intermediate frame.
"""

import numpy as np

from quadwarp.errors import InvalidInput
from quadwarp.geometry.quad import as_quad


def ease_in_out_cubic(t: float) -> float:
    """Cubic ease-in/ease-out on ``[0, 1]``; *t* is clamped to that range."""
    t = min(max(t, 0.0), 1.0)
    if t < 0.5:
        return 4 * t * t * t
    return 1 - (-2 * t + 2) ** 3 / 2


def interpolate_corners(start, end, t: float) -> np.ndarray:
    """Corners at eased progress *t* between *start* and *end*."""
    a = as_quad(start)
    b = as_quad(end)
    return a + (b - a) * ease_in_out_cubic(t)


def corner_frames(start, end, n_frames: int):
    """Yield *n_frames* quads from *start* to *end*, both included."""
    if n_frames < 2:
        raise InvalidInput(f"need at least 2 frames, got {n_frames}")
    for k in range(n_frames):
        yield interpolate_corners(start, end, k / (n_frames - 1))
