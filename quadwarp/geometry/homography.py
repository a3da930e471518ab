"""
Homography estimation from four point correspondences.

A planar homography (projective transformation) maps the rectangle of a
source image onto an arbitrary destination quadrilateral.  Fixing
``H[2, 2] = 1`` leaves eight unknowns, which the four correspondences
determine exactly through an 8 x 8 linear system.
"""

import logging

import numpy as np

from quadwarp.errors import InvalidInput, SingularMatrix
from quadwarp.geometry.solver import solve_linear_system

logger = logging.getLogger(__name__)

DET_EPSILON = 1e-12
W_EPSILON = 1e-12


def compute_homography(source, destination) -> np.ndarray:
    """Compute the 3x3 homography mapping *source* corners to *destination*.

    Each correspondence ``(sx, sy) -> (tx, ty)`` contributes the two rows

        [sx, sy, 1, 0,  0,  0, -sx*tx, -sy*tx] . h = tx
        [0,  0,  0, sx, sy, 1, -sx*ty, -sy*ty] . h = ty

    Parameters
    ----------
    source, destination : array_like
        4 x 2 arrays of (x, y) points.

    Returns
    -------
    H : np.ndarray
        3 x 3 homography with ``H[2, 2] == 1`` such that
        ``destination ~ H @ source`` in homogeneous coordinates.

    Raises
    ------
    DegenerateGeometry
        If the correspondences make the system singular.
    """
    src = np.asarray(source, dtype=float)
    dst = np.asarray(destination, dtype=float)
    if src.shape != (4, 2) or dst.shape != (4, 2):
        raise InvalidInput(
            f"need 4 x 2 point arrays, got {src.shape} and {dst.shape}"
        )

    A = np.zeros((8, 8))
    b = np.zeros(8)
    for i in range(4):
        sx, sy = src[i]
        tx, ty = dst[i]
        A[2 * i] = [sx, sy, 1, 0, 0, 0, -sx * tx, -sy * tx]
        A[2 * i + 1] = [0, 0, 0, sx, sy, 1, -sx * ty, -sy * ty]
        b[2 * i] = tx
        b[2 * i + 1] = ty

    h = solve_linear_system(A, b)
    H = np.append(h, 1.0).reshape(3, 3)
    logger.debug("homography:\n%s", H)
    return H


def invert_homography(H) -> np.ndarray:
    """Invert a 3x3 matrix via its adjugate.

    Raises
    ------
    SingularMatrix
        When the determinant is within epsilon of zero.  The threshold
        scales with the magnitude of the entries.
        With ``H[2, 2] == 1`` the floor never drops below 1e-12, so a map
        that shrinks by more than about 1e6 per axis is rejected too.
    """
    H = np.asarray(H, dtype=float)
    (a, b, c), (d, e, f), (g, h, i) = H

    det = a * (e * i - f * h) - b * (d * i - f * g) + c * (d * h - e * g)
    scale = max(1.0, float(np.max(np.abs(H))))
    if not np.isfinite(det) or abs(det) < DET_EPSILON * scale ** 3:
        raise SingularMatrix(f"matrix is not invertible (det={det:.3g})")

    return np.array([
        [e * i - f * h, c * h - b * i, b * f - c * e],
        [f * g - d * i, a * i - c * g, c * d - a * f],
        [d * h - e * g, b * g - a * h, a * e - b * d],
    ]) / det


def apply_homography(H, x: float, y: float):
    """Map a single point through *H*.

    Returns
    -------
    tuple of (float, float) or None
        The transformed (x, y), or *None* if the point maps to infinity.
    """
    w = H[2][0] * x + H[2][1] * y + H[2][2]
    if abs(w) < W_EPSILON:
        return None
    return (
        (H[0][0] * x + H[0][1] * y + H[0][2]) / w,
        (H[1][0] * x + H[1][1] * y + H[1][2]) / w,
    )


def map_points(H, xs: np.ndarray, ys: np.ndarray):
    """Vectorised :func:`apply_homography` over arrays of coordinates.

    Points that map to infinity come back as NaN so that any later bounds
    comparison rejects them.
    """
    xs = np.asarray(xs, dtype=float)
    ys = np.asarray(ys, dtype=float)

    w = H[2][0] * xs + H[2][1] * ys + H[2][2]
    valid = np.abs(w) >= W_EPSILON
    safe_w = np.where(valid, w, 1.0)

    out_x = (H[0][0] * xs + H[0][1] * ys + H[0][2]) / safe_w
    out_y = (H[1][0] * xs + H[1][1] * ys + H[1][2]) / safe_w
    out_x = np.where(valid, out_x, np.nan)
    out_y = np.where(valid, out_y, np.nan)
    return out_x, out_y
