"""
Bilinear resampling with edge clamping, plus N x N supersampling.

Scalar functions operate on a single position and mirror the vectorised
functions used by the warp engine value for value: the same arithmetic is
performed in the same order, so either path yields identical pixels.
"""

import math

import numpy as np

from quadwarp.errors import InvalidInput
from quadwarp.geometry.homography import apply_homography, map_points

# Round-off from the matrix inverse can land exact border pixels just below 0
EDGE_EPSILON = 1e-9


def _round_half_up(values):
    return np.floor(values + 0.5)


def bilinear_sample(buffer: np.ndarray, x: float, y: float) -> tuple:
    """Sample an H x W x C buffer at a fractional (x, y) position.

    The floor and ceil neighbours are clamped independently to the image,
    so positions on or beyond the border reuse the edge pixels.

    Returns
    -------
    tuple of int
        One 8-bit value per channel, rounded half up.
    """
    h, w = buffer.shape[:2]
    x1, y1 = math.floor(x), math.floor(y)
    x2, y2 = math.ceil(x), math.ceil(y)
    fx = x - x1
    fy = y - y1

    def clamp(v, hi):
        return min(max(v, 0), hi - 1)

    p11 = buffer[clamp(y1, h), clamp(x1, w)].astype(float)
    p21 = buffer[clamp(y1, h), clamp(x2, w)].astype(float)
    p12 = buffer[clamp(y2, h), clamp(x1, w)].astype(float)
    p22 = buffer[clamp(y2, h), clamp(x2, w)].astype(float)

    top = p11 * (1 - fx) + p21 * fx
    bottom = p12 * (1 - fx) + p22 * fx
    value = _round_half_up(top * (1 - fy) + bottom * fy)
    return tuple(int(v) for v in value)


def sample_points(xs: np.ndarray, ys: np.ndarray,
                  buffer: np.ndarray) -> np.ndarray:
    """Vectorised :func:`bilinear_sample`.

    Parameters
    ----------
    xs, ys : np.ndarray
        1-D arrays of finite sample positions.
    buffer : np.ndarray
        H x W x C source image.

    Returns
    -------
    np.ndarray
        N x C float array of rounded channel values.
    """
    h, w = buffer.shape[:2]
    x1 = np.floor(xs)
    y1 = np.floor(ys)
    fx = (xs - x1)[:, np.newaxis]
    fy = (ys - y1)[:, np.newaxis]

    cx1 = np.clip(x1, 0, w - 1).astype(np.intp)
    cy1 = np.clip(y1, 0, h - 1).astype(np.intp)
    cx2 = np.clip(np.ceil(xs), 0, w - 1).astype(np.intp)
    cy2 = np.clip(np.ceil(ys), 0, h - 1).astype(np.intp)

    p11 = buffer[cy1, cx1].astype(float)
    p21 = buffer[cy1, cx2].astype(float)
    p12 = buffer[cy2, cx1].astype(float)
    p22 = buffer[cy2, cx2].astype(float)

    top = p11 * (1 - fx) + p21 * fx
    bottom = p12 * (1 - fx) + p22 * fx
    return _round_half_up(top * (1 - fy) + bottom * fy)


def inside_source(xs: np.ndarray, ys: np.ndarray, shape: tuple) -> np.ndarray:
    """Mask of positions inside ``[0, W) x [0, H)``; NaN is always outside."""
    h, w = shape[:2]
    return (xs >= -EDGE_EPSILON) & (xs < w) & (ys >= -EDGE_EPSILON) & (ys < h)


def sub_pixel_offsets(samples_per_axis: int) -> list:
    """Regular (dx, dy) grid at ``k / n`` inside a unit cell, row by row."""
    if samples_per_axis < 1:
        raise InvalidInput(f"samples_per_axis must be >= 1, got {samples_per_axis}")
    step = 1 / samples_per_axis
    return [(dx * step, dy * step)
            for dy in range(samples_per_axis)
            for dx in range(samples_per_axis)]


def supersample(h_inv, dest_x: float, dest_y: float,
                samples_per_axis: int, source: np.ndarray):
    """Average the in-bounds sub-samples of one destination pixel.

    Each of the ``n x n`` sub-sample positions is mapped through *h_inv*
    into source space.  Samples that fall outside the source are ignored.

    Returns
    -------
    tuple of int or None
        Averaged channel values, or *None* if no sub-sample hit the source
        (the destination pixel stays transparent).
    """
    h, w = source.shape[:2]
    total = np.zeros(source.shape[2], dtype=float)
    count = 0
    for dx, dy in sub_pixel_offsets(samples_per_axis):
        mapped = apply_homography(h_inv, dest_x + dx, dest_y + dy)
        if mapped is None:
            continue
        sx, sy = mapped
        if -EDGE_EPSILON <= sx < w and -EDGE_EPSILON <= sy < h:
            total += bilinear_sample(source, sx, sy)
            count += 1

    if count == 0:
        return None
    return tuple(int(v) for v in _round_half_up(total / count))


def supersample_grid(h_inv, xs: np.ndarray, ys: np.ndarray,
                     samples_per_axis: int, source: np.ndarray):
    """Vectorised :func:`supersample` over arrays of destination pixels.

    Returns
    -------
    values : np.ndarray
        N x C uint8 averaged samples (zero where nothing hit).
    hit : np.ndarray
        N boolean mask of pixels with at least one in-bounds sub-sample.
    """
    n_channels = source.shape[2]
    total = np.zeros((xs.size, n_channels), dtype=float)
    count = np.zeros(xs.size, dtype=np.intp)

    for dx, dy in sub_pixel_offsets(samples_per_axis):
        sx, sy = map_points(h_inv, xs + dx, ys + dy)
        inside = inside_source(sx, sy, source.shape)
        if not inside.any():
            continue
        total[inside] += sample_points(sx[inside], sy[inside], source)
        count += inside

    hit = count > 0
    values = np.zeros((xs.size, n_channels), dtype=np.uint8)
    values[hit] = _round_half_up(total[hit] / count[hit, np.newaxis])
    return values, hit
