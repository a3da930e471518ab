"""
Quadrilateral utilities shared by the warp engine and its callers.

Quads are 4 x 2 float arrays of (x, y) corners, conventionally ordered
top-left, top-right, bottom-right, bottom-left.  Nothing here enforces a
winding order.
"""

import math
from collections.abc import Mapping
from typing import NamedTuple

import numpy as np
from scipy.spatial.distance import cdist

from quadwarp.errors import InvalidInput


class BoundingBox(NamedTuple):
    min_x: int
    min_y: int
    width: int
    height: int


def as_points(points) -> np.ndarray:
    """Convert a sequence of points to an N x 2 float array.

    Accepts (x, y) pairs, ``{"x": .., "y": ..}`` mappings or an N x 2 array.
    """
    if points is None:
        raise InvalidInput("no points given")
    try:
        rows = [(p["x"], p["y"]) if isinstance(p, Mapping) else tuple(p)
                for p in points]
        arr = np.array(rows, dtype=float)
    except (KeyError, TypeError, ValueError) as exc:
        raise InvalidInput(f"points are not numeric: {exc}") from exc
    if arr.ndim != 2 or arr.shape[1] != 2:
        raise InvalidInput(f"expected (x, y) points, got shape {arr.shape}")
    return arr


def as_quad(points) -> np.ndarray:
    """Validate and copy *points* as a 4 x 2 quad."""
    quad = as_points(points)
    if quad.shape[0] != 4:
        raise InvalidInput(f"a quad needs exactly 4 points, got {quad.shape[0]}")
    if not np.all(np.isfinite(quad)):
        raise InvalidInput("quad contains non-finite coordinates")
    return quad


def bounding_box(quad) -> BoundingBox:
    """Integer box enclosing *quad*: floor of the minima, ceil of the maxima."""
    quad = as_quad(quad)
    min_x = math.floor(quad[:, 0].min())
    min_y = math.floor(quad[:, 1].min())
    max_x = math.ceil(quad[:, 0].max())
    max_y = math.ceil(quad[:, 1].max())
    return BoundingBox(min_x, min_y, max_x - min_x, max_y - min_y)


def point_in_quad(point, quad) -> bool:
    """Hit-test *point* against *quad*.

    This is an axis-aligned bounding-box test, not exact polygon
    containment: a point in the box but outside a skewed quad still hits.
    Edges are inclusive.
    """
    quad = as_quad(quad)
    x, y = as_points([point])[0]
    return bool(
        quad[:, 0].min() <= x <= quad[:, 0].max()
        and quad[:, 1].min() <= y <= quad[:, 1].max()
    )


def sort_by_angle_from_centroid(points) -> np.ndarray:
    """Order points by ``atan2(y - cy, x - cx)`` around their centroid.

    In image coordinates (y down) this runs clockwise starting from the
    point closest to the negative x axis.  Returns a new array.
    """
    pts = as_points(points)
    centroid = pts.mean(axis=0)
    angles = np.arctan2(pts[:, 1] - centroid[1], pts[:, 0] - centroid[0])
    return pts[np.argsort(angles, kind="stable")]


def corners_distance(points1, points2) -> float:
    """Total Euclidean distance between two angle-sorted corner sets.

    Returns ``inf`` unless both sets hold exactly four points.
    """
    try:
        a = as_quad(points1)
        b = as_quad(points2)
    except InvalidInput:
        return math.inf
    d = cdist(sort_by_angle_from_centroid(a), sort_by_angle_from_centroid(b))
    return float(np.trace(d))


def pick_corner(point, quad, radius: float):
    """Index of the corner of *quad* nearest to *point* within *radius*.

    Returns *None* when no corner is close enough.
    """
    quad = as_quad(quad)
    d = cdist(as_points([point]), quad)[0]
    idx = int(np.argmin(d))
    return idx if d[idx] <= radius else None


def initial_corners(image_size, canvas_size, padding: float = 50) -> np.ndarray:
    """Default placement of an image on a canvas.

    The image keeps its aspect ratio and is scaled down (never up) to fit
    inside the canvas minus *padding* on every side, anchored at the
    top-left padding corner.

    Parameters
    ----------
    image_size, canvas_size : tuple of (int, int)
        (width, height) pairs.
    """
    width, height = image_size
    canvas_w, canvas_h = canvas_size
    max_w = canvas_w - 2 * padding
    max_h = canvas_h - 2 * padding

    if width > max_w or height > max_h:
        scale = min(max_w / width, max_h / height)
        width *= scale
        height *= scale

    return np.array([
        [padding,         padding],
        [padding + width, padding],
        [padding + width, padding + height],
        [padding,         padding + height],
    ], dtype=float)
