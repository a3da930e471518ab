"""
Exception hierarchy for the warp pipeline.

Every failure is recoverable at the granularity of a single warp call: a
layer that raises is simply not drawn, other layers are unaffected.
"""


class WarpError(Exception):
    """Base class for all warp failures."""


class InvalidInput(WarpError, ValueError):
    """Missing source raster, malformed quad, or unknown option."""


class DegenerateGeometry(WarpError):
    """The correspondence system is singular (duplicate or collinear corners)."""


class SingularMatrix(WarpError):
    """A homography could not be inverted (determinant close to zero)."""
