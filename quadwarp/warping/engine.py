"""
Perspective warping of a rectangular image into a destination quad.

Given the four destination corners, the image is inverse-warped into a
working buffer the size of the quad's bounding box: every working pixel is
mapped back through H^-1 and the source is sampled bilinearly.  Pixels
mapping outside the source stay transparent.  High-quality mode doubles the
working resolution and takes 2 x 2 sub-samples per pixel; the compositor
box-filters the buffer back down when drawing it.
"""

import enum
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import NamedTuple

import numpy as np

from quadwarp.compositing.blend import SurfaceCompositor, check_blend_mode
from quadwarp.errors import DegenerateGeometry, InvalidInput, WarpError
from quadwarp.geometry.homography import compute_homography, invert_homography
from quadwarp.geometry.quad import BoundingBox, as_quad, bounding_box
from quadwarp.sampling.bilinear import supersample_grid
from quadwarp.utils.image_io import to_rgba

logger = logging.getLogger(__name__)

HIGH_QUALITY_SCALE = 2
HIGH_QUALITY_SAMPLES = 2
ROWS_PER_BAND = 64


class WarpStage(enum.Enum):
    """Last pipeline stage a ``WarpEngine`` reached.

    The value is kept after a call returns, so a finished warp reads
    ``COMPOSITED`` (or ``RASTERIZED`` without a compositor) and a failed one
    shows where it stopped.  Each new call starts again from ``IDLE``.
    """

    IDLE = "idle"
    GEOMETRY_COMPUTED = "geometry_computed"
    MATRIX_READY = "matrix_ready"
    RASTERIZED = "rasterized"
    COMPOSITED = "composited"


class WarpResult(NamedTuple):
    buffer: np.ndarray      # working buffer, (height*scale, width*scale, 4)
    bounds: BoundingBox     # destination box on the target surface
    scale: int


class Layer(NamedTuple):
    image: np.ndarray
    corners: object
    blend_mode: str = "source-over"


def rasterize_rows(h_inv: np.ndarray, source: np.ndarray, out: np.ndarray,
                   row_start: int, row_stop: int,
                   samples_per_axis: int) -> None:
    """Fill rows ``[row_start, row_stop)`` of *out* by inverse mapping.

    Only the given rows of *out* are written, so disjoint row bands can be
    filled concurrently.
    """
    width = out.shape[1]
    ys, xs = np.mgrid[row_start:row_stop, 0:width]
    values, hit = supersample_grid(h_inv, xs.ravel().astype(float),
                                   ys.ravel().astype(float),
                                   samples_per_axis, source)
    band = out[row_start:row_stop].reshape(-1, out.shape[2])
    band[hit] = values[hit]
    out[row_start:row_stop] = band.reshape(row_stop - row_start, width, -1)


def row_bands(height: int, rows_per_band: int = ROWS_PER_BAND):
    """Split [0, height) into contiguous (start, stop) row ranges."""
    return [(start, min(start + rows_per_band, height))
            for start in range(0, height, rows_per_band)]


class WarpEngine:
    """Renders images into destination quads.

    Parameters
    ----------
    compositor : SurfaceCompositor, optional
        Surface that :meth:`warp` draws onto.  Without one, :meth:`warp`
        only returns the rasterised working buffer.
    workers : int
        Number of threads the pixel loop is sharded across (row bands).
        Output does not depend on this value.
    """

    def __init__(self, compositor: SurfaceCompositor = None, workers: int = 1):
        if workers < 1:
            raise InvalidInput(f"workers must be >= 1, got {workers}")
        self.compositor = compositor
        self.workers = workers
        self.stage = WarpStage.IDLE

    # ------------------------------------------------------------------
    # Single image
    # ------------------------------------------------------------------

    def render(self, source, quad, high_quality: bool = False) -> WarpResult:
        """Rasterise *source* into the bounding box of *quad*.

        Raises
        ------
        InvalidInput
            Missing/invalid source image or a quad without exactly 4 points.
        DegenerateGeometry, SingularMatrix
            The quad is degenerate; nothing is rendered.
        """
        self.stage = WarpStage.IDLE
        src = to_rgba(source)
        quad = as_quad(quad)

        bounds = bounding_box(quad)
        if bounds.width == 0 or bounds.height == 0:
            raise DegenerateGeometry(f"destination quad has zero area: {bounds}")
        scale = HIGH_QUALITY_SCALE if high_quality else 1
        self.stage = WarpStage.GEOMETRY_COMPUTED

        h, w = src.shape[:2]
        source_points = np.array([[0, 0], [w, 0], [w, h], [0, h]], dtype=float)
        adjusted = (quad - [bounds.min_x, bounds.min_y]) * scale

        H = compute_homography(source_points, adjusted)
        h_inv = invert_homography(H)
        self.stage = WarpStage.MATRIX_READY

        out_h, out_w = bounds.height * scale, bounds.width * scale
        out = np.zeros((out_h, out_w, 4), dtype=np.uint8)
        samples = HIGH_QUALITY_SAMPLES if high_quality else 1
        logger.debug("warping %dx%d source into %dx%d buffer (%d samples/px)",
                     w, h, out_w, out_h, samples * samples)

        bands = row_bands(out_h)
        if self.workers == 1 or len(bands) < 2:
            for start, stop in bands:
                rasterize_rows(h_inv, src, out, start, stop, samples)
        else:
            with ThreadPoolExecutor(max_workers=self.workers) as pool:
                futures = [pool.submit(rasterize_rows, h_inv, src, out,
                                       start, stop, samples)
                           for start, stop in bands]
                for f in futures:
                    f.result()
        self.stage = WarpStage.RASTERIZED

        return WarpResult(out, bounds, scale)

    def warp(self, source, quad, blend_mode: str = "source-over",
             high_quality: bool = False) -> np.ndarray:
        """Render *source* into *quad* and composite it.

        The result is drawn onto the attached compositor (if any) with
        *blend_mode*; the compositor's previous mode is restored afterwards.

        Returns
        -------
        np.ndarray
            The rasterised working buffer.
        """
        check_blend_mode(blend_mode)
        result = self.render(source, quad, high_quality)
        if self.compositor is not None:
            with self.compositor.using(blend_mode):
                self.compositor.composite(result.buffer, result.bounds)
            self.stage = WarpStage.COMPOSITED
        return result.buffer

    # ------------------------------------------------------------------
    # Layer stacks
    # ------------------------------------------------------------------

    def render_layers(self, layers, high_quality: bool = False) -> list:
        """Warp and composite *layers* in order.

        A layer that fails (bad input or degenerate quad) is logged and
        skipped; the remaining layers are still drawn.

        Returns
        -------
        list of Layer
            The layers that were not drawn.
        """
        if self.compositor is None:
            raise InvalidInput("render_layers needs a compositor")
        skipped = []
        for index, layer in enumerate(layers):
            try:
                self.warp(layer.image, layer.corners, layer.blend_mode,
                          high_quality)
            except WarpError as exc:
                logger.warning("layer %d not drawn: %s", index, exc)
                skipped.append(layer)
        return skipped


def warp(source, destination_quad, blend_mode: str = "source-over",
         high_quality: bool = False, compositor: SurfaceCompositor = None,
         workers: int = 1) -> np.ndarray:
    """Warp *source* into *destination_quad*; see :meth:`WarpEngine.warp`."""
    engine = WarpEngine(compositor, workers=workers)
    return engine.warp(source, destination_quad, blend_mode, high_quality)
