"""
Aliasing diagnostics for fast versus high-quality rendering.

A high-frequency checkerboard is shrunk into a smaller axis-aligned quad
with both render modes and compared against an area-averaged reference.
"""

import numpy as np
from skimage.transform import downscale_local_mean

from quadwarp.compositing.blend import downscale
from quadwarp.utils.image_io import checkerboard
from quadwarp.warping.engine import WarpEngine


def reference_downsample(img: np.ndarray, factor: int) -> np.ndarray:
    """Area-average *img* by an integer *factor* along both axes."""
    return downscale_local_mean(img.astype(float), (factor, factor, 1))


def render_to_bounds(source: np.ndarray, quad, high_quality: bool,
                     workers: int = 1) -> np.ndarray:
    """Render *source* into *quad* at the quad's bounding-box resolution."""
    result = WarpEngine(workers=workers).render(source, quad, high_quality)
    return downscale(result.buffer, result.bounds.width, result.bounds.height)


def aliasing_error(rendered: np.ndarray, reference: np.ndarray) -> float:
    """Mean squared colour error between a render and its reference."""
    diff = rendered[..., :3].astype(float) - reference[..., :3]
    return float(np.mean(diff ** 2))


def quality_report(size: int = 64, factor: int = 4, cell: int = 1) -> dict:
    """Render a shrunken checkerboard in both modes and score each one.

    Returns
    -------
    dict
        ``errors`` maps ``"fast"`` and ``"high_quality"`` to their aliasing
        error; ``fast``, ``high_quality`` and ``reference`` hold the images
        that were compared.
    """
    source = checkerboard(size, size, cell)
    target = size // factor
    quad = [(0, 0), (target, 0), (target, target), (0, target)]
    reference = reference_downsample(source, factor)
    fast = render_to_bounds(source, quad, False)
    high_quality = render_to_bounds(source, quad, True)

    return {
        "errors": {
            "fast": aliasing_error(fast, reference),
            "high_quality": aliasing_error(high_quality, reference),
        },
        "fast": fast,
        "high_quality": high_quality,
        "reference": reference,
    }
