"""
Image I/O helpers.

Thin wrappers around PIL for consistent RGBA loading and saving, plus the
synthetic test images used by the quality report.
"""

import os

import numpy as np
from PIL import Image

from quadwarp.errors import InvalidInput


def load_image(path: str) -> np.ndarray:
    """Load an image file as an H x W x 4 uint8 RGBA array."""
    with Image.open(path) as im:
        return np.array(im.convert("RGBA"))


def save_image(img: np.ndarray, path: str) -> None:
    """Write an RGBA or RGB uint8 array to *path* (format from extension)."""
    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)
    Image.fromarray(np.ascontiguousarray(img)).save(path)


def to_rgba(img) -> np.ndarray:
    """Promote a gray, RGB or RGBA uint8 image to a fresh RGBA array.

    Raises
    ------
    InvalidInput
        If *img* is missing, empty, or not an image-shaped array.
    """
    if img is None:
        raise InvalidInput("no source image")
    img = np.asarray(img)
    if img.ndim == 2:
        img = img[:, :, np.newaxis].repeat(3, axis=2)
    if img.ndim != 3 or img.shape[2] not in (3, 4):
        raise InvalidInput(f"unsupported image shape {img.shape}")
    if img.shape[0] == 0 or img.shape[1] == 0:
        raise InvalidInput("source image is empty")

    img = np.clip(img, 0, 255).astype(np.uint8)
    if img.shape[2] == 3:
        alpha = np.full(img.shape[:2] + (1,), 255, dtype=np.uint8)
        img = np.concatenate([img, alpha], axis=2)
    return img.copy()


def checkerboard(width: int, height: int, cell: int = 1) -> np.ndarray:
    """Opaque black/white checkerboard with square cells of *cell* pixels."""
    ys, xs = np.mgrid[0:height, 0:width]
    on = ((xs // cell) + (ys // cell)) % 2 == 0
    img = np.zeros((height, width, 4), dtype=np.uint8)
    img[on, :3] = 255
    img[:, :, 3] = 255
    return img


def ensure_output_dirs(scenes: list, base: str = "results") -> None:
    """Create output subdirectories for each scene name.

    Parameters
    ----------
    scenes : list of str
        Scene identifiers (one subdirectory is created per scene).
    base : str
        Root output directory.
    """
    for scene in scenes:
        os.makedirs(os.path.join(base, scene), exist_ok=True)
