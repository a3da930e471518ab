"""
Visualization utilities for the mockup renderer.

All functions save figures to disk rather than displaying them interactively,
making the module suitable for headless execution.
"""

import os
import numpy as np
import matplotlib
matplotlib.use("Agg")          # non-interactive backend
import matplotlib.pyplot as plt


def _outline(ax, corners, color):
    pts = np.vstack([corners, corners[:1]])
    ax.plot(pts[:, 0], pts[:, 1], "-", color=color, linewidth=1)
    ax.plot(pts[:-1, 0], pts[:-1, 1], "s", color=color, markersize=6,
            markerfacecolor="none")


def save_warp_preview(background: np.ndarray, layers: list,
                      result: np.ndarray, scene: str, out_dir: str,
                      dpi: int = 150) -> None:
    """Save background with quad outlines next to the composited result."""
    fig, axes = plt.subplots(1, 2, figsize=(16, 7))

    axes[0].imshow(background)
    for layer in layers:
        _outline(axes[0], np.asarray(layer.corners, dtype=float), "red")
    axes[0].set_title(f"{scene} – destination quads ({len(layers)})")
    axes[0].axis("off")

    axes[1].imshow(result)
    axes[1].set_title(f"{scene} – rendered mockup")
    axes[1].axis("off")

    plt.tight_layout()
    plt.savefig(os.path.join(out_dir, scene, "preview.jpg"), dpi=dpi, bbox_inches="tight")
    plt.close()


def save_quality_comparison(fast: np.ndarray, high_quality: np.ndarray,
                            reference: np.ndarray, errors: dict,
                            out_path: str, dpi: int = 150) -> None:
    """Save fast / high-quality / reference renders of the same quad side by side."""
    fig, axes = plt.subplots(1, 3, figsize=(15, 5))

    panels = [
        (fast, f"Fast (MSE {errors['fast']:.1f})"),
        (high_quality, f"High quality (MSE {errors['high_quality']:.1f})"),
        (reference, "Area-averaged reference"),
    ]
    for ax, (img, title) in zip(axes, panels):
        ax.imshow(np.clip(img[..., :3], 0, 255).astype(np.uint8),
                  interpolation="nearest")
        ax.set_title(title)
        ax.axis("off")

    plt.tight_layout()
    plt.savefig(out_path, dpi=dpi, bbox_inches="tight")
    plt.close()
