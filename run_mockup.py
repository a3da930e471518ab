#!/usr/bin/env python3
"""
run_mockup.py – Perspective Mockup Renderer

Loads configuration from configs/default.yaml (or a user-specified file),
warps every layer of every scene into its destination quad on the scene's
background, and writes the composited mockups to the results directory.

Usage
-----
    python run_mockup.py
    python run_mockup.py --config configs/default.yaml
    python run_mockup.py --scenes laptop billboard
    python run_mockup.py --fast --frames 30
    python run_mockup.py --quality-report
"""

import argparse
import logging
import os
import sys
import time

import numpy as np

# Ensure the project root is on the Python path when invoked directly
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from quadwarp.compositing.blend import SurfaceCompositor
from quadwarp.errors import WarpError
from quadwarp.geometry.animation import corner_frames
from quadwarp.geometry.quad import initial_corners
from quadwarp.utils.config import load_config, validate_options
from quadwarp.utils.image_io import ensure_output_dirs, load_image, save_image
from quadwarp.utils.quality import quality_report
from quadwarp.utils.visualization import save_quality_comparison, save_warp_preview
from quadwarp.warping.engine import Layer, WarpEngine


# ──────────────────────────────────────────────────────────────────────────────
# Helpers
# ──────────────────────────────────────────────────────────────────────────────

def banner(text: str) -> None:
    width = 60
    print("\n" + "─" * width)
    print(f"  {text}")
    print("─" * width)


def build_layers(scene_cfg: dict, canvas_size: tuple) -> list:
    """Load layer images; layers without corners get the default placement."""
    layers = []
    for entry in scene_cfg["layers"]:
        image = load_image(entry["image"])
        corners = entry["corners"]
        if corners is None:
            corners = initial_corners((image.shape[1], image.shape[0]), canvas_size)
        layers.append(Layer(image, np.asarray(corners, dtype=float),
                            entry["blend_mode"]))
    return layers


def compose(background: np.ndarray, layers: list, high_quality: bool,
            workers: int):
    compositor = SurfaceCompositor(background)
    engine = WarpEngine(compositor, workers=workers)
    skipped = engine.render_layers(layers, high_quality=high_quality)
    return compositor.surface, skipped


# ──────────────────────────────────────────────────────────────────────────────
# Per-scene rendering
# ──────────────────────────────────────────────────────────────────────────────

def run_scene(scene_cfg: dict, cfg: dict, results_dir: str, args) -> dict:
    """Render one scene and return summary metrics."""
    name = scene_cfg["name"]
    banner(f"Scene: {name}")

    render_cfg = cfg["render"]
    high_quality = render_cfg["high_quality"]
    workers = render_cfg["workers"]
    out_dir = os.path.join(results_dir, name)

    # ── 1. Load images ────────────────────────────────────────────────────────
    background = load_image(scene_cfg["background"])
    canvas_size = (background.shape[1], background.shape[0])
    layers = build_layers(scene_cfg, canvas_size)
    print(f"  Background     {canvas_size[0]}×{canvas_size[1]}  /  "
          f"{len(layers)} layer(s)")

    # ── 2. Final composite ────────────────────────────────────────────────────
    print(f"  Rendering ({'high quality' if high_quality else 'fast'}, "
          f"{workers} worker(s))...")
    t0 = time.time()
    result, skipped = compose(background, layers, high_quality, workers)
    elapsed = time.time() - t0
    save_image(result, os.path.join(out_dir, "mockup.png"))
    print(f"  Saved mockup → {out_dir}/mockup.png  ({elapsed:.2f}s)")
    if skipped:
        print(f"  {len(skipped)} layer(s) skipped – degenerate or invalid geometry")

    # ── 3. Optional animation ─────────────────────────────────────────────────
    n_frames = cfg["animation"]["frames"]
    if n_frames >= 2:
        print(f"  Animating {n_frames} frames from default placement...")
        tracks = [
            list(corner_frames(
                initial_corners((layer.image.shape[1], layer.image.shape[0]),
                                canvas_size),
                layer.corners, n_frames))
            for layer in layers
        ]
        for k in range(n_frames):
            frame_layers = [layer._replace(corners=track[k])
                            for layer, track in zip(layers, tracks)]
            frame, _ = compose(background, frame_layers, False, workers)
            save_image(frame, os.path.join(out_dir, f"frame_{k:03d}.png"))

    if args.preview:
        save_warp_preview(background, layers, result, name, results_dir,
                          dpi=cfg["visualization"]["dpi"])
        print(f"  Saved preview → {out_dir}/preview.jpg")

    return {
        "scene": name,
        "layers": len(layers),
        "skipped": len(skipped),
        "seconds": elapsed,
    }


def run_quality_report(results_dir: str, dpi: int) -> None:
    banner("Quality report – 64×64 checkerboard shrunk ×4")
    report = quality_report(size=64, factor=4)
    errors = report["errors"]
    print(f"  Fast mode MSE         : {errors['fast']:.2f}")
    print(f"  High-quality mode MSE : {errors['high_quality']:.2f}")
    os.makedirs(results_dir, exist_ok=True)
    out_path = os.path.join(results_dir, "quality_report.jpg")
    save_quality_comparison(report["fast"], report["high_quality"],
                            report["reference"], errors, out_path, dpi=dpi)
    print(f"  Saved comparison → {out_path}")


# ──────────────────────────────────────────────────────────────────────────────
# Entry point
# ──────────────────────────────────────────────────────────────────────────────

def parse_args():
    p = argparse.ArgumentParser(
        description="Render images into perspective quads on background photos"
    )
    p.add_argument(
        "--config", default="configs/default.yaml",
        help="Path to YAML configuration file (default: configs/default.yaml)",
    )
    p.add_argument(
        "--scenes", nargs="*", default=None,
        help="Subset of scene names to process (default: all scenes in config)",
    )
    quality = p.add_mutually_exclusive_group()
    quality.add_argument(
        "--high-quality", dest="high_quality", action="store_true", default=None,
        help="2x supersampled rendering (overrides config)",
    )
    quality.add_argument(
        "--fast", dest="high_quality", action="store_false",
        help="Single-sample rendering (overrides config)",
    )
    p.add_argument(
        "--workers", type=int, default=None,
        help="Threads used per layer for the pixel loop (overrides config)",
    )
    p.add_argument(
        "--frames", type=int, default=None,
        help="Write an eased animation of N frames per scene (overrides config)",
    )
    p.add_argument(
        "--preview", action="store_true",
        help="Save a matplotlib preview with the destination quads outlined",
    )
    p.add_argument(
        "--quality-report", action="store_true",
        help="Compare fast and high-quality aliasing on a synthetic checkerboard",
    )
    p.add_argument(
        "--verbose", action="store_true",
        help="Enable debug logging",
    )
    return p.parse_args()


def main():
    args = parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    # Load configuration
    if not os.path.exists(args.config):
        print(f"[ERROR] Config file not found: {args.config}")
        sys.exit(1)
    try:
        cfg = load_config(args.config)
    except WarpError as exc:
        print(f"[ERROR] Invalid config {args.config}: {exc}")
        sys.exit(1)

    if args.high_quality is not None:
        cfg["render"]["high_quality"] = args.high_quality
    if args.workers is not None:
        cfg["render"]["workers"] = args.workers
    if args.frames is not None:
        cfg["animation"]["frames"] = args.frames
    try:
        validate_options(cfg)
    except WarpError as exc:
        print(f"[ERROR] Invalid option: {exc}")
        sys.exit(1)

    results_dir = cfg["results_dir"]
    scenes = cfg["scenes"]

    if args.quality_report:
        run_quality_report(results_dir, cfg["visualization"]["dpi"])

    # Optionally restrict to a subset of scenes
    if args.scenes:
        scenes = [s for s in scenes if s["name"] in args.scenes]
        if not scenes:
            print(f"[ERROR] No matching scenes found for: {args.scenes}")
            sys.exit(1)

    # Validate that image files exist
    for sc in scenes:
        paths = [sc["background"]] + [layer["image"] for layer in sc["layers"]]
        for path in paths:
            if not os.path.exists(path):
                print(f"[ERROR] Image not found: {path}")
                sys.exit(1)

    # Create output directories
    ensure_output_dirs([s["name"] for s in scenes], base=results_dir)

    banner("Perspective Mockup Renderer")
    print(f"  Config  : {args.config}")
    print(f"  Scenes  : {[s['name'] for s in scenes]}")
    print(f"  Quality : {'high' if cfg['render']['high_quality'] else 'fast'}")
    print(f"  Output  : {results_dir}/")

    t0 = time.time()
    all_metrics = [run_scene(sc, cfg, results_dir, args) for sc in scenes]

    # ── Summary table ──────────────────────────────────────────────────────
    banner("Results Summary")
    header = f"{'Scene':<14} {'Layers':>7} {'Skipped':>8} {'Time':>8}"
    print(header)
    print("─" * len(header))
    for m in all_metrics:
        print(f"{m['scene']:<14} {m['layers']:>7} {m['skipped']:>8} "
              f"{m['seconds']:>7.2f}s")

    elapsed = time.time() - t0
    print(f"\nRendering complete in {elapsed:.1f}s")
    print(f"Results saved to: {os.path.abspath(results_dir)}/")


if __name__ == "__main__":
    main()
