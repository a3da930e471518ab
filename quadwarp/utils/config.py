"""
YAML configuration loading.

Values missing from the file fall back to :data:`DEFAULTS`; scene entries are
checked up front so a typo fails before any rendering starts.
"""

import copy

import yaml

from quadwarp.compositing.blend import check_blend_mode
from quadwarp.errors import InvalidInput
from quadwarp.geometry.quad import as_quad

DEFAULTS = {
    "results_dir": "results",
    "render": {
        "high_quality": True,
        "workers": 1,
        "blend_mode": "source-over",
    },
    "animation": {
        "frames": 0,
    },
    "visualization": {
        "dpi": 150,
    },
    "scenes": [],
}


def _merge(base: dict, override: dict) -> dict:
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def validate_scene(scene: dict, default_mode: str) -> dict:
    """Check one scene entry and fill in per-layer defaults."""
    if not isinstance(scene, dict) or "name" not in scene:
        raise InvalidInput(f"scene entry needs a name: {scene!r}")
    name = scene["name"]
    if "background" not in scene:
        raise InvalidInput(f"scene {name!r} has no background image")

    layers = []
    for i, layer in enumerate(scene.get("layers") or []):
        if "image" not in layer:
            raise InvalidInput(f"scene {name!r} layer {i} has no image")
        corners = layer.get("corners")
        if corners is not None:
            corners = as_quad(corners).tolist()
        layers.append({
            "image": layer["image"],
            "corners": corners,
            "blend_mode": check_blend_mode(layer.get("blend_mode", default_mode)),
        })
    return {"name": name, "background": scene["background"], "layers": layers}


def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def validate_options(cfg: dict) -> dict:
    """Check the render and animation settings of a merged config."""
    for section in ("render", "animation"):
        if not isinstance(cfg[section], dict):
            raise InvalidInput(f"{section} must be a mapping, got {cfg[section]!r}")

    render = cfg["render"]
    workers = render["workers"]
    if not _is_int(workers) or workers < 1:
        raise InvalidInput(f"render.workers must be an integer >= 1, got {workers!r}")
    high_quality = render["high_quality"]
    if not isinstance(high_quality, bool):
        raise InvalidInput(
            f"render.high_quality must be true or false, got {high_quality!r}"
        )
    check_blend_mode(render["blend_mode"])
    frames = cfg["animation"]["frames"]
    if not _is_int(frames) or frames < 0:
        raise InvalidInput(f"animation.frames must be an integer >= 0, got {frames!r}")
    return cfg


def load_config(path: str) -> dict:
    """Read *path*, merge it over the defaults and validate the scenes."""
    with open(path, "r") as fh:
        raw = yaml.safe_load(fh) or {}
    if not isinstance(raw, dict):
        raise InvalidInput(f"{path}: top level must be a mapping")

    cfg = validate_options(_merge(DEFAULTS, raw))
    default_mode = cfg["render"]["blend_mode"]
    cfg["scenes"] = [validate_scene(s, default_mode) for s in cfg["scenes"] or []]
    return cfg
