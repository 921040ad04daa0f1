from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict

import yaml

DEFAULT_CONFIG: Dict[str, Any] = {
    "data_root": "~/.local/share/sketchbox",
    "log_level": "INFO",
    "editor": {
        "palette": [
            [0, 0, 0],
            [0, 122, 255],
            [255, 59, 48],
            [52, 199, 89],
            [255, 149, 0],
            [175, 82, 222],
            [255, 45, 85],
            [162, 132, 94],
        ],
        "line_widths": [1.0, 3.0, 5.0, 8.0, 12.0, 20.0],
        "thumbnail_size": [200, 200],
        "undo_depth": 50,
    },
    "gallery": {
        "columns_wide": 4,
        "columns_narrow": 2,
    },
}


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    merged = dict(base)
    for key, value in override.items():
        if (
            key in merged
            and isinstance(merged[key], dict)
            and isinstance(value, dict)
        ):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def _candidate_config_paths() -> list[Path]:
    env_path = os.environ.get("SKETCHBOX_CONFIG")
    paths = []
    if env_path:
        paths.append(Path(env_path))
    paths.extend([
        Path("config.yaml"),
        Path("/opt/sketchbox/config.yaml"),
    ])
    return paths


def load_config() -> Dict[str, Any]:
    config = dict(DEFAULT_CONFIG)
    for path in _candidate_config_paths():
        if path.exists():
            with path.open("r", encoding="utf-8") as handle:
                data = yaml.safe_load(handle) or {}
            if isinstance(data, dict):
                config = _deep_merge(config, data)
            break
    return config
