from __future__ import annotations

from pathlib import Path
from typing import Dict, Any


def get_data_root(config: Dict[str, Any]) -> Path:
    root = config.get("data_root", "~/.local/share/sketchbox")
    return Path(root).expanduser().resolve()


def ensure_directories(data_root: Path) -> Dict[str, Path]:
    logs_dir = data_root / "logs"

    data_root.mkdir(parents=True, exist_ok=True)
    logs_dir.mkdir(parents=True, exist_ok=True)

    return {
        "root": data_root,
        "logs": logs_dir,
        "settings": data_root / "settings.json",
        "database": data_root / "drawings.db",
    }
