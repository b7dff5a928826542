"""
Configuration management for FlowCanvas.

Handles persistent configuration including:
- Storage locations (data directory, SQLite file)
- Whether the transactional SQLite tier may be used at all
- Canvas tuning (zoom bounds and levels, drag threshold, animation duration)

Config is stored in config.json next to the executable/project root.
Environment variables override the file:
- FLOWCANVAS_DATA_DIR
- FLOWCANVAS_DB_PATH
- FLOWCANVAS_DISABLE_SQLITE
- FLOWCANVAS_TRIGGERS_FILE
"""

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from flowcanvas.paths import get_config_path, get_data_dir, get_triggers_path

logger = logging.getLogger(__name__)

DB_FILENAME = "canvas-links.sqlite3"

DEFAULT_ZOOM_LEVELS = [0.5, 0.75, 1.0, 1.5]

_TRUTHY = {"1", "true", "yes", "on"}


@dataclass
class EditorSettings:
    """Resolved settings for one editor instance."""
    data_dir: Path = field(default_factory=get_data_dir)
    db_path: Optional[Path] = None
    use_sqlite: bool = True
    triggers_file: Optional[Path] = None
    min_scale: float = 0.25
    max_scale: float = 1.5
    zoom_levels: List[float] = field(default_factory=lambda: list(DEFAULT_ZOOM_LEVELS))
    drag_threshold: float = 4.0
    animation_duration: float = 0.35

    def __post_init__(self):
        self.data_dir = Path(self.data_dir)
        if self.db_path is None:
            self.db_path = self.data_dir / DB_FILENAME
        else:
            self.db_path = Path(self.db_path)
        if self.triggers_file is not None:
            self.triggers_file = Path(self.triggers_file)
        if self.min_scale > self.max_scale:
            raise ValueError(f"min_scale {self.min_scale} is above max_scale {self.max_scale}")
        self.zoom_levels = sorted(float(level) for level in self.zoom_levels)


def load_config(config_path: Path = None) -> dict:
    """Load configuration from config.json."""
    config_path = Path(config_path) if config_path else get_config_path()
    if config_path.exists():
        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                return json.load(f)
        except (json.JSONDecodeError, IOError) as e:
            logger.warning(f"Failed to load config from {config_path}: {e}")
            return {}
    return {}


def save_config(config: dict, config_path: Path = None) -> None:
    """Save configuration to config.json."""
    config_path = Path(config_path) if config_path else get_config_path()
    with open(config_path, 'w', encoding='utf-8') as f:
        json.dump(config, f, indent=2)


def get_settings(config_path: Path = None) -> EditorSettings:
    """
    Build EditorSettings.

    Priority (highest first):
    1. Environment variables
    2. config.json
    3. Built-in defaults

    A triggers.yaml beside the app is picked up when no catalog is configured.
    """
    config = load_config(config_path)

    data_dir = os.environ.get("FLOWCANVAS_DATA_DIR") or config.get("data_dir")
    db_path = os.environ.get("FLOWCANVAS_DB_PATH") or config.get("db_path")
    triggers_file = os.environ.get("FLOWCANVAS_TRIGGERS_FILE") or config.get("triggers_file")
    if not triggers_file and get_triggers_path().exists():
        triggers_file = get_triggers_path()

    use_sqlite = bool(config.get("use_sqlite", True))
    env_disable = os.environ.get("FLOWCANVAS_DISABLE_SQLITE")
    if env_disable is not None:
        use_sqlite = env_disable.strip().lower() not in _TRUTHY

    kwargs = {
        "use_sqlite": use_sqlite,
        "db_path": db_path,
        "triggers_file": triggers_file,
    }
    if data_dir:
        kwargs["data_dir"] = data_dir
    for key in ("min_scale", "max_scale", "zoom_levels", "drag_threshold", "animation_duration"):
        if key in config:
            kwargs[key] = config[key]

    return EditorSettings(**kwargs)
