"""
Filesystem locations for FlowCanvas.

Everything the editor reads or writes sits beside the application:
- data/            SQLite file plus the key-value slots (fallback snapshot, flow title)
- config.json      optional settings file
- triggers.yaml    optional trigger option catalog

When frozen (PyInstaller) the anchor is the executable's directory, otherwise
the project root.
"""

import sys
from pathlib import Path


def get_app_dir() -> Path:
    """Directory the data folder and config files are resolved against."""
    if getattr(sys, 'frozen', False):
        return Path(sys.executable).parent
    return Path(__file__).parent.parent


def get_data_dir() -> Path:
    return get_app_dir() / "data"


def get_config_path() -> Path:
    return get_app_dir() / "config.json"


def get_triggers_path() -> Path:
    """Default location of the trigger catalog; it is only used when the file exists."""
    return get_app_dir() / "triggers.yaml"


def ensure_data_dir(data_dir: Path = None) -> Path:
    """Create the data directory (and parents) if missing and return it."""
    data_dir = Path(data_dir) if data_dir else get_data_dir()
    data_dir.mkdir(parents=True, exist_ok=True)
    return data_dir
