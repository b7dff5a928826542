"""
Simple key-value medium backing the fallback tier and the flow title.

Each named slot is one file inside a directory. The medium tests itself on
construction; if the directory cannot be created or written, it reports
`available = False` and callers keep their data in memory instead.
"""

import logging
import re
from pathlib import Path
from typing import Optional, Union

from flowcanvas.paths import ensure_data_dir

logger = logging.getLogger(__name__)

CHECK_SLOT = "__canvas-test__"


def _slot_filename(key: str) -> str:
    safe = re.sub(r"[^A-Za-z0-9_.-]", "_", key)
    return f"{safe}.slot"


class KeyValueMedium:
    """Directory of string slots, read and written whole."""

    def __init__(self, directory: Union[str, Path]):
        self.directory = Path(directory)
        self.available = self._check_writable()

    def _check_writable(self) -> bool:
        try:
            ensure_data_dir(self.directory)
            self.set_item(CHECK_SLOT, "1")
            self.remove_item(CHECK_SLOT)
            return True
        except OSError as e:
            logger.warning(f"Key-value medium at {self.directory} unavailable, using memory-only persistence: {e}")
            return False

    def _path(self, key: str) -> Path:
        return self.directory / _slot_filename(key)

    def get_item(self, key: str) -> Optional[str]:
        path = self._path(key)
        if not path.exists():
            return None
        return path.read_text(encoding="utf-8")

    def set_item(self, key: str, value: str) -> None:
        path = self._path(key)
        tmp_path = path.with_suffix(".tmp")
        tmp_path.write_text(value, encoding="utf-8")
        tmp_path.replace(path)

    def remove_item(self, key: str) -> None:
        path = self._path(key)
        if path.exists():
            path.unlink()
