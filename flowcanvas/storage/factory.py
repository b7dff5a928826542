"""
Store Factory for FlowCanvas.

Builds the two-tier graph store and the flow title store from EditorSettings.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from flowcanvas.config import EditorSettings
from flowcanvas.storage.failover import FailoverStore
from flowcanvas.storage.kv_medium import KeyValueMedium
from flowcanvas.storage.snapshot_backend import SnapshotBackend
from flowcanvas.storage.sqlite_backend import SQLiteBackend
from flowcanvas.storage.title_store import FlowTitleStore

logger = logging.getLogger(__name__)


@dataclass
class StoreBundle:
    graph: FailoverStore
    title: FlowTitleStore
    medium: KeyValueMedium
    primary: Optional[SQLiteBackend] = None

    def close(self) -> None:
        if self.primary is not None:
            self.primary.close()


def create_store(settings: EditorSettings) -> StoreBundle:
    """
    Create the graph store for an editor.

    The SQLite tier is skipped entirely when settings.use_sqlite is False; the
    failover latch then starts tripped and everything goes to the snapshot tier.
    """
    medium = KeyValueMedium(settings.data_dir)
    fallback = SnapshotBackend(medium)

    primary = None
    if settings.use_sqlite:
        primary = SQLiteBackend(settings.db_path)
    else:
        logger.info("SQLite tier disabled by configuration")

    return StoreBundle(
        graph=FailoverStore(primary, fallback),
        title=FlowTitleStore(medium),
        medium=medium,
        primary=primary,
    )
