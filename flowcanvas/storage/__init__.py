"""
Storage layer for FlowCanvas.

Two tiers behind one GraphStore interface:
- SQLiteBackend: transactional per-entity storage (preferred)
- SnapshotBackend: single JSON blob in a key-value medium (fallback, may degrade to memory)

FailoverStore switches from the first to the second permanently on the first failure.
"""

from flowcanvas.storage.protocol import (
    CONNECTIONS,
    NODES,
    GraphStore,
    StorageUnavailable,
)
from flowcanvas.storage.sqlite_backend import SQLiteBackend
from flowcanvas.storage.snapshot_backend import SnapshotBackend
from flowcanvas.storage.failover import FailoverStore
from flowcanvas.storage.kv_medium import KeyValueMedium
from flowcanvas.storage.title_store import DEFAULT_FLOW_TITLE, FlowTitleStore
from flowcanvas.storage.writer import PersistenceWriter
from flowcanvas.storage.factory import StoreBundle, create_store

__all__ = [
    'NODES',
    'CONNECTIONS',
    'GraphStore',
    'StorageUnavailable',
    'SQLiteBackend',
    'SnapshotBackend',
    'FailoverStore',
    'KeyValueMedium',
    'FlowTitleStore',
    'DEFAULT_FLOW_TITLE',
    'PersistenceWriter',
    'StoreBundle',
    'create_store',
]
