"""
Snapshot Storage Backend for FlowCanvas.

Implements the GraphStore protocol with a single serialized object holding
both collections:

    {"nodes": [...], "connections": [...]}

stored under one slot of a KeyValueMedium. Every operation re-reads the blob,
modifies it, and rewrites it whole. When the medium is unavailable or a read or
write fails, the backend keeps going on its in-memory copy; data then lasts
only as long as the process.
"""

import copy
import json
import logging
from typing import Any, Dict, List

from flowcanvas.storage.kv_medium import KeyValueMedium
from flowcanvas.storage.protocol import CONNECTIONS, NODES, check_collection

logger = logging.getLogger(__name__)

SNAPSHOT_SLOT = "canvas-links-fallback"


def _upsert(items: List[Dict[str, Any]], entity: Dict[str, Any]) -> None:
    for index, existing in enumerate(items):
        if existing.get("id") == entity["id"]:
            items[index] = dict(entity)
            return
    items.append(dict(entity))


class SnapshotBackend:
    """Whole-blob fallback storage with silent degradation to memory."""

    def __init__(self, medium: KeyValueMedium, slot: str = SNAPSHOT_SLOT):
        self.medium = medium
        self.slot = slot
        self._memory: Dict[str, List[Dict[str, Any]]] = {NODES: [], CONNECTIONS: []}

    @property
    def backend_type(self) -> str:
        return "snapshot" if self.medium.available else "memory"

    def _read_snapshot(self) -> Dict[str, List[Dict[str, Any]]]:
        if not self.medium.available:
            return self._memory
        try:
            raw = self.medium.get_item(self.slot)
            if raw:
                parsed = json.loads(raw)
                self._memory[NODES] = list(parsed.get(NODES) or [])
                self._memory[CONNECTIONS] = list(parsed.get(CONNECTIONS) or [])
        except (OSError, ValueError, AttributeError) as e:
            logger.warning(f"Snapshot read failed, falling back to memory: {e}")
        return self._memory

    def _write_snapshot(self) -> None:
        if not self.medium.available:
            return
        try:
            self.medium.set_item(self.slot, json.dumps(self._memory, ensure_ascii=False))
        except (OSError, TypeError, ValueError) as e:
            logger.warning(f"Snapshot write failed, keeping data in memory only: {e}")

    def load_all(self, collection: str) -> List[Dict[str, Any]]:
        check_collection(collection)
        snapshot = self._read_snapshot()
        return copy.deepcopy(snapshot[collection])

    def put(self, collection: str, entity: Dict[str, Any]) -> None:
        check_collection(collection)
        snapshot = self._read_snapshot()
        _upsert(snapshot[collection], entity)
        self._write_snapshot()

    def put_many(self, collection: str, entities: List[Dict[str, Any]]) -> None:
        check_collection(collection)
        snapshot = self._read_snapshot()
        snapshot[collection] = [dict(e) for e in entities]
        self._write_snapshot()

    def delete_by_id(self, collection: str, entity_id: str) -> None:
        check_collection(collection)
        snapshot = self._read_snapshot()
        snapshot[collection] = [e for e in snapshot[collection] if e.get("id") != entity_id]
        if collection == NODES:
            snapshot[CONNECTIONS] = [
                c for c in snapshot[CONNECTIONS]
                if c.get("fromId") != entity_id and c.get("toId") != entity_id
            ]
        self._write_snapshot()
