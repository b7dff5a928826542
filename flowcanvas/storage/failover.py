"""
Two-tier store with a one-way failover latch.

Operations go to the primary (transactional) backend until it fails once for
any reason: unsupported environment, open error, or a failing transaction.
From then on every operation, including the one that failed, goes to the
fallback backend for the rest of the process lifetime. The primary is never
retried, so writes cannot oscillate between backends.
"""

import logging
import threading
from typing import Any, Callable, Dict, List, Optional

from flowcanvas.storage.protocol import GraphStore

logger = logging.getLogger(__name__)


class FailoverStore:
    """GraphStore that routes to `primary` until the latch trips, then to `fallback`."""

    def __init__(self, primary: Optional[GraphStore], fallback: GraphStore):
        self.primary = primary
        self.fallback = fallback
        self._latched = threading.Event()
        self._latch_lock = threading.Lock()
        self.failover_reason: Optional[str] = None
        if primary is None:
            self._trip("primary backend not configured")

    @property
    def is_failed_over(self) -> bool:
        return self._latched.is_set()

    @property
    def backend_type(self) -> str:
        active = self.fallback if self.is_failed_over else self.primary
        return active.backend_type

    def _trip(self, reason: str) -> None:
        with self._latch_lock:
            if self._latched.is_set():
                return
            self.failover_reason = reason
            self._latched.set()
        logger.warning(f"Primary storage unusable, switching to {self.fallback.backend_type} storage: {reason}")

    def _call(self, operation: str, *args) -> Any:
        if not self._latched.is_set():
            method: Callable = getattr(self.primary, operation)
            try:
                return method(*args)
            except Exception as e:
                self._trip(f"{operation} failed: {e}")
        return getattr(self.fallback, operation)(*args)

    def load_all(self, collection: str) -> List[Dict[str, Any]]:
        return self._call("load_all", collection)

    def put(self, collection: str, entity: Dict[str, Any]) -> None:
        self._call("put", collection, entity)

    def put_many(self, collection: str, entities: List[Dict[str, Any]]) -> None:
        self._call("put_many", collection, entities)

    def delete_by_id(self, collection: str, entity_id: str) -> None:
        self._call("delete_by_id", collection, entity_id)
