"""
GraphStore Protocol Definition.

This module defines the interface that all storage backends implement.
SQLiteBackend (transactional tier), SnapshotBackend (single-blob fallback tier)
and FailoverStore (which routes between the two) all conform to this protocol.
"""

from typing import Any, Dict, List, Protocol, runtime_checkable

NODES = "nodes"
CONNECTIONS = "connections"
COLLECTIONS = (NODES, CONNECTIONS)


class StorageUnavailable(Exception):
    """Raised when a storage tier cannot be used in this environment."""


def check_collection(collection: str) -> str:
    if collection not in COLLECTIONS:
        raise ValueError(f"Unknown collection: {collection!r}")
    return collection


@runtime_checkable
class GraphStore(Protocol):
    """
    Key-value-per-entity store for the two graph collections.

    Every entity is a plain dict with an 'id' key and is written as a full
    record (no partial updates).
    """

    @property
    def backend_type(self) -> str:
        """Return the backend type identifier ('sqlite', 'snapshot' or 'memory')."""
        ...

    def load_all(self, collection: str) -> List[Dict[str, Any]]:
        """
        Load every entity of a collection.

        Returns:
            List of entity dicts in insertion order.
        """
        ...

    def put(self, collection: str, entity: Dict[str, Any]) -> None:
        """
        Insert or replace a single entity, keyed by its 'id'.

        Args:
            collection: NODES or CONNECTIONS
            entity: Full entity record
        """
        ...

    def put_many(self, collection: str, entities: List[Dict[str, Any]]) -> None:
        """
        Replace the entire collection with the given entities.

        Args:
            collection: NODES or CONNECTIONS
            entities: Full entity records, in the order they should load back
        """
        ...

    def delete_by_id(self, collection: str, entity_id: str) -> None:
        """
        Delete one entity. Deleting a missing id is not an error.

        Args:
            collection: NODES or CONNECTIONS
            entity_id: The entity's id
        """
        ...
