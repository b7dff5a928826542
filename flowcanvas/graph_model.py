"""
Graph model for FlowCanvas.

Owns the authoritative in-memory node ("card") and connection collections and
enforces their invariants:

- exactly one node carries the entry type, and it cannot be removed
- a node has at most one outgoing connection; connecting again replaces it
- no duplicate (from, to) pairs, no self-loops, nothing points into the entry node
- removing a node removes every connection touching it

Every mutation is applied to memory first and unconditionally, then mirrored
to storage through the PersistenceWriter (write-through). Storage failures
never roll memory back.
"""

import logging
import uuid
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from flowcanvas.geometry import Point
from flowcanvas.node_types import (
    DEFAULT_NODE_TYPE,
    ENTRY_NODE_TITLE,
    ENTRY_NODE_TYPE,
    NodeType,
    OptionCatalog,
    coerce_node_type,
    is_entry_type,
    type_meta,
)
from flowcanvas.storage.protocol import CONNECTIONS, NODES, GraphStore
from flowcanvas.storage.writer import PersistenceWriter

logger = logging.getLogger(__name__)

# Fallback coordinate for records stored without a usable position
DEFAULT_COORDINATE = 24.0
# Longest title the sidebar accepts
MAX_TITLE_LENGTH = 80

ChangeListener = Callable[[str, Optional[str]], None]


def create_id() -> str:
    return str(uuid.uuid4())


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


@dataclass
class Node:
    id: str
    title: str
    x: float
    y: float
    type: NodeType = DEFAULT_NODE_TYPE
    trigger_ids: Optional[List[str]] = None

    @property
    def is_entry(self) -> bool:
        return is_entry_type(self.type)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "x": self.x,
            "y": self.y,
            "type": self.type.value,
            "triggerIds": list(self.trigger_ids) if self.trigger_ids is not None else None,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any], catalog: OptionCatalog) -> "Node":
        """Build a node from a stored record, repairing anything malformed."""
        node_type = coerce_node_type(data.get("type"))
        title = data.get("title")
        if not isinstance(title, str) or not title.strip():
            title = type_meta(node_type).default_label
        x = data.get("x")
        y = data.get("y")

        trigger_ids = None
        if is_entry_type(node_type):
            raw = data.get("triggerIds")
            if not isinstance(raw, list):
                # Older records stored a single trigger id.
                legacy = data.get("triggerId")
                raw = [legacy] if legacy else []
            trigger_ids = catalog.filter_valid(raw)

        return cls(
            id=str(data.get("id") or create_id()),
            title=title,
            x=float(x) if _is_number(x) else DEFAULT_COORDINATE,
            y=float(y) if _is_number(y) else DEFAULT_COORDINATE,
            type=node_type,
            trigger_ids=trigger_ids,
        )


@dataclass
class Connection:
    id: str
    from_id: str
    to_id: str

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "fromId": self.from_id, "toId": self.to_id}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Optional["Connection"]:
        from_id = data.get("fromId")
        to_id = data.get("toId")
        if not isinstance(from_id, str) or not isinstance(to_id, str):
            return None
        return cls(id=str(data.get("id") or create_id()), from_id=from_id, to_id=to_id)


def make_node(node_type: Any, x: float, y: float, title: Optional[str] = None) -> Node:
    """
    Create a new node. The entry type always gets the entry title; other types
    use the given title when it is non-blank, else the type's default label.
    """
    node_type = coerce_node_type(node_type)
    if is_entry_type(node_type):
        resolved_title = ENTRY_NODE_TITLE
    elif title and title.strip():
        resolved_title = title.strip()
    else:
        resolved_title = type_meta(node_type).default_label
    return Node(
        id=create_id(),
        title=resolved_title,
        x=float(x),
        y=float(y),
        type=node_type,
        trigger_ids=[] if is_entry_type(node_type) else None,
    )


@dataclass
class LoadReport:
    """What load() had to repair in the stored graph."""
    demoted_entry_ids: List[str] = field(default_factory=list)
    dropped_connection_ids: List[str] = field(default_factory=list)
    created_entry_id: Optional[str] = None


class GraphModel:
    """Single-writer owner of the node and connection collections."""

    def __init__(self, store: GraphStore, writer: PersistenceWriter,
                 default_position: Callable[[], Point],
                 catalog: Optional[OptionCatalog] = None):
        self._store = store
        self._writer = writer
        self._default_position = default_position
        self.catalog = catalog or OptionCatalog.default()
        self._nodes: List[Node] = []
        self._connections: List[Connection] = []
        self._listeners: List[ChangeListener] = []

    # --- Change notification ---

    def on_change(self, callback: ChangeListener) -> None:
        """Register callback(event, entity_id), called after every mutation."""
        self._listeners.append(callback)

    def _notify(self, event: str, entity_id: Optional[str] = None) -> None:
        for callback in self._listeners:
            try:
                callback(event, entity_id)
            except Exception as e:
                logger.error(f"Error in graph change listener for {event}: {e}")

    # --- Write-through helpers ---

    def _save_node(self, node: Node) -> None:
        self._writer.submit(self._store.put, NODES, node.to_dict())

    def _delete_node(self, node_id: str) -> None:
        self._writer.submit(self._store.delete_by_id, NODES, node_id)

    def _save_connection(self, connection: Connection) -> None:
        self._writer.submit(self._store.put, CONNECTIONS, connection.to_dict())

    def _delete_connection(self, connection_id: str) -> None:
        self._writer.submit(self._store.delete_by_id, CONNECTIONS, connection_id)

    # --- Queries ---

    @property
    def nodes(self) -> List[Node]:
        return list(self._nodes)

    @property
    def connections(self) -> List[Connection]:
        return list(self._connections)

    def get_node(self, node_id: Optional[str]) -> Optional[Node]:
        if not node_id:
            return None
        return next((n for n in self._nodes if n.id == node_id), None)

    def get_connection(self, connection_id: str) -> Optional[Connection]:
        return next((c for c in self._connections if c.id == connection_id), None)

    @property
    def entry_node(self) -> Optional[Node]:
        return next((n for n in self._nodes if n.is_entry), None)

    def outgoing(self, node_id: str) -> List[Connection]:
        return [c for c in self._connections if c.from_id == node_id]

    def incoming(self, node_id: str) -> List[Connection]:
        return [c for c in self._connections if c.to_id == node_id]

    # --- Loading ---

    def load(self, node_records: List[Dict[str, Any]],
             connection_records: List[Dict[str, Any]]) -> LoadReport:
        """
        Replace the in-memory graph with stored records.

        Nodes are normalized (type, title, position, trigger options), the
        entry node is guaranteed, and connections that break an invariant are
        dropped from memory and from storage.
        """
        report = LoadReport()

        nodes: List[Node] = []
        seen_ids = set()
        for record in node_records:
            if not isinstance(record, dict):
                logger.warning(f"Skipping malformed node record: {record!r}")
                continue
            node = Node.from_dict(record, self.catalog)
            if node.id in seen_ids:
                logger.warning(f"Skipping duplicate node id on load: {node.id}")
                continue
            seen_ids.add(node.id)
            nodes.append(node)
        self._nodes = nodes

        report.demoted_entry_ids = self._demote_extra_entries()
        report.created_entry_id = self.ensure_entry_node()

        report.dropped_connection_ids = self._load_connections(connection_records)
        self._notify("loaded")
        return report

    def _demote_extra_entries(self) -> List[str]:
        demoted = []
        entries = [n for n in self._nodes if n.is_entry]
        for node in entries[1:]:
            node.type = DEFAULT_NODE_TYPE
            node.trigger_ids = None
            if node.title == ENTRY_NODE_TITLE:
                node.title = type_meta(DEFAULT_NODE_TYPE).default_label
            demoted.append(node.id)
            self._save_node(node)
            logger.info(f"Demoted extra entry node {node.id} to {DEFAULT_NODE_TYPE.value}")
        return demoted

    def _load_connections(self, records: List[Dict[str, Any]]) -> List[str]:
        node_ids = {n.id for n in self._nodes}
        entry = self.entry_node
        entry_id = entry.id if entry else None

        kept: List[Connection] = []
        dropped: List[str] = []
        for record in records:
            connection = Connection.from_dict(record) if isinstance(record, dict) else None
            if connection is None:
                logger.warning(f"Skipping malformed connection record: {record!r}")
                if isinstance(record, dict) and record.get("id"):
                    dropped.append(str(record["id"]))
                continue
            if any(c.id == connection.id for c in kept):
                logger.warning(f"Skipping duplicate connection id on load: {connection.id}")
                continue
            invalid = (
                connection.from_id not in node_ids
                or connection.to_id not in node_ids
                or connection.from_id == connection.to_id
                or connection.to_id == entry_id
                or any(c.from_id == connection.from_id and c.to_id == connection.to_id for c in kept)
            )
            if invalid:
                dropped.append(connection.id)
                continue
            # Single outbound edge per source: the later record wins.
            for previous in [c for c in kept if c.from_id == connection.from_id]:
                kept.remove(previous)
                dropped.append(previous.id)
            kept.append(connection)

        self._connections = kept
        for connection_id in dropped:
            self._delete_connection(connection_id)
        if dropped:
            logger.warning(f"Dropped {len(dropped)} invalid connection(s) on load")
        return dropped

    # --- Mutations ---

    def ensure_entry_node(self) -> Optional[str]:
        """
        Leave exactly one entry node: demote any beyond the first, or create
        one at the default position if none exists. Returns its id when created.
        """
        if self.entry_node is not None:
            self._demote_extra_entries()
            return None
        position = self._default_position()
        node = make_node(ENTRY_NODE_TYPE, position.x, position.y)
        self._nodes.insert(0, node)
        self._save_node(node)
        logger.info(f"Created entry node {node.id}")
        self._notify("node_added", node.id)
        return node.id

    def spawn_node(self, node_type: Any, position: Optional[Point] = None) -> Optional[Node]:
        """
        Append a node of the given type. `position` is the card's top-left in
        world space; without it the node lands at the default spawn position.
        A second entry node is never spawned.
        """
        node_type = coerce_node_type(node_type)
        if is_entry_type(node_type) and self.entry_node is not None:
            return None
        if position is None:
            position = self._default_position()
        node = make_node(node_type, position.x, position.y)
        self._nodes.append(node)
        self._save_node(node)
        self._notify("node_added", node.id)
        return node

    def move_node(self, node_id: str, x: float, y: float) -> Optional[Node]:
        """Update coordinates in memory only; callers persist once the drag ends."""
        node = self.get_node(node_id)
        if node is None:
            return None
        node.x = x
        node.y = y
        self._notify("node_moved", node_id)
        return node

    def persist_node(self, node_id: str) -> bool:
        node = self.get_node(node_id)
        if node is None:
            return False
        self._save_node(node)
        return True

    def rename_node(self, node_id: str, title: str, commit: bool = True) -> Optional[str]:
        """
        Change a node's title.

        With commit=False the raw text is shown live and nothing is persisted.
        With commit=True the text is trimmed, a blank title falls back to the
        type's default label, and the node is persisted. Either way the text
        is cut to MAX_TITLE_LENGTH characters, like the sidebar input.
        """
        node = self.get_node(node_id)
        if node is None:
            return None
        if commit:
            node.title = (title or "")[:MAX_TITLE_LENGTH].strip() or type_meta(node.type).default_label
            self._save_node(node)
        else:
            node.title = (title or "")[:MAX_TITLE_LENGTH]
        self._notify("node_renamed", node_id)
        return node.title

    def toggle_entry_option(self, node_id: str, option_id: str) -> Optional[List[str]]:
        """Flip one trigger option on the entry node. Returns the new selection, or None if rejected."""
        node = self.get_node(node_id)
        if node is None or not node.is_entry or option_id not in self.catalog:
            return None
        current = self.catalog.filter_valid(node.trigger_ids or [])
        if option_id in current:
            current.remove(option_id)
        else:
            current.append(option_id)
        node.trigger_ids = current
        self._save_node(node)
        self._notify("node_options", node_id)
        return list(current)

    def create_connection(self, from_id: str, to_id: str) -> Optional[Connection]:
        """
        Connect from_id -> to_id, replacing any existing outbound connection of
        from_id. Self-loops, links into the entry node, unknown nodes and exact
        duplicates are silently ignored (returns None).
        """
        if from_id == to_id:
            return None
        source = self.get_node(from_id)
        target = self.get_node(to_id)
        if source is None or target is None or target.is_entry:
            return None
        if any(c.from_id == from_id and c.to_id == to_id for c in self._connections):
            return None

        for existing in self.outgoing(from_id):
            self._connections.remove(existing)
            self._delete_connection(existing.id)

        connection = Connection(id=create_id(), from_id=from_id, to_id=to_id)
        self._connections.append(connection)
        self._save_connection(connection)
        self._notify("connection_added", connection.id)
        return connection

    def remove_connection(self, connection_id: str) -> bool:
        connection = self.get_connection(connection_id)
        if connection is None:
            return False
        self._connections.remove(connection)
        self._delete_connection(connection_id)
        self._notify("connection_removed", connection_id)
        return True

    def remove_node(self, node_id: str) -> bool:
        """Delete a node and every connection touching it. The entry node is never removed."""
        node = self.get_node(node_id)
        if node is None or node.is_entry:
            return False

        cascaded = [c for c in self._connections if c.from_id == node_id or c.to_id == node_id]
        cascaded_ids = {c.id for c in cascaded}
        self._nodes.remove(node)
        self._connections = [c for c in self._connections if c.id not in cascaded_ids]

        for connection in cascaded:
            self._delete_connection(connection.id)
        self._delete_node(node_id)
        self._notify("node_removed", node_id)
        return True

    def replace_all(self, nodes: List[Node]) -> None:
        """Install a fresh node set and bulk-replace the stored collection (used when seeding)."""
        self._nodes = list(nodes)
        self._connections = []
        self._writer.submit(self._store.put_many, NODES, [n.to_dict() for n in self._nodes])
        self._writer.submit(self._store.put_many, CONNECTIONS, [])
        self._notify("loaded")
