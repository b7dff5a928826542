"""
Node drag: move a card, drop it on the trash zone, or click to select it.

A press only becomes a drag once the pointer travels more than the threshold
(in screen pixels, on either axis). Until then the card stays put and a
release counts as a click, which selects the card.
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional

from flowcanvas.geometry import CoordinateEngine, Point
from flowcanvas.interactions.base import NodeDragState, PointerEvent, SelectCallback
from flowcanvas.node_types import type_meta

logger = logging.getLogger(__name__)

DEFAULT_DRAG_THRESHOLD = 4.0


@dataclass
class NodeDragSession:
    node_id: str
    start: Point
    grab_offset: Point
    allow_trash: bool
    last: Point = Point(0.0, 0.0)
    state: NodeDragState = NodeDragState.IDLE
    over_trash: bool = False

    @property
    def moved(self) -> bool:
        return self.state is NodeDragState.DRAGGING


class NodeDragMachine:
    """Per-pointer drag sessions over graph nodes."""

    def __init__(self, engine: CoordinateEngine, graph, on_select: SelectCallback,
                 threshold: float = DEFAULT_DRAG_THRESHOLD):
        self.engine = engine
        self.graph = graph
        self.on_select = on_select
        self.threshold = threshold
        self._sessions: Dict[int, NodeDragSession] = {}

    # --- Observable state for rendering ---

    def session(self, pointer_id: int) -> Optional[NodeDragSession]:
        return self._sessions.get(pointer_id)

    @property
    def is_active(self) -> bool:
        return bool(self._sessions)

    @property
    def trash_visible(self) -> bool:
        return any(s.moved and s.allow_trash for s in self._sessions.values())

    @property
    def trash_active(self) -> bool:
        return any(s.over_trash for s in self._sessions.values())

    @property
    def dragging_node_ids(self) -> List[str]:
        return [s.node_id for s in self._sessions.values() if s.moved]

    @property
    def over_trash_node_ids(self) -> List[str]:
        return [s.node_id for s in self._sessions.values() if s.over_trash]

    # --- Transitions ---

    def _in_trash(self, session: NodeDragSession, point: Point) -> bool:
        zone = self.engine.state.trash_zone
        if not session.allow_trash or zone is None:
            return False
        return zone.contains(point.x, point.y)

    def begin(self, event: PointerEvent, node_id: str) -> bool:
        if event.pointer_id in self._sessions:
            return False
        node = self.graph.get_node(node_id)
        if node is None:
            return False
        world = self.engine.screen_to_world(event.x, event.y)
        self._sessions[event.pointer_id] = NodeDragSession(
            node_id=node_id,
            start=event.point,
            grab_offset=Point(world.x - node.x, world.y - node.y),
            allow_trash=not type_meta(node.type).locked,
            last=event.point,
        )
        return True

    def move(self, event: PointerEvent) -> Optional[NodeDragState]:
        session = self._sessions.get(event.pointer_id)
        if session is None:
            return None
        session.last = event.point

        if not session.moved:
            dx = event.x - session.start.x
            dy = event.y - session.start.y
            if abs(dx) <= self.threshold and abs(dy) <= self.threshold:
                return session.state
            session.state = NodeDragState.DRAGGING

        world = self.engine.screen_to_world(event.x, event.y)
        self.graph.move_node(session.node_id, world.x - session.grab_offset.x,
                             world.y - session.grab_offset.y)
        session.over_trash = self._in_trash(session, event.point)
        return session.state

    def release(self, event: PointerEvent) -> Optional[NodeDragState]:
        session = self._sessions.pop(event.pointer_id, None)
        if session is None:
            return None
        return self._finish(session, event.point)

    def cancel(self, pointer_id: int) -> Optional[NodeDragState]:
        """Pointer cancel ends the gesture exactly like a release at the last known position."""
        session = self._sessions.pop(pointer_id, None)
        if session is None:
            return None
        return self._finish(session, session.last)

    def _finish(self, session: NodeDragSession, point: Point) -> NodeDragState:
        if session.moved and self._in_trash(session, point):
            self.graph.remove_node(session.node_id)
            logger.debug(f"Node {session.node_id} dropped on trash")
            return NodeDragState.DROPPED_ON_TRASH

        self.graph.persist_node(session.node_id)
        if not session.moved:
            self.on_select(session.node_id)
        return NodeDragState.DROPPED_ON_CANVAS
