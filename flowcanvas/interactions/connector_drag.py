"""Connector drag: draw a link from a card's outbound connector onto another card."""

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional

from flowcanvas.geometry import CoordinateEngine, Point, curve_path
from flowcanvas.hit_test import HitTester, outbound_anchor
from flowcanvas.interactions.base import ConnectorDragState, PointerEvent

logger = logging.getLogger(__name__)


@dataclass
class ConnectorSession:
    source_id: str
    pointer_world: Point
    state: ConnectorDragState = ConnectorDragState.DRAWING


class ConnectorDragMachine:
    def __init__(self, engine: CoordinateEngine, graph, hit_tester: HitTester):
        self.engine = engine
        self.graph = graph
        self.hit_tester = hit_tester
        self._sessions: Dict[int, ConnectorSession] = {}

    def session(self, pointer_id: int) -> Optional[ConnectorSession]:
        return self._sessions.get(pointer_id)

    @property
    def is_active(self) -> bool:
        return bool(self._sessions)

    @property
    def pending_paths(self) -> List[str]:
        """Live curves from each source's outbound anchor to the pointer, in world space."""
        paths = []
        for session in self._sessions.values():
            source = self.graph.get_node(session.source_id)
            if source is not None:
                paths.append(curve_path(outbound_anchor(source), session.pointer_world))
        return paths

    def begin(self, event: PointerEvent, source_id: str) -> bool:
        if event.pointer_id in self._sessions or self.graph.get_node(source_id) is None:
            return False
        self._sessions[event.pointer_id] = ConnectorSession(
            source_id=source_id,
            pointer_world=self.engine.screen_to_world(event.x, event.y),
        )
        return True

    def move(self, event: PointerEvent) -> Optional[ConnectorDragState]:
        session = self._sessions.get(event.pointer_id)
        if session is None:
            return None
        session.pointer_world = self.engine.screen_to_world(event.x, event.y)
        return session.state

    def release(self, event: PointerEvent) -> Optional[ConnectorDragState]:
        """Connect to the card body under the pointer; anything else discards the gesture."""
        session = self._sessions.pop(event.pointer_id, None)
        if session is None:
            return None

        target_id = None
        if self.engine.is_point_inside_surface(event.x, event.y):
            target_id = self.hit_tester.node_at(event.x, event.y)
        if target_id is None:
            return ConnectorDragState.CANCELLED

        connection = self.graph.create_connection(session.source_id, target_id)
        if connection is None:
            logger.debug(f"Rejected connection {session.source_id} -> {target_id}")
            return ConnectorDragState.CANCELLED
        return ConnectorDragState.CONNECTED

    def cancel(self, pointer_id: int) -> Optional[ConnectorDragState]:
        if self._sessions.pop(pointer_id, None) is None:
            return None
        return ConnectorDragState.CANCELLED
