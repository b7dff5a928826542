"""
Toolbar spawn: press a type button, optionally drag the preview onto the canvas.

A click (no movement at all) spawns the type at the default position. A drag
released over the canvas spawns it centered on the drop point. A drag released
anywhere else spawns nothing.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from flowcanvas.geometry import CARD_HEIGHT, CARD_WIDTH, CoordinateEngine, Point
from flowcanvas.interactions.base import PREVIEW_OFFSET, PointerEvent, SelectCallback, ToolbarSpawnState
from flowcanvas.node_types import NodeType, coerce_node_type, type_meta

logger = logging.getLogger(__name__)


@dataclass
class SpawnSession:
    node_type: NodeType
    preview: Point
    moved: bool = False
    state: ToolbarSpawnState = ToolbarSpawnState.PREVIEWING


class ToolbarSpawnMachine:
    def __init__(self, engine: CoordinateEngine, graph, on_select: SelectCallback):
        self.engine = engine
        self.graph = graph
        self.on_select = on_select
        self._sessions: Dict[int, SpawnSession] = {}

    def session(self, pointer_id: int) -> Optional[SpawnSession]:
        return self._sessions.get(pointer_id)

    @property
    def is_active(self) -> bool:
        return bool(self._sessions)

    @property
    def previews(self) -> List[Tuple[NodeType, Point]]:
        """Floating previews to draw: (type, screen top-left) for every session that has moved."""
        return [(s.node_type, s.preview) for s in self._sessions.values() if s.moved]

    @staticmethod
    def _preview_at(event: PointerEvent) -> Point:
        return Point(event.x - PREVIEW_OFFSET, event.y - PREVIEW_OFFSET)

    def begin(self, event: PointerEvent, node_type: Any) -> bool:
        """Start a preview. Only the primary button starts one, and locked types never do."""
        if event.button != 0 or event.pointer_id in self._sessions:
            return False
        resolved = coerce_node_type(node_type)
        if type_meta(resolved).locked:
            return False
        self._sessions[event.pointer_id] = SpawnSession(node_type=resolved, preview=self._preview_at(event))
        return True

    def move(self, event: PointerEvent) -> Optional[ToolbarSpawnState]:
        session = self._sessions.get(event.pointer_id)
        if session is None:
            return None
        session.moved = True
        session.preview = self._preview_at(event)
        return session.state

    def release(self, event: PointerEvent) -> Optional[ToolbarSpawnState]:
        session = self._sessions.pop(event.pointer_id, None)
        if session is None:
            return None

        if not session.moved:
            node = self.graph.spawn_node(session.node_type)
            state = ToolbarSpawnState.SPAWNED_AT_ORIGIN
        elif self.engine.is_point_inside_surface(event.x, event.y):
            world = self.engine.screen_to_world(event.x, event.y)
            drop = Point(world.x - CARD_WIDTH / 2, world.y - CARD_HEIGHT / 2)
            node = self.graph.spawn_node(session.node_type, drop)
            state = ToolbarSpawnState.SPAWNED_AT_DROP
        else:
            return ToolbarSpawnState.DISCARDED

        if node is None:
            logger.debug(f"Spawn of {session.node_type.value} rejected")
            return ToolbarSpawnState.DISCARDED
        self.on_select(node.id)
        return state

    def cancel(self, pointer_id: int) -> Optional[ToolbarSpawnState]:
        if self._sessions.pop(pointer_id, None) is None:
            return None
        return ToolbarSpawnState.DISCARDED
