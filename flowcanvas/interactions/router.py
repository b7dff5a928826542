"""
Pointer router: decides which state machine owns a pointer.

The element under a pointer-down picks the machine; every later move and the
final release of that pointer id go to the same machine, whatever the pointer
is over by then. Toolbar presses arrive separately via `toolbar_down` because
the toolbar sits outside the canvas surface.
"""

import logging
from typing import Any, Dict, Optional, Tuple

from flowcanvas.hit_test import (
    HIT_CANVAS,
    HIT_CONNECTION_HANDLE,
    HIT_CONNECTOR,
    HIT_NODE,
    HitTester,
)
from flowcanvas.interactions.base import PointerEvent
from flowcanvas.interactions.connector_drag import ConnectorDragMachine
from flowcanvas.interactions.node_drag import NodeDragMachine
from flowcanvas.interactions.pan_zoom import PanZoomMachine
from flowcanvas.interactions.toolbar_spawn import ToolbarSpawnMachine

logger = logging.getLogger(__name__)

ROUTE_NODE = "node"
ROUTE_CONNECTOR = "connector"
ROUTE_TOOLBAR = "toolbar"
ROUTE_PAN = "pan"
ROUTE_HANDLE = "handle"


class PointerRouter:
    def __init__(self, hit_tester: HitTester, graph,
                 node_drag: NodeDragMachine,
                 connector_drag: ConnectorDragMachine,
                 toolbar_spawn: ToolbarSpawnMachine,
                 pan_zoom: PanZoomMachine):
        self.hit_tester = hit_tester
        self.graph = graph
        self.node_drag = node_drag
        self.connector_drag = connector_drag
        self.toolbar_spawn = toolbar_spawn
        self.pan_zoom = pan_zoom
        # pointer id -> (route, target id)
        self._routes: Dict[int, Tuple[str, Optional[str]]] = {}

    def _machine(self, route: str):
        return {
            ROUTE_NODE: self.node_drag,
            ROUTE_CONNECTOR: self.connector_drag,
            ROUTE_TOOLBAR: self.toolbar_spawn,
            ROUTE_PAN: self.pan_zoom,
        }.get(route)

    def route_of(self, pointer_id: int) -> Optional[str]:
        entry = self._routes.get(pointer_id)
        return entry[0] if entry else None

    def _claim(self, pointer_id: int, restart_stale: bool) -> bool:
        """
        Whether a press with this pointer id may start a gesture.

        A press on an id that is still routed is ignored, unless the host
        knows the earlier release was lost (a mouse never presses twice
        without releasing); then the stale gesture is cancelled first.
        """
        entry = self._routes.get(pointer_id)
        if entry is None:
            return True
        if not restart_stale:
            return False
        logger.info(f"Pointer {pointer_id} pressed again without a release, cancelling its {entry[0]} gesture")
        self.pointer_cancel(pointer_id)
        return True

    def pointer_down(self, event: PointerEvent, restart_stale: bool = False) -> Optional[str]:
        """Hit-test and hand the pointer to one machine. Returns the route taken, or None."""
        if not self._claim(event.pointer_id, restart_stale) or event.button != 0:
            return None

        hit = self.hit_tester.hit_test(event.x, event.y)
        started = False
        if hit.kind == HIT_CONNECTION_HANDLE:
            self._routes[event.pointer_id] = (ROUTE_HANDLE, hit.id)
            return ROUTE_HANDLE
        if hit.kind == HIT_CONNECTOR:
            route = ROUTE_CONNECTOR
            started = self.connector_drag.begin(event, hit.id)
        elif hit.kind == HIT_NODE:
            route = ROUTE_NODE
            started = self.node_drag.begin(event, hit.id)
        elif hit.kind == HIT_CANVAS:
            route = ROUTE_PAN
            started = self.pan_zoom.begin(event)
        else:
            return None

        if not started:
            return None
        self._routes[event.pointer_id] = (route, hit.id)
        return route

    def toolbar_down(self, event: PointerEvent, node_type: Any, restart_stale: bool = False) -> Optional[str]:
        if not self._claim(event.pointer_id, restart_stale):
            return None
        if not self.toolbar_spawn.begin(event, node_type):
            return None
        self._routes[event.pointer_id] = (ROUTE_TOOLBAR, None)
        return ROUTE_TOOLBAR

    def pointer_move(self, event: PointerEvent) -> Any:
        entry = self._routes.get(event.pointer_id)
        if entry is None:
            return None
        machine = self._machine(entry[0])
        return machine.move(event) if machine is not None else None

    def pointer_up(self, event: PointerEvent) -> Any:
        entry = self._routes.pop(event.pointer_id, None)
        if entry is None:
            return None
        route, target_id = entry
        if route == ROUTE_HANDLE:
            # Delete handles act on release, and only if still over the same handle.
            hit = self.hit_tester.hit_test(event.x, event.y)
            if hit.kind == HIT_CONNECTION_HANDLE and hit.id == target_id:
                return self.graph.remove_connection(target_id)
            logger.debug(f"Delete handle for {target_id} released elsewhere")
            return False
        return self._machine(route).release(event)

    def pointer_cancel(self, pointer_id: int) -> Any:
        entry = self._routes.pop(pointer_id, None)
        if entry is None:
            return None
        route, _ = entry
        if route == ROUTE_HANDLE:
            return False
        return self._machine(route).cancel(pointer_id)

    def cancel_all(self) -> None:
        for pointer_id in list(self._routes):
            self.pointer_cancel(pointer_id)
