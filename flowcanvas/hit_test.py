"""
Hit testing: which element sits under a screen point.

Cards are fixed-size boxes in world space. The outbound connector is a small
circle at the right edge center of a card, and each connection has a delete
handle at its midpoint. The trash zone lives in screen space.
"""

import math
from dataclasses import dataclass
from typing import Optional

from flowcanvas.geometry import CARD_HEIGHT, CARD_WIDTH, CoordinateEngine, Point, midpoint

CONNECTOR_RADIUS = 10.0
DELETE_HANDLE_RADIUS = 10.0
# Inbound anchor sits on the left edge, level with the card header icon
INBOUND_ANCHOR_Y = 28.0

HIT_TRASH = "trash"
HIT_CONNECTION_HANDLE = "connection_handle"
HIT_CONNECTOR = "connector"
HIT_NODE = "node"
HIT_CANVAS = "canvas"
HIT_OUTSIDE = "outside"


@dataclass(frozen=True)
class Hit:
    kind: str
    id: Optional[str] = None


def outbound_anchor(node) -> Point:
    return Point(node.x + CARD_WIDTH, node.y + CARD_HEIGHT / 2)


def inbound_anchor(node) -> Point:
    return Point(node.x, node.y + INBOUND_ANCHOR_Y)


def node_contains(node, world: Point) -> bool:
    return node.x <= world.x <= node.x + CARD_WIDTH and node.y <= world.y <= node.y + CARD_HEIGHT


def _within(a: Point, b: Point, radius: float) -> bool:
    return math.hypot(a.x - b.x, a.y - b.y) <= radius


class HitTester:
    """Resolves screen points against the graph and the editor chrome."""

    def __init__(self, engine: CoordinateEngine, graph, trash_visible=lambda: False):
        self.engine = engine
        self.graph = graph
        self._trash_visible = trash_visible

    def is_in_trash(self, screen_x: float, screen_y: float) -> bool:
        """True only while the trash zone is shown and the point is inside it."""
        zone = self.engine.state.trash_zone
        if zone is None or not self._trash_visible():
            return False
        return zone.contains(screen_x, screen_y)

    def node_at(self, screen_x: float, screen_y: float) -> Optional[str]:
        """Topmost (last drawn) card whose body contains the point."""
        world = self.engine.screen_to_world(screen_x, screen_y)
        for node in reversed(self.graph.nodes):
            if node_contains(node, world):
                return node.id
        return None

    def hit_test(self, screen_x: float, screen_y: float) -> Hit:
        """
        Resolve a point in the order things are drawn, topmost first: the
        trash zone, then cards (each card's outbound connector is part of the
        card), then connection delete handles, which sit beneath every card.
        """
        if self.is_in_trash(screen_x, screen_y):
            return Hit(HIT_TRASH)
        if not self.engine.is_point_inside_surface(screen_x, screen_y):
            return Hit(HIT_OUTSIDE)

        world = self.engine.screen_to_world(screen_x, screen_y)
        # Radii are in screen pixels; convert to world units at the current scale.
        scale = self.engine.viewport.scale

        for node in reversed(self.graph.nodes):
            if _within(world, outbound_anchor(node), CONNECTOR_RADIUS / scale):
                return Hit(HIT_CONNECTOR, node.id)
            if node_contains(node, world):
                return Hit(HIT_NODE, node.id)

        for connection in reversed(self.graph.connections):
            source = self.graph.get_node(connection.from_id)
            target = self.graph.get_node(connection.to_id)
            if source is None or target is None:
                continue
            handle = midpoint(outbound_anchor(source), inbound_anchor(target))
            if _within(world, handle, DELETE_HANDLE_RADIUS / scale):
                return Hit(HIT_CONNECTION_HANDLE, connection.id)

        return Hit(HIT_CANVAS)
