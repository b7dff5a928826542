"""
Coordinate engine for the FlowCanvas canvas.

Maps between screen space (pixels relative to the page, as pointer events
report them) and world space (the unbounded plane node positions live in).
The render transform is `translate(pan) scale(scale)` applied inside the
surface rectangle, so:

    screen = surface.origin + pan + world * scale
    world  = (screen - surface.origin - pan) / scale
"""

import math
from dataclasses import dataclass, field
from typing import List, NamedTuple, Optional

# Card box in world units; spawn and focus positions center on it.
CARD_WIDTH = 220.0
CARD_HEIGHT = 140.0

ZOOM_TOLERANCE = 0.0001
WHEEL_ZOOM_SPEED = 0.001


class Point(NamedTuple):
    x: float
    y: float


@dataclass
class Rect:
    left: float = 0.0
    top: float = 0.0
    width: float = 0.0
    height: float = 0.0

    @property
    def right(self) -> float:
        return self.left + self.width

    @property
    def bottom(self) -> float:
        return self.top + self.height

    @property
    def center(self) -> Point:
        return Point(self.left + self.width / 2, self.top + self.height / 2)

    def contains(self, x: float, y: float) -> bool:
        return self.left <= x <= self.right and self.top <= y <= self.bottom


@dataclass
class Viewport:
    """Pan offset in screen pixels plus a uniform scale factor."""
    x: float = 0.0
    y: float = 0.0
    scale: float = 1.0


@dataclass
class ViewBounds:
    min_scale: float = 0.25
    max_scale: float = 1.5


@dataclass
class EditorState:
    """
    Explicit application state shared by the components of one editor.

    Every component receives the same instance at construction time, so two
    editors never share a viewport or a selection.
    """
    viewport: Viewport = field(default_factory=Viewport)
    surface: Rect = field(default_factory=lambda: Rect(0, 0, 1280, 800))
    trash_zone: Optional[Rect] = None
    selected_node_id: Optional[str] = None
    bounds: ViewBounds = field(default_factory=ViewBounds)
    zoom_levels: List[float] = field(default_factory=lambda: [0.5, 0.75, 1.0, 1.5])


def clamp(value: float, low: float, high: float) -> float:
    return min(high, max(low, value))


class CoordinateEngine:
    """Stateless math over the viewport and surface held in EditorState."""

    def __init__(self, state: EditorState):
        self.state = state

    @property
    def viewport(self) -> Viewport:
        return self.state.viewport

    def screen_to_world(self, screen_x: float, screen_y: float) -> Point:
        vp = self.state.viewport
        surface = self.state.surface
        x = screen_x - surface.left
        y = screen_y - surface.top
        return Point((x - vp.x) / vp.scale, (y - vp.y) / vp.scale)

    def world_to_screen(self, world_x: float, world_y: float) -> Point:
        vp = self.state.viewport
        surface = self.state.surface
        return Point(
            surface.left + vp.x + world_x * vp.scale,
            surface.top + vp.y + world_y * vp.scale,
        )

    def visible_world_bounds(self) -> Rect:
        vp = self.state.viewport
        surface = self.state.surface
        return Rect(
            left=-vp.x / vp.scale,
            top=-vp.y / vp.scale,
            width=surface.width / vp.scale,
            height=surface.height / vp.scale,
        )

    def is_point_inside_surface(self, screen_x: float, screen_y: float) -> bool:
        return self.state.surface.contains(screen_x, screen_y)

    def default_spawn_position(self) -> Point:
        """Top-left for a new card so that it sits at the center of the visible area."""
        center = self.visible_world_bounds().center
        return Point(center.x - CARD_WIDTH / 2, center.y - CARD_HEIGHT / 2)

    def pan_to(self, x: float, y: float) -> None:
        self.state.viewport.x = x
        self.state.viewport.y = y

    def zoom_to_scale(self, target_scale: float, anchor: Optional[Point] = None) -> float:
        """
        Zoom to target_scale keeping the anchor fixed.

        The anchor is surface-relative (not page coordinates) and defaults to
        the surface center. The world point under the anchor is the same before
        and after the change. Returns the applied (clamped) scale.
        """
        bounds = self.state.bounds
        vp = self.state.viewport
        surface = self.state.surface
        next_scale = clamp(target_scale, bounds.min_scale, bounds.max_scale)
        if anchor is None:
            anchor = Point(surface.width / 2, surface.height / 2)
        ratio = next_scale / vp.scale
        vp.x = anchor.x - (anchor.x - vp.x) * ratio
        vp.y = anchor.y - (anchor.y - vp.y) * ratio
        vp.scale = next_scale
        return next_scale

    def next_zoom_level(self, direction: str) -> float:
        levels = sorted(self.state.zoom_levels)
        current = self.state.viewport.scale
        if direction == "in":
            return next((level for level in levels if level - current > ZOOM_TOLERANCE), levels[-1])
        if direction == "out":
            below = [level for level in levels if current - level > ZOOM_TOLERANCE]
            return below[-1] if below else levels[0]
        raise ValueError(f"Unknown zoom direction: {direction!r}")

    def next_zoom(self, direction: str) -> float:
        """Step to the neighbouring zoom level, anchored at the surface center."""
        return self.zoom_to_scale(self.next_zoom_level(direction))

    def wheel_zoom(self, delta_y: float, anchor: Point) -> float:
        """Continuous zoom from a wheel delta; scrolling up (negative delta) zooms in."""
        factor = math.exp(-delta_y * WHEEL_ZOOM_SPEED)
        return self.zoom_to_scale(self.state.viewport.scale * factor, anchor)

    def zoom_percent(self) -> int:
        return round(self.state.viewport.scale * 100)


def curve_path(start: Point, end: Point) -> str:
    """SVG cubic path between two world points with a horizontal-leaning bend."""
    dx = end.x - start.x
    dy = end.y - start.y
    handle = clamp(abs(dx) * 0.45 + 30, 40, 140)
    sag = clamp(dy * 0.25, -handle * 0.4, handle * 0.4)
    c1x = start.x + handle
    c1y = start.y + sag * 0.4
    c2x = end.x - handle
    c2y = end.y - sag * 0.4
    return f"M {start.x} {start.y} C {c1x} {c1y}, {c2x} {c2y}, {end.x} {end.y}"


def midpoint(start: Point, end: Point) -> Point:
    return Point((start.x + end.x) / 2, (start.y + end.y) / 2)
