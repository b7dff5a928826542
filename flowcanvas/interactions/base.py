"""Shared pointer types for the interaction state machines."""

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from flowcanvas.geometry import Point

# Pixel offset between the pointer and the top-left of the floating toolbar preview
PREVIEW_OFFSET = 22.0

SelectCallback = Callable[[Optional[str]], None]


@dataclass(frozen=True)
class PointerEvent:
    """A pointer sample in screen coordinates."""
    pointer_id: int
    x: float
    y: float
    button: int = 0

    @property
    def point(self) -> Point:
        return Point(self.x, self.y)


class NodeDragState(str, Enum):
    IDLE = "idle"
    DRAGGING = "dragging"
    DROPPED_ON_TRASH = "dropped_on_trash"
    DROPPED_ON_CANVAS = "dropped_on_canvas"


class ConnectorDragState(str, Enum):
    IDLE = "idle"
    DRAWING = "drawing"
    CONNECTED = "connected"
    CANCELLED = "cancelled"


class ToolbarSpawnState(str, Enum):
    IDLE = "idle"
    PREVIEWING = "previewing"
    SPAWNED_AT_DROP = "spawned_at_drop"
    SPAWNED_AT_ORIGIN = "spawned_at_origin"
    DISCARDED = "discarded"


class PanState(str, Enum):
    IDLE = "idle"
    PANNING = "panning"
