"""Pointer-driven interaction state machines."""

from flowcanvas.interactions.base import (
    ConnectorDragState,
    NodeDragState,
    PanState,
    PointerEvent,
    ToolbarSpawnState,
)
from flowcanvas.interactions.connector_drag import ConnectorDragMachine
from flowcanvas.interactions.node_drag import NodeDragMachine
from flowcanvas.interactions.pan_zoom import PanZoomMachine
from flowcanvas.interactions.router import PointerRouter
from flowcanvas.interactions.toolbar_spawn import ToolbarSpawnMachine

__all__ = [
    'PointerEvent',
    'NodeDragState',
    'ConnectorDragState',
    'ToolbarSpawnState',
    'PanState',
    'NodeDragMachine',
    'ConnectorDragMachine',
    'ToolbarSpawnMachine',
    'PanZoomMachine',
    'PointerRouter',
]
