"""
Editor facade for FlowCanvas.

One Editor owns one EditorState and wires every component to it: storage,
the persistence writer, coordinate engine, viewport animator, graph model,
hit tester and the interaction state machines. The host page talks only to
the Editor.
"""

import asyncio
import logging
from typing import Any, Callable, List, Optional

from flowcanvas.animator import ViewportAnimator
from flowcanvas.config import EditorSettings, get_settings
from flowcanvas.geometry import CoordinateEngine, EditorState, Rect, ViewBounds, Viewport
from flowcanvas.graph_model import GraphModel, LoadReport, Node, make_node
from flowcanvas.hit_test import HitTester
from flowcanvas.interactions import (
    ConnectorDragMachine,
    NodeDragMachine,
    PanZoomMachine,
    PointerEvent,
    PointerRouter,
    ToolbarSpawnMachine,
)
from flowcanvas.node_types import ENTRY_NODE_TYPE, NodeType, OptionCatalog
from flowcanvas.render import RenderSnapshot, build_snapshot
from flowcanvas.storage import CONNECTIONS, NODES, StoreBundle, create_store
from flowcanvas.storage.writer import PersistenceWriter

logger = logging.getLogger(__name__)

# Seeded next to the entry node when the store is empty
SEED_NODES = [
    (NodeType.CONDITION, 120.0, 120.0),
    (NodeType.ACTION, 420.0, 260.0),
]

RenderListener = Callable[[], None]


class Editor:
    def __init__(self, settings: Optional[EditorSettings] = None,
                 stores: Optional[StoreBundle] = None,
                 state: Optional[EditorState] = None):
        self.settings = settings or get_settings()
        self.state = state or EditorState(
            viewport=Viewport(),
            bounds=ViewBounds(self.settings.min_scale, self.settings.max_scale),
            zoom_levels=list(self.settings.zoom_levels),
        )
        self.stores = stores or create_store(self.settings)
        self.writer = PersistenceWriter()
        self.engine = CoordinateEngine(self.state)
        self.animator = ViewportAnimator(self.state, duration=self.settings.animation_duration)

        if self.settings.triggers_file:
            catalog = OptionCatalog.from_yaml(self.settings.triggers_file)
        else:
            catalog = OptionCatalog.default()
        self.graph = GraphModel(self.stores.graph, self.writer,
                                default_position=self.engine.default_spawn_position,
                                catalog=catalog)

        self.node_drag = NodeDragMachine(self.engine, self.graph, on_select=self.select_node,
                                         threshold=self.settings.drag_threshold)
        self.hit_tester = HitTester(self.engine, self.graph,
                                    trash_visible=lambda: self.node_drag.trash_visible)
        self.connector_drag = ConnectorDragMachine(self.engine, self.graph, self.hit_tester)
        self.toolbar_spawn = ToolbarSpawnMachine(self.engine, self.graph, on_select=self.select_node)
        self.pan_zoom = PanZoomMachine(self.engine, self.animator, on_deselect=self.deselect_node)
        self.router = PointerRouter(self.hit_tester, self.graph, self.node_drag,
                                    self.connector_drag, self.toolbar_spawn, self.pan_zoom)

        self._render_listeners: List[RenderListener] = []
        self._flow_title = self.stores.title.load()
        self.booted = False

        self.graph.on_change(self._on_graph_change)
        self.animator.on_frame(self._render)

    # --- Boot / shutdown ---

    async def boot(self) -> LoadReport:
        """
        Load the stored graph and start the write queue.

        An empty store is seeded with the entry node at the center of the view
        plus two starter cards. If loading fails outright the same seed is used
        in memory only. Either way exactly one entry node exists afterwards.
        """
        report = LoadReport()
        try:
            node_records = await asyncio.to_thread(self.stores.graph.load_all, NODES)
            connection_records = await asyncio.to_thread(self.stores.graph.load_all, CONNECTIONS)
        except Exception as e:
            logger.error(f"Failed to load graph, starting with default cards in memory: {e}")
            self.graph.replace_all(self._seed_nodes())
            # Memory only: drop the bulk writes replace_all queued.
            self.writer.discard_pending()
        else:
            if node_records:
                report = self.graph.load(node_records, connection_records)
            else:
                logger.info("Empty store, seeding default cards")
                self.graph.replace_all(self._seed_nodes())

        created = self.graph.ensure_entry_node()
        if created:
            report.created_entry_id = created
        self.writer.start()
        self.booted = True
        self._render()
        return report

    def _seed_nodes(self) -> List[Node]:
        center = self.engine.default_spawn_position()
        nodes = [make_node(ENTRY_NODE_TYPE, center.x, center.y)]
        nodes.extend(make_node(node_type, x, y) for node_type, x, y in SEED_NODES)
        return nodes

    async def shutdown(self) -> None:
        self.animator.cancel()
        self.router.cancel_all()
        await self.writer.drain()
        await self.writer.stop()
        # Writes submitted by other handlers while the worker was stopping.
        leftover = self.writer.flush()
        if leftover:
            logger.info(f"Applied {leftover} late write(s) on shutdown")
        self.stores.close()

    # --- Rendering ---

    def on_render(self, callback: RenderListener) -> None:
        self._render_listeners.append(callback)

    def _render(self) -> None:
        for callback in self._render_listeners:
            try:
                callback()
            except Exception as e:
                logger.error(f"Error in render listener: {e}")

    def _on_graph_change(self, event: str, entity_id: Optional[str]) -> None:
        if event == "node_removed" and entity_id == self.state.selected_node_id:
            self.state.selected_node_id = None
        self._render()

    def snapshot(self) -> RenderSnapshot:
        return build_snapshot(
            self.graph, self.state, self.engine,
            dragging_ids=self.node_drag.dragging_node_ids,
            over_trash_ids=self.node_drag.over_trash_node_ids,
            trash_visible=self.node_drag.trash_visible,
            trash_active=self.node_drag.trash_active,
            pending_paths=self.connector_drag.pending_paths,
            spawn_previews=self.toolbar_spawn.previews,
        )

    # --- Surface ---

    def resize_surface(self, left: float, top: float, width: float, height: float) -> None:
        self.state.surface = Rect(left, top, width, height)
        self._render()

    def set_trash_zone(self, zone: Optional[Rect]) -> None:
        """Screen rect of the trash drop zone (page coordinates)."""
        self.state.trash_zone = zone

    # --- Selection ---

    def select_node(self, node_id: Optional[str]) -> None:
        """Select a card and animate the view so it sits in the center."""
        node = self.graph.get_node(node_id)
        if node is None:
            self.deselect_node()
            return
        self.state.selected_node_id = node.id
        target = self.animator.focus_target(node.x, node.y)
        self.animator.animate_to(target.x, target.y)
        self._render()

    def deselect_node(self) -> None:
        if self.state.selected_node_id is None:
            return
        self.state.selected_node_id = None
        self._render()

    def selected_node(self) -> Optional[Node]:
        return self.graph.get_node(self.state.selected_node_id)

    # --- Sidebar ---

    def rename_node(self, node_id: str, title: str, commit: bool = True) -> Optional[str]:
        return self.graph.rename_node(node_id, title, commit=commit)

    def toggle_entry_option(self, node_id: str, option_id: str) -> Optional[List[str]]:
        return self.graph.toggle_entry_option(node_id, option_id)

    @property
    def flow_title(self) -> str:
        return self._flow_title

    def set_flow_title(self, title: str, commit: bool = True) -> str:
        """Live edits only update memory; a commit trims, defaults a blank title and persists."""
        if commit:
            self._flow_title = self.stores.title.save(title)
        else:
            self._flow_title = title or ""
        return self._flow_title

    # --- Pointer input ---

    def pointer_down(self, event: PointerEvent, restart_stale: bool = False) -> Optional[str]:
        route = self.router.pointer_down(event, restart_stale=restart_stale)
        self._render()
        return route

    def pointer_move(self, event: PointerEvent) -> Any:
        result = self.router.pointer_move(event)
        if result is not None:
            self._render()
        return result

    def pointer_up(self, event: PointerEvent) -> Any:
        result = self.router.pointer_up(event)
        self._render()
        return result

    def pointer_cancel(self, pointer_id: int) -> Any:
        result = self.router.pointer_cancel(pointer_id)
        self._render()
        return result

    def is_pointer_active(self, pointer_id: int) -> bool:
        return self.router.route_of(pointer_id) is not None

    def toolbar_down(self, event: PointerEvent, node_type: Any, restart_stale: bool = False) -> Optional[str]:
        route = self.router.toolbar_down(event, node_type, restart_stale=restart_stale)
        self._render()
        return route

    def toolbar_release(self, pointer_id: int) -> Any:
        """
        Release over the toolbar itself. A press that never moved is a click
        and spawns at the default position; a preview dragged back onto the
        toolbar is discarded.
        """
        session = self.toolbar_spawn.session(pointer_id)
        if session is None:
            return None
        if session.moved:
            return self.pointer_cancel(pointer_id)
        return self.pointer_up(PointerEvent(pointer_id, 0.0, 0.0))

    def spawn_from_toolbar(self, node_type: Any, pointer_id: int = 0) -> Any:
        """Click on a toolbar button: press and release in place."""
        if self.toolbar_down(PointerEvent(pointer_id, 0.0, 0.0), node_type) is None:
            return None
        return self.toolbar_release(pointer_id)

    # --- Zoom ---

    def wheel(self, delta_y: float, screen_x: float, screen_y: float) -> float:
        scale = self.pan_zoom.wheel(delta_y, screen_x, screen_y)
        self._render()
        return scale

    def zoom_step(self, direction: str) -> float:
        scale = self.pan_zoom.zoom_step(direction)
        self._render()
        return scale

    def zoom_percent(self) -> int:
        return self.engine.zoom_percent()
