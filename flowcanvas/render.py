"""
Render snapshot for FlowCanvas.

Turns the graph model, viewport and interaction state into a plain,
immutable description of what to draw, and renders that description as an
SVG document for the host page. Nothing here mutates editor state.

Structure of the SVG output:

    <svg viewBox="0 0 W H">
      <g transform="translate(pan) scale(scale)">   world layer
        <path class="connection"/>  ...              links, then pending curves
        <g class="card"> ... </g>   ...              cards in list order
      </g>
      <rect class="trash-zone"/>                     screen layer
      <g class="spawn-preview"> ... </g>             toolbar drag previews
    </svg>
"""

from dataclasses import dataclass, field
from html import escape
from typing import Any, List, Optional, Sequence, Tuple

import networkx as nx

from flowcanvas.geometry import CARD_HEIGHT, CARD_WIDTH, Point, Rect, Viewport, curve_path, midpoint
from flowcanvas.hit_test import CONNECTOR_RADIUS, DELETE_HANDLE_RADIUS, inbound_anchor, outbound_anchor
from flowcanvas.node_types import coerce_node_type, type_meta

EMPTY_TRIGGERS_HINT = "Select what starts this flow"
# Edge length of the square toolbar drag preview, in screen pixels
PREVIEW_SIZE = 44


@dataclass(frozen=True)
class NodeView:
    id: str
    title: str
    type: str
    type_label: str
    x: float
    y: float
    locked: bool
    has_inbound: bool
    selected: bool = False
    dragging: bool = False
    over_trash: bool = False
    option_labels: Tuple[str, ...] = ()
    is_entry: bool = False


@dataclass(frozen=True)
class SpawnPreview:
    """Floating toolbar preview; position is its top-left in page coordinates."""
    type: str
    type_label: str
    position: Point


@dataclass(frozen=True)
class ConnectionView:
    id: str
    from_id: str
    to_id: str
    start: Point
    end: Point
    path: str
    handle: Point


@dataclass(frozen=True)
class RenderSnapshot:
    nodes: Tuple[NodeView, ...]
    connections: Tuple[ConnectionView, ...]
    viewport: Viewport
    selected_id: Optional[str]
    trash_visible: bool
    trash_active: bool
    pending_paths: Tuple[str, ...] = ()
    zoom_percent: int = 100
    trash_zone: Optional[Rect] = None
    surface: Rect = field(default_factory=Rect)
    spawn_previews: Tuple[SpawnPreview, ...] = ()

    def node(self, node_id: str) -> Optional[NodeView]:
        return next((n for n in self.nodes if n.id == node_id), None)


def build_flow_graph(nodes, connections) -> nx.DiGraph:
    """Directed graph of the flow; edges only between known nodes."""
    graph = nx.DiGraph()
    for node in nodes:
        graph.add_node(node.id, type=node.type.value)
    for connection in connections:
        if connection.from_id in graph.nodes and connection.to_id in graph.nodes:
            graph.add_edge(connection.from_id, connection.to_id, id=connection.id)
    return graph


def build_snapshot(graph_model, state, engine,
                   dragging_ids: Sequence[str] = (),
                   over_trash_ids: Sequence[str] = (),
                   trash_visible: bool = False,
                   trash_active: bool = False,
                   pending_paths: Sequence[str] = (),
                   spawn_previews: Sequence[Tuple[Any, Point]] = ()) -> RenderSnapshot:
    nodes = graph_model.nodes
    connections = graph_model.connections
    flow = build_flow_graph(nodes, connections)
    catalog = graph_model.catalog

    node_views = []
    for node in nodes:
        meta = type_meta(node.type)
        labels: Tuple[str, ...] = ()
        if node.is_entry:
            labels = tuple(catalog.get(oid).label for oid in catalog.filter_valid(node.trigger_ids or []))
        node_views.append(NodeView(
            id=node.id,
            title=node.title,
            type=node.type.value,
            type_label=meta.default_label,
            x=node.x,
            y=node.y,
            locked=meta.locked,
            # The entry node never takes inbound links, so its inbound socket is always shown as filled.
            has_inbound=node.is_entry or flow.in_degree(node.id) > 0,
            selected=node.id == state.selected_node_id,
            dragging=node.id in dragging_ids,
            over_trash=node.id in over_trash_ids,
            option_labels=labels,
            is_entry=node.is_entry,
        ))

    by_id = {node.id: node for node in nodes}
    connection_views = []
    for connection in connections:
        source = by_id.get(connection.from_id)
        target = by_id.get(connection.to_id)
        if source is None or target is None:
            continue
        start = outbound_anchor(source)
        end = inbound_anchor(target)
        connection_views.append(ConnectionView(
            id=connection.id,
            from_id=connection.from_id,
            to_id=connection.to_id,
            start=start,
            end=end,
            path=curve_path(start, end),
            handle=midpoint(start, end),
        ))

    vp = state.viewport
    return RenderSnapshot(
        nodes=tuple(node_views),
        connections=tuple(connection_views),
        viewport=Viewport(vp.x, vp.y, vp.scale),
        selected_id=state.selected_node_id,
        trash_visible=trash_visible,
        trash_active=trash_active,
        pending_paths=tuple(pending_paths),
        zoom_percent=engine.zoom_percent(),
        trash_zone=state.trash_zone,
        surface=Rect(state.surface.left, state.surface.top, state.surface.width, state.surface.height),
        spawn_previews=tuple(
            SpawnPreview(
                type=coerce_node_type(node_type).value,
                type_label=type_meta(node_type).default_label,
                position=Point(position.x, position.y),
            )
            for node_type, position in spawn_previews
        ),
    )


def _card_svg(node: NodeView) -> List[str]:
    classes = ["card", f"card-{node.type}"]
    if node.selected:
        classes.append("selected")
    if node.dragging:
        classes.append("dragging")
    if node.over_trash:
        classes.append("over-trash")
    parts = [
        f'<g class="{" ".join(classes)}" data-node-id="{escape(node.id)}" '
        f'transform="translate({node.x} {node.y})">',
        f'<rect width="{CARD_WIDTH}" height="{CARD_HEIGHT}" rx="14" />',
        f'<text class="card-type" x="16" y="32">{escape(node.type_label)}</text>',
        f'<text class="card-title" x="16" y="62">{escape(node.title)}</text>',
    ]
    if node.is_entry and not node.option_labels:
        parts.append(f'<text class="card-option empty" x="16" y="88">{EMPTY_TRIGGERS_HINT}</text>')
    for index, label in enumerate(node.option_labels[:3]):
        parts.append(f'<text class="card-option" x="16" y="{88 + index * 18}">{escape(label)}</text>')
    if len(node.option_labels) > 3:
        parts.append(f'<text class="card-option" x="16" y="{88 + 3 * 18}">+{len(node.option_labels) - 3} more</text>')
    inbound_class = "connector-in filled" if node.has_inbound else "connector-in"
    if not node.locked:
        parts.append(f'<circle class="{inbound_class}" cx="0" cy="28" r="6" />')
    parts.append(
        f'<circle class="connector-out" cx="{CARD_WIDTH}" cy="{CARD_HEIGHT / 2}" r="{CONNECTOR_RADIUS}" />'
    )
    parts.append('</g>')
    return parts


def render_svg(snapshot: RenderSnapshot, standalone: bool = True) -> str:
    """
    SVG markup for the snapshot, sized to the surface.

    With standalone=False only the inner layers are returned, for hosts that
    supply their own <svg> element.
    """
    vp = snapshot.viewport
    width = snapshot.surface.width
    height = snapshot.surface.height
    parts = [f'<g class="world" transform="translate({vp.x} {vp.y}) scale({vp.scale})">']
    for connection in snapshot.connections:
        parts.append(f'<path class="connection" d="{connection.path}" fill="none" />')
        parts.append(
            f'<circle class="connection-handle" data-connection-id="{escape(connection.id)}" '
            f'cx="{connection.handle.x}" cy="{connection.handle.y}" r="{DELETE_HANDLE_RADIUS}" />'
        )
    for path in snapshot.pending_paths:
        parts.append(f'<path class="connection pending" d="{path}" fill="none" />')
    for node in snapshot.nodes:
        parts.extend(_card_svg(node))
    parts.append('</g>')

    if snapshot.trash_visible and snapshot.trash_zone is not None:
        zone = snapshot.trash_zone
        classes = "trash-zone active" if snapshot.trash_active else "trash-zone"
        # Trash zone is stored in page coordinates; the SVG origin is the surface corner.
        parts.append(
            f'<rect class="{classes}" x="{zone.left - snapshot.surface.left}" '
            f'y="{zone.top - snapshot.surface.top}" width="{zone.width}" height="{zone.height}" rx="12" />'
        )
    for preview in snapshot.spawn_previews:
        x = preview.position.x - snapshot.surface.left
        y = preview.position.y - snapshot.surface.top
        parts.append(
            f'<g class="spawn-preview card-{preview.type}" transform="translate({x} {y})">'
            f'<rect width="{PREVIEW_SIZE}" height="{PREVIEW_SIZE}" rx="12" />'
            f'<text x="{PREVIEW_SIZE / 2}" y="{PREVIEW_SIZE / 2 + 4}" text-anchor="middle">'
            f'{escape(preview.type_label[:2])}</text></g>'
        )
    if standalone:
        parts.insert(0, f'<svg xmlns="http://www.w3.org/2000/svg" viewBox="0 0 {width} {height}" '
                            f'width="{width}" height="{height}">')
        parts.append('</svg>')
    return "".join(parts)
