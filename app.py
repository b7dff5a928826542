"""
Main NiceGUI application for FlowCanvas.

Renders the flow as SVG over a ui.interactive_image, routes mouse input
through the editor's pointer router, and provides the type toolbar, zoom
controls, flow title and a sidebar for the selected card.
"""

import logging
import sys

from dotenv import load_dotenv
from nicegui import ui

load_dotenv()

from flowcanvas.config import get_settings
from flowcanvas.editor import Editor
from flowcanvas.geometry import Rect
from flowcanvas.graph_model import MAX_TITLE_LENGTH
from flowcanvas.interactions import PointerEvent
from flowcanvas.node_types import toolbar_types, type_meta
from flowcanvas.paths import ensure_data_dir
from flowcanvas.render import render_svg

logging.basicConfig(level=logging.INFO, format='%(asctime)s %(levelname)s %(name)s: %(message)s')
logger = logging.getLogger(__name__)

CANVAS_WIDTH = 1280
CANVAS_HEIGHT = 800
TRASH_WIDTH = 220
TRASH_HEIGHT = 72
MOUSE_POINTER_ID = 1

TYPE_ICONS = {
    'message': 'chat',
    'ai': 'smart_toy',
    'action': 'bolt',
    'condition': 'call_split',
    'startFlow': 'play_arrow',
    'randomizer': 'shuffle',
    'delay': 'schedule',
}

ui.add_head_html('''
    <style>
        .card rect { fill: #1e293b; stroke: #475569; stroke-width: 2; }
        .card.selected rect { stroke: #38bdf8; stroke-width: 3; }
        .card.dragging { opacity: 0.85; }
        .card.over-trash rect { stroke: #ef4444; }
        .card-start rect { stroke: #22c55e; }
        .card-type { fill: #94a3b8; font-size: 12px; font-weight: 600; text-transform: uppercase; }
        .card-title { fill: #f1f5f9; font-size: 15px; }
        .card-option { fill: #cbd5e1; font-size: 12px; }
        .card-option.empty { fill: #64748b; font-style: italic; }
        .spawn-preview rect { fill: #1e293b; stroke: #38bdf8; stroke-width: 2; opacity: 0.9; }
        .spawn-preview text { fill: #f1f5f9; font-size: 14px; font-weight: 600; }
        .connector-out { fill: #0f172a; stroke: #38bdf8; stroke-width: 2; }
        .connector-in { fill: #0f172a; stroke: #64748b; stroke-width: 2; }
        .connector-in.filled { fill: #38bdf8; }
        .connection { stroke: #64748b; stroke-width: 2; }
        .connection.pending { stroke: #38bdf8; stroke-dasharray: 6 4; }
        .connection-handle { fill: #0f172a; stroke: #ef4444; stroke-width: 2; }
        .trash-zone { fill: rgba(239, 68, 68, 0.12); stroke: #ef4444; stroke-dasharray: 6 4; }
        .trash-zone.active { fill: rgba(239, 68, 68, 0.35); }
    </style>
''', shared=True)


@ui.page('/')
async def main_page():
    ui.dark_mode().enable()
    ui.query('body').style('margin: 0; padding: 0; overflow: hidden;')

    settings = get_settings()
    ensure_data_dir(settings.data_dir)
    editor = Editor(settings)
    editor.resize_surface(0, 0, CANVAS_WIDTH, CANVAS_HEIGHT)
    editor.set_trash_zone(Rect(
        (CANVAS_WIDTH - TRASH_WIDTH) / 2, CANVAS_HEIGHT - TRASH_HEIGHT - 24, TRASH_WIDTH, TRASH_HEIGHT,
    ))

    page_root = ui.element('div').classes('w-full h-screen relative bg-slate-950')

    def notify_persistence_error(error: Exception):
        with page_root:
            ui.notify(f'Could not save changes: {error}', color='negative')

    editor.writer.on_error(notify_persistence_error)

    with page_root:
        # 1. Header: flow title and zoom controls
        with ui.row().classes('absolute top-4 left-4 right-4 z-10 items-center gap-3'):
            title_input = ui.input(value=editor.flow_title).props('dense outlined dark').classes('w-72')
            title_input.on_value_change(lambda e: editor.set_flow_title(e.value, commit=False))

            def commit_title():
                title_input.value = editor.set_flow_title(title_input.value or '', commit=True)

            title_input.on('blur', commit_title)
            title_input.on('keydown.enter', commit_title)

            ui.space()
            ui.button(icon='remove', on_click=lambda: editor.zoom_step('out')).props('flat round dense color=grey').tooltip('Zoom out')
            zoom_label = ui.label(f'{editor.zoom_percent()}%').classes('text-sm text-gray-300 w-12 text-center')
            ui.button(icon='add', on_click=lambda: editor.zoom_step('in')).props('flat round dense color=grey').tooltip('Zoom in')

        # 2. Canvas
        # A mouse cannot press twice without releasing, so a press on a pointer
        # that is still routed means its release was lost: restart the gesture.
        def handle_mouse(e):
            event = PointerEvent(MOUSE_POINTER_ID, e.image_x, e.image_y, e.button)
            if e.type == 'mousedown':
                editor.pointer_down(event, restart_stale=True)
            elif e.type == 'mousemove':
                editor.pointer_move(event)
            elif e.type == 'mouseup':
                editor.pointer_up(event)

        canvas = ui.interactive_image(
            size=(CANVAS_WIDTH, CANVAS_HEIGHT),
            on_mouse=handle_mouse,
            events=['mousedown', 'mousemove', 'mouseup'],
            cross=False,
        ).classes('absolute inset-0')

        def handle_wheel(e):
            args = e.args or {}
            editor.wheel(float(args.get('deltaY', 0)), float(args.get('offsetX', 0)), float(args.get('offsetY', 0)))

        canvas.on('wheel', handle_wheel, ['deltaY', 'offsetX', 'offsetY'], throttle=0.02)

        # Releases over the toolbar, the sidebar or outside the window never reach
        # the canvas; they bubble here (after the canvas handled its own) and end
        # whatever gesture is still open.
        def handle_lost_release():
            if editor.is_pointer_active(MOUSE_POINTER_ID):
                editor.pointer_cancel(MOUSE_POINTER_ID)

        page_root.on('mouseup', handle_lost_release)
        page_root.on('mouseleave', handle_lost_release)

        # 3. Type toolbar: click to spawn at the view center, or drag onto the canvas
        with ui.column().classes('absolute left-4 top-24 z-10 gap-1 bg-slate-900/90 rounded-xl p-2 border border-slate-700'):
            def make_press_handler(node_type):
                def handler(e):
                    args = e.args or {}
                    event = PointerEvent(MOUSE_POINTER_ID, float(args.get('clientX', 0)),
                                         float(args.get('clientY', 0)), int(args.get('button', 0)))
                    editor.toolbar_down(event, node_type, restart_stale=True)
                return handler

            for node_type in toolbar_types():
                button = ui.button(icon=TYPE_ICONS.get(node_type.value, 'crop_square'))
                button.props('flat round dense color=grey').tooltip(type_meta(node_type).default_label)
                button.on('mousedown', make_press_handler(node_type), ['clientX', 'clientY', 'button'])
                button.on('mouseup', lambda: editor.toolbar_release(MOUSE_POINTER_ID))

        # 4. Sidebar
        sidebar = ui.card().classes('fixed right-6 top-20 w-80 max-h-[85vh] overflow-y-auto z-20 shadow-2xl bg-slate-900/95 border border-slate-700')
        sidebar.set_visibility(False)

    @ui.refreshable
    def sidebar_content():
        node = editor.selected_node()
        if node is None:
            return
        with ui.row().classes('w-full items-center justify-between'):
            ui.label(type_meta(node.type).default_label.upper()).classes('text-xs font-bold text-gray-400')
            ui.button(icon='close', on_click=editor.deselect_node).props('flat round dense color=grey').tooltip('Close')

        if node.is_entry:
            ui.label('Triggers').classes('text-sm text-gray-300 mt-2')
            selected = set(node.trigger_ids or [])
            for option in editor.graph.catalog:
                ui.checkbox(
                    option.label,
                    value=option.id in selected,
                    on_change=lambda e, oid=option.id, nid=node.id: editor.toggle_entry_option(nid, oid),
                ).tooltip(option.description)
            return

        node_id = node.id
        name_input = ui.input('Title', value=node.title).props(f'maxlength={MAX_TITLE_LENGTH}').classes('w-full')
        name_input.on_value_change(lambda e: editor.rename_node(node_id, e.value or '', commit=False))

        def commit_name():
            committed = editor.rename_node(node_id, name_input.value or '', commit=True)
            if committed is not None:
                name_input.value = committed

        name_input.on('blur', commit_name)
        name_input.on('keydown.enter', commit_name)

    with sidebar:
        sidebar_content()

    shown_selection = {'id': None}

    def refresh_view():
        snapshot = editor.snapshot()
        canvas.content = render_svg(snapshot, standalone=False)
        zoom_label.text = f'{snapshot.zoom_percent}%'
        # Rebuild the sidebar only when the selection changes so inputs keep focus.
        if snapshot.selected_id != shown_selection['id']:
            shown_selection['id'] = snapshot.selected_id
            sidebar.set_visibility(snapshot.selected_id is not None)
            sidebar_content.refresh()

    editor.on_render(refresh_view)

    async def on_disconnect():
        await editor.shutdown()

    ui.context.client.on_disconnect(on_disconnect)

    await editor.boot()
    title_input.value = editor.flow_title
    logger.info(f"Editor ready with {len(editor.graph.nodes)} card(s) on {editor.stores.graph.backend_type} storage")


if __name__ in {"__main__", "__mp_main__"}:
    ui.run(
        title='FlowCanvas',
        port=8081,
        reload=not getattr(sys, 'frozen', False),
    )
