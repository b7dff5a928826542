from flowcanvas.geometry import Point, Rect
from flowcanvas.render import EMPTY_TRIGGERS_HINT, build_flow_graph, build_snapshot, render_svg


def load_flow(graph, writer):
    graph.load(
        [
            {"id": "start", "title": "When someone...", "x": 0, "y": 0, "type": "start",
             "triggerIds": ["story-reply", "message"]},
            {"id": "a", "title": "Say <hi>", "x": 300, "y": 0, "type": "message"},
            {"id": "b", "title": "B", "x": 600, "y": 0, "type": "action"},
        ],
        [{"id": "s-a", "fromId": "start", "toId": "a"}],
    )
    writer.flush()


def test_flow_graph_skips_dangling_edges(graph, writer):
    load_flow(graph, writer)
    flow = build_flow_graph(graph.nodes, graph.connections)
    assert set(flow.nodes) == {"start", "a", "b"}
    assert list(flow.edges) == [("start", "a")]


def test_snapshot_nodes(graph, writer, state, engine):
    load_flow(graph, writer)
    state.selected_node_id = "a"
    snapshot = build_snapshot(graph, state, engine, dragging_ids=["b"], over_trash_ids=["b"],
                              trash_visible=True, trash_active=True)

    start, a, b = snapshot.nodes
    assert start.locked and start.has_inbound
    assert start.option_labels == ("Story Reply", "Instagram Message")
    assert a.has_inbound and a.selected and not a.locked
    assert not b.has_inbound
    assert b.dragging and b.over_trash
    assert snapshot.selected_id == "a"
    assert snapshot.trash_visible and snapshot.trash_active
    assert snapshot.zoom_percent == 100


def test_snapshot_connections(graph, writer, state, engine):
    load_flow(graph, writer)
    snapshot = build_snapshot(graph, state, engine)
    (conn,) = snapshot.connections
    assert conn.start == Point(220, 70)
    assert conn.end == Point(300, 28)
    assert conn.handle == Point(260, 49)
    assert conn.path.startswith("M 220.0 70.0 C")


def test_snapshot_is_detached_from_viewport(graph, writer, state, engine):
    load_flow(graph, writer)
    snapshot = build_snapshot(graph, state, engine)
    state.viewport.x = 999
    assert snapshot.viewport.x == 0


def test_render_svg(graph, writer, state, engine):
    load_flow(graph, writer)
    state.trash_zone = Rect(400, 700, 200, 80)
    svg = render_svg(build_snapshot(graph, state, engine, trash_visible=True, pending_paths=["M 0 0 C 1 1, 2 2, 3 3"]))
    assert svg.startswith("<svg")
    assert svg.count('class="card ') == 3
    assert "Say &lt;hi&gt;" in svg
    assert 'class="connection pending"' in svg
    assert 'class="trash-zone"' in svg

    inner = render_svg(build_snapshot(graph, state, engine), standalone=False)
    assert inner.startswith('<g class="world"')
    assert "trash-zone" not in inner


def test_entry_without_triggers_shows_hint(graph, writer, state, engine):
    graph.load([{"id": "start", "title": "When someone...", "x": 0, "y": 0, "type": "start"}], [])
    writer.flush()
    svg = render_svg(build_snapshot(graph, state, engine))
    assert EMPTY_TRIGGERS_HINT in svg

    load_flow(graph, writer)
    assert EMPTY_TRIGGERS_HINT not in render_svg(build_snapshot(graph, state, engine))


def test_spawn_preview_in_screen_layer(graph, writer, state, engine):
    load_flow(graph, writer)
    state.surface = Rect(100, 50, 1000, 800)
    snapshot = build_snapshot(graph, state, engine, spawn_previews=[("randomizer", Point(400.0, 300.0))])
    (preview,) = snapshot.spawn_previews
    assert (preview.type, preview.type_label) == ("randomizer", "Randomizer")
    svg = render_svg(snapshot)
    assert 'class="spawn-preview card-randomizer" transform="translate(300.0 250.0)"' in svg
    assert svg.index("spawn-preview") > svg.index('class="world"')
