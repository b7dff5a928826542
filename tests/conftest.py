import asyncio
import copy
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from flowcanvas.config import EditorSettings
from flowcanvas.editor import Editor
from flowcanvas.geometry import CoordinateEngine, EditorState, Rect
from flowcanvas.graph_model import GraphModel
from flowcanvas.storage.protocol import CONNECTIONS, NODES, check_collection
from flowcanvas.storage.writer import PersistenceWriter


class RecordingStore:
    """In-memory GraphStore that records every call and can be told to fail."""

    def __init__(self, backend_type="recording"):
        self._backend_type = backend_type
        self.data = {NODES: [], CONNECTIONS: []}
        self.calls = []
        self.fail_with = None

    @property
    def backend_type(self):
        return self._backend_type

    def _record(self, *call):
        self.calls.append(call)
        if self.fail_with is not None:
            raise self.fail_with

    def load_all(self, collection):
        check_collection(collection)
        self._record("load_all", collection)
        return copy.deepcopy(self.data[collection])

    def put(self, collection, entity):
        check_collection(collection)
        self._record("put", collection, entity["id"])
        items = self.data[collection]
        for index, existing in enumerate(items):
            if existing["id"] == entity["id"]:
                items[index] = dict(entity)
                return
        items.append(dict(entity))

    def put_many(self, collection, entities):
        check_collection(collection)
        self._record("put_many", collection, len(entities))
        self.data[collection] = [dict(e) for e in entities]

    def delete_by_id(self, collection, entity_id):
        check_collection(collection)
        self._record("delete_by_id", collection, entity_id)
        self.data[collection] = [e for e in self.data[collection] if e["id"] != entity_id]

    def ids(self, collection):
        return [e["id"] for e in self.data[collection]]


@pytest.fixture
def store():
    return RecordingStore()


@pytest.fixture
def writer():
    return PersistenceWriter()


@pytest.fixture
def state():
    return EditorState(surface=Rect(0, 0, 1000, 800))


@pytest.fixture
def engine(state):
    return CoordinateEngine(state)


@pytest.fixture
def graph(store, writer, engine):
    """Empty graph model over a recording store. Call writer.flush() to apply writes."""
    return GraphModel(store, writer, default_position=engine.default_spawn_position)


@pytest.fixture
def settings(tmp_path):
    return EditorSettings(data_dir=tmp_path / "data", animation_duration=0.0)


@pytest.fixture
def editor(settings):
    """A booted editor on a fresh data directory with every boot write applied."""
    ed = Editor(settings)
    ed.resize_surface(0, 0, 1000, 800)

    async def boot():
        await ed.boot()
        await ed.writer.drain()

    asyncio.run(boot())
    yield ed
    ed.stores.close()
