"""Shared fixtures: an in-memory coordination store with ZooKeeper watch semantics"""

import posixpath
from collections import defaultdict

import pytest

from zk_discovery.connection import Connection
from zk_discovery.events import EventType, WatchEvent
from zk_discovery.exceptions import StoreError
from zk_discovery.service_registry import ServiceRegistry
from zk_discovery.config_store import ConfigStore
from zk_discovery.store import ConnectionState, CoordinationStore


BASE_PATH = "/services/endpoints/test"


class InMemoryStore(CoordinationStore):
    """Coordination store kept in a dict.

    Watches are one-shot and kept in per-path sets, like ZooKeeper: the same
    callback armed twice on a path fires once. Watch callbacks run
    synchronously inside the mutating call.
    """

    def __init__(self):
        self.nodes = {"/": b""}
        self.versions = {"/": 0}
        self.ephemeral = set()
        self.counters = defaultdict(int)
        self.data_watches = defaultdict(set)
        self.child_watches = defaultdict(set)
        self.state = ConnectionState.DISCONNECTED
        self.listeners = []
        self.calls = []

    # session

    def start(self):
        self.calls.append(("start", None))
        self.state = ConnectionState.CONNECTED

    def stop(self):
        self.calls.append(("stop", None))
        for path in sorted(self.ephemeral, reverse=True):
            self.delete(path)
        self.set_connection_state(ConnectionState.DISCONNECTED)

    def connection_state(self):
        return self.state

    def add_state_listener(self, callback):
        self.listeners.append(callback)

    def set_connection_state(self, state):
        self.state = state
        for listener in list(self.listeners):
            listener(state)

    def expire_session(self):
        for path in sorted(self.ephemeral, reverse=True):
            self.delete(path)
        self.set_connection_state(ConnectionState.EXPIRED)

    # reads and writes

    def exists(self, path):
        self.calls.append(("exists", path))
        return path in self.nodes

    def make_dirs(self, path):
        self.calls.append(("make_dirs", path))
        parts = [p for p in path.split("/") if p]
        current = ""
        for part in parts:
            current = f"{current}/{part}"
            if current not in self.nodes:
                self._create(current, b"")
        return path

    def create_ephemeral_sequential(self, path, data):
        self.calls.append(("create", path))
        parent = posixpath.dirname(path)
        if parent not in self.nodes:
            raise StoreError("create", path, KeyError(parent), no_node=True)
        seq = self.counters[parent]
        self.counters[parent] += 1
        created = f"{path}{seq:010d}"
        self._create(created, data)
        self.ephemeral.add(created)
        return created

    def get_children(self, path, watch=None):
        self.calls.append(("get_children", path))
        self._require(path, "get_children")
        if watch is not None:
            self.child_watches[path].add(watch)
        return self.children_of(path)

    def get_data(self, path, watch=None):
        self.calls.append(("get_data", path))
        self._require(path, "get_data")
        if watch is not None:
            self.data_watches[path].add(watch)
        return self.nodes[path]

    def set_data(self, path, data):
        self.calls.append(("set_data", path))
        self._require(path, "set_data")
        self.nodes[path] = data
        self.versions[path] += 1
        self._fire(self.data_watches, path, EventType.NODE_DATA_CHANGED)
        return {"version": self.versions[path], "dataLength": len(data)}

    # test helpers

    def add_node(self, path, data=b""):
        parent = posixpath.dirname(path)
        if parent not in self.nodes:
            self.make_dirs(parent)
        self._create(path, data)

    def delete(self, path):
        if path not in self.nodes:
            return
        for child in self.children_of(path):
            self.delete(f"{path.rstrip('/')}/{child}")
        del self.nodes[path]
        del self.versions[path]
        self.ephemeral.discard(path)
        self._fire(self.data_watches, path, EventType.NODE_DELETED)
        self._fire(self.child_watches, path, EventType.NODE_DELETED)
        self._fire(self.child_watches, posixpath.dirname(path), EventType.NODE_CHILDREN_CHANGED)

    def children_of(self, path):
        prefix = path.rstrip("/") + "/"
        return sorted(
            p[len(prefix):] for p in self.nodes
            if p.startswith(prefix) and "/" not in p[len(prefix):] and p != "/"
        )

    def _create(self, path, data):
        self.nodes[path] = data
        self.versions[path] = 0
        self._fire(self.child_watches, posixpath.dirname(path), EventType.NODE_CHILDREN_CHANGED)

    def _require(self, path, operation):
        if path not in self.nodes:
            raise StoreError(operation, path, KeyError(path), no_node=True)

    def _fire(self, watches, path, event_type):
        for watch in watches.pop(path, set()):
            watch(WatchEvent(event_type, path))


@pytest.fixture
def store():
    store = InMemoryStore()
    store.make_dirs(BASE_PATH)
    store.calls.clear()
    return store


@pytest.fixture
def connection(store):
    connection = Connection(store, BASE_PATH)
    connection.open(liveness_poll_delay=None, start_engine=False)
    yield connection
    connection.close()


@pytest.fixture
def registry(connection):
    return ServiceRegistry(connection)


@pytest.fixture
def config_store(connection):
    return ConfigStore(connection)


@pytest.fixture
def service_params():
    return {
        "name": "service-name",
        "port": "4000",
        "protocol": "http",
        "api": "/api/v1",
        "ip": "localhost",
        "release": "1.1.0",
        "metadata": {
            "check": {
                "status": "/status",
                "health": "health",
                "interval": "30s",
                "user": "node",
                "tags": ["api"],
            }
        },
    }
