"""Coordination store adapter.

``CoordinationStore`` is the small operation set the discovery client needs
from a ZooKeeper-like store. ``KazooStore`` implements it with kazoo.
"""

import logging
import threading
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from kazoo.client import KazooClient
from kazoo.exceptions import KazooException, NoNodeError
from kazoo.handlers.threading import KazooTimeoutError
from kazoo.protocol.states import EventType as KazooEventType
from kazoo.protocol.states import KazooState, KeeperState

from .events import EventType, WatchEvent
from .exceptions import StoreError

logger = logging.getLogger(__name__)

WatchCallback = Callable[[WatchEvent], None]
StateCallback = Callable[["ConnectionState"], None]


class ConnectionState(Enum):
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"
    AUTH_FAILED = "auth-failed"
    EXPIRED = "expired"

    @property
    def is_lost(self) -> bool:
        return self is not ConnectionState.CONNECTED


class CoordinationStore(ABC):
    """Operations consumed from the coordination store"""

    @abstractmethod
    def start(self) -> None:
        """Open the session"""

    @abstractmethod
    def stop(self) -> None:
        """Close the session"""

    @abstractmethod
    def exists(self, path: str) -> bool:
        pass

    @abstractmethod
    def make_dirs(self, path: str) -> str:
        """Create ``path`` and any missing parents; return ``path``"""

    @abstractmethod
    def create_ephemeral_sequential(self, path: str, data: bytes) -> str:
        """Create a session-scoped node with a store-assigned suffix"""

    @abstractmethod
    def get_children(self, path: str, watch: Optional[WatchCallback] = None) -> List[str]:
        pass

    @abstractmethod
    def get_data(self, path: str, watch: Optional[WatchCallback] = None) -> bytes:
        pass

    @abstractmethod
    def set_data(self, path: str, data: bytes) -> Dict[str, Any]:
        """Write ``data`` and return the node's stat metadata"""

    @abstractmethod
    def connection_state(self) -> ConnectionState:
        pass

    @abstractmethod
    def add_state_listener(self, callback: StateCallback) -> None:
        pass


_EVENT_TYPES = {
    KazooEventType.CREATED: EventType.NODE_CREATED,
    KazooEventType.DELETED: EventType.NODE_DELETED,
    KazooEventType.CHANGED: EventType.NODE_DATA_CHANGED,
    KazooEventType.CHILD: EventType.NODE_CHILDREN_CHANGED,
}


class KazooStore(CoordinationStore):
    """CoordinationStore backed by a kazoo ``KazooClient``"""

    def __init__(self, hosts: str, session_timeout: float = 10.0,
                 connect_timeout: float = 15.0, connection_retries: int = 1,
                 retry_delay: float = 1.0, client: Optional[KazooClient] = None):
        self.hosts = hosts
        self.connect_timeout = connect_timeout
        self.client = client or KazooClient(
            hosts=hosts,
            timeout=session_timeout,
            connection_retry={"max_tries": connection_retries, "delay": retry_delay},
        )
        # kazoo keeps watchers in per-path sets; reusing one wrapper per
        # callback keeps repeated arms from the same callback deduplicated.
        self._watch_wrappers: Dict[WatchCallback, Callable[[Any], None]] = {}
        self._wrappers_lock = threading.Lock()

    def start(self) -> None:
        try:
            self.client.start(timeout=self.connect_timeout)
        except (KazooException, KazooTimeoutError) as e:
            raise StoreError("connect", self.hosts, e) from e
        logger.info("Connected to ZooKeeper at %s", self.hosts)

    def stop(self) -> None:
        try:
            self.client.stop()
            self.client.close()
        except KazooException as e:
            raise StoreError("close", self.hosts, e) from e

    def exists(self, path: str) -> bool:
        stat = self._call("exists", path, self.client.exists, path)
        return stat is not None

    def make_dirs(self, path: str) -> str:
        self._call("make_dirs", path, self.client.ensure_path, path)
        return path

    def create_ephemeral_sequential(self, path: str, data: bytes) -> str:
        return self._call("create", path, self.client.create, path, data,
                          ephemeral=True, sequence=True)

    def get_children(self, path: str, watch: Optional[WatchCallback] = None) -> List[str]:
        return self._call("get_children", path, self.client.get_children, path,
                          watch=self._wrap(watch))

    def get_data(self, path: str, watch: Optional[WatchCallback] = None) -> bytes:
        data, _stat = self._call("get_data", path, self.client.get, path,
                                 watch=self._wrap(watch))
        return data

    def set_data(self, path: str, data: bytes) -> Dict[str, Any]:
        stat = self._call("set_data", path, self.client.set, path, data)
        return dict(stat._asdict())

    def connection_state(self) -> ConnectionState:
        return self._translate_state(self.client.state)

    def add_state_listener(self, callback: StateCallback) -> None:
        def listener(state):
            callback(self._translate_state(state))
            # returning None keeps the listener registered

        self.client.add_listener(listener)

    def _translate_state(self, state) -> ConnectionState:
        if state == KazooState.CONNECTED:
            return ConnectionState.CONNECTED
        if state == KazooState.LOST:
            keeper_state = self.client.client_state
            if keeper_state == KeeperState.AUTH_FAILED:
                return ConnectionState.AUTH_FAILED
            if keeper_state == KeeperState.EXPIRED_SESSION:
                return ConnectionState.EXPIRED
        return ConnectionState.DISCONNECTED

    def _wrap(self, watch: Optional[WatchCallback]):
        if watch is None:
            return None
        with self._wrappers_lock:
            wrapper = self._watch_wrappers.get(watch)
            if wrapper is None:
                def wrapper(event, _watch=watch):
                    event_type = _EVENT_TYPES.get(event.type)
                    if event_type is None:
                        # session events carry no path; the state listener covers them
                        logger.debug("Ignoring session watch event %s", event)
                        return
                    _watch(WatchEvent(event_type, event.path))

                self._watch_wrappers[watch] = wrapper
        return wrapper

    def _call(self, operation: str, path: str, func, *args, **kwargs):
        try:
            return func(*args, **kwargs)
        except NoNodeError as e:
            raise StoreError(operation, path, e, no_node=True) from e
        except (KazooException, KazooTimeoutError) as e:
            raise StoreError(operation, path, e) from e
