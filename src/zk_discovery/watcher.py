"""Watch re-arming engine.

ZooKeeper watches fire once. Every fired watch is queued here, published to
subscribers and then re-armed with the read that matches its kind, so that a
path stays observed for as long as it exists.
"""

import logging
import queue
import threading
from typing import List, Optional, Set, Tuple

from .events import EventBus, EventType, Signal, WatchEvent
from .exceptions import StoreError
from .store import CoordinationStore

logger = logging.getLogger(__name__)

CHILDREN = "children"
DATA = "data"

# Which read re-arms a fired watch. NODE_CREATED is observed only.
REARM_KIND = {
    EventType.NODE_CHILDREN_CHANGED: CHILDREN,
    EventType.NODE_DELETED: DATA,
    EventType.NODE_DATA_CHANGED: DATA,
}


class WatchEngine:
    """Consume watch fires, republish them and re-arm the watch"""

    def __init__(self, store: CoordinationStore, bus: EventBus, poll_interval: float = 0.5):
        self.store = store
        self.bus = bus
        self.poll_interval = poll_interval
        self._queue: "queue.Queue[Tuple[str, WatchEvent]]" = queue.Queue()
        self._armed: Set[Tuple[str, str]] = set()
        self._armed_lock = threading.Lock()
        self._thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()

    # Reads that carry a watch

    def watch_children(self, path: str) -> List[str]:
        """Read the children of ``path`` and leave a children watch on it"""
        self._mark_armed(CHILDREN, path)
        try:
            return self.store.get_children(path, watch=self.child_watcher)
        except StoreError:
            self._clear_armed(CHILDREN, path)
            raise

    def watch_data(self, path: str) -> bytes:
        """Read the data of ``path`` and leave a data watch on it"""
        self._mark_armed(DATA, path)
        try:
            return self.store.get_data(path, watch=self.watcher)
        except StoreError:
            self._clear_armed(DATA, path)
            raise

    def is_armed(self, kind: str, path: str) -> bool:
        with self._armed_lock:
            return (kind, path) in self._armed

    # Watch delivery

    def watcher(self, event: WatchEvent) -> None:
        """Data watch callback handed to the store; only enqueues"""
        self._queue.put((DATA, event))

    def child_watcher(self, event: WatchEvent) -> None:
        """Children watch callback handed to the store; only enqueues"""
        self._queue.put((CHILDREN, event))

    def process(self, event: WatchEvent, source: Optional[str] = None) -> None:
        """Publish ``event`` then issue exactly one re-arming read

        ``source`` is the kind of watch that fired. A deleted node fires both
        its data and its children watch; only the first of the two is
        delivered.
        """
        kind = REARM_KIND.get(event.type)
        if event.type is EventType.NODE_DELETED and source is not None:
            if not self._consume_deleted(source, event.path):
                logger.debug("Duplicate NODE_DELETED for %s dropped", event.path)
                return
        elif kind is not None:
            self._clear_armed(kind, event.path)

        self.bus.publish(event.type, event)

        if kind is None:
            return
        try:
            if kind == CHILDREN:
                self.watch_children(event.path)
            else:
                self.watch_data(event.path)
        except StoreError as e:
            logger.warning("Watch on %s not re-armed after %s: %s",
                           event.path, event.type.value, e)
            self.bus.publish(Signal.WATCH_LOST, event)

    def process_pending(self) -> int:
        """Drain the queue in the calling thread; returns events processed"""
        count = 0
        while True:
            try:
                source, event = self._queue.get_nowait()
            except queue.Empty:
                return count
            try:
                self.process(event, source)
            finally:
                self._queue.task_done()
            count += 1

    def start(self) -> None:
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run, name="zk-watch-engine", daemon=True)
        self._thread.start()

    def stop(self, timeout: Optional[float] = 5.0) -> None:
        self._stop_event.set()
        thread, self._thread = self._thread, None
        # A subscriber may stop the engine from the engine thread itself
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout)

    def _run(self) -> None:
        while not self._stop_event.is_set():
            try:
                source, event = self._queue.get(timeout=self.poll_interval)
            except queue.Empty:
                continue
            try:
                self.process(event, source)
            except Exception:
                logger.exception("Error processing watch event %s", event)
            finally:
                self._queue.task_done()

    def _mark_armed(self, kind: str, path: str) -> None:
        with self._armed_lock:
            if (kind, path) in self._armed:
                logger.debug("%s watch already armed on %s", kind, path)
            self._armed.add((kind, path))

    def _consume_deleted(self, source: str, path: str) -> bool:
        with self._armed_lock:
            if (source, path) not in self._armed:
                return False
            self._armed.discard((CHILDREN, path))
            self._armed.discard((DATA, path))
            return True

    def _clear_armed(self, kind: str, path: str) -> None:
        with self._armed_lock:
            self._armed.discard((kind, path))
