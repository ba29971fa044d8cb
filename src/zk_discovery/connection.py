"""Connection handle tying a store session to its watch engine and monitor"""

import logging
import os
import signal
from typing import Any, Callable, Optional, Union

from .events import EventBus, Signal, Topic
from .exceptions import PreconditionError, StoreError, ValidationError
from .liveness import SessionMonitor
from .store import ConnectionState, CoordinationStore, KazooStore
from .watcher import WatchEngine

logger = logging.getLogger(__name__)


class Connection:
    """One session with the coordination store.

    Owns the base path under which every service and config node lives, the
    event bus subscribers register on, the watch re-arming engine and the
    session monitor.
    """

    def __init__(self, store: CoordinationStore, base_path: str,
                 bus: Optional[EventBus] = None):
        if not base_path:
            raise ValidationError("Empty basePath string", field="base_path")
        self.store = store
        self.base_path = base_path
        self.bus = bus or EventBus()
        self.engine = WatchEngine(store, self.bus)
        self.monitor = SessionMonitor(store, self.bus)
        self.closed = False

    def open(self, liveness_poll_delay: Optional[float] = 5.0,
             start_engine: bool = True) -> "Connection":
        """Start the session and check that the base path is provisioned"""
        self.store.start()
        self.monitor.attach()

        try:
            present = self.store.exists(self.base_path)
        except StoreError:
            self._stop_store()
            raise
        if not present:
            self._stop_store()
            raise PreconditionError(
                f"{self.base_path} not present at ZooKeeper instance, "
                f"Service can't get registered."
            )

        if liveness_poll_delay is not None:
            self.monitor.schedule_poll(liveness_poll_delay)
        if start_engine:
            self.engine.start()
        logger.info("Connection ready with base path %s", self.base_path)
        return self

    def subscribe(self, topic: Union[Topic, str], handler: Callable[[Any], None]) -> None:
        self.bus.subscribe(topic, handler)

    def unsubscribe(self, topic: Union[Topic, str], handler: Callable[[Any], None]) -> bool:
        return self.bus.unsubscribe(topic, handler)

    @property
    def state(self) -> ConnectionState:
        return self.monitor.state

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        # Stop the monitor first so a deliberate close is not a session loss
        self.monitor.stop()
        try:
            self.engine.stop()
        finally:
            self.store.stop()
        logger.info("Connection to %s closed", self.base_path)

    def _stop_store(self) -> None:
        self.closed = True
        self.monitor.stop()
        self.store.stop()

    def __enter__(self) -> "Connection":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


def terminate_process(state: ConnectionState) -> None:
    """Session-lost handler that asks the current process to stop"""
    logger.warning("Zookeeper not found (%s), stopping service", state.value)
    os.kill(os.getpid(), signal.SIGTERM)


def connect(connection_url: str, base_path: str, session_timeout: float = 10.0,
            connect_timeout: float = 15.0, connection_retries: int = 1,
            retry_delay: float = 1.0, liveness_poll_delay: Optional[float] = 5.0,
            exit_on_session_lost: bool = False) -> Connection:
    """Open a kazoo backed connection.

    Raises ValidationError for empty arguments, StoreError if the session
    cannot be established and PreconditionError if ``base_path`` has not
    been provisioned.
    """
    if not connection_url:
        raise ValidationError("Empty connectionUrl string", field="connection_url")
    if not base_path:
        raise ValidationError("Empty basePath string", field="base_path")

    store = KazooStore(
        connection_url,
        session_timeout=session_timeout,
        connect_timeout=connect_timeout,
        connection_retries=connection_retries,
        retry_delay=retry_delay,
    )
    connection = Connection(store, base_path)
    if exit_on_session_lost:
        connection.subscribe(Signal.SESSION_LOST, terminate_process)
    return connection.open(liveness_poll_delay=liveness_poll_delay)
