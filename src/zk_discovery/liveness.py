"""Session liveness monitor"""

import logging
import threading
from typing import Optional

from .events import EventBus, Signal
from .store import ConnectionState, CoordinationStore

logger = logging.getLogger(__name__)


class SessionMonitor:
    """Track the store session and signal its loss.

    State changes come only from the store's state listener. Entering
    ``disconnected``, ``auth-failed`` or ``expired`` publishes
    ``Signal.SESSION_LOST`` once; it is published again only after the
    session has been connected in between. A one-shot poll after connect
    catches a loss whose notification was missed.
    """

    def __init__(self, store: CoordinationStore, bus: EventBus):
        self.store = store
        self.bus = bus
        self.state = ConnectionState.CONNECTED
        self.lost_signals = 0
        self._signalled = False
        self._stopped = False
        self._lock = threading.Lock()
        self._timer: Optional[threading.Timer] = None

    def attach(self) -> None:
        self.store.add_state_listener(self.on_state_change)

    def on_state_change(self, state: ConnectionState) -> None:
        with self._lock:
            if self._stopped:
                return
            previous, self.state = self.state, state
            if state is ConnectionState.CONNECTED:
                self._signalled = False
            emit = state.is_lost and not self._signalled
            if emit:
                self._signalled = True
                self.lost_signals += 1

        if previous is not state:
            logger.info("ZooKeeper session state %s -> %s", previous.value, state.value)
        if emit:
            self._emit(state)

    def schedule_poll(self, delay: float) -> None:
        """Check the session once, ``delay`` seconds from now"""
        self.cancel_poll()
        self._timer = threading.Timer(delay, self.poll)
        self._timer.daemon = True
        self._timer.start()

    def cancel_poll(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def poll(self) -> None:
        state = self.store.connection_state()
        if state.is_lost:
            logger.warning("ZooKeeper not reachable at liveness check (%s)", state.value)
            self.on_state_change(state)

    def stop(self) -> None:
        with self._lock:
            self._stopped = True
        self.cancel_poll()

    def _emit(self, state: ConnectionState) -> None:
        logger.warning("ZooKeeper session lost (%s)", state.value)
        self.bus.publish(Signal.SESSION_LOST, state)
