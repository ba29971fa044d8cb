"""Typed watch events and a topic based publish/subscribe bus"""

import logging
import threading
from collections import defaultdict
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Union

from .exceptions import ValidationError

logger = logging.getLogger(__name__)


class EventType(Enum):
    """Kinds of watch notifications delivered by the store"""
    NODE_CREATED = "NODE_CREATED"
    NODE_DELETED = "NODE_DELETED"
    NODE_DATA_CHANGED = "NODE_DATA_CHANGED"
    NODE_CHILDREN_CHANGED = "NODE_CHILDREN_CHANGED"


class Signal(Enum):
    """Client-level signals that are not tied to a single watch"""
    SESSION_LOST = "session-lost"
    WATCH_LOST = "watch-lost"


Topic = Union[EventType, Signal]


@dataclass(frozen=True)
class WatchEvent:
    """A single watch fire"""
    type: EventType
    path: str


def resolve_topic(topic: Union[Topic, str]) -> Topic:
    """Accept an enum member or its string value"""
    if isinstance(topic, (EventType, Signal)):
        return topic
    for enum_cls in (EventType, Signal):
        try:
            return enum_cls(topic)
        except ValueError:
            continue
    raise ValidationError(f"Unknown event topic '{topic}'", field="topic")


class EventBus:
    """Fan out events to the handlers registered for their topic"""

    def __init__(self):
        self._lock = threading.Lock()
        self._handlers: Dict[Topic, List[Callable[[Any], None]]] = defaultdict(list)

    def subscribe(self, topic: Union[Topic, str], handler: Callable[[Any], None]) -> None:
        topic = resolve_topic(topic)
        with self._lock:
            self._handlers[topic].append(handler)

    def unsubscribe(self, topic: Union[Topic, str], handler: Callable[[Any], None]) -> bool:
        topic = resolve_topic(topic)
        with self._lock:
            handlers = self._handlers.get(topic, [])
            if handler in handlers:
                handlers.remove(handler)
                return True
        return False

    def handler_count(self, topic: Union[Topic, str]) -> int:
        topic = resolve_topic(topic)
        with self._lock:
            return len(self._handlers.get(topic, []))

    def publish(self, topic: Topic, payload: Any) -> int:
        """Call every handler of ``topic`` with ``payload``.

        A failing handler is logged and does not stop delivery to the rest.
        Returns the number of handlers called.
        """
        with self._lock:
            handlers = list(self._handlers.get(topic, []))

        for handler in handlers:
            try:
                handler(payload)
            except Exception:
                logger.exception("Error calling subscriber for %s", topic.value)

        return len(handlers)
