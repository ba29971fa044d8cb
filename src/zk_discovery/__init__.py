"""Service discovery and configuration over ZooKeeper"""

from .client import DiscoveryClient
from .config_store import ConfigStore
from .connection import Connection, connect
from .events import EventBus, EventType, Signal, WatchEvent
from .exceptions import (
    DiscoveryError,
    NotFoundError,
    PreconditionError,
    StoreError,
    ValidationError,
)
from .service_registry import ServiceRegistry
from .settings import DiscoverySettings, configure_logging, load_settings
from .store import ConnectionState, CoordinationStore, KazooStore

__version__ = "0.2.0"
__all__ = [
    "DiscoveryClient",
    "ServiceRegistry",
    "ConfigStore",
    "Connection",
    "connect",
    "EventBus",
    "EventType",
    "Signal",
    "WatchEvent",
    "ConnectionState",
    "CoordinationStore",
    "KazooStore",
    "DiscoverySettings",
    "load_settings",
    "configure_logging",
    "DiscoveryError",
    "ValidationError",
    "PreconditionError",
    "NotFoundError",
    "StoreError",
]
