"""Main discovery client combining the service registry and config store"""

import logging
from typing import Dict, Any, Callable, Optional, List, Union

from .config_store import ConfigStore
from .connection import Connection, connect
from .events import Topic
from .service_registry import ServiceRegistry
from .settings import DiscoverySettings

logger = logging.getLogger(__name__)


class DiscoveryClient:
    """Service registration, discovery and configuration over one connection"""

    def __init__(self, connection: Connection, registry: Optional[ServiceRegistry] = None):
        self.connection = connection
        self.service_registry = registry or ServiceRegistry(connection)
        self.config_store = ConfigStore(connection)

    @classmethod
    def connect(cls, connection_url: str, base_path: str, **options) -> "DiscoveryClient":
        """Connect to a ZooKeeper ensemble

        Args:
            connection_url: Comma separated host:port pairs
            base_path: Base path of the platform's services in the tree
            **options: Passed to zk_discovery.connection.connect

        Returns:
            DiscoveryClient: Client bound to the new connection
        """
        return cls(connect(connection_url, base_path, **options))

    @classmethod
    def from_settings(cls, settings: DiscoverySettings) -> "DiscoveryClient":
        return cls.connect(
            settings.connection_url,
            settings.base_path,
            session_timeout=settings.session_timeout,
            connect_timeout=settings.connect_timeout,
            connection_retries=settings.connection_retries,
            retry_delay=settings.retry_delay,
            liveness_poll_delay=settings.liveness_poll_delay,
            exit_on_session_lost=settings.exit_on_session_lost,
        )

    @property
    def base_path(self) -> str:
        return self.connection.base_path

    # Events
    def subscribe(self, topic: Union[Topic, str], handler: Callable[[Any], None]) -> None:
        """Register a handler for a watch event type or a client signal"""
        self.connection.subscribe(topic, handler)

    def unsubscribe(self, topic: Union[Topic, str], handler: Callable[[Any], None]) -> bool:
        return self.connection.unsubscribe(topic, handler)

    # Service Registry Methods
    def register_service(self, name: str, port: Union[str, int], protocol: str,
                        api: str, ip: str, release: str,
                        metadata: Optional[Dict[str, Any]] = None) -> str:
        """Register a service endpoint in the registry"""
        return self.service_registry.register_service(
            name, port, protocol, api, ip, release, metadata
        )

    def get_service_endpoints(self, service_name: str) -> List[str]:
        """Get all endpoint nodes of a service"""
        return self.service_registry.get_service_endpoints(service_name)

    def get_random_service_endpoint(self, endpoints: List[str],
                                    service_name: str) -> Dict[str, Any]:
        """Get the record of a randomly chosen endpoint"""
        return self.service_registry.get_random_service_endpoint(endpoints, service_name)

    def get_service(self, path: str) -> Any:
        """Get the record stored at an endpoint node"""
        return self.service_registry.get_service(path)

    def get_all_children(self) -> List[str]:
        """Get all services registered under the base path"""
        return self.service_registry.get_all_children()

    def discover(self, service_name: str) -> Dict[str, Any]:
        """List a service's endpoints and return one of them at random"""
        endpoints = self.get_service_endpoints(service_name)
        return self.get_random_service_endpoint(endpoints, service_name)

    # Configuration Methods
    def get_service_config_data(self, path: str) -> Any:
        """Get configuration stored at a node"""
        return self.config_store.get_service_config_data(path)

    def set_service_config_data(self, path: str, data: Any) -> Dict[str, Any]:
        """Set configuration stored at a node"""
        return self.config_store.set_service_config_data(path, data)

    def close(self) -> None:
        self.connection.close()

    def __enter__(self) -> "DiscoveryClient":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
