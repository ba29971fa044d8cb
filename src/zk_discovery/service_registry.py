"""Service registry backed by ephemeral ZooKeeper nodes"""

import logging
import random
from typing import Dict, Any, Optional, List, Union

from .connection import Connection
from .exceptions import NotFoundError, PreconditionError, ValidationError
from .records import (
    ServiceRegistration,
    decode_payload,
    encode_service_record,
    join_path,
    service_node_path,
)

logger = logging.getLogger(__name__)


class ServiceRegistry:
    """Register and discover service endpoints under a connection's base path"""

    def __init__(self, connection: Connection, rng: Optional[random.Random] = None):
        self.connection = connection
        self.rng = rng or random.Random()

    @property
    def base_path(self) -> str:
        return self.connection.base_path

    def register_service(self, name: str, port: Union[str, int], protocol: str,
                        api: str, ip: str, release: str,
                        metadata: Optional[Dict[str, Any]] = None) -> str:
        """Register a service endpoint as an ephemeral sequential node

        Args:
            name: Service name, the node is created under base_path/name
            port: Service port
            protocol: Communication protocol ('http' or 'https')
            api: Base api path of the service, e.g. '/api/v1'
            ip: IP address of the running service
            release: Service release
            metadata: Additional service metadata (health checks, tags, ...)

        Returns:
            str: Path of the service directory node
        """

        registration = ServiceRegistration(
            name=name,
            port=port,
            protocol=protocol,
            api=api,
            ip=ip,
            release=release,
            metadata=metadata or {}
        )
        return self.register(registration)

    def register(self, registration: ServiceRegistration) -> str:
        """Register a prepared ServiceRegistration, see register_service"""

        registration.validate()
        store = self.connection.store

        # The namespace is provisioned by an administrator, never here
        if not store.exists(self.base_path):
            raise PreconditionError(
                f"{self.base_path} not present at ZooKeeper instance, "
                f"Service can't get registered."
            )

        service_path = store.make_dirs(service_node_path(self.base_path, registration.name))
        created = store.create_ephemeral_sequential(
            join_path(service_path, registration.name),
            encode_service_record(registration)
        )
        logger.info("Service %s registered at %s (%s)",
                    registration.name, created, registration.endpoint)

        return service_path

    def get_service_endpoints(self, service_name: str) -> List[str]:
        """Get all endpoint nodes registered for a service

        Leaves a children watch on the service node.

        Args:
            service_name: Service name

        Returns:
            list: Child node names of the service node
        """

        if not service_name:
            raise ValidationError("Service Name is Empty", field="service_name")
        return self._children(service_node_path(self.base_path, service_name))

    def get_random_service_endpoint(self, endpoints: List[str],
                                    service_name: str) -> Dict[str, Any]:
        """Pick one endpoint node at random and read its record

        Args:
            endpoints: Endpoint node names, as returned by get_service_endpoints
            service_name: Service name

        Returns:
            dict: Record with 'endpoint' and 'metadata'
        """

        if not endpoints:
            raise NotFoundError(f"No endpoints to choose from for '{service_name}'")

        chosen = endpoints[self.rng.randrange(len(endpoints))]
        return self.get_service(join_path(self.base_path, service_name, chosen))

    def get_service(self, path: str) -> Any:
        """Read the record stored at an endpoint node

        Leaves a data watch on the node. Payloads that are not JSON come
        back as text.

        Args:
            path: Full path of the endpoint node

        Returns:
            The decoded record
        """

        if not path:
            raise ValidationError("Empty service path string", field="path")
        return decode_payload(self.connection.engine.watch_data(path))

    def get_all_children(self) -> List[str]:
        """Get the names of all services registered under the base path

        Returns:
            list: Service names
        """

        return self._children(self.base_path)

    def _children(self, path: str) -> List[str]:
        children = self.connection.engine.watch_children(path)
        if len(children) < 1:
            raise NotFoundError(f"microservice handler not present at {path}")
        return children
