"""Configuration data stored in ZooKeeper nodes"""

import logging
from typing import Dict, Any

from .connection import Connection
from .exceptions import ValidationError
from .records import decode_config_payload, encode_config_record

logger = logging.getLogger(__name__)


class ConfigStore:
    """Get and set configuration payloads at arbitrary znode paths

    Values are stored as JSON wrapped in a ``{"config": value}`` envelope.
    """

    def __init__(self, connection: Connection):
        self.connection = connection

    def get_service_config_data(self, path: str) -> Any:
        """Load configuration from a node

        Leaves a data watch on the node, so later writes are published as
        NODE_DATA_CHANGED events.

        Args:
            path: Full znode path of the configuration

        Returns:
            The value that was stored. A payload without the config envelope
            is returned as decoded JSON, or as text when it is not JSON.
        """

        if not path:
            raise ValidationError("Empty config path string", field="path")

        return decode_config_payload(self.connection.engine.watch_data(path))

    def set_service_config_data(self, path: str, data: Any) -> Dict[str, Any]:
        """Save configuration to a node, creating the node if needed

        Args:
            path: Full znode path of the configuration
            data: Any JSON serialisable value

        Returns:
            dict: Stat metadata of the node after the write (version, mzxid, ...)
        """

        if not path:
            raise ValidationError("Empty config path string", field="path")

        payload = encode_config_record(data)
        store = self.connection.store
        store.make_dirs(path)
        stat = store.set_data(path, payload)
        logger.debug("Config written at %s (version %s)", path, stat.get("version"))

        return stat
