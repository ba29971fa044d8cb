"""Znode paths and JSON payloads for service and config records"""

import json
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Union

from .exceptions import ValidationError


REQUIRED_FIELDS = ("name", "port", "protocol", "api", "ip", "release")


@dataclass
class ServiceRegistration:
    """A producer's request to publish one endpoint of a service"""
    name: str
    port: Union[str, int]
    protocol: str
    api: str
    ip: str
    release: str
    metadata: Dict[str, Any] = field(default_factory=dict)

    def validate(self) -> None:
        """Raise ValidationError naming the first empty required field"""
        for name in REQUIRED_FIELDS:
            if not getattr(self, name):
                raise ValidationError(f"Empty service {name} string", field=name)

    @property
    def endpoint(self) -> str:
        return f"{self.protocol}://{self.ip}:{self.port}{self.api}"

    def to_dict(self) -> Dict[str, Any]:
        """Payload stored in the ephemeral node"""
        return {
            "endpoint": self.endpoint,
            "metadata": self.metadata if self.metadata is not None else {},
        }


def join_path(base: str, *parts: str) -> str:
    """Join znode path segments with single slashes"""
    path = base.rstrip("/")
    for part in parts:
        path = f"{path}/{part.strip('/')}"
    return path or "/"


def service_node_path(base_path: str, service_name: str) -> str:
    return join_path(base_path, service_name)


def encode_service_record(registration: ServiceRegistration) -> bytes:
    return json.dumps(registration.to_dict()).encode("utf-8")


def encode_config_record(data: Any) -> bytes:
    return json.dumps({"config": data}).encode("utf-8")


def decode_payload(raw: Optional[bytes]) -> Any:
    """Decode a stored payload.

    JSON payloads come back as Python values. Anything that is not valid
    JSON is returned as text, and bytes that are not UTF-8 are returned
    unchanged.
    """
    if raw is None:
        return None
    try:
        text = raw.decode("utf-8")
    except UnicodeDecodeError:
        return raw
    try:
        return json.loads(text)
    except ValueError:
        return text


def decode_config_payload(raw: Optional[bytes]) -> Any:
    """Decode a config payload and unwrap its ``config`` envelope"""
    value = decode_payload(raw)
    if isinstance(value, dict) and "config" in value:
        return value["config"]
    return value
