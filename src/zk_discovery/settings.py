"""Settings loading for the discovery client"""

import logging
import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

import yaml


LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
ENV_PREFIX = "ZK_DISCOVERY_"


@dataclass
class DiscoverySettings:
    connection_url: str = "localhost:2181"
    base_path: str = "/services/endpoints"

    # kazoo session and connection behaviour (seconds)
    session_timeout: float = 10.0
    connect_timeout: float = 15.0
    connection_retries: int = 1
    retry_delay: float = 1.0

    # One-shot liveness check after connect
    liveness_poll_delay: float = 5.0

    # Ask the process to stop when the session is lost
    exit_on_session_lost: bool = False

    log_level: str = "INFO"


def _coerce(value: str, default: Any) -> Any:
    if isinstance(default, bool):
        return value.strip().lower() in ("1", "true", "yes", "on")
    if isinstance(default, int):
        return int(value)
    if isinstance(default, float):
        return float(value)
    return value


def merge_env(settings: DiscoverySettings,
              environ: Optional[Mapping[str, str]] = None) -> DiscoverySettings:
    """Overlay ``ZK_DISCOVERY_*`` environment variables. Environment wins."""
    environ = os.environ if environ is None else environ
    for f in fields(DiscoverySettings):
        env_val = environ.get(ENV_PREFIX + f.name.upper())
        if env_val is not None:
            setattr(settings, f.name, _coerce(env_val, getattr(settings, f.name)))
    return settings


def load_settings(path: Optional[Union[str, Path]] = None,
                  environ: Optional[Mapping[str, str]] = None) -> DiscoverySettings:
    """Load settings from a YAML file (optional) plus environment overrides"""
    data: Dict[str, Any] = {}
    if path is not None:
        with open(Path(path)) as f:
            data = yaml.safe_load(f) or {}

    # Accept either a flat file or one nested under a "zookeeper" key
    if isinstance(data.get("zookeeper"), dict):
        data = data["zookeeper"]

    valid_fields = {f.name for f in fields(DiscoverySettings)}
    filtered = {k: v for k, v in data.items() if k in valid_fields}

    return merge_env(DiscoverySettings(**filtered), environ)


def configure_logging(level: Union[str, int] = "INFO") -> None:
    if isinstance(level, str):
        level = level.upper()
    logging.basicConfig(level=level, format=LOG_FORMAT)
