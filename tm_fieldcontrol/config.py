"""Connection configuration for a field-set control engine."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any

import yaml

from .errors import ConfigError

DEFAULT_RETRY_INTERVAL = 10.0
DEFAULT_CONNECT_TIMEOUT = 15.0
DEFAULT_PING_INTERVAL = 20


class ProtocolGeneration(Enum):
    """Wire protocol spoken by the server."""

    LEGACY = "legacy"
    BINARY = "binary"


@dataclass(frozen=True)
class ConnectionCredentials:
    """Where to connect and how to prove who we are.

    Attributes:
        address: Server host, optionally with ``:port``.
        secret: Admin password (legacy) or API key (binary).
        fieldset_id: Field set to control.
    """

    address: str
    secret: str
    fieldset_id: int

    def __repr__(self) -> str:
        return (
            f"ConnectionCredentials(address={self.address!r}, secret='***', "
            f"fieldset_id={self.fieldset_id})"
        )


@dataclass(frozen=True)
class FieldControlConfig:
    """Complete engine configuration."""

    credentials: ConnectionCredentials
    protocol: ProtocolGeneration = ProtocolGeneration.BINARY
    retry_interval: float = DEFAULT_RETRY_INTERVAL
    connect_timeout: float = DEFAULT_CONNECT_TIMEOUT
    ping_interval: int | None = DEFAULT_PING_INTERVAL


def _require(data: Mapping[str, Any], key: str) -> Any:
    value = data.get(key)
    if value is None or value == "":
        raise ConfigError(f"Missing required setting: {key}")
    return value


def _secret_from(data: Mapping[str, Any]) -> str:
    for key in ("secret", "password", "api_key", "tm_key"):
        value = data.get(key)
        if value:
            return str(value)
    raise ConfigError("Missing required setting: password or api_key")


def config_from_mapping(data: Mapping[str, Any]) -> FieldControlConfig:
    """Build a config from a settings mapping.

    Accepts the host's global settings keys (``address``, ``password`` or
    ``tm_key``, ``fieldset``) as well as the YAML file keys.

    Raises:
        ConfigError: If a required key is missing or a value is malformed.
    """
    protocol_raw = str(data.get("protocol", ProtocolGeneration.BINARY.value))
    try:
        protocol = ProtocolGeneration(protocol_raw.lower())
    except ValueError as err:
        raise ConfigError(f"Unknown protocol generation: {protocol_raw}") from err

    try:
        fieldset_id = int(_require(data, "fieldset"))
        retry_interval = float(data.get("retry_interval", DEFAULT_RETRY_INTERVAL))
        connect_timeout = float(data.get("connect_timeout", DEFAULT_CONNECT_TIMEOUT))
        ping_raw = data.get("ping_interval", DEFAULT_PING_INTERVAL)
        ping_interval = None if ping_raw is None else int(ping_raw)
    except (TypeError, ValueError) as err:
        raise ConfigError(f"Invalid setting value: {err}") from err

    if retry_interval <= 0:
        raise ConfigError("retry_interval must be positive")

    credentials = ConnectionCredentials(
        address=str(_require(data, "address")),
        secret=_secret_from(data),
        fieldset_id=fieldset_id,
    )
    return FieldControlConfig(
        credentials=credentials,
        protocol=protocol,
        retry_interval=retry_interval,
        connect_timeout=connect_timeout,
        ping_interval=ping_interval,
    )


def load_config(path: Path) -> FieldControlConfig:
    """Load engine configuration from a YAML file.

    Raises:
        ConfigError: If the file is missing, unreadable, or incomplete.
    """
    if not path.exists():
        raise ConfigError(f"File not found: {path}")
    try:
        with path.open() as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as err:
        raise ConfigError(f"Invalid YAML in {path}: {err}") from err
    if not isinstance(data, dict):
        raise ConfigError(f"Expected a mapping in {path}")
    return config_from_mapping(data)
