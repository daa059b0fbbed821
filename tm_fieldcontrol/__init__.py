"""Match control for VEX Tournament Manager field sets.

Connects to a Tournament Manager server, mirrors the state of one field set
and sends field control commands over either protocol generation.
"""

__version__ = "0.1.0"

from .binary import BinaryFieldControlClient
from .client import ConnectionState, FieldControlClient
from .config import (
    ConnectionCredentials,
    FieldControlConfig,
    ProtocolGeneration,
    config_from_mapping,
    load_config,
)
from .engine import FieldControlEngine, create_client
from .errors import (
    AuthError,
    ConfigError,
    ConnectError,
    ConnectTimeout,
    FieldControlError,
    HandshakeError,
    ProtocolError,
)
from .legacy import LegacyFieldControlClient
from .models import CommandResult, MatchRound, MatchSnapshot, TimingPhase
from .supervisor import ReconnectSupervisor

__all__ = [
    "AuthError",
    "BinaryFieldControlClient",
    "CommandResult",
    "ConfigError",
    "ConnectError",
    "ConnectTimeout",
    "ConnectionCredentials",
    "ConnectionState",
    "FieldControlClient",
    "FieldControlConfig",
    "FieldControlEngine",
    "FieldControlError",
    "HandshakeError",
    "LegacyFieldControlClient",
    "MatchRound",
    "MatchSnapshot",
    "ProtocolError",
    "ProtocolGeneration",
    "ReconnectSupervisor",
    "TimingPhase",
    "__version__",
    "config_from_mapping",
    "create_client",
    "load_config",
]
