"""Streaming stack (transport/connection/supervisor) for score telemetry."""

from scorestream.network.connection import ConnectionClient, ConnectionState
from scorestream.network.correlator import MessageCorrelator
from scorestream.network.supervisor import ReconnectState, ReconnectSupervisor
from scorestream.network.transport import (
    BaseTransport,
    CloseCode,
    MemoryTransport,
    TransportClosed,
    TransportError,
    WebSocketTransport,
)

__all__ = [
    "ConnectionClient",
    "ConnectionState",
    "MessageCorrelator",
    "ReconnectState",
    "ReconnectSupervisor",
    "BaseTransport",
    "CloseCode",
    "MemoryTransport",
    "TransportClosed",
    "TransportError",
    "WebSocketTransport",
]
