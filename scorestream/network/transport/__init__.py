"""Transport implementations for the score streaming channel."""

from .base import BaseTransport, CloseCode, TransportClosed, TransportError
from .memory import MemoryTransport
from .websocket import WebSocketTransport

__all__ = [
    "BaseTransport",
    "CloseCode",
    "TransportClosed",
    "TransportError",
    "MemoryTransport",
    "WebSocketTransport",
]
