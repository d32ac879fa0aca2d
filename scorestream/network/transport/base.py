"""Transport abstractions for the score streaming channel."""

from __future__ import annotations

import enum
from abc import ABC, abstractmethod


class CloseCode(enum.IntEnum):
    """WebSocket close codes (RFC 6455 §7.4.1)."""

    NORMAL = 1000
    GOING_AWAY = 1001
    PROTOCOL_ERROR = 1002
    UNSUPPORTED_DATA = 1003
    NO_STATUS = 1005
    ABNORMAL = 1006
    INVALID_PAYLOAD = 1007
    POLICY_VIOLATION = 1008
    MESSAGE_TOO_BIG = 1009
    INTERNAL_ERROR = 1011

    @classmethod
    def coerce(cls, value: int | None) -> int:
        """Map a raw close code to the enum when known, ABNORMAL when absent."""

        if value is None:
            return cls.ABNORMAL
        try:
            return cls(value)
        except ValueError:
            return value


class TransportError(RuntimeError):
    """Raised when the underlying socket fails."""


class TransportClosed(TransportError):
    """Raised by ``receive`` once the peer closed the channel."""

    def __init__(self, code: int, reason: str = "") -> None:
        super().__init__(f"Transport closed with code {code}{': ' + reason if reason else ''}")
        self.code = code
        self.reason = reason


class BaseTransport(ABC):
    """Abstract WebSocket-like transport carrying text frames."""

    @abstractmethod
    async def connect(self) -> None:
        ...

    @abstractmethod
    async def send(self, frame: str) -> None:
        ...

    @abstractmethod
    async def receive(self) -> str:
        ...

    @abstractmethod
    async def close(self, code: int = CloseCode.NORMAL) -> None:
        ...
