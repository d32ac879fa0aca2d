"""In-process transport for offline runs and tests."""

from __future__ import annotations

import asyncio
import logging
from typing import List, Optional, Union

from .base import BaseTransport, CloseCode, TransportClosed, TransportError

LOGGER = logging.getLogger(__name__)

_Item = Union[str, TransportClosed]


class MemoryTransport(BaseTransport):
    """Loopback transport: records sent frames and replays injected ones.

    Frames pushed with :meth:`feed` are returned by :meth:`receive`;
    :meth:`drop` simulates a peer-initiated close with the given code.
    """

    def __init__(self, settings=None, *, fail_connect: bool = False) -> None:
        self._settings = settings
        self.fail_connect = fail_connect
        self.connected = False
        self.sent: List[str] = []
        self.close_codes: List[int] = []
        self._inbound: asyncio.Queue[_Item] = asyncio.Queue()

    async def connect(self) -> None:
        LOGGER.debug("Memory transport connect()")
        if self.fail_connect:
            raise TransportError("Memory transport refused the connection")
        self.connected = True

    async def send(self, frame: str) -> None:
        if not self.connected:
            raise TransportError("Memory transport not connected")
        LOGGER.debug("Memory transport send(): %s", frame)
        self.sent.append(frame)

    async def receive(self) -> str:
        item = await self._inbound.get()
        if isinstance(item, TransportClosed):
            self.connected = False
            raise item
        return item

    async def close(self, code: int = CloseCode.NORMAL) -> None:
        LOGGER.debug("Memory transport close(%s)", int(code))
        self.connected = False
        self.close_codes.append(int(code))

    def feed(self, frame: str) -> None:
        self._inbound.put_nowait(frame)

    def drop(self, code: int = CloseCode.ABNORMAL, reason: Optional[str] = None) -> None:
        self._inbound.put_nowait(TransportClosed(code, reason or ""))
