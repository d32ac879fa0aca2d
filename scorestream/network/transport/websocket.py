"""WebSocket transport implementation."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional

import websockets
from websockets.exceptions import ConnectionClosed, WebSocketException

from scorestream.config import ClientSettings
from scorestream.network.transport.base import BaseTransport, CloseCode, TransportClosed, TransportError

LOGGER = logging.getLogger(__name__)


class WebSocketTransport(BaseTransport):
    """WebSocket-based score streaming transport."""

    def __init__(self, settings: ClientSettings) -> None:
        self._settings = settings
        self._ws: Optional[Any] = None

    async def connect(self) -> None:
        LOGGER.info("Connecting to score WebSocket at %s", self._settings.ws_url)
        try:
            self._ws = await websockets.connect(
                str(self._settings.ws_url),
                open_timeout=self._settings.request_timeout_seconds,
            )
        except (OSError, asyncio.TimeoutError, WebSocketException) as exc:
            raise TransportError(f"WebSocket handshake failed: {exc}") from exc

    async def send(self, frame: str) -> None:
        if not self._ws:
            raise TransportError("WebSocket transport not connected")
        LOGGER.debug("WebSocket send: %s", frame)
        try:
            await self._ws.send(frame)
        except ConnectionClosed as exc:
            raise TransportClosed(self._close_code(exc)) from exc

    async def receive(self) -> str:
        if not self._ws:
            raise TransportError("WebSocket transport not connected")
        try:
            raw = await self._ws.recv()
        except ConnectionClosed as exc:
            raise TransportClosed(self._close_code(exc), exc.rcvd.reason if exc.rcvd else "") from exc
        LOGGER.debug("WebSocket receive: %s", raw)
        if isinstance(raw, bytes):
            raw = raw.decode("utf-8")
        return raw

    async def close(self, code: int = CloseCode.NORMAL) -> None:
        if not self._ws:
            return
        wire_code = _sendable_close_code(code)
        LOGGER.info("Closing WebSocket transport (code=%s, sent=%s)", int(code), wire_code)
        ws = self._ws
        self._ws = None
        try:
            await ws.close(code=wire_code)
        finally:
            transport = getattr(ws, "transport", None)
            if transport is not None and not transport.is_closing():
                LOGGER.warning("Aborting WebSocket transport after unclean close")
                transport.abort()

    @staticmethod
    def _close_code(exc: ConnectionClosed) -> int:
        return CloseCode.coerce(exc.rcvd.code if exc.rcvd else None)


def _sendable_close_code(code: int) -> int:
    """Codes 1005, 1006 and 1015 are reserved for local reporting only."""

    code = int(code)
    if code == CloseCode.NO_STATUS:
        return int(CloseCode.NORMAL)
    if code in (1000, 1001, 1002, 1003) or 1007 <= code <= 1014 or 3000 <= code <= 4999:
        return code
    return int(CloseCode.INTERNAL_ERROR)
