"""Single logical streaming connection with a cooperative inbound pump."""

from __future__ import annotations

import asyncio
import contextlib
import enum
import inspect
import logging
from collections import deque
from typing import Any, Awaitable, Callable, Deque, Optional

from scorestream.network.transport.base import BaseTransport, CloseCode, TransportClosed

LOGGER = logging.getLogger(__name__)

Callback = Callable[..., Awaitable[None] | None]


class ConnectionState(enum.Enum):
    CLOSED = "CLOSED"
    CONNECTING = "CONNECTING"
    OPEN = "OPEN"
    CLOSING = "CLOSING"


class ConnectionClient:
    """Owns one transport through ``CLOSED → CONNECTING → OPEN → CLOSING → CLOSED``.

    Inbound frames are buffered by a reader task and only handed to
    ``on_message`` when :meth:`dispatch_queue` runs, so listeners never
    observe a frame between two driver ticks. Outbound frames are queued and
    written by a single writer task in send order; nothing is kept across a
    close.

    Misuse (``open`` while not closed, ``send`` while not open) is logged and
    ignored. Transport failures are reported through ``on_error``; the client
    never retries on its own.
    """

    def __init__(
        self,
        url: str,
        transport_factory: Callable[[], BaseTransport],
        *,
        on_open: Optional[Callable[[], Awaitable[None] | None]] = None,
        on_message: Optional[Callable[[str], Any]] = None,
        on_error: Optional[Callable[[str], Awaitable[None] | None]] = None,
        on_close: Optional[Callable[[int], Awaitable[None] | None]] = None,
    ) -> None:
        self.url = url
        self._transport_factory = transport_factory
        self._transport: Optional[BaseTransport] = None
        self._state = ConnectionState.CLOSED
        self._inbound: Deque[str] = deque()
        self._outbound: Deque[str] = deque()
        self._reader_task: Optional[asyncio.Task[None]] = None
        self._writer_task: Optional[asyncio.Task[None]] = None
        self._on_open = on_open
        self._on_message = on_message
        self._on_error = on_error
        self._on_close = on_close
        self._disposed = False

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def is_open(self) -> bool:
        return self._state is ConnectionState.OPEN

    def pending_inbound(self) -> int:
        return len(self._inbound)

    async def open(self) -> bool:
        """Perform the handshake; return whether the connection reached OPEN."""

        if self._disposed:
            LOGGER.warning("Ignoring open() on a disposed connection to %s", self.url)
            return False
        if self._state is not ConnectionState.CLOSED:
            LOGGER.warning("Connection to %s already %s; ignoring open()", self.url, self._state.value)
            return False

        self._state = ConnectionState.CONNECTING
        transport = self._transport_factory()
        self._transport = transport
        LOGGER.info("Connecting to %s", self.url)
        try:
            await transport.connect()
        except asyncio.CancelledError:
            if self._transport is transport:
                self._state = ConnectionState.CLOSED
                self._transport = None
            raise
        except Exception as exc:  # noqa: BLE001
            if self._transport is transport:
                self._transport = None
                if self._state is ConnectionState.CONNECTING:
                    self._state = ConnectionState.CLOSED
            elif self._transport is not None:
                # superseded by close() and a newer open()
                LOGGER.info("Stale handshake with %s failed: %s", self.url, exc)
                return False
            LOGGER.warning("Handshake with %s failed: %s", self.url, exc)
            await self._emit(self._on_error, f"Connection failed: {exc}")
            return False

        if self._state is not ConnectionState.CONNECTING or self._transport is not transport:
            # close() ran while the handshake was in flight
            with contextlib.suppress(Exception):
                await transport.close(CloseCode.NORMAL)
            return False

        self._state = ConnectionState.OPEN
        self._reader_task = asyncio.create_task(self._read_loop(transport), name="stream-reader")
        LOGGER.info("Connected to %s", self.url)
        await self._emit(self._on_open)
        return True

    def send(self, frame: str) -> None:
        """Queue ``frame`` for transmission; fire-and-forget."""

        if self._state is not ConnectionState.OPEN:
            LOGGER.warning("Cannot send frame - connection is %s", self._state.value)
            return
        self._outbound.append(frame)
        if self._writer_task is None or self._writer_task.done():
            self._writer_task = asyncio.create_task(self._write_loop(), name="stream-writer")

    async def drain(self) -> None:
        """Wait until every queued outbound frame was handed to the transport."""

        task = self._writer_task
        if task and not task.done():
            with contextlib.suppress(asyncio.CancelledError):
                await task

    def dispatch_queue(self) -> int:
        """Deliver buffered inbound frames to ``on_message``; returns the count."""

        if self._state is not ConnectionState.OPEN:
            return 0
        delivered = 0
        for _ in range(len(self._inbound)):
            raw = self._inbound.popleft()
            delivered += 1
            if self._on_message is None:
                continue
            try:
                result = self._on_message(raw)
                if inspect.isawaitable(result):
                    task = asyncio.ensure_future(result)
                    task.add_done_callback(_log_listener_failure)
            except Exception:  # noqa: BLE001
                LOGGER.exception("Message listener failed")
        return delivered

    async def close(self, code: int = CloseCode.NORMAL) -> None:
        if self._state in (ConnectionState.CLOSED, ConnectionState.CLOSING):
            return
        LOGGER.info("Closing connection to %s (code=%s)", self.url, int(code))
        self._state = ConnectionState.CLOSING
        await self._teardown(code, close_transport=True)

    async def dispose(self) -> None:
        """Force-close if needed and release the transport."""

        if self._disposed:
            return
        if self._state is not ConnectionState.CLOSED:
            await self.close(CloseCode.NORMAL)
        self._disposed = True
        self._transport = None
        self._on_open = self._on_message = self._on_error = self._on_close = None

    async def _teardown(self, code: int, *, close_transport: bool) -> None:
        transport = self._transport
        self._transport = None
        self._outbound.clear()
        self._inbound.clear()
        current = asyncio.current_task()
        for task in (self._writer_task, self._reader_task):
            if task and task is not current and not task.done():
                task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await task
        self._writer_task = None
        self._reader_task = None
        if transport is not None and close_transport:
            try:
                await transport.close(code)
            except Exception as exc:  # noqa: BLE001
                LOGGER.warning("Error during close of %s: %s", self.url, exc)
                await self._emit(self._on_error, f"Error during close: {exc}")
        self._state = ConnectionState.CLOSED
        LOGGER.info("Connection to %s closed with code %s", self.url, int(code))
        await self._emit(self._on_close, code)

    async def _read_loop(self, transport: BaseTransport) -> None:
        while self._state is ConnectionState.OPEN:
            try:
                raw = await transport.receive()
            except asyncio.CancelledError:
                raise
            except TransportClosed as exc:
                await self._remote_closed(CloseCode.coerce(exc.code))
                return
            except Exception as exc:  # noqa: BLE001
                LOGGER.warning("Receive failed on %s: %s", self.url, exc)
                await self._emit(self._on_error, f"Receive failed: {exc}")
                await self._remote_closed(CloseCode.ABNORMAL)
                return
            self._inbound.append(raw)

    async def _write_loop(self) -> None:
        while self._outbound and self._state is ConnectionState.OPEN:
            frame = self._outbound.popleft()
            transport = self._transport
            if transport is None:
                return
            try:
                await transport.send(frame)
            except asyncio.CancelledError:
                raise
            except Exception as exc:  # noqa: BLE001
                LOGGER.error("Failed to send frame to %s: %s", self.url, exc)
                await self._emit(self._on_error, f"Failed to send frame: {exc}")

    async def _remote_closed(self, code: int) -> None:
        if self._state is not ConnectionState.OPEN:
            return
        self._state = ConnectionState.CLOSING
        await self._teardown(code, close_transport=True)

    async def _emit(self, callback: Optional[Callback], *args: Any) -> None:
        if callback is None:
            return
        try:
            result = callback(*args)
            if inspect.isawaitable(result):
                await result
        except asyncio.CancelledError:
            raise
        except Exception:  # noqa: BLE001
            LOGGER.exception("Connection callback failed: %s", callback)


def _log_listener_failure(task: asyncio.Future) -> None:
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        LOGGER.error("Async message listener failed", exc_info=exc)
