"""Bounded automatic reconnection around :class:`ConnectionClient`."""

from __future__ import annotations

import asyncio
import contextlib
import inspect
import logging
from dataclasses import dataclass
from functools import partial
from typing import Any, Awaitable, Callable, Optional

from scorestream.config import ClientSettings
from scorestream.network.connection import ConnectionClient, ConnectionState
from scorestream.network.transport.base import BaseTransport, CloseCode

LOGGER = logging.getLogger(__name__)


@dataclass
class ReconnectState:
    """Recovery attempts made since the last successful open."""

    max_attempts: int
    delay: float
    attempt_count: int = 0

    @property
    def exhausted(self) -> bool:
        return self.attempt_count >= self.max_attempts

    def reset(self) -> None:
        self.attempt_count = 0


class ReconnectSupervisor:
    """Keeps one streaming connection alive with a fixed delay and attempt cap.

    Every open attempt uses a fresh :class:`ConnectionClient`; events from a
    replaced client are ignored. A close with a code other than NORMAL that
    the supervisor did not request schedules one reconnect after ``delay``
    while attempts remain. A failed handshake counts as such a close. Once
    the cap is reached ``on_exhausted`` fires and only a manual :meth:`open`
    resumes.
    """

    def __init__(
        self,
        settings: ClientSettings,
        transport_factory: Callable[[ClientSettings], BaseTransport],
        *,
        on_open: Optional[Callable[[], Awaitable[None] | None]] = None,
        on_message: Optional[Callable[[str], Any]] = None,
        on_error: Optional[Callable[[str], Awaitable[None] | None]] = None,
        on_close: Optional[Callable[[int], Awaitable[None] | None]] = None,
        on_exhausted: Optional[Callable[[str], Awaitable[None] | None]] = None,
        on_status: Optional[Callable[[bool], Awaitable[None] | None]] = None,
        delay: float | None = None,
        max_attempts: int | None = None,
    ) -> None:
        self._settings = settings
        self._transport_factory = transport_factory
        self._url = str(settings.ws_url)
        self.reconnect = ReconnectState(
            max_attempts=int(max_attempts if max_attempts is not None else settings.reconnect_max_attempts),
            delay=float(delay if delay is not None else settings.reconnect_delay_seconds),
        )
        self._on_open = on_open
        self._on_message = on_message
        self._on_error = on_error
        self._on_close = on_close
        self._on_exhausted = on_exhausted
        self._on_status = on_status
        self._client: Optional[ConnectionClient] = None
        self._generation = 0
        self._timer: Optional[asyncio.Task[None]] = None
        self._manual_close = False
        self._last_error: Optional[str] = None
        self._exhausted = False
        self._shut_down = False

    @property
    def state(self) -> ConnectionState:
        return self._client.state if self._client else ConnectionState.CLOSED

    @property
    def client(self) -> Optional[ConnectionClient]:
        return self._client

    @property
    def attempt_count(self) -> int:
        return self.reconnect.attempt_count

    @property
    def is_exhausted(self) -> bool:
        return self._exhausted

    @property
    def last_error(self) -> Optional[str]:
        return self._last_error

    def reconnect_pending(self) -> bool:
        return self._timer is not None and not self._timer.done()

    async def open(self) -> bool:
        """Manually open (or resume) the connection."""

        if self._shut_down:
            LOGGER.warning("Supervisor shut down; ignoring open()")
            return False
        if self.state in (ConnectionState.CONNECTING, ConnectionState.OPEN):
            LOGGER.warning("Stream already %s; ignoring open()", self.state.value)
            return False
        self._cancel_timer()
        self._manual_close = False
        self._exhausted = False
        self.reconnect.reset()
        return await self._attempt_open()

    async def close(self, code: int = CloseCode.NORMAL) -> None:
        """Close on request; never followed by an automatic reconnect."""

        self._manual_close = True
        self._cancel_timer()
        if self._client is not None:
            await self._client.close(code)

    async def shutdown(self) -> None:
        """Cancel the pending reconnect and dispose the current connection."""

        self._shut_down = True
        self._manual_close = True
        await self._await_timer_cancel()
        client = self._client
        self._client = None
        if client is not None:
            await client.dispose()

    def send(self, frame: str) -> None:
        if self._client is None:
            LOGGER.warning("Cannot send frame - stream was never opened")
            return
        self._client.send(frame)

    def dispatch_queue(self) -> int:
        if self._client is None:
            return 0
        return self._client.dispatch_queue()

    async def _attempt_open(self) -> bool:
        previous = self._client
        if previous is not None and previous.state is not ConnectionState.CLOSED:
            LOGGER.warning("Stream already %s; skipping open attempt", previous.state.value)
            return False
        client = self._build_client()
        self._client = client
        if previous is not None:
            await previous.dispose()
        await self._emit(self._on_status, True)
        opened = await client.open()
        if not opened and client is self._client and not self._manual_close and not self._shut_down:
            await self._emit(self._on_status, False)
            await self._schedule_reconnect(CloseCode.ABNORMAL)
        return opened

    def _build_client(self) -> ConnectionClient:
        self._generation += 1
        generation = self._generation
        return ConnectionClient(
            self._url,
            lambda: self._transport_factory(self._settings),
            on_open=partial(self._handle_open, generation),
            on_message=partial(self._handle_message, generation),
            on_error=partial(self._handle_error, generation),
            on_close=partial(self._handle_close, generation),
        )

    async def _handle_open(self, generation: int) -> None:
        if generation != self._generation:
            return
        self.reconnect.reset()
        self._exhausted = False
        self._last_error = None
        LOGGER.info("Stream connected to %s", self._url)
        await self._emit(self._on_status, False)
        await self._emit(self._on_open)

    def _handle_message(self, generation: int, raw: str) -> Any:
        if generation != self._generation or self._on_message is None:
            return None
        return self._on_message(raw)

    async def _handle_error(self, generation: int, message: str) -> None:
        if generation != self._generation:
            return
        self._last_error = message
        LOGGER.error("Stream error: %s", message)
        await self._emit(self._on_error, message)

    async def _handle_close(self, generation: int, code: int) -> None:
        if generation != self._generation:
            return
        LOGGER.info("Stream closed with code %s", int(code))
        await self._emit(self._on_status, False)
        await self._emit(self._on_close, code)
        if self._manual_close or self._shut_down:
            return
        if code == CloseCode.NORMAL:
            return
        await self._schedule_reconnect(code)

    async def _schedule_reconnect(self, code: int) -> None:
        if self.reconnect.exhausted:
            self._exhausted = True
            reason = self._last_error or f"Connection closed with code {int(code)}"
            LOGGER.error(
                "Giving up on %s after %s reconnect attempt(s): %s",
                self._url,
                self.reconnect.attempt_count,
                reason,
            )
            await self._emit(self._on_exhausted, reason)
            return
        self.reconnect.attempt_count += 1
        self._cancel_timer()
        LOGGER.info(
            "Attempting to reconnect in %.2fs (attempt %s/%s)",
            self.reconnect.delay,
            self.reconnect.attempt_count,
            self.reconnect.max_attempts,
        )
        self._timer = asyncio.create_task(self._reconnect_after_delay(), name="stream-reconnect")

    async def _reconnect_after_delay(self) -> None:
        await asyncio.sleep(self.reconnect.delay)
        self._timer = None
        if self._manual_close or self._shut_down:
            return
        await self._attempt_open()

    def _cancel_timer(self) -> None:
        timer = self._timer
        self._timer = None
        if timer is not None and not timer.done() and timer is not asyncio.current_task():
            timer.cancel()

    async def _await_timer_cancel(self) -> None:
        timer = self._timer
        self._cancel_timer()
        if timer is not None and timer is not asyncio.current_task():
            with contextlib.suppress(asyncio.CancelledError):
                await timer

    async def _emit(self, callback: Optional[Callable[..., Any]], *args: Any) -> None:
        if callback is None:
            return
        try:
            result = callback(*args)
            if inspect.isawaitable(result):
                await result
        except asyncio.CancelledError:
            raise
        except Exception:  # noqa: BLE001
            LOGGER.exception("Supervisor callback failed: %s", callback)
