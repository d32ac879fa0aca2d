"""Client bootstrap: wiring, tick driver and process lifetime."""

from __future__ import annotations

import asyncio
import logging
from typing import Optional, Type

from scorestream.api.client import BackendClient
from scorestream.config import ClientSettings, get_settings
from scorestream.coordinator import CoordinatorState, SessionCoordinator
from scorestream.models import ScoreResponse
from scorestream.network.transport.base import BaseTransport
from scorestream.network.transport.memory import MemoryTransport
from scorestream.network.transport.websocket import WebSocketTransport
from scorestream.params import SessionParameters, parse_url

LOGGER = logging.getLogger(__name__)


def build_coordinator(settings: Optional[ClientSettings] = None, **callbacks) -> SessionCoordinator:
    """Construct the coordinator with the transport selected in settings."""

    settings = settings or get_settings()
    resolved_cls: Type[BaseTransport]
    resolved_cls = WebSocketTransport if settings.transport == "websocket" else MemoryTransport
    LOGGER.debug("Initialising score stream via %s", resolved_cls.__name__)
    return SessionCoordinator(
        settings,
        backend=BackendClient.from_settings(settings),
        transport_factory=lambda s: resolved_cls(s),
        **callbacks,
    )


async def run_tick_loop(coordinator: SessionCoordinator, interval: float) -> None:
    """Pump inbound frames once per tick until cancelled."""

    while True:
        coordinator.tick()
        await asyncio.sleep(interval)


def _log_score(response: ScoreResponse) -> None:
    LOGGER.info("Score received - messageId=%s value=%s", response.message_id, response.value)


def _log_state(state: CoordinatorState) -> None:
    LOGGER.info("Session state: %s", state.value)


async def serve_forever(page_url: Optional[str] = None) -> None:
    """Run the session flow for ``page_url`` and keep the process alive."""

    settings = get_settings()
    params = parse_url(page_url, defaults=SessionParameters.defaults(settings))
    coordinator = build_coordinator(settings, on_score=_log_score, on_state_change=_log_state)
    ticker = asyncio.create_task(
        run_tick_loop(coordinator, settings.tick_interval_seconds),
        name="tick-driver",
    )
    try:
        await coordinator.start(params)
        await asyncio.Future()  # block until cancelled
    except asyncio.CancelledError:
        LOGGER.info("Client shutdown requested")
        raise
    finally:
        ticker.cancel()
        await asyncio.gather(ticker, return_exceptions=True)
        await coordinator.shutdown()
