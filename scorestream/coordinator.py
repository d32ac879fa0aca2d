"""Sequences validation, streaming and result submission for one session."""

from __future__ import annotations

import asyncio
import contextlib
import enum
import inspect
import logging
import webbrowser
from typing import Any, Awaitable, Callable, Optional

from scorestream.api.client import BackendClient, BackendClientError
from scorestream.api.validator import (
    CannotStart,
    CanStart,
    SessionValidator,
    ValidationFailed,
    ValidationOutcome,
)
from scorestream.config import ClientSettings
from scorestream.models import (
    PlaySessionData,
    ResultData,
    ResultSubmission,
    ScoreMessage,
    ScoreResponse,
    SessionContext,
)
from scorestream.network.connection import ConnectionState
from scorestream.network.correlator import MessageCorrelator
from scorestream.network.supervisor import ReconnectSupervisor
from scorestream.network.transport.base import BaseTransport
from scorestream.params import SessionParameters

LOGGER = logging.getLogger(__name__)

Redirector = Callable[[str], Awaitable[None] | None]


class CoordinatorState(enum.Enum):
    IDLE = "IDLE"
    VALIDATING = "VALIDATING"
    DENIED = "DENIED"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    READY = "READY"
    STREAMING = "STREAMING"
    SUBMITTING = "SUBMITTING"
    REDIRECTING = "REDIRECTING"
    STOPPED = "STOPPED"


def open_in_browser(url: str) -> None:
    LOGGER.info("Redirecting to %s", url)
    webbrowser.open(url)


class SessionCoordinator:
    """Owns the session context, the validator and the single stream supervisor.

    Streaming only starts after the backend confirmed the session. Results
    go over REST; on success the user is redirected after a grace period.
    Completions that arrive after the coordinator left the state that issued
    them are ignored.
    """

    def __init__(
        self,
        settings: ClientSettings,
        *,
        backend: BackendClient,
        transport_factory: Callable[[ClientSettings], BaseTransport],
        validator: Optional[SessionValidator] = None,
        correlator: Optional[MessageCorrelator] = None,
        redirector: Redirector = open_in_browser,
        on_state_change: Optional[Callable[[CoordinatorState], Any]] = None,
        on_error: Optional[Callable[[str], Any]] = None,
        on_score: Optional[Callable[[ScoreResponse], None]] = None,
        on_status: Optional[Callable[[bool], Any]] = None,
        on_results_saved: Optional[Callable[[bool], Any]] = None,
    ) -> None:
        self._settings = settings
        self._backend = backend
        self._redirector = redirector
        self._on_state_change = on_state_change
        self._on_error = on_error
        self._on_status = on_status
        self._on_results_saved = on_results_saved
        self._validator = validator or SessionValidator(backend, on_status=on_status)
        self._correlator = correlator or MessageCorrelator(
            prefix=settings.correlation_prefix,
            correlated_games=settings.correlated_games,
        )
        if on_score is not None:
            self._correlator.add_listener(on_score)
        self._supervisor = ReconnectSupervisor(
            settings,
            transport_factory,
            on_open=self._handle_stream_open,
            on_message=self._correlator.dispatch,
            on_error=self._handle_stream_error,
            on_exhausted=self._handle_stream_exhausted,
            on_status=on_status,
        )
        self._state = CoordinatorState.IDLE
        self._context: Optional[SessionContext] = None
        self._session: Optional[PlaySessionData] = None
        self._streamed = False
        self._redirect_task: Optional[asyncio.Task[None]] = None

    @property
    def state(self) -> CoordinatorState:
        return self._state

    @property
    def context(self) -> Optional[SessionContext]:
        return self._context

    @property
    def session(self) -> Optional[PlaySessionData]:
        return self._session

    @property
    def supervisor(self) -> ReconnectSupervisor:
        return self._supervisor

    @property
    def correlator(self) -> MessageCorrelator:
        return self._correlator

    async def start(self, params: SessionParameters) -> Optional[ValidationOutcome]:
        """Validate the session once parameters are known; stream on success."""

        if self._state is not CoordinatorState.IDLE:
            LOGGER.warning("Session flow already started (%s); ignoring start()", self._state.value)
            return None
        if not params.session_id:
            failure = ValidationFailed("missing session id")
            LOGGER.error("Play session UUID is missing")
            await self._set_state(CoordinatorState.VALIDATION_ERROR)
            await self._emit(self._on_error, failure.message)
            return failure
        self._context = params.to_context(self._settings.game_id)
        return await self._validate()

    async def retry_validation(self) -> Optional[ValidationOutcome]:
        if self._state is not CoordinatorState.VALIDATION_ERROR or self._context is None:
            LOGGER.warning("Validation retry not possible from %s", self._state.value)
            return None
        return await self._validate()

    async def _validate(self) -> ValidationOutcome:
        assert self._context is not None
        await self._set_state(CoordinatorState.VALIDATING)
        outcome = await self._validator.validate(self._context)
        if self._state is not CoordinatorState.VALIDATING:
            LOGGER.info("Ignoring validation result received in state %s", self._state.value)
            return outcome

        if isinstance(outcome, CanStart):
            self._session = outcome.session
            await self._set_state(CoordinatorState.READY)
            await self._supervisor.open()
        elif isinstance(outcome, CannotStart):
            await self._set_state(CoordinatorState.DENIED)
            await self._emit(self._on_error, outcome.reason)
            await self._redirect(self._settings.failed_redirect_url)
        else:
            await self._set_state(CoordinatorState.VALIDATION_ERROR)
            await self._emit(self._on_error, outcome.message)
            if outcome.redirect:
                await self._redirect(self._settings.failed_redirect_url)
        return outcome

    def send_score(self, message: ScoreMessage) -> Optional[str]:
        """Tag and stream ``message``; returns the messageId when one was attached."""

        if self._supervisor.state is not ConnectionState.OPEN:
            LOGGER.warning("Cannot send data - stream not connected")
            return None
        tagged = self._correlator.tag(message)
        self._supervisor.send(tagged.to_frame())
        return tagged.message_id

    def tick(self) -> int:
        """Pump inbound frames; called once per driver tick."""

        return self._supervisor.dispatch_queue()

    async def reconnect(self) -> bool:
        """Manually reopen the stream, e.g. after reconnection gave up."""

        if self._state not in (CoordinatorState.READY, CoordinatorState.STREAMING):
            LOGGER.warning("Cannot reconnect stream from %s", self._state.value)
            return False
        return await self._supervisor.open()

    async def submit_result(self, score: float, *, game: Optional[str] = None) -> bool:
        if self._state not in (CoordinatorState.READY, CoordinatorState.STREAMING):
            LOGGER.warning("Cannot submit results from %s", self._state.value)
            return False
        assert self._context is not None
        context = self._context
        submission = ResultSubmission(
            game=game or context.game_id,
            variant=context.variant,
            input=context.input_mode,
            results=ResultData(score=score),
        )
        await self._set_state(CoordinatorState.SUBMITTING)
        LOGGER.info("Saving results for %s: %s", context.session_id, submission.model_dump())
        await self._emit(self._on_status, True)
        try:
            await asyncio.to_thread(self._backend.submit_result, context.session_id, submission)
        except BackendClientError as exc:
            if self._state is not CoordinatorState.SUBMITTING:
                return False
            LOGGER.error("Failed to save results: %s", exc)
            await self._set_state(CoordinatorState.STREAMING if self._streamed else CoordinatorState.READY)
            await self._emit(self._on_results_saved, False)
            await self._emit(self._on_error, f"Failed to save results: {exc}")
            return False
        finally:
            await self._emit(self._on_status, False)

        if self._state is not CoordinatorState.SUBMITTING:
            LOGGER.info("Ignoring result submission completed in state %s", self._state.value)
            return False
        LOGGER.info("Results saved; redirecting in %.1fs", self._settings.redirect_delay_seconds)
        await self._set_state(CoordinatorState.REDIRECTING)
        await self._emit(self._on_results_saved, True)
        self._redirect_task = asyncio.create_task(self._redirect_after_delay(), name="success-redirect")
        return True

    async def shutdown(self) -> None:
        """Cancel scheduled work and close the stream before releasing state."""

        await self._set_state(CoordinatorState.STOPPED)
        task = self._redirect_task
        self._redirect_task = None
        if task is not None and not task.done():
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
        await self._supervisor.shutdown()

    async def _redirect_after_delay(self) -> None:
        await asyncio.sleep(self._settings.redirect_delay_seconds)
        if self._state is not CoordinatorState.REDIRECTING:
            return
        await self._redirect(self._settings.success_redirect_url)

    async def _redirect(self, url: str) -> None:
        LOGGER.info("Redirecting to %s", url)
        await self._emit(self._redirector, url)

    async def _handle_stream_open(self) -> None:
        self._streamed = True
        if self._state is CoordinatorState.READY:
            await self._set_state(CoordinatorState.STREAMING)

    async def _handle_stream_error(self, message: str) -> None:
        await self._emit(self._on_error, message)

    async def _handle_stream_exhausted(self, reason: str) -> None:
        await self._emit(self._on_error, f"Streaming connection lost: {reason}")

    async def _set_state(self, state: CoordinatorState) -> None:
        if state is self._state:
            return
        LOGGER.debug("Session flow %s -> %s", self._state.value, state.value)
        self._state = state
        await self._emit(self._on_state_change, state)

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
            LOGGER.exception("Coordinator callback failed: %s", callback)
