"""One-shot validation that a play session is allowed to start."""

from __future__ import annotations

import asyncio
import inspect
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, Union

from pydantic import ValidationError

from scorestream.api.client import BackendClient, BackendRequestError
from scorestream.models import PlaySessionData, PlaySessionResponse, SessionContext

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class CanStart:
    session: PlaySessionData


@dataclass(frozen=True)
class CannotStart:
    reason: str
    redirect: bool = True


@dataclass(frozen=True)
class ValidationFailed:
    message: str
    redirect: bool = False
    parse_failure: bool = False
    status_code: Optional[int] = None


ValidationOutcome = Union[CanStart, CannotStart, ValidationFailed]


class SessionValidator:
    """Asks the backend whether ``context`` may start; never retries."""

    def __init__(
        self,
        client: BackendClient,
        *,
        on_status: Optional[Callable[[bool], Awaitable[None] | None]] = None,
    ) -> None:
        self._client = client
        self._on_status = on_status

    async def validate(self, context: SessionContext) -> ValidationOutcome:
        LOGGER.info("Validating play session %s", context.session_id)
        await self._signal(True)
        try:
            body = await asyncio.to_thread(
                self._client.get_play_session,
                context.session_id,
                game=context.game_id,
                input_mode=context.input_mode,
                variant=context.variant,
            )
        except BackendRequestError as exc:
            message = f"API request failed: {exc}"
            status = exc.status_code
            redirect = status is not None and 400 <= status < 500
            LOGGER.error("%s (status=%s)", message, status)
            return ValidationFailed(message, redirect=redirect, status_code=status)
        finally:
            await self._signal(False)

        LOGGER.debug("Validation response: %s", body)
        try:
            response = PlaySessionResponse.model_validate_json(body)
        except ValidationError as exc:
            message = f"Error parsing API response: {exc.error_count()} validation error(s)"
            LOGGER.error("%s: %s", message, exc)
            return ValidationFailed(message, parse_failure=True)

        if response.can_start:
            assert response.data is not None
            LOGGER.info("Play session %s can start (user=%s)", context.session_id, response.data.username)
            return CanStart(response.data)

        LOGGER.warning("Play session %s cannot start (status=%s)", context.session_id, response.status)
        return CannotStart("Test cannot start")

    async def _signal(self, connecting: bool) -> None:
        if self._on_status is None:
            return
        try:
            result = self._on_status(connecting)
            if inspect.isawaitable(result):
                await result
        except Exception:  # noqa: BLE001
            LOGGER.exception("Status listener failed")
