"""Message identifiers for outbound frames and broadcast of inbound ones."""

from __future__ import annotations

import logging
from typing import Callable, Iterable, List, Optional

from pydantic import ValidationError

from scorestream.models import ScoreMessage, ScoreResponse

LOGGER = logging.getLogger(__name__)

ResponseListener = Callable[[ScoreResponse], None]
RawListener = Callable[[str], None]


class MessageCorrelator:
    """Tags outbound frames and fans inbound responses out to listeners.

    Matching is best effort: there is no table of outstanding requests. Every
    decoded response goes to every listener, and a listener that cares about
    a particular ``messageId`` compares it itself.
    """

    def __init__(
        self,
        *,
        prefix: str = "p",
        correlated_games: Iterable[str] = ("aim-gridshot",),
        listeners: Optional[Iterable[ResponseListener]] = None,
        raw_listeners: Optional[Iterable[RawListener]] = None,
        start: int = 1,
    ) -> None:
        self._prefix = prefix
        self._correlated = frozenset(correlated_games)
        self._counter = start
        self._listeners: List[ResponseListener] = list(listeners or [])
        self._raw_listeners: List[RawListener] = list(raw_listeners or [])

    @property
    def counter(self) -> int:
        return self._counter

    def requires_correlation(self, message: ScoreMessage) -> bool:
        return message.game in self._correlated

    def next_message_id(self) -> str:
        message_id = f"{self._prefix}{self._counter}"
        self._counter += 1
        return message_id

    def tag(self, message: ScoreMessage) -> ScoreMessage:
        if not self.requires_correlation(message):
            return message
        return message.model_copy(update={"message_id": self.next_message_id()})

    def encode(self, message: ScoreMessage) -> str:
        return self.tag(message).to_frame()

    def add_listener(self, listener: ResponseListener) -> None:
        self._listeners.append(listener)

    def add_raw_listener(self, listener: RawListener) -> None:
        self._raw_listeners.append(listener)

    def dispatch(self, raw: str) -> Optional[ScoreResponse]:
        """Decode one inbound frame and broadcast it."""

        LOGGER.debug("Inbound frame: %s", raw)
        for raw_listener in list(self._raw_listeners):
            try:
                raw_listener(raw)
            except Exception:  # noqa: BLE001
                LOGGER.exception("Raw frame listener failed: %s", raw_listener)
        try:
            response = ScoreResponse.from_frame(raw)
        except ValidationError as exc:
            LOGGER.warning("Dropping malformed inbound frame %r: %s", raw, exc)
            return None
        LOGGER.debug("Score received - messageId=%s value=%s", response.message_id, response.value)
        for listener in list(self._listeners):
            try:
                listener(response)
            except Exception:  # noqa: BLE001
                LOGGER.exception("Score listener failed: %s", listener)
        return response
