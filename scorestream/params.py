"""Session parameters handed to the client through the page URL."""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import Dict, Optional
from urllib.parse import parse_qs, urlsplit

from scorestream.config import ClientSettings
from scorestream.models import SessionContext

LOGGER = logging.getLogger(__name__)

_QUERY_KEYS = {
    "session_id": "play_session_uuid",
    "variant": "variant",
    "input": "input",
    "lang": "lang",
    "test_name": "testName",
    "test_rank": "testRank",
    "device": "device",
}


@dataclass(frozen=True)
class SessionParameters:
    session_id: str = ""
    variant: str = ""
    input: str = ""
    lang: str = ""
    test_name: str = ""
    test_rank: str = ""
    device: str = ""

    def has_required(self) -> bool:
        return bool(self.session_id and self.variant and self.input)

    def as_query(self) -> Dict[str, str]:
        return {key: value for key, value in zip(_QUERY_KEYS.values(), asdict(self).values())}

    def to_context(self, game_id: str) -> SessionContext:
        return SessionContext(
            session_id=self.session_id,
            variant=self.variant,
            input_mode=self.input,
            game_id=game_id,
            lang=self.lang,
            test_name=self.test_name,
            test_rank=self.test_rank,
            device=self.device,
        )

    @classmethod
    def defaults(cls, settings: ClientSettings) -> SessionParameters:
        return cls(
            session_id=settings.default_session_id,
            variant=settings.default_variant,
            input=settings.default_input,
            lang=settings.default_lang,
            test_name=settings.default_test_name,
            test_rank=settings.default_test_rank,
            device=settings.default_device,
        )


def parse_url(url: Optional[str], *, defaults: Optional[SessionParameters] = None) -> SessionParameters:
    """Extract session parameters from ``url``.

    A URL without a query string yields ``defaults`` (or empty parameters);
    keys missing from a present query become empty strings.
    """

    if not url or "?" not in url:
        LOGGER.warning("No URL parameters found; using default values")
        return defaults or SessionParameters()
    query = parse_qs(urlsplit(url).query, keep_blank_values=True)
    values = {field: query.get(key, [""])[0] for field, key in _QUERY_KEYS.items()}
    params = SessionParameters(**values)
    LOGGER.debug("Parsed session parameters: %s", params)
    return params
