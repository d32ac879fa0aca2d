"""HTTP client for the scoring backend REST endpoints."""

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import quote, urlencode, urljoin

import requests
from requests import Response

from scorestream.config import ClientSettings, get_settings
from scorestream.models import ResultSubmission

LOGGER = logging.getLogger(__name__)


class BackendClientError(Exception):
    """Base error for backend client operations."""


class BackendRequestError(BackendClientError):
    """Raised for transport failures and non-success HTTP statuses."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class BackendNotFoundError(BackendRequestError):
    """Raised when the backend returns 404."""


class BackendClient:
    def __init__(
        self,
        *,
        base_url: str,
        timeout_seconds: float,
        play_sessions_path: str = "/api/play-sessions/",
        results_path: str = "/api/results/",
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout_seconds = timeout_seconds
        self._play_sessions_path = play_sessions_path
        self._results_path = results_path

    @classmethod
    def from_settings(cls, settings: ClientSettings | None = None) -> BackendClient:
        settings = settings or get_settings()
        return cls(
            base_url=settings.base_url_str,
            timeout_seconds=float(settings.request_timeout_seconds),
            play_sessions_path=settings.play_sessions_path,
            results_path=settings.results_path,
        )

    def get_play_session(self, session_id: str, *, game: str, input_mode: str, variant: str) -> str:
        """Return the raw body of the play-session validation endpoint."""

        params = {"game": game, "input": input_mode, "variant": variant}
        response = self._request("GET", self._session_path(self._play_sessions_path, session_id), params=params)
        return response.text

    def submit_result(self, session_id: str, submission: ResultSubmission) -> None:
        """POST the result; any 2xx counts as saved and the body is ignored."""

        body = submission.model_dump(mode="json")
        self._request("POST", self._session_path(self._results_path, session_id), json_body=body)

    @staticmethod
    def _session_path(prefix: str, session_id: str) -> str:
        return f"{prefix.rstrip('/')}/{quote(session_id, safe='')}"

    def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, object] | None = None,
        json_body: dict[str, Any] | None = None,
    ) -> Response:
        url = self._build_url(path, params=params)
        LOGGER.debug("%s %s", method, url)
        try:
            response = requests.request(
                method,
                url,
                headers=self._build_headers(),
                json=json_body,
                timeout=self._timeout_seconds,
            )
        except requests.RequestException as exc:
            raise BackendRequestError(str(exc)) from exc
        if response.status_code >= 400:
            self._raise_for_status(response)
        return response

    @staticmethod
    def _build_headers() -> dict[str, str]:
        return {"Accept": "application/json", "Content-Type": "application/json"}

    def _build_url(self, path: str, *, params: dict[str, object] | None = None) -> str:
        url = urljoin(f"{self._base_url}/", path.lstrip("/"))
        if params:
            query = urlencode({key: value for key, value in params.items() if value is not None})
            if query:
                return f"{url}?{query}"
        return url

    @staticmethod
    def _raise_for_status(response: Response) -> None:
        if response.status_code == 404:
            raise BackendNotFoundError("Backend resource not found.", status_code=404)
        raise BackendRequestError(
            f"Backend request failed with status {response.status_code}.",
            status_code=response.status_code,
        )


__all__ = [
    "BackendClient",
    "BackendClientError",
    "BackendRequestError",
    "BackendNotFoundError",
]
