import json

import pytest

from scorestream.api.client import BackendNotFoundError, BackendRequestError
from scorestream.api.validator import CannotStart, CanStart, SessionValidator, ValidationFailed
from scorestream.models import SessionContext

CONTEXT = SessionContext(session_id="abc-123", variant="2", input_mode="keyboard", game_id="unity-demo")


class _StubBackend:
    def __init__(self, *, body: str | None = None, error: Exception | None = None) -> None:
        self._body = body
        self._error = error
        self.calls = []

    def get_play_session(self, session_id, *, game, input_mode, variant):
        self.calls.append((session_id, game, input_mode, variant))
        if self._error is not None:
            raise self._error
        return self._body


def _body(status: str = "SUCCESS", can_start: bool = True) -> str:
    return json.dumps(
        {
            "status": status,
            "data": {"canStartGame": can_start, "username": "ada", "saveResults": True, "input": "keyboard"},
        }
    )


async def _validate(backend):
    statuses = []
    validator = SessionValidator(backend, on_status=statuses.append)
    outcome = await validator.validate(CONTEXT)
    return outcome, statuses


@pytest.mark.asyncio
async def test_success_with_can_start_flag():
    backend = _StubBackend(body=_body())
    outcome, statuses = await _validate(backend)

    assert isinstance(outcome, CanStart)
    assert outcome.session.username == "ada"
    assert outcome.session.save_results is True
    assert backend.calls == [("abc-123", "unity-demo", "keyboard", "2")]
    assert statuses == [True, False]


@pytest.mark.asyncio
@pytest.mark.parametrize("status,can_start", [("SUCCESS", False), ("FAILED", True), ("DENIED", False)])
async def test_any_other_combination_cannot_start(status, can_start):
    outcome, statuses = await _validate(_StubBackend(body=_body(status, can_start)))

    assert isinstance(outcome, CannotStart)
    assert outcome.redirect is True
    assert statuses == [True, False]


@pytest.mark.asyncio
@pytest.mark.parametrize("body", ['{"status": "FAILED"}', '{"status": "SUCCESS", "data": {}}'])
async def test_missing_start_flag_cannot_start(body):
    outcome, statuses = await _validate(_StubBackend(body=body))

    assert isinstance(outcome, CannotStart)
    assert outcome.reason == "Test cannot start"
    assert outcome.redirect is True
    assert statuses == [True, False]


@pytest.mark.asyncio
async def test_not_found_is_error_with_redirect():
    error = BackendNotFoundError("Backend resource not found.", status_code=404)
    outcome, statuses = await _validate(_StubBackend(error=error))

    assert isinstance(outcome, ValidationFailed)
    assert outcome.redirect is True
    assert outcome.status_code == 404
    assert statuses == [True, False]


@pytest.mark.asyncio
async def test_server_error_is_error_without_redirect():
    error = BackendRequestError("Backend request failed with status 500.", status_code=500)
    outcome, _ = await _validate(_StubBackend(error=error))

    assert isinstance(outcome, ValidationFailed)
    assert outcome.redirect is False
    assert outcome.parse_failure is False


@pytest.mark.asyncio
async def test_transport_failure_without_status_does_not_redirect():
    outcome, statuses = await _validate(_StubBackend(error=BackendRequestError("connection refused")))

    assert isinstance(outcome, ValidationFailed)
    assert outcome.redirect is False
    assert outcome.status_code is None
    assert statuses == [True, False]


@pytest.mark.asyncio
@pytest.mark.parametrize("body", ["<html>oops</html>", '{"data": {"canStartGame": true}}', '{"status": "SUCCESS", "data": []}'])
async def test_malformed_body_is_parse_failure(body):
    outcome, _ = await _validate(_StubBackend(body=body))

    assert isinstance(outcome, ValidationFailed)
    assert outcome.parse_failure is True
    assert outcome.redirect is False
