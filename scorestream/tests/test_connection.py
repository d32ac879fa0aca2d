import asyncio
import logging

import pytest

from scorestream.network.connection import ConnectionClient, ConnectionState
from scorestream.network.transport.base import CloseCode
from scorestream.network.transport.memory import MemoryTransport


class _GatedTransport(MemoryTransport):
    """Handshake blocks until the test releases it."""

    def __init__(self, *, fail_connect: bool = False) -> None:
        super().__init__(None, fail_connect=fail_connect)
        self.release = asyncio.Event()

    async def connect(self) -> None:
        await self.release.wait()
        await super().connect()


class _Recorder:
    def __init__(self) -> None:
        self.opened = 0
        self.messages = []
        self.errors = []
        self.closes = []

    def kwargs(self):
        return {
            "on_open": self._open,
            "on_message": self.messages.append,
            "on_error": self.errors.append,
            "on_close": self.closes.append,
        }

    def _open(self) -> None:
        self.opened += 1


async def _wait_for(predicate, *, timeout: float = 0.5, interval: float = 0.005) -> bool:
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while loop.time() < deadline:
        if predicate():
            return True
        await asyncio.sleep(interval)
    return predicate()


@pytest.mark.asyncio
async def test_open_reaches_open_and_fires_event():
    transport = MemoryTransport()
    events = _Recorder()
    client = ConnectionClient("ws://test", lambda: transport, **events.kwargs())

    assert client.state is ConnectionState.CLOSED
    assert await client.open() is True
    assert client.state is ConnectionState.OPEN
    assert events.opened == 1
    await client.dispose()


@pytest.mark.asyncio
async def test_concurrent_open_only_one_handshake(caplog):
    created = []

    def factory():
        transport = _GatedTransport()
        created.append(transport)
        return transport

    client = ConnectionClient("ws://test", factory)
    caplog.set_level(logging.WARNING)

    first = asyncio.create_task(client.open())
    await asyncio.sleep(0)
    assert client.state is ConnectionState.CONNECTING
    assert await client.open() is False

    created[0].release.set()
    assert await first is True
    assert await client.open() is False
    assert len(created) == 1
    assert any("ignoring open()" in record.getMessage() for record in caplog.records)
    await client.dispose()


@pytest.mark.asyncio
async def test_send_while_not_open_is_dropped(caplog):
    transport = MemoryTransport()
    client = ConnectionClient("ws://test", lambda: transport)
    caplog.set_level(logging.WARNING)

    client.send('{"game":"unity-demo"}')
    await client.drain()

    assert transport.sent == []
    assert any("Cannot send frame" in record.getMessage() for record in caplog.records)


@pytest.mark.asyncio
async def test_send_preserves_order_when_open():
    transport = MemoryTransport()
    client = ConnectionClient("ws://test", lambda: transport)
    await client.open()

    client.send("one")
    client.send("two")
    client.send("three")
    await client.drain()

    assert transport.sent == ["one", "two", "three"]
    await client.dispose()


@pytest.mark.asyncio
async def test_inbound_frames_surface_only_on_dispatch():
    transport = MemoryTransport()
    events = _Recorder()
    client = ConnectionClient("ws://test", lambda: transport, **events.kwargs())
    await client.open()

    transport.feed('{"messageId":"p1","value":1.5}')
    transport.feed('{"messageId":"p2","value":2.5}')
    assert await _wait_for(lambda: client.pending_inbound() == 2)
    assert events.messages == []

    assert client.dispatch_queue() == 2
    assert events.messages == ['{"messageId":"p1","value":1.5}', '{"messageId":"p2","value":2.5}']
    assert client.dispatch_queue() == 0
    await client.dispose()


@pytest.mark.asyncio
async def test_dispatch_queue_is_noop_when_closed():
    events = _Recorder()
    client = ConnectionClient("ws://test", MemoryTransport, **events.kwargs())

    assert client.dispatch_queue() == 0
    assert events.messages == []


@pytest.mark.asyncio
async def test_remote_close_reports_code():
    transport = MemoryTransport()
    events = _Recorder()
    client = ConnectionClient("ws://test", lambda: transport, **events.kwargs())
    await client.open()

    transport.drop(CloseCode.GOING_AWAY)
    assert await _wait_for(lambda: client.state is ConnectionState.CLOSED)
    assert events.closes == [CloseCode.GOING_AWAY]


@pytest.mark.asyncio
async def test_handshake_failure_reports_error_without_close():
    transport = MemoryTransport(fail_connect=True)
    events = _Recorder()
    client = ConnectionClient("ws://test", lambda: transport, **events.kwargs())

    assert await client.open() is False
    assert client.state is ConnectionState.CLOSED
    assert len(events.errors) == 1
    assert events.errors[0].startswith("Connection failed")
    assert events.closes == []
    assert events.opened == 0


@pytest.mark.asyncio
async def test_close_is_noop_when_already_closed():
    events = _Recorder()
    client = ConnectionClient("ws://test", MemoryTransport, **events.kwargs())

    await client.close()
    assert events.closes == []


@pytest.mark.asyncio
async def test_close_during_handshake():
    transport = _GatedTransport()
    events = _Recorder()
    client = ConnectionClient("ws://test", lambda: transport, **events.kwargs())

    pending = asyncio.create_task(client.open())
    await asyncio.sleep(0)
    await client.close(CloseCode.NORMAL)
    assert client.state is ConnectionState.CLOSED
    assert events.closes == [CloseCode.NORMAL]

    transport.release.set()
    assert await pending is False
    assert client.state is ConnectionState.CLOSED
    assert events.opened == 0


@pytest.mark.asyncio
async def test_stale_handshake_failure_leaves_newer_attempt_alone():
    created = [_GatedTransport(fail_connect=True), _GatedTransport()]
    factory = iter(created)
    events = _Recorder()
    client = ConnectionClient("ws://test", lambda: next(factory), **events.kwargs())

    first = asyncio.create_task(client.open())
    await asyncio.sleep(0)
    await client.close(CloseCode.NORMAL)
    second = asyncio.create_task(client.open())
    await asyncio.sleep(0)
    assert client.state is ConnectionState.CONNECTING

    created[0].release.set()
    assert await first is False
    assert client.state is ConnectionState.CONNECTING
    assert events.errors == []

    created[1].release.set()
    assert await second is True
    assert client.state is ConnectionState.OPEN
    client.send("frame")
    await client.drain()
    assert created[1].sent == ["frame"]
    await client.dispose()


@pytest.mark.asyncio
async def test_dispose_forces_close():
    transport = MemoryTransport()
    events = _Recorder()
    client = ConnectionClient("ws://test", lambda: transport, **events.kwargs())
    await client.open()

    await client.dispose()

    assert client.state is ConnectionState.CLOSED
    assert transport.close_codes == [CloseCode.NORMAL]
    assert events.closes == [CloseCode.NORMAL]
    assert await client.open() is False


@pytest.mark.asyncio
async def test_listener_failure_does_not_break_pump(caplog):
    transport = MemoryTransport()
    seen = []

    def listener(raw: str) -> None:
        seen.append(raw)
        raise RuntimeError("boom")

    client = ConnectionClient("ws://test", lambda: transport, on_message=listener)
    await client.open()
    transport.feed("a")
    transport.feed("b")
    assert await _wait_for(lambda: client.pending_inbound() == 2)

    caplog.set_level(logging.ERROR)
    assert client.dispatch_queue() == 2
    assert seen == ["a", "b"]
    await client.dispose()
