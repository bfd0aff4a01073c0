import asyncio
import json

import pytest

from socketmode.config import SocketModeSettings
from socketmode.credentials import StaticCredentials
from socketmode.errors import (
    HandshakeRejected,
    InvalidJSON,
    MissingCredential,
    TransportError,
    UnacknowledgedEvent,
)
from socketmode.network.connection import ConnectionManager, ConnectionState, ExitStatus
from socketmode.network.transport.dummy import DummyTransport

HELLO = '{"type":"hello"}'
LINK_DISABLED = '{"type":"disconnect","reason":"link_disabled"}'
REFRESH = '{"type":"disconnect","reason":"refresh_requested"}'


def _event(envelope_id: str, payload: dict | None = None) -> str:
    return json.dumps({"type": "events_api", "envelope_id": envelope_id, "payload": payload or {"x": 1}})


class _RecordingTransport(DummyTransport):
    def __init__(self, name: str, calls: list) -> None:
        super().__init__(None)
        self.name = name
        self.calls = calls

    async def connect(self, url: str) -> None:
        await super().connect(url)
        self.calls.append(("connect", self.name))

    async def send(self, frame: str) -> None:
        await super().send(frame)
        self.calls.append(("send", self.name))

    async def close(self) -> None:
        self.calls.append(("close", self.name))
        await super().close()


class _FakeHandshake:
    def __init__(self, *urls: str, error: Exception | None = None) -> None:
        self.urls = list(urls) or ["wss://example.test/link/?ticket=1"]
        self.error = error
        self.tokens: list[str] = []
        self.closed = False

    async def open_connection(self, token: str) -> str:
        self.tokens.append(token)
        if self.error is not None:
            raise self.error
        if len(self.urls) > 1:
            return self.urls.pop(0)
        return self.urls[0]

    def close(self) -> None:
        self.closed = True


def _settings(**overrides) -> SocketModeSettings:
    values = {"app_token": "xapp-test", "frame_pacing_seconds": 0}
    values.update(overrides)
    return SocketModeSettings(**values)


def _manager(handler, transports, *, settings=None, handshake=None, credentials=None) -> ConnectionManager:
    pool = list(transports)
    return ConnectionManager(
        settings or _settings(),
        handler,
        credentials=credentials,
        handshake=handshake or _FakeHandshake(),
        transport_factory=lambda _: pool.pop(0),
    )


async def _wait_for(predicate, *, timeout: float = 0.5, interval: float = 0.01) -> bool:
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while loop.time() < deadline:
        if predicate():
            return True
        await asyncio.sleep(interval)
    return predicate()


@pytest.mark.asyncio
async def test_app_event_is_acked_with_handler_payload():
    calls: list = []
    transport = _RecordingTransport("first", calls)
    transport.feed(HELLO, _event("E1"), LINK_DISABLED)
    seen = []

    def handler(context):
        seen.append((context.envelope_id, context.payload, context.event_type))
        context.ack({"ok": True})

    manager = _manager(handler, [transport])
    result = await manager.run()

    assert seen == [("E1", {"x": 1}, "events_api")]
    assert transport.sent == ['{"envelope_id":"E1","payload":{"ok":true}}']
    assert result.status is ExitStatus.REMOTE_DISCONNECT
    assert result.exit_code == 2
    assert result.envelope is not None and result.envelope.reason == "link_disabled"
    assert transport.closed
    assert manager.state is ConnectionState.CLOSED


@pytest.mark.asyncio
async def test_ack_without_payload_omits_payload_field():
    transport = DummyTransport()
    transport.feed(_event("E7"), LINK_DISABLED)

    result = await _manager(lambda context: context.ack(), [transport]).run()

    assert result.status is ExitStatus.REMOTE_DISCONNECT
    assert transport.sent == ['{"envelope_id":"E7"}']


@pytest.mark.asyncio
async def test_async_handlers_are_awaited_in_frame_order():
    transport = DummyTransport()
    transport.feed(_event("E1"), _event("E2"), _event("E3"), LINK_DISABLED)
    order = []

    async def handler(context):
        order.append(("start", context.envelope_id, len(transport.sent)))
        await asyncio.sleep(0.01 if context.envelope_id == "E1" else 0)
        context.ack()
        order.append(("end", context.envelope_id))

    await _manager(handler, [transport]).run()

    assert order == [
        ("start", "E1", 0),
        ("end", "E1"),
        ("start", "E2", 1),
        ("end", "E2"),
        ("start", "E3", 2),
        ("end", "E3"),
    ]
    assert [json.loads(frame)["envelope_id"] for frame in transport.sent] == ["E1", "E2", "E3"]


@pytest.mark.asyncio
async def test_deferred_work_runs_after_ack_is_sent():
    transport = DummyTransport()
    transport.feed(_event("E1"), LINK_DISABLED)
    invocations = []

    def handler(context):
        invocations.append((context.ack_sent, len(transport.sent)))
        if not context.ack_sent:
            context.ack()
            context.defer()

    await _manager(handler, [transport]).run()

    assert invocations == [(False, 0), (True, 1)]
    assert transport.sent == ['{"envelope_id":"E1"}']


@pytest.mark.asyncio
async def test_handler_without_defer_is_invoked_once():
    transport = DummyTransport()
    transport.feed(_event("E1"), LINK_DISABLED)
    invocations = []

    def handler(context):
        invocations.append(context.envelope_id)
        context.ack()

    await _manager(handler, [transport]).run()

    assert invocations == ["E1"]


@pytest.mark.asyncio
async def test_unacknowledged_event_halts_without_sending():
    transport = DummyTransport()
    transport.feed(_event("E1"), _event("E2"))
    seen = []

    result = await _manager(lambda context: seen.append(context.envelope_id), [transport]).run()

    assert result.status is ExitStatus.FAILED
    assert isinstance(result.error, UnacknowledgedEvent)
    assert result.error.context["envelope"]["envelope_id"] == "E1"
    assert result.envelope is not None and result.envelope.envelope_id == "E1"
    assert seen == ["E1"]
    assert transport.sent == []
    assert transport.closed


@pytest.mark.asyncio
async def test_handler_exception_fails_run():
    transport = DummyTransport()
    transport.feed(_event("E1"))

    def handler(context):
        raise KeyError("boom")

    result = await _manager(handler, [transport]).run()

    assert result.status is ExitStatus.FAILED
    assert isinstance(result.error, KeyError)
    assert transport.closed


@pytest.mark.asyncio
async def test_reconnect_opens_new_connection_before_closing_old():
    calls: list = []
    first = _RecordingTransport("first", calls)
    second = _RecordingTransport("second", calls)
    first.feed(HELLO, REFRESH)
    second.feed(HELLO, _event("E2"), LINK_DISABLED)
    handshake = _FakeHandshake("wss://example.test/a?ticket=1", "wss://example.test/b?ticket=2")
    states = []

    def handler(context):
        states.append(manager.state)
        context.ack()

    manager = _manager(handler, [first, second], handshake=handshake)
    result = await manager.run()

    assert result.status is ExitStatus.REMOTE_DISCONNECT
    assert calls[:3] == [("connect", "first"), ("connect", "second"), ("close", "first")]
    assert ("send", "second") in calls
    assert first.sent == []
    assert second.sent == ['{"envelope_id":"E2"}']
    assert first.url == "wss://example.test/a?ticket=1"
    assert second.url == "wss://example.test/b?ticket=2"
    assert handshake.tokens == ["xapp-test", "xapp-test"]
    assert states == [ConnectionState.CONNECTED]


@pytest.mark.asyncio
async def test_failed_reconnect_closes_existing_connection():
    calls: list = []
    first = _RecordingTransport("first", calls)
    first.feed(REFRESH)

    class _FailingTransport(_RecordingTransport):
        async def connect(self, url: str) -> None:
            raise TransportError("refused")

    second = _FailingTransport("second", calls)

    result = await _manager(lambda context: context.ack(), [first, second]).run()

    assert result.status is ExitStatus.FAILED
    assert isinstance(result.error, TransportError)
    assert ("close", "first") in calls
    assert ("close", "second") in calls
    assert first.closed


@pytest.mark.asyncio
async def test_missing_credential_fails_before_handshake():
    handshake = _FakeHandshake()
    transport = DummyTransport()

    manager = _manager(
        lambda context: context.ack(),
        [transport],
        handshake=handshake,
        credentials=StaticCredentials(None),
    )
    result = await manager.run()

    assert result.status is ExitStatus.FAILED
    assert isinstance(result.error, MissingCredential)
    assert handshake.tokens == []
    assert not transport.connected


@pytest.mark.asyncio
async def test_handshake_rejection_fails_run():
    handshake = _FakeHandshake(error=HandshakeRejected("denied", status_code=401))

    result = await _manager(lambda context: context.ack(), [DummyTransport()], handshake=handshake).run()

    assert result.status is ExitStatus.FAILED
    assert isinstance(result.error, HandshakeRejected)


@pytest.mark.asyncio
async def test_invalid_frame_fails_run(caplog):
    transport = DummyTransport()
    transport.feed("not json")

    result = await _manager(lambda context: context.ack(), [transport]).run()

    assert result.status is ExitStatus.FAILED
    assert isinstance(result.error, InvalidJSON)
    assert transport.closed
    assert any("Error occurred during Socket Mode" in record.getMessage() for record in caplog.records)


@pytest.mark.asyncio
async def test_remote_transport_close_fails_run():
    transport = DummyTransport()
    transport.feed(HELLO)
    manager = _manager(lambda context: context.ack(), [transport])

    task = asyncio.create_task(manager.run())
    assert await _wait_for(lambda: manager.state is ConnectionState.CONNECTED)
    await transport.close()
    result = await asyncio.wait_for(task, timeout=1)

    assert result.status is ExitStatus.FAILED
    assert isinstance(result.error, TransportError)


@pytest.mark.asyncio
async def test_stop_closes_connection_and_ends_run():
    transport = DummyTransport()
    transport.feed(HELLO)
    manager = _manager(lambda context: context.ack(), [transport])

    task = asyncio.create_task(manager.run())
    assert await _wait_for(lambda: manager.state is ConnectionState.CONNECTED)
    await manager.stop()
    result = await asyncio.wait_for(task, timeout=1)

    assert result.status is ExitStatus.STOPPED
    assert result.exit_code == 3
    assert transport.closed
    assert manager.state is ConnectionState.CLOSED


@pytest.mark.asyncio
async def test_stop_lets_inflight_handler_finish():
    transport = DummyTransport()
    transport.feed(_event("E1"), _event("E2"))
    release = asyncio.Event()
    started = asyncio.Event()
    finished = []

    async def handler(context):
        started.set()
        await release.wait()
        context.ack()
        finished.append(context.envelope_id)

    manager = _manager(handler, [transport])
    task = asyncio.create_task(manager.run())
    await asyncio.wait_for(started.wait(), timeout=1)
    await manager.stop()
    release.set()
    result = await asyncio.wait_for(task, timeout=1)

    assert finished == ["E1"]
    assert result.status is ExitStatus.STOPPED
    assert transport.sent == []


@pytest.mark.asyncio
async def test_debug_reconnects_suffixes_url():
    transport = DummyTransport()
    transport.feed(LINK_DISABLED)
    handshake = _FakeHandshake("wss://example.test/link/?ticket=abc")

    await _manager(
        lambda context: context.ack(),
        [transport],
        settings=_settings(debug_reconnects=True),
        handshake=handshake,
    ).run()

    assert transport.url == "wss://example.test/link/?ticket=abc&debug_reconnects=true"


@pytest.mark.asyncio
async def test_run_is_single_use():
    transport = DummyTransport()
    transport.feed(LINK_DISABLED)
    manager = _manager(lambda context: context.ack(), [transport])

    await manager.run()

    with pytest.raises(RuntimeError):
        await manager.run()


class _GatedTransport(DummyTransport):
    """Mimics a socket that only exists, and can only be closed, after connect returns."""

    def __init__(self) -> None:
        super().__init__(None)
        self.gate = asyncio.Event()
        self.entered = asyncio.Event()
        self.live = False

    async def connect(self, url: str) -> None:
        self.entered.set()
        await self.gate.wait()
        await super().connect(url)
        self.live = True

    async def close(self) -> None:
        if self.live:
            self.live = False
            await super().close()


@pytest.mark.asyncio
async def test_stop_during_connect_closes_new_connection():
    transport = _GatedTransport()
    manager = _manager(lambda context: context.ack(), [transport])

    task = asyncio.create_task(manager.run())
    await asyncio.wait_for(transport.entered.wait(), timeout=1)
    await manager.stop()
    transport.gate.set()
    result = await asyncio.wait_for(task, timeout=1)

    assert result.status is ExitStatus.STOPPED
    assert not transport.live
    assert transport.closed


@pytest.mark.asyncio
async def test_stop_during_reconnect_closes_both_connections():
    first = DummyTransport()
    first.feed(REFRESH)
    second = _GatedTransport()
    manager = _manager(lambda context: context.ack(), [first, second])

    task = asyncio.create_task(manager.run())
    await asyncio.wait_for(second.entered.wait(), timeout=1)
    await manager.stop()
    second.gate.set()
    result = await asyncio.wait_for(task, timeout=1)

    assert result.status is ExitStatus.STOPPED
    assert first.closed
    assert not second.live


@pytest.mark.asyncio
async def test_binary_frame_with_invalid_utf8_fails_run():
    transport = DummyTransport()
    transport.feed(b"\xff\xfe{\"type\":\"hello\"}")

    result = await _manager(lambda context: context.ack(), [transport]).run()

    assert result.status is ExitStatus.FAILED
    assert isinstance(result.error, InvalidJSON)
    assert transport.sent == []
