"""Tests for the probe engine against real loopback listeners."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Awaitable, Callable
import contextlib
import socket
import sys
from unittest.mock import AsyncMock, MagicMock, patch

from bleak.exc import BleakError
import pytest

from stickyprint.config import ProbeConfig
from stickyprint.const import STATUS_QUERY
from stickyprint.discovery import probe as probe_module
from stickyprint.discovery.probe import ProbeEngine, is_plausible_status
from stickyprint.models import BluetoothEndpoint, NetworkEndpoint, ProbeOutcome, SerialEndpoint

Handler = Callable[[asyncio.StreamReader, asyncio.StreamWriter], Awaitable[None]]


@contextlib.asynccontextmanager
async def _listener(handler: Handler) -> AsyncIterator[NetworkEndpoint]:
    server = await asyncio.start_server(handler, "127.0.0.1", 0)
    port = server.sockets[0].getsockname()[1]
    try:
        yield NetworkEndpoint("127.0.0.1", port=port)
    finally:
        server.close()
        await server.wait_closed()


async def _answering(reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
    query = await reader.readexactly(len(STATUS_QUERY))
    if query == STATUS_QUERY:
        writer.write(b"\x12")
        await writer.drain()
    await reader.read()
    writer.close()


async def _silent(reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
    await reader.read()
    writer.close()


async def _garbage(reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
    await reader.readexactly(len(STATUS_QUERY))
    writer.write(b"\xff")
    await writer.drain()
    await reader.read()
    writer.close()


def _closed_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


@pytest.fixture
def engine() -> ProbeEngine:
    return ProbeEngine(ProbeConfig(timeout=1.0, status_timeout=0.1))


class TestStatusByte:
    @pytest.mark.parametrize("data", [b"\x12", b"\x16", b"\x1e", b"\x12\x00"])
    def test_plausible(self, data: bytes) -> None:
        assert is_plausible_status(data)

    @pytest.mark.parametrize("data", [b"", b"\x00", b"\x10", b"\x92", b"\xff"])
    def test_implausible(self, data: bytes) -> None:
        assert not is_plausible_status(data)


class TestNetworkProbe:
    async def test_status_reply_verifies(self, engine: ProbeEngine) -> None:
        async with _listener(_answering) as endpoint:
            result = await engine.probe(endpoint)
        assert result.outcome is ProbeOutcome.VERIFIED
        assert result.reason is None
        assert result.latency_ms is not None

    async def test_closed_port_is_unreachable(self, engine: ProbeEngine) -> None:
        result = await engine.probe(NetworkEndpoint("127.0.0.1", port=_closed_port()))
        assert result.outcome is ProbeOutcome.UNREACHABLE
        assert not result.verified

    async def test_connect_timeout_is_unreachable(self, engine: ProbeEngine) -> None:
        async def _hang(*_args: object, **_kwargs: object) -> None:
            await asyncio.sleep(10)

        with patch.object(probe_module.asyncio, "open_connection", _hang):
            result = await engine.probe(NetworkEndpoint("192.0.2.1"), 0.05)
        assert result.outcome is ProbeOutcome.UNREACHABLE
        assert result.reason == "TimeoutError"

    async def test_silent_listener_accepted_by_default(self, engine: ProbeEngine) -> None:
        async with _listener(_silent) as endpoint:
            result = await engine.probe(endpoint)
        assert result.verified
        assert result.reason == "no status reply"

    async def test_silent_listener_rejected_when_disabled(self) -> None:
        engine = ProbeEngine(ProbeConfig(status_timeout=0.1, accept_silent_listener=False))
        async with _listener(_silent) as endpoint:
            result = await engine.probe(endpoint)
        assert result.reachable
        assert result.outcome is ProbeOutcome.NOT_VERIFIED

    async def test_unexpected_reply(self) -> None:
        engine = ProbeEngine(ProbeConfig(status_timeout=0.1, accept_silent_listener=False))
        async with _listener(_garbage) as endpoint:
            result = await engine.probe(endpoint)
        assert result.outcome is ProbeOutcome.NOT_VERIFIED
        assert result.reason == "unexpected status reply"

    async def test_status_query_can_be_skipped(self) -> None:
        engine = ProbeEngine(ProbeConfig(query_status=False, accept_silent_listener=False))
        async with _listener(_silent) as endpoint:
            result = await engine.probe(endpoint)
        assert result.verified


class TestSerialProbe:
    async def test_openable_port_verifies(self, engine: ProbeEngine, fake_escpos_module: dict) -> None:
        result = await engine.probe(SerialEndpoint("/dev/rfcomm0"))
        assert result.verified
        serial = fake_escpos_module["serial"][0]
        assert serial.kwargs["devfile"] == "/dev/rfcomm0"
        assert serial.kwargs["baudrate"] == 9600
        assert serial.opened and serial.closed

    async def test_open_failure_is_unreachable(self, engine: ProbeEngine) -> None:
        sys.modules["escpos.printer"].Serial.fail_open = True
        result = await engine.probe(SerialEndpoint("/dev/ttyUSB7"))
        assert result.outcome is ProbeOutcome.UNREACHABLE
        assert "Could not open port" in (result.reason or "")


class TestBluetoothProbe:
    async def test_connect_verifies_and_disconnects(self) -> None:
        client = MagicMock()
        client.connect = AsyncMock()
        client.disconnect = AsyncMock()
        engine = ProbeEngine(bluetooth_client_factory=MagicMock(return_value=client))

        result = await engine.probe(BluetoothEndpoint("AA:BB:CC:DD:EE:FF", "MTP-II"), 0.5)

        assert result.verified
        client.disconnect.assert_awaited_once()

    async def test_connect_error_is_unreachable(self) -> None:
        client = MagicMock()
        client.connect = AsyncMock(side_effect=BleakError("not found"))
        client.disconnect = AsyncMock()
        engine = ProbeEngine(bluetooth_client_factory=MagicMock(return_value=client))

        result = await engine.probe(BluetoothEndpoint("AA:BB:CC:DD:EE:FF"), 0.5)

        assert result.outcome is ProbeOutcome.UNREACHABLE
        client.disconnect.assert_awaited_once()

    async def test_default_timeout_is_bluetooth_specific(self) -> None:
        client = MagicMock()
        client.connect = AsyncMock()
        client.disconnect = AsyncMock()
        factory = MagicMock(return_value=client)
        engine = ProbeEngine(ProbeConfig(timeout=0.2, bluetooth_timeout=4.0), bluetooth_client_factory=factory)

        await engine.probe(BluetoothEndpoint("AA:BB:CC:DD:EE:FF"))

        factory.assert_called_once_with("AA:BB:CC:DD:EE:FF", timeout=4.0)


class TestNeverRaises:
    async def test_unexpected_error_becomes_result(self, engine: ProbeEngine) -> None:
        with patch.object(engine, "probe_network", AsyncMock(side_effect=RuntimeError("boom"))):
            result = await engine.probe(NetworkEndpoint("10.0.0.1"))
        assert result.outcome is ProbeOutcome.UNREACHABLE
        assert result.reason == "boom"
