from __future__ import annotations

import asyncio
from collections.abc import Generator, Iterable
import sys
import types
from typing import Any

import pytest

from stickyprint.models import ConnectionEndpoint, ProbeResult
from stickyprint.printer.transport import PrinterDevice
from stickyprint.store import MemorySettingsStore


@pytest.fixture(autouse=True)
def fake_escpos_module(monkeypatch: pytest.MonkeyPatch) -> Generator[dict[str, list[Any]], None, None]:
    """Replace python-escpos with recorders so no test touches real hardware."""
    escpos = types.ModuleType("escpos")
    printer = types.ModuleType("escpos.printer")
    created: dict[str, list[Any]] = {"network": [], "serial": []}

    class _FakeDummyPrinter:
        """Fake Dummy printer that collects ESC/POS commands."""

        def __init__(self, *_, **kwargs):  # type: ignore[no-untyped-def]
            self._buffer = b""
            self.kwargs = kwargs
            self.set_calls: list[dict[str, Any]] = []

        @property
        def output(self) -> bytes:
            """Return accumulated ESC/POS data."""
            return self._buffer

        def set(self, *_: Any, **kwargs: Any) -> None:
            self.set_calls.append(kwargs)
            self._buffer += b"\x1b@"  # ESC @ (initialize)

        def text(self, text: str = "", *_: Any, **__: Any) -> None:
            self._buffer += text.encode("utf-8", errors="replace")

        def image(self, *_: Any, **__: Any) -> None:
            self._buffer += b"\x1dIMG"  # Fake image command

        def cut(self, *_: Any, **__: Any) -> None:
            self._buffer += b"\x1dV"  # ESC/POS cut

        def ln(self, lines: int = 1) -> None:
            self._buffer += b"\n" * lines

        def _raw(self, data: bytes = b"", *_, **__):  # type: ignore[no-untyped-def]
            self._buffer += data

    class _FakeDevicePrinter(_FakeDummyPrinter):
        kind = ""
        fail_open = False

        def __init__(self, *args: Any, **kwargs: Any) -> None:
            super().__init__(*args, **kwargs)
            self.args = args
            self.opened = False
            self.closed = False
            created[self.kind].append(self)

        def open(self) -> None:
            if type(self).fail_open:
                raise OSError("Could not open port")
            self.opened = True

        def close(self) -> None:
            self.closed = True

    class _FakeNetworkPrinter(_FakeDevicePrinter):
        kind = "network"

    class _FakeSerialPrinter(_FakeDevicePrinter):
        kind = "serial"

    printer.Dummy = _FakeDummyPrinter  # type: ignore[attr-defined]
    printer.Network = _FakeNetworkPrinter  # type: ignore[attr-defined]
    printer.Serial = _FakeSerialPrinter  # type: ignore[attr-defined]
    escpos.printer = printer  # type: ignore[attr-defined]

    monkeypatch.setitem(sys.modules, "escpos", escpos)
    monkeypatch.setitem(sys.modules, "escpos.printer", printer)
    yield created


@pytest.fixture
def store() -> MemorySettingsStore:
    return MemorySettingsStore()


class ScriptedProber:
    """Prober double answering from a fixed set of verified endpoints.

    ``delays`` maps an endpoint to the seconds its probe takes, so tests can
    make responders finish out of order.
    """

    def __init__(
        self,
        verified: Iterable[ConnectionEndpoint] = (),
        delays: dict[ConnectionEndpoint, float] | None = None,
        *,
        raises: Iterable[ConnectionEndpoint] = (),
    ) -> None:
        self.verified = set(verified)
        self.delays = delays or {}
        self.raises = set(raises)
        self.calls: list[ConnectionEndpoint] = []

    async def __call__(self, candidate: ConnectionEndpoint, timeout: float | None = None) -> ProbeResult:
        self.calls.append(candidate)
        delay = self.delays.get(candidate, 0)
        if delay:
            await asyncio.sleep(delay)
        if candidate in self.raises:
            raise RuntimeError("probe blew up")
        if candidate in self.verified:
            return ProbeResult(candidate, reachable=True, verified=True, latency_ms=int(delay * 1000))
        return ProbeResult.unreachable(candidate, "TimeoutError")


@pytest.fixture
def scripted_prober() -> type[ScriptedProber]:
    return ScriptedProber


class FakeDevice(PrinterDevice):
    """Device double recording every open/write/close."""

    def __init__(self, endpoint: ConnectionEndpoint, *, fail_open: bool = False, fail_write: bool = False) -> None:
        super().__init__(endpoint)
        self.fail_open = fail_open
        self.fail_write = fail_write
        self.ops: list[str] = []
        self.written: list[bytes] = []

    async def open(self) -> None:
        self.ops.append("open")
        if self.fail_open:
            raise OSError("Connection refused")

    async def write(self, data: bytes) -> None:
        self.ops.append("write")
        if self.fail_write:
            raise OSError("Broken pipe")
        self.written.append(data)

    async def close(self) -> None:
        self.ops.append("close")


class DeviceRecorder:
    """Device factory handing out FakeDevice instances and keeping them."""

    def __init__(self) -> None:
        self.devices: list[FakeDevice] = []
        self.fail_open = False
        self.fail_write = False

    def __call__(self, endpoint: ConnectionEndpoint) -> FakeDevice:
        device = FakeDevice(endpoint, fail_open=self.fail_open, fail_write=self.fail_write)
        self.devices.append(device)
        return device


@pytest.fixture
def device_recorder() -> DeviceRecorder:
    return DeviceRecorder()
