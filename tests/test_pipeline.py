"""Tests for the print submission pipeline."""

from __future__ import annotations

from unittest.mock import MagicMock

from PIL import Image
import pytest

from stickyprint.config import PrintConfig, ScanConfig
from stickyprint.connection import ConnectionStateMachine
from stickyprint.discovery import ScanOrchestrator
from stickyprint.errors import NotConnectedError, PrinterIOError, PrintJobError
from stickyprint.models import ConnectionStatus, NetworkEndpoint, StatusSnapshot
from stickyprint.printer import PrintPipeline

PRINTER = NetworkEndpoint("192.168.1.20")


def _machine(snapshot: StatusSnapshot) -> MagicMock:
    machine = MagicMock()
    machine.snapshot.return_value = snapshot
    return machine


@pytest.fixture
def connected() -> MagicMock:
    return _machine(StatusSnapshot(ConnectionStatus.CONNECTED, PRINTER))


class TestNotConnected:
    @pytest.mark.parametrize("status", [ConnectionStatus.DISCONNECTED, ConnectionStatus.SCANNING])
    async def test_fails_fast_without_device_operations(self, status, device_recorder) -> None:
        pipeline = PrintPipeline(_machine(StatusSnapshot(status)), device_factory=device_recorder)

        with pytest.raises(NotConnectedError) as err:
            await pipeline.submit("Hello")

        assert err.value.status == status.value
        assert device_recorder.devices == []
        assert pipeline.last_job is None


class TestSubmit:
    async def test_styled_note_is_streamed_and_released(self, connected, device_recorder) -> None:
        """Centered, large, bold note over a connected network printer."""
        pipeline = PrintPipeline(connected, device_factory=device_recorder)

        await pipeline.submit("Hello", alignment="center", size_class="large", bold=True)

        device = device_recorder.devices[0]
        assert device.endpoint == PRINTER
        assert device.ops == ["open", "write", "write", "write", "close"]
        header, body, trailer = device.written
        assert header == b"\x1b@"
        assert body == b"Hello\n"
        assert trailer == b"\n\n\n\x1dV"

    async def test_style_flags_reach_codec(self, connected, device_recorder, monkeypatch) -> None:
        pipeline = PrintPipeline(connected, device_factory=device_recorder)
        buffers = []
        original = pipeline._new_buffer

        def _tracking():  # type: ignore[no-untyped-def]
            buffer = original()
            buffers.append(buffer)
            return buffer

        monkeypatch.setattr(pipeline, "_new_buffer", _tracking)
        await pipeline.submit("Hi", alignment="right", size_class="small", underline=True)

        assert buffers[0].set_calls == [
            {"align": "right", "bold": False, "underline": 1, "custom_size": True, "width": 2, "height": 2}
        ]

    async def test_encoding_is_applied(self, connected, device_recorder) -> None:
        pipeline = PrintPipeline(connected, PrintConfig(encoding="gb18030"), device_factory=device_recorder)

        await pipeline.submit("你好")

        assert device_recorder.devices[0].written[1] == "你好\n".encode("gb18030")

    async def test_left_margin_prefixes_lines(self, connected, device_recorder) -> None:
        pipeline = PrintPipeline(connected, PrintConfig(left_margin=2), device_factory=device_recorder)

        await pipeline.submit("a\n\nb")

        assert device_recorder.devices[0].written[1] == b"  a\n\n  b\n"

    async def test_no_cut_no_feed(self, connected, device_recorder) -> None:
        pipeline = PrintPipeline(connected, PrintConfig(cut="none", feed_lines=0), device_factory=device_recorder)

        await pipeline.submit("x")

        assert device_recorder.devices[0].ops == ["open", "write", "write", "close"]

    async def test_text_too_long_is_rejected(self, connected, device_recorder) -> None:
        pipeline = PrintPipeline(connected, device_factory=device_recorder)
        with pytest.raises(ValueError):
            await pipeline.submit("x" * 10001)
        assert device_recorder.devices == []

    async def test_image(self, connected, device_recorder) -> None:
        pipeline = PrintPipeline(connected, device_factory=device_recorder)

        await pipeline.submit_image(Image.new("1", (8, 8)), alignment="center")

        assert device_recorder.devices[0].written[1] == b"\x1dIMG"


class TestFailures:
    async def test_write_failure_releases_device_and_keeps_status(
        self, store, scripted_prober, device_recorder
    ) -> None:
        orchestrator = ScanOrchestrator(scripted_prober(), ScanConfig(bluetooth=False), bases_provider=list)
        machine = ConnectionStateMachine(store, scripted_prober([PRINTER]), orchestrator)
        await machine.set_endpoint_manually(PRINTER)
        device_recorder.fail_write = True
        pipeline = PrintPipeline(machine, device_factory=device_recorder)

        with pytest.raises(PrinterIOError) as err:
            await pipeline.submit("Hello")

        assert err.value.endpoint == PRINTER
        assert "Broken pipe" in err.value.reason
        assert device_recorder.devices[0].ops == ["open", "write", "close"]
        assert machine.status is ConnectionStatus.CONNECTED
        assert pipeline.last_job is None

    async def test_open_failure(self, connected, device_recorder) -> None:
        device_recorder.fail_open = True
        pipeline = PrintPipeline(connected, device_factory=device_recorder)

        with pytest.raises(PrinterIOError):
            await pipeline.submit("Hello")

        assert device_recorder.devices[0].ops == ["open", "close"]

    async def test_unknown_encoding_is_a_typed_error(self, connected, device_recorder) -> None:
        pipeline = PrintPipeline(connected, PrintConfig(encoding="no-such-codec"), device_factory=device_recorder)

        with pytest.raises(PrintJobError) as err:
            await pipeline.submit("hello")

        assert "no-such-codec" in err.value.reason
        assert device_recorder.devices == []
        assert pipeline.last_job is None

    async def test_device_creation_failure_is_a_typed_error(self, connected) -> None:
        def _broken_factory(_endpoint):  # type: ignore[no-untyped-def]
            raise ImportError("escpos backend unavailable")

        pipeline = PrintPipeline(connected, device_factory=_broken_factory)

        with pytest.raises(PrinterIOError) as err:
            await pipeline.submit("hello")

        assert err.value.endpoint == PRINTER
        assert "backend unavailable" in err.value.reason


class TestReprint:
    async def test_nothing_to_reprint(self, connected, device_recorder) -> None:
        pipeline = PrintPipeline(connected, device_factory=device_recorder)
        assert await pipeline.reprint_last() is False
        assert device_recorder.devices == []

    async def test_reprint_sends_same_bytes(self, connected, device_recorder) -> None:
        pipeline = PrintPipeline(connected, device_factory=device_recorder)
        await pipeline.submit("Hello", size_class="medium")

        assert await pipeline.reprint_last() is True

        first, second = device_recorder.devices
        assert first.written == second.written
