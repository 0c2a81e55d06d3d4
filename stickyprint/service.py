"""UI-facing facade wiring discovery, connection tracking and printing."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
import contextlib
import logging
from typing import TYPE_CHECKING, Any

from .config import AppConfig
from .connection import ConnectionStateMachine, RetrySupervisor
from .diagnostics import get_diagnostics
from .discovery import ProbeEngine, Prober, ScanOrchestrator
from .errors import InvalidManualEndpointError
from .models import (
    BluetoothEndpoint,
    ConnectionEndpoint,
    ConnectionStatus,
    NetworkEndpoint,
    SerialEndpoint,
    StatusSnapshot,
)
from .printer import PrintPipeline, size_class_for_point_size
from .printer.pipeline import DeviceFactory
from .security import sanitize_log_message, validate_ipv4, validate_serial_path
from .store import JsonSettingsStore, SettingsStore

if TYPE_CHECKING:
    from PIL import Image

_LOGGER = logging.getLogger(__name__)

ConnectionChangedCallback = Callable[[ConnectionStatus, str | None], None]
ScanningChangedCallback = Callable[[bool], None]


def _list_serial_devices() -> list[str]:
    from serial.tools import list_ports  # noqa: PLC0415

    return sorted(port.device for port in list_ports.comports())


class PrinterService:
    """Everything the note editor needs from the printer core.

    ``connection_changed`` callbacks fire only when the printer becomes
    connected, stops being connected, or the connected printer changes;
    intermediate Disconnected/Scanning steps are reported through the
    scanning signal instead.
    """

    def __init__(
        self,
        config: AppConfig | None = None,
        store: SettingsStore | None = None,
        *,
        prober: Prober | None = None,
        orchestrator: ScanOrchestrator | None = None,
        device_factory: DeviceFactory | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._config = config or AppConfig()
        self._store: SettingsStore = store if store is not None else JsonSettingsStore()
        port = self._config.probe.port
        self._prober: Prober = prober or ProbeEngine(self._config.probe)
        self._orchestrator = orchestrator or ScanOrchestrator(self._prober, self._config.scan, port=port)
        self.machine = ConnectionStateMachine(self._store, self._prober, self._orchestrator, port=port)
        self.supervisor = RetrySupervisor(self.machine, self._config.retry, sleep=sleep)
        self.pipeline = PrintPipeline(
            self.machine,
            self._config.printing,
            probe_config=self._config.probe,
            device_factory=device_factory,
        )
        self._connection_callbacks: list[ConnectionChangedCallback] = []
        self._last_connected: StatusSnapshot = StatusSnapshot()
        self._unsubscribe = self.machine.notify_on_change(self._handle_transition)

    @property
    def config(self) -> AppConfig:
        return self._config

    async def start(self) -> None:
        """Kick off startup reconciliation in the background."""
        _LOGGER.debug("Starting printer service")
        self.supervisor.start()

    async def stop(self) -> None:
        self.machine.cancel_scan()
        await self.supervisor.stop()

    async def __aenter__(self) -> PrinterService:
        await self.start()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.stop()

    def on_connection_changed(self, callback: ConnectionChangedCallback) -> Callable[[], None]:
        """Subscribe to (status, endpoint kind) changes into or out of Connected."""
        self._connection_callbacks.append(callback)

        def _remove() -> None:
            with contextlib.suppress(ValueError):
                self._connection_callbacks.remove(callback)

        return _remove

    def on_scanning_changed(self, callback: ScanningChangedCallback) -> Callable[[], None]:
        return self.machine.notify_on_scanning(callback)

    def _handle_transition(self, status: ConnectionStatus, endpoint: ConnectionEndpoint | None) -> None:
        new = StatusSnapshot(status, endpoint)
        old = self._last_connected
        if not new.connected and not old.connected:
            return
        if new.connected and old.connected and new.endpoint == old.endpoint:
            return
        self._last_connected = new
        for cb in list(self._connection_callbacks):
            with contextlib.suppress(Exception):
                cb(new.status, new.endpoint_kind)

    def get_printer_status(self) -> StatusSnapshot:
        return self.machine.snapshot()

    async def refresh_printer_status(self) -> StatusSnapshot:
        """Re-check the saved printer now, scanning if it is gone."""
        return await self.machine.reconcile()

    async def scan_network_printers(self, mode: str | None = None) -> list[str]:
        """Return the address of every verified network printer, best first."""
        found = await self.machine.scan_network(mode)
        return [e.address for e in found if isinstance(e, NetworkEndpoint)]

    def cancel_scan(self) -> bool:
        return self.machine.cancel_scan()

    async def set_printer_ip(self, address: str) -> StatusSnapshot:
        """Verify and adopt a network printer entered by the user.

        Raises:
            InvalidManualEndpointError: malformed address or no response
        """
        try:
            address = validate_ipv4(address)
        except ValueError as err:
            raise InvalidManualEndpointError(str(address), str(err)) from err
        return await self.machine.set_endpoint_manually(NetworkEndpoint(address, port=self._config.probe.port))

    async def save_printer_path(self, path: str) -> StatusSnapshot:
        try:
            path = validate_serial_path(path)
        except ValueError as err:
            raise InvalidManualEndpointError(str(path), str(err)) from err
        return await self.machine.set_endpoint_manually(SerialEndpoint(path))

    async def set_bluetooth_device(self, device_id: str, device_name: str = "") -> StatusSnapshot:
        if not device_id:
            raise InvalidManualEndpointError(str(device_id), "empty device id")
        return await self.machine.set_endpoint_manually(BluetoothEndpoint(device_id, device_name))

    async def list_serial_ports(self) -> list[str]:
        """Enumerate serial device paths; an enumeration failure yields []."""
        try:
            return await asyncio.to_thread(_list_serial_devices)
        except Exception as err:
            _LOGGER.warning("Could not list serial ports: %s", sanitize_log_message(str(err)))
            return []

    async def print(
        self,
        text: str,
        alignment: str | None = None,
        font_size: int | float | None = None,
        bold: bool = False,
        underline: bool = False,
    ) -> None:
        """Print a note; ``font_size`` is the editor's point size."""
        size_class = size_class_for_point_size(font_size) if font_size is not None else None
        await self.pipeline.submit(text, alignment, size_class, bold, underline)

    async def print_image(self, image: Image.Image, alignment: str | None = None) -> None:
        await self.pipeline.submit_image(image, alignment)

    async def reprint_last(self) -> bool:
        return await self.pipeline.reprint_last()

    def diagnostics(self) -> dict[str, Any]:
        return get_diagnostics(self)
