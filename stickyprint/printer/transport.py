"""Device abstraction over the ESC/POS transport libraries."""

from __future__ import annotations

from abc import ABC, abstractmethod
import asyncio
from collections.abc import AsyncIterator, Callable
import contextlib
import logging
from typing import Any

from bleak import BleakClient

from ..config import PrintConfig, ProbeConfig
from ..models import BluetoothEndpoint, ConnectionEndpoint, NetworkEndpoint, SerialEndpoint

_LOGGER = logging.getLogger(__name__)


# Late import of python-escpos so a broken native dependency only fails when used
def _get_network_printer() -> type[Any]:
    from escpos.printer import Network  # noqa: PLC0415

    return Network  # type: ignore[no-any-return]


def _get_serial_printer() -> type[Any]:
    from escpos.printer import Serial  # noqa: PLC0415

    return Serial  # type: ignore[no-any-return]


class PrinterDevice(ABC):
    """Open/write/close over one endpoint; one instance per print job."""

    def __init__(self, endpoint: ConnectionEndpoint) -> None:
        self.endpoint = endpoint

    @abstractmethod
    async def open(self) -> None:
        """Open the underlying transport."""

    @abstractmethod
    async def write(self, data: bytes) -> None:
        """Write raw ESC/POS bytes."""

    @abstractmethod
    async def close(self) -> None:
        """Close the transport; safe to call more than once."""


class EscposDevice(PrinterDevice):
    """Network or serial device backed by a python-escpos printer object."""

    def __init__(self, endpoint: ConnectionEndpoint, factory: Callable[[], Any]) -> None:
        super().__init__(endpoint)
        self._factory = factory
        self._printer: Any = None

    async def open(self) -> None:
        def _open() -> Any:
            printer = self._factory()
            printer.open()
            return printer

        self._printer = await asyncio.to_thread(_open)

    async def write(self, data: bytes) -> None:
        if self._printer is None:
            raise RuntimeError("Device is not open")
        await asyncio.to_thread(self._printer._raw, data)

    async def close(self) -> None:
        printer, self._printer = self._printer, None
        if printer is not None:
            await asyncio.to_thread(printer.close)


class BluetoothDevice(PrinterDevice):
    """BLE printer fed through a writable GATT characteristic."""

    def __init__(
        self,
        endpoint: BluetoothEndpoint,
        *,
        characteristic: str,
        chunk_size: int,
        timeout: float,
        client_factory: Callable[..., Any] | None = None,
    ) -> None:
        super().__init__(endpoint)
        self._characteristic = characteristic
        self._chunk_size = chunk_size
        self._timeout = timeout
        self._client_factory = client_factory or BleakClient
        self._client: Any = None

    async def open(self) -> None:
        client = self._client_factory(self.endpoint.device_id, timeout=self._timeout)  # type: ignore[union-attr]
        await client.connect()
        self._client = client

    async def write(self, data: bytes) -> None:
        if self._client is None:
            raise RuntimeError("Device is not open")
        for offset in range(0, len(data), self._chunk_size):
            chunk = data[offset : offset + self._chunk_size]
            await self._client.write_gatt_char(self._characteristic, chunk, response=True)

    async def close(self) -> None:
        client, self._client = self._client, None
        if client is not None:
            await client.disconnect()


def create_device(
    endpoint: ConnectionEndpoint,
    printing: PrintConfig | None = None,
    probe: ProbeConfig | None = None,
) -> PrinterDevice:
    """Factory function to create the device matching an endpoint kind."""
    printing = printing or PrintConfig()
    probe = probe or ProbeConfig()
    if isinstance(endpoint, NetworkEndpoint):
        network_class = _get_network_printer()
        return EscposDevice(
            endpoint,
            lambda: network_class(endpoint.address, port=endpoint.port, timeout=printing.timeout),
        )
    if isinstance(endpoint, SerialEndpoint):
        serial_class = _get_serial_printer()
        return EscposDevice(
            endpoint,
            lambda: serial_class(devfile=endpoint.path, baudrate=probe.baudrate, timeout=printing.timeout),
        )
    return BluetoothDevice(
        endpoint,
        characteristic=printing.bluetooth_characteristic,
        chunk_size=printing.bluetooth_chunk_size,
        timeout=printing.timeout,
    )


@contextlib.asynccontextmanager
async def opened(device: PrinterDevice) -> AsyncIterator[PrinterDevice]:
    """Open a device and guarantee it is closed however the block exits."""
    try:
        await device.open()
        yield device
    finally:
        try:
            await device.close()
        except Exception as err:
            _LOGGER.debug("Closing %s failed: %s", device.endpoint.describe(), err)
