"""Bounded-time reachability and verification probes for printer candidates."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
import contextlib
import logging
import time
from typing import Any

from ..config import ProbeConfig
from ..const import STATUS_QUERY
from ..models import BluetoothEndpoint, ConnectionEndpoint, NetworkEndpoint, ProbeResult, SerialEndpoint
from ..printer.transport import _get_serial_printer
from ..security import sanitize_log_message
from .bluetooth import probe_bluetooth

_LOGGER = logging.getLogger(__name__)

Prober = Callable[[ConnectionEndpoint, float | None], Awaitable[ProbeResult]]


def is_plausible_status(data: bytes) -> bool:
    """Check a DLE EOT 1 reply: bits 1 and 4 are always set, bit 7 is clear."""
    if len(data) < 1:
        return False
    byte = data[0]
    return (byte & 0x12) == 0x12 and not byte & 0x80


class ProbeEngine:
    """Probe one candidate at a time; every failure resolves to a result."""

    def __init__(
        self,
        config: ProbeConfig | None = None,
        *,
        bluetooth_client_factory: Callable[..., Any] | None = None,
    ) -> None:
        self._config = config or ProbeConfig()
        self._bluetooth_client_factory = bluetooth_client_factory

    @property
    def config(self) -> ProbeConfig:
        return self._config

    async def __call__(self, candidate: ConnectionEndpoint, timeout: float | None = None) -> ProbeResult:
        return await self.probe(candidate, timeout)

    async def probe(self, candidate: ConnectionEndpoint, timeout: float | None = None) -> ProbeResult:
        """Probe a candidate, never raising for transport errors."""
        if timeout is None:
            if isinstance(candidate, BluetoothEndpoint):
                timeout = self._config.bluetooth_timeout
            else:
                timeout = self._config.timeout
        try:
            if isinstance(candidate, NetworkEndpoint):
                return await self.probe_network(candidate, timeout)
            if isinstance(candidate, SerialEndpoint):
                return await self.probe_serial(candidate, timeout)
            if isinstance(candidate, BluetoothEndpoint):
                return await probe_bluetooth(candidate, timeout, client_factory=self._bluetooth_client_factory)
        except asyncio.CancelledError:
            raise
        except Exception as err:
            _LOGGER.debug("Probe of %s failed unexpectedly: %s", candidate.describe(), sanitize_log_message(str(err)))
            return ProbeResult.unreachable(candidate, str(err))
        return ProbeResult.unreachable(candidate, f"unsupported candidate {candidate!r}")

    async def probe_network(self, candidate: NetworkEndpoint, timeout: float) -> ProbeResult:
        start = time.perf_counter()
        try:
            reader, writer = await asyncio.wait_for(
                asyncio.open_connection(candidate.address, candidate.port), timeout=timeout
            )
        except (asyncio.TimeoutError, OSError) as err:
            # Expected for nearly every address in a subnet sweep
            return ProbeResult.unreachable(candidate, type(err).__name__)

        latency_ms = int((time.perf_counter() - start) * 1000)
        try:
            if not self._config.query_status:
                return ProbeResult(candidate, reachable=True, verified=True, latency_ms=latency_ms)
            reply = await self._query_status(reader, writer)
            if is_plausible_status(reply):
                _LOGGER.debug("%s answered status query with %r", candidate.describe(), reply[:1])
                return ProbeResult(candidate, reachable=True, verified=True, latency_ms=latency_ms)
            reason = "unexpected status reply" if reply else "no status reply"
            # An open 9100 listener is accepted by default; see ProbeConfig
            return ProbeResult(
                candidate,
                reachable=True,
                verified=self._config.accept_silent_listener,
                latency_ms=latency_ms,
                reason=reason,
            )
        finally:
            writer.close()
            with contextlib.suppress(Exception):
                await asyncio.wait_for(writer.wait_closed(), timeout=self._config.status_timeout)

    async def _query_status(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> bytes:
        try:
            writer.write(STATUS_QUERY)
            await asyncio.wait_for(writer.drain(), timeout=self._config.status_timeout)
            return await asyncio.wait_for(reader.read(1), timeout=self._config.status_timeout)
        except (asyncio.TimeoutError, OSError):
            return b""

    async def probe_serial(self, candidate: SerialEndpoint, timeout: float) -> ProbeResult:
        """Open and close the port; an open serial device counts as verified."""
        serial_class = _get_serial_printer()
        baudrate = self._config.baudrate

        def _open_close() -> None:
            printer = serial_class(devfile=candidate.path, baudrate=baudrate, timeout=timeout)
            try:
                printer.open()
            finally:
                with contextlib.suppress(Exception):
                    printer.close()

        start = time.perf_counter()
        try:
            await asyncio.wait_for(asyncio.to_thread(_open_close), timeout=timeout + 1.0)
        except asyncio.CancelledError:
            raise
        except Exception as err:
            return ProbeResult.unreachable(candidate, sanitize_log_message(str(err)))
        latency_ms = int((time.perf_counter() - start) * 1000)
        return ProbeResult(candidate, reachable=True, verified=True, latency_ms=latency_ms)
