"""Bluetooth LE discovery and verification of ESC/POS printers."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Iterable
import contextlib
import logging
import time
from typing import TYPE_CHECKING, Any

from bleak import BleakClient, BleakScanner
from bleak.exc import BleakError

from ..errors import ScanCancelledError
from ..models import BluetoothEndpoint, ProbeResult
from ..security import sanitize_log_message
from .candidates import matches_printer_name

if TYPE_CHECKING:
    from .orchestrator import CancelToken

_LOGGER = logging.getLogger(__name__)


async def probe_bluetooth(
    candidate: BluetoothEndpoint,
    timeout: float,
    *,
    client_factory: Callable[..., Any] | None = None,
) -> ProbeResult:
    """Connect then immediately disconnect; a completed connect verifies."""
    factory = client_factory or BleakClient
    client = factory(candidate.device_id, timeout=timeout)
    start = time.perf_counter()
    try:
        await asyncio.wait_for(client.connect(), timeout=timeout)
    except (asyncio.TimeoutError, BleakError, OSError) as err:
        return ProbeResult.unreachable(candidate, sanitize_log_message(str(err) or type(err).__name__))
    finally:
        with contextlib.suppress(Exception):
            await client.disconnect()
    latency_ms = int((time.perf_counter() - start) * 1000)
    return ProbeResult(candidate, reachable=True, verified=True, latency_ms=latency_ms)


class BluetoothScanner:
    """Watch BLE advertisements and probe devices whose name looks like a printer.

    The candidate stream is not known in advance: each matching
    advertisement starts a probe as it arrives. The scan ends on the first
    verified printer or when ``timeout`` elapses.
    """

    def __init__(
        self,
        name_patterns: Iterable[str],
        prober: Callable[[BluetoothEndpoint, float | None], Awaitable[ProbeResult]],
        *,
        timeout: float,
        probe_timeout: float | None = None,
        scanner_factory: Callable[..., Any] | None = None,
    ) -> None:
        self._patterns = tuple(name_patterns)
        self._prober = prober
        self._timeout = timeout
        self._probe_timeout = probe_timeout
        self._scanner_factory = scanner_factory or BleakScanner

    async def scan(self, cancel: CancelToken | None = None) -> list[BluetoothEndpoint]:
        """Return the first verified printer, or nothing once ``timeout`` elapses.

        Raises ``ScanCancelledError`` when ``cancel`` fires first; probes
        still in flight are cancelled and nothing found afterwards is kept.
        """
        if cancel is not None and cancel.cancelled:
            raise ScanCancelledError("Scan cancelled")
        found: list[BluetoothEndpoint] = []
        seen: set[str] = set()
        pending: set[asyncio.Task[ProbeResult]] = set()
        done = asyncio.Event()

        async def _verify(endpoint: BluetoothEndpoint) -> ProbeResult:
            result = await self._prober(endpoint, self._probe_timeout)
            if result.verified:
                _LOGGER.info("Bluetooth printer verified: %s", endpoint.describe())
                found.append(endpoint)
                done.set()
            return result

        def _on_advertisement(device: Any, advertisement: Any) -> None:
            name = getattr(advertisement, "local_name", None) or getattr(device, "name", None)
            address = getattr(device, "address", None)
            if not address or address in seen or not matches_printer_name(name, self._patterns):
                return
            seen.add(address)
            _LOGGER.debug("Bluetooth candidate %s (%s)", name, address)
            task = asyncio.ensure_future(_verify(BluetoothEndpoint(address, name or "")))
            pending.add(task)
            task.add_done_callback(pending.discard)

        settled = False
        cancelled = False
        try:
            scanner = self._scanner_factory(detection_callback=_on_advertisement)
            async with scanner:
                cancelled = await self._wait_for_printer(done, cancel)
            settled = True
        except (BleakError, OSError) as err:
            settled = True
            _LOGGER.info("Bluetooth scan unavailable: %s", sanitize_log_message(str(err)))
        finally:
            if found or cancelled or not settled:
                for task in list(pending):
                    task.cancel()
            if pending:
                await asyncio.gather(*pending, return_exceptions=True)
        if cancelled:
            raise ScanCancelledError("Scan cancelled")
        return found

    async def _wait_for_printer(self, done: asyncio.Event, cancel: CancelToken | None) -> bool:
        """Wait for a verified printer, the timeout, or ``cancel``; True when cancelled."""
        waiters = {asyncio.ensure_future(done.wait())}
        if cancel is not None:
            waiters.add(asyncio.ensure_future(cancel.wait()))
        try:
            await asyncio.wait(waiters, timeout=self._timeout, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for waiter in waiters:
                waiter.cancel()
            await asyncio.gather(*waiters, return_exceptions=True)
        return cancel is not None and cancel.cancelled
