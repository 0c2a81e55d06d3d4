"""Batched fan-out of probes across candidate endpoints."""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Iterable, Iterator
import contextlib
import itertools
import logging
import time
from typing import Any

from ..config import ScanConfig
from ..const import DEFAULT_PORT
from ..errors import ScanCancelledError
from ..models import BluetoothEndpoint, ConnectionEndpoint, ProbeResult
from .bluetooth import BluetoothScanner
from .candidates import local_network_bases, network_candidates
from .probe import Prober
from .ranking import PreferredRangeRanking, Ranking

_LOGGER = logging.getLogger(__name__)


class CancelToken:
    """Lets a caller abandon a running scan between or during batches."""

    def __init__(self) -> None:
        self._event = asyncio.Event()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        self._event.set()

    async def wait(self) -> None:
        await self._event.wait()


def _batched(items: Iterable[ConnectionEndpoint], size: int) -> Iterator[list[ConnectionEndpoint]]:
    iterator = iter(items)
    while batch := list(itertools.islice(iterator, size)):
        yield batch


class ScanOrchestrator:
    """Probe candidates in fixed-size batches and rank every verified endpoint.

    Batches run strictly in sequence; probes within a batch run
    concurrently and one failing probe never cancels its batch-mates.
    """

    def __init__(
        self,
        prober: Prober,
        config: ScanConfig | None = None,
        *,
        port: int = DEFAULT_PORT,
        ranking: Ranking | None = None,
        bases_provider: Callable[[], list[str]] = local_network_bases,
        bluetooth_scanner_factory: Callable[..., Any] | None = None,
    ) -> None:
        self._prober = prober
        self._config = config or ScanConfig()
        self._port = port
        self._ranking: Ranking = ranking or PreferredRangeRanking()
        self._bases_provider = bases_provider
        self._bluetooth_scanner_factory = bluetooth_scanner_factory

    @property
    def config(self) -> ScanConfig:
        return self._config

    async def scan(
        self,
        candidates: Iterable[ConnectionEndpoint] | None = None,
        concurrency: int | None = None,
        mode: str | None = None,
        *,
        timeout: float | None = None,
        cancel: CancelToken | None = None,
    ) -> list[ConnectionEndpoint]:
        """Return every verified candidate, best first.

        When ``candidates`` is omitted they are generated from the local
        interfaces for ``mode`` (quick or full).
        """
        mode = mode or self._config.mode
        if candidates is None:
            candidates = network_candidates(mode, self._bases_provider(), port=self._port)
        batch_size = max(1, int(concurrency or self._config.batch_size))

        start = time.perf_counter()
        verified: list[ConnectionEndpoint] = []
        probed = 0
        for batch in _batched(candidates, batch_size):
            if cancel is not None and cancel.cancelled:
                raise ScanCancelledError("Scan cancelled")
            results = await self._run_batch(batch, timeout, cancel)
            probed += len(batch)
            for candidate, result in zip(batch, results):
                if isinstance(result, BaseException):
                    _LOGGER.debug("Probe of %s raised %r", candidate.describe(), result)
                    continue
                if result.verified:
                    _LOGGER.info("Found printer candidate at %s", candidate.describe())
                    verified.append(result.candidate)

        _LOGGER.info(
            "%s scan probed %s candidates in %.1fs, %s verified",
            mode,
            probed,
            time.perf_counter() - start,
            len(verified),
        )
        return self._ranking(verified)

    async def _run_batch(
        self,
        batch: list[ConnectionEndpoint],
        timeout: float | None,
        cancel: CancelToken | None,
    ) -> list[ProbeResult | BaseException]:
        tasks = [asyncio.ensure_future(self._prober(candidate, timeout)) for candidate in batch]
        gathered = asyncio.gather(*tasks, return_exceptions=True)
        if cancel is None:
            return list(await gathered)

        cancel_wait = asyncio.ensure_future(cancel.wait())
        try:
            await asyncio.wait({gathered, cancel_wait}, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            gathered.cancel()
            raise
        finally:
            cancel_wait.cancel()
        if not gathered.done():
            for task in tasks:
                task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await gathered
            raise ScanCancelledError("Scan cancelled")
        return list(gathered.result())

    async def scan_network(
        self, mode: str | None = None, *, cancel: CancelToken | None = None
    ) -> list[ConnectionEndpoint]:
        return await self.scan(None, mode=mode, cancel=cancel)

    async def scan_bluetooth(self, *, cancel: CancelToken | None = None) -> list[BluetoothEndpoint]:
        kwargs: dict[str, Any] = {"timeout": self._config.bluetooth_timeout}
        if self._bluetooth_scanner_factory is not None:
            kwargs["scanner_factory"] = self._bluetooth_scanner_factory
        scanner = BluetoothScanner(self._config.bluetooth_name_patterns, self._prober, **kwargs)
        return await scanner.scan(cancel)

    async def discover(self, mode: str | None = None, *, cancel: CancelToken | None = None) -> list[ConnectionEndpoint]:
        """Scan network and Bluetooth concurrently; the first non-empty result wins.

        A fired ``cancel`` token aborts both halves with ``ScanCancelledError``.
        """
        pending: set[asyncio.Future[Any]] = {asyncio.ensure_future(self.scan_network(mode, cancel=cancel))}
        if self._config.bluetooth:
            pending.add(asyncio.ensure_future(self.scan_bluetooth(cancel=cancel)))
        cancel_wait = asyncio.ensure_future(cancel.wait()) if cancel is not None else None
        try:
            while pending:
                waiting = pending | {cancel_wait} if cancel_wait is not None else pending
                done, _ = await asyncio.wait(waiting, return_when=asyncio.FIRST_COMPLETED)
                if cancel is not None and cancel.cancelled:
                    pending |= done - {cancel_wait}
                    raise ScanCancelledError("Scan cancelled")
                pending -= done
                for task in done:
                    err = task.exception()
                    if isinstance(err, ScanCancelledError):
                        raise err
                    if err is not None:
                        _LOGGER.warning("Discovery task failed: %s", err)
                        continue
                    found = task.result()
                    if found:
                        return list(found)
            return []
        finally:
            if cancel_wait is not None:
                cancel_wait.cancel()
            for task in pending:
                task.cancel()
            if pending:
                await asyncio.gather(*pending, return_exceptions=True)
