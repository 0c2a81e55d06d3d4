"""Owner of the current printer endpoint and connection status."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Callable
import contextlib
from datetime import datetime, timezone
import logging
from typing import Any

from ..const import DEFAULT_PORT
from ..discovery.orchestrator import CancelToken, ScanOrchestrator
from ..discovery.probe import Prober
from ..errors import InvalidManualEndpointError, ScanCancelledError
from ..models import ConnectionEndpoint, ConnectionStatus, ProbeResult, StatusSnapshot
from ..security import sanitize_log_message
from ..store import SettingsStore, clear_endpoint, load_endpoint, save_endpoint

_LOGGER = logging.getLogger(__name__)

StatusListener = Callable[[ConnectionStatus, ConnectionEndpoint | None], None]
ScanningListener = Callable[[bool], None]


class ConnectionStateMachine:
    """Disconnected -> Scanning -> Connected, for the life of the process.

    Only this object mutates the endpoint/status pair. Reconciliation and
    manual endpoint changes share one lock, so a user-triggered scan and
    the background re-check never run at the same time.
    """

    def __init__(
        self,
        store: SettingsStore,
        prober: Prober,
        orchestrator: ScanOrchestrator,
        *,
        port: int = DEFAULT_PORT,
    ) -> None:
        self._store = store
        self._prober = prober
        self._orchestrator = orchestrator
        self._port = port
        self._snapshot = StatusSnapshot()
        self._lock = asyncio.Lock()
        self._scanning = False
        self._listeners: list[StatusListener] = []
        self._scanning_listeners: list[ScanningListener] = []
        self._active_cancel: CancelToken | None = None
        self._watchers: list[asyncio.Queue[StatusSnapshot]] = []
        self._last_check: datetime | None = None
        self._last_ok: datetime | None = None
        self._last_error: datetime | None = None
        self._last_latency_ms: int | None = None
        self._last_error_reason: str | None = None

    @property
    def status(self) -> ConnectionStatus:
        return self._snapshot.status

    @property
    def endpoint(self) -> ConnectionEndpoint | None:
        return self._snapshot.endpoint

    @property
    def scanning(self) -> bool:
        return self._scanning

    @property
    def busy(self) -> bool:
        """True while a reconciliation or manual change holds the lock."""
        return self._lock.locked()

    def snapshot(self) -> StatusSnapshot:
        return self._snapshot

    def notify_on_change(self, listener: StatusListener) -> Callable[[], None]:
        """Register a transition listener and return an unsubscribe function."""
        self._listeners.append(listener)

        def _remove() -> None:
            with contextlib.suppress(ValueError):
                self._listeners.remove(listener)

        return _remove

    def notify_on_scanning(self, listener: ScanningListener) -> Callable[[], None]:
        self._scanning_listeners.append(listener)

        def _remove() -> None:
            with contextlib.suppress(ValueError):
                self._scanning_listeners.remove(listener)

        return _remove

    async def watch(self, maxsize: int = 16) -> AsyncIterator[StatusSnapshot]:
        """Yield the current snapshot, then every transition.

        A slow consumer loses the oldest queued transitions first, never
        the newest.
        """
        queue: asyncio.Queue[StatusSnapshot] = asyncio.Queue(maxsize=max(1, maxsize))
        self._watchers.append(queue)
        try:
            yield self._snapshot
            while True:
                yield await queue.get()
        finally:
            with contextlib.suppress(ValueError):
                self._watchers.remove(queue)

    def get_diagnostics(self) -> dict[str, Any]:
        def _iso(dt_obj: datetime | None) -> str | None:
            return dt_obj.isoformat() if dt_obj is not None else None

        return {
            "status": self._snapshot.status.value,
            "endpoint": self._snapshot.endpoint.describe() if self._snapshot.endpoint else None,
            "endpoint_kind": self._snapshot.endpoint_kind,
            "scanning": self._scanning,
            "last_check": _iso(self._last_check),
            "last_ok": _iso(self._last_ok),
            "last_error": _iso(self._last_error),
            "last_latency_ms": self._last_latency_ms,
            "last_error_reason": self._last_error_reason,
        }

    async def reconcile(self, *, cancel: CancelToken | None = None) -> StatusSnapshot:
        """Re-test the persisted endpoint, falling back to a fresh scan."""
        async with self._lock:
            return await self._reconcile_locked(cancel)

    async def reconcile_if_idle(self) -> StatusSnapshot | None:
        """Reconcile unless another reconciliation is already running."""
        if self._lock.locked():
            _LOGGER.debug("Reconciliation already in progress; skipping")
            return None
        return await self.reconcile()

    async def _reconcile_locked(self, cancel: CancelToken | None) -> StatusSnapshot:
        persisted = load_endpoint(self._store, port=self._port)
        if persisted is not None:
            result = await self._prober(persisted, None)
            self._record_probe(result)
            if result.verified:
                self._transition(ConnectionStatus.CONNECTED, persisted)
                return self._snapshot
            _LOGGER.warning(
                "Saved printer %s no longer responds (%s); clearing it",
                persisted.describe(),
                sanitize_log_message(result.reason or "unreachable"),
            )
            clear_endpoint(self._store)
            self._transition(ConnectionStatus.DISCONNECTED)

        self._transition(ConnectionStatus.SCANNING)
        self._set_scanning(True)
        self._active_cancel = cancel = cancel or CancelToken()
        try:
            found = await self._orchestrator.discover(cancel=cancel)
        except ScanCancelledError:
            _LOGGER.info("Printer scan cancelled")
            self._transition(ConnectionStatus.DISCONNECTED)
            raise
        except Exception:
            self._transition(ConnectionStatus.DISCONNECTED)
            raise
        finally:
            self._active_cancel = None
            self._set_scanning(False)

        self._last_check = datetime.now(timezone.utc)
        if not found:
            _LOGGER.info("No printer found")
            self._last_error = self._last_check
            self._last_error_reason = "no printer found"
            self._transition(ConnectionStatus.DISCONNECTED)
            return self._snapshot

        selected = found[0]
        if len(found) > 1:
            _LOGGER.info(
                "Several printers answered (%s); using %s",
                ", ".join(e.describe() for e in found),
                selected.describe(),
            )
        save_endpoint(self._store, selected)
        self._last_ok = self._last_check
        self._last_error_reason = None
        self._transition(ConnectionStatus.CONNECTED, selected)
        return self._snapshot

    async def scan_network(
        self, mode: str | None = None, *, cancel: CancelToken | None = None
    ) -> list[ConnectionEndpoint]:
        """Run a user-requested network scan without adopting any result.

        Shares the reconciliation lock; the status is left as it is and
        only the aggregate scanning signal is emitted.
        """
        async with self._lock:
            self._set_scanning(True)
            self._active_cancel = cancel = cancel or CancelToken()
            try:
                return await self._orchestrator.scan_network(mode, cancel=cancel)
            finally:
                self._active_cancel = None
                self._set_scanning(False)

    def cancel_scan(self) -> bool:
        """Abandon the scan in progress, if any."""
        if self._active_cancel is None:
            return False
        self._active_cancel.cancel()
        return True

    async def set_endpoint_manually(self, endpoint: ConnectionEndpoint) -> StatusSnapshot:
        """Verify and adopt a user supplied endpoint.

        Raises:
            InvalidManualEndpointError: the endpoint did not verify; the
                current status and persisted endpoint are left untouched
        """
        async with self._lock:
            result = await self._prober(endpoint, None)
            self._record_probe(result)
            if not result.verified:
                _LOGGER.warning("Manual printer %s failed verification", endpoint.describe())
                raise InvalidManualEndpointError(endpoint.describe(), result.reason or "printer did not respond")
            save_endpoint(self._store, endpoint)
            self._transition(ConnectionStatus.CONNECTED, endpoint)
            return self._snapshot

    def _record_probe(self, result: ProbeResult) -> None:
        now = datetime.now(timezone.utc)
        self._last_check = now
        self._last_latency_ms = result.latency_ms
        if result.verified:
            self._last_ok = now
            self._last_error_reason = None
        else:
            self._last_error = now
            self._last_error_reason = sanitize_log_message(result.reason or "unreachable")

    def _transition(self, status: ConnectionStatus, endpoint: ConnectionEndpoint | None = None) -> None:
        if status is not ConnectionStatus.CONNECTED:
            endpoint = None
        new = StatusSnapshot(status, endpoint)
        if new == self._snapshot:
            return
        old, self._snapshot = self._snapshot, new
        _LOGGER.info(
            "Printer status %s -> %s%s",
            old.status.value,
            new.status.value,
            f" ({endpoint.describe()})" if endpoint is not None else "",
        )
        for cb in list(self._listeners):
            with contextlib.suppress(Exception):
                cb(new.status, new.endpoint)
        for queue in list(self._watchers):
            if queue.full():
                queue.get_nowait()
            queue.put_nowait(new)

    def _set_scanning(self, scanning: bool) -> None:
        if self._scanning == scanning:
            return
        self._scanning = scanning
        for cb in list(self._scanning_listeners):
            with contextlib.suppress(Exception):
                cb(scanning)
