"""Startup reconciliation with exponential backoff, then periodic re-checks."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
import contextlib
import logging

from ..config import RetryPolicy
from ..errors import ScanCancelledError
from ..models import RetryState
from .state_machine import ConnectionStateMachine

_LOGGER = logging.getLogger(__name__)


class RetrySupervisor:
    """Drive ``reconcile()`` until it connects or the attempt ceiling is hit.

    After the startup loop (successful or not) a slow periodic re-check
    runs for the life of the process so that a printer that was power
    cycled or moved comes back without user action.
    """

    def __init__(
        self,
        machine: ConnectionStateMachine,
        policy: RetryPolicy | None = None,
        *,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._machine = machine
        self._policy = policy or RetryPolicy()
        self._sleep = sleep
        self._task: asyncio.Task[None] | None = None
        self.state = RetryState(max_attempts=self._policy.max_attempts)
        self.periodic = False

    @property
    def policy(self) -> RetryPolicy:
        return self._policy

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> asyncio.Task[None]:
        task = self._task
        if task is None or task.done():
            task = self._task = asyncio.ensure_future(self.run())
        return task

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task

    async def run(self) -> None:
        await self.run_startup()
        await self.run_periodic()

    async def _attempt(self) -> bool:
        try:
            snapshot = await self._machine.reconcile()
        except asyncio.CancelledError:
            raise
        except ScanCancelledError:
            _LOGGER.info("Printer scan cancelled by user")
            return False
        except Exception:
            _LOGGER.exception("Printer reconciliation failed")
            return False
        return snapshot.connected

    async def run_startup(self) -> bool:
        """Return True once connected, False when the ceiling is exhausted."""
        self.periodic = False
        self.state.reset()
        self.state.max_attempts = self._policy.max_attempts
        while True:
            self.state.attempt += 1
            if await self._attempt():
                _LOGGER.info("Printer connected after %s attempt(s)", self.state.attempt)
                self.state.reset()
                return True
            if self.state.exhausted:
                _LOGGER.info(
                    "No printer after %s attempts; re-checking every %.0fs",
                    self.state.attempt,
                    self._policy.periodic_interval,
                )
                return False
            delay = self._policy.delay_for(self.state.attempt)
            self.state.next_delay_ms = int(delay * 1000)
            _LOGGER.debug(
                "Retrying printer reconciliation in %.1fs (attempt %s/%s)",
                delay,
                self.state.attempt,
                self.state.max_attempts,
            )
            await self._sleep(delay)

    async def run_periodic(self) -> None:
        self.periodic = True
        interval = self._policy.periodic_interval
        self.state.next_delay_ms = int(interval * 1000)
        while True:
            await self._sleep(interval)
            try:
                await self._machine.reconcile_if_idle()
            except asyncio.CancelledError:
                raise
            except Exception:
                _LOGGER.exception("Periodic printer check failed")
