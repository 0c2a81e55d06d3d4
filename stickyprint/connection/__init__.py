"""Connection state tracking and the reconciliation supervisor."""

from __future__ import annotations

from .state_machine import ConnectionStateMachine, ScanningListener, StatusListener
from .supervisor import RetrySupervisor

__all__ = [
    "ConnectionStateMachine",
    "RetrySupervisor",
    "ScanningListener",
    "StatusListener",
]
