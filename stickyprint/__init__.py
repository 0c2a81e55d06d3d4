"""Thermal printer discovery, connection tracking and note printing."""

from __future__ import annotations

from .config import AppConfig, PrintConfig, ProbeConfig, RetryPolicy, ScanConfig
from .errors import (
    InvalidManualEndpointError,
    NotConnectedError,
    PrinterError,
    PrinterIOError,
    PrintJobError,
    ScanCancelledError,
)
from .models import (
    BluetoothEndpoint,
    ConnectionEndpoint,
    ConnectionStatus,
    NetworkEndpoint,
    ProbeOutcome,
    ProbeResult,
    SerialEndpoint,
    StatusSnapshot,
)
from .service import PrinterService
from .store import JsonSettingsStore, MemorySettingsStore, SettingsStore

__all__ = [
    "AppConfig",
    "BluetoothEndpoint",
    "ConnectionEndpoint",
    "ConnectionStatus",
    "InvalidManualEndpointError",
    "JsonSettingsStore",
    "MemorySettingsStore",
    "NetworkEndpoint",
    "NotConnectedError",
    "PrintConfig",
    "PrinterError",
    "PrinterIOError",
    "PrinterService",
    "PrintJobError",
    "ProbeConfig",
    "ProbeOutcome",
    "ProbeResult",
    "RetryPolicy",
    "ScanCancelledError",
    "ScanConfig",
    "SerialEndpoint",
    "SettingsStore",
    "StatusSnapshot",
]
