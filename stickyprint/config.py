"""Configuration dataclasses for discovery, retry and printing."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import voluptuous as vol

from .const import (
    ALIGN_CHOICES,
    BLUETOOTH_CHUNK_SIZE,
    BLUETOOTH_NAME_PATTERNS,
    BLUETOOTH_WRITE_CHARACTERISTIC,
    CUT_CHOICES,
    DEFAULT_BACKOFF_MULTIPLIER,
    DEFAULT_BASE_DELAY,
    DEFAULT_BATCH_SIZE,
    DEFAULT_BAUDRATE,
    DEFAULT_BLUETOOTH_PROBE_TIMEOUT,
    DEFAULT_BLUETOOTH_SCAN_TIMEOUT,
    DEFAULT_CUT,
    DEFAULT_FEED_LINES,
    DEFAULT_MAX_ATTEMPTS,
    DEFAULT_MAX_DELAY,
    DEFAULT_PERIODIC_INTERVAL,
    DEFAULT_PORT,
    DEFAULT_PRINT_TIMEOUT,
    DEFAULT_PROBE_TIMEOUT,
    DEFAULT_STATUS_TIMEOUT,
    SCAN_MODE_FULL,
    SCAN_MODE_QUICK,
)
from .security import MAX_FEED_LINES, validate_encoding, validate_timeout


@dataclass
class ProbeConfig:
    """Per-candidate probe tuning."""

    port: int = DEFAULT_PORT
    timeout: float = DEFAULT_PROBE_TIMEOUT
    status_timeout: float = DEFAULT_STATUS_TIMEOUT
    query_status: bool = True
    # Many compatible printers never answer DLE EOT; an open 9100 listener
    # is then accepted as verified. Disable to require a status byte.
    accept_silent_listener: bool = True
    baudrate: int = DEFAULT_BAUDRATE
    bluetooth_timeout: float = DEFAULT_BLUETOOTH_PROBE_TIMEOUT


@dataclass
class ScanConfig:
    mode: str = SCAN_MODE_QUICK
    batch_size: int = DEFAULT_BATCH_SIZE
    bluetooth: bool = True
    bluetooth_timeout: float = DEFAULT_BLUETOOTH_SCAN_TIMEOUT
    bluetooth_name_patterns: tuple[str, ...] = BLUETOOTH_NAME_PATTERNS


@dataclass(frozen=True)
class RetryPolicy:
    """Backoff schedule for the startup reconciliation loop (seconds)."""

    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    base_delay: float = DEFAULT_BASE_DELAY
    multiplier: float = DEFAULT_BACKOFF_MULTIPLIER
    max_delay: float = DEFAULT_MAX_DELAY
    periodic_interval: float = DEFAULT_PERIODIC_INTERVAL

    def delay_for(self, attempt: int) -> float:
        """Delay to wait after the given 1-based failed attempt."""
        return min(self.max_delay, self.base_delay * (self.multiplier ** max(0, attempt - 1)))


@dataclass
class PrintConfig:
    timeout: float = DEFAULT_PRINT_TIMEOUT
    encoding: str | None = None
    profile: str | None = None
    left_margin: int = 0
    feed_lines: int = DEFAULT_FEED_LINES
    cut: str = DEFAULT_CUT
    default_align: str = "center"
    bluetooth_characteristic: str = BLUETOOTH_WRITE_CHARACTERISTIC
    bluetooth_chunk_size: int = BLUETOOTH_CHUNK_SIZE


@dataclass
class AppConfig:
    probe: ProbeConfig = field(default_factory=ProbeConfig)
    scan: ScanConfig = field(default_factory=ScanConfig)
    retry: RetryPolicy = field(default_factory=RetryPolicy)
    printing: PrintConfig = field(default_factory=PrintConfig)

    @classmethod
    def from_mapping(cls, raw: dict[str, Any] | None) -> AppConfig:
        """Build a config from user overrides, validating every section."""
        data = CONFIG_SCHEMA(dict(raw or {}))
        probe = data.get("probe", {})
        scan = data.get("scan", {})
        retry = data.get("retry", {})
        printing = data.get("printing", {})
        if "bluetooth_name_patterns" in scan:
            scan["bluetooth_name_patterns"] = tuple(scan["bluetooth_name_patterns"])
        return cls(
            probe=ProbeConfig(**probe),
            scan=ScanConfig(**scan),
            retry=RetryPolicy(**retry),
            printing=PrintConfig(**printing),
        )


_TIMEOUT = vol.All(vol.Coerce(float), validate_timeout)

PROBE_SCHEMA = vol.Schema(
    {
        vol.Optional("port"): vol.All(vol.Coerce(int), vol.Range(min=1, max=65535)),
        vol.Optional("timeout"): _TIMEOUT,
        vol.Optional("status_timeout"): _TIMEOUT,
        vol.Optional("query_status"): bool,
        vol.Optional("accept_silent_listener"): bool,
        vol.Optional("baudrate"): vol.All(vol.Coerce(int), vol.Range(min=300)),
        vol.Optional("bluetooth_timeout"): _TIMEOUT,
    }
)

SCAN_SCHEMA = vol.Schema(
    {
        vol.Optional("mode"): vol.In([SCAN_MODE_QUICK, SCAN_MODE_FULL]),
        vol.Optional("batch_size"): vol.All(vol.Coerce(int), vol.Range(min=1, max=254)),
        vol.Optional("bluetooth"): bool,
        vol.Optional("bluetooth_timeout"): _TIMEOUT,
        vol.Optional("bluetooth_name_patterns"): [vol.All(str, vol.Length(min=1))],
    }
)

RETRY_SCHEMA = vol.Schema(
    {
        vol.Optional("max_attempts"): vol.All(vol.Coerce(int), vol.Range(min=1)),
        vol.Optional("base_delay"): vol.All(vol.Coerce(float), vol.Range(min=0)),
        vol.Optional("multiplier"): vol.All(vol.Coerce(float), vol.Range(min=1)),
        vol.Optional("max_delay"): vol.All(vol.Coerce(float), vol.Range(min=0)),
        vol.Optional("periodic_interval"): vol.All(vol.Coerce(float), vol.Range(min=1)),
    }
)

PRINT_SCHEMA = vol.Schema(
    {
        vol.Optional("timeout"): _TIMEOUT,
        vol.Optional("encoding"): validate_encoding,
        vol.Optional("profile"): vol.Any(None, str),
        vol.Optional("left_margin"): vol.All(vol.Coerce(int), vol.Range(min=0, max=32)),
        vol.Optional("feed_lines"): vol.All(vol.Coerce(int), vol.Range(min=0, max=MAX_FEED_LINES)),
        vol.Optional("cut"): vol.In(list(CUT_CHOICES)),
        vol.Optional("default_align"): vol.In(list(ALIGN_CHOICES)),
        vol.Optional("bluetooth_characteristic"): str,
        vol.Optional("bluetooth_chunk_size"): vol.All(vol.Coerce(int), vol.Range(min=20, max=512)),
    }
)

CONFIG_SCHEMA = vol.Schema(
    {
        vol.Optional("probe"): PROBE_SCHEMA,
        vol.Optional("scan"): SCAN_SCHEMA,
        vol.Optional("retry"): RETRY_SCHEMA,
        vol.Optional("printing"): PRINT_SCHEMA,
    }
)
