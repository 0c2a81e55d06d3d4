"""Typed models for printer endpoints, connection status and probe results."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Literal

from .const import (
    CONNECTION_TYPE_BLUETOOTH,
    CONNECTION_TYPE_NETWORK,
    CONNECTION_TYPE_SERIAL,
    DEFAULT_PORT,
    STATUS_CONNECTED,
    STATUS_DISCONNECTED,
    STATUS_SCANNING,
)


@dataclass(frozen=True)
class NetworkEndpoint:
    """A raw TCP (JetDirect) printer."""

    address: str
    port: int = DEFAULT_PORT
    kind: Literal["network"] = field(default=CONNECTION_TYPE_NETWORK, repr=False)

    @property
    def last_octet(self) -> int:
        return int(self.address.rsplit(".", 1)[-1])

    def describe(self) -> str:
        return f"{self.address}:{self.port}"


@dataclass(frozen=True)
class SerialEndpoint:
    """A serial port printer (USB-serial or Bluetooth SPP rfcomm)."""

    path: str
    kind: Literal["serial"] = field(default=CONNECTION_TYPE_SERIAL, repr=False)

    def describe(self) -> str:
        return self.path


@dataclass(frozen=True)
class BluetoothEndpoint:
    """A Bluetooth LE printer, identified by its platform device id."""

    device_id: str
    device_name: str = ""
    kind: Literal["bluetooth"] = field(default=CONNECTION_TYPE_BLUETOOTH, repr=False)

    def describe(self) -> str:
        if self.device_name:
            return f"{self.device_name} ({self.device_id})"
        return self.device_id


ConnectionEndpoint = NetworkEndpoint | SerialEndpoint | BluetoothEndpoint


class ConnectionStatus(str, Enum):
    DISCONNECTED = STATUS_DISCONNECTED
    SCANNING = STATUS_SCANNING
    CONNECTED = STATUS_CONNECTED


@dataclass(frozen=True)
class StatusSnapshot:
    """Status as published to subscribers; endpoint is set only when connected."""

    status: ConnectionStatus = ConnectionStatus.DISCONNECTED
    endpoint: ConnectionEndpoint | None = None

    @property
    def connected(self) -> bool:
        return self.status is ConnectionStatus.CONNECTED

    @property
    def endpoint_kind(self) -> str | None:
        return self.endpoint.kind if self.endpoint is not None else None


class ProbeOutcome(str, Enum):
    VERIFIED = "verified"
    NOT_VERIFIED = "not_verified"
    UNREACHABLE = "unreachable"


@dataclass(frozen=True)
class ProbeResult:
    """Outcome of one probe; produced and consumed within a single scan."""

    candidate: ConnectionEndpoint
    reachable: bool = False
    verified: bool = False
    latency_ms: int | None = None
    reason: str | None = None

    @property
    def outcome(self) -> ProbeOutcome:
        if not self.reachable:
            return ProbeOutcome.UNREACHABLE
        if not self.verified:
            return ProbeOutcome.NOT_VERIFIED
        return ProbeOutcome.VERIFIED

    @classmethod
    def unreachable(cls, candidate: ConnectionEndpoint, reason: str | None = None) -> ProbeResult:
        return cls(candidate=candidate, reachable=False, verified=False, reason=reason)


@dataclass
class RetryState:
    attempt: int = 0
    max_attempts: int = 0
    next_delay_ms: int = 0

    def reset(self) -> None:
        self.attempt = 0
        self.next_delay_ms = 0

    @property
    def exhausted(self) -> bool:
        return self.attempt >= self.max_attempts
