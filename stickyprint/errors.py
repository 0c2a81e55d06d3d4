"""Exception types raised by the printer core."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .models import ConnectionEndpoint


class PrinterError(Exception):
    """Base class for all printer errors."""


class NotConnectedError(PrinterError):
    """A print was submitted while no printer is connected."""

    def __init__(self, status: str) -> None:
        super().__init__(f"Printer not connected (status: {status})")
        self.status = status


class PrinterIOError(PrinterError):
    """A verified connection failed while opening or streaming a job."""

    def __init__(self, endpoint: ConnectionEndpoint, reason: str) -> None:
        super().__init__(f"Print to {endpoint.describe()} failed: {reason}")
        self.endpoint = endpoint
        self.reason = reason


class PrintJobError(PrinterError):
    """A job could not be encoded into printer commands."""

    def __init__(self, reason: str) -> None:
        super().__init__(f"Could not prepare print job: {reason}")
        self.reason = reason


class InvalidManualEndpointError(PrinterError):
    """A user supplied endpoint was malformed or failed verification."""

    def __init__(self, attempted: str, reason: str = "printer did not respond") -> None:
        super().__init__(f"{attempted}: {reason}")
        self.attempted = attempted
        self.reason = reason


class ScanCancelledError(PrinterError):
    """A running scan was abandoned through its cancel token."""
