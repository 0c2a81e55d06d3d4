from __future__ import annotations

from typing import TYPE_CHECKING, Any

from .const import CONF_PRINTER_DEVICE_ID, CONF_PRINTER_IP, CONF_PRINTER_PATH

if TYPE_CHECKING:
    from .service import PrinterService

TO_REDACT = {CONF_PRINTER_IP, CONF_PRINTER_PATH, CONF_PRINTER_DEVICE_ID, "endpoint"}
REDACTED = "**REDACTED**"


def redact_data(data: Any, to_redact: set[str]) -> Any:
    """Return a copy of ``data`` with the listed keys masked at any depth."""
    if isinstance(data, dict):
        return {
            key: REDACTED if key in to_redact and value is not None else redact_data(value, to_redact)
            for key, value in data.items()
        }
    if isinstance(data, list):
        return [redact_data(item, to_redact) for item in data]
    return data


def get_diagnostics(service: PrinterService, redact: bool = True) -> dict[str, Any]:
    """Return diagnostics for a running printer service."""
    config = service.config
    supervisor = service.supervisor
    last_job = service.pipeline.last_job

    payload = {
        "config": {
            "port": config.probe.port,
            "probe_timeout": config.probe.timeout,
            "query_status": config.probe.query_status,
            "accept_silent_listener": config.probe.accept_silent_listener,
            "scan_mode": config.scan.mode,
            "batch_size": config.scan.batch_size,
            "bluetooth": config.scan.bluetooth,
            "encoding": config.printing.encoding,
            "profile": config.printing.profile,
            "left_margin": config.printing.left_margin,
        },
        "runtime": service.machine.get_diagnostics(),
        "retry": {
            "attempt": supervisor.state.attempt,
            "max_attempts": supervisor.state.max_attempts,
            "next_delay_ms": supervisor.state.next_delay_ms,
            "periodic": supervisor.periodic,
            "running": supervisor.running,
        },
        "last_job": None
        if last_job is None
        else {
            "kind": "image" if last_job.image is not None else "text",
            "length": len(last_job.content or ""),
            "alignment": last_job.alignment,
            "size_class": last_job.size_class,
        },
    }

    if not redact:
        return payload
    return redact_data(payload, TO_REDACT)
