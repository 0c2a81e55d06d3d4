"""Command line entry for checking, scanning and printing without the editor."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
from pathlib import Path
import sys
from typing import Any

import voluptuous as vol

from .config import AppConfig
from .const import ALIGN_CHOICES, SCAN_MODE_FULL, SCAN_MODE_QUICK
from .errors import PrinterError
from .service import PrinterService
from .store import JsonSettingsStore

_LOGGER = logging.getLogger(__name__)


def _print_json(data: object) -> None:
    print(json.dumps(data, indent=2, sort_keys=True, default=str))


def _load_config(path: str | None) -> AppConfig:
    if not path:
        return AppConfig()
    raw = json.loads(Path(path).expanduser().read_text(encoding="utf-8"))
    return AppConfig.from_mapping(raw)


def _build_service(args: argparse.Namespace) -> PrinterService:
    store = JsonSettingsStore(Path(args.settings).expanduser() if args.settings else None)
    return PrinterService(_load_config(args.config), store)


def _snapshot_payload(service: PrinterService) -> dict[str, Any]:
    snapshot = service.get_printer_status()
    return {
        "status": snapshot.status.value,
        "type": snapshot.endpoint_kind,
        "endpoint": snapshot.endpoint.describe() if snapshot.endpoint else None,
    }


async def cmd_status(args: argparse.Namespace) -> int:
    service = _build_service(args)
    await service.refresh_printer_status()
    _print_json(_snapshot_payload(service))
    return 0 if service.get_printer_status().connected else 1


async def cmd_scan(args: argparse.Namespace) -> int:
    service = _build_service(args)
    _print_json(await service.scan_network_printers(args.mode))
    return 0


async def cmd_ports(args: argparse.Namespace) -> int:
    service = _build_service(args)
    _print_json(await service.list_serial_ports())
    return 0


async def cmd_set_ip(args: argparse.Namespace) -> int:
    service = _build_service(args)
    await service.set_printer_ip(args.address)
    _print_json(_snapshot_payload(service))
    return 0


async def cmd_set_path(args: argparse.Namespace) -> int:
    service = _build_service(args)
    await service.save_printer_path(args.path)
    _print_json(_snapshot_payload(service))
    return 0


async def cmd_print(args: argparse.Namespace) -> int:
    service = _build_service(args)
    await service.refresh_printer_status()
    text = args.text if args.text is not None else sys.stdin.read()
    await service.print(text, args.align, args.font_size, args.bold, args.underline)
    return 0


async def cmd_diagnostics(args: argparse.Namespace) -> int:
    service = _build_service(args)
    await service.refresh_printer_status()
    _print_json(service.diagnostics())
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="stickyprint", description="Thermal printer discovery and printing")
    parser.add_argument("--config", default=None, help="JSON file with probe/scan/retry/printing overrides")
    parser.add_argument("--settings", default=None, help="Settings file holding the saved printer")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    status_cmd = sub.add_parser("status", help="Re-check the saved printer, scanning if needed")
    status_cmd.set_defaults(func=cmd_status)

    scan_cmd = sub.add_parser("scan", help="List every network printer that answers")
    scan_cmd.add_argument("--mode", choices=[SCAN_MODE_QUICK, SCAN_MODE_FULL], default=None)
    scan_cmd.set_defaults(func=cmd_scan)

    ports_cmd = sub.add_parser("ports", help="List serial ports")
    ports_cmd.set_defaults(func=cmd_ports)

    ip_cmd = sub.add_parser("set-ip", help="Verify and save a network printer")
    ip_cmd.add_argument("address")
    ip_cmd.set_defaults(func=cmd_set_ip)

    path_cmd = sub.add_parser("set-path", help="Verify and save a serial printer")
    path_cmd.add_argument("path")
    path_cmd.set_defaults(func=cmd_set_path)

    print_cmd = sub.add_parser("print", help="Print a note (reads stdin when no text is given)")
    print_cmd.add_argument("text", nargs="?", default=None)
    print_cmd.add_argument("--align", choices=list(ALIGN_CHOICES), default=None)
    print_cmd.add_argument("--font-size", type=float, default=None, help="Editor font size in points")
    print_cmd.add_argument("--bold", action="store_true")
    print_cmd.add_argument("--underline", action="store_true")
    print_cmd.set_defaults(func=cmd_print)

    diag_cmd = sub.add_parser("diagnostics", help="Print a redacted diagnostics payload")
    diag_cmd.set_defaults(func=cmd_diagnostics)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        return int(asyncio.run(args.func(args)))
    except (PrinterError, OSError, ValueError, vol.Invalid) as err:
        _LOGGER.error("%s", err)
        return 2


if __name__ == "__main__":
    raise SystemExit(main())
