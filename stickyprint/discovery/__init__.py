"""Printer discovery: candidate generation, probing and scan orchestration."""

from __future__ import annotations

from .bluetooth import BluetoothScanner, probe_bluetooth
from .candidates import (
    CandidateSequence,
    full_scan_candidates,
    local_network_bases,
    matches_printer_name,
    network_candidates,
    quick_scan_candidates,
)
from .orchestrator import CancelToken, ScanOrchestrator
from .probe import ProbeEngine, Prober, is_plausible_status
from .ranking import PreferredRangeRanking, Ranking, responder_order

__all__ = [
    "BluetoothScanner",
    "CancelToken",
    "CandidateSequence",
    "PreferredRangeRanking",
    "ProbeEngine",
    "Prober",
    "Ranking",
    "ScanOrchestrator",
    "full_scan_candidates",
    "is_plausible_status",
    "local_network_bases",
    "matches_printer_name",
    "network_candidates",
    "probe_bluetooth",
    "quick_scan_candidates",
    "responder_order",
]
