"""Candidate address generation for printer scans."""

from __future__ import annotations

from collections.abc import Iterable, Iterator
import ipaddress
import logging
import socket

import psutil

from ..const import DEFAULT_PORT, FULL_SCAN_RANGE, QUICK_SCAN_RANGES, SCAN_MODE_FULL
from ..models import NetworkEndpoint

_LOGGER = logging.getLogger(__name__)


def local_network_bases() -> list[str]:
    """Return the ``a.b.c`` prefix of every usable local IPv4 interface.

    Every interface is assumed to sit on a /24. Loopback and link-local
    addresses are skipped; duplicates keep their first-seen position.
    """
    bases: list[str] = []
    try:
        interfaces = psutil.net_if_addrs()
    except OSError as err:
        _LOGGER.warning("Unable to enumerate network interfaces: %s", err)
        return bases

    for name, addrs in interfaces.items():
        for addr in addrs:
            if addr.family != socket.AF_INET:
                continue
            try:
                ip = ipaddress.IPv4Address(addr.address)
            except ValueError:
                continue
            if ip.is_loopback or ip.is_link_local or ip.is_unspecified:
                continue
            base = addr.address.rsplit(".", 1)[0]
            if base not in bases:
                _LOGGER.debug("Interface %s contributes network %s.0/24", name, base)
                bases.append(base)
    return bases


def _quick_octets() -> list[int]:
    octets: list[int] = []
    for low, high in QUICK_SCAN_RANGES:
        octets.extend(range(low, high + 1))
    return octets


def _full_octets() -> list[int]:
    low, high = FULL_SCAN_RANGE
    return list(range(low, high + 1))


class CandidateSequence:
    """Lazy, restartable sequence of network candidates.

    Iterating twice yields the same candidates in the same order; an
    address reachable through several interfaces appears once.
    """

    def __init__(self, bases: Iterable[str], octets: list[int], port: int = DEFAULT_PORT) -> None:
        self._bases = list(dict.fromkeys(bases))
        self._octets = octets
        self._port = port

    def __iter__(self) -> Iterator[NetworkEndpoint]:
        seen: set[str] = set()
        for base in self._bases:
            for octet in self._octets:
                address = f"{base}.{octet}"
                if address in seen:
                    continue
                seen.add(address)
                yield NetworkEndpoint(address, port=self._port)

    def __len__(self) -> int:
        return len(self._bases) * len(self._octets)

    def __repr__(self) -> str:
        return f"CandidateSequence(bases={self._bases!r}, size={len(self)})"


def quick_scan_candidates(bases: Iterable[str], port: int = DEFAULT_PORT) -> CandidateSequence:
    """Curated high-probability addresses, ranked per interface."""
    return CandidateSequence(bases, _quick_octets(), port=port)


def full_scan_candidates(bases: Iterable[str], port: int = DEFAULT_PORT) -> CandidateSequence:
    """Every host address ``.2`` to ``.254`` per interface."""
    return CandidateSequence(bases, _full_octets(), port=port)


def network_candidates(mode: str, bases: Iterable[str] | None = None, port: int = DEFAULT_PORT) -> CandidateSequence:
    if bases is None:
        bases = local_network_bases()
    if mode == SCAN_MODE_FULL:
        return full_scan_candidates(bases, port=port)
    return quick_scan_candidates(bases, port=port)


def matches_printer_name(name: str | None, patterns: Iterable[str]) -> bool:
    """Case-insensitive substring match of an advertised BLE name."""
    if not name:
        return False
    lowered = name.lower()
    return any(pattern.lower() in lowered for pattern in patterns if pattern)
