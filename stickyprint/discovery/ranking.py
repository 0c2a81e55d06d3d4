"""Selection heuristics applied when several endpoints verify in one scan."""

from __future__ import annotations

from collections.abc import Callable, Sequence

from ..const import PREFERRED_OCTET_RANGE
from ..models import ConnectionEndpoint, NetworkEndpoint

Ranking = Callable[[Sequence[ConnectionEndpoint]], list[ConnectionEndpoint]]


class PreferredRangeRanking:
    """Order network endpoints best-first.

    Addresses whose last octet falls in ``[low, high]`` come first; within
    each group the higher last octet wins. Non-network endpoints keep their
    relative order after all network endpoints. This is tuned to typical
    small-office static assignments and can be replaced by any callable
    with the same signature.
    """

    def __init__(self, low: int = PREFERRED_OCTET_RANGE[0], high: int = PREFERRED_OCTET_RANGE[1]) -> None:
        self.low = low
        self.high = high

    def _key(self, endpoint: NetworkEndpoint) -> tuple[int, int]:
        octet = endpoint.last_octet
        preferred = self.low <= octet <= self.high
        return (0 if preferred else 1, -octet)

    def __call__(self, endpoints: Sequence[ConnectionEndpoint]) -> list[ConnectionEndpoint]:
        network = [e for e in endpoints if isinstance(e, NetworkEndpoint)]
        others = [e for e in endpoints if not isinstance(e, NetworkEndpoint)]
        return sorted(network, key=self._key) + others


def responder_order(endpoints: Sequence[ConnectionEndpoint]) -> list[ConnectionEndpoint]:
    """Keep the order in which endpoints were collected."""
    return list(endpoints)
