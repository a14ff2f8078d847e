"""Packet outcome log and windowed aggregate queries."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Tuple, Union

import numpy as np

from .classifier import OutcomeRecord, PacketOutcome, Transmission
from .device import Gateway
from .errors import DuplicateOutcome

logger = logging.getLogger(__name__)

OUTCOME_ORDER: Tuple[PacketOutcome, ...] = (
    PacketOutcome.RECEIVED,
    PacketOutcome.INTERFERED,
    PacketOutcome.NO_MORE_RECEIVERS,
    PacketOutcome.UNDER_SENSITIVITY,
    PacketOutcome.LOST_BECAUSE_TX,
)
"""Column order of the per-gateway table, after ``sent``."""

BREAKDOWN_KINDS: Tuple[str, ...] = ("sent",) + tuple(o.value for o in OUTCOME_ORDER)

_CODES = {o: i for i, o in enumerate(OUTCOME_ORDER)}


@dataclass
class GatewayBreakdown:
    """Per-gateway outcome table over one time window."""

    start: float
    stop: float
    table: Dict[int, Dict[str, int]] = field(default_factory=dict)
    """``table[gateway_id][kind]`` with kinds from :data:`BREAKDOWN_KINDS`."""
    devices_observed: int = 0
    devices_expected: Optional[int] = None

    @property
    def undercounted(self) -> bool:
        return self.devices_expected is not None and self.devices_observed < self.devices_expected

    def row(self, gateway_id: int) -> List[int]:
        counts = self.table[gateway_id]
        return [counts[k] for k in BREAKDOWN_KINDS]


@dataclass
class _Dropped:
    transmission_id: int
    device_id: int
    time: float
    reason: str


class MetricsTracker:
    """Append-only log of (transmission, gateway) outcomes.

    Every query is a read-only projection over a half-open window
    ``[start, stop)`` on the transmission start time.
    """

    def __init__(self) -> None:
        self._tx_ids: List[int] = []
        self._device_ids: List[int] = []
        self._gateway_ids: List[int] = []
        self._codes: List[int] = []
        self._times: List[float] = []
        self._pairs: Dict[Tuple[int, int], PacketOutcome] = {}
        self._dropped: List[_Dropped] = []
        self._arrays: Optional[Dict[str, np.ndarray]] = None

    # ------------------------------------------------------------------
    # Ingest
    # ------------------------------------------------------------------

    def record(
        self,
        transmission: Transmission,
        gateway: Union[Gateway, int],
        outcome: PacketOutcome,
        time: float,
    ) -> None:
        """Append one outcome.

        Raises
        ------
        DuplicateOutcome
            If the (transmission, gateway) pair already has an outcome.
        """
        gateway_id = gateway.id if isinstance(gateway, Gateway) else int(gateway)
        key = (transmission.id, gateway_id)
        if key in self._pairs:
            raise DuplicateOutcome(
                f"transmission {transmission.id} already has outcome "
                f"{self._pairs[key].value} at gateway {gateway_id}"
            )
        self._pairs[key] = outcome
        self._tx_ids.append(transmission.id)
        self._device_ids.append(transmission.device_id)
        self._gateway_ids.append(gateway_id)
        self._codes.append(_CODES[outcome])
        self._times.append(float(time))
        self._arrays = None

    def ingest(self, records: Iterable[OutcomeRecord]) -> None:
        for rec in records:
            self.record(rec.transmission, rec.gateway_id, rec.outcome, rec.time)

    def record_dropped(self, transmission_id: int, device_id: int, time: float, reason: str = "") -> None:
        """Count a transmission rejected before classification."""
        self._dropped.append(_Dropped(transmission_id, device_id, float(time), reason))

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def outcome(self, transmission_id: int, gateway_id: int) -> Optional[PacketOutcome]:
        return self._pairs.get((transmission_id, gateway_id))

    def __len__(self) -> int:
        return len(self._pairs)

    def _columns(self) -> Dict[str, np.ndarray]:
        if self._arrays is None:
            self._arrays = {
                "tx": np.asarray(self._tx_ids, dtype=np.int64),
                "device": np.asarray(self._device_ids, dtype=np.int64),
                "gateway": np.asarray(self._gateway_ids, dtype=np.int64),
                "code": np.asarray(self._codes, dtype=np.int64),
                "time": np.asarray(self._times, dtype=np.float64),
            }
        return self._arrays

    def _window(self, start: float, stop: float) -> np.ndarray:
        t = self._columns()["time"]
        return (t >= start) & (t < stop)

    def count_globally(self, start: float, stop: float) -> int:
        """Distinct transmissions received by at least one gateway."""
        cols = self._columns()
        mask = self._window(start, stop) & (cols["code"] == _CODES[PacketOutcome.RECEIVED])
        return int(np.unique(cols["tx"][mask]).size)

    def count_per_gateway(
        self, start: float, stop: float, outcome: PacketOutcome = PacketOutcome.RECEIVED
    ) -> Dict[int, int]:
        """Count of *outcome* at each gateway; a packet heard twice counts twice."""
        cols = self._columns()
        mask = self._window(start, stop) & (cols["code"] == _CODES[outcome])
        ids, counts = np.unique(cols["gateway"][mask], return_counts=True)
        result = {int(g): 0 for g in np.unique(cols["gateway"])}
        result.update({int(g): int(c) for g, c in zip(ids, counts)})
        return result

    def sent_count(self, start: float, stop: float) -> int:
        """Distinct classified transmissions started in the window."""
        cols = self._columns()
        return int(np.unique(cols["tx"][self._window(start, stop)]).size)

    def dropped_count(self, start: float, stop: float) -> int:
        return sum(1 for d in self._dropped if start <= d.time < stop)

    def per_gateway_breakdown(
        self,
        start: float,
        stop: float,
        n_devices_expected: Optional[int] = None,
        gateway_ids: Optional[Iterable[int]] = None,
    ) -> GatewayBreakdown:
        """``sent`` and per-outcome counts for every gateway.

        Gateways listed in *gateway_ids* get a row even without any record.
        When *n_devices_expected* is given, the number of distinct devices seen
        in the window is compared against it and a shortfall is logged.
        """
        cols = self._columns()
        mask = self._window(start, stop)
        breakdown = GatewayBreakdown(start=start, stop=stop, devices_expected=n_devices_expected)
        known = {int(g) for g in np.unique(cols["gateway"])}
        known.update(int(g) for g in gateway_ids or ())
        for gw in sorted(known):
            gw_mask = mask & (cols["gateway"] == gw)
            codes = np.bincount(cols["code"][gw_mask], minlength=len(OUTCOME_ORDER))
            counts = {"sent": int(gw_mask.sum())}
            counts.update({o.value: int(codes[_CODES[o]]) for o in OUTCOME_ORDER})
            breakdown.table[int(gw)] = counts

        breakdown.devices_observed = int(np.unique(cols["device"][mask]).size)
        if breakdown.undercounted:
            logger.warning(
                "Only %d of %d devices sent in [%g, %g): packets are missing from the log",
                breakdown.devices_observed, n_devices_expected, start, stop,
            )
        return breakdown

    def windowed_counts(
        self,
        window: float,
        start: float,
        stop: float,
        gateway_id: Optional[int] = None,
    ) -> Tuple[np.ndarray, Dict[str, np.ndarray]]:
        """Histogram of outcomes per time window.

        Returns ``(edges, counts)`` where ``counts[kind]`` has one entry per
        window.  With a *gateway_id* every outcome at that gateway is counted;
        without one, each kind counts distinct transmissions, so a packet
        received by two gateways is one received packet.
        """
        if window <= 0:
            raise ValueError(f"window must be positive, got {window}")
        if stop <= start:
            raise ValueError(f"empty time range [{start}, {stop})")
        n_bins = max(int(np.ceil((stop - start) / window - 1e-9)), 1)
        edges = np.minimum(start + window * np.arange(n_bins + 1, dtype=np.float64), stop)
        edges[-1] = stop
        cols = self._columns()
        mask = self._window(start, stop)
        if gateway_id is not None:
            mask &= cols["gateway"] == gateway_id

        def histogram(sel: np.ndarray, distinct: bool) -> np.ndarray:
            times = cols["time"][sel]
            if distinct:
                _, first = np.unique(cols["tx"][sel], return_index=True)
                times = times[first]
            return np.histogram(times, bins=edges)[0]

        distinct = gateway_id is None
        counts = {"sent": histogram(mask, distinct)}
        for o in OUTCOME_ORDER:
            counts[o.value] = histogram(mask & (cols["code"] == _CODES[o]), distinct)
        return edges, counts
