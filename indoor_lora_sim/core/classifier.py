"""Per-gateway packet outcome classification: sensitivity, receiver chains, capture.

Every transmission produces one reception at every gateway.  A reception is
provisional while its transmission is on air: a later, stronger arrival can
still interfere with it, and a downlink started by the gateway can still cut
it.  Once the simulation clock has reached the end of the transmission the
outcome is committed and never changes again.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from .device import Gateway
from .errors import DuplicateOutcome, InvalidTransmission
from ..protocols.lorawan import SF_SENSITIVITY

logger = logging.getLogger(__name__)


class PacketOutcome(Enum):
    """Final fate of a transmission at one gateway."""

    RECEIVED = "received"
    INTERFERED = "interfered"
    NO_MORE_RECEIVERS = "no_more_receivers"
    UNDER_SENSITIVITY = "under_sensitivity"
    LOST_BECAUSE_TX = "lost_because_tx"


@dataclass(frozen=True)
class Transmission:
    """One uplink frame on air.

    Parameters
    ----------
    id : int
    device_id : int
    start : float
        Start time (s).
    duration : float
        Time on air (s).
    spreading_factor : int
    channel : float
        Carrier frequency (MHz).
    rx_power : Mapping[int, float]
        Received power (dBm) at each gateway id.
    payload_size : int
        Application payload (bytes).
    """

    id: int
    device_id: int
    start: float
    duration: float
    spreading_factor: int
    channel: float
    rx_power: Mapping[int, float] = field(default_factory=dict, compare=False)
    payload_size: int = 0

    @property
    def end(self) -> float:
        return self.start + self.duration

    def overlaps(self, other: "Transmission") -> bool:
        """Half-open interval overlap of the two times on air."""
        return self.start < other.end and other.start < self.end


@dataclass(frozen=True)
class OutcomeRecord:
    """A committed outcome, as handed to the metrics tracker."""

    transmission: Transmission
    gateway_id: int
    outcome: PacketOutcome
    time: float
    committed_at: float


@dataclass
class _Reception:
    transmission: Transmission
    gateway_id: int
    power: float
    locked: bool = False
    provisional: Optional[PacketOutcome] = None

    @property
    def sort_key(self) -> Tuple[float, float, int]:
        return (self.power, self.transmission.start, self.transmission.id)


@dataclass
class _GatewayState:
    gateway: Gateway
    pending: List[_Reception] = field(default_factory=list)
    # Receptions strong enough to disturb others, kept while they can still overlap a pending one
    signals: List[_Reception] = field(default_factory=list)
    tx_start: float = -math.inf
    tx_end: float = -math.inf

    def transmitting_at(self, time: float) -> bool:
        return self.tx_start <= time < self.tx_end

    def locked(self) -> List[_Reception]:
        return [r for r in self.pending if r.locked]


class PacketOutcomeClassifier:
    """Decide the outcome of every (transmission, gateway) pair.

    Transmissions must be submitted in non-decreasing start order.

    Parameters
    ----------
    gateways : Sequence[Gateway]
    capture_threshold_db : float
        Margin by which a signal must exceed every overlapping co-channel,
        same-SF signal to be decoded (default 6 dB).
    sensitivity_dbm : Mapping[int, float], optional
        Gateway sensitivity per spreading factor.
    channels : Iterable[float], optional
        Allowed carrier frequencies (MHz); any channel is accepted if omitted.
    """

    def __init__(
        self,
        gateways: Sequence[Gateway],
        capture_threshold_db: float = 6.0,
        sensitivity_dbm: Optional[Mapping[int, float]] = None,
        channels: Optional[Iterable[float]] = None,
    ) -> None:
        self.capture_threshold_db = capture_threshold_db
        self.sensitivity_dbm: Dict[int, float] = dict(
            SF_SENSITIVITY if sensitivity_dbm is None else sensitivity_dbm
        )
        self.channels = None if channels is None else frozenset(channels)
        self._gateways: Dict[int, _GatewayState] = {gw.id: _GatewayState(gw) for gw in gateways}
        self._outcomes: Dict[Tuple[int, int], PacketOutcome] = {}
        self._seen: set = set()
        self._last_start = -math.inf
        self.now = 0.0

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def validate(self, tx: Transmission) -> None:
        """Raise :class:`InvalidTransmission` if *tx* cannot be classified."""

        def reject(reason: str) -> None:
            raise InvalidTransmission(reason, tx.id, tx.device_id, tx.start)

        if not math.isfinite(tx.start):
            reject("start time is not finite")
        if not math.isfinite(tx.duration) or tx.duration <= 0:
            reject(f"non-positive duration {tx.duration}")
        if tx.spreading_factor not in self.sensitivity_dbm:
            reject(f"unknown spreading factor SF{tx.spreading_factor}")
        if self.channels is not None and tx.channel not in self.channels:
            reject(f"unknown channel {tx.channel} MHz")
        if tx.id in self._seen:
            reject("transmission id already submitted")
        if tx.start < self._last_start:
            reject(f"starts before previously submitted transmission (t={self._last_start})")
        if tx.start < self.now:
            reject(f"starts before the classifier clock (t={self.now})")
        missing = [gid for gid in self._gateways if gid not in tx.rx_power]
        if missing:
            reject(f"no received power for gateways {missing}")

    # ------------------------------------------------------------------
    # Arrivals
    # ------------------------------------------------------------------

    def submit(self, tx: Transmission) -> List[OutcomeRecord]:
        """Register the arrival of *tx* at every gateway.

        Receptions that ended at or before ``tx.start`` are committed first and
        returned.

        Raises
        ------
        InvalidTransmission
            If *tx* is malformed or out of order; nothing is registered then.
        """
        self.validate(tx)
        committed = self.advance(tx.start)
        self._seen.add(tx.id)
        self._last_start = tx.start

        for state in self._gateways.values():
            self._arrive(state, tx)
        return committed

    def _arrive(self, state: _GatewayState, tx: Transmission) -> None:
        gw = state.gateway
        power = float(tx.rx_power[gw.id])
        rec = _Reception(tx, gw.id, power)
        state.pending.append(rec)

        audible = power >= self.sensitivity_dbm[tx.spreading_factor]
        if audible:
            state.signals.append(rec)

        if state.transmitting_at(tx.start):
            rec.provisional = PacketOutcome.LOST_BECAUSE_TX
            logger.debug("GW %d: tx %d lost, gateway transmitting", gw.id, tx.id)
            return
        if not audible:
            rec.provisional = PacketOutcome.UNDER_SENSITIVITY
            logger.debug("GW %d: tx %d under sensitivity (%.1f dBm)", gw.id, tx.id, power)
            return

        rec.locked = True
        demanding = state.locked()
        if len(demanding) > gw.receiver_capacity:
            victim = min(demanding, key=lambda r: r.sort_key)
            victim.locked = False
            victim.provisional = PacketOutcome.NO_MORE_RECEIVERS
            logger.debug(
                "GW %d: no receiver path left, tx %d dropped (%.1f dBm)",
                gw.id, victim.transmission.id, victim.power,
            )

    def begin_gateway_transmission(self, gateway_id: int, start: float, duration: float) -> List[OutcomeRecord]:
        """Put a half-duplex gateway in transmit mode for ``[start, start + duration)``.

        Receptions the gateway is demodulating at *start* are lost, as are
        arrivals until the downlink ends.
        """
        if duration <= 0:
            raise ValueError(f"downlink duration must be positive, got {duration}")
        committed = self.advance(start)
        state = self._gateways[gateway_id]
        for rec in state.locked():
            rec.locked = False
            rec.provisional = PacketOutcome.LOST_BECAUSE_TX
            logger.debug("GW %d: tx %d cut by downlink", gateway_id, rec.transmission.id)
        state.tx_start = start
        state.tx_end = max(state.tx_end, start + duration)
        return committed

    # ------------------------------------------------------------------
    # Commit
    # ------------------------------------------------------------------

    def advance(self, now: float) -> List[OutcomeRecord]:
        """Commit every reception whose transmission ended at or before *now*."""
        if now < self.now:
            raise ValueError(f"cannot advance back in time ({now} < {self.now})")
        self.now = now
        records: List[OutcomeRecord] = []
        for state in self._gateways.values():
            done = [r for r in state.pending if r.transmission.end <= now]
            if done:
                state.pending = [r for r in state.pending if r.transmission.end > now]
                for rec in sorted(done, key=lambda r: (r.transmission.end, r.transmission.start, r.transmission.id)):
                    records.append(self._commit(state, rec, now))
            self._prune(state, now)
        return records

    def flush(self) -> List[OutcomeRecord]:
        """Commit everything still pending; no further arrival may follow."""
        records: List[OutcomeRecord] = []
        for state in self._gateways.values():
            pending = sorted(
                state.pending,
                key=lambda r: (r.transmission.end, r.transmission.start, r.transmission.id),
            )
            state.pending = []
            for rec in pending:
                records.append(self._commit(state, rec, max(self.now, rec.transmission.end)))
            state.signals = []
        return records

    def _commit(self, state: _GatewayState, rec: _Reception, now: float) -> OutcomeRecord:
        tx = rec.transmission
        outcome = rec.provisional if not rec.locked else self._capture(state, rec)
        key = (tx.id, rec.gateway_id)
        if key in self._outcomes:
            raise DuplicateOutcome(f"outcome already committed for transmission {tx.id} at gateway {rec.gateway_id}")
        self._outcomes[key] = outcome
        return OutcomeRecord(tx, rec.gateway_id, outcome, tx.start, now)

    def _capture(self, state: _GatewayState, rec: _Reception) -> PacketOutcome:
        tx = rec.transmission
        for other in state.signals:
            if other is rec:
                continue
            o = other.transmission
            if o.channel != tx.channel or o.spreading_factor != tx.spreading_factor:
                continue
            if not tx.overlaps(o):
                continue
            if rec.power - other.power < self.capture_threshold_db:
                logger.debug(
                    "GW %d: tx %d interfered by tx %d (%.1f vs %.1f dBm)",
                    state.gateway.id, tx.id, o.id, rec.power, other.power,
                )
                return PacketOutcome.INTERFERED
        return PacketOutcome.RECEIVED

    @staticmethod
    def _prune(state: _GatewayState, now: float) -> None:
        horizon = min([now] + [r.transmission.start for r in state.pending])
        state.signals = [s for s in state.signals if s.transmission.end > horizon]

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def outcome(self, transmission_id: int, gateway_id: int) -> Optional[PacketOutcome]:
        """Committed outcome of a pair, or *None* while still provisional."""
        return self._outcomes.get((transmission_id, gateway_id))

    @property
    def pending_count(self) -> int:
        return sum(len(s.pending) for s in self._gateways.values())
