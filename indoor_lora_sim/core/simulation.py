"""Run a packet-level simulation of an indoor deployment."""

from __future__ import annotations

import itertools
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Union

import numpy as np

from .building import Building, generate_buildings, write_building_listing
from .classifier import OutcomeRecord, PacketOutcome, PacketOutcomeClassifier, Transmission
from .config import ScenarioConfig
from .context import SimulationContext
from .errors import InvalidTransmission
from .layout import Layout, place_devices, place_gateways, write_position_listing
from .metrics import GatewayBreakdown, MetricsTracker
from .scheduler import EventQueue, EventType
from .traffic import PeriodicSender
from ..propagation.model import PropagationModel, build_propagation_model
from ..protocols.lorawan import LoRaWAN

logger = logging.getLogger(__name__)

DEVICE_LISTING = "nodes_coords.txt"
GATEWAY_LISTING = "gateways_coords.txt"
BUILDING_LISTING = "buildings.txt"


@dataclass
class SimulationResult:
    """Everything produced by one run."""

    config: ScenarioConfig
    layout: Layout
    tracker: MetricsTracker
    link_budget: np.ndarray = field(default_factory=lambda: np.array([]))
    """Received power (dBm), shape (devices, gateways)."""
    airtime: float = 0.0
    """Uplink time on air (s)."""
    transmissions: int = 0
    dropped: int = 0
    downlinks: int = 0

    @property
    def received_globally(self) -> int:
        return self.tracker.count_globally(0.0, self.config.simulation_time)

    def breakdown(self) -> GatewayBreakdown:
        return self.tracker.per_gateway_breakdown(
            0.0,
            self.config.simulation_time,
            self.config.n_devices,
            gateway_ids=[gw.id for gw in self.layout.gateways],
        )


class Simulation:
    """Lay out a scenario and run the discrete-event loop.

    Parameters
    ----------
    config : ScenarioConfig
        Validated scenario.
    context : SimulationContext, optional
        Clock and random state; a fresh one seeded with ``config.seed`` is
        created if omitted.
    """

    def __init__(self, config: ScenarioConfig, context: Optional[SimulationContext] = None) -> None:
        self.config = config
        self.context = context or SimulationContext(config.seed)

        self.buildings: List[Building] = generate_buildings(
            grid_width=config.building_grid_width,
            length_x=config.building_length_x,
            length_y=config.building_length_y,
            delta_x=config.building_delta_x,
            delta_y=config.building_delta_y,
            height=config.building_height,
            rooms_x=config.rooms_x,
            rooms_y=config.rooms_y,
            floors=config.floors,
            wall_type=config.wall_type,
            building_type=config.building_type,
            min_x=config.building_min_x,
            min_y=config.building_min_y,
            count=config.building_count,
        )
        devices = place_devices(
            config.n_devices,
            rooms_x=config.rooms_x,
            rooms_y=config.rooms_y,
            room_spacing=config.room_spacing,
            floor_height=config.floor_height,
            floor_base=config.floor_base,
            spreading_factor=config.spreading_factor,
        )
        gateways = place_gateways(config.active_gateway_positions, config.receiver_capacity)
        self.layout = Layout(self.buildings, devices, gateways)
        if self.layout.floors_used > config.floors:
            logger.warning(
                "%d devices need %d floors but buildings have %d",
                config.n_devices, self.layout.floors_used, config.floors,
            )

        self.protocol = LoRaWAN(spreading_factor=config.spreading_factor)
        self.airtime = self.protocol.airtime(config.payload_size, config.mac_overhead)
        self.ack_airtime = self.protocol.airtime(0, config.mac_overhead)

        self.propagation: PropagationModel = build_propagation_model(config)
        self.link_budget = self.propagation.link_matrix(
            self.layout.devices, self.layout.gateways, self.buildings, config.tx_power_dbm
        )

        self.classifier = PacketOutcomeClassifier(
            self.layout.gateways,
            capture_threshold_db=config.capture_threshold_db,
            sensitivity_dbm=config.sensitivity_dbm,
            channels=config.channels,
        )
        self.tracker = MetricsTracker()
        self.queue = EventQueue()
        self.sender = PeriodicSender(
            self.layout.devices,
            period=config.app_period,
            stop_time=config.simulation_time,
            channels=config.channels,
            rng=self.context.rng,
        )
        self._tx_ids = itertools.count()
        self.transmissions = 0
        self.dropped = 0
        self.downlinks = 0

    # ------------------------------------------------------------------
    # Output listings
    # ------------------------------------------------------------------

    def write_listings(self, directory: Union[str, Path]) -> List[Path]:
        """Write device, gateway and building listings into *directory*."""
        out = Path(directory)
        out.mkdir(parents=True, exist_ok=True)
        paths = [out / DEVICE_LISTING, out / GATEWAY_LISTING, out / BUILDING_LISTING]
        with paths[0].open("w") as fh:
            write_position_listing([d.position for d in self.layout.devices], fh)
        with paths[1].open("w") as fh:
            write_position_listing([g.position for g in self.layout.gateways], fh)
        with paths[2].open("w") as fh:
            write_building_listing(self.buildings, fh)
        logger.info("Listings written to %s", out)
        return paths

    # ------------------------------------------------------------------
    # Event handling
    # ------------------------------------------------------------------

    def offer(self, tx: Transmission) -> bool:
        """Hand a transmission to the classifier.

        An invalid transmission is logged, counted as dropped and otherwise
        ignored.  Returns *True* when the transmission was accepted.
        """
        try:
            records = self.classifier.submit(tx)
        except InvalidTransmission as exc:
            logger.warning("Dropping transmission: %s", exc)
            self.tracker.record_dropped(tx.id, tx.device_id, tx.start, exc.reason)
            self.dropped += 1
            return False
        self._ingest(records)
        self.transmissions += 1
        self.queue.push(tx.end, EventType.TX_END, tx)
        return True

    def _new_transmission(self, device_id: int, time: float) -> Transmission:
        dev = self.layout.device(device_id)
        return Transmission(
            id=next(self._tx_ids),
            device_id=dev.id,
            start=time,
            duration=self.airtime,
            spreading_factor=dev.spreading_factor,
            channel=self.sender.pick_channel(),
            rx_power={gw.id: float(self.link_budget[dev.id, j]) for j, gw in enumerate(self.layout.gateways)},
            payload_size=self.config.payload_size,
        )

    def _ingest(self, records: List[OutcomeRecord]) -> None:
        self.tracker.ingest(records)
        if not self.config.confirmed:
            return
        # One acknowledgement per received uplink, sent by the best gateway that heard it
        best: Dict[int, OutcomeRecord] = {}
        for rec in records:
            if rec.outcome is not PacketOutcome.RECEIVED:
                continue
            tx = rec.transmission
            current = best.get(tx.id)
            if current is None or tx.rx_power[rec.gateway_id] > tx.rx_power[current.gateway_id]:
                best[tx.id] = rec
        for rec in best.values():
            self.queue.push(rec.transmission.end + self.config.rx1_delay, EventType.GW_TX_START, rec.gateway_id)

    # ------------------------------------------------------------------
    def run(self) -> SimulationResult:
        """Execute the simulation until ``simulation_time`` and return results."""
        stop = self.config.simulation_time
        for time, dev in self.sender.first_sends():
            self.queue.push(time, EventType.TX_START, dev.id)

        logger.info(
            "Running simulation: %d devices, %d gateways, %.0f s, airtime %.4f s",
            len(self.layout.devices), len(self.layout.gateways), stop, self.airtime,
        )
        while self.queue:
            event = self.queue.pop()
            if event.time >= stop:
                break
            self.context.advance_to(event.time)

            if event.type == EventType.TX_START:
                self.offer(self._new_transmission(event.payload, event.time))
                nxt = self.sender.next_send(event.time)
                if nxt is not None:
                    self.queue.push(nxt, EventType.TX_START, event.payload)
            elif event.type == EventType.TX_END:
                self._ingest(self.classifier.advance(event.time))
            elif event.type == EventType.GW_TX_START:
                self._ingest(
                    self.classifier.begin_gateway_transmission(event.payload, event.time, self.ack_airtime)
                )
                self.downlinks += 1

        self.tracker.ingest(self.classifier.flush())
        logger.info(
            "Simulation done: %d transmissions, %d dropped, %d outcomes",
            self.transmissions, self.dropped, len(self.tracker),
        )
        return SimulationResult(
            config=self.config,
            layout=self.layout,
            tracker=self.tracker,
            link_budget=self.link_budget,
            airtime=self.airtime,
            transmissions=self.transmissions,
            dropped=self.dropped,
            downlinks=self.downlinks,
        )
