"""Composite propagation model: an ordered list of loss stages."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Callable, List, Sequence

import numpy as np

from .pathloss import LogDistanceLoss, Position
from .penetration import BuildingPenetrationLoss, FloorPenetrationLoss
from .shadowing import CorrelatedShadowing

if TYPE_CHECKING:
    from indoor_lora_sim.core.building import Building
    from indoor_lora_sim.core.config import ScenarioConfig
    from indoor_lora_sim.core.device import Device, Gateway

logger = logging.getLogger(__name__)

LossStage = Callable[[Position, Position, Sequence["Building"]], float]


class PropagationModel:
    """Sum of independent loss stages, evaluated in order.

    Every stage is a callable ``(tx_pos, rx_pos, buildings) -> dB``.

    Parameters
    ----------
    stages : Sequence[LossStage]
        Loss stages; the first one is normally a distance model.
    """

    def __init__(self, stages: Sequence[LossStage]) -> None:
        if not stages:
            raise ValueError("a propagation model needs at least one stage")
        self.stages: List[LossStage] = list(stages)

    def path_loss(self, tx: Position, rx: Position, buildings: Sequence[Building] = ()) -> float:
        """Total path loss (dB) between *tx* and *rx*."""
        return float(sum(stage(tx, rx, buildings) for stage in self.stages))

    def received_power(
        self,
        tx_power_dbm: float,
        tx: Position,
        rx: Position,
        buildings: Sequence[Building] = (),
    ) -> float:
        """Received power (dBm); may well be below any sensitivity."""
        return tx_power_dbm - self.path_loss(tx, rx, buildings)

    def link_matrix(
        self,
        devices: Sequence[Device],
        gateways: Sequence[Gateway],
        buildings: Sequence[Building],
        tx_power_dbm: float,
    ) -> np.ndarray:
        """Received power (dBm) of every device at every gateway, shape (devices, gateways)."""
        rx = np.empty((len(devices), len(gateways)), dtype=np.float64)
        for i, dev in enumerate(devices):
            for j, gw in enumerate(gateways):
                rx[i, j] = self.received_power(tx_power_dbm, dev.position, gw.position, buildings)
        return rx


def build_propagation_model(config: ScenarioConfig) -> PropagationModel:
    """Assemble the stage list selected by a scenario.

    Distance attenuation is always present.  Shadowing and building
    penetration are only added with ``realistic_channel_model`` and can then
    be switched off one by one; floor loss is opt-in.
    """
    stages: List[LossStage] = [
        LogDistanceLoss(
            exponent=config.path_loss_exponent,
            reference_distance=config.reference_distance,
            reference_loss=config.reference_loss,
        )
    ]
    if config.realistic_channel_model:
        if config.shadowing:
            stages.append(
                CorrelatedShadowing(
                    sigma_db=config.shadowing_sigma_db,
                    correlation_distance=config.shadowing_correlation_distance,
                    seed=config.seed,
                )
            )
        if config.building_penetration:
            stages.append(BuildingPenetrationLoss())
    if config.floor_penetration:
        stages.append(FloorPenetrationLoss())

    logger.debug("Propagation stages: %s", [type(s).__name__ for s in stages])
    return PropagationModel(stages)
