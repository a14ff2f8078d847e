from .errors import SimulationError, InvalidConfiguration, InvalidTransmission, DuplicateOutcome
from .building import Building, BuildingType, WallType, WALL_PENETRATION_LOSS, generate_buildings
from .device import Device, Gateway
from .layout import Layout, place_devices, place_gateways
from .classifier import PacketOutcome, PacketOutcomeClassifier, Transmission, OutcomeRecord
from .metrics import MetricsTracker, GatewayBreakdown
from .config import ScenarioConfig
from .context import SimulationContext
from .simulation import Simulation, SimulationResult

__all__ = [
    "SimulationError", "InvalidConfiguration", "InvalidTransmission", "DuplicateOutcome",
    "Building", "BuildingType", "WallType", "WALL_PENETRATION_LOSS", "generate_buildings",
    "Device", "Gateway", "Layout", "place_devices", "place_gateways",
    "PacketOutcome", "PacketOutcomeClassifier", "Transmission", "OutcomeRecord",
    "MetricsTracker", "GatewayBreakdown", "ScenarioConfig", "SimulationContext",
    "Simulation", "SimulationResult",
]
