from .pathloss import free_space_path_loss, log_distance_path_loss, LogDistanceLoss
from .shadowing import CorrelatedShadowing
from .penetration import BuildingPenetrationLoss, FloorPenetrationLoss, boundary_crossings
from .model import PropagationModel, build_propagation_model

__all__ = [
    "free_space_path_loss", "log_distance_path_loss", "LogDistanceLoss",
    "CorrelatedShadowing", "BuildingPenetrationLoss", "FloorPenetrationLoss",
    "boundary_crossings", "PropagationModel", "build_propagation_model",
]
