"""Scenario configuration."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Dict, List, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from .building import BuildingType, WallType, building_type_from, wall_type_from
from .errors import InvalidConfiguration
from ..protocols.lorawan import EU868_CHANNELS, SF_SENSITIVITY


class ScenarioConfig(BaseModel):
    """All knobs of an indoor deployment scenario.

    Defaults reproduce the reference scenario: 700 devices on 7 floors of two
    100 m × 100 m commercial buildings, one gateway on the roof-top corner,
    one uplink of 20 bytes every 5 minutes for 24 hours, SF7.
    """

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    # Network
    n_devices: int = Field(700, ge=0)
    n_gateways: int = Field(1, gt=0)
    gateway_positions: List[Tuple[float, float, float]] = [(50.0, 50.0, 23.0)]
    receiver_capacity: int = Field(8, gt=0)

    # Traffic
    simulation_time: float = Field(86400.0, gt=0)
    app_period: float = Field(300.0, gt=0)
    payload_size: int = Field(20, ge=0, le=255)
    mac_overhead: int = Field(13, ge=0)
    confirmed: bool = False
    rx1_delay: float = Field(1.0, ge=0)

    # Radio
    tx_power_dbm: float = 14.0
    spreading_factor: int = 7
    channels: List[float] = Field(default_factory=lambda: list(EU868_CHANNELS))
    capture_threshold_db: float = Field(6.0, ge=0)
    sensitivity_dbm: Dict[int, float] = Field(default_factory=lambda: dict(SF_SENSITIVITY))

    # Propagation
    path_loss_exponent: float = Field(2.3, gt=0)
    reference_distance: float = Field(1.0, gt=0)
    reference_loss: float = 42.0
    realistic_channel_model: bool = True
    shadowing: bool = True
    building_penetration: bool = True
    floor_penetration: bool = False
    shadowing_sigma_db: float = Field(7.8, ge=0)
    shadowing_correlation_distance: float = Field(110.0, gt=0)

    # Buildings
    building_grid_width: int = Field(3, gt=0)
    building_length_x: float = Field(100.0, gt=0)
    building_length_y: float = Field(100.0, gt=0)
    building_delta_x: float = Field(7.5, ge=0)
    building_delta_y: float = Field(7.5, ge=0)
    building_height: float = Field(21.0, gt=0)
    building_count: int = Field(2, ge=0)
    building_min_x: float = 0.0
    building_min_y: float = 0.0
    wall_type: WallType = WallType.CONCRETE_WITH_WINDOWS
    building_type: BuildingType = BuildingType.COMMERCIAL

    # Rooms and floors
    rooms_x: int = Field(10, gt=0)
    rooms_y: int = Field(10, gt=0)
    floors: int = Field(7, gt=0)
    room_spacing: float = Field(10.0, gt=0)
    floor_height: float = Field(3.0, gt=0)
    floor_base: float = Field(1.2, ge=0)

    # Run control
    seed: int = Field(1, ge=0)
    print_listings: bool = Field(True, alias="print")

    @field_validator("wall_type", mode="before")
    @classmethod
    def _wall_type(cls, value):
        return wall_type_from(value)

    @field_validator("building_type", mode="before")
    @classmethod
    def _building_type(cls, value):
        return building_type_from(value)

    @field_validator("spreading_factor")
    @classmethod
    def _spreading_factor(cls, value: int) -> int:
        if value not in SF_SENSITIVITY:
            raise ValueError(f"spreading factor must be 7..12, got {value}")
        return value

    @field_validator("channels")
    @classmethod
    def _channels(cls, value: List[float]) -> List[float]:
        if not value:
            raise ValueError("at least one channel is required")
        return value

    @model_validator(mode="after")
    def _consistency(self) -> "ScenarioConfig":
        if len(self.gateway_positions) < self.n_gateways:
            raise ValueError(
                f"{self.n_gateways} gateways requested but only "
                f"{len(self.gateway_positions)} positions given"
            )
        if self.spreading_factor not in self.sensitivity_dbm:
            raise ValueError(f"no sensitivity configured for SF{self.spreading_factor}")
        return self

    # ------------------------------------------------------------------
    # Construction helpers
    # ------------------------------------------------------------------

    @classmethod
    def create(cls, **overrides) -> "ScenarioConfig":
        """Validate *overrides* on top of the defaults.

        Raises
        ------
        InvalidConfiguration
            If any value fails validation.
        """
        try:
            return cls.model_validate(overrides)
        except ValidationError as exc:
            raise InvalidConfiguration(str(exc)) from exc

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "ScenarioConfig":
        """Load a JSON scenario file."""
        try:
            data = json.loads(Path(path).read_text())
        except (OSError, json.JSONDecodeError) as exc:
            raise InvalidConfiguration(f"cannot read scenario file {path}: {exc}") from exc
        if not isinstance(data, dict):
            raise InvalidConfiguration(f"scenario file {path} must hold a JSON object")
        return cls.create(**data)

    @property
    def active_gateway_positions(self) -> List[Tuple[float, float, float]]:
        return list(self.gateway_positions[: self.n_gateways])

    @property
    def expected_packets_per_device(self) -> int:
        return int(self.simulation_time // self.app_period)
