"""Device records: end devices and gateways."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple


@dataclass(frozen=True)
class Device:
    """Static LoRaWAN end device placed in a room."""

    id: int
    x: float
    y: float
    z: float
    spreading_factor: int = 7
    address: int = 0
    room: Tuple[int, int] = (0, 0)
    floor: int = 0

    @property
    def position(self) -> Tuple[float, float, float]:
        return (self.x, self.y, self.z)

    @property
    def address_hex(self) -> str:
        return f"{self.address:08x}"


@dataclass(frozen=True)
class Gateway:
    """Receiver with a bounded number of parallel reception paths."""

    id: int
    x: float
    y: float
    z: float
    receiver_capacity: int = 8
    label: str = ""

    @property
    def position(self) -> Tuple[float, float, float]:
        return (self.x, self.y, self.z)
