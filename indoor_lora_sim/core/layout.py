"""Deterministic placement of end devices, gateways and buildings."""

from __future__ import annotations

from typing import Dict, List, Optional, Sequence, TextIO, Tuple

from .building import Building, find_building
from .device import Device, Gateway
from .errors import InvalidConfiguration
from ..protocols.lorawan import SF_SENSITIVITY, device_address


def place_devices(
    n: int,
    rooms_x: int = 10,
    rooms_y: int = 10,
    room_spacing: float = 10.0,
    floor_height: float = 3.0,
    floor_base: float = 1.2,
    spreading_factor: int = 7,
    nwk_id: int = 54,
    nwk_addr: int = 1864,
    listing: Optional[TextIO] = None,
) -> List[Device]:
    """Fill rooms row by row, one device per room, then move up a floor.

    Device *i* lands in room ``(i % rooms_x, (i // rooms_x) % rooms_y)`` on
    floor ``i // (rooms_x * rooms_y)``, at the centre of the room and
    ``floor_base`` metres above the floor slab.

    Parameters
    ----------
    n : int
        Number of devices.
    listing : TextIO, optional
        When given, one ``index is: i, Xpos: .., Ypos: .., Zpos: ..`` line per
        device is written to it.

    Raises
    ------
    InvalidConfiguration
        On a negative count, a non-positive room grid or spacing, or an
        unknown spreading factor.
    """
    if n < 0:
        raise InvalidConfiguration(f"device count must be >= 0, got {n}")
    if rooms_x <= 0 or rooms_y <= 0:
        raise InvalidConfiguration(f"room grid must be positive, got {rooms_x}x{rooms_y}")
    if room_spacing <= 0 or floor_height <= 0:
        raise InvalidConfiguration("room spacing and floor height must be positive")
    if spreading_factor not in SF_SENSITIVITY:
        raise InvalidConfiguration(f"unknown spreading factor SF{spreading_factor}")

    per_floor = rooms_x * rooms_y
    devices: List[Device] = []
    for i in range(n):
        room_x = i % rooms_x
        room_y = (i // rooms_x) % rooms_y
        floor = i // per_floor
        try:
            address = device_address(nwk_id, nwk_addr + i)
        except ValueError as exc:
            raise InvalidConfiguration(str(exc)) from exc
        devices.append(
            Device(
                id=i,
                x=room_spacing * room_x + room_spacing / 2.0,
                y=room_spacing * room_y + room_spacing / 2.0,
                z=floor_height * floor + floor_base,
                spreading_factor=spreading_factor,
                address=address,
                room=(room_x, room_y),
                floor=floor,
            )
        )

    if listing is not None:
        write_position_listing([d.position for d in devices], listing)
    return devices


def place_gateways(
    positions: Sequence[Tuple[float, float, float]],
    receiver_capacity: int = 8,
    listing: Optional[TextIO] = None,
) -> List[Gateway]:
    """Create one gateway per fixed coordinate triple."""
    if receiver_capacity <= 0:
        raise InvalidConfiguration(f"receiver capacity must be positive, got {receiver_capacity}")
    gateways = [
        Gateway(id=i, x=float(x), y=float(y), z=float(z),
                receiver_capacity=receiver_capacity, label=f"GW-{i}")
        for i, (x, y, z) in enumerate(positions)
    ]
    if listing is not None:
        write_position_listing([g.position for g in gateways], listing)
    return gateways


def write_position_listing(positions: Sequence[Tuple[float, float, float]], stream: TextIO) -> None:
    """Write ``index is: i, Xpos: x, Ypos: y, Zpos: z`` lines for offline plotting."""
    for index, (x, y, z) in enumerate(positions):
        stream.write(f"index is: {index}, Xpos: {x:g}, Ypos: {y:g}, Zpos: {z:g}\n")


class Layout:
    """Read-only tables of buildings, devices and gateways indexed by id.

    Parameters
    ----------
    buildings : Sequence[Building]
    devices : Sequence[Device]
    gateways : Sequence[Gateway]
    """

    def __init__(
        self,
        buildings: Sequence[Building],
        devices: Sequence[Device],
        gateways: Sequence[Gateway],
    ) -> None:
        self.buildings: Tuple[Building, ...] = tuple(buildings)
        self.devices: Tuple[Device, ...] = tuple(devices)
        self.gateways: Tuple[Gateway, ...] = tuple(gateways)

        self._buildings: Dict[int, Building] = _index(self.buildings, "building")
        self._devices: Dict[int, Device] = _index(self.devices, "device")
        self._gateways: Dict[int, Gateway] = _index(self.gateways, "gateway")

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def device(self, device_id: int) -> Device:
        return self._devices[device_id]

    def gateway(self, gateway_id: int) -> Gateway:
        return self._gateways[gateway_id]

    def building(self, building_id: int) -> Building:
        return self._buildings[building_id]

    def building_at(self, point: Tuple[float, float, float]) -> Optional[Building]:
        """Building containing *point*, or *None* when outdoors."""
        return find_building(list(self.buildings), point)

    @property
    def floors_used(self) -> int:
        return max((d.floor for d in self.devices), default=-1) + 1


def _index(items, kind: str) -> dict:
    table = {}
    for item in items:
        if item.id in table:
            raise InvalidConfiguration(f"duplicate {kind} id {item.id}")
        table[item.id] = item
    return table
