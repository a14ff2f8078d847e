"""Building penetration and floor losses."""

from __future__ import annotations

from typing import TYPE_CHECKING, Dict, Optional, Sequence, Tuple

from .pathloss import Position

if TYPE_CHECKING:
    from indoor_lora_sim.core.building import Building, WallType


def clip_segment_to_box(
    p: Position, q: Position, building: Building
) -> Optional[Tuple[float, float]]:
    """Parametric interval [t0, t1] of segment p→q inside *building*.

    Slab clipping against the three axis-aligned extents; returns *None*
    when the segment misses the box.
    """
    lows = (building.x_min, building.y_min, 0.0)
    highs = (building.x_max, building.y_max, building.height)
    t0, t1 = 0.0, 1.0
    for axis in range(3):
        d = q[axis] - p[axis]
        if d == 0.0:
            if p[axis] < lows[axis] or p[axis] > highs[axis]:
                return None
            continue
        ta = (lows[axis] - p[axis]) / d
        tb = (highs[axis] - p[axis]) / d
        if ta > tb:
            ta, tb = tb, ta
        t0 = max(t0, ta)
        t1 = min(t1, tb)
        if t0 > t1:
            return None
    return (t0, t1)


def boundary_crossings(tx: Position, rx: Position, building: Building) -> int:
    """Number of times the segment tx→rx crosses the building envelope (0, 1 or 2)."""
    tx_in = building.contains(tx)
    rx_in = building.contains(rx)
    if tx_in and rx_in:
        return 0
    if tx_in != rx_in:
        return 1
    span = clip_segment_to_box(tx, rx, building)
    if span is None or span[1] <= span[0]:
        return 0
    return 2


class BuildingPenetrationLoss:
    """External wall loss, added once per envelope crossing of each building.

    Parameters
    ----------
    wall_loss : dict, optional
        Wall type → loss in dB, overriding each building's own
        :attr:`~indoor_lora_sim.core.building.Building.wall_loss_db`.
    """

    def __init__(self, wall_loss: Optional[Dict[WallType, float]] = None) -> None:
        self.wall_loss = dict(wall_loss or {})

    def __call__(self, tx: Position, rx: Position, buildings: Sequence[Building] = ()) -> float:
        total = 0.0
        for b in buildings:
            crossings = boundary_crossings(tx, rx, b)
            if crossings:
                total += crossings * self.wall_loss.get(b.wall_type, b.wall_loss_db)
        return total


class FloorPenetrationLoss:
    """Loss of the slabs between two points inside the same building."""

    def __call__(self, tx: Position, rx: Position, buildings: Sequence[Building] = ()) -> float:
        for b in buildings:
            if b.contains(tx) and b.contains(rx):
                return b.floor_loss_db(abs(b.floor_of(tx[2]) - b.floor_of(rx[2])))
        return 0.0
