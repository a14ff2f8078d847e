"""Periodic application traffic."""

from __future__ import annotations

from typing import List, Sequence, Tuple

import numpy as np

from .device import Device


class PeriodicSender:
    """Each device sends every *period* seconds after a random initial delay.

    The initial delay is uniform in ``[0, period)`` and the uplink channel is
    drawn uniformly from *channels* for every packet, both from *rng*.

    Parameters
    ----------
    devices : Sequence[Device]
    period : float
        Application period (s).
    stop_time : float
        No transmission starts at or after this time.
    channels : Sequence[float]
        Uplink channel frequencies (MHz).
    rng : numpy.random.Generator
    """

    def __init__(
        self,
        devices: Sequence[Device],
        period: float,
        stop_time: float,
        channels: Sequence[float],
        rng: np.random.Generator,
    ) -> None:
        self.devices = list(devices)
        self.period = period
        self.stop_time = stop_time
        self.channels = list(channels)
        self.rng = rng
        self.offsets: np.ndarray = rng.uniform(0.0, period, size=len(self.devices))

    def first_sends(self) -> List[Tuple[float, Device]]:
        """(time, device) of every device's first packet before the stop time."""
        return [
            (float(t), dev)
            for t, dev in zip(self.offsets, self.devices)
            if t < self.stop_time
        ]

    def next_send(self, time: float) -> float | None:
        """Time of the packet following one sent at *time*, or *None* past the stop time."""
        nxt = time + self.period
        return nxt if nxt < self.stop_time else None

    def pick_channel(self) -> float:
        return float(self.channels[int(self.rng.integers(len(self.channels)))])
