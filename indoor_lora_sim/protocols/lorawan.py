"""LoRaWAN protocol parameters and airtime."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Dict, List

# Gateway sensitivity per spreading factor (dBm) for 125 kHz BW
SF_SENSITIVITY: Dict[int, float] = {
    7: -130.0,
    8: -132.5,
    9: -135.0,
    10: -137.5,
    11: -140.0,
    12: -142.5,
}

# Default EU868 uplink channels (MHz)
EU868_CHANNELS: List[float] = [868.1, 868.3, 868.5]

# MHDR (1) + FHDR (7) + FPort (1) + MIC (4)
MAC_OVERHEAD_BYTES = 13


def airtime(
    spreading_factor: int,
    payload_bytes: int,
    bandwidth_hz: float = 125_000.0,
    coding_rate: int = 1,
    preamble_symbols: int = 8,
    explicit_header: bool = True,
    crc: bool = True,
    low_data_rate_optimize: bool | None = None,
) -> float:
    """Time on air (s) of a LoRa frame.

    T = (n_preamble + 4.25)·Ts + (8 + max(ceil((8PL - 4SF + 28 + 16CRC - 20H)
    / (4(SF - 2DE)))·(CR + 4), 0))·Ts, with Ts = 2^SF / BW.

    Parameters
    ----------
    coding_rate : int
        1..4 for 4/5..4/8.
    low_data_rate_optimize : bool, optional
        Defaults to on when the symbol lasts 16 ms or more (SF11/SF12 at 125 kHz).
    """
    t_sym = (2 ** spreading_factor) / bandwidth_hz
    if low_data_rate_optimize is None:
        low_data_rate_optimize = t_sym >= 0.016
    de = 1 if low_data_rate_optimize else 0
    h = 0 if explicit_header else 1
    numerator = 8 * payload_bytes - 4 * spreading_factor + 28 + 16 * int(crc) - 20 * h
    n_payload = 8 + max(
        math.ceil(numerator / (4 * (spreading_factor - 2 * de))) * (coding_rate + 4), 0
    )
    t_preamble = (preamble_symbols + 4.25) * t_sym
    return t_preamble + n_payload * t_sym


def device_address(nwk_id: int, nwk_addr: int) -> int:
    """Build a 32-bit DevAddr from a 7-bit NwkID and a 25-bit NwkAddr."""
    if not 0 <= nwk_id < 2 ** 7:
        raise ValueError(f"NwkID must fit in 7 bits, got {nwk_id}")
    if not 0 <= nwk_addr < 2 ** 25:
        raise ValueError(f"NwkAddr must fit in 25 bits, got {nwk_addr}")
    return (nwk_id << 25) | nwk_addr


@dataclass
class LoRaWAN:
    """LoRa modulation parameters of an uplink.

    Parameters
    ----------
    spreading_factor : int
        SF7–SF12 (default SF7).
    bandwidth_khz : float
    coding_rate : int
        1..4 for 4/5..4/8.
    preamble_symbols : int
    """

    spreading_factor: int = 7
    bandwidth_khz: float = 125.0
    coding_rate: int = 1
    preamble_symbols: int = 8

    def __post_init__(self) -> None:
        if self.spreading_factor not in SF_SENSITIVITY:
            raise ValueError(f"Unknown spreading factor SF{self.spreading_factor}")

    def airtime(self, payload_bytes: int, mac_overhead: int = MAC_OVERHEAD_BYTES) -> float:
        """Time on air (s) of an uplink carrying *payload_bytes* application bytes."""
        return airtime(
            self.spreading_factor,
            payload_bytes + mac_overhead,
            bandwidth_hz=self.bandwidth_khz * 1000.0,
            coding_rate=self.coding_rate,
            preamble_symbols=self.preamble_symbols,
        )
