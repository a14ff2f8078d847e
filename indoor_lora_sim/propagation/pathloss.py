"""Distance-based path-loss models: FSPL and log-distance."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Sequence, Tuple

import numpy as np

Position = Tuple[float, float, float]


def free_space_path_loss(distance_m: np.ndarray | float, freq_mhz: float) -> np.ndarray:
    """Free-Space Path Loss (Friis).

    FSPL(dB) = 20·log10(d) + 20·log10(f) + 32.44
    where *d* in km, *f* in MHz.
    """
    d_km = np.asarray(distance_m, dtype=np.float64) / 1000.0
    d_km = np.clip(d_km, 1e-6, None)
    return 20.0 * np.log10(d_km) + 20.0 * np.log10(freq_mhz) + 32.44  # type: ignore[return-value]


def log_distance_path_loss(
    distance_m: np.ndarray | float,
    n: float = 2.3,
    d0: float = 1.0,
    pl0: float = 42.0,
) -> np.ndarray:
    """Log-distance path-loss model.

    PL(d) = PL(d0) + 10·n·log10(d/d0)

    Distances below *d0* are clipped to *d0*.
    """
    d = np.asarray(distance_m, dtype=np.float64)
    d = np.clip(d, d0, None)
    return pl0 + 10.0 * n * np.log10(d / d0)  # type: ignore[return-value]


def distance(a: Position, b: Position) -> float:
    """Euclidean distance (m) between two 3-D points."""
    return math.sqrt((a[0] - b[0]) ** 2 + (a[1] - b[1]) ** 2 + (a[2] - b[2]) ** 2)


@dataclass(frozen=True)
class LogDistanceLoss:
    """Distance attenuation stage.

    Parameters
    ----------
    exponent : float
        Path-loss exponent (default 2.3, indoor).
    reference_distance : float
        d0 in metres.
    reference_loss : float
        PL(d0) in dB.
    """

    exponent: float = 2.3
    reference_distance: float = 1.0
    reference_loss: float = 42.0

    @classmethod
    def from_frequency(
        cls, freq_mhz: float, exponent: float = 2.3, reference_distance: float = 1.0
    ) -> "LogDistanceLoss":
        """Use free-space loss at *reference_distance* as PL(d0)."""
        pl0 = float(free_space_path_loss(reference_distance, freq_mhz))
        return cls(exponent=exponent, reference_distance=reference_distance, reference_loss=pl0)

    def __call__(self, tx: Position, rx: Position, buildings: Sequence = ()) -> float:
        return float(
            log_distance_path_loss(
                distance(tx, rx),
                n=self.exponent,
                d0=self.reference_distance,
                pl0=self.reference_loss,
            )
        )
