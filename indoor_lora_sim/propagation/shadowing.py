"""Spatially correlated log-normal shadowing."""

from __future__ import annotations

import math
from typing import Dict, Sequence, Tuple

import numpy as np

from .pathloss import Position

# Keeps lattice indices non-negative for SeedSequence entropy
_INDEX_OFFSET = 2 ** 31


class CorrelatedShadowing:
    """Zero-mean Gaussian shadowing field correlated over a grid.

    Independent N(0, sigma²) values are drawn at the nodes of a square
    lattice whose pitch is the decorrelation distance.  The field at any
    point is the bilinear blend of the four surrounding nodes, renormalised
    so that its variance stays sigma².  Nearby points therefore share most of
    their shadowing while points further apart than the lattice pitch are
    independent.

    Each lattice value is derived from ``(seed, i, j)`` alone, so the field
    does not depend on the order in which links are evaluated.

    Parameters
    ----------
    sigma_db : float
        Standard deviation of the shadowing (dB).
    correlation_distance : float
        Lattice pitch in metres.
    seed : int
        Seed of the field.
    """

    def __init__(self, sigma_db: float = 7.8, correlation_distance: float = 110.0, seed: int = 1) -> None:
        if correlation_distance <= 0:
            raise ValueError("correlation_distance must be positive")
        self.sigma_db = sigma_db
        self.correlation_distance = correlation_distance
        self.seed = seed
        self._nodes: Dict[Tuple[int, int], float] = {}

    def _node(self, i: int, j: int) -> float:
        key = (i, j)
        value = self._nodes.get(key)
        if value is None:
            rng = np.random.default_rng([self.seed, i + _INDEX_OFFSET, j + _INDEX_OFFSET])
            value = float(rng.normal(0.0, self.sigma_db))
            self._nodes[key] = value
        return value

    def at(self, x: float, y: float) -> float:
        """Shadowing value (dB) of the field at (x, y)."""
        gx = x / self.correlation_distance
        gy = y / self.correlation_distance
        i = math.floor(gx)
        j = math.floor(gy)
        u = gx - i
        v = gy - j
        weights = (
            ((1 - u) * (1 - v), self._node(i, j)),
            (u * (1 - v), self._node(i + 1, j)),
            ((1 - u) * v, self._node(i, j + 1)),
            (u * v, self._node(i + 1, j + 1)),
        )
        norm = math.sqrt(sum(w * w for w, _ in weights))
        return sum(w * g for w, g in weights) / norm

    def __call__(self, tx: Position, rx: Position, buildings: Sequence = ()) -> float:
        return (self.at(tx[0], tx[1]) + self.at(rx[0], rx[1])) / math.sqrt(2.0)
