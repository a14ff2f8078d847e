"""Explicit simulation clock and random state."""

from __future__ import annotations

import numpy as np


class SimulationContext:
    """Clock and seeded random generator shared by one simulation run.

    Parameters
    ----------
    seed : int
        Seed for the numpy random generator (default 1).
    """

    def __init__(self, seed: int = 1) -> None:
        self.seed = seed
        self.rng: np.random.Generator = np.random.default_rng(seed)
        self.now: float = 0.0

    def advance_to(self, time: float) -> None:
        """Move the clock forward; going back in time is a programming error."""
        if time < self.now:
            raise RuntimeError(f"clock cannot go back from {self.now} to {time}")
        self.now = time
