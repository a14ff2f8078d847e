"""Exception hierarchy for scenario setup and packet handling."""

from __future__ import annotations

from typing import Optional


class SimulationError(Exception):
    """Base class for all simulator errors."""


class InvalidConfiguration(SimulationError, ValueError):
    """Raised before a run starts when a scenario parameter is unusable."""


class InvalidTransmission(SimulationError, ValueError):
    """A transmission that cannot be classified.

    Parameters
    ----------
    message : str
        Human-readable reason.
    transmission_id : int, optional
    device_id : int, optional
    time : float, optional
        Simulation time (s) at which the transmission was offered.
    """

    def __init__(
        self,
        message: str,
        transmission_id: Optional[int] = None,
        device_id: Optional[int] = None,
        time: Optional[float] = None,
    ) -> None:
        self.reason = message
        self.transmission_id = transmission_id
        self.device_id = device_id
        self.time = time
        super().__init__(
            f"{message} (transmission={transmission_id}, device={device_id}, t={time})"
        )


class DuplicateOutcome(SimulationError, LookupError):
    """An outcome was already recorded for a (transmission, gateway) pair."""
