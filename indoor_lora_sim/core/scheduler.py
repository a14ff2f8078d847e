"""Heap-ordered event queue for the discrete-event loop."""

from __future__ import annotations

import heapq
import itertools
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, List


class EventType(IntEnum):
    """Kinds of events handled by :class:`~indoor_lora_sim.core.simulation.Simulation`."""

    TX_START = 0
    TX_END = 1
    GW_TX_START = 2


@dataclass(order=True)
class Event:
    time: float
    seq: int
    type: EventType = field(compare=False)
    payload: Any = field(compare=False, default=None)


class EventQueue:
    """Events ordered by time, ties broken by insertion order."""

    def __init__(self) -> None:
        self._heap: List[Event] = []
        self._counter = itertools.count()

    def push(self, time: float, event_type: EventType, payload: Any = None) -> Event:
        event = Event(time, next(self._counter), event_type, payload)
        heapq.heappush(self._heap, event)
        return event

    def pop(self) -> Event:
        return heapq.heappop(self._heap)

    def __len__(self) -> int:
        return len(self._heap)

    def __bool__(self) -> bool:
        return bool(self._heap)
