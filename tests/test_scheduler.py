"""Tests for the event queue and periodic traffic."""

import numpy as np
import pytest

from indoor_lora_sim.core.device import Device
from indoor_lora_sim.core.scheduler import EventQueue, EventType
from indoor_lora_sim.core.traffic import PeriodicSender


class TestEventQueue:
    def test_time_order(self):
        q = EventQueue()
        q.push(5.0, EventType.TX_END, "b")
        q.push(1.0, EventType.TX_START, "a")
        q.push(9.0, EventType.GW_TX_START, "c")
        assert [q.pop().payload for _ in range(3)] == ["a", "b", "c"]
        assert not q

    def test_ties_keep_insertion_order(self):
        q = EventQueue()
        q.push(2.0, EventType.TX_START, 1)
        q.push(2.0, EventType.TX_END, 2)
        q.push(2.0, EventType.TX_START, 3)
        assert len(q) == 3
        assert [q.pop().payload for _ in range(3)] == [1, 2, 3]


class TestPeriodicSender:
    @pytest.fixture
    def sender(self):
        devices = [Device(i, 0.0, 0.0, 0.0) for i in range(50)]
        return PeriodicSender(devices, period=300.0, stop_time=1000.0,
                              channels=[868.1, 868.3, 868.5], rng=np.random.default_rng(1))

    def test_offsets_within_one_period(self, sender):
        assert np.all(sender.offsets >= 0.0)
        assert np.all(sender.offsets < 300.0)
        assert len(sender.first_sends()) == 50

    def test_next_send(self, sender):
        assert sender.next_send(100.0) == pytest.approx(400.0)
        assert sender.next_send(700.0) is None

    def test_first_sends_respect_stop(self):
        devices = [Device(i, 0.0, 0.0, 0.0) for i in range(50)]
        sender = PeriodicSender(devices, period=300.0, stop_time=10.0,
                                channels=[868.1], rng=np.random.default_rng(2))
        assert all(t < 10.0 for t, _ in sender.first_sends())
        assert len(sender.first_sends()) < 50

    def test_channels_drawn_from_plan(self, sender):
        picks = {sender.pick_channel() for _ in range(200)}
        assert picks == {868.1, 868.3, 868.5}

    def test_reproducible(self):
        devices = [Device(i, 0.0, 0.0, 0.0) for i in range(5)]
        a = PeriodicSender(devices, 60.0, 600.0, [868.1], np.random.default_rng(7))
        b = PeriodicSender(devices, 60.0, 600.0, [868.1], np.random.default_rng(7))
        np.testing.assert_array_equal(a.offsets, b.offsets)
