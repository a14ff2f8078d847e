"""Tests for the outcome log and its aggregate queries."""

import logging

import numpy as np
import pytest

from indoor_lora_sim.core.classifier import OutcomeRecord, PacketOutcome, Transmission
from indoor_lora_sim.core.device import Gateway
from indoor_lora_sim.core.errors import DuplicateOutcome
from indoor_lora_sim.core.metrics import BREAKDOWN_KINDS, MetricsTracker

P = PacketOutcome


def make_tx(tx_id, device_id, start):
    return Transmission(tx_id, device_id, start, 0.07, 7, 868.1)


@pytest.fixture
def tracker():
    """Four transmissions from two devices, each seen by two gateways."""
    t = MetricsTracker()
    log = [
        (make_tx(0, 0, 0.0), P.RECEIVED, P.RECEIVED),
        (make_tx(1, 1, 10.0), P.RECEIVED, P.INTERFERED),
        (make_tx(2, 0, 20.0), P.UNDER_SENSITIVITY, P.UNDER_SENSITIVITY),
        (make_tx(3, 1, 30.0), P.NO_MORE_RECEIVERS, P.LOST_BECAUSE_TX),
    ]
    for tx, at_gw0, at_gw1 in log:
        t.record(tx, 0, at_gw0, tx.start)
        t.record(tx, Gateway(1, 0, 0, 0), at_gw1, tx.start)
    return t


class TestCounts:
    def test_global_counts_distinct_packets(self, tracker):
        assert tracker.count_globally(0, 40) == 2

    def test_per_gateway_counts_duplicates(self, tracker):
        assert tracker.count_per_gateway(0, 40) == {0: 2, 1: 1}
        assert tracker.count_per_gateway(0, 40, P.LOST_BECAUSE_TX) == {0: 0, 1: 1}

    def test_window_is_half_open(self, tracker):
        assert tracker.count_globally(0, 10) == 1
        assert tracker.count_globally(10, 30) == 1
        assert tracker.count_globally(0, 0) == 0

    def test_sent(self, tracker):
        assert tracker.sent_count(0, 40) == 4
        assert tracker.sent_count(15, 40) == 2

    def test_outcome_lookup(self, tracker):
        assert tracker.outcome(1, 1) is P.INTERFERED
        assert tracker.outcome(9, 0) is None
        assert len(tracker) == 8

    def test_empty(self):
        t = MetricsTracker()
        assert t.count_globally(0, 100) == 0
        assert t.count_per_gateway(0, 100) == {}
        assert t.per_gateway_breakdown(0, 100).table == {}


class TestRecord:
    def test_duplicate_pair(self, tracker):
        with pytest.raises(DuplicateOutcome, match="already has outcome"):
            tracker.record(make_tx(0, 0, 0.0), 0, P.INTERFERED, 0.0)

    def test_same_tx_new_gateway(self, tracker):
        tracker.record(make_tx(0, 0, 0.0), 2, P.RECEIVED, 0.0)
        assert tracker.count_globally(0, 40) == 2
        assert tracker.count_per_gateway(0, 40)[2] == 1

    def test_ingest_records(self):
        t = MetricsTracker()
        tx = make_tx(5, 3, 7.0)
        t.ingest([OutcomeRecord(tx, 0, P.RECEIVED, 7.0, 7.07)])
        assert t.count_globally(0, 10) == 1

    def test_dropped(self, tracker):
        tracker.record_dropped(99, 5, 12.0, "non-positive duration 0")
        assert tracker.dropped_count(0, 40) == 1
        assert tracker.dropped_count(0, 12) == 0
        assert tracker.sent_count(0, 40) == 4


class TestBreakdown:
    def test_rows(self, tracker):
        b = tracker.per_gateway_breakdown(0, 40)
        assert b.row(0) == [4, 2, 0, 1, 1, 0]
        assert b.row(1) == [4, 1, 1, 0, 1, 1]

    def test_outcomes_add_up_to_sent(self, tracker):
        b = tracker.per_gateway_breakdown(0, 40)
        for counts in b.table.values():
            assert counts["sent"] == sum(counts[k] for k in BREAKDOWN_KINDS[1:])

    def test_undercount_warning(self, tracker, caplog):
        with caplog.at_level(logging.WARNING, logger="indoor_lora_sim.core.metrics"):
            b = tracker.per_gateway_breakdown(0, 40, n_devices_expected=3)
        assert b.devices_observed == 2
        assert b.undercounted
        assert "Only 2 of 3 devices" in caplog.text

    def test_no_warning_when_complete(self, tracker, caplog):
        with caplog.at_level(logging.WARNING, logger="indoor_lora_sim.core.metrics"):
            b = tracker.per_gateway_breakdown(0, 40, n_devices_expected=2)
        assert not b.undercounted
        assert caplog.text == ""

    def test_silent_gateway_gets_zero_row(self, tracker):
        b = tracker.per_gateway_breakdown(0, 40, gateway_ids=[0, 1, 2])
        assert sorted(b.table) == [0, 1, 2]
        assert b.row(2) == [0, 0, 0, 0, 0, 0]
        assert b.row(0) == [4, 2, 0, 1, 1, 0]

    def test_empty_log_with_gateways(self):
        b = MetricsTracker().per_gateway_breakdown(0, 10, gateway_ids=[0])
        assert b.row(0) == [0] * len(BREAKDOWN_KINDS)


class TestWindowedCounts:
    def test_global_view(self, tracker):
        edges, counts = tracker.windowed_counts(10, 0, 40)
        np.testing.assert_allclose(edges, [0, 10, 20, 30, 40])
        np.testing.assert_array_equal(counts["sent"], [1, 1, 1, 1])
        np.testing.assert_array_equal(counts["received"], [1, 1, 0, 0])
        np.testing.assert_array_equal(counts["interfered"], [0, 1, 0, 0])

    def test_gateway_view(self, tracker):
        _, counts = tracker.windowed_counts(10, 0, 40, gateway_id=1)
        np.testing.assert_array_equal(counts["received"], [1, 0, 0, 0])
        np.testing.assert_array_equal(counts["lost_because_tx"], [0, 0, 0, 1])

    def test_partial_last_window(self, tracker):
        edges, counts = tracker.windowed_counts(15, 0, 40)
        np.testing.assert_allclose(edges, [0, 15, 30, 40])
        np.testing.assert_array_equal(counts["sent"], [2, 1, 1])

    def test_bad_arguments(self, tracker):
        with pytest.raises(ValueError, match="window"):
            tracker.windowed_counts(0, 0, 40)
        with pytest.raises(ValueError, match="empty"):
            tracker.windowed_counts(10, 40, 40)

    def test_window_not_exactly_representable(self):
        t = MetricsTracker()
        t.record(make_tx(0, 0, 1.05), 0, P.RECEIVED, 1.05)
        t.record(make_tx(1, 1, 1.25), 0, P.INTERFERED, 1.25)
        edges, counts = t.windowed_counts(0.1, 1.0, 1.3)
        assert len(edges) == 4
        assert edges[-1] == 1.3
        assert np.all(np.diff(edges) > 0)
        np.testing.assert_array_equal(counts["received"], [1, 0, 0])
        np.testing.assert_array_equal(counts["interfered"], [0, 0, 1])
