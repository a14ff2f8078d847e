"""Plain-text end-of-run summaries."""

from __future__ import annotations

from typing import List

from ..core.metrics import BREAKDOWN_KINDS
from ..core.simulation import SimulationResult
from .coverage import coverage_stats

SUMMARY_HEADER = (
    "packets sent  received  interfered  no more receivers  under sensitivity  lost because TX"
)


def summary_lines(result: SimulationResult) -> List[str]:
    """Global received count, one line per gateway, then the column header."""
    breakdown = result.breakdown()
    lines = [str(result.received_globally)]
    for gw_id in sorted(breakdown.table):
        lines.append(" ".join(str(v) for v in breakdown.row(gw_id)))
    lines.append(SUMMARY_HEADER)
    return lines


def format_report(result: SimulationResult) -> str:
    """Human-readable report with packet delivery and coverage figures."""
    cfg = result.config
    breakdown = result.breakdown()
    sent = result.tracker.sent_count(0.0, cfg.simulation_time)
    received = result.received_globally
    pdr = 100.0 * received / sent if sent else 0.0

    rows = [
        "=" * 60,
        "Indoor LoRaWAN Simulation: Packet Report",
        "=" * 60,
        f"  {'devices':>24s}: {len(result.layout.devices)}",
        f"  {'gateways':>24s}: {len(result.layout.gateways)}",
        f"  {'simulated time (s)':>24s}: {cfg.simulation_time:g}",
        f"  {'uplink airtime (s)':>24s}: {result.airtime:.6f}",
        f"  {'packets per device':>24s}: {cfg.expected_packets_per_device}",
        f"  {'packets sent':>24s}: {sent}",
        f"  {'packets dropped':>24s}: {result.dropped}",
        f"  {'received (any gateway)':>24s}: {received}",
        f"  {'delivery ratio (%)':>24s}: {pdr:.2f}",
        f"  {'throughput (pkt/s)':>24s}: {received / cfg.simulation_time:.4f}",
    ]
    if cfg.confirmed:
        rows.append(f"  {'downlinks':>24s}: {result.downlinks}")
    for key, value in coverage_stats(result).items():
        rows.append(f"  {key:>24s}: {value}")
    rows.append("-" * 60)
    rows.append("  gateway " + " ".join(f"{k:>17s}" for k in BREAKDOWN_KINDS))
    for gw_id in sorted(breakdown.table):
        rows.append(f"  {gw_id:>7d} " + " ".join(f"{v:>17d}" for v in breakdown.row(gw_id)))
    if breakdown.undercounted:
        rows.append(
            f"  WARNING: {breakdown.devices_observed} of {breakdown.devices_expected} devices observed"
        )
    rows.append("=" * 60)
    return "\n".join(rows)
