"""Link-budget coverage analysis."""

from __future__ import annotations

from typing import Optional

import numpy as np

from ..core.simulation import SimulationResult


def coverage_map(link_budget: np.ndarray, sensitivity_dbm: float) -> np.ndarray:
    """Boolean (devices, gateways) grid: True where rx power ≥ sensitivity."""
    return np.asarray(link_budget) >= sensitivity_dbm


def _sensitivity(result: SimulationResult, sensitivity_dbm: Optional[float]) -> float:
    if sensitivity_dbm is not None:
        return sensitivity_dbm
    return result.config.sensitivity_dbm[result.config.spreading_factor]


def coverage_by_gateway(result: SimulationResult, sensitivity_dbm: Optional[float] = None) -> dict[int, float]:
    """Per-gateway percentage of devices above sensitivity."""
    covered = coverage_map(result.link_budget, _sensitivity(result, sensitivity_dbm))
    out: dict[int, float] = {}
    total = covered.shape[0]
    for j, gw in enumerate(result.layout.gateways):
        out[gw.id] = round(100.0 * int(covered[:, j].sum()) / total, 2) if total else 0.0
    return out


def coverage_stats(result: SimulationResult, sensitivity_dbm: Optional[float] = None) -> dict:
    """Device coverage summary using each device's best gateway."""
    rx = result.link_budget
    total = rx.shape[0]
    if total == 0 or rx.shape[1] == 0:
        return {"total_devices": total, "covered_devices": 0, "coverage_pct": 0.0,
                "mean_best_rx_dbm": float("nan"), "min_best_rx_dbm": float("nan")}
    best = rx.max(axis=1)
    covered = int(np.sum(best >= _sensitivity(result, sensitivity_dbm)))
    return {
        "total_devices": total,
        "covered_devices": covered,
        "coverage_pct": round(100.0 * covered / total, 2),
        "mean_best_rx_dbm": round(float(np.mean(best)), 2),
        "min_best_rx_dbm": round(float(np.min(best)), 2),
    }
