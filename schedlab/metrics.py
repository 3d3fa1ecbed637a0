from __future__ import annotations

import math
import statistics
from collections import Counter
from typing import Any

from schedlab.types import SimulationRecord


def _percentile_sorted(values_sorted: list[float], p: int) -> float:
    if not values_sorted:
        return math.nan
    if p <= 0:
        return float(values_sorted[0])
    if p >= 100:
        return float(values_sorted[-1])

    # Linear interpolation between closest ranks.
    n = len(values_sorted)
    pos = (p / 100.0) * (n - 1)
    lo = int(math.floor(pos))
    hi = int(math.ceil(pos))
    if lo == hi:
        return float(values_sorted[lo])
    frac = pos - lo
    return float(values_sorted[lo] * (1.0 - frac) + values_sorted[hi] * frac)


def _percentiles(values: list[float], ps: list[int]) -> dict[str, float]:
    if not values:
        return {f"p{p}": math.nan for p in ps}
    values_sorted = sorted(float(x) for x in values)
    return {f"p{p}": _percentile_sorted(values_sorted, p) for p in ps}


def _ratio_stats(ratios: list[float]) -> dict[str, float]:
    if not ratios:
        return {
            k: math.nan
            for k in ("mean", "median", "min", "max", "p25", "p75", "p95", "std")
        }
    ratios_sorted = sorted(ratios)
    return {
        "mean": statistics.fmean(ratios_sorted),
        "median": _percentile_sorted(ratios_sorted, 50),
        "min": ratios_sorted[0],
        "max": ratios_sorted[-1],
        "p25": _percentile_sorted(ratios_sorted, 25),
        "p75": _percentile_sorted(ratios_sorted, 75),
        "p95": _percentile_sorted(ratios_sorted, 95),
        "std": statistics.pstdev(ratios_sorted),
    }


def aggregate_simulations(records: list[SimulationRecord]) -> dict[str, Any]:
    ok = [r for r in records if not r.failed]

    actual = [r.actual_runtime for r in ok]
    theoretical = [r.theoretical_runtime for r in ok]
    ratios = [
        r.actual_runtime / r.theoretical_runtime for r in ok if r.theoretical_runtime > 0
    ]
    efficiencies = [r.efficiency_ratio for r in ok if r.efficiency_ratio is not None]

    crit_paths = [r.critical_path_tasks for r in ok if r.critical_path_tasks]
    counts = {k: int(v) for k, v in Counter(crit_paths).items()}

    return {
        "algorithms": sorted({r.algorithm for r in records}),
        "simulations_requested": len(records),
        "simulations_ok": len(ok),
        "simulations_failed": len(records) - len(ok),
        "violations": sum(r.violation_count for r in ok),
        "runtime": {
            "actual": _percentiles(actual, [50, 90, 95, 99]),
            "theoretical": _percentiles(theoretical, [50, 90, 95, 99]),
        },
        "actual_to_theoretical": _ratio_stats(ratios),
        "mean_efficiency": statistics.fmean(efficiencies) if efficiencies else math.nan,
        "critical_path": {
            "top_paths": [
                {"tasks": path, "count": counts[path]}
                for path in sorted(counts, key=lambda p: (-counts[p], p))[:10]
            ]
        },
    }
