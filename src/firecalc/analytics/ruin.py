# Copyright 2025 The firecalc Authors
#
# Use of this source code is governed by an MIT license that can be
# found in the LICENSE file at the root of this repository.

"""When do failing runs run out of money?"""

from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np
import pandas as pd

from ..montecarlo.results import SimulationResult

DEFAULT_BUCKET_YEARS = 5


@dataclass(frozen=True)
class RuinBucket:
    """Ruined runs whose ruin year falls in [start_year, end_year]."""
    start_year: int
    end_year: int
    count: int
    fraction_of_failures: float

    @property
    def label(self) -> str:
        return f"Years {self.start_year}-{self.end_year}"


@dataclass(frozen=True)
class RuinDistribution:
    """Distribution of ruin years over the ruined runs.

    Attributes:
        horizon: Simulation horizon in years
        total_runs: Number of runs in the result
        failed_runs: Number of runs whose balance reached zero
        buckets: Fixed-width ruin-year buckets covering the horizon
        median_ruin_year: Median ruin year, or None when nothing failed
        early_failures: Failures in the first half of the horizon
        late_failures: Failures in the second half
    """
    horizon: int
    total_runs: int
    failed_runs: int
    buckets: Tuple[RuinBucket, ...]
    median_ruin_year: Optional[float]
    early_failures: int
    late_failures: int

    @property
    def probability_of_ruin(self) -> float:
        return self.failed_runs / self.total_runs if self.total_runs else 0.0

    def to_dataframe(self) -> pd.DataFrame:
        return pd.DataFrame([
            {"bucket": b.label, "start_year": b.start_year, "end_year": b.end_year,
             "count": b.count, "fraction_of_failures": b.fraction_of_failures}
            for b in self.buckets
        ]).set_index("bucket")


def ruin_year_distribution(result: SimulationResult,
                           bucket_years: int = DEFAULT_BUCKET_YEARS) -> RuinDistribution:
    """Bucket the ruin years of a result's ruined runs.

    Raises:
        ValueError: If the result has no per-run trajectories or bucket_years < 1
    """
    if bucket_years < 1:
        raise ValueError("bucket_years must be at least 1")
    runs = result.require_runs()
    horizon = result.parameters.time_horizon_years
    ruin_years = np.array([run.ruin_year for run in runs if run.ruined], dtype=int)
    failed = len(ruin_years)

    buckets = []
    for start in range(1, horizon + 1, bucket_years):
        end = min(start + bucket_years - 1, horizon)
        count = int(np.sum((ruin_years >= start) & (ruin_years <= end)))
        buckets.append(RuinBucket(start, end, count, count / failed if failed else 0.0))

    early = int(np.sum(ruin_years <= horizon / 2))
    return RuinDistribution(
        horizon=horizon,
        total_runs=len(runs),
        failed_runs=failed,
        buckets=tuple(buckets),
        median_ruin_year=float(np.median(ruin_years)) if failed else None,
        early_failures=early,
        late_failures=failed - early,
    )
