# Copyright 2025 The firecalc Authors
#
# Use of this source code is governed by an MIT license that can be
# found in the LICENSE file at the root of this repository.

"""
Sequence-of-returns cohort analysis.

Runs are scored by the median balance return over their first few years,
sorted, and split into poor, average, and good thirds. Comparing the cohorts'
trajectories and success rates shows how much early returns matter even when
long-run averages are the same.
"""

from dataclasses import dataclass
from typing import List, Sequence, Tuple

import numpy as np
import pandas as pd

from ..montecarlo.results import SimulationResult, SimulationRun

DEFAULT_EARLY_YEARS = 5


@dataclass(frozen=True)
class ReturnCohort:
    """One third of the runs, grouped by early-return score.

    Attributes:
        label: "poor", "average", or "good"
        run_numbers: Runs in the cohort, in score order
        success_rate: Fraction of cohort runs that succeeded (0 if empty)
        median_balances: Median balance at each year index (empty if no runs)
        median_early_return: Median early-return score of the cohort
    """
    label: str
    run_numbers: Tuple[int, ...]
    success_rate: float
    median_balances: Tuple[float, ...]
    median_early_return: float

    @property
    def size(self) -> int:
        return len(self.run_numbers)

    @property
    def median_final_balance(self) -> float:
        return self.median_balances[-1] if self.median_balances else 0.0


@dataclass(frozen=True)
class SequenceRiskAnalysis:
    early_years: int
    poor: ReturnCohort
    average: ReturnCohort
    good: ReturnCohort

    @property
    def cohorts(self) -> Tuple[ReturnCohort, ReturnCohort, ReturnCohort]:
        return self.poor, self.average, self.good

    @property
    def success_spread(self) -> float:
        """Success-rate gap between the good and poor cohorts."""
        return self.good.success_rate - self.poor.success_rate

    def to_dataframe(self) -> pd.DataFrame:
        """Median balance per year, one column per cohort."""
        return pd.DataFrame({c.label: list(c.median_balances) for c in self.cohorts if c.size})


def early_return_score(balances: Sequence[float], early_years: int) -> float:
    """Median year-over-year balance change over the first early_years.

    Years starting from a zero balance are skipped; a run with no usable
    years scores 0.
    """
    changes = []
    for year in range(1, min(early_years, len(balances) - 1) + 1):
        previous = balances[year - 1]
        if previous > 0:
            changes.append((balances[year] - previous) / previous)
    if not changes:
        return 0.0
    return float(np.median(changes))


def _cohort(label: str, scored: List[Tuple[float, SimulationRun]]) -> ReturnCohort:
    if not scored:
        return ReturnCohort(label, (), 0.0, (), 0.0)
    runs = [run for _, run in scored]
    balances = np.vstack([run.yearly_balances for run in runs])
    return ReturnCohort(
        label=label,
        run_numbers=tuple(run.run_number for run in runs),
        success_rate=sum(run.success for run in runs) / len(runs),
        median_balances=tuple(float(v) for v in np.median(balances, axis=0)),
        median_early_return=float(np.median([score for score, _ in scored])),
    )


def analyze_sequence_risk(result: SimulationResult,
                          early_years: int = DEFAULT_EARLY_YEARS) -> SequenceRiskAnalysis:
    """Split a result's runs into cohorts by early returns.

    Args:
        result: Simulation result that still carries its per-run trajectories
        early_years: Length of the early window, capped at the horizon

    Returns:
        SequenceRiskAnalysis with poor, average, and good cohorts. The first
        two thirds hold n // 3 runs each; the good cohort takes the rest.

    Raises:
        ValueError: If the result has no per-run trajectories
    """
    runs = result.require_runs()
    window = min(early_years, result.parameters.time_horizon_years)
    scored = [(early_return_score(run.yearly_balances, window), run) for run in runs]
    scored.sort(key=lambda item: (item[0], item[1].run_number))

    third = len(scored) // 3
    return SequenceRiskAnalysis(
        early_years=window,
        poor=_cohort("poor", scored[:third]),
        average=_cohort("average", scored[third:2 * third]),
        good=_cohort("good", scored[2 * third:]),
    )
