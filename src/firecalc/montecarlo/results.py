# Copyright 2025 The firecalc Authors
#
# Use of this source code is governed by an MIT license that can be
# found in the LICENSE file at the root of this repository.

"""
Monte Carlo simulation results aggregation.

SimulationResult is built once from the completed runs and never changes.
Every scalar and per-year summary is computed up front, so dropping the
per-run trajectories with without_runs() leaves the summary untouched.
"""

import dataclasses
from dataclasses import dataclass
from typing import Any, Dict, Optional, Sequence, Tuple

import numpy as np
import pandas as pd
from scipy import stats

from .config import SimulationParameters

# Percentile bands reported per year and for final balances
PERCENTILES = (10, 25, 50, 75, 90)


@dataclass(frozen=True, eq=False)
class SimulationRun:
    """One simulated path.

    Attributes:
        run_number: Index of the run; also determines its random stream
        yearly_balances: Balance at each year end, index 0 = initial balance
        yearly_withdrawals: Amount drawn from the portfolio each year
        success: Whether the run met the success criterion
        ruin_year: First year the balance reached zero, or None
        years_lasted: Number of leading years whose withdrawal was met in full
    """
    run_number: int
    yearly_balances: np.ndarray
    yearly_withdrawals: np.ndarray
    success: bool
    ruin_year: Optional[int] = None
    years_lasted: int = 0

    @property
    def final_balance(self) -> float:
        return float(self.yearly_balances[-1])

    @property
    def ruined(self) -> bool:
        return self.ruin_year is not None

    @property
    def total_withdrawn(self) -> float:
        return float(np.sum(self.yearly_withdrawals))

    @property
    def average_withdrawal(self) -> float:
        if len(self.yearly_withdrawals) == 0:
            return 0.0
        return self.total_withdrawn / len(self.yearly_withdrawals)


@dataclass(frozen=True)
class YearlyProjection:
    """Cross-run balance distribution at one year index."""
    year: int
    median: float
    p10: float
    p25: float
    p75: float
    p90: float
    median_withdrawal: float
    probability_solvent: float


@dataclass(frozen=True, eq=False)
class SimulationResult:
    """Aggregated outcome of one engine invocation.

    Example:
        >>> result = engine.run_simulation(portfolio, parameters, data)
        >>> print(f"Success rate: {result.success_rate:.1%}")
        >>> light = result.without_runs()
    """
    parameters: SimulationParameters
    success_rate: float
    median_final_balance: float
    mean_final_balance: float
    probability_of_ruin: float
    average_annual_withdrawal: float
    total_withdrawn: float
    years_until_ruin: Optional[float]
    max_drawdown: float
    final_balance_percentiles: Dict[int, float]
    yearly_balances: Tuple[YearlyProjection, ...]
    final_balance_distribution: np.ndarray
    number_of_runs: int
    computation_time_ms: float = 0.0
    all_simulation_runs: Optional[Tuple[SimulationRun, ...]] = None

    def __repr__(self) -> str:
        return (f"SimulationResult(runs={self.number_of_runs}, "
                f"success_rate={self.success_rate:.1%}, "
                f"median_final_balance={self.median_final_balance:,.0f})")

    @classmethod
    def from_runs(cls, parameters: SimulationParameters, runs: Sequence[SimulationRun],
                  computation_time_ms: float = 0.0, keep_runs: bool = True) -> 'SimulationResult':
        """Aggregate completed runs.

        Runs are ordered by run number first, so the result doesn't depend on
        the order workers finished in.

        Raises:
            ValueError: If there are no runs
        """
        if not runs:
            raise ValueError("Cannot summarize a simulation with no completed runs")
        runs = tuple(sorted(runs, key=lambda run: run.run_number))
        n = len(runs)

        balances = np.vstack([run.yearly_balances for run in runs])
        withdrawals = np.vstack([run.yearly_withdrawals for run in runs])
        finals = balances[:, -1]

        band_values = np.percentile(balances, PERCENTILES, axis=0)
        median_withdrawals = np.median(withdrawals, axis=0) if withdrawals.shape[1] else np.zeros(0)
        solvent = np.mean(balances > 0, axis=0)
        yearly = []
        for year in range(balances.shape[1]):
            yearly.append(YearlyProjection(
                year=year,
                median=float(band_values[2, year]),
                p10=float(band_values[0, year]),
                p25=float(band_values[1, year]),
                p75=float(band_values[3, year]),
                p90=float(band_values[4, year]),
                median_withdrawal=float(median_withdrawals[year - 1]) if year > 0 else 0.0,
                probability_solvent=float(solvent[year]),
            ))

        ruin_years = [run.ruin_year for run in runs if run.ruined]
        final_bands = np.percentile(finals, PERCENTILES)
        distribution = np.sort(finals)
        distribution.flags.writeable = False

        return cls(
            parameters=parameters,
            success_rate=sum(run.success for run in runs) / n,
            median_final_balance=float(np.median(finals)),
            mean_final_balance=float(np.mean(finals)),
            probability_of_ruin=len(ruin_years) / n,
            average_annual_withdrawal=float(np.mean([run.average_withdrawal for run in runs])),
            total_withdrawn=float(np.median(np.sum(withdrawals, axis=1))),
            years_until_ruin=float(np.mean(ruin_years)) if ruin_years else None,
            max_drawdown=max_drawdown(balances),
            final_balance_percentiles={p: float(v) for p, v in zip(PERCENTILES, final_bands)},
            yearly_balances=tuple(yearly),
            final_balance_distribution=distribution,
            number_of_runs=n,
            computation_time_ms=computation_time_ms,
            all_simulation_runs=runs if keep_runs else None,
        )

    @property
    def has_runs(self) -> bool:
        return self.all_simulation_runs is not None

    def without_runs(self) -> 'SimulationResult':
        """Copy without per-run trajectories, for persistence."""
        return dataclasses.replace(self, all_simulation_runs=None)

    def require_runs(self) -> Tuple[SimulationRun, ...]:
        """Per-run trajectories.

        Raises:
            ValueError: If the result was stripped or built without runs
        """
        if self.all_simulation_runs is None:
            raise ValueError("This result does not include per-run trajectories")
        return self.all_simulation_runs

    def balance_matrix(self) -> np.ndarray:
        """Runs x (years + 1) array of balances."""
        return np.vstack([run.yearly_balances for run in self.require_runs()])

    def summary(self) -> Dict[str, Any]:
        """Scalar statistics as a plain dict."""
        return {
            "number_of_runs": self.number_of_runs,
            "time_horizon_years": self.parameters.time_horizon_years,
            "success_rate": self.success_rate,
            "probability_of_ruin": self.probability_of_ruin,
            "median_final_balance": self.median_final_balance,
            "mean_final_balance": self.mean_final_balance,
            "average_annual_withdrawal": self.average_annual_withdrawal,
            "total_withdrawn": self.total_withdrawn,
            "years_until_ruin": self.years_until_ruin,
            "max_drawdown": self.max_drawdown,
            "final_balance_percentiles": dict(self.final_balance_percentiles),
        }

    def yearly_dataframe(self) -> pd.DataFrame:
        """Per-year balance bands with years as index."""
        df = pd.DataFrame([dataclasses.asdict(p) for p in self.yearly_balances])
        return df.set_index("year")

    def success_rate_interval(self, confidence: float = 0.95) -> Tuple[float, float]:
        """Wilson score interval for the success rate.

        Args:
            confidence: Two-sided confidence level

        Returns:
            (lower, upper) bounds
        """
        n = self.number_of_runs
        p = self.success_rate
        z = stats.norm.ppf(1 - (1 - confidence) / 2)
        denom = 1 + z ** 2 / n
        center = (p + z ** 2 / (2 * n)) / denom
        half = z * np.sqrt(p * (1 - p) / n + z ** 2 / (4 * n ** 2)) / denom
        return max(0.0, float(center - half)), min(1.0, float(center + half))

    def runs_dataframe(self) -> pd.DataFrame:
        """One row of scalar fields per run."""
        rows = [
            {
                "run_number": run.run_number,
                "final_balance": run.final_balance,
                "success": run.success,
                "ruin_year": run.ruin_year,
                "years_lasted": run.years_lasted,
                "total_withdrawn": run.total_withdrawn,
            }
            for run in self.require_runs()
        ]
        return pd.DataFrame(rows).set_index("run_number")

    def percentile_final_balance(self, percentile: float) -> float:
        """Final balance at an arbitrary percentile (0-100)."""
        return float(np.percentile(self.final_balance_distribution, percentile))


def max_drawdown(balances: np.ndarray) -> float:
    """Largest peak-to-trough decline across all paths, as a fraction of the peak."""
    peaks = np.maximum.accumulate(balances, axis=1)
    with np.errstate(divide="ignore", invalid="ignore"):
        drawdowns = np.where(peaks > 0, (peaks - balances) / peaks, 0.0)
    return float(np.max(drawdowns)) if drawdowns.size else 0.0

