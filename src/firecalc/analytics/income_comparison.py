# Copyright 2025 The firecalc Authors
#
# Use of this source code is governed by an MIT license that can be
# found in the LICENSE file at the root of this repository.

"""
Income-timing comparison, e.g. claiming Social Security at 62, 67, or 70.

Each scenario replaces the income schedule and is run with the same seed, so
differences come from the income timing alone.
"""

from dataclasses import asdict, dataclass
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

import pandas as pd

from ..income.benefits import SocialSecurityEstimator
from ..income.schedule import IncomeSchedule, ScheduledIncome
from ..montecarlo.config import SimulationParameters
from ..montecarlo.historical_data import HistoricalDataset
from ..montecarlo.simulator import MonteCarloEngine
from ..portfolio import Portfolio
from ..settings import get_settings
from .strategy_comparison import rank_outcomes, shared_seed


@dataclass(frozen=True)
class IncomeScenarioOutcome:
    name: str
    success_rate: float
    median_final_balance: float
    average_annual_withdrawal: float
    probability_of_ruin: float
    first_income_year: Optional[int]


@dataclass(frozen=True)
class IncomeComparison:
    outcomes: Tuple[IncomeScenarioOutcome, ...]
    number_of_runs: int

    def ranked(self, metric: str = "success_rate") -> List[IncomeScenarioOutcome]:
        return rank_outcomes(self.outcomes, metric)

    def best_by(self, metric: str = "success_rate") -> IncomeScenarioOutcome:
        return self.ranked(metric)[0]

    def to_dataframe(self) -> pd.DataFrame:
        return pd.DataFrame([asdict(o) for o in self.outcomes]).set_index("name")


def social_security_claiming_scenarios(average_annual_income: float,
                                       birth_year: int,
                                       claim_ages: Sequence[int] = (62, 67, 70),
                                       other_income: Iterable[ScheduledIncome] = ()
                                       ) -> Dict[str, Tuple[ScheduledIncome, ...]]:
    """One income scenario per Social Security claiming age.

    other_income (pensions, annuities) is included unchanged in every scenario.
    """
    other = tuple(other_income)
    scenarios = {}
    for age in claim_ages:
        plan = SocialSecurityEstimator.create_plan(average_annual_income, birth_year, age)
        scenarios[f"Claim at {age}"] = (plan.to_scheduled_income(),) + other
    return scenarios


def compare_income_scenarios(portfolio: Portfolio,
                             parameters: SimulationParameters,
                             scenarios: Mapping[str, Iterable[ScheduledIncome]],
                             historical_data: Optional[HistoricalDataset] = None,
                             engine: Optional[MonteCarloEngine] = None,
                             number_of_runs: Optional[int] = None,
                             cancel_event=None) -> IncomeComparison:
    """Run the engine once per named income scenario.

    Args:
        portfolio: Portfolio snapshot
        parameters: Base parameters; must set retirement_age for income to pay
        scenarios: Scenario name to income streams
        historical_data: Historical returns
        engine: Engine to use; a default serial engine if None
        number_of_runs: Runs per scenario. Defaults to the quick run count.
        cancel_event: Checked between batches of every invocation

    Returns:
        IncomeComparison with one outcome per scenario, in input order
    """
    engine = engine or MonteCarloEngine()
    runs = number_of_runs or get_settings().quick_runs
    seed = shared_seed(parameters)

    outcomes = []
    for name, streams in scenarios.items():
        schedule = IncomeSchedule(streams)
        params = parameters.replace(income_schedule=schedule, number_of_runs=runs, rng_seed=seed)
        result = engine.run_simulation(portfolio, params, historical_data, cancel_event=cancel_event)
        first_year = None
        if parameters.retirement_age is not None:
            first_year = schedule.first_income_year(parameters.retirement_age)
        outcomes.append(IncomeScenarioOutcome(
            name=name,
            success_rate=result.success_rate,
            median_final_balance=result.median_final_balance,
            average_annual_withdrawal=result.average_annual_withdrawal,
            probability_of_ruin=result.probability_of_ruin,
            first_income_year=first_year,
        ))
    return IncomeComparison(tuple(outcomes), runs)
