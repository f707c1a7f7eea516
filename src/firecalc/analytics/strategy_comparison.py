# Copyright 2025 The firecalc Authors
#
# Use of this source code is governed by an MIT license that can be
# found in the LICENSE file at the root of this repository.

"""
Side-by-side comparison of the withdrawal strategies.

Every strategy is run with the same withdrawal rate, the same implied dollar
amount, the same income settings, and the same random seed, at a reduced run
count so the comparison stays responsive.
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

import numpy as np
import pandas as pd

from ..montecarlo.config import SimulationParameters
from ..montecarlo.historical_data import HistoricalDataset
from ..montecarlo.results import SimulationResult
from ..montecarlo.simulator import MonteCarloEngine
from ..portfolio import Portfolio
from ..settings import get_settings
from ..withdrawal.strategy import (
    WithdrawalConfiguration,
    WithdrawalStrategy,
    default_guardrails,
)

logger = logging.getLogger(__name__)

RANKING_METRICS = (
    "success_rate",
    "median_final_balance",
    "average_annual_withdrawal",
    "probability_of_ruin",
)


@dataclass(frozen=True)
class StrategyOutcome:
    strategy: WithdrawalStrategy
    configuration: WithdrawalConfiguration
    success_rate: float
    median_final_balance: float
    average_annual_withdrawal: float
    probability_of_ruin: float
    yearly_medians: Tuple[float, ...]

    @property
    def label(self) -> str:
        return self.strategy.label

    @classmethod
    def from_result(cls, strategy: WithdrawalStrategy, result: SimulationResult) -> 'StrategyOutcome':
        return cls(
            strategy=strategy,
            configuration=result.parameters.withdrawal_config,
            success_rate=result.success_rate,
            median_final_balance=result.median_final_balance,
            average_annual_withdrawal=result.average_annual_withdrawal,
            probability_of_ruin=result.probability_of_ruin,
            yearly_medians=tuple(p.median for p in result.yearly_balances),
        )


def rank_outcomes(outcomes, metric: str) -> List:
    """Outcomes ordered best first. Lower is better for probability_of_ruin."""
    if metric not in RANKING_METRICS:
        raise ValueError(f"Unknown metric {metric!r}; choose from {RANKING_METRICS}")
    reverse = metric != "probability_of_ruin"
    return sorted(outcomes, key=lambda o: getattr(o, metric), reverse=reverse)


@dataclass(frozen=True)
class StrategyComparison:
    outcomes: Tuple[StrategyOutcome, ...]
    number_of_runs: int

    def outcome_for(self, strategy: WithdrawalStrategy) -> StrategyOutcome:
        for outcome in self.outcomes:
            if outcome.strategy == strategy:
                return outcome
        raise KeyError(strategy)

    def ranked(self, metric: str = "success_rate") -> List[StrategyOutcome]:
        return rank_outcomes(self.outcomes, metric)

    def best_by(self, metric: str = "success_rate") -> StrategyOutcome:
        return self.ranked(metric)[0]

    def to_dataframe(self) -> pd.DataFrame:
        return pd.DataFrame([
            {
                "strategy": o.label,
                "success_rate": o.success_rate,
                "median_final_balance": o.median_final_balance,
                "average_annual_withdrawal": o.average_annual_withdrawal,
                "probability_of_ruin": o.probability_of_ruin,
            }
            for o in self.outcomes
        ]).set_index("strategy")


def comparison_configurations(base: WithdrawalConfiguration,
                              initial_value: float) -> Dict[WithdrawalStrategy, WithdrawalConfiguration]:
    """One configuration per strategy at the same rate and dollar amount.

    Guardrail bounds default to rate * 1.25 (at most 1.0) and rate * 0.80; a fixed-dollar
    amount defaults to initial_value * rate. Inflation and legacy income
    settings carry over from the base configuration.
    """
    rate = base.withdrawal_rate
    shared = dict(
        withdrawal_rate=rate,
        adjust_for_inflation=base.adjust_for_inflation,
        fixed_income_real=base.fixed_income_real,
        fixed_income_nominal=base.fixed_income_nominal,
    )
    amount = base.annual_amount if base.annual_amount is not None else initial_value * rate
    default_upper, default_lower = default_guardrails(rate)
    upper = default_upper if base.upper_guardrail is None else base.upper_guardrail
    lower = default_lower if base.lower_guardrail is None else base.lower_guardrail
    return {
        WithdrawalStrategy.FIXED_PERCENTAGE: WithdrawalConfiguration(
            WithdrawalStrategy.FIXED_PERCENTAGE, **shared),
        WithdrawalStrategy.DYNAMIC_PERCENTAGE: WithdrawalConfiguration(
            WithdrawalStrategy.DYNAMIC_PERCENTAGE,
            floor_percentage=base.floor_percentage,
            ceiling_percentage=base.ceiling_percentage,
            **shared),
        WithdrawalStrategy.GUARDRAILS: WithdrawalConfiguration(
            WithdrawalStrategy.GUARDRAILS,
            upper_guardrail=upper,
            lower_guardrail=lower,
            guardrail_adjustment_magnitude=base.guardrail_adjustment_magnitude,
            **shared),
        WithdrawalStrategy.FIXED_DOLLAR: WithdrawalConfiguration(
            WithdrawalStrategy.FIXED_DOLLAR, annual_amount=amount, **shared),
    }


def shared_seed(parameters: SimulationParameters) -> int:
    """Seed reused across comparison runs so every variant sees the same markets."""
    if parameters.rng_seed is not None:
        return parameters.rng_seed
    return int(np.random.SeedSequence().generate_state(1)[0])


def compare_strategies(portfolio: Portfolio,
                       parameters: SimulationParameters,
                       historical_data: Optional[HistoricalDataset] = None,
                       engine: Optional[MonteCarloEngine] = None,
                       number_of_runs: Optional[int] = None,
                       cancel_event=None) -> StrategyComparison:
    """Run every withdrawal strategy on the same inputs.

    Args:
        portfolio: Portfolio snapshot
        parameters: Base parameters; only the withdrawal configuration,
                    run count, and seed are changed
        historical_data: Historical returns
        engine: Engine to use; a default serial engine if None
        number_of_runs: Runs per strategy. Defaults to the quick run count.
        cancel_event: Checked between batches of every invocation

    Returns:
        StrategyComparison with one outcome per strategy, in strategy order
    """
    engine = engine or MonteCarloEngine()
    runs = number_of_runs or get_settings().quick_runs
    seed = shared_seed(parameters)
    configs = comparison_configurations(parameters.withdrawal_config,
                                        parameters.initial_portfolio_value)

    outcomes = []
    for strategy, config in configs.items():
        logger.debug("Comparing strategy %s with %d runs", strategy.value, runs)
        params = parameters.replace(withdrawal_config=config, number_of_runs=runs, rng_seed=seed)
        result = engine.run_simulation(portfolio, params, historical_data, cancel_event=cancel_event)
        outcomes.append(StrategyOutcome.from_result(strategy, result))
    return StrategyComparison(tuple(outcomes), runs)
