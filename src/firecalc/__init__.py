# Copyright 2025 The firecalc Authors
#
# Use of this source code is governed by an MIT license that can be
# found in the LICENSE file at the root of this repository.

"""
FIRE Calculator Engine

Monte Carlo projection of whether a retirement portfolio survives a time
horizon under uncertain returns, inflation, and withdrawal behavior, with
guaranteed income and cohort/strategy analytics on top.

Example usage:
    from firecalc import (Asset, AssetClass, Portfolio, MonteCarloEngine,
                          SimulationParameters, HistoricalDataset)

    portfolio = Portfolio([
        Asset("Stocks", AssetClass.STOCKS, quantity=1, unit_value=600_000),
        Asset("Bonds", AssetClass.BONDS, quantity=1, unit_value=400_000),
    ])
    data = HistoricalDataset.synthetic(seed=1)
    result = MonteCarloEngine().run_simulation(
        portfolio, SimulationParameters(number_of_runs=1000, rng_seed=42), data)
    print(f"Success rate: {result.success_rate:.1%}")
"""

import logging

from .errors import ConfigurationError, DataUnavailableError, FireCalcError, SimulationCancelledError
from .settings import Settings, configure_logging, get_settings
from .portfolio import Asset, AssetClass, Portfolio
from .withdrawal import WithdrawalConfiguration, WithdrawalStrategy, calculate_withdrawal
from .income import DefinedBenefitPlan, IncomeSchedule, PlanType, ScheduledIncome, SocialSecurityEstimator
from .montecarlo import (
    EngineOptions,
    HistoricalDataset,
    InflationStrategy,
    MonteCarloEngine,
    SimulationParameters,
    SimulationResult,
    SimulationRun,
    SuccessCriterion,
    load_historical_dataset,
)
from .assumptions import RetirementAssumptions
from .analytics import (
    analyze_sequence_risk,
    compare_income_scenarios,
    compare_strategies,
    project_fire,
    ruin_year_distribution,
)

logging.getLogger(__name__).addHandler(logging.NullHandler())

__version__ = "0.1.0"

__all__ = [
    'ConfigurationError',
    'DataUnavailableError',
    'FireCalcError',
    'SimulationCancelledError',
    'Settings',
    'configure_logging',
    'get_settings',
    'Asset',
    'AssetClass',
    'Portfolio',
    'WithdrawalConfiguration',
    'WithdrawalStrategy',
    'calculate_withdrawal',
    'DefinedBenefitPlan',
    'IncomeSchedule',
    'PlanType',
    'ScheduledIncome',
    'SocialSecurityEstimator',
    'EngineOptions',
    'HistoricalDataset',
    'InflationStrategy',
    'MonteCarloEngine',
    'SimulationParameters',
    'SimulationResult',
    'SimulationRun',
    'SuccessCriterion',
    'load_historical_dataset',
    'RetirementAssumptions',
    'analyze_sequence_risk',
    'compare_income_scenarios',
    'compare_strategies',
    'project_fire',
    'ruin_year_distribution',
]
